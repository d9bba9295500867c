"""
MVCP-BENIN Dashboard API

FastAPI backend for cell reports, hierarchy management, attendance
trends, events and shared resources.
"""

import logging
import sys
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from pythonjsonlogger import jsonlogger

from . import __version__
from .auth.api import router as auth_router
from .auth.middleware import AuthMiddleware
from .db import assert_tables_exist, init_db
from .routers import dashboard, events, health, hierarchy, reports, resources, testimonies
from .trends.api import router as trends_router

# --- Logging ---

# Configure JSON Logging
logger = logging.getLogger()
logHandler = logging.StreamHandler(sys.stdout)
formatter = jsonlogger.JsonFormatter(
    "%(asctime)s %(levelname)s %(name)s %(message)s",
    rename_fields={"asctime": "timestamp", "levelname": "severity"}
)
logHandler.setFormatter(formatter)
logger.addHandler(logHandler)
logger.setLevel(logging.INFO)

# --- Middleware ---

class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000

        log_data = {
            "event": "access_log",
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "processing_time_ms": round(process_time, 2),
            "user_agent": request.headers.get("user-agent"),
            "client_ip": request.client.host if request.client else None,
        }

        # Set by AuthMiddleware for authenticated requests
        if hasattr(request.state, "user"):
            log_data["user"] = request.state.user

        logger.info("request_processed", extra=log_data)
        return response


# --- FastAPI App ---

app = FastAPI(
    title="MVCP-BENIN Dashboard API",
    description="Cell reporting and attendance trend dashboard for the MVCP-BENIN network",
    version=__version__,
)

# Middleware (Applied in reverse order: Last added is first executed)

# 3. Logging (Outermost - measures total time)
app.add_middleware(LoggingMiddleware)

# 2. Auth (resolves the session before handlers run)
app.add_middleware(AuthMiddleware)

# 1. CORS (Innermost - handles preflight)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth_router)
app.include_router(dashboard.router)
app.include_router(reports.router)
app.include_router(hierarchy.router)
app.include_router(trends_router)
app.include_router(testimonies.router)
app.include_router(events.router)
app.include_router(resources.router)


@app.on_event("startup")
async def startup_event():
    init_db()
    assert_tables_exist()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
