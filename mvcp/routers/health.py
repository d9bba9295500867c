"""Health check endpoint."""

import logging
import sqlite3
from datetime import UTC, datetime

from fastapi import APIRouter
from pydantic import BaseModel

from .. import __version__
from ..db import connect, table_exists

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_REQUIRED_TABLES = ("users", "cell_groups", "districts", "cells", "reports")


class HealthResponse(BaseModel):
    status: str  # "ok" or "degraded"
    database: bool
    version: str
    checked_at: str


@router.get("/health", response_model=HealthResponse)
def get_health():
    """Liveness plus a schema check. No authentication."""
    try:
        con = connect()
        try:
            database_ok = all(table_exists(con, name) for name in _REQUIRED_TABLES)
        finally:
            con.close()
    except sqlite3.Error as e:
        logger.error("Health check database error: %s", e)
        database_ok = False

    return HealthResponse(
        status="ok" if database_ok else "degraded",
        database=database_ok,
        version=__version__,
        checked_at=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
