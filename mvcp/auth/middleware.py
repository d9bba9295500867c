"""
Authentication Middleware

Provides:
- Bearer token and session cookie authentication
- Request context injection
- FastAPI dependencies for authenticated endpoints
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import is_production
from .models import AccountStatus, AuthContext
from .session import verify_session_token

logger = logging.getLogger(__name__)

# Paths that don't require authentication
PUBLIC_PATHS = {
    "/",
    "/health",
    "/api/auth/login",
    "/api/auth/register",
    "/api/public/events",
    "/api/public/testimony",
    "/docs",
    "/openapi.json",
    "/redoc",
}

SESSION_COOKIE_NAME = "mvcp_session"


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Authentication middleware.

    Priority order:
    1. Bearer token (Authorization: Bearer <token>)
    2. Session cookie (mvcp_session)

    Sets request.state.auth_context on successful auth. Unauthenticated
    requests pass through; endpoints decide via require_auth.
    """

    async def dispatch(self, request: Request, call_next):
        auth_context = None
        if request.url.path not in PUBLIC_PATHS:
            auth_context = self._authenticate(request)
        request.state.auth_context = auth_context
        if auth_context:
            request.state.user = auth_context.email  # For access logging
        return await call_next(request)

    def _authenticate(self, request: Request) -> Optional[AuthContext]:
        token = None
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header[7:]
            method = "bearer"
        else:
            token = request.cookies.get(SESSION_COOKIE_NAME)
            method = "session"

        if not token:
            return None
        claims = verify_session_token(token)
        if not claims:
            return None
        return build_auth_context(claims, method)


def build_auth_context(claims: dict, auth_method: str) -> Optional[AuthContext]:
    """Build AuthContext from token claims; None if the account is gone or not approved."""
    from ..db.users import get_user

    user = get_user(claims.get("user_id", ""))
    if user is None or user.status != AccountStatus.APPROVED:
        logger.debug("Token for unknown or unapproved user %s", claims.get("user_id"))
        return None

    return AuthContext(
        user_id=user.user_id,
        email=user.email,
        name=user.name,
        role=user.role,
        region=user.region,
        group_id=user.group_id,
        district_id=user.district_id,
        auth_method=auth_method,
        token_issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc) if claims.get("iat") else None,
        token_expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc) if claims.get("exp") else None,
    )


def require_auth(request: Request) -> AuthContext:
    """
    Dependency that requires authentication.

    Raises HTTPException 401 if not authenticated.
    """
    auth_context = getattr(request.state, "auth_context", None)
    if not auth_context:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_context


def set_auth_cookie(response: Response, session_token: str, max_age: int):
    """Set the session cookie on a login response."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_token,
        httponly=True,
        secure=is_production(),
        samesite="lax",
        max_age=max_age,
    )


def clear_auth_cookie(response: Response):
    """Clear the session cookie (logout)."""
    response.delete_cookie(SESSION_COOKIE_NAME)
