"""Shared helpers used across multiple routers."""

from fastapi import HTTPException

from ..auth.models import AuthContext
from ..auth.rbac import scope_allows, scope_for
from ..errors import AuthError, ConflictError, MVCPError, NotFoundError, PendingApprovalError, ValidationError


def http_error(exc: MVCPError) -> HTTPException:
    """Map a domain error onto the matching HTTP status."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, PendingApprovalError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, AuthError):
        return HTTPException(status_code=401, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def ensure_in_scope(user: AuthContext, entity: dict | None, what: str) -> dict:
    """Return entity if the caller may see it; 404 when missing, 403 when outside scope."""
    if entity is None:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    if not scope_allows(scope_for(user), entity.get("region"), entity.get("group_id"), entity.get("district_id")):
        raise HTTPException(status_code=403, detail=f"{what} outside your scope")
    return entity
