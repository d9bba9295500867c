"""
Authentication API Endpoints

Provides:
- Login / logout with signed session tokens
- Self-registration (pending approval)
- Current user info
- Pastor account management (national coordinator only)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from ..config import get_session_hours
from ..db import users as user_store
from ..errors import AuthError, ConflictError, NotFoundError, PendingApprovalError, ValidationError
from .middleware import clear_auth_cookie, require_auth, set_auth_cookie
from .models import (
    AuthContext,
    CurrentUserResponse,
    LoginRequest,
    LoginResponse,
    PastorData,
    RegisterResponse,
    User,
)
from .rbac import Permission, PermissionChecker, get_permission_strings, scope_for
from .session import create_session_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


# --- Endpoints ---

@router.post("/login", response_model=LoginResponse)
async def login(response: Response, body: LoginRequest):
    """
    Login with email/password.

    Returns a bearer token and sets the session cookie.
    """
    try:
        user = user_store.authenticate(body.email, body.password)
    except PendingApprovalError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))

    hours = get_session_hours()
    token = create_session_token(user.user_id, user.email, expires_in_hours=hours)
    set_auth_cookie(response, token, max_age=hours * 3600)
    logger.info("Login succeeded for %s", user.user_id)

    return LoginResponse(access_token=token, expires_in=hours * 3600, user=user)


@router.post("/register", response_model=RegisterResponse)
async def register(body: PastorData):
    """
    Register a pastor account. The account stays pending until approved.
    """
    try:
        user_store.register_pastor(body)
    except ConflictError as e:
        return RegisterResponse(success=False, message=str(e))
    except (ValidationError, NotFoundError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return RegisterResponse(success=True, message="Registration received. Your account is awaiting approval.")


@router.post("/logout")
async def logout(response: Response):
    """
    Logout - clears the session cookie.
    """
    clear_auth_cookie(response)
    return {"status": "logged_out"}


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(user: AuthContext = Depends(require_auth)):
    """
    Get current user info, scope and permissions.
    """
    return CurrentUserResponse(
        user_id=user.user_id,
        email=user.email,
        name=user.name,
        role=user.role.value,
        scope=scope_for(user),
        permissions=get_permission_strings(user.role),
    )


# --- Pastor Management (National Coordinator Only) ---

_manage_pastors = PermissionChecker(Permission.MANAGE_PASTORS)


@router.get("/pastors", response_model=list[User])
async def list_pastors(_: AuthContext = Depends(_manage_pastors)):
    """Approved pastors (national coordinators excluded)."""
    return user_store.list_pastors()


@router.get("/pastors/pending", response_model=list[User])
async def list_pending_pastors(_: AuthContext = Depends(_manage_pastors)):
    """Accounts awaiting approval."""
    return user_store.list_pending_pastors()


@router.post("/pastors", response_model=User)
async def add_pastor(body: PastorData, _: AuthContext = Depends(_manage_pastors)):
    """Create an already-approved pastor account."""
    try:
        return user_store.add_pastor(body)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (ValidationError, NotFoundError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/pastors/{user_id}/approve")
async def approve_pastor(user_id: str, _: AuthContext = Depends(_manage_pastors)):
    try:
        user_store.approve_pastor(user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "approved", "user_id": user_id}


@router.put("/pastors/{user_id}", response_model=User)
async def update_pastor(user_id: str, body: PastorData, _: AuthContext = Depends(_manage_pastors)):
    """Update a pastor's profile and attachment. Passwords are not changed here."""
    try:
        return user_store.update_pastor(user_id, body)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/pastors/{user_id}")
async def delete_pastor(user_id: str, user: AuthContext = Depends(_manage_pastors)):
    if user_id == user.user_id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")
    user_store.delete_pastor(user_id)
    return {"status": "deleted", "user_id": user_id}
