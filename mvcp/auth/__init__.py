"""
Authentication Module for the MVCP-BENIN dashboard

Provides:
- Signed session tokens and password hashing
- Role-based access control (RBAC) and hierarchy scope
- Auth middleware and FastAPI dependencies

The HTTP router lives in ``mvcp.auth.api``.
"""

from .middleware import AuthMiddleware, require_auth
from .models import AccountStatus, AuthContext, Scope, User, UserRole
from .rbac import (
    Permission,
    PermissionChecker,
    RoleChecker,
    get_permissions_for_role,
    has_permission,
    scope_for,
)
from .session import create_session_token, hash_password, verify_password, verify_session_token

__all__ = [
    # Middleware
    "AuthMiddleware",
    "require_auth",
    # Models
    "AccountStatus",
    "AuthContext",
    "Scope",
    "User",
    "UserRole",
    # RBAC
    "Permission",
    "PermissionChecker",
    "RoleChecker",
    "get_permissions_for_role",
    "has_permission",
    "scope_for",
    # Sessions
    "create_session_token",
    "hash_password",
    "verify_password",
    "verify_session_token",
]
