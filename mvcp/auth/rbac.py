"""
Role-Based Access Control (RBAC) Module

Provides:
- Role hierarchy definition
- Permission checking functions
- Hierarchy scope derivation for data filtering
- FastAPI dependencies for endpoint protection
"""

from __future__ import annotations

import logging
from enum import Enum

from fastapi import Depends, HTTPException

from .middleware import require_auth
from .models import AuthContext, Scope, User, UserRole

logger = logging.getLogger(__name__)


# --- Role Hierarchy ---

# Higher roles see a wider slice of the network
ROLE_HIERARCHY = {
    UserRole.NATIONAL_COORDINATOR: 4,
    UserRole.REGIONAL_PASTOR: 3,
    UserRole.GROUP_PASTOR: 2,
    UserRole.DISTRICT_PASTOR: 1,
}


def role_level(role: UserRole) -> int:
    """Get numeric level for role comparison."""
    return ROLE_HIERARCHY.get(role, 0)


def role_includes(user_role: UserRole, required_role: UserRole) -> bool:
    """Check if user_role is at or above required_role in hierarchy."""
    return role_level(user_role) >= role_level(required_role)


# --- Permission Definitions ---


class Permission(str, Enum):
    """Granular permissions for resource access."""

    # Read permissions
    READ_DASHBOARD = "read:dashboard"
    READ_REPORTS = "read:reports"
    READ_TRENDS = "read:trends"
    READ_CELLS = "read:cells"
    READ_RESOURCES = "read:resources"

    # Write permissions
    SUBMIT_REPORTS = "write:reports"
    DELETE_REPORTS = "delete:reports"
    FEATURE_TESTIMONIES = "write:testimonies"

    # Management permissions
    MANAGE_CELLS = "manage:cells"
    MANAGE_HIERARCHY = "manage:hierarchy"
    MANAGE_PASTORS = "manage:pastors"
    MANAGE_EVENTS = "manage:events"
    MANAGE_RESOURCES = "manage:resources"


_PASTOR_BASE = {
    Permission.READ_DASHBOARD,
    Permission.READ_REPORTS,
    Permission.READ_TRENDS,
    Permission.READ_CELLS,
    Permission.READ_RESOURCES,
    Permission.SUBMIT_REPORTS,
}

# Role to permissions mapping
ROLE_PERMISSIONS: dict[UserRole, set[Permission]] = {
    UserRole.NATIONAL_COORDINATOR: set(Permission),
    UserRole.REGIONAL_PASTOR: _PASTOR_BASE | {Permission.MANAGE_CELLS},
    UserRole.GROUP_PASTOR: _PASTOR_BASE | {Permission.MANAGE_CELLS},
    UserRole.DISTRICT_PASTOR: set(_PASTOR_BASE),
}


def get_permissions_for_role(role: UserRole) -> set[Permission]:
    """Get all permissions for a role."""
    return ROLE_PERMISSIONS.get(role, set())


def get_permission_strings(role: UserRole) -> list[str]:
    """Get permissions as sorted string list (for API responses)."""
    return sorted(p.value for p in get_permissions_for_role(role))


def has_permission(role: UserRole, permission: Permission) -> bool:
    """Check if role has a specific permission."""
    return permission in get_permissions_for_role(role)


def has_all_permissions(role: UserRole, permissions: set[Permission]) -> bool:
    """Check if role has all of the specified permissions."""
    return permissions <= get_permissions_for_role(role)


# --- Hierarchy Scope ---


def scope_for(user: AuthContext | User) -> Scope:
    """Hierarchy slice visible to a pastor, derived from role and attachment."""
    if user.role == UserRole.NATIONAL_COORDINATOR:
        return Scope()
    if user.role == UserRole.REGIONAL_PASTOR:
        return Scope(region=user.region)
    if user.role == UserRole.GROUP_PASTOR:
        return Scope(region=user.region, group_id=user.group_id)
    return Scope(region=user.region, group_id=user.group_id, district_id=user.district_id)


def scope_allows(scope: Scope, region: str | None, group_id: str | None, district_id: str | None) -> bool:
    """True if an entity at the given hierarchy path falls inside scope."""
    if scope.region is not None and scope.region != region:
        return False
    if scope.group_id is not None and scope.group_id != group_id:
        return False
    if scope.district_id is not None and scope.district_id != district_id:
        return False
    return True


# --- FastAPI Dependencies ---


def PermissionChecker(*permissions: Permission):
    """
    FastAPI dependency factory for permission checking.

    Usage:
        @router.delete("/api/reports/{report_id}")
        async def delete_report(
            report_id: str,
            user: AuthContext = Depends(PermissionChecker(Permission.DELETE_REPORTS)),
        ):
            ...
    """

    async def check_permissions(user: AuthContext = Depends(require_auth)) -> AuthContext:
        required = set(permissions)
        if not has_all_permissions(user.role, required):
            missing = required - get_permissions_for_role(user.role)
            raise HTTPException(
                status_code=403,
                detail=f"Missing permissions: {sorted(p.value for p in missing)}",
            )
        return user

    return check_permissions


def RoleChecker(minimum_role: UserRole):
    """
    FastAPI dependency factory for role level checking.

    Usage:
        @router.get("/api/trends/regions")
        async def regions(_: None = Depends(RoleChecker(UserRole.NATIONAL_COORDINATOR))):
            ...
    """

    async def check_role(user: AuthContext = Depends(require_auth)) -> AuthContext:
        if not role_includes(user.role, minimum_role):
            raise HTTPException(
                status_code=403,
                detail=f"Requires {minimum_role.value} or higher",
            )
        return user

    return check_role
