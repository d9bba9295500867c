"""
Authentication Data Models

Pydantic models for pastor accounts, sessions, and access scope.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class UserRole(str, Enum):
    """Pastor role hierarchy for RBAC."""
    NATIONAL_COORDINATOR = "national_coordinator"  # Whole network, all management
    REGIONAL_PASTOR = "regional_pastor"            # One region
    GROUP_PASTOR = "group_pastor"                  # One group within a region
    DISTRICT_PASTOR = "district_pastor"            # One district within a group


class AccountStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


class Scope(BaseModel):
    """Slice of the hierarchy a pastor may see. None means unrestricted at that level."""
    region: Optional[str] = None
    group_id: Optional[str] = None
    district_id: Optional[str] = None

    @property
    def is_national(self) -> bool:
        return self.region is None and self.group_id is None and self.district_id is None


class User(BaseModel):
    """Pastor account model (password hash never leaves the store)."""
    user_id: str
    email: str
    name: str
    role: UserRole
    region: Optional[str] = None
    group_id: Optional[str] = None
    group: Optional[str] = None
    district_id: Optional[str] = None
    district: Optional[str] = None
    status: AccountStatus = AccountStatus.PENDING
    contact: Optional[str] = None
    created_at: Optional[datetime] = None


class AuthContext(BaseModel):
    """Authentication context passed through middleware."""
    user_id: str
    email: str
    name: Optional[str] = None
    role: UserRole
    region: Optional[str] = None
    group_id: Optional[str] = None
    district_id: Optional[str] = None
    auth_method: str  # "bearer", "session"
    token_issued_at: Optional[datetime] = None
    token_expires_at: Optional[datetime] = None


# --- API Request/Response Models ---

class LoginRequest(BaseModel):
    """Email/password login request."""
    email: str
    password: str


class LoginResponse(BaseModel):
    """Login response with token."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: User


class PastorData(BaseModel):
    """Create, register or update a pastor account."""
    email: str
    name: str
    role: UserRole
    region: Optional[str] = None
    group_id: Optional[str] = None
    district_id: Optional[str] = None
    password: Optional[str] = None
    contact: Optional[str] = None


class RegisterResponse(BaseModel):
    success: bool
    message: str


class CurrentUserResponse(BaseModel):
    """Response for /auth/me endpoint."""
    user_id: str
    email: str
    name: Optional[str] = None
    role: str
    scope: Scope
    permissions: list[str]
