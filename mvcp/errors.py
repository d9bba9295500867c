"""Domain exceptions raised by the store and service layers.

Routers translate these into HTTP status codes.
"""


class MVCPError(Exception):
    """Base class for domain errors."""


class NotFoundError(MVCPError):
    """Referenced entity does not exist."""


class ConflictError(MVCPError):
    """Duplicate name, or a parent still referenced by children."""


class ValidationError(MVCPError):
    """Submitted data is inconsistent."""


class AuthError(MVCPError):
    """Unknown account or wrong password."""


class PendingApprovalError(AuthError):
    """Account exists but has not been approved yet."""
