"""
Domain errors for the LMS backend.

Every error raised from the request path derives from ``LMSError`` and carries
the HTTP status it maps to. ``lms.main`` registers a single exception handler
that renders them as ``{"message": ..., "error": ...}``.

Usage:
    from lms.errors import NotFound

    if not row:
        raise NotFound("Category not found")
"""

from typing import Any, Dict, Iterable, Optional


class LMSError(Exception):
    """Base exception for all errors surfaced to API clients"""

    status_code = 500

    def __init__(self, message: str, error: Optional[str] = None):
        self.message = message
        self.error = error
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.error is not None:
            body["error"] = self.error
        return body


# ============================================
# Validation Errors (400)
# ============================================

class MissingField(LMSError):
    """A required field was absent from the request body"""

    status_code = 400

    def __init__(self, fields: Iterable[str]):
        self.fields = list(fields)
        if len(self.fields) == 1:
            message = f"{self.fields[0]} is required"
        else:
            message = f"{', '.join(self.fields[:-1])} and {self.fields[-1]} are required"
        super().__init__(message)


class InvalidReference(LMSError):
    """A referenced foreign key target does not exist"""

    status_code = 400


class UnknownIdentity(LMSError):
    """The token's identity is not present in the store"""

    status_code = 400

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(
            f"User ID {user_id} not found in database. Please login again.",
            error="User not found",
        )


class ValidationFailed(LMSError):
    status_code = 400


# ============================================
# Authentication & Authorization Errors
# ============================================

class Unauthenticated(LMSError):
    status_code = 401


class Forbidden(LMSError):
    """Role or ownership check failed"""

    status_code = 403

    def __init__(self, message: str = "Access denied", allowed_roles: Optional[Iterable[str]] = None):
        self.allowed_roles = list(allowed_roles) if allowed_roles else []
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.allowed_roles:
            body["allowed_roles"] = self.allowed_roles
        return body


# ============================================
# Resource Errors
# ============================================

class NotFound(LMSError):
    status_code = 404


class Conflict(LMSError):
    status_code = 409


# ============================================
# Server Errors (500)
# ============================================

class StorageError(LMSError):
    """Underlying store failure"""

    status_code = 500

    def __init__(self, error: str, message: str = "Server error"):
        super().__init__(message, error=error)


class UniqueViolation(StorageError):
    """A write collided with a UNIQUE constraint"""


class ConfigurationError(LMSError):
    status_code = 500
