"""
Custom Exception Classes for the Translation API

The repository raises these instead of raw storage exceptions; the global
handlers in ``exception_handlers`` turn them into JSON error responses.
"""

from typing import Any

from fastapi import status


class TranslationAPIError(Exception):
    """Base exception class for all translation-store errors"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Authentication
# ============================================================================


class AuthenticationError(TranslationAPIError):
    """Raised when authentication fails"""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED)


# ============================================================================
# Caller errors
# ============================================================================


class ValidationError(TranslationAPIError):
    """Raised when a caller-supplied field is invalid or missing"""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(message=message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, details=error_details)

    @property
    def field(self) -> str | None:
        return self.details.get("field")


class NotFoundError(TranslationAPIError):
    """Raised when a resource does not exist (or is soft-deleted)"""

    def __init__(self, resource_type: str = "Translation", resource_id: Any | None = None):
        super().__init__(
            message=f"{resource_type} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ConflictError(TranslationAPIError):
    """Raised when a write would violate a uniqueness constraint"""

    def __init__(self, resource_type: str, field: str, value: Any, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"{resource_type} with {field} '{value}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource_type": resource_type, "field": field, "value": value, **(details or {})},
        )


# ============================================================================
# Storage
# ============================================================================


class StoreError(TranslationAPIError):
    """Raised when the database fails; the core does not retry"""

    def __init__(self, message: str = "A database error occurred", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message=message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE, details=details)
