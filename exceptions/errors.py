"""
Custom exception classes for the application.

Every error carries a code, a message and an HTTP status so routes can
turn it into the standard error envelope.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "IMPORT_SESSION_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class UnauthorizedError(AppError):
    """Caller could not be identified (401)."""

    def __init__(
        self,
        message: str,
        code: str = "UNAUTHORIZED",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=401,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# IMPORT ERRORS
# ===================

class ImportPayloadError(ValidationError):
    """Bulk import payload could not be used."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="IMPORT_PAYLOAD_INVALID",
            message=message,
            details=details
        )


class ShopNotIdentifiedError(UnauthorizedError):
    """No shop identity on the request."""

    def __init__(self):
        super().__init__(
            code="SHOP_NOT_IDENTIFIED",
            message="Authentication failed - No shop found"
        )


class ImportSessionNotFoundError(NotFoundError):
    """Import session not found."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Import session",
            identifier=session_id,
            code="IMPORT_SESSION_NOT_FOUND"
        )


# ===================
# CATALOG API ERRORS
# ===================

class CatalogAPIError(ExternalServiceError):
    """Catalog (Shopify Admin) API call failed or returned user errors."""

    def __init__(
        self,
        operation: str,
        message: str,
        user_errors: Optional[list[dict]] = None
    ):
        super().__init__(
            service="shopify",
            message=message,
            details={"operation": operation, "user_errors": user_errors or []}
        )
        self.operation = operation
        self.user_errors = user_errors or []
