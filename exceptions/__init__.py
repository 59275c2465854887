"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    UnauthorizedError,
    ExternalServiceError,
    DatabaseError,

    # Import
    ImportPayloadError,
    ShopNotIdentifiedError,
    ImportSessionNotFoundError,

    # Catalog API
    CatalogAPIError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "UnauthorizedError",
    "ExternalServiceError",
    "DatabaseError",

    # Import
    "ImportPayloadError",
    "ShopNotIdentifiedError",
    "ImportSessionNotFoundError",

    # Catalog API
    "CatalogAPIError",
]
