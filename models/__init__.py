"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    CamelSchema,
    TimestampMixin,
)
from models.product import (
    ProductStatus,
    Variant,
    Product,
)
from models.markup import (
    ConditionOperator,
    MarkupType,
    MarkupCondition,
    MarkupConfig,
    normalize_operator,
    normalize_markup_type,
)
from models.import_session import (
    ImportSessionStatus,
    ImportConfig,
    CsvData,
    ApiCredentials,
    ImportFilters,
    BulkImportRequest,
    AttributeOptionsRequest,
    ImportedProductRef,
    ImportItemSuccess,
    ImportItemFailure,
    ImportItemResult,
    BulkImportResponse,
    ImportProgressResponse,
    AttributeValueOption,
    AttributeOption,
    AttributeOptionsResponse,
    ImportSessionRecord,
    ImportedProductRecord,
)

__all__ = [
    # Base
    "BaseSchema",
    "CamelSchema",
    "TimestampMixin",

    # Product
    "ProductStatus",
    "Variant",
    "Product",

    # Markup
    "ConditionOperator",
    "MarkupType",
    "MarkupCondition",
    "MarkupConfig",
    "normalize_operator",
    "normalize_markup_type",

    # Import
    "ImportSessionStatus",
    "ImportConfig",
    "CsvData",
    "ApiCredentials",
    "ImportFilters",
    "BulkImportRequest",
    "AttributeOptionsRequest",
    "ImportedProductRef",
    "ImportItemSuccess",
    "ImportItemFailure",
    "ImportItemResult",
    "BulkImportResponse",
    "ImportProgressResponse",
    "AttributeValueOption",
    "AttributeOption",
    "AttributeOptionsResponse",
    "ImportSessionRecord",
    "ImportedProductRecord",
]
