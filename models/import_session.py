"""
Bulk import schemas: request payload, session records, per-item results
and progress responses.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import Field, field_validator

from models.base import BaseSchema, CamelSchema, TimestampMixin
from models.markup import MarkupConfig


class ImportSessionStatus(str, Enum):
    """Session lifecycle: running -> processing -> completed."""
    RUNNING = "running"
    PROCESSING = "processing"
    COMPLETED = "completed"


class ImportConfig(str, Enum):
    """Whether imported products go live or stay as drafts."""
    DRAFT = "draft"
    PUBLISHED = "published"


# ===================
# REQUEST PAYLOAD
# ===================

class CsvData(CamelSchema):
    """Already-parsed CSV: header names plus one dict per row."""

    headers: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)


class ApiCredentials(CamelSchema):
    """Supplier API endpoint and bearer token."""

    api_url: str = Field(..., min_length=1, description="GET endpoint returning products")
    access_token: str = Field("", description="Bearer token (with or without 'Bearer ' prefix)")
    connection_id: Optional[str] = Field(None, description="Saved connection, if any")


class ImportFilters(CamelSchema):
    """Selector tokens chosen in the filter step ('key::value')."""

    selected_values: list[str] = Field(default_factory=list)

    @field_validator("selected_values", mode="before")
    @classmethod
    def drop_non_strings(cls, v: Any) -> Any:
        if v is None:
            return []
        return [token for token in v if isinstance(token, str)]


class BulkImportRequest(CamelSchema):
    """
    Bulk import payload sent by the import wizard.

    Example:
        {
          "dataSource": "csv",
          "csvData": {"headers": ["Title"], "rows": [{"Title": "A"}]},
          "keyMappings": {},
          "importFilters": {"selectedValues": ["Vendor::Acme"]},
          "markupConfig": {"conditions": [], "conditionsType": "any"},
          "importConfig": "draft",
          "totalProducts": 1
        }
    """

    data_source: Literal["csv", "api"] = "csv"
    csv_data: Optional[CsvData] = None
    api_credentials: Optional[ApiCredentials] = None
    key_mappings: dict[str, str] = Field(default_factory=dict)
    import_filters: ImportFilters = Field(default_factory=ImportFilters)
    markup_config: MarkupConfig = Field(default_factory=MarkupConfig)
    import_config: ImportConfig = ImportConfig.DRAFT
    import_type: str = "all"
    total_products: int = Field(0, ge=0)

    @field_validator("key_mappings", mode="before")
    @classmethod
    def mappings_as_text(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(k): str(t) for k, t in v.items() if t not in (None, "")}
        return v


class AttributeOptionsRequest(CamelSchema):
    """Source description for computing filter facets."""

    data_source: Literal["csv", "api"] = "csv"
    csv_data: Optional[CsvData] = None
    api_credentials: Optional[ApiCredentials] = None
    import_filters: ImportFilters = Field(default_factory=ImportFilters)


# ===================
# PER-ITEM RESULTS
# ===================

class ImportedProductRef(CamelSchema):
    """Catalog identity of a product that was created or updated."""

    id: str
    title: str
    status: Optional[str] = None


class ImportItemSuccess(CamelSchema):
    """Product created or updated in the catalog."""

    success: Literal[True] = True
    action: Literal["created", "updated"]
    product: ImportedProductRef


class ImportItemFailure(CamelSchema):
    """Product could not be imported; the run continued."""

    success: Literal[False] = False
    product: str = Field(..., description="Title of the failed product")
    error: str


ImportItemResult = Union[ImportItemSuccess, ImportItemFailure]


# ===================
# RESPONSES
# ===================

class BulkImportResponse(CamelSchema):
    """Final outcome of a bulk import run."""

    success: bool = True
    session_id: str
    imported: int
    failed: int
    total_products: int
    results: list[ImportItemResult] = Field(default_factory=list)


class ImportProgressResponse(CamelSchema):
    """What a polling client sees while a run is in flight."""

    success: bool = True
    session_id: str
    imported: int = 0
    failed: int = 0
    total_products: int = 0
    current_product: str
    status: str


class AttributeValueOption(CamelSchema):
    """One distinct value of an attribute with its occurrence count."""

    value: str
    count: int


class AttributeOption(CamelSchema):
    """Attribute key with the values a user can select."""

    key: str
    values: list[AttributeValueOption] = Field(default_factory=list)


class AttributeOptionsResponse(CamelSchema):
    """Facets for the filter step."""

    total_records: int
    matching_records: int = Field(0, description="Records the current selection would import")
    attributes: list[AttributeOption] = Field(default_factory=list)


# ===================
# STORED RECORDS
# ===================

class ImportSessionRecord(BaseSchema, TimestampMixin):
    """Row in import_sessions."""

    id: str
    shop: str
    data_source: str = "csv"
    import_type: str = "all"
    import_config: str = "draft"
    status: ImportSessionStatus = ImportSessionStatus.RUNNING
    total_products: int = 0
    imported_products: int = 0
    failed_products: int = 0
    completed_at: Optional[datetime] = None


class ImportedProductRecord(BaseSchema, TimestampMixin):
    """Row in imported_products (snapshot of what was sent to the catalog)."""

    id: Optional[str] = None
    shop: str
    import_session_id: Optional[str] = None
    connection_id: Optional[str] = None
    catalog_product_id: str
    title: str = ""
    body_html: str = ""
    vendor: str = ""
    product_type: str = ""
    tags: str = "[]"
    status: str = "DRAFT"
    price: str = ""
    compare_at_price: str = ""
    sku: str = ""
    barcode: str = ""
    inventory_quantity: int = 0
    variants: str = "[]"
    markup_applied: bool = False
    markup_type: str = ""
    markup_value: str = ""
