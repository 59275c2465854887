"""
Canonical product schemas.

A canonical product is the normalised shape every source (CSV row or
supplier API item) is turned into before markup and import. Products are
frozen: each pipeline stage returns a new value via model_copy().
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Optional
from enum import Enum


class ProductStatus(str, Enum):
    """Catalog publication status."""
    ACTIVE = "ACTIVE"
    DRAFT = "DRAFT"


def _as_text(v: Any) -> Any:
    """Coerce numbers coming from CSV/JSON into strings."""
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class ProductValue(BaseModel):
    """Immutable value object base for canonical product data."""
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        extra="allow"
    )


class Variant(ProductValue):
    """
    One sellable variant.

    price is kept as text exactly as the source gave it; it is normalised
    to a two-decimal string only when sent to the catalog API.
    """

    price: str = Field("0.00", description="Price as text")
    compare_at_price: Optional[str] = Field(None, description="Compare-at price as text")
    sku: str = Field("", description="Stock keeping unit")
    barcode: Optional[str] = Field(None, description="Barcode / GTIN")
    inventory_quantity: int = Field(0, ge=0, description="Units on hand")
    image_url: Optional[str] = Field(None, description="Image URL for the variant")

    @field_validator("price", "sku", mode="before")
    @classmethod
    def required_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        return _as_text(v)

    @field_validator("compare_at_price", "barcode", "image_url", mode="before")
    @classmethod
    def optional_text(cls, v: Any) -> Any:
        v = _as_text(v)
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("inventory_quantity", mode="before")
    @classmethod
    def lenient_quantity(cls, v: Any) -> int:
        """Blank, garbage or infinite quantities become 0, negatives are clamped."""
        if v is None or isinstance(v, bool):
            return 0
        try:
            qty = int(float(str(v).strip()))
        except (TypeError, ValueError, OverflowError):
            return 0
        return max(qty, 0)


class Product(ProductValue):
    """
    Canonical product.

    Required: title and at least one variant.
    Markup metadata is filled in by the markup service.
    """

    title: str = Field(..., min_length=1, description="Product title")
    description_html: str = Field("", description="Body HTML")
    vendor: str = Field("", description="Vendor / brand")
    product_type: str = Field("", description="Product type")
    tags: tuple[str, ...] = Field(default_factory=tuple, description="Tags, order preserved")
    status: ProductStatus = Field(ProductStatus.DRAFT, description="ACTIVE or DRAFT")
    variants: tuple[Variant, ...] = Field(..., min_length=1, description="Variants, first is primary")

    markup_applied: bool = False
    markup_type: Optional[str] = None
    markup_value: Optional[str] = None

    @field_validator("title", "description_html", "vendor", "product_type", mode="before")
    @classmethod
    def text_fields(cls, v: Any) -> Any:
        if v is None:
            return ""
        return _as_text(v)

    @field_validator("tags", mode="before")
    @classmethod
    def tags_as_strings(cls, v: Any) -> Any:
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        return tuple(str(tag) for tag in v)

    @property
    def primary_variant(self) -> Variant:
        """First variant (drives price/SKU lookups and the imported snapshot)."""
        return self.variants[0]
