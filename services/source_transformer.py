"""
Source transformation: CSV rows and supplier API items → canonical products.

Both sources go through the same steps:
1. select the records to import (selector tokens)
2. copy key-mapped fields (source key → canonical key)
3. build a canonical product with header aliases and fallbacks
4. append filter values to tags and cap the tag list

Missing titles and SKUs are synthesized from the record's position in the
source ("Product 3", "SKU-3"), so transforming the same input twice gives
the same products.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional, Sequence, Union

import requests
import structlog
from pydantic import ValidationError as PydanticValidationError

from config import settings
from models.import_session import ApiCredentials, CsvData, ImportFilters
from models.product import Product, ProductStatus, Variant
from services.selection_filter import (
    apply_filter_tags,
    parse_selector_tokens,
    record_matches,
    select_row_indices,
)
from utils.text_utils import as_text, split_tags

logger = structlog.get_logger(__name__)

USER_AGENT = "Shopify-Product-Import/1.0"

DEFAULT_PRICE = "10.00"
DEFAULT_VENDOR = "Default Vendor"
DEFAULT_TYPE = "Default Type"

# Canonical field -> keys checked in order (key-mapped values first, then
# the source's own column/property names)
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "title": ("title", "Title", "name"),
    "description_html": ("descriptionHtml", "bodyHtml", "Description", "description"),
    "vendor": ("vendor", "Vendor"),
    "product_type": ("productType", "Type", "type"),
    "tags": ("tags", "Tags"),
    "price": ("price", "Variant Price"),
    "compare_at_price": ("compareAtPrice", "Variant Compare At Price"),
    "sku": ("sku", "SKU", "supplier_sku_code"),
    "barcode": ("barcode", "Variant Barcode"),
    "inventory_quantity": ("inventoryQuantity", "Variant Inventory Quantity"),
    "image_url": ("image_url", "imageUrl", "Image URL", "image", "mediaSrc"),
}

# Keys read from nested objects ({"src": ...}, {"name": ...}) when an API
# sends an object where a plain value is expected
NESTED_VALUE_KEYS: tuple[str, ...] = ("value", "name", "title", "label", "amount")
NESTED_IMAGE_KEYS: tuple[str, ...] = ("src", "url", "originalSrc", "href")


# ===================
# HELPERS
# ===================

def _present(value: Any) -> bool:
    return value is not None and as_text(value) != ""


def apply_key_mappings(record: Mapping, key_mappings: Optional[Mapping[str, str]]) -> dict:
    """
    Copy mapped fields: {"product_name": "title"} copies record["product_name"]
    to "title". Source keys missing from the record are skipped.
    """
    mapped = {}
    for source_key, target_key in (key_mappings or {}).items():
        if source_key in record:
            mapped[target_key] = record[source_key]
    return mapped


def scalar_value(value: Any, nested_keys: Sequence[str] = NESTED_VALUE_KEYS) -> Optional[str]:
    """
    Reduce a raw field value to text.

    - "Acme" / 12.5 / True → "Acme" / "12.5" / "True"
    - {"src": "http://x/a.jpg"} → the first present nested key
    - ["a", "b"] → the first element that reduces to text
    - anything else → None
    """
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, Mapping):
        for key in nested_keys:
            found = scalar_value(value.get(key), nested_keys)
            if _present(found):
                return found
        return None
    if isinstance(value, (list, tuple)):
        for element in value:
            found = scalar_value(element, nested_keys)
            if _present(found):
                return found
    return None


def _pick(field: str, mapped: Mapping, record: Mapping) -> Optional[str]:
    """First present value for a canonical field: mapped values, then raw."""
    nested_keys = NESTED_IMAGE_KEYS if field == "image_url" else NESTED_VALUE_KEYS
    for source in (mapped, record):
        for key in FIELD_ALIASES[field]:
            value = scalar_value(source.get(key), nested_keys)
            if _present(value):
                return value
    return None


def _tags_from(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        tags = (scalar_value(tag) for tag in raw)
        return [tag.strip() for tag in tags if _present(tag)]
    return split_tags(scalar_value(raw))


def _raw_tags(mapped: Mapping, record: Mapping) -> Any:
    """Tags keep their list shape, so they skip scalar_value()."""
    for source in (mapped, record):
        for key in FIELD_ALIASES["tags"]:
            value = source.get(key)
            if isinstance(value, (list, tuple)) and value:
                return value
            if _present(scalar_value(value)):
                return value
    return None


def _tokens_of(import_filters: Union[ImportFilters, Mapping, None]) -> list[str]:
    if import_filters is None:
        return []
    if isinstance(import_filters, ImportFilters):
        return list(import_filters.selected_values)
    values = import_filters.get("selectedValues") or import_filters.get("selected_values") or []
    return [token for token in values if isinstance(token, str)]


def build_product(
    record: Mapping,
    index: int,
    key_mappings: Optional[Mapping[str, str]] = None,
    tokens: Optional[Sequence[str]] = None,
    max_tags: Optional[int] = None
) -> Product:
    """
    Build a canonical product from one source record.

    Args:
        record: CSV row or API item
        index: Position of the record in its source (0-based)
        key_mappings: Source key → canonical key mappings
        tokens: Selector tokens whose values become extra tags
        max_tags: Tag cap (defaults to settings.max_product_tags)

    Returns:
        DRAFT product with a single variant
    """
    record = record if isinstance(record, Mapping) else {}
    mapped = apply_key_mappings(record, key_mappings)
    number = index + 1

    title = _pick("title", mapped, record)
    sku = _pick("sku", mapped, record)
    price = _pick("price", mapped, record)
    vendor = _pick("vendor", mapped, record)
    product_type = _pick("product_type", mapped, record)

    tags = apply_filter_tags(
        _tags_from(_raw_tags(mapped, record)),
        tokens,
        limit=max_tags or settings.max_product_tags
    )

    variant = Variant(
        price=as_text(price) if price is not None else DEFAULT_PRICE,
        compare_at_price=_pick("compare_at_price", mapped, record),
        sku=as_text(sku) if sku is not None else f"SKU-{number}",
        barcode=_pick("barcode", mapped, record),
        inventory_quantity=_pick("inventory_quantity", mapped, record),
        image_url=_pick("image_url", mapped, record),
    )

    title = as_text(title).strip() or f"Product {number}"

    return Product(
        title=title,
        description_html=_pick("description_html", mapped, record) or "",
        vendor=vendor if vendor is not None else DEFAULT_VENDOR,
        product_type=product_type if product_type is not None else DEFAULT_TYPE,
        tags=tags,
        status=ProductStatus.DRAFT,
        variants=(variant,),
    )


def _build_products(
    records: Sequence[Any],
    indices: Sequence[int],
    key_mappings: Optional[Mapping[str, str]],
    tokens: Sequence[str],
    source: str
) -> list[Product]:
    """Build products for the given record indices, skipping records that cannot be built."""
    products = []
    for index in indices:
        try:
            products.append(build_product(records[index], index, key_mappings, tokens))
        except (PydanticValidationError, ValueError, TypeError, OverflowError) as e:
            logger.warning(
                "source_record_skipped",
                source=source,
                index=index,
                error=str(e),
                error_type=type(e).__name__
            )
    return products


# ===================
# CSV
# ===================

def from_csv(
    csv_data: Union[CsvData, Mapping, None],
    import_filters: Union[ImportFilters, Mapping, None] = None,
    key_mappings: Optional[Mapping[str, str]] = None
) -> list[Product]:
    """
    Transform parsed CSV data into canonical products.

    Args:
        csv_data: {"headers": [...], "rows": [{header: value}, ...]}
        import_filters: Selected "key::value" tokens
        key_mappings: Optional source column → canonical key mappings

    Returns:
        Products for the selected rows, in CSV order
    """
    if isinstance(csv_data, CsvData):
        rows = csv_data.rows
    elif isinstance(csv_data, Mapping):
        rows = csv_data.get("rows")
    else:
        rows = None

    if not isinstance(rows, list):
        logger.warning("csv_rows_missing")
        return []

    tokens = _tokens_of(import_filters)
    indices = select_row_indices(rows, tokens)

    products = _build_products(rows, indices, key_mappings, tokens, "csv")

    logger.info(
        "csv_products_transformed",
        total_rows=len(rows),
        products=len(products),
        filtered=bool(tokens)
    )
    return products


# ===================
# SUPPLIER API
# ===================

def _credentials_of(credentials: Union[ApiCredentials, Mapping]) -> ApiCredentials:
    if isinstance(credentials, ApiCredentials):
        return credentials
    return ApiCredentials.model_validate(credentials)


def extract_items(body: Any) -> list:
    """
    Locate the product list in an API response.

    The body itself when it is a list, otherwise the first property whose
    value is a non-empty list ({"data": [...]}, {"products": [...]}).
    """
    if isinstance(body, list):
        return body
    if isinstance(body, Mapping):
        for value in body.values():
            if isinstance(value, list) and value:
                return value
    return []


def fetch_api_items(
    credentials: Union[ApiCredentials, Mapping],
    timeout: Optional[float] = None
) -> list:
    """
    GET the supplier endpoint and return its item list.

    Network errors, non-2xx responses and non-JSON bodies are logged and
    give an empty list.

    Args:
        credentials: API URL and bearer token
        timeout: Seconds (defaults to settings.source_api_timeout_seconds)

    Returns:
        Raw items
    """
    creds = _credentials_of(credentials)
    token = creds.access_token.strip()
    if token.lower().startswith("bearer "):
        token = token[len("bearer "):].strip()

    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": "application/json",
        "User-Agent": USER_AGENT,
    }

    try:
        logger.info("fetching_supplier_api", url=creds.api_url)
        response = requests.get(
            creds.api_url,
            headers=headers,
            timeout=timeout or settings.source_api_timeout_seconds
        )
    except requests.RequestException as e:
        logger.error(
            "supplier_api_request_failed",
            url=creds.api_url,
            error=str(e),
            error_type=type(e).__name__
        )
        return []

    if not response.ok:
        logger.error(
            "supplier_api_bad_status",
            url=creds.api_url,
            status_code=response.status_code,
            reason=response.reason
        )
        return []

    try:
        body = response.json()
    except ValueError as e:
        logger.error("supplier_api_invalid_json", url=creds.api_url, error=str(e))
        return []

    items = extract_items(body)
    logger.info("supplier_api_items_fetched", url=creds.api_url, count=len(items))
    return items


def from_api_items(
    items: Sequence[Any],
    import_filters: Union[ImportFilters, Mapping, None] = None,
    key_mappings: Optional[Mapping[str, str]] = None
) -> list[Product]:
    """
    Transform already-fetched API items into canonical products.

    Args:
        items: Raw items
        import_filters: Selected "key::value" tokens
        key_mappings: Item key → canonical key mappings

    Returns:
        Products for the selected items, in API order
    """
    tokens = _tokens_of(import_filters)
    pairs = parse_selector_tokens(tokens)

    indices = [
        index for index, item in enumerate(items)
        if not tokens or record_matches(item, pairs)
    ]
    products = _build_products(items, indices, key_mappings, tokens, "api")

    logger.info(
        "api_products_transformed",
        total_items=len(items),
        products=len(products),
        filtered=bool(tokens)
    )
    return products


def from_api(
    credentials: Union[ApiCredentials, Mapping],
    import_filters: Union[ImportFilters, Mapping, None] = None,
    key_mappings: Optional[Mapping[str, str]] = None
) -> list[Product]:
    """
    Fetch supplier products and transform them into canonical products.

    Returns an empty list when the fetch fails.
    """
    items = fetch_api_items(credentials)
    return from_api_items(items, import_filters, key_mappings)
