"""
Field resolution for markup conditions.

Turns a field name chosen in the markup step ("price", "Tags",
"variants.0.sku", "vendor") into the value to compare on a canonical
product. Well-known fields go through an explicit dispatch table with
their fallback locations; everything else is a plain attribute lookup.

Resolution never raises: a missing value is None, and callers treat None
as "condition does not match".
"""

from collections.abc import Mapping
from typing import Any, Callable, Optional, Union

from pydantic.alias_generators import to_snake

from models.product import Product

ProductLike = Union[Product, Mapping]

_MISSING = object()


def _as_mapping(product: ProductLike) -> Mapping:
    if isinstance(product, Product):
        return product.model_dump()
    if isinstance(product, Mapping):
        return product
    return {}


def _lookup(data: Any, key: str) -> Any:
    """Read key from a mapping or sequence, _MISSING when absent."""
    if isinstance(data, Mapping):
        if key in data:
            return data[key]
        snake = to_snake(key)
        if snake in data:
            return data[snake]
        return _MISSING
    if isinstance(data, (list, tuple)):
        try:
            return data[int(key)]
        except (ValueError, IndexError):
            return _MISSING
    return _MISSING


def _first_variant(data: Mapping) -> Mapping:
    variants = data.get("variants") or ()
    if variants and isinstance(variants[0], Mapping):
        return variants[0]
    return {}


def _present(value: Any) -> bool:
    return value not in (None, "", _MISSING)


# ===================
# FIELD RESOLVERS
# ===================

def _resolve_price(data: Mapping) -> Any:
    price = _first_variant(data).get("price")
    if _present(price):
        return price
    price = data.get("price")
    return price if _present(price) else None


def _resolve_sku(data: Mapping) -> Any:
    sku = _first_variant(data).get("sku")
    if _present(sku):
        return sku
    sku = data.get("sku")
    return sku if _present(sku) else None


def _resolve_tags(data: Mapping) -> Any:
    tags = data.get("tags")
    if isinstance(tags, (list, tuple)):
        return list(tags)
    return tags


def _resolve_title(data: Mapping) -> Any:
    return data.get("title")


def _resolve_vendor(data: Mapping) -> Any:
    return data.get("vendor")


def _resolve_product_type(data: Mapping) -> Any:
    if "product_type" in data:
        return data.get("product_type")
    return data.get("productType")


FIELD_RESOLVERS: dict[str, Callable[[Mapping], Any]] = {
    "price": _resolve_price,
    "Variant Price": _resolve_price,
    "title": _resolve_title,
    "Title": _resolve_title,
    "sku": _resolve_sku,
    "SKU": _resolve_sku,
    "tags": _resolve_tags,
    "Tags": _resolve_tags,
    "tag": _resolve_tags,
    "vendor": _resolve_vendor,
    "Vendor": _resolve_vendor,
    "type": _resolve_product_type,
    "Type": _resolve_product_type,
}


def resolve_path(product: ProductLike, path: str) -> Optional[Any]:
    """
    Walk a dotted path such as "variants.0.price".

    Returns None as soon as a segment is missing.
    """
    current: Any = _as_mapping(product)
    for segment in path.split("."):
        current = _lookup(current, segment)
        if current is _MISSING or current is None:
            return None
    return current


def resolve_field(product: ProductLike, field_name: Optional[str]) -> Optional[Any]:
    """
    Resolve the comparable value of a field on a product.

    Args:
        product: Canonical product (or a plain dict with the same shape)
        field_name: Field as configured in a markup condition

    Returns:
        The value (a list for tags), or None when nothing was found
    """
    if not field_name:
        return None

    if "." in field_name:
        return resolve_path(product, field_name)

    data = _as_mapping(product)

    resolver = FIELD_RESOLVERS.get(field_name)
    if resolver is not None:
        return resolver(data)

    value = _lookup(data, field_name)
    return None if value is _MISSING else value
