"""
Text utilities for comparing product attribute values.

Used by selector-token matching and markup conditions, which both compare
values trimmed and case-insensitively.
"""

from typing import Any, Optional


def as_text(value: Any) -> str:
    """
    Render a raw cell/field value as text.

    - None → ""
    - numbers → their str() form
    - strings unchanged

    Args:
        value: Value from a CSV row, API item or product field

    Returns:
        Text form of the value (never None)
    """
    if value is None:
        return ""
    return str(value)


def normalize_match_text(value: Any) -> str:
    """
    Normalize a value for case-insensitive comparison.

    - "  Summer Sale " → "summer sale"
    - None → ""

    Args:
        value: Any value

    Returns:
        Trimmed, lowercase text
    """
    return as_text(value).strip().lower()


def split_tags(raw: Optional[str], separator: str = ",") -> list[str]:
    """
    Split a delimited tag string into trimmed tags.

    - "red, blue ,green" → ["red", "blue", "green"]
    - "" → []

    Empty fragments are dropped.
    """
    if not raw:
        return []
    return [tag.strip() for tag in str(raw).split(separator) if tag.strip()]
