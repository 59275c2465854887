"""
Money helpers.

The catalog API wants prices as fixed-point strings with exactly two
decimals. Source data is messy ("$1,299.00", "", None, "abc"), so parsing
strips everything except digits, dot and minus first.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

TWO_PLACES = Decimal("0.01")

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"-?(\d+(\.\d*)?|\.\d+)")


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse a price-like value into a Decimal.

    Args:
        value: str, int, float, Decimal or None

    Returns:
        Decimal, or None when nothing numeric can be read
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None

    cleaned = _NON_NUMERIC.sub("", str(value).strip())
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return None
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return None


def round_money(amount: Decimal) -> Decimal:
    """Round half-up to cents."""
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_money_string(value: Any, default: Optional[str] = "0.00") -> Optional[str]:
    """
    Format a price-like value as a two-decimal string.

    - "19.9" → "19.90"
    - "$1,299" → "1299.00"
    - "abc" / "" / None → default ("0.00" unless overridden)

    Args:
        value: Raw price
        default: Returned when the value cannot be parsed

    Returns:
        Fixed-point string or default
    """
    amount = parse_amount(value)
    if amount is None:
        return default
    return f"{round_money(amount):.2f}"
