"""
Condition evaluation for markup rules.

evaluate() compares one resolved field value against a condition value.
Comparisons are trimmed and case-insensitive. List values (tags) are
tested element by element. Nothing here raises: unknown operators and
missing values evaluate to False.
"""

import re
from typing import Any, Callable, Optional

import structlog

from models.markup import ConditionOperator, MarkupCondition, normalize_operator
from models.product import Product
from services.field_resolver import resolve_field
from utils.text_utils import normalize_match_text

logger = structlog.get_logger(__name__)

# Leading numeric prefix, so "75.5 USD" reads as 75.5
_LEADING_FLOAT = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


# ===================
# SCALAR COMPARISONS
# ===================

def _parse_bounds(condition_value: str) -> Optional[tuple[float, float]]:
    """
    Parse "min-max" into floats.

    Only the first two '-'-separated parts are used, so negative bounds
    are not representable. A blank max reads as 0 (no upper bound).
    """
    parts = condition_value.split("-")
    if len(parts) < 2:
        return None
    try:
        low = float(parts[0].strip()) if parts[0].strip() else 0.0
        high = float(parts[1].strip()) if parts[1].strip() else 0.0
    except ValueError:
        return None
    return low, high


def _between(value: str, condition_value: str) -> bool:
    """
    min <= value <= max, where max == 0 means unbounded.

    "50-100" with 75 → True; "50-0" with 9999 → True.
    """
    bounds = _parse_bounds(condition_value)
    if bounds is None:
        return False
    match = _LEADING_FLOAT.match(value)
    if not match:
        return False
    number = float(match.group(0))
    low, high = bounds
    return number >= low and (high == 0 or number <= high)


SCALAR_COMPARATORS: dict[ConditionOperator, Callable[[str, str], bool]] = {
    ConditionOperator.EQ: lambda v, c: v == c,
    ConditionOperator.NEQ: lambda v, c: v != c,
    ConditionOperator.STARTS: lambda v, c: v.startswith(c),
    ConditionOperator.ENDS: lambda v, c: v.endswith(c),
    ConditionOperator.CONTAINS: lambda v, c: c in v,
    ConditionOperator.NCONTAINS: lambda v, c: c not in v,
}


# ===================
# LIST COMPARISONS
# ===================

def _evaluate_list(values: list, operator: ConditionOperator, condition_value: str) -> bool:
    items = [normalize_match_text(item) for item in values]
    needle = normalize_match_text(condition_value)

    if operator == ConditionOperator.EQ:
        return any(item == needle for item in items)
    if operator == ConditionOperator.NEQ:
        return not any(item == needle for item in items)
    if operator == ConditionOperator.STARTS:
        return any(item.startswith(needle) for item in items)
    if operator == ConditionOperator.ENDS:
        return any(item.endswith(needle) for item in items)
    if operator == ConditionOperator.CONTAINS:
        return any(needle in item for item in items)
    if operator == ConditionOperator.NCONTAINS:
        return not any(needle in item for item in items)
    # between has no meaning for a list
    return False


def evaluate(resolved_value: Any, operator: Any, condition_value: Any) -> bool:
    """
    Evaluate one comparison.

    Args:
        resolved_value: Value from resolve_field (str, number, list or None)
        operator: Operator or alias ("eq", "not_contains", ...)
        condition_value: Configured value ("A", "50-100", ...)

    Returns:
        True if the comparison holds
    """
    if resolved_value is None:
        return False

    op = normalize_operator(operator)
    if op is None:
        return False

    if isinstance(resolved_value, (list, tuple)):
        return _evaluate_list(list(resolved_value), op, condition_value)

    value = normalize_match_text(resolved_value)
    expected = normalize_match_text(condition_value)

    if op == ConditionOperator.BETWEEN:
        return _between(value, expected)

    return SCALAR_COMPARATORS[op](value, expected)


def check_condition(product: Product, condition: MarkupCondition) -> bool:
    """
    Resolve the condition's field on the product and evaluate it.

    Args:
        product: Canonical product
        condition: Markup condition

    Returns:
        True if the product satisfies the condition
    """
    resolved = resolve_field(product, condition.field)
    matched = evaluate(resolved, condition.operator, condition.value)

    logger.debug(
        "condition_checked",
        product=product.title,
        field=condition.field,
        operator=condition.operator,
        value=condition.value,
        resolved=resolved,
        matched=matched
    )

    return matched
