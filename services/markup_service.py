"""
Markup application.

Applies conditional price markups to canonical products:
- conditions are grouped with ALL (every) or ANY (some) semantics
- when the group matches, the first condition (in declaration order) that
  itself matches and carries a valid markup is applied, and only that one
- percentage: price * (1 + value / 100); fixed: price + value
- results are rounded half-up to cents

Products are never mutated; apply_markup() returns a new product.
"""

from decimal import Decimal
from typing import Optional

import structlog

from models.markup import MarkupCondition, MarkupConfig, MarkupType
from models.product import Product
from services.condition_evaluator import check_condition
from utils.money import parse_amount, round_money

logger = structlog.get_logger(__name__)

FIELD_LABELS = {
    "sku": "SKU",
    "tags": "Tags",
    "type": "Type",
    "vendor": "Vendor",
    "price": "Price",
    "title": "Title",
}

OPERATOR_LABELS = {
    "eq": "is equal to",
    "neq": "is not equal to",
    "starts": "starts with",
    "ends": "ends with",
    "contains": "contains",
    "ncontains": "does not contain",
    "between": "between",
}


def _decimal_text(value: Decimal) -> str:
    """10 -> "10", 10.50 -> "10.5" (no exponent notation)."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def calculate_marked_up_price(
    current: Decimal,
    markup_type: MarkupType,
    markup_value: Decimal
) -> Decimal:
    """
    Compute the new price for one markup.

    Args:
        current: Current price
        markup_type: PERCENTAGE or FIXED
        markup_value: Percent (10 = 10%) or fixed amount

    Returns:
        New price rounded to cents
    """
    if markup_type == MarkupType.PERCENTAGE:
        new_price = current * (Decimal("1") + markup_value / Decimal("100"))
    else:
        new_price = current + markup_value
    return round_money(new_price)


def conditions_match(product: Product, config: MarkupConfig) -> bool:
    """Group test: every condition for 'all', any condition otherwise."""
    checks = (check_condition(product, condition) for condition in config.conditions)
    if config.require_all:
        return all(checks)
    return any(checks)


def _markup_from(condition: MarkupCondition, current: Decimal) -> Optional[Decimal]:
    """New price for a condition's markup, None if the markup is unusable."""
    markup_type = condition.canonical_markup_type
    if markup_type is None or condition.markup_value <= 0:
        return None
    new_price = calculate_marked_up_price(current, markup_type, condition.markup_value)
    if new_price == current:
        return None
    return new_price


def apply_markup(product: Product, config: Optional[MarkupConfig], log=None) -> Product:
    """
    Apply the first matching markup rule to a product.

    Args:
        product: Canonical product
        config: Markup configuration (None or no conditions = no-op)
        log: Bound structlog logger carrying run context

    Returns:
        The same product when nothing applies, otherwise a new product
        with the first variant repriced and markup metadata set
    """
    log = log or logger

    if config is None or not config.conditions:
        return product

    if not conditions_match(product, config):
        log.debug("markup_conditions_not_matched", product=product.title)
        return product

    variant = product.primary_variant
    current = parse_amount(variant.price) or Decimal("0")

    for index, condition in enumerate(config.conditions):
        if not check_condition(product, condition):
            continue

        new_price = _markup_from(condition, current)
        if new_price is None:
            continue

        markup_type = condition.canonical_markup_type
        repriced = variant.model_copy(update={"price": f"{new_price:.2f}"})

        log.info(
            "markup_applied",
            product=product.title,
            condition_index=index,
            markup_type=markup_type.value,
            markup_value=_decimal_text(condition.markup_value),
            old_price=variant.price,
            new_price=repriced.price
        )

        return product.model_copy(update={
            "variants": (repriced, *product.variants[1:]),
            "markup_applied": True,
            "markup_type": markup_type.value,
            "markup_value": _decimal_text(condition.markup_value),
        })

    log.info("markup_matched_without_valid_rule", product=product.title)
    return product


def describe_markup(config: Optional[MarkupConfig]) -> list[str]:
    """
    Human-readable summaries of markup rules.

    Example: 'Title is equal to "A" → 10% markup'
    """
    if config is None:
        return []

    summaries = []
    for condition in config.conditions:
        field = FIELD_LABELS.get(condition.field, condition.field)
        operator = condition.canonical_operator
        op_label = OPERATOR_LABELS.get(operator.value, operator.value) if operator else condition.operator
        amount = _decimal_text(condition.markup_value)
        if condition.canonical_markup_type == MarkupType.FIXED:
            markup = f"${amount} fixed markup"
        else:
            markup = f"{amount}% markup"
        summaries.append(f'{field} {op_label} "{condition.value}" → {markup}')
    return summaries
