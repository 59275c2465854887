"""
Markup rule schemas.

A markup config is an ordered list of conditions plus a grouping mode.
Conditions are built once from the wizard payload and stay immutable for
the whole import run.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from models.base import CamelSchema


class ConditionOperator(str, Enum):
    """Canonical comparison operators."""
    EQ = "eq"
    NEQ = "neq"
    STARTS = "starts"
    ENDS = "ends"
    CONTAINS = "contains"
    NCONTAINS = "ncontains"
    BETWEEN = "between"


OPERATOR_ALIASES: dict[str, ConditionOperator] = {
    "equals": ConditionOperator.EQ,
    "not_equals": ConditionOperator.NEQ,
    "starts_with": ConditionOperator.STARTS,
    "ends_with": ConditionOperator.ENDS,
    "not_contains": ConditionOperator.NCONTAINS,
}


def normalize_operator(operator: Any) -> Optional[ConditionOperator]:
    """Map an operator or one of its aliases to the canonical enum, None if unknown."""
    if isinstance(operator, ConditionOperator):
        return operator
    if operator is None:
        return None
    key = str(operator).strip().lower()
    if key in OPERATOR_ALIASES:
        return OPERATOR_ALIASES[key]
    try:
        return ConditionOperator(key)
    except ValueError:
        return None


class MarkupType(str, Enum):
    """How a markup value changes the price."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def normalize_markup_type(markup_type: Any) -> Optional[MarkupType]:
    """percent/percentage -> PERCENTAGE, fixed -> FIXED, anything else None."""
    if markup_type is None:
        return None
    key = str(markup_type).strip().lower()
    if key in ("percent", "percentage"):
        return MarkupType.PERCENTAGE
    if key == "fixed":
        return MarkupType.FIXED
    return None


class MarkupCondition(CamelSchema):
    """
    One markup rule: field/operator/value test plus the markup it triggers.

    operator and markup_type are kept as given; unknown values simply
    never match / never apply instead of failing validation.
    """
    model_config = ConfigDict(frozen=True)

    field: str = Field("", description="Field name, e.g. title, tags, price, variants.0.sku")
    operator: str = Field("eq", description="eq, neq, starts, ends, contains, ncontains, between (or aliases)")
    value: str = Field("", description="Value to compare against; 'min-max' for between")
    markup_type: str = Field("percent", description="percent, percentage or fixed")
    markup_value: Decimal = Field(Decimal("0"), description="Percent or fixed amount")

    @model_validator(mode="before")
    @classmethod
    def legacy_attribute_key(cls, data: Any) -> Any:
        """Older wizard builds send 'attribute' instead of 'field'."""
        if isinstance(data, dict) and not data.get("field") and data.get("attribute"):
            data = {**data, "field": data["attribute"]}
        return data

    @field_validator("field", "operator", "value", "markup_type", mode="before")
    @classmethod
    def as_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("markup_value", mode="before")
    @classmethod
    def lenient_decimal(cls, v: Any) -> Decimal:
        """Unparseable markup values are treated as 0 (no markup)."""
        if v is None or isinstance(v, bool):
            return Decimal("0")
        try:
            parsed = Decimal(str(v).strip())
        except (InvalidOperation, ValueError):
            return Decimal("0")
        if not parsed.is_finite():
            return Decimal("0")
        return parsed

    @property
    def canonical_operator(self) -> Optional[ConditionOperator]:
        return normalize_operator(self.operator)

    @property
    def canonical_markup_type(self) -> Optional[MarkupType]:
        return normalize_markup_type(self.markup_type)


class MarkupConfig(CamelSchema):
    """Ordered markup conditions with ALL/ANY grouping."""
    model_config = ConfigDict(frozen=True)

    conditions: tuple[MarkupCondition, ...] = Field(default_factory=tuple)
    conditions_type: str = Field("any", description="'all' (AND) or anything else (OR)")

    @model_validator(mode="before")
    @classmethod
    def rules_key(cls, data: Any) -> Any:
        """The markup step's JSON preview names the list 'rules'."""
        if isinstance(data, dict) and "conditions" not in data and "rules" in data:
            data = {**data, "conditions": data["rules"]}
        return data

    @field_validator("conditions", mode="before")
    @classmethod
    def no_conditions(cls, v: Any) -> Any:
        return () if v is None else v

    @field_validator("conditions_type", mode="before")
    @classmethod
    def grouping_text(cls, v: Any) -> str:
        return "any" if v is None else str(v)

    @property
    def require_all(self) -> bool:
        return self.conditions_type.strip().lower() == "all"
