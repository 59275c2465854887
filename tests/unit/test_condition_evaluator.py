"""
Unit tests for markup condition evaluation.

Run: pytest tests/unit/test_condition_evaluator.py -v
"""

import pytest

from models.markup import MarkupCondition
from services.condition_evaluator import check_condition, evaluate
from tests.factories import ProductFactory


class TestEvaluateScalar:
    """Tests for scalar comparisons."""

    def test_eq_is_case_insensitive_and_trimmed(self):
        """Should match ' Linen Shirt ' with 'linen shirt'."""
        assert evaluate(" Linen Shirt ", "eq", "linen shirt") is True

    def test_neq(self):
        """Should be True when values differ."""
        assert evaluate("A", "neq", "B") is True
        assert evaluate("A", "neq", "a") is False

    def test_starts_and_ends(self):
        """Should compare prefixes and suffixes."""
        assert evaluate("Summer Dress", "starts", "summer") is True
        assert evaluate("Summer Dress", "ends", "DRESS") is True
        assert evaluate("Summer Dress", "ends", "summer") is False

    def test_contains_and_ncontains(self):
        """Should test substring presence."""
        assert evaluate("Cotton Shirt", "contains", "ton s") is True
        assert evaluate("Cotton Shirt", "ncontains", "linen") is True
        assert evaluate("Cotton Shirt", "ncontains", "cotton") is False

    def test_operator_aliases(self):
        """Should accept equals/not_contains style aliases."""
        assert evaluate("A", "equals", "a") is True
        assert evaluate("Cotton", "not_contains", "wool") is True
        assert evaluate("Cotton", "starts_with", "cot") is True

    def test_numbers_compared_as_text(self):
        """Should compare numbers by their text form."""
        assert evaluate(10, "eq", "10") is True

    def test_none_value_is_false(self):
        """Should never match a missing value, even with neq."""
        assert evaluate(None, "eq", "") is False
        assert evaluate(None, "neq", "x") is False

    def test_unknown_operator_is_false(self):
        """Should return False instead of raising."""
        assert evaluate("A", "regex", "A") is False
        assert evaluate("A", None, "A") is False


class TestEvaluateBetween:
    """Tests for the between operator."""

    @pytest.mark.parametrize("value,expected", [
        ("75", True),
        ("50", True),
        ("100", True),
        ("49.99", False),
        ("100.01", False),
    ])
    def test_inclusive_range(self, value, expected):
        """Should include both bounds."""
        assert evaluate(value, "between", "50-100") is expected

    def test_zero_max_means_unbounded(self):
        """Should treat a max of 0 as no upper bound."""
        assert evaluate("9999", "between", "50-0") is True
        assert evaluate("10", "between", "50-0") is False

    def test_blank_bounds_read_as_zero(self):
        """Should read '-100' as 0..100."""
        assert evaluate("0", "between", "-100") is True

    def test_leading_number_is_parsed(self):
        """Should read '75.5 USD' as 75.5."""
        assert evaluate("75.5 USD", "between", "50-100") is True

    def test_non_numeric_value_is_false(self):
        """Should not match text without a leading number."""
        assert evaluate("abc", "between", "0-100") is False

    def test_malformed_range_is_false(self):
        """Should not match without a '-' separator or with bad bounds."""
        assert evaluate("75", "between", "75") is False
        assert evaluate("75", "between", "a-b") is False


class TestEvaluateList:
    """Tests for element-wise list comparisons (tags)."""

    def test_eq_matches_any_element(self):
        """Should match when some tag equals the value."""
        assert evaluate(["Summer", "Sale"], "eq", "sale") is True

    def test_neq_requires_no_element_equal(self):
        """Should be False when some tag equals the value."""
        assert evaluate(["Summer", "Sale"], "neq", "sale") is False
        assert evaluate(["Summer"], "neq", "sale") is True

    def test_ncontains_requires_no_element_containing(self):
        """Should be False when any tag contains the value."""
        assert evaluate(["summer-sale"], "ncontains", "sale") is False
        assert evaluate(["winter"], "ncontains", "sale") is True

    def test_contains_starts_ends(self):
        """Should apply the scalar test to each element."""
        assert evaluate(["winter", "summer-sale"], "contains", "sale") is True
        assert evaluate(["winter"], "starts", "win") is True
        assert evaluate(["winter"], "ends", "ter") is True

    def test_between_on_list_is_false(self):
        """Should not apply between to a list."""
        assert evaluate(["50"], "between", "0-100") is False

    def test_empty_list(self):
        """Should give vacuous results for an empty tag list."""
        assert evaluate([], "eq", "x") is False
        assert evaluate([], "neq", "x") is True


class TestCheckCondition:
    """Tests for check_condition()"""

    def test_resolves_field_then_evaluates(self):
        """Should resolve the condition field on the product."""
        product = ProductFactory.create(title="A")
        condition = MarkupCondition(field="title", operator="eq", value="a")

        assert check_condition(product, condition) is True

    def test_unknown_field_never_matches(self):
        """Should not match when the field cannot be resolved."""
        product = ProductFactory.create()
        condition = MarkupCondition(field="color", operator="neq", value="red")

        assert check_condition(product, condition) is False
