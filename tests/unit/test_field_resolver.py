"""
Unit tests for field resolution.

Run: pytest tests/unit/test_field_resolver.py -v
"""

import pytest

from services.field_resolver import resolve_field, resolve_path
from tests.factories import ProductFactory


class TestResolveFieldKnownFields:
    """Tests for the dispatch-table fields."""

    def test_price_comes_from_first_variant(self):
        """Should read price from the first variant."""
        product = ProductFactory.create(price="19.99")

        assert resolve_field(product, "price") == "19.99"

    def test_variant_price_alias(self):
        """Should treat 'Variant Price' like 'price'."""
        product = ProductFactory.create(price="7.50")

        assert resolve_field(product, "Variant Price") == "7.50"

    def test_price_falls_back_to_product_level(self):
        """Should use a top-level price when variants carry none."""
        data = {"title": "A", "price": "12.00", "variants": [{"price": ""}]}

        assert resolve_field(data, "price") == "12.00"

    def test_title_aliases(self):
        """Should resolve Title and title to the same value."""
        product = ProductFactory.create(title="Linen Shirt")

        assert resolve_field(product, "title") == "Linen Shirt"
        assert resolve_field(product, "Title") == "Linen Shirt"

    def test_sku_from_first_variant(self):
        """Should read SKU from the first variant."""
        product = ProductFactory.create(sku="ABC-1")

        assert resolve_field(product, "SKU") == "ABC-1"

    def test_tags_returned_as_list(self):
        """Should return tags as a list for element-wise comparison."""
        product = ProductFactory.create(tags=("summer", "sale"))

        assert resolve_field(product, "tags") == ["summer", "sale"]
        assert resolve_field(product, "tag") == ["summer", "sale"]

    def test_type_maps_to_product_type(self):
        """Should resolve 'type' to product_type."""
        product = ProductFactory.create(product_type="Shoes")

        assert resolve_field(product, "type") == "Shoes"
        assert resolve_field(product, "Type") == "Shoes"

    def test_vendor(self):
        """Should resolve vendor."""
        product = ProductFactory.create(vendor="Acme")

        assert resolve_field(product, "Vendor") == "Acme"


class TestResolveFieldGeneric:
    """Tests for generic lookups and misses."""

    def test_dotted_path(self):
        """Should walk variants.0.sku."""
        product = ProductFactory.create(sku="PATH-1")

        assert resolve_path(product, "variants.0.sku") == "PATH-1"
        assert resolve_field(product, "variants.0.sku") == "PATH-1"

    def test_out_of_range_index_returns_none(self):
        """Should return None for a missing list index."""
        product = ProductFactory.create()

        assert resolve_field(product, "variants.5.sku") is None

    def test_camel_case_name_falls_back_to_snake(self):
        """Should resolve descriptionHtml to description_html."""
        product = ProductFactory.create()

        assert resolve_field(product, "descriptionHtml") == ""

    @pytest.mark.parametrize("field_name", ["", None, "doesNotExist", "nope.deeper"])
    def test_unknown_field_returns_none(self, field_name):
        """Should never raise, returning None when nothing is found."""
        product = ProductFactory.create()

        assert resolve_field(product, field_name) is None
