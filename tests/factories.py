"""
Test data factories.

Uses factory pattern to generate consistent test data.
"""

from typing import Optional
from uuid import uuid4

from models.product import Product, ProductStatus, Variant


class CsvRowFactory:
    """
    Factory for parsed CSV rows (Shopify export headers).

    Usage:
        row = CsvRowFactory.create()
        row = CsvRowFactory.create(title="Linen Shirt", price="19.99")
        rows = CsvRowFactory.create_batch(5, vendor="Acme")
    """

    _counter = 0

    HEADERS = [
        "Title", "Description", "Vendor", "Type", "Tags",
        "Variant Price", "Variant Compare At Price", "SKU",
        "Variant Barcode", "Variant Inventory Quantity", "Image URL",
    ]

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        title: Optional[str] = None,
        vendor: str = "Acme",
        product_type: str = "Shirts",
        tags: str = "cotton, summer",
        price: str = "10.00",
        compare_at_price: str = "",
        sku: Optional[str] = None,
        barcode: str = "",
        inventory_quantity: str = "5",
        image_url: str = ""
    ) -> dict:
        """
        Create a single CSV row dict keyed by header.

        Returns:
            Row as produced by the wizard's CSV parser (all values text)
        """
        counter = cls._next_counter()
        return {
            "Title": title if title is not None else f"Test Product {counter}",
            "Description": "<p>Test product</p>",
            "Vendor": vendor,
            "Type": product_type,
            "Tags": tags,
            "Variant Price": price,
            "Variant Compare At Price": compare_at_price,
            "SKU": sku if sku is not None else f"TEST-{counter}",
            "Variant Barcode": barcode,
            "Variant Inventory Quantity": inventory_quantity,
            "Image URL": image_url,
        }

    @classmethod
    def create_batch(cls, count: int, **overrides) -> list:
        """Create multiple rows."""
        return [cls.create(**overrides) for _ in range(count)]

    @classmethod
    def csv_data(cls, rows: list) -> dict:
        """Wrap rows in the {headers, rows} payload shape."""
        return {"headers": list(cls.HEADERS), "rows": rows}

    @classmethod
    def reset_counter(cls):
        """Reset the counter (call in test setup if needed)."""
        cls._counter = 0


class ProductFactory:
    """
    Factory for canonical Product values.

    Usage:
        product = ProductFactory.create(title="A", price="10.00")
    """

    @classmethod
    def create(
        cls,
        title: str = "Test Product",
        price: str = "10.00",
        sku: str = "TEST-1",
        vendor: str = "Acme",
        product_type: str = "Shirts",
        tags: tuple = ("cotton",),
        barcode: Optional[str] = None,
        image_url: Optional[str] = None,
        status: ProductStatus = ProductStatus.DRAFT
    ) -> Product:
        """Create a single-variant product."""
        return Product(
            title=title,
            vendor=vendor,
            product_type=product_type,
            tags=tags,
            status=status,
            variants=(Variant(price=price, sku=sku, barcode=barcode, image_url=image_url),),
        )


class ImportedProductFactory:
    """Factory for imported_products rows."""

    @classmethod
    def create(
        cls,
        shop: str = "test-shop.myshopify.com",
        title: str = "Test Product",
        sku: str = "TEST-1",
        catalog_product_id: Optional[str] = None,
        import_session_id: Optional[str] = None
    ) -> dict:
        """Create a single imported product row."""
        return {
            "shop": shop,
            "import_session_id": import_session_id or str(uuid4()),
            "catalog_product_id": catalog_product_id or f"gid://shopify/Product/{uuid4().int % 100000}",
            "title": title,
            "sku": sku,
            "price": "10.00",
            "status": "DRAFT",
            "tags": "[]",
            "variants": "[]",
        }


def bulk_payload(
    rows: Optional[list] = None,
    markup_config: Optional[dict] = None,
    selected_values: Optional[list] = None,
    import_config: str = "draft",
    **overrides
) -> dict:
    """
    Bulk import request body as the wizard sends it (camelCase).

    Usage:
        payload = bulk_payload(rows=[{"Title": "A", "Variant Price": "10"}])
    """
    rows = rows if rows is not None else CsvRowFactory.create_batch(2)
    payload = {
        "dataSource": "csv",
        "csvData": CsvRowFactory.csv_data(rows),
        "keyMappings": {},
        "importFilters": {"selectedValues": selected_values or []},
        "markupConfig": markup_config or {"conditions": [], "conditionsType": "any"},
        "importConfig": import_config,
        "importType": "all",
        "totalProducts": len(rows),
    }
    payload.update(overrides)
    return payload
