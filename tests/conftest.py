"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are loaded at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SHOPIFY_ACCESS_TOKEN", "shpat_test")
os.environ.setdefault("IMPORT_ITEM_DELAY_SECONDS", "0")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
from unittest.mock import MagicMock, patch
from datetime import datetime, timedelta
from typing import Generator

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        if count is not None:
            self.count = count
        elif isinstance(self.data, list):
            self.count = len(self.data)
        else:
            self.count = 1


class MockSupabaseQuery:
    """
    Chainable query over an in-memory table.

    Honours insert/update/select with eq() filters, order() and limit(),
    so services see the rows they wrote earlier in the same test.
    """

    def __init__(self, client: "MockSupabaseClient", table_name: str):
        self._client = client
        self._table = table_name
        self._action = "select"
        self._payload = None
        self._filters: list[tuple[str, object]] = []
        self._order: tuple[str, bool] = None
        self._limit: int = None
        self._is_single = False

    @property
    def _rows(self) -> list:
        return self._client.rows(self._table)

    def select(self, *args, **kwargs):
        self._action = "select"
        return self

    def insert(self, data):
        self._action = "insert"
        self._payload = data
        return self

    def update(self, data):
        self._action = "update"
        self._payload = data
        return self

    def delete(self):
        self._action = "delete"
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def single(self):
        self._is_single = True
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self, row: dict) -> bool:
        return all(row.get(column) == value for column, value in self._filters)

    def execute(self) -> MockSupabaseResponse:
        if self._client.fail_on.get(self._table) in (self._action, "*"):
            raise Exception(f"{self._table} {self._action} failed")

        if self._action == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = [self._client.add_row(self._table, item) for item in items]
            return MockSupabaseResponse(data=[dict(row) for row in inserted])

        matched = [row for row in self._rows if self._matches(row)]

        if self._action == "update":
            for row in matched:
                row.update(self._payload)
                row["updated_at"] = self._client.next_timestamp()
            return MockSupabaseResponse(data=[dict(row) for row in matched])

        if self._action == "delete":
            for row in matched:
                self._rows.remove(row)
            return MockSupabaseResponse(data=[dict(row) for row in matched])

        if self._order:
            column, desc = self._order
            matched = sorted(matched, key=lambda row: row.get(column) or "", reverse=desc)
        if self._limit is not None:
            matched = matched[:self._limit]

        data = [dict(row) for row in matched]
        if self._is_single:
            return MockSupabaseResponse(data=data[0] if data else None, count=len(data))
        return MockSupabaseResponse(data=data)


class MockSupabaseClient:
    """In-memory Supabase client."""

    def __init__(self):
        self._tables: dict[str, list] = {}
        self._counter = 0
        self._clock = datetime(2025, 1, 1, 12, 0, 0)
        # table name -> action ("insert", "update", "select", "*") that raises
        self.fail_on: dict[str, str] = {}

    def next_timestamp(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat() + "Z"

    def rows(self, table_name: str) -> list:
        return self._tables.setdefault(table_name, [])

    def add_row(self, table_name: str, item: dict) -> dict:
        self._counter += 1
        row = dict(item)
        row.setdefault("id", f"test-uuid-{self._counter}")
        row.setdefault("created_at", self.next_timestamp())
        row.setdefault("updated_at", row["created_at"])
        self.rows(table_name).append(row)
        return row

    def set_table_data(self, table_name: str, data: list):
        """Seed a table."""
        self._tables[table_name] = []
        for item in data:
            self.add_row(table_name, item)

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self, name)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create an in-memory Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("imported_products", [
                {"shop": "s", "sku": "A", "catalog_product_id": "gid://..."}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with the in-memory mock.

    Usage:
        def test_something(mock_db):
            service = ImportSessionService()  # uses mock_db
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.import_session_service.get_supabase_client", return_value=mock_supabase):
            yield mock_supabase


@pytest.fixture
def mock_catalog() -> MagicMock:
    """
    Catalog client double that creates every product successfully.

    Created products get ids gid://shopify/Product/1, /2, ...
    """
    catalog = MagicMock()
    counter = {"n": 0}

    def create_product(product):
        counter["n"] += 1
        return {
            "id": f"gid://shopify/Product/{counter['n']}",
            "title": product.title,
            "status": product.status.value,
        }

    def update_product(product_id, product):
        return {"id": product_id, "title": product.title, "status": product.status.value}

    catalog.create_product.side_effect = create_product
    catalog.update_product.side_effect = update_product
    catalog.create_variants.return_value = [{"id": "gid://shopify/ProductVariant/1"}]
    catalog.create_media.return_value = 1
    catalog.publish_to_all_channels.return_value = 1
    return catalog


@pytest.fixture
def import_service(mock_db, mock_catalog):
    """ImportService wired to the in-memory database and catalog double."""
    from services.import_service import ImportService
    from services.import_session_service import ImportSessionService

    return ImportService(
        sessions=ImportSessionService(),
        catalog_factory=lambda shop: mock_catalog,
        item_delay=0
    )


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)


@pytest.fixture
def test_client_with_mock_db(import_service):
    """
    Create FastAPI test client whose import routes use the mocked service.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            response = test_client_with_mock_db.post("/api/imports/bulk", ...)
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("routes.imports.get_import_service", return_value=import_service):
        yield TestClient(app)
