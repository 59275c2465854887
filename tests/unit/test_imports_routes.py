"""
API tests for the import routes.

Run: pytest tests/unit/test_imports_routes.py -v
"""

from unittest.mock import patch

from tests.factories import bulk_payload

SHOP_HEADER = {"X-Shop-Domain": "test-shop.myshopify.com"}


class TestBulkImportRoute:
    """Tests for POST /api/imports/bulk"""

    def test_bulk_import_returns_summary(self, test_client_with_mock_db):
        """Should run the import and return camelCase counters."""
        payload = bulk_payload(rows=[{"Title": "A", "SKU": "A-1"}, {"Title": "B", "SKU": "B-1"}])

        response = test_client_with_mock_db.post("/api/imports/bulk", json=payload, headers=SHOP_HEADER)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["sessionId"]
        assert body["imported"] == 2
        assert body["failed"] == 0
        assert body["totalProducts"] == 2
        assert body["results"][0]["action"] == "created"
        assert body["results"][0]["product"]["title"] == "A"

    def test_missing_shop_is_401(self, test_client_with_mock_db, mock_supabase):
        """Should reject requests without a shop."""
        with patch("routes.imports.settings") as mock_settings:
            mock_settings.shopify_shop_domain = None

            response = test_client_with_mock_db.post("/api/imports/bulk", json=bulk_payload())

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "SHOP_NOT_IDENTIFIED"
        assert mock_supabase.rows("import_sessions") == []

    def test_shop_falls_back_to_settings(self, test_client_with_mock_db):
        """Should use the configured shop when the header is absent."""
        with patch("routes.imports.settings") as mock_settings:
            mock_settings.shopify_shop_domain = "configured.myshopify.com"

            response = test_client_with_mock_db.post("/api/imports/bulk", json=bulk_payload())

        assert response.status_code == 200

    def test_malformed_payload_is_422(self, test_client_with_mock_db):
        """Should reject payloads that fail validation."""
        response = test_client_with_mock_db.post(
            "/api/imports/bulk",
            json={"dataSource": "xml"},
            headers=SHOP_HEADER
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "IMPORT_PAYLOAD_INVALID"
        assert error["details"]["errors"][0]["field"] == "dataSource"

    def test_non_object_payload_is_422(self, test_client_with_mock_db):
        """Should reject a JSON array body."""
        response = test_client_with_mock_db.post("/api/imports/bulk", json=[1, 2], headers=SHOP_HEADER)

        assert response.status_code == 422


class TestProgressRoute:
    """Tests for GET /api/imports/{session_id}/progress"""

    def test_progress_after_completion(self, test_client_with_mock_db):
        """Should report the completed run."""
        created = test_client_with_mock_db.post(
            "/api/imports/bulk",
            json=bulk_payload(rows=[{"Title": "A"}]),
            headers=SHOP_HEADER
        ).json()

        response = test_client_with_mock_db.get(f"/api/imports/{created['sessionId']}/progress")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["currentProduct"] == "Import completed"
        assert body["imported"] == 1
        assert body["totalProducts"] == 1

    def test_unknown_session_is_404(self, test_client_with_mock_db):
        """Should return 404 for an unknown session."""
        response = test_client_with_mock_db.get("/api/imports/does-not-exist/progress")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "IMPORT_SESSION_NOT_FOUND"


class TestAttributesRoute:
    """Tests for POST /api/imports/attributes"""

    def test_csv_facets(self, test_client_with_mock_db):
        """Should list values per CSV header with counts."""
        payload = {
            "dataSource": "csv",
            "csvData": {
                "headers": ["Vendor"],
                "rows": [{"Vendor": "Acme"}, {"Vendor": "Acme"}, {"Vendor": "Globex"}],
            },
            "importFilters": {"selectedValues": ["Vendor::Acme"]},
        }

        response = test_client_with_mock_db.post("/api/imports/attributes", json=payload)

        assert response.status_code == 200
        body = response.json()
        assert body["totalRecords"] == 3
        assert body["matchingRecords"] == 2
        assert body["attributes"] == [{
            "key": "Vendor",
            "values": [{"value": "Acme", "count": 2}, {"value": "Globex", "count": 1}],
        }]

    def test_api_facets(self, test_client_with_mock_db):
        """Should fetch supplier items and report their keys."""
        payload = {
            "dataSource": "api",
            "apiCredentials": {"apiUrl": "https://supplier.example.com/p", "accessToken": "tok"},
        }
        with patch("routes.imports.fetch_api_items", return_value=[{"vendor": "Acme"}]):
            response = test_client_with_mock_db.post("/api/imports/attributes", json=payload)

        assert response.status_code == 200
        assert response.json()["attributes"][0]["key"] == "vendor"

    def test_missing_source_is_422(self, test_client_with_mock_db):
        """Should reject a request without a usable source."""
        response = test_client_with_mock_db.post("/api/imports/attributes", json={"dataSource": "csv"})

        assert response.status_code == 422


class TestAppRoutes:
    """Tests for root endpoints."""

    def test_root(self, test_client):
        """Should describe the API."""
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json()["endpoints"]["bulk_import"] == "/api/imports/bulk"

    def test_health_degraded_without_database(self, test_client):
        """Should report degraded when the database check fails."""
        with patch("main.check_connection", return_value={"status": "unhealthy", "error": "down"}):
            response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
