"""
Unit Tests - HTTP API
"""
import pytest
from fastapi.testclient import TestClient

from profit_insights.config import get_settings
from profit_insights.config.settings import IngestionSettings, Settings
from profit_insights.errors import InvalidCredentialsError
from profit_insights.serving.api import create_api_app
from profit_insights.serving.api.routes.analysis import get_chat_client


@pytest.fixture
def app(test_settings):
    app = create_api_app(test_settings)
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_chat_client] = lambda: None
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


class TestHealth:
    """Tests for health endpoints"""

    def test_liveness(self, client):
        """Test liveness probe"""
        response = client.get("/api/v1/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    def test_health_reports_provider(self, client):
        """Test health lists the AI provider check"""
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert "ai_provider" in response.json()["checks"]

    def test_request_id_header(self, client):
        """Test every response carries a request id"""
        response = client.get("/api/v1/health/live", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestProfitAuditEndpoint:
    """Tests for POST /profit-audit"""

    def test_upload(self, client, sales_csv):
        """Test a CSV upload returns the camelCase audit"""
        response = client.post(
            "/api/v1/profit-audit",
            files={"file": ("orders.csv", sales_csv, "text/csv")},
            data={"currency": "sar"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["summary"]["totalOrders"] == 5
        assert body["losingProducts"][0]["productName"] == "Widget"
        assert body["mappingSource"] == "fallback"
        assert "orderAnalysis" in body

    def test_unsupported_format(self, client):
        """Test unsupported uploads return 400"""
        response = client.post(
            "/api/v1/profit-audit",
            files={"file": ("orders.json", b"{}", "application/json")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "UnsupportedFormatError"

    def test_file_too_large(self, app, client, sales_csv):
        """Test oversized uploads return 413"""
        small = Settings(ingestion=IngestionSettings(max_file_size_bytes=16))
        app.dependency_overrides[get_settings] = lambda: small

        response = client.post("/api/v1/profit-audit", files={"file": ("orders.csv", sales_csv, "text/csv")})

        assert response.status_code == 413
        assert response.json()["error"] == "FileTooLargeError"

    def test_invalid_credentials(self, app, client, sales_csv, chat_script):
        """Test rejected API keys return 401"""
        app.dependency_overrides[get_chat_client] = lambda: chat_script([InvalidCredentialsError("bad key")])

        response = client.post("/api/v1/profit-audit", files={"file": ("orders.csv", sales_csv, "text/csv")})

        assert response.status_code == 401

    def test_invalid_currency(self, client, sales_csv):
        """Test currency codes must be three letters"""
        response = client.post(
            "/api/v1/profit-audit",
            files={"file": ("orders.csv", sales_csv, "text/csv")},
            data={"currency": "DOLLARS"},
        )

        assert response.status_code == 422


class TestInventoryForecastEndpoint:
    """Tests for POST /inventory-forecast"""

    def test_upload(self, client, inventory_csv):
        """Test a history upload returns predictions and alerts"""
        response = client.post(
            "/api/v1/inventory-forecast",
            files={"file": ("history.csv", inventory_csv, "text/csv")},
            data={"lead_time_days": "7"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["predictions"][0]["productId"] == "SKU-1"
        assert body["predictions"][0]["leadTimeDays"] == 7
        assert body["summary"]["totalProducts"] == 2
        assert body["seasonalityPatterns"]

    def test_lead_time_bounds(self, client, inventory_csv):
        """Test lead time outside 1-365 is rejected"""
        response = client.post(
            "/api/v1/inventory-forecast",
            files={"file": ("history.csv", inventory_csv, "text/csv")},
            data={"lead_time_days": "0"},
        )

        assert response.status_code == 422

    def test_empty_file(self, client):
        """Test empty uploads return 400"""
        response = client.post(
            "/api/v1/inventory-forecast",
            files={"file": ("history.csv", b"", "text/csv")},
        )

        assert response.status_code == 400
