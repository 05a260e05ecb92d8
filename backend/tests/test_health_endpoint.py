"""Tests for the /health endpoint.

Uses the shared conftest fixtures (api_client).
"""


class TestRootHealth:
    """GET /health: no identity header or API key required."""

    def test_returns_200(self, api_client):
        resp = api_client.get("/health")
        assert resp.status_code == 200

    def test_returns_status_ok(self, api_client):
        data = api_client.get("/health").json()
        assert data["status"] == "ok"

    def test_returns_version_and_marina(self, api_client):
        data = api_client.get("/health").json()
        assert data["version"] == "0.1.0"
        assert "marina" in data

    def test_response_is_json(self, api_client):
        resp = api_client.get("/health")
        assert "application/json" in resp.headers.get("content-type", "")
