"""Tests for GET /health (liveness; public; no database or upstream access)."""

from fastapi.testclient import TestClient


class TestHealthEndpoint:
    def test_health_ok_envelope(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {"data": {"status": "ok"}}

    def test_health_is_public_behind_auth(self, authenticated_client: TestClient):
        response = authenticated_client.get("/health")

        assert response.status_code == 200

    def test_health_makes_no_upstream_calls(self, client: TestClient, upstream):
        client.get("/health")

        assert upstream.calls.call_count == 0
