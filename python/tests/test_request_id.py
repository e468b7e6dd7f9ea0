"""Tests for X-Request-ID resolution and the request-id middleware.

- Missing or invalid ids are replaced with a fresh UUID4
- Valid caller ids are echoed; UUIDs are canonicalized to lowercase
- Auth failures and error envelopes carry the same id
"""

from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from groundup.app import add_request_id_middleware, create_app
from groundup.middleware.request_id import MAX_REQUEST_ID_LENGTH, resolve_request_id
from tests.helpers import auth_headers


@pytest.fixture
def rid_client(test_verifier):
    app = create_app(token_verifier=test_verifier)
    add_request_id_middleware(app, log_requests=False)
    with TestClient(app) as client:
        yield client


def _is_uuid4(value: str) -> bool:
    try:
        return UUID(value).version == 4
    except ValueError:
        return False


class TestResolveRequestId:
    def test_missing_generates_uuid(self):
        assert _is_uuid4(resolve_request_id(None))
        assert _is_uuid4(resolve_request_id(""))

    @pytest.mark.parametrize("value", ["req-123", "trace.abc_DEF-9", "a" * MAX_REQUEST_ID_LENGTH])
    def test_valid_ids_kept(self, value):
        assert resolve_request_id(value) == value

    def test_uuid_lowercased(self):
        value = "A1B2C3D4-E5F6-4A7B-8C9D-0E1F2A3B4C5D"
        assert resolve_request_id(value) == value.lower()

    @pytest.mark.parametrize(
        "value", ["has space", "semi;colon", "a" * (MAX_REQUEST_ID_LENGTH + 1), "ünïcode"]
    )
    def test_invalid_ids_replaced(self, value):
        resolved = resolve_request_id(value)
        assert resolved != value
        assert _is_uuid4(resolved)


class TestRequestIdMiddleware:
    def test_generated_when_missing(self, rid_client):
        response = rid_client.get("/health")
        assert _is_uuid4(response.headers["X-Request-ID"])

    def test_echoed_when_valid(self, rid_client):
        response = rid_client.get("/health", headers={"X-Request-ID": "client-req-42"})
        assert response.headers["X-Request-ID"] == "client-req-42"

    def test_present_on_auth_failure_and_in_body(self, rid_client):
        response = rid_client.get("/keys", headers={"X-Request-ID": "auth-fail-1"})

        assert response.status_code == 401
        assert response.headers["X-Request-ID"] == "auth-fail-1"
        assert response.json()["error"]["request_id"] == "auth-fail-1"

    def test_present_on_not_found_envelope(self, rid_client, test_user_id):
        headers = {**auth_headers(test_user_id), "X-Request-ID": "missing-resume"}
        response = rid_client.get(
            "/enhancements/00000000-0000-4000-8000-000000000000", headers=headers
        )

        assert response.status_code == 404
        assert response.json()["error"]["request_id"] == "missing-resume"
