"""Tests for the model catalogue and default model resolution."""

import pytest
from fastapi.testclient import TestClient

from groundup.app import create_app
from groundup.config import clear_settings_cache
from groundup.services.models import DEFAULT_MODELS, list_provider_models, resolve_model
from tests.helpers import auth_headers


class TestResolveModel:
    def test_stored_default_wins(self):
        assert resolve_model("openai", "gpt-4-turbo") == "gpt-4-turbo"

    @pytest.mark.parametrize("provider", ["openai", "anthropic", "google"])
    def test_provider_default_when_unset(self, provider):
        assert resolve_model(provider, None) == DEFAULT_MODELS[provider]

    def test_unknown_provider_raises(self):
        with pytest.raises(KeyError):
            resolve_model("mistral", None)


class TestCatalogue:
    def test_every_default_is_listed(self):
        for entry in list_provider_models():
            assert entry.default_model in {m.value for m in entry.models}

    def test_disabled_provider_omitted(self):
        providers = [p.provider for p in list_provider_models({"anthropic": False})]
        assert providers == ["openai", "google"]


class TestModelsRoute:
    def test_lists_all_providers(self, authenticated_client, test_user_id):
        response = authenticated_client.get("/models", headers=auth_headers(test_user_id))

        assert response.status_code == 200
        data = response.json()["data"]
        assert [p["provider"] for p in data] == ["openai", "anthropic", "google"]
        assert set(data[0]["models"][0]) == {"value", "label", "description"}

    def test_feature_flag_hides_provider(self, monkeypatch, test_verifier, test_user_id):
        monkeypatch.setenv("ENABLE_OPENAI", "false")
        clear_settings_cache()

        with TestClient(create_app(token_verifier=test_verifier)) as client:
            response = client.get("/models", headers=auth_headers(test_user_id))

        assert [p["provider"] for p in response.json()["data"]] == ["anthropic", "google"]

    def test_requires_auth(self, authenticated_client):
        assert authenticated_client.get("/models").status_code == 401
