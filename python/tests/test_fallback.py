"""Tests for the single-retry fallback policy."""

import pytest

from groundup.config import Settings
from groundup.services.llm import FALLBACK_PROVIDER, ProviderState, fallback_state, should_fallback


@pytest.fixture
def settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite+pysqlite://",
        GROUNDUP_ENV="test",
        FALLBACK_API_KEY="operator-secret-key",
        FALLBACK_MODEL="gpt-4o-mini",
    )


def user_state(provider: str = "openai", attempted_fallback: bool = False) -> ProviderState:
    return ProviderState(
        provider=provider,
        model="gpt-4o",
        credential="sk-user-credential-123456",
        attempted_fallback=attempted_fallback,
    )


class TestShouldFallback:
    @pytest.mark.parametrize("provider", ["openai", "anthropic", "google"])
    def test_401_on_user_credential_falls_back(self, provider):
        assert should_fallback(user_state(provider), 401) is True

    @pytest.mark.parametrize("status", [None, 400, 403, 404, 429, 500, 502, 503])
    def test_other_failures_do_not_fall_back(self, status):
        assert should_fallback(user_state(), status) is False

    def test_no_second_fallback(self):
        assert should_fallback(user_state(attempted_fallback=True), 401) is False

    def test_fallback_provider_never_falls_back(self):
        state = ProviderState(provider=FALLBACK_PROVIDER, model="gpt-4o-mini", credential="k")
        assert should_fallback(state, 401) is False


class TestFallbackState:
    def test_switches_after_rejected_credential(self, settings):
        state = fallback_state(user_state("anthropic"), settings)

        assert state.provider == FALLBACK_PROVIDER
        assert state.model == "gpt-4o-mini"
        assert state.credential == "operator-secret-key"
        assert state.attempted_fallback is True

    def test_starts_directly_without_credential(self, settings):
        state = fallback_state(None, settings)

        assert state == ProviderState(
            provider=FALLBACK_PROVIDER,
            model="gpt-4o-mini",
            credential="operator-secret-key",
            attempted_fallback=True,
        )
        assert should_fallback(state, 401) is False

    def test_unset_operator_key_carries_none(self):
        settings = Settings(DATABASE_URL="sqlite+pysqlite://", GROUNDUP_ENV="test")
        assert fallback_state(None, settings).credential is None

    def test_repr_hides_credential(self, settings):
        state = fallback_state(user_state(), settings)
        assert "operator-secret-key" not in repr(state)
        assert "sk-user-credential" not in repr(user_state())
