"""Tests for settings validation and derived values."""

import pytest
from pydantic import ValidationError

from groundup.config import DEFAULT_FALLBACK_BASE_URL, Environment, Settings

AUTH = {
    "SUPABASE_JWKS_URL": "https://project.supabase.co/auth/v1/.well-known/jwks.json",
    "SUPABASE_ISSUER": "https://project.supabase.co/auth/v1/",
    "SUPABASE_AUDIENCES": "authenticated, service ,",
}


def make(**values) -> Settings:
    return Settings(DATABASE_URL="sqlite+pysqlite://", **values)


class TestEnvironmentRules:
    def test_test_env_needs_no_auth_settings(self):
        settings = make(GROUNDUP_ENV="test")
        assert settings.groundup_env == Environment.TEST
        assert settings.requires_internal_header is False

    def test_local_env_requires_auth_settings(self):
        with pytest.raises(ValidationError, match="SUPABASE_JWKS_URL"):
            make(GROUNDUP_ENV="local")

    def test_prod_requires_internal_secret(self):
        with pytest.raises(ValidationError, match="GROUNDUP_INTERNAL_SECRET"):
            make(GROUNDUP_ENV="prod", **AUTH)

    def test_prod_with_secret_requires_header(self):
        settings = make(GROUNDUP_ENV="prod", GROUNDUP_INTERNAL_SECRET="s3cret", **AUTH)
        assert settings.requires_internal_header is True

    def test_database_url_required(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(ValidationError):
            Settings(GROUNDUP_ENV="test")


class TestDerivedValues:
    def test_audiences_and_issuer_normalized(self):
        settings = make(GROUNDUP_ENV="local", **AUTH)
        assert settings.audience_list == ["authenticated", "service"]
        assert settings.normalized_issuer == "https://project.supabase.co/auth/v1"

    def test_celery_urls_default_to_redis(self):
        settings = make(GROUNDUP_ENV="test", REDIS_URL="redis://localhost:6379/0")
        assert settings.effective_celery_broker_url == "redis://localhost:6379/0"
        assert settings.effective_celery_result_backend == "redis://localhost:6379/0"

    def test_enhancement_defaults(self):
        settings = make(GROUNDUP_ENV="test")
        assert settings.fallback_base_url == DEFAULT_FALLBACK_BASE_URL
        assert settings.fallback_model == "gpt-4o-mini"
        assert settings.enhance_deadline_s == 300.0
        assert settings.stale_enhancement_minutes == 15
        assert settings.enable_openai and settings.enable_anthropic and settings.enable_google

    def test_provider_flags_from_env(self, monkeypatch):
        monkeypatch.setenv("ENABLE_GOOGLE", "false")
        assert make(GROUNDUP_ENV="test").enable_google is False

    @pytest.mark.parametrize("field", ["ENHANCE_DEADLINE_S", "UPSTREAM_READ_TIMEOUT_S"])
    def test_timeouts_must_be_positive(self, field):
        with pytest.raises(ValidationError, match="must be > 0"):
            make(GROUNDUP_ENV="test", **{field: 0})
