"""Application settings loaded from environment variables.

Environment Configuration:
    GROUNDUP_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: Database connection string (required)
    GROUNDUP_INTERNAL_SECRET: Internal API secret (required in staging/prod)

Redis / Celery Configuration:
    REDIS_URL: Redis connection string (required for worker)
    CELERY_BROKER_URL: Celery broker URL (defaults to REDIS_URL)
    CELERY_RESULT_BACKEND: Celery result backend URL (defaults to REDIS_URL)

Auth Configuration (required outside GROUNDUP_ENV=test):
    SUPABASE_JWKS_URL: Full URL to Supabase JWKS endpoint
    SUPABASE_ISSUER: Expected JWT issuer (trailing slash stripped)
    SUPABASE_AUDIENCES: Comma-separated list of allowed audiences

Enhancement Configuration:
    FALLBACK_API_KEY: Operator credential for the fallback provider
    FALLBACK_BASE_URL: OpenAI-compatible chat completions URL of the fallback provider
    FALLBACK_MODEL: Model used for every fallback request
    ENHANCE_DEADLINE_S: Upper bound on the streaming phase of one enhancement
    UPSTREAM_READ_TIMEOUT_S: Maximum idle gap between upstream bytes
    STALE_ENHANCEMENT_MINUTES: Age after which the sweeper fails a processing row
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

DEFAULT_FALLBACK_BASE_URL = "https://apps.abacus.ai/v1/chat/completions"


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Validation rules:
    - DATABASE_URL is always required
    - Supabase auth settings are required everywhere except the test environment
    - GROUNDUP_INTERNAL_SECRET is required in staging and prod only
    - Truncation budget inputs must leave room for the input text
    """

    groundup_env: Environment = Field(default=Environment.LOCAL, alias="GROUNDUP_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    groundup_internal_secret: str | None = Field(default=None, alias="GROUNDUP_INTERNAL_SECRET")

    # Redis / Celery settings
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    celery_broker_url: str | None = Field(default=None, alias="CELERY_BROKER_URL")
    celery_result_backend: str | None = Field(default=None, alias="CELERY_RESULT_BACKEND")

    # Supabase auth settings
    supabase_jwks_url: str | None = Field(default=None, alias="SUPABASE_JWKS_URL")
    supabase_issuer: str | None = Field(default=None, alias="SUPABASE_ISSUER")
    supabase_audiences: str | None = Field(default=None, alias="SUPABASE_AUDIENCES")

    # Base64-encoded 32-byte key for SecretBox (XSalsa20-Poly1305) encryption of stored credentials
    groundup_key_encryption_key: str | None = Field(
        default=None, alias="GROUNDUP_KEY_ENCRYPTION_KEY"
    )

    # Fallback provider (OpenAI-compatible, operator-held credential)
    fallback_api_key: str | None = Field(default=None, alias="FALLBACK_API_KEY")
    fallback_base_url: str = Field(default=DEFAULT_FALLBACK_BASE_URL, alias="FALLBACK_BASE_URL")
    fallback_model: str = Field(default="gpt-4o-mini", alias="FALLBACK_MODEL")

    # Provider feature flags
    enable_openai: bool = Field(default=True, alias="ENABLE_OPENAI")
    enable_anthropic: bool = Field(default=True, alias="ENABLE_ANTHROPIC")
    enable_google: bool = Field(default=True, alias="ENABLE_GOOGLE")

    # Enhancement streaming limits
    enhance_deadline_s: float = Field(default=300.0, alias="ENHANCE_DEADLINE_S")
    upstream_read_timeout_s: float = Field(default=60.0, alias="UPSTREAM_READ_TIMEOUT_S")
    stale_enhancement_minutes: int = Field(default=15, alias="STALE_ENHANCEMENT_MINUTES")

    # Input truncation budget
    model_context_tokens: int = Field(default=128_000, alias="MODEL_CONTEXT_TOKENS")
    completion_reserve_tokens: int = Field(default=4096, alias="COMPLETION_RESERVE_TOKENS")
    prompt_overhead_tokens: int = Field(default=500, alias="PROMPT_OVERHEAD_TOKENS")
    chars_per_token: int = Field(default=4, alias="CHARS_PER_TOKEN")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure required settings are set for the current environment."""
        if self.groundup_env != Environment.TEST:
            missing_auth = []
            if not self.supabase_jwks_url:
                missing_auth.append("SUPABASE_JWKS_URL")
            if not self.supabase_issuer:
                missing_auth.append("SUPABASE_ISSUER")
            if not self.supabase_audiences:
                missing_auth.append("SUPABASE_AUDIENCES")

            if missing_auth:
                raise ValueError(
                    f"Missing required Supabase auth settings: {', '.join(missing_auth)}"
                )

        if self.groundup_env in (Environment.STAGING, Environment.PROD):
            if not self.groundup_internal_secret:
                raise ValueError(
                    f"GROUNDUP_INTERNAL_SECRET is required for GROUNDUP_ENV={self.groundup_env.value}"
                )

        if self.enhance_deadline_s <= 0 or self.upstream_read_timeout_s <= 0:
            raise ValueError("ENHANCE_DEADLINE_S and UPSTREAM_READ_TIMEOUT_S must be > 0")

        if self.input_budget_chars < 1:
            raise ValueError(
                "MODEL_CONTEXT_TOKENS must exceed COMPLETION_RESERVE_TOKENS + PROMPT_OVERHEAD_TOKENS"
            )

        return self

    @property
    def requires_internal_header(self) -> bool:
        """Whether requests must include the internal secret header."""
        return self.groundup_env in (Environment.STAGING, Environment.PROD)

    @property
    def audience_list(self) -> list[str]:
        """Parse comma-separated audiences into a list."""
        if self.supabase_audiences:
            return [a.strip() for a in self.supabase_audiences.split(",") if a.strip()]
        return []

    @property
    def normalized_issuer(self) -> str | None:
        """Return issuer with trailing slash stripped."""
        if self.supabase_issuer:
            return self.supabase_issuer.rstrip("/")
        return None

    @property
    def input_budget_chars(self) -> int:
        """Maximum number of resume characters sent upstream."""
        usable_tokens = (
            self.model_context_tokens - self.completion_reserve_tokens - self.prompt_overhead_tokens
        )
        return usable_tokens * self.chars_per_token

    @property
    def effective_celery_broker_url(self) -> str | None:
        """Return Celery broker URL, falling back to REDIS_URL if not set."""
        return self.celery_broker_url or self.redis_url

    @property
    def effective_celery_result_backend(self) -> str | None:
        """Return Celery result backend URL, falling back to REDIS_URL if not set."""
        return self.celery_result_backend or self.redis_url


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
