"""Provider credential and model catalogue schemas.

No secrets ever leave the backend: responses never include encrypted_key,
key_nonce or master_key_version. The fingerprint is the last 4 chars of the
original key.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Must match the DB constraint on user_api_keys.provider
CredentialProviderName = Literal["openai", "anthropic", "google"]


class ModelOut(BaseModel):
    """One selectable upstream model."""

    value: str
    label: str
    description: str


class ProviderModelsOut(BaseModel):
    """Model catalogue for one provider."""

    provider: str
    default_model: str
    models: list[ModelOut]


class UserApiKeyOut(BaseModel):
    """Response schema for a stored credential (safe fields only)."""

    id: UUID
    provider: str
    key_name: str
    key_fingerprint: str
    default_model: str | None = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserApiKeyCreate(BaseModel):
    """Request schema for storing a credential.

    One credential per provider: a second create for the same provider is a conflict.
    """

    provider: CredentialProviderName = Field(..., description="openai, anthropic or google")
    key_name: str = Field(..., min_length=1, max_length=100)
    api_key: str = Field(..., min_length=1, description="The plaintext API key to store")
    default_model: str | None = Field(default=None, max_length=200)

    @field_validator("provider", mode="before")
    @classmethod
    def lowercase_provider(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v

    @field_validator("key_name")
    @classmethod
    def strip_key_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("key_name must not be blank")
        return v

    @field_validator("api_key")
    @classmethod
    def validate_api_key_format(cls, v: str) -> str:
        """Strip surrounding whitespace; reject short keys and internal whitespace."""
        v = v.strip()
        if len(v) < 20:
            raise ValueError("API key too short")
        if any(c.isspace() for c in v):
            raise ValueError("API key contains whitespace")
        return v

    @field_validator("default_model")
    @classmethod
    def blank_model_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None
