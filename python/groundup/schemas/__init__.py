"""Pydantic request/response schemas."""

from groundup.schemas.keys import (
    ModelOut,
    ProviderModelsOut,
    UserApiKeyCreate,
    UserApiKeyOut,
)
from groundup.schemas.resumes import (
    EnhancementOut,
    EnhancementSummaryOut,
    EnhanceRequest,
    ResumeOut,
)

__all__ = [
    "ModelOut",
    "ProviderModelsOut",
    "UserApiKeyCreate",
    "UserApiKeyOut",
    "EnhanceRequest",
    "EnhancementOut",
    "EnhancementSummaryOut",
    "ResumeOut",
]
