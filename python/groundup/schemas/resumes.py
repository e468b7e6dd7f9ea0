"""Resume and enhancement schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EnhanceRequest(BaseModel):
    """Body of POST /resumes/{resume_id}/enhance.

    The kind is validated by the orchestrator, not here, so an unknown kind
    is reported as E_INVALID_ENHANCEMENT_TYPE rather than a generic body error.
    """

    enhancement_type: str = Field(..., alias="enhancementType")

    model_config = ConfigDict(populate_by_name=True)


class EnhancementSummaryOut(BaseModel):
    """Enhancement as listed under its resume (no content)."""

    id: UUID
    enhancement_type: str
    status: str
    llm_provider: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EnhancementOut(BaseModel):
    """One enhancement with its output."""

    id: UUID
    resume_id: UUID
    enhancement_type: str
    status: str
    llm_provider: str
    llm_model: str
    enhanced_content: str
    enhancement_notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ResumeOut(BaseModel):
    """A resume with its enhancement history, newest first."""

    id: UUID
    original_name: str
    file_type: str
    status: str
    created_at: datetime
    updated_at: datetime
    enhancements: list[EnhancementSummaryOut]

    model_config = ConfigDict(from_attributes=True)
