"""SQLAlchemy ORM models for Ground Up.

Defines all database tables using SQLAlchemy 2.x declarative patterns.
Status and kind columns are plain text guarded by CHECK constraints; the
allowed values live in the Python enums below.

Column types are the portable SQLAlchemy types (Uuid, DateTime) and defaults
are generated client-side, so the same models run on PostgreSQL in
deployments and on SQLite in unit tests.
"""

from datetime import UTC, datetime
from enum import Enum as PyEnum
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Enums
# =============================================================================


class EnhancementType(str, PyEnum):
    """Kinds of enhancement a caller may request."""

    skills_certifications = "skills_certifications"
    project_experience = "project_experience"
    client_quality = "client_quality"


class EnhancementStatus(str, PyEnum):
    """Enhancement job lifecycle.

    States:
        processing: Row created, upstream call in flight
        completed: Full output persisted
        error: Terminal failure recorded in enhancement_notes
    """

    processing = "processing"
    completed = "completed"
    error = "error"


# =============================================================================
# Models
# =============================================================================


class User(Base):
    """User account model.

    The user ID matches the Supabase auth user ID (sub claim).
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    resumes: Mapped[list["Resume"]] = relationship(
        "Resume", back_populates="owner", cascade="all, delete-orphan"
    )
    api_keys: Mapped[list["UserApiKey"]] = relationship(
        "UserApiKey", back_populates="user", cascade="all, delete-orphan"
    )


class Resume(Base):
    """An uploaded resume with its extracted text."""

    __tablename__ = "resumes"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    original_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_type: Mapped[str] = mapped_column(Text, nullable=False)
    original_content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="uploaded")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    owner: Mapped["User"] = relationship("User", back_populates="resumes")
    enhancements: Mapped[list["ResumeEnhancement"]] = relationship(
        "ResumeEnhancement",
        back_populates="resume",
        cascade="all, delete-orphan",
        order_by="ResumeEnhancement.created_at.desc()",
    )

    __table_args__ = (Index("ix_resumes_user_created", "user_id", "created_at"),)


class ResumeEnhancement(Base):
    """One enhancement attempt over one resume.

    Created in `processing` before any upstream call and moved exactly once
    to `completed` or `error` (see groundup.services.enhancements).
    """

    __tablename__ = "resume_enhancements"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    resume_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("resumes.id", ondelete="CASCADE"), nullable=False
    )
    enhancement_type: Mapped[str] = mapped_column(Text, nullable=False)
    llm_provider: Mapped[str] = mapped_column(Text, nullable=False)
    llm_model: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=EnhancementStatus.processing.value
    )
    enhanced_content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    enhancement_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    resume: Mapped["Resume"] = relationship("Resume", back_populates="enhancements")

    __table_args__ = (
        CheckConstraint(
            "status IN ('processing', 'completed', 'error')",
            name="ck_resume_enhancements_status",
        ),
        CheckConstraint(
            "enhancement_type IN ('skills_certifications', 'project_experience', 'client_quality')",
            name="ck_resume_enhancements_type",
        ),
        Index("ix_resume_enhancements_status_created", "status", "created_at"),
    )


class UserApiKey(Base):
    """UserApiKey model - encrypted provider credentials, one per (user, provider)."""

    __tablename__ = "user_api_keys"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    provider: Mapped[str] = mapped_column(Text, nullable=False)
    key_name: Mapped[str] = mapped_column(Text, nullable=False)
    encrypted_key: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    key_nonce: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    master_key_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    key_fingerprint: Mapped[str] = mapped_column(Text, nullable=False)
    default_model: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="api_keys")

    __table_args__ = (
        CheckConstraint(
            "provider IN ('openai', 'anthropic', 'google')",
            name="ck_user_api_keys_provider",
        ),
        CheckConstraint("master_key_version > 0", name="ck_user_api_keys_master_key_version"),
        UniqueConstraint("user_id", "provider", name="uix_user_api_keys_user_provider"),
    )
