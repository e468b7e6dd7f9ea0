"""Resume and enhancement read access, always scoped to the owner."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from groundup.db.models import Resume, ResumeEnhancement
from groundup.errors import ApiErrorCode, NotFoundError
from groundup.schemas.resumes import EnhancementOut, ResumeOut


def get_owned_resume(db: Session, user_id: UUID, resume_id: UUID) -> Resume:
    """Load one resume by id and owner.

    A resume owned by someone else is indistinguishable from a missing one.

    Raises:
        NotFoundError: E_RESUME_NOT_FOUND.
    """
    resume = db.scalars(
        select(Resume).where(Resume.id == resume_id, Resume.user_id == user_id)
    ).first()
    if resume is None:
        raise NotFoundError(ApiErrorCode.E_RESUME_NOT_FOUND, "Resume not found")
    return resume


def list_resumes(db: Session, user_id: UUID) -> list[ResumeOut]:
    """List the user's resumes with enhancement summaries, newest first."""
    stmt = (
        select(Resume)
        .where(Resume.user_id == user_id)
        .options(selectinload(Resume.enhancements))
        .order_by(Resume.created_at.desc(), Resume.id.desc())
    )
    return [ResumeOut.model_validate(resume) for resume in db.scalars(stmt)]


def get_enhancement(db: Session, user_id: UUID, enhancement_id: UUID) -> EnhancementOut:
    """Load one enhancement whose resume belongs to the user.

    Raises:
        NotFoundError: E_ENHANCEMENT_NOT_FOUND.
    """
    enhancement = db.scalars(
        select(ResumeEnhancement)
        .join(Resume, Resume.id == ResumeEnhancement.resume_id)
        .where(ResumeEnhancement.id == enhancement_id, Resume.user_id == user_id)
    ).first()
    if enhancement is None:
        raise NotFoundError(ApiErrorCode.E_ENHANCEMENT_NOT_FOUND, "Enhancement not found")
    return EnhancementOut.model_validate(enhancement)
