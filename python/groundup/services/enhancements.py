"""Enhancement row lifecycle: create in `processing`, finalize exactly once.

Every terminal write is a conditional update guarded by
`status = 'processing'`. Whichever writer gets there first (the stream,
its disconnect path, or the sweeper) wins; later writers see rowcount 0
and leave the row alone.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from groundup.db.models import EnhancementStatus, ResumeEnhancement
from groundup.logging import get_logger

logger = get_logger(__name__)

# Upper bound on the failure note stored with an errored enhancement
MAX_NOTE_CHARS = 1000


def create_enhancement(
    db: Session,
    resume_id: UUID,
    enhancement_type: str,
    provider: str,
    model: str,
) -> ResumeEnhancement:
    """Insert a new enhancement row in `processing` and commit it."""
    enhancement = ResumeEnhancement(
        resume_id=resume_id,
        enhancement_type=enhancement_type,
        llm_provider=provider,
        llm_model=model,
        status=EnhancementStatus.processing.value,
        enhanced_content="",
    )
    db.add(enhancement)
    db.commit()
    return enhancement


def finalize_enhancement(
    db: Session,
    enhancement_id: UUID,
    status: EnhancementStatus,
    *,
    content: str = "",
    notes: str | None = None,
    provider: str | None = None,
    model: str | None = None,
) -> bool:
    """Move a `processing` row to a terminal status.

    Args:
        db: Database session.
        enhancement_id: Row to finalize.
        status: completed or error.
        content: Accumulated output text.
        notes: Failure note (bounded to MAX_NOTE_CHARS).
        provider: Provider that produced the outcome, if it changed (fallback).
        model: Model that produced the outcome, if it changed (fallback).

    Returns:
        True if this call finalized the row, False if it was already terminal.
    """
    if status == EnhancementStatus.processing:
        raise ValueError("finalize_enhancement requires a terminal status")

    values: dict = {
        "status": status.value,
        "enhanced_content": content,
        "enhancement_notes": notes[:MAX_NOTE_CHARS] if notes else None,
        "updated_at": datetime.now(UTC),
    }
    if provider is not None:
        values["llm_provider"] = provider
    if model is not None:
        values["llm_model"] = model

    result = db.execute(
        update(ResumeEnhancement)
        .where(
            ResumeEnhancement.id == enhancement_id,
            ResumeEnhancement.status == EnhancementStatus.processing.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        db.rollback()
        logger.info("finalize_skipped_already_done", enhancement_id=str(enhancement_id))
        return False

    db.commit()
    return True
