"""Stale enhancement sweeper.

A job whose process died mid-stream (deploy, crash, OOM) never reaches its
own finalize and would stay `processing` forever. Celery beat runs this
every few minutes:

- Query: status='processing' AND created_at < now() - STALE_ENHANCEMENT_MINUTES
- Finalize each via the same conditional update the stream uses, so a job
  that finishes concurrently keeps its own outcome
- Log count + oldest age
"""

from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from groundup.celery import celery_app
from groundup.config import get_settings
from groundup.db.models import EnhancementStatus, ResumeEnhancement
from groundup.db.session import get_session_factory
from groundup.logging import clear_task_context, configure_task_logging, get_logger
from groundup.services.enhancements import finalize_enhancement

logger = get_logger(__name__)

STALE_NOTE = "Enhancement timed out before completing"


def sweep_stale(
    session_factory: sessionmaker[Session] | None = None,
    stale_minutes: int | None = None,
    now: datetime | None = None,
) -> int:
    """Finalize stale `processing` enhancements to `error`.

    Args:
        session_factory: Session factory override (tests).
        stale_minutes: Age threshold; defaults to STALE_ENHANCEMENT_MINUTES.
        now: Current time override (tests).

    Returns:
        Number of enhancements finalized by this sweep.
    """
    session_factory = session_factory or get_session_factory()
    if stale_minutes is None:
        stale_minutes = get_settings().stale_enhancement_minutes
    now = now or datetime.now(UTC)
    threshold = now - timedelta(minutes=stale_minutes)

    db = session_factory()
    try:
        rows = db.execute(
            select(ResumeEnhancement.id, ResumeEnhancement.created_at)
            .where(
                ResumeEnhancement.status == EnhancementStatus.processing.value,
                ResumeEnhancement.created_at < threshold,
            )
            .order_by(ResumeEnhancement.created_at.asc())
        ).all()

        if not rows:
            return 0

        finalized_count = 0
        oldest_age_seconds = 0

        for enhancement_id, created_at in rows:
            # SQLite hands back naive datetimes; stored values are UTC
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=UTC)
            age_seconds = int((now - created_at).total_seconds())
            oldest_age_seconds = max(oldest_age_seconds, age_seconds)

            if finalize_enhancement(
                db,
                enhancement_id,
                EnhancementStatus.error,
                notes=f"{STALE_NOTE} (stale after {stale_minutes} minutes)",
            ):
                finalized_count += 1
                logger.info(
                    "sweeper_finalized",
                    enhancement_id=str(enhancement_id),
                    age_seconds=age_seconds,
                )

        logger.info(
            "sweeper_complete",
            finalized_count=finalized_count,
            total_stale=len(rows),
            oldest_age_seconds=oldest_age_seconds,
        )
        return finalized_count
    finally:
        db.close()


@celery_app.task(bind=True, max_retries=0, name="sweep_stale_enhancements")
def sweep_stale_enhancements(self, request_id: str | None = None) -> dict:
    """Celery beat entrypoint for sweep_stale.

    Returns:
        Dict with the number of enhancements finalized.
    """
    configure_task_logging(
        request_id=request_id,
        task_name="sweep_stale_enhancements",
        task_id=self.request.id,
    )
    try:
        return {"finalized": sweep_stale()}
    except Exception:
        logger.exception("sweeper_error")
        raise
    finally:
        clear_task_context()
