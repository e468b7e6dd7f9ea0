"""User bootstrap on first authenticated request."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from groundup.db.models import User
from groundup.logging import get_logger

logger = get_logger(__name__)


def ensure_user(db: Session, user_id: UUID) -> UUID:
    """Ensure a users row exists for the JWT subject.

    Idempotent and race-safe: a concurrent insert of the same id loses on
    the primary key and is treated as success.

    Returns:
        The user ID.
    """
    if db.get(User, user_id) is not None:
        return user_id

    db.add(User(id=user_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("user_bootstrap_race", user_id=str(user_id))
    else:
        logger.info("user_bootstrapped", user_id=str(user_id))

    return user_id
