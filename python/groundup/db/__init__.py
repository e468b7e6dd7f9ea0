"""Database module for Ground Up.

Provides engine creation, session management, and ORM models.
"""

from groundup.db.engine import create_db_engine, get_engine
from groundup.db.models import (
    Base,
    EnhancementStatus,
    EnhancementType,
    Resume,
    ResumeEnhancement,
    User,
    UserApiKey,
)
from groundup.db.session import get_db, get_session_factory

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "get_session_factory",
    # Base
    "Base",
    # Enums
    "EnhancementType",
    "EnhancementStatus",
    # Models
    "User",
    "Resume",
    "ResumeEnhancement",
    "UserApiKey",
]
