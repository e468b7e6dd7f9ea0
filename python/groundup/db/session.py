"""Session factories.

Route handlers take a request-scoped Session from get_db(). Work that
outlives the request (the enhancement stream's finalize step, the auth
bootstrap callback, the sweeper) opens its own sessions from
get_session_factory().
"""

from collections.abc import Generator

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from groundup.db.engine import get_engine

_SessionLocal: sessionmaker[Session] | None = None


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    # Rows are read after commit when building responses and log fields
    return sessionmaker(bind=engine or get_engine(), autoflush=False, expire_on_commit=False)


def get_session_factory() -> sessionmaker[Session]:
    """Process-wide session factory bound to get_engine()."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = create_session_factory()
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one Session per request, closed afterwards."""
    with get_session_factory()() as db:
        yield db
