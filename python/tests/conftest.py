"""Pytest configuration and fixtures for Ground Up tests.

Test isolation strategy:
- One in-memory SQLite database per session (StaticPool, schema from Base.metadata)
- Every table is emptied after each test
- The process-wide session factory points at the test engine, so request
  sessions, the auth bootstrap, the enhancement stream and the sweeper all
  share it
- Auth tests use authenticated_client with RSA test tokens
- Upstream providers are always mocked with respx; no live calls
"""

import base64
import os
import sys
from collections.abc import Generator
from pathlib import Path
from uuid import UUID

# Add repo root to sys.path for importing top-level packages (e.g., apps, tests)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ["GROUNDUP_ENV"] = "test"

import httpx
import pytest
import respx
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from groundup.app import create_app
from groundup.config import clear_settings_cache
from groundup.db import session as session_module
from groundup.db.engine import create_db_engine
from groundup.db.models import Base
from groundup.db.session import create_session_factory
from groundup.services.crypto import MASTER_KEY_ENV, MASTER_KEY_SIZE, clear_master_key_cache
from groundup.services.llm import LLMRouter
from tests.helpers import FALLBACK_URL, create_test_user_id
from tests.support.test_verifier import MockJwtVerifier

TEST_MASTER_KEY = b"test_master_key_for_encryption!!"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine shared by every connection in the session."""
    engine = create_db_engine("sqlite+pysqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def session_factory(engine: Engine, monkeypatch) -> Generator[sessionmaker[Session], None, None]:
    """Point the process-wide session factory at the test engine; empty tables afterwards."""
    factory = create_session_factory(engine)
    monkeypatch.setattr(session_module, "_SessionLocal", factory)
    yield factory
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """A session for seeding and inspecting rows. Seed data must be committed."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def master_key(monkeypatch) -> Generator[bytes, None, None]:
    """Deterministic 32-byte master key for credential encryption."""
    assert len(TEST_MASTER_KEY) == MASTER_KEY_SIZE
    clear_master_key_cache()
    monkeypatch.setenv(MASTER_KEY_ENV, base64.b64encode(TEST_MASTER_KEY).decode("ascii"))
    yield TEST_MASTER_KEY
    clear_master_key_cache()


@pytest.fixture
def upstream() -> Generator[respx.MockRouter, None, None]:
    """Mock every outbound HTTP call. Unmatched requests fail the test."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def httpx_client() -> httpx.AsyncClient:
    return httpx.AsyncClient()


@pytest.fixture
def llm_router(httpx_client: httpx.AsyncClient) -> LLMRouter:
    return LLMRouter(httpx_client, fallback_url=FALLBACK_URL)


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """FastAPI test client without auth middleware (public endpoints only)."""
    app = create_app(skip_auth_middleware=True)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def test_verifier() -> MockJwtVerifier:
    return MockJwtVerifier()


@pytest.fixture
def authenticated_app(test_verifier: MockJwtVerifier, monkeypatch):
    """App with auth middleware using the test verifier and the test fallback URL."""
    monkeypatch.setenv("FALLBACK_BASE_URL", FALLBACK_URL)
    monkeypatch.setenv("FALLBACK_API_KEY", "fallback-operator-key-0000")
    clear_settings_cache()
    return create_app(token_verifier=test_verifier)


@pytest.fixture
def authenticated_client(authenticated_app) -> Generator[TestClient, None, None]:
    """Client with auth middleware. Use auth_headers() to authenticate requests."""
    with TestClient(authenticated_app) as client:
        yield client


@pytest.fixture
def test_user_id() -> UUID:
    return create_test_user_id()
