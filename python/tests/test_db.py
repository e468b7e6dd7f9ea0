"""Tests for engine and session helpers."""

from sqlalchemy import text
from sqlalchemy.pool import StaticPool

from groundup.db import session as session_module
from groundup.db.engine import create_db_engine
from groundup.db.session import create_session_factory, get_db, get_session_factory


class TestCreateDbEngine:
    def test_in_memory_sqlite_shares_one_connection(self):
        engine = create_db_engine("sqlite+pysqlite://")
        try:
            assert isinstance(engine.pool, StaticPool)
            with engine.begin() as conn:
                conn.execute(text("CREATE TABLE t (x INTEGER)"))
            with engine.connect() as conn:
                assert conn.execute(text("SELECT count(*) FROM t")).scalar() == 0
        finally:
            engine.dispose()

    def test_file_sqlite_uses_default_pool(self, tmp_path):
        engine = create_db_engine(f"sqlite+pysqlite:///{tmp_path / 'groundup.db'}")
        try:
            assert not isinstance(engine.pool, StaticPool)
        finally:
            engine.dispose()

    def test_postgres_url_pings_connections(self):
        engine = create_db_engine("postgresql+psycopg://user:pw@localhost:5432/groundup")

        assert engine.dialect.name == "postgresql"
        assert engine.pool._pre_ping is True


class TestSessions:
    def test_factory_keeps_rows_loaded_after_commit(self, engine):
        factory = create_session_factory(engine)

        assert factory.kw["expire_on_commit"] is False
        assert factory.kw["autoflush"] is False

    def test_get_session_factory_is_shared(self, session_factory):
        assert get_session_factory() is session_factory
        assert session_module._SessionLocal is session_factory

    def test_get_db_closes_session(self, session_factory):
        dependency = get_db()
        db = next(dependency)
        assert db.execute(text("SELECT 1")).scalar() == 1

        dependency.close()

        assert not db.in_transaction()
