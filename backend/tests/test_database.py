import pytest
from sqlalchemy import inspect, text

import database
from config import config


@pytest.fixture
def sqlite_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'store.db'}"
    monkeypatch.setattr(config, "DATABASE_URL", url)
    database.dispose_engine()
    yield url
    database.dispose_engine()


def test_init_db_creates_analysis_table(sqlite_url):
    database.init_db()

    engine = database.get_engine()
    assert str(engine.url) == sqlite_url
    assert inspect(engine).has_table("walk_forward_analyses")


def test_get_db_yields_session_and_closes_it(sqlite_url):
    database.init_db()
    gen = database.get_db()
    db = next(gen)

    assert db.execute(text("SELECT COUNT(*) FROM walk_forward_analyses")).scalar() == 0
    with pytest.raises(StopIteration):
        next(gen)


def test_engine_is_reused_until_disposed(sqlite_url):
    engine = database.get_engine()
    assert database.get_engine() is engine
    assert database.get_session_factory() is database.get_session_factory()

    database.dispose_engine()
    assert database.get_engine() is not engine


def test_database_url_normalizes_postgres_scheme(monkeypatch):
    monkeypatch.setattr(config, "DATABASE_URL", "postgres://user:pw@db:5432/blocks")
    assert database.get_database_url() == "postgresql://user:pw@db:5432/blocks"


def test_database_url_falls_back_to_sqlite(monkeypatch):
    monkeypatch.setattr(config, "DATABASE_URL", "")
    assert database.get_database_url() == database.SQLITE_FALLBACK_URL
