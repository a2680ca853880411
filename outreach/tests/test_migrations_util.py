from __future__ import annotations

import os
from pathlib import Path

import pytest
from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect, text

from outreach.app.database import Base
from outreach.app.migrations import detect_revision, migration_lock, run_database_migrations

BACKEND_DIR = Path(__file__).resolve().parents[1]


def _configure_alembic_script() -> ScriptDirectory:
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    return ScriptDirectory.from_config(config)


def _current_version(url: str) -> str:
    engine = create_engine(url, connect_args={"check_same_thread": False})
    try:
        with engine.connect() as connection:
            return connection.scalar(text("SELECT version_num FROM alembic_version"))
    finally:
        engine.dispose()


def test_run_database_migrations_creates_schema_on_empty_database(tmp_path, monkeypatch) -> None:
    url = f"sqlite:///{tmp_path / 'fresh.db'}"
    monkeypatch.setenv("DATABASE_URL", url)

    run_database_migrations()

    engine = create_engine(url, connect_args={"check_same_thread": False})
    tables = set(inspect(engine).get_table_names())
    engine.dispose()

    assert {
        "users",
        "regions",
        "clients",
        "client_phones",
        "client_groups",
        "client_group_members",
        "import_configs",
        "alembic_version",
    } <= tables
    assert _current_version(url) == _configure_alembic_script().get_current_head()


def test_run_database_migrations_stamps_head_for_current_schema(tmp_path, monkeypatch) -> None:
    url = f"sqlite:///{tmp_path / 'current.db'}"
    engine = create_engine(url, connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    engine.dispose()

    monkeypatch.setenv("DATABASE_URL", url)
    run_database_migrations()

    assert _current_version(url) == _configure_alembic_script().get_current_head()


def test_run_database_migrations_is_idempotent(tmp_path, monkeypatch) -> None:
    url = f"sqlite:///{tmp_path / 'twice.db'}"
    monkeypatch.setenv("DATABASE_URL", url)

    run_database_migrations()
    run_database_migrations()

    assert _current_version(url) == _configure_alembic_script().get_current_head()


def test_detect_revision_recognises_current_schema(tmp_path) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'probe.db'}")
    try:
        assert detect_revision(inspect(engine)) is None
        Base.metadata.create_all(bind=engine)
        assert detect_revision(inspect(engine)) == "20261018_0001"
    finally:
        engine.dispose()


@pytest.mark.skipif(os.name != "posix", reason="flock semantics")
def test_migration_lock_times_out_while_held(tmp_path) -> None:
    lock_path = tmp_path / "migrate.lock"

    with migration_lock(lock_path, timeout=1):
        with pytest.raises(TimeoutError):
            with migration_lock(lock_path, timeout=0.3):
                pass

    with migration_lock(lock_path, timeout=1):
        pass
