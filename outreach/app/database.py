"""Engine, session factory and declarative base shared by the outreach service."""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

DEFAULT_SQLITE_PATH = Path(__file__).resolve().parent.parent / "outreach.db"

POOL_SETTINGS_ENV = {
    "pool_size": ("DATABASE_POOL_SIZE", 5),
    "max_overflow": ("DATABASE_MAX_OVERFLOW", 10),
    "pool_timeout": ("DATABASE_POOL_TIMEOUT", 30),
    "pool_recycle": ("DATABASE_POOL_RECYCLE", 1800),
}


def _read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return value


def _is_in_memory(database: Optional[str]) -> bool:
    return database in (None, "", ":memory:")


def resolve_database_url(raw_url: Optional[str]) -> str:
    """Return a usable URL, falling back to a SQLite file next to the package."""

    if not raw_url:
        DEFAULT_SQLITE_PATH.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{DEFAULT_SQLITE_PATH.as_posix()}"

    url = make_url(raw_url)
    if url.drivername.startswith("sqlite") and not _is_in_memory(url.database):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return url.render_as_string(hide_password=False)


def engine_options(database_url: str) -> Dict[str, Any]:
    url = make_url(database_url)
    if url.drivername.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if _is_in_memory(url.database):
            # Every session must see the same in-memory database.
            options["poolclass"] = StaticPool
        return options

    options = {"pool_pre_ping": True}
    for option, (env_name, default) in POOL_SETTINGS_ENV.items():
        options[option] = _read_int_env(env_name, default)
    return options


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def configure_sqlite(target_engine: Engine) -> None:
    """Let pysqlite honour SAVEPOINT and fold non-ASCII text in ``lower()``.

    SQLite's built-in ``lower()`` only folds ASCII, so region and name lookups
    would treat "Москва" and "москва" as different values.
    """

    @event.listens_for(target_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)

    @event.listens_for(target_engine, "begin")
    def _emit_begin(connection) -> None:
        connection.exec_driver_sql("BEGIN")


def build_engine(database_url: str) -> Engine:
    """Create an engine for ``database_url`` with per-row savepoints available."""

    built = create_engine(database_url, **engine_options(database_url))
    if built.dialect.name == "sqlite":
        configure_sqlite(built)
    return built


SQLALCHEMY_DATABASE_URL = resolve_database_url(os.getenv("DATABASE_URL"))

engine = build_engine(SQLALCHEMY_DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator:
    """Yield a database session and ensure it is closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(factory: Optional[Callable[[], Session]] = None) -> Generator:
    """Transactional scope for work done outside of a request, such as CLI imports."""
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
