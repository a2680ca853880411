"""Bring the database schema up to date with alembic before serving requests."""

from __future__ import annotations

import errno
import logging
import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine.reflection import Inspector

from .database import SQLALCHEMY_DATABASE_URL

LOGGER = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent
LOCK_PATH = BASE_DIR / ".alembic-migration.lock"
LOCK_POLL_INTERVAL = 0.25
LOCK_TIMEOUT_ENV = "ALEMBIC_MIGRATION_LOCK_TIMEOUT"
DEFAULT_LOCK_TIMEOUT = 30.0

if os.name == "posix":  # pragma: no cover - platform specific
    import fcntl
else:  # pragma: no cover - platform specific
    import msvcrt

SchemaProbe = Callable[[Inspector], bool]

# Revisions recognisable from the tables they create, newest first. Used to
# stamp databases that were created with ``Base.metadata.create_all``.
KNOWN_SCHEMAS: Sequence[tuple[str, SchemaProbe]] = (
    (
        "20261018_0001",
        lambda inspector: inspector.has_table("clients") and inspector.has_table("import_configs"),
    ),
)


def _lock_timeout() -> float:
    raw = os.getenv(LOCK_TIMEOUT_ENV)
    if not raw:
        return DEFAULT_LOCK_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("Invalid %s=%s; using %.1f seconds", LOCK_TIMEOUT_ENV, raw, DEFAULT_LOCK_TIMEOUT)
        return DEFAULT_LOCK_TIMEOUT
    if value <= 0:
        LOGGER.warning("%s must be positive; using %.1f seconds", LOCK_TIMEOUT_ENV, DEFAULT_LOCK_TIMEOUT)
        return DEFAULT_LOCK_TIMEOUT
    return value


def _try_lock(handle) -> bool:
    try:
        if os.name == "posix":  # pragma: no cover - platform specific
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        else:  # pragma: no cover - platform specific
            msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
    except BlockingIOError:
        return False
    except OSError as error:
        # Windows reports a held lock as a sharing or lock violation (32, 33).
        if error.errno in {errno.EACCES, errno.EAGAIN} or getattr(error, "winerror", None) in {32, 33}:
            return False
        raise
    return True


def _unlock(handle) -> None:
    try:
        if os.name == "posix":  # pragma: no cover - platform specific
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        else:  # pragma: no cover - platform specific
            msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
    except OSError:  # pragma: no cover - best effort cleanup
        LOGGER.debug("Could not release migration lock", exc_info=True)


@contextmanager
def migration_lock(path: Path = LOCK_PATH, *, timeout: Optional[float] = None) -> Iterator[None]:
    """Serialize migrations between processes sharing ``path``."""

    deadline = time.monotonic() + (timeout if timeout is not None else _lock_timeout())
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a+") as handle:
        while not _try_lock(handle):
            if time.monotonic() >= deadline:
                raise TimeoutError(f"Timed out waiting for migration lock {path}")
            time.sleep(LOCK_POLL_INTERVAL)
        LOGGER.debug("Acquired migration lock %s", path)
        try:
            yield
        finally:
            _unlock(handle)


def _alembic_config(database_url: str) -> Config:
    config = Config(str(BASE_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BASE_DIR / "alembic"))
    config.set_main_option("sqlalchemy.url", database_url)
    return config


def detect_revision(inspector: Inspector) -> Optional[str]:
    """Return the newest known revision whose tables are already present."""

    for revision, probe in KNOWN_SCHEMAS:
        if probe(inspector):
            return revision
    return None


def run_database_migrations(database_url: Optional[str] = None) -> None:
    """Upgrade the database to the latest alembic revision."""

    url = database_url or os.getenv("DATABASE_URL") or SQLALCHEMY_DATABASE_URL
    project_root = str(BASE_DIR.parent)
    if project_root not in sys.path:
        sys.path.insert(0, project_root)

    config = _alembic_config(url)
    head = ScriptDirectory.from_config(config).get_current_head()
    LOGGER.info("Running database migrations at %s", url)

    with migration_lock():
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        engine = create_engine(url, connect_args=connect_args)
        try:
            inspector = inspect(engine)
            tracked = inspector.has_table("alembic_version")
            untracked_tables = [name for name in inspector.get_table_names() if name != "alembic_version"]
            if not tracked and untracked_tables:
                revision = detect_revision(inspector)
                if revision is None:
                    LOGGER.warning(
                        "Found tables without alembic metadata that match no known revision: %s",
                        ", ".join(sorted(untracked_tables)),
                    )
                else:
                    LOGGER.info("Stamping existing schema as revision %s", revision)
                    command.stamp(config, revision)
                    if revision == head:
                        return
        finally:
            engine.dispose()

        command.upgrade(config, "head")
