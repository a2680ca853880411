"""Environment driven settings for the import engine and the HTTP service."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from functools import lru_cache

MAX_ROWS_ENV = "IMPORT_MAX_ROWS"
STRUCTURAL_FALLBACK_ENV = "IMPORT_STRUCTURAL_PHONE_FALLBACK"
REGION_CREATOR_ROLES_ENV = "IMPORT_REGION_CREATOR_ROLES"

DEFAULT_MAX_ROWS = 10_000
DEFAULT_REGION_CREATOR_ROLES = frozenset({"ROOT"})


def _read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def _read_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _read_roles_env(name: str, default: frozenset[str]) -> frozenset[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return frozenset(role.strip().upper() for role in raw.split(",") if role.strip())


@dataclass(frozen=True)
class ImportSettings:
    """Tunables shared by every import run."""

    max_rows: int = DEFAULT_MAX_ROWS
    structural_phone_fallback: bool = True
    region_creator_roles: frozenset[str] = DEFAULT_REGION_CREATOR_ROLES


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """Load the import settings once per process."""

    return ImportSettings(
        max_rows=_read_int_env(MAX_ROWS_ENV, DEFAULT_MAX_ROWS),
        structural_phone_fallback=_read_bool_env(STRUCTURAL_FALLBACK_ENV, True),
        region_creator_roles=_read_roles_env(
            REGION_CREATOR_ROLES_ENV, DEFAULT_REGION_CREATOR_ROLES
        ),
    )


ALLOWED_ORIGINS_ENV = "OUTREACH_ALLOWED_ORIGINS"
RUN_MIGRATIONS_ENV = "RUN_MIGRATIONS_ON_STARTUP"

# Vite dev server and preview ports of the operator UI.
DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:4173",
    "http://127.0.0.1:4173",
)


def split_origins(raw: str) -> tuple[str, ...]:
    """Split ``raw`` on commas or whitespace, dropping trailing slashes and repeats."""

    origins = (item.rstrip("/") for item in re.split(r"[\s,]+", raw))
    return tuple(sorted({origin for origin in origins if origin}))


@dataclass(frozen=True)
class ApiSettings:
    """HTTP service options."""

    allowed_origins: tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS
    run_migrations_on_startup: bool = True


def get_api_settings() -> ApiSettings:
    origins = split_origins(os.getenv(ALLOWED_ORIGINS_ENV) or "")
    return ApiSettings(
        allowed_origins=origins or DEFAULT_ALLOWED_ORIGINS,
        run_migrations_on_startup=_read_bool_env(RUN_MIGRATIONS_ENV, True),
    )
