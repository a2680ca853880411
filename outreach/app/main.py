"""FastAPI application serving contact imports and import configurations."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .migrations import run_database_migrations
from .routers import import_configs_router, imports_router
from .settings import ApiSettings, get_api_settings

LOGGER = logging.getLogger(__name__)

# Any port on the loopback addresses is accepted during local development.
LOOPBACK_ORIGIN_REGEX = r"https?://(localhost|127\.0\.0\.1|0\.0\.0\.0)(:\d+)?$"


def ensure_database_is_ready(settings: ApiSettings) -> None:
    if not settings.run_migrations_on_startup:
        LOGGER.info("Skipping startup migrations (RUN_MIGRATIONS_ON_STARTUP is off)")
        return
    LOGGER.info("Upgrading the database schema before accepting imports")
    run_database_migrations()


def create_app(settings: Optional[ApiSettings] = None) -> FastAPI:
    """Build the API with CORS, routers and a startup migration hook."""

    settings = settings or get_api_settings()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        ensure_database_is_ready(settings)
        yield

    application = FastAPI(title="Outreach Contacts API", lifespan=lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_origin_regex=LOOPBACK_ORIGIN_REGEX,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )
    application.include_router(imports_router, prefix="/imports", tags=["imports"])
    application.include_router(
        import_configs_router, prefix="/import-configs", tags=["import-configs"]
    )

    @application.get("/", tags=["health"])
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
