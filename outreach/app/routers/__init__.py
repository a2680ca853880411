"""Routers package."""

from .import_configs import router as import_configs_router
from .imports import router as imports_router

__all__ = [
    "import_configs_router",
    "imports_router",
]
