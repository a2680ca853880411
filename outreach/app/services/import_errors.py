"""Exceptions raised by the contact import services."""

from __future__ import annotations


class ImportServiceError(RuntimeError):
    """Base class for failures that abort an import before or outside row processing."""


class ImportFileError(ImportServiceError):
    """Raised when the uploaded spreadsheet cannot be decoded."""


class ImportGroupNotFoundError(ImportServiceError):
    """Raised when the destination group does not exist."""


class ImportPolicyError(ImportServiceError):
    """Raised when the importing user may not run the requested configuration."""


class ImportConfigError(RuntimeError):
    """Raised when an import configuration cannot be stored or resolved."""


class ImportConfigNotFoundError(ImportConfigError):
    """Raised when a saved configuration or template does not exist."""


__all__ = [
    "ImportConfigError",
    "ImportConfigNotFoundError",
    "ImportFileError",
    "ImportGroupNotFoundError",
    "ImportPolicyError",
    "ImportServiceError",
]
