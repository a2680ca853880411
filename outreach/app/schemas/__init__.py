"""Expose Pydantic schemas for convenient imports."""

from .common import CamelModel
from .import_config import (
    AdditionalConfig,
    DuplicateAction,
    DuplicateActionConfig,
    ErrorHandling,
    ImportConfig,
    ImportConfigBase,
    ImportConfigCreate,
    ImportConfigListResponse,
    ImportConfigTemplate,
    ImportConfigUpdate,
    MatchCriteria,
    NewClientStatus,
    NoDuplicateAction,
    SearchScope,
    SearchScopeConfig,
    TemplateInstantiateRequest,
    ValidationConfig,
)
from .imports import (
    ClientImportRequest,
    ContentEncoding,
    ImportResult,
    ImportRowData,
    ImportRowError,
    ImportStatistics,
    ParsedName,
    ParsedPhone,
    ParsedRow,
    ProcessedRow,
    RowStatus,
)

__all__ = [
    "CamelModel",
    "AdditionalConfig",
    "DuplicateAction",
    "DuplicateActionConfig",
    "ErrorHandling",
    "ImportConfig",
    "ImportConfigBase",
    "ImportConfigCreate",
    "ImportConfigListResponse",
    "ImportConfigTemplate",
    "ImportConfigUpdate",
    "MatchCriteria",
    "NewClientStatus",
    "NoDuplicateAction",
    "SearchScope",
    "SearchScopeConfig",
    "TemplateInstantiateRequest",
    "ValidationConfig",
    "ClientImportRequest",
    "ContentEncoding",
    "ImportResult",
    "ImportRowData",
    "ImportRowError",
    "ImportStatistics",
    "ParsedName",
    "ParsedPhone",
    "ParsedRow",
    "ProcessedRow",
    "RowStatus",
]
