"""Pydantic schemas describing import configurations."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field

from .common import CamelModel


class SearchScope(str, enum.Enum):
    """Where existing contacts are looked up."""

    NONE = "none"
    CURRENT_GROUP = "current_group"
    OWNER_GROUPS = "owner_groups"
    ALL_USERS = "all_users"


class MatchCriteria(str, enum.Enum):
    """Fields that must agree for two contacts to be the same person."""

    PHONE = "phone"
    PHONE_AND_NAME = "phone_and_name"
    NAME = "name"


class DuplicateAction(str, enum.Enum):
    SKIP = "skip"
    UPDATE = "update"
    CREATE = "create"


class NoDuplicateAction(str, enum.Enum):
    CREATE = "create"
    SKIP = "skip"


class ErrorHandling(str, enum.Enum):
    """Batch level reaction to a failing row."""

    STOP = "stop"
    SKIP = "skip"
    WARN = "warn"


class NewClientStatus(str, enum.Enum):
    NEW = "NEW"
    OLD = "OLD"
    FROM_FILE = "from_file"


class SearchScopeConfig(CamelModel):
    model_config = ConfigDict(frozen=True)

    scopes: list[SearchScope] = Field(..., min_length=1)
    match_criteria: MatchCriteria = MatchCriteria.PHONE


class DuplicateActionConfig(CamelModel):
    model_config = ConfigDict(frozen=True)

    default_action: DuplicateAction = DuplicateAction.UPDATE
    update_name: bool = False
    update_region: bool = False
    add_phones: bool = False
    add_to_group: bool = False
    move_to_group: bool = False


class ValidationConfig(CamelModel):
    model_config = ConfigDict(frozen=True)

    require_name: bool = False
    require_phone: bool = True
    require_region: bool = False
    error_handling: ErrorHandling = ErrorHandling.SKIP


class AdditionalConfig(CamelModel):
    model_config = ConfigDict(frozen=True)

    new_client_status: NewClientStatus = NewClientStatus.NEW
    update_status: bool = False


class ImportConfigBase(CamelModel):
    """Policy fields shared by stored, preset and submitted configurations."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_default: bool = False
    search_scope: SearchScopeConfig
    duplicate_action: DuplicateActionConfig
    no_duplicate_action: NoDuplicateAction = NoDuplicateAction.CREATE
    validation: ValidationConfig
    additional: AdditionalConfig = Field(default_factory=AdditionalConfig)


class ImportConfigCreate(ImportConfigBase):
    """Payload used when saving a new configuration."""


class ImportConfigUpdate(CamelModel):
    """Partial update; omitted sections keep their stored values."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_default: Optional[bool] = None
    search_scope: Optional[SearchScopeConfig] = None
    duplicate_action: Optional[DuplicateActionConfig] = None
    no_duplicate_action: Optional[NoDuplicateAction] = None
    validation: Optional[ValidationConfig] = None
    additional: Optional[AdditionalConfig] = None


class ImportConfig(ImportConfigBase):
    """A resolved configuration, either saved by a user or built from a preset."""

    id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ImportConfigTemplate(CamelModel):
    """Listing entry for a built-in preset."""

    id: str
    name: str
    description: Optional[str] = None
    is_template: bool = True


class ImportConfigListResponse(CamelModel):
    configs: list[ImportConfig] = Field(default_factory=list)
    templates: list[ImportConfigTemplate] = Field(default_factory=list)


class TemplateInstantiateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
