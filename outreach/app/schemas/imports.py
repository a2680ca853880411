"""Pydantic schemas for the bulk contact import pipeline."""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import ConfigDict, Field

from .common import CamelModel


class ParsedRow(CamelModel):
    """One spreadsheet line reduced to the columns the importer understands."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    phone: str = ""
    region: str = ""
    row_number: int = Field(..., ge=1)
    status: Optional[str] = None


class ParsedName(CamelModel):
    model_config = ConfigDict(frozen=True)

    last_name: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.last_name or self.first_name)


class ParsedPhone(CamelModel):
    model_config = ConfigDict(frozen=True)

    normalized: str
    original: str
    is_valid: bool


class RowStatus(str, enum.Enum):
    NEW = "new"
    UPDATED = "updated"
    SKIPPED = "skipped"
    ERROR = "error"


class ProcessedRow(CamelModel):
    """Audit record describing what happened to a single row."""

    model_config = ConfigDict(frozen=True)

    parsed_row: ParsedRow
    parsed_name: ParsedName = Field(default_factory=ParsedName)
    parsed_phones: list[ParsedPhone] = Field(default_factory=list)
    region_id: Optional[str] = None
    status: RowStatus
    error: Optional[str] = None
    client_id: Optional[str] = None
    reason: Optional[str] = None


class ImportStatistics(CamelModel):
    total: int = Field(default=0, ge=0)
    created: int = Field(default=0, ge=0)
    updated: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    regions_created: int = Field(default=0, ge=0)


class ImportRowData(CamelModel):
    name: Optional[str] = None
    phone: str = ""
    region: str = ""


class ImportRowError(CamelModel):
    row_number: int = Field(..., ge=1)
    message: str
    data: Optional[ImportRowData] = None


class ImportResult(CamelModel):
    """Terminal output of one import invocation."""

    success: bool
    statistics: ImportStatistics
    processed_rows: list[ProcessedRow] = Field(default_factory=list)
    errors: list[ImportRowError] = Field(default_factory=list)
    group_id: str
    group_name: str


class ContentEncoding(str, enum.Enum):
    TEXT = "text"
    BASE64 = "base64"


class ClientImportRequest(CamelModel):
    """Request payload carrying the uploaded spreadsheet."""

    filename: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    content_encoding: ContentEncoding = ContentEncoding.TEXT
