"""Decoding of uploaded spreadsheets into :class:`ParsedRow` values."""

from __future__ import annotations

import io
import logging
import math
import zipfile
from pathlib import PurePath
from typing import Iterable, Optional, Sequence

import pandas as pd

from ..schemas import ParsedRow
from .import_errors import ImportFileError

LOGGER = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".csv", ".xlsx"}

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name", "имя", "фио", "full name", "полное имя", "контакт"),
    "phone": ("phone", "телефон", "tel", "mobile", "мобильный", "номер"),
    "region": ("region", "регион", "область", "город", "city", "area"),
}
OPTIONAL_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "status": ("status", "статус"),
}
MISSING_COLUMN_LABELS = {
    "name": "name (имя, фио)",
    "phone": "phone (телефон)",
    "region": "region (регион)",
}


def find_column_index(headers: Sequence[str], variants: Iterable[str]) -> Optional[int]:
    """Return the first header that contains, or is contained in, one of ``variants``."""

    normalized_variants = [variant.strip().lower() for variant in variants]
    for index, header in enumerate(headers):
        normalized = (header or "").strip().lower()
        if not normalized:
            continue
        if any(variant in normalized or normalized in variant for variant in normalized_variants):
            return index
    return None


def _cell_to_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    text = str(value).strip()
    if text.endswith(".0") and text[:-2].isdigit():
        return text[:-2]
    return text


def _cell(row: Sequence[object], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return _cell_to_text(row[index])


def parse_rows(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> list[ParsedRow]:
    """Map raw spreadsheet rows to :class:`ParsedRow` using the header aliases.

    ``rows`` excludes the header line, so the first data row is reported as
    row number 2. Rows with no name, phone or region are skipped.
    """

    headers = [_cell_to_text(header) for header in headers]
    indexes = {
        column: find_column_index(headers, variants) for column, variants in COLUMN_ALIASES.items()
    }
    missing = [MISSING_COLUMN_LABELS[column] for column, index in indexes.items() if index is None]
    if missing:
        raise ImportFileError("Missing required columns: " + ", ".join(missing))
    status_index = find_column_index(headers, OPTIONAL_COLUMN_ALIASES["status"])

    parsed: list[ParsedRow] = []
    for offset, row in enumerate(rows, start=2):
        name = _cell(row, indexes["name"])
        phone = _cell(row, indexes["phone"])
        region = _cell(row, indexes["region"])
        if not (name or phone or region):
            continue
        parsed.append(
            ParsedRow(
                name=name or None,
                phone=phone,
                region=region,
                row_number=offset,
                status=_cell(row, status_index) or None,
            )
        )
    LOGGER.debug("Parsed %s data rows from spreadsheet", len(parsed))
    return parsed


def _load_frame(content: bytes, extension: str) -> pd.DataFrame:
    buffer = io.BytesIO(content)
    if extension == ".csv":
        return pd.read_csv(
            buffer,
            header=None,
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
            skip_blank_lines=True,
        )
    return pd.read_excel(buffer, header=None, dtype=object, engine="openpyxl")


def read_spreadsheet(content: bytes, filename: str) -> tuple[list[str], list[list[object]]]:
    """Decode the first sheet of ``content`` into a header and data rows."""

    extension = PurePath(filename or "").suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise ImportFileError(
            f"Unsupported file format: {extension or filename!r}. Supported: csv, xlsx"
        )

    try:
        frame = _load_frame(content, extension)
    except pd.errors.EmptyDataError as exc:
        raise ImportFileError("The spreadsheet is empty.") from exc
    except (ValueError, zipfile.BadZipFile) as exc:
        raise ImportFileError(f"Failed to read spreadsheet: {exc}") from exc

    if frame.empty:
        raise ImportFileError("The spreadsheet is empty.")

    records = frame.astype(object).where(frame.notna(), None).values.tolist()
    headers = [_cell_to_text(value) for value in records[0]]
    return headers, records[1:]


def parse_spreadsheet(content: bytes, filename: str) -> list[ParsedRow]:
    headers, rows = read_spreadsheet(content, filename)
    return parse_rows(headers, rows)


__all__ = [
    "COLUMN_ALIASES",
    "find_column_index",
    "parse_rows",
    "parse_spreadsheet",
    "read_spreadsheet",
]
