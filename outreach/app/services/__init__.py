"""Service layer encapsulating the contact import engine."""

from .contact_store import ContactStore, SqlAlchemyContactStore, StoredClient
from .deduplication import DuplicateMatcher, MatchType, MergeDecisionEngine
from .import_configs import PRESET_TEMPLATES, ImportConfigService, get_default_import_config
from .import_errors import (
    ImportConfigError,
    ImportConfigNotFoundError,
    ImportFileError,
    ImportGroupNotFoundError,
    ImportPolicyError,
    ImportServiceError,
)
from .imports import ImportService
from .name_parser import parse_full_name
from .phone_parser import normalize_phone, parse_phones
from .regions import RegionResolver
from .row_parser import parse_rows, parse_spreadsheet, read_spreadsheet

__all__ = [
    "ContactStore",
    "SqlAlchemyContactStore",
    "StoredClient",
    "DuplicateMatcher",
    "MatchType",
    "MergeDecisionEngine",
    "PRESET_TEMPLATES",
    "ImportConfigService",
    "get_default_import_config",
    "ImportConfigError",
    "ImportConfigNotFoundError",
    "ImportFileError",
    "ImportGroupNotFoundError",
    "ImportPolicyError",
    "ImportServiceError",
    "ImportService",
    "parse_full_name",
    "normalize_phone",
    "parse_phones",
    "RegionResolver",
    "parse_rows",
    "parse_spreadsheet",
    "read_spreadsheet",
]
