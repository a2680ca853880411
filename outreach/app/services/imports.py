"""Bulk import of contacts into a client group."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..schemas import ErrorHandling, RowStatus, SearchScope
from ..settings import ImportSettings, get_import_settings
from .contact_store import (
    ClientSearch,
    ContactStore,
    SqlAlchemyContactStore,
    StoredGroup,
    StoredUser,
)
from .deduplication import (
    DeduplicationStrategy,
    DuplicateMatcher,
    GroupChange,
    MergeDecisionEngine,
    StrategyAction,
)
from .import_configs import ImportConfigService
from .import_errors import (
    ImportFileError,
    ImportGroupNotFoundError,
    ImportPolicyError,
    ImportServiceError,
)
from .name_parser import parse_full_name
from .phone_parser import parse_phones, valid_numbers
from .regions import RegionResolution, RegionResolver
from .row_parser import parse_spreadsheet

LOGGER = logging.getLogger(__name__)

PRIVILEGED_SCOPE_ROLES = {models.UserRole.ROOT}
GROUP_ADMIN_ROLES = {models.UserRole.ROOT, models.UserRole.ADMIN}


class _RowProcessingError(Exception):
    """Raised when an import row fails the configured validation."""


@dataclass
class _ImportAccumulator:
    statistics: schemas.ImportStatistics = field(default_factory=schemas.ImportStatistics)
    processed_rows: list[schemas.ProcessedRow] = field(default_factory=list)
    errors: list[schemas.ImportRowError] = field(default_factory=list)
    aborted: bool = False

    def register_processed(self, processed: schemas.ProcessedRow, region_created: bool) -> None:
        self.statistics.total += 1
        if processed.status is RowStatus.NEW:
            self.statistics.created += 1
        elif processed.status is RowStatus.UPDATED:
            self.statistics.updated += 1
        elif processed.status is RowStatus.SKIPPED:
            self.statistics.skipped += 1
        if region_created:
            self.statistics.regions_created += 1
        self.processed_rows.append(processed)

    def register_skipped(
        self,
        row: schemas.ParsedRow,
        parsed_name: schemas.ParsedName,
        parsed_phones: list[schemas.ParsedPhone],
        message: str,
    ) -> None:
        self.statistics.total += 1
        self.statistics.skipped += 1
        self.processed_rows.append(
            schemas.ProcessedRow(
                parsed_row=row,
                parsed_name=parsed_name,
                parsed_phones=parsed_phones,
                status=RowStatus.SKIPPED,
                error=message,
            )
        )

    def register_error(
        self,
        row: schemas.ParsedRow,
        parsed_name: schemas.ParsedName,
        parsed_phones: list[schemas.ParsedPhone],
        message: str,
    ) -> None:
        self.statistics.total += 1
        self.statistics.errors += 1
        self.processed_rows.append(
            schemas.ProcessedRow(
                parsed_row=row,
                parsed_name=parsed_name,
                parsed_phones=parsed_phones,
                status=RowStatus.ERROR,
                error=message,
            )
        )
        self._append_error(row, message)

    def register_abort(self, row: schemas.ParsedRow, message: str) -> None:
        self.aborted = True
        self._append_error(row, message)

    def _append_error(self, row: schemas.ParsedRow, message: str) -> None:
        self.errors.append(
            schemas.ImportRowError(
                row_number=row.row_number,
                message=message,
                data=schemas.ImportRowData(name=row.name, phone=row.phone, region=row.region),
            )
        )

    def build(self, group: StoredGroup) -> schemas.ImportResult:
        return schemas.ImportResult(
            success=not self.aborted,
            statistics=self.statistics,
            processed_rows=self.processed_rows,
            errors=self.errors,
            group_id=group.id,
            group_name=group.name,
        )


@dataclass
class _RowContext:
    group: StoredGroup
    matcher: DuplicateMatcher
    engine: MergeDecisionEngine
    regions: RegionResolver


def _describe_store_error(error: Exception) -> str:
    if isinstance(error, IntegrityError):
        message = str(getattr(error, "orig", error))
        if "UNIQUE" in message.upper():
            return "The row conflicts with values already stored."
        return "The row violates a database constraint."
    if isinstance(error, LookupError):
        return str(error.args[0]) if error.args else "Referenced record not found."
    return "The row could not be saved."


class ImportService:
    """Runs contact imports against a :class:`ContactStore`.

    Rows are processed one after another so that each row sees the contacts
    created or updated by the rows before it.
    """

    def __init__(self, store: ContactStore, settings: Optional[ImportSettings] = None) -> None:
        self.store = store
        self.settings = settings or get_import_settings()

    @staticmethod
    def import_clients(
        db: Session,
        *,
        content: bytes,
        filename: str,
        group_id: str,
        user_id: str,
        config_id: Optional[str] = None,
        settings: Optional[ImportSettings] = None,
    ) -> schemas.ImportResult:
        """Decode a spreadsheet and import it with the user's configuration."""

        config = ImportConfigService.resolve_for_import(db, user_id, config_id)
        service = ImportService(SqlAlchemyContactStore(db), settings)
        importer, group = service.prepare(group_id=group_id, user_id=user_id, config=config)
        rows = parse_spreadsheet(content, filename)
        LOGGER.info("Spreadsheet %r decoded into %s rows", filename, len(rows))
        return service.run(rows, importer=importer, group=group, config=config)

    def prepare(
        self, *, group_id: str, user_id: str, config: schemas.ImportConfig
    ) -> tuple[StoredUser, StoredGroup]:
        """Check everything that must hold before the first row is touched."""

        importer = self.store.get_user(user_id)
        if importer is None:
            raise ImportPolicyError(f"User {user_id} not found")

        group = self.store.get_group(group_id)
        if group is None:
            raise ImportGroupNotFoundError(f"Group with id {group_id} not found")

        if importer.role not in GROUP_ADMIN_ROLES and group.user_id != importer.id:
            raise ImportPolicyError("Only the group owner may import into this group")

        if (
            SearchScope.ALL_USERS in config.search_scope.scopes
            and importer.role not in PRIVILEGED_SCOPE_ROLES
        ):
            raise ImportPolicyError("The all_users search scope requires the ROOT role")

        return importer, group

    def import_rows(
        self,
        rows: Iterable[schemas.ParsedRow],
        *,
        group_id: str,
        user_id: str,
        config: schemas.ImportConfig,
    ) -> schemas.ImportResult:
        importer, group = self.prepare(group_id=group_id, user_id=user_id, config=config)
        return self.run(rows, importer=importer, group=group, config=config)

    def run(
        self,
        rows: Iterable[schemas.ParsedRow],
        *,
        importer: StoredUser,
        group: StoredGroup,
        config: schemas.ImportConfig,
    ) -> schemas.ImportResult:
        rows = list(rows)
        if len(rows) > self.settings.max_rows:
            LOGGER.warning(
                "Import into group %s truncated from %s to %s rows",
                group.id,
                len(rows),
                self.settings.max_rows,
            )
            rows = rows[: self.settings.max_rows]

        LOGGER.info(
            "Starting import into group %s (%r) owned by %s; imported by %s with config %s (%r)",
            group.id,
            group.name,
            group.user_id,
            importer.id,
            config.id,
            config.name,
        )

        search = ClientSearch(
            scopes=frozenset(config.search_scope.scopes),
            owner_id=group.user_id,
            group_id=group.id,
        )
        context = _RowContext(
            group=group,
            matcher=DuplicateMatcher(self.store, config.search_scope.match_criteria, search),
            engine=MergeDecisionEngine(config),
            regions=RegionResolver(
                self.store, importer, creator_roles=self.settings.region_creator_roles
            ),
        )
        handling = config.validation.error_handling
        accumulator = _ImportAccumulator()

        for row in rows:
            parsed_name = parse_full_name(row.name)
            parsed_phones = parse_phones(
                row.phone, lenient=self.settings.structural_phone_fallback
            )
            region = RegionResolution(region_id=None)
            try:
                self._validate(row, parsed_name, parsed_phones, config.validation)
                with self.store.row_scope():
                    region = context.regions.resolve(row.region)
                    processed = self._apply(row, parsed_name, parsed_phones, region, context)
            except _RowProcessingError as exc:
                message = str(exc)
            except (SQLAlchemyError, LookupError) as exc:
                context.regions.discard(region)
                message = _describe_store_error(exc)
                LOGGER.debug("Store failure on row %s", row.row_number, exc_info=True)
            else:
                accumulator.register_processed(processed, region.created)
                continue

            LOGGER.warning(
                "Import row %s failed: %s (name=%r phone=%r region=%r)",
                row.row_number,
                message,
                row.name,
                row.phone,
                row.region,
            )
            if handling is ErrorHandling.STOP:
                accumulator.register_abort(row, message)
                break
            if handling is ErrorHandling.SKIP:
                accumulator.register_skipped(row, parsed_name, parsed_phones, message)
            elif handling is ErrorHandling.WARN:
                accumulator.register_error(row, parsed_name, parsed_phones, message)
            else:
                raise ValueError(f"Unsupported error handling: {handling}")

        self.store.commit()
        result = accumulator.build(group)
        log = LOGGER.warning if accumulator.aborted else LOGGER.info
        log(
            "Import into group %s finished (success=%s): %s",
            group.id,
            result.success,
            result.statistics.model_dump(),
        )
        return result

    @staticmethod
    def _validate(
        row: schemas.ParsedRow,
        parsed_name: schemas.ParsedName,
        parsed_phones: Sequence[schemas.ParsedPhone],
        validation: schemas.ValidationConfig,
    ) -> None:
        if validation.require_phone and not valid_numbers(parsed_phones):
            raise _RowProcessingError("No valid phone numbers found")
        if validation.require_name and parsed_name.is_empty:
            raise _RowProcessingError("Name is required")
        if validation.require_region and not row.region.strip():
            raise _RowProcessingError("Region is required")

    def _apply(
        self,
        row: schemas.ParsedRow,
        parsed_name: schemas.ParsedName,
        parsed_phones: list[schemas.ParsedPhone],
        region: RegionResolution,
        context: _RowContext,
    ) -> schemas.ProcessedRow:
        phones = valid_numbers(parsed_phones)
        match = context.matcher.find(parsed_name, phones)
        strategy = context.engine.decide(
            match,
            name=parsed_name,
            phones=phones,
            group_id=context.group.id,
            region_id=region.region_id,
            row_status=row.status,
        )

        if strategy.action is StrategyAction.CREATE:
            client = self.store.create_client(
                owner_id=context.group.user_id,
                name=parsed_name,
                region_id=region.region_id,
                status=context.engine.status_for_new_client(row.status),
                phones=phones,
                group_id=context.group.id,
            )
            client_id, status = client.id, RowStatus.NEW
        elif strategy.action is StrategyAction.UPDATE:
            self._apply_changes(strategy, context.group.id)
            client_id, status = strategy.existing_client_id, RowStatus.UPDATED
        elif strategy.action is StrategyAction.SKIP:
            client_id, status = strategy.existing_client_id, RowStatus.SKIPPED
        else:
            raise ValueError(f"Unsupported strategy action: {strategy.action}")

        return schemas.ProcessedRow(
            parsed_row=row,
            parsed_name=parsed_name,
            parsed_phones=parsed_phones,
            region_id=region.region_id,
            status=status,
            client_id=client_id,
            reason=strategy.reason,
        )

    def _apply_changes(self, strategy: DeduplicationStrategy, group_id: str) -> None:
        client_id = strategy.existing_client_id
        changes = strategy.changes
        if changes.fields:
            self.store.update_client_fields(client_id, changes.fields)
        if changes.new_phones:
            self.store.add_phones(client_id, changes.new_phones)
        if changes.group_change is GroupChange.MOVE:
            self.store.move_to_group(client_id, group_id)
        elif changes.group_change is GroupChange.ADD:
            self.store.add_to_group(client_id, group_id)


__all__ = [
    "ImportFileError",
    "ImportGroupNotFoundError",
    "ImportPolicyError",
    "ImportService",
    "ImportServiceError",
]
