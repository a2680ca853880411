"""Duplicate detection and the merge policy applied to matched contacts."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .. import models
from ..schemas import (
    DuplicateAction,
    ImportConfig,
    MatchCriteria,
    NewClientStatus,
    NoDuplicateAction,
    ParsedName,
)
from .contact_store import ClientSearch, ContactStore, StoredClient

NAME_FIELDS = ("last_name", "first_name", "middle_name")

_STATUS_ALIASES = {
    "new": models.ClientStatus.NEW,
    "новый": models.ClientStatus.NEW,
    "old": models.ClientStatus.OLD,
    "старый": models.ClientStatus.OLD,
}


class MatchType(str, enum.Enum):
    PHONE = "phone"
    NAME_AND_PHONE = "name_and_phone"
    NAME = "name"


class StrategyAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


class GroupChange(str, enum.Enum):
    ADD = "add"
    MOVE = "move"


@dataclass(frozen=True)
class MatchResult:
    match_type: Optional[MatchType] = None
    client: Optional[StoredClient] = None

    @property
    def found(self) -> bool:
        return self.client is not None


NO_MATCH = MatchResult()


@dataclass(frozen=True)
class ClientChanges:
    """Field-level mutations for an existing contact."""

    fields: dict[str, object] = field(default_factory=dict)
    new_phones: tuple[str, ...] = ()
    group_change: Optional[GroupChange] = None

    @property
    def is_empty(self) -> bool:
        return not (self.fields or self.new_phones or self.group_change)

    def describe(self) -> str:
        parts = [name for name in NAME_FIELDS if name in self.fields]
        if "region_id" in self.fields:
            parts.append("region")
        if "status" in self.fields:
            parts.append("status")
        if self.new_phones:
            parts.append(f"{len(self.new_phones)} phone(s)")
        if self.group_change is GroupChange.ADD:
            parts.append("added to group")
        elif self.group_change is GroupChange.MOVE:
            parts.append("moved to group")
        return ", ".join(parts)


@dataclass(frozen=True)
class DeduplicationStrategy:
    action: StrategyAction
    reason: str
    existing_client_id: Optional[str] = None
    changes: ClientChanges = field(default_factory=ClientChanges)


def parse_status(raw: Optional[str]) -> Optional[models.ClientStatus]:
    if not raw:
        return None
    return _STATUS_ALIASES.get(raw.strip().lower())


def _same_name(left: Optional[str], right: Optional[str]) -> bool:
    return (left or "").strip().casefold() == (right or "").strip().casefold()


class DuplicateMatcher:
    """Look up the stored contact a row refers to.

    Candidates come back oldest first and the first qualifying one wins.
    """

    def __init__(self, store: ContactStore, criteria: MatchCriteria, search: ClientSearch) -> None:
        self.store = store
        self.criteria = criteria
        self.search = search

    def find(self, name: ParsedName, phones: Sequence[str]) -> MatchResult:
        if self.search.disabled:
            return NO_MATCH

        if self.criteria is MatchCriteria.PHONE:
            candidates = self.store.find_clients_by_phones(phones, self.search)
            return MatchResult(MatchType.PHONE, candidates[0]) if candidates else NO_MATCH

        if self.criteria is MatchCriteria.PHONE_AND_NAME:
            for candidate in self.store.find_clients_by_phones(phones, self.search):
                if _same_name(candidate.last_name, name.last_name) and _same_name(
                    candidate.first_name, name.first_name
                ):
                    return MatchResult(MatchType.NAME_AND_PHONE, candidate)
            return NO_MATCH

        if self.criteria is MatchCriteria.NAME:
            if not name.last_name:
                return NO_MATCH
            candidates = self.store.find_clients_by_name(
                name.last_name, name.first_name, self.search
            )
            return MatchResult(MatchType.NAME, candidates[0]) if candidates else NO_MATCH

        raise ValueError(f"Unsupported match criteria: {self.criteria}")


class MergeDecisionEngine:
    """Turn a match result into a create, update or skip instruction."""

    def __init__(self, config: ImportConfig) -> None:
        self.config = config

    def status_for_new_client(self, row_status: Optional[str]) -> models.ClientStatus:
        configured = self.config.additional.new_client_status
        if configured is NewClientStatus.FROM_FILE:
            return parse_status(row_status) or models.ClientStatus.NEW
        return models.ClientStatus(configured.value)

    def status_for_update(self, row_status: Optional[str]) -> Optional[models.ClientStatus]:
        if not self.config.additional.update_status:
            return None
        configured = self.config.additional.new_client_status
        if configured is NewClientStatus.FROM_FILE:
            return parse_status(row_status)
        return models.ClientStatus(configured.value)

    def decide(
        self,
        match: MatchResult,
        *,
        name: ParsedName,
        phones: Sequence[str],
        group_id: str,
        region_id: Optional[str] = None,
        row_status: Optional[str] = None,
    ) -> DeduplicationStrategy:
        if not match.found:
            return self._decide_without_duplicate()

        existing = match.client
        action = self.config.duplicate_action.default_action
        if action is DuplicateAction.SKIP:
            return DeduplicationStrategy(
                StrategyAction.SKIP, "duplicate found, configured to skip", existing.id
            )
        if action is DuplicateAction.CREATE:
            return DeduplicationStrategy(
                StrategyAction.CREATE, "duplicate found, creating a new client anyway", existing.id
            )
        if action is DuplicateAction.UPDATE:
            changes = self.merge(
                existing,
                name=name,
                phones=phones,
                group_id=group_id,
                region_id=region_id,
                status=self.status_for_update(row_status),
            )
            if changes.is_empty:
                return DeduplicationStrategy(
                    StrategyAction.SKIP, "duplicate found, nothing to update", existing.id
                )
            return DeduplicationStrategy(
                StrategyAction.UPDATE,
                f"duplicate found ({match.match_type.value}), updating: {changes.describe()}",
                existing.id,
                changes,
            )
        raise ValueError(f"Unsupported duplicate action: {action}")

    def _decide_without_duplicate(self) -> DeduplicationStrategy:
        action = self.config.no_duplicate_action
        if action is NoDuplicateAction.CREATE:
            return DeduplicationStrategy(StrategyAction.CREATE, "no duplicate, creating new client")
        if action is NoDuplicateAction.SKIP:
            return DeduplicationStrategy(StrategyAction.SKIP, "no duplicate, configured to skip")
        raise ValueError(f"Unsupported no-duplicate action: {action}")

    def merge(
        self,
        existing: StoredClient,
        *,
        name: ParsedName,
        phones: Sequence[str],
        group_id: str,
        region_id: Optional[str] = None,
        status: Optional[models.ClientStatus] = None,
    ) -> ClientChanges:
        """Compute non-destructive changes for ``existing``.

        Populated fields are never overwritten and phones or memberships are
        only ever added, except that moving to the group drops other groups.
        """

        policy = self.config.duplicate_action
        fields: dict[str, object] = {}

        if policy.update_name:
            for attribute in NAME_FIELDS:
                incoming = getattr(name, attribute)
                if incoming and not getattr(existing, attribute):
                    fields[attribute] = incoming

        if policy.update_region and region_id and not existing.region_id:
            fields["region_id"] = region_id

        if status is not None and status != existing.status:
            fields["status"] = status

        new_phones: tuple[str, ...] = ()
        if policy.add_phones:
            known = set(existing.phones)
            new_phones = tuple(phone for phone in dict.fromkeys(phones) if phone not in known)

        group_change = None
        if policy.move_to_group:
            if existing.group_ids != frozenset({group_id}):
                group_change = GroupChange.MOVE
        elif policy.add_to_group and group_id not in existing.group_ids:
            group_change = GroupChange.ADD

        return ClientChanges(fields=fields, new_phones=new_phones, group_change=group_change)


__all__ = [
    "ClientChanges",
    "DeduplicationStrategy",
    "DuplicateMatcher",
    "GroupChange",
    "MatchResult",
    "MatchType",
    "MergeDecisionEngine",
    "NO_MATCH",
    "StrategyAction",
    "parse_status",
]
