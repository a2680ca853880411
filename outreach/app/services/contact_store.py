"""Read/write contract the import engine uses to reach stored contacts."""

from __future__ import annotations

import abc
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Iterator, Optional, Sequence

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..schemas import ParsedName, SearchScope


@dataclass(frozen=True)
class StoredClient:
    """Snapshot of a contact as seen by the matcher and the merge engine."""

    id: str
    user_id: str
    last_name: str
    first_name: str
    middle_name: Optional[str]
    region_id: Optional[str]
    status: models.ClientStatus
    phones: tuple[str, ...]
    group_ids: frozenset[str]
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class StoredGroup:
    id: str
    name: str
    user_id: str


@dataclass(frozen=True)
class StoredUser:
    id: str
    username: str
    role: models.UserRole


@dataclass(frozen=True)
class StoredRegion:
    id: str
    name: str


@dataclass(frozen=True)
class ClientSearch:
    """Where a duplicate lookup may look: the union of ``scopes``."""

    scopes: frozenset[SearchScope]
    owner_id: str
    group_id: str

    @property
    def disabled(self) -> bool:
        return not self.scopes or SearchScope.NONE in self.scopes


class ContactStore(abc.ABC):
    """Capabilities consumed by the import pipeline.

    Lookups return snapshots ordered from the oldest to the newest contact.
    """

    @abc.abstractmethod
    def get_user(self, user_id: str) -> Optional[StoredUser]:
        ...

    @abc.abstractmethod
    def get_group(self, group_id: str) -> Optional[StoredGroup]:
        ...

    @abc.abstractmethod
    def find_clients_by_phones(
        self, phones: Sequence[str], search: ClientSearch
    ) -> list[StoredClient]:
        ...

    @abc.abstractmethod
    def find_clients_by_name(
        self, last_name: str, first_name: Optional[str], search: ClientSearch
    ) -> list[StoredClient]:
        ...

    @abc.abstractmethod
    def find_region_by_name(self, name: str) -> Optional[StoredRegion]:
        ...

    @abc.abstractmethod
    def create_region(self, name: str) -> StoredRegion:
        ...

    @abc.abstractmethod
    def create_client(
        self,
        *,
        owner_id: str,
        name: ParsedName,
        region_id: Optional[str],
        status: models.ClientStatus,
        phones: Sequence[str],
        group_id: str,
    ) -> StoredClient:
        ...

    @abc.abstractmethod
    def update_client_fields(self, client_id: str, changes: dict[str, object]) -> StoredClient:
        ...

    @abc.abstractmethod
    def add_phones(self, client_id: str, phones: Iterable[str]) -> list[str]:
        ...

    @abc.abstractmethod
    def add_to_group(self, client_id: str, group_id: str) -> bool:
        ...

    @abc.abstractmethod
    def move_to_group(self, client_id: str, group_id: str) -> bool:
        ...

    @abc.abstractmethod
    def row_scope(self):
        """Context manager undoing every write of a row that raises."""

    @abc.abstractmethod
    def commit(self) -> None:
        ...


def _snapshot(client: models.Client) -> StoredClient:
    return StoredClient(
        id=client.id,
        user_id=client.user_id,
        last_name=client.last_name or "",
        first_name=client.first_name or "",
        middle_name=client.middle_name,
        region_id=client.region_id,
        status=client.status,
        phones=tuple(phone.phone for phone in client.phones),
        group_ids=frozenset(membership.group_id for membership in client.memberships),
        created_at=client.created_at,
    )


class SqlAlchemyContactStore(ContactStore):
    """:class:`ContactStore` backed by a SQLAlchemy session.

    Every mutation is flushed so later rows of the same batch observe it.
    Nothing is committed until :meth:`commit`.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def _clients_query(self):
        return self._db.query(models.Client).options(
            selectinload(models.Client.phones),
            selectinload(models.Client.memberships),
        )

    @staticmethod
    def _scope_clause(search: ClientSearch):
        if SearchScope.ALL_USERS in search.scopes:
            return None

        clauses = []
        if SearchScope.CURRENT_GROUP in search.scopes:
            clauses.append(
                models.Client.memberships.any(
                    models.ClientGroupMembership.group_id == search.group_id
                )
            )
        if SearchScope.OWNER_GROUPS in search.scopes:
            clauses.append(models.Client.user_id == search.owner_id)
            clauses.append(
                models.Client.memberships.any(
                    models.ClientGroupMembership.group.has(
                        models.ClientGroup.user_id == search.owner_id
                    )
                )
            )
        return or_(*clauses)

    def _search(self, criteria, search: ClientSearch) -> list[StoredClient]:
        if search.disabled:
            return []
        query = self._clients_query().filter(*criteria)
        scope = self._scope_clause(search)
        if scope is not None:
            query = query.filter(scope)
        clients = query.order_by(models.Client.created_at, models.Client.id).all()
        return [_snapshot(client) for client in clients]

    def _load(self, client_id: str) -> models.Client:
        client = self._clients_query().filter(models.Client.id == client_id).first()
        if client is None:
            raise LookupError(f"Client {client_id} not found")
        return client

    def get_user(self, user_id: str) -> Optional[StoredUser]:
        user = self._db.get(models.User, user_id)
        if user is None:
            return None
        return StoredUser(id=user.id, username=user.username, role=user.role)

    def get_group(self, group_id: str) -> Optional[StoredGroup]:
        group = self._db.get(models.ClientGroup, group_id)
        if group is None:
            return None
        return StoredGroup(id=group.id, name=group.name, user_id=group.user_id)

    def find_clients_by_phones(
        self, phones: Sequence[str], search: ClientSearch
    ) -> list[StoredClient]:
        if not phones:
            return []
        criteria = [models.Client.phones.any(models.ClientPhone.phone.in_(list(phones)))]
        return self._search(criteria, search)

    def find_clients_by_name(
        self, last_name: str, first_name: Optional[str], search: ClientSearch
    ) -> list[StoredClient]:
        criteria = [func.lower(models.Client.last_name) == last_name.lower()]
        criteria.append(func.lower(models.Client.first_name) == (first_name or "").lower())
        return self._search(criteria, search)

    def find_region_by_name(self, name: str) -> Optional[StoredRegion]:
        region = (
            self._db.query(models.Region)
            .filter(func.lower(models.Region.name) == name.strip().lower())
            .order_by(models.Region.created_at)
            .first()
        )
        if region is None:
            return None
        return StoredRegion(id=region.id, name=region.name)

    def create_region(self, name: str) -> StoredRegion:
        region = models.Region(name=name.strip())
        self._db.add(region)
        self._db.flush()
        return StoredRegion(id=region.id, name=region.name)

    def create_client(
        self,
        *,
        owner_id: str,
        name: ParsedName,
        region_id: Optional[str],
        status: models.ClientStatus,
        phones: Sequence[str],
        group_id: str,
    ) -> StoredClient:
        client = models.Client(
            user_id=owner_id,
            last_name=name.last_name or "",
            first_name=name.first_name or "",
            middle_name=name.middle_name,
            region_id=region_id,
            status=status,
        )
        client.phones = [models.ClientPhone(phone=phone) for phone in dict.fromkeys(phones)]
        client.memberships = [models.ClientGroupMembership(group_id=group_id)]
        self._db.add(client)
        self._db.flush()
        return _snapshot(client)

    def update_client_fields(self, client_id: str, changes: dict[str, object]) -> StoredClient:
        client = self._load(client_id)
        for field, value in changes.items():
            setattr(client, field, value)
        self._db.flush()
        return _snapshot(client)

    def add_phones(self, client_id: str, phones: Iterable[str]) -> list[str]:
        client = self._load(client_id)
        existing = {phone.phone for phone in client.phones}
        added = [phone for phone in dict.fromkeys(phones) if phone not in existing]
        for phone in added:
            client.phones.append(models.ClientPhone(phone=phone))
        self._db.flush()
        return added

    def add_to_group(self, client_id: str, group_id: str) -> bool:
        client = self._load(client_id)
        if any(membership.group_id == group_id for membership in client.memberships):
            return False
        client.memberships.append(models.ClientGroupMembership(group_id=group_id))
        self._db.flush()
        return True

    def move_to_group(self, client_id: str, group_id: str) -> bool:
        client = self._load(client_id)
        current = {membership.group_id for membership in client.memberships}
        if current == {group_id}:
            return False
        for membership in list(client.memberships):
            if membership.group_id != group_id:
                client.memberships.remove(membership)
        if group_id not in current:
            client.memberships.append(models.ClientGroupMembership(group_id=group_id))
        self._db.flush()
        return True

    @contextmanager
    def row_scope(self) -> Iterator[None]:
        with self._db.begin_nested():
            yield

    def commit(self) -> None:
        self._db.commit()


__all__ = [
    "ClientSearch",
    "ContactStore",
    "SqlAlchemyContactStore",
    "StoredClient",
    "StoredGroup",
    "StoredRegion",
    "StoredUser",
]
