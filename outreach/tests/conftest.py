from __future__ import annotations

import base64
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

# Ensure the project root (which exposes the ``outreach`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["OUTREACH_JWT_SECRET"] = base64.urlsafe_b64encode(b"\x07" * 32).decode()
os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "60"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "0"

from outreach.app import models
from outreach.app.database import Base, build_engine, get_db
from outreach.app.main import app
from outreach.app.security import create_access_token

SQLALCHEMY_DATABASE_URL = "sqlite://"
engine = build_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="session", autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def root_user(db_session: Session) -> models.User:
    user = models.User(username="root@example.com", role=models.UserRole.ROOT)
    db_session.add(user)
    db_session.flush()
    return user


@pytest.fixture
def operator(db_session: Session) -> models.User:
    user = models.User(username="operator@example.com", role=models.UserRole.USER)
    db_session.add(user)
    db_session.flush()
    return user


@pytest.fixture
def group(db_session: Session, operator: models.User) -> models.ClientGroup:
    group = models.ClientGroup(user_id=operator.id, name="Рассылка март")
    db_session.add(group)
    db_session.flush()
    return group


@pytest.fixture
def other_group(db_session: Session, operator: models.User) -> models.ClientGroup:
    group = models.ClientGroup(user_id=operator.id, name="Архив")
    db_session.add(group)
    db_session.flush()
    return group


@pytest.fixture
def region(db_session: Session) -> models.Region:
    region = models.Region(name="Moscow")
    db_session.add(region)
    db_session.flush()
    return region


@pytest.fixture
def make_client(db_session: Session) -> Callable[..., models.Client]:
    """Factory storing a contact with phones and group memberships."""

    counter = {"value": 0}

    def _make(
        owner: models.User,
        *,
        phones: tuple[str, ...] = (),
        groups: tuple[models.ClientGroup, ...] = (),
        last_name: str = "",
        first_name: str = "",
        middle_name: Optional[str] = None,
        region_id: Optional[str] = None,
        status: models.ClientStatus = models.ClientStatus.NEW,
        created_at: Optional[datetime] = None,
    ) -> models.Client:
        counter["value"] += 1
        created = created_at or datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(
            minutes=counter["value"]
        )
        client = models.Client(
            user_id=owner.id,
            last_name=last_name,
            first_name=first_name,
            middle_name=middle_name,
            region_id=region_id,
            status=status,
            created_at=created,
        )
        client.phones = [models.ClientPhone(phone=phone) for phone in phones]
        client.memberships = [models.ClientGroupMembership(group_id=item.id) for item in groups]
        db_session.add(client)
        db_session.flush()
        return client

    return _make


@pytest.fixture
def client(db_session: Session, operator: models.User) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            db_session.expire_all()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        token = create_access_token(operator.id)
        test_client.headers.update({"Authorization": f"Bearer {token}"})
        yield test_client
    app.dependency_overrides.pop(get_db, None)
