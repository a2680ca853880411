"""Expose SQLAlchemy models for convenient imports."""

from .client import Client, ClientStatus
from .client_group import ClientGroup, ClientGroupMembership
from .client_phone import ClientPhone
from .import_config import ImportConfigRecord
from .region import Region
from .user import User, UserRole

__all__ = [
    "Client",
    "ClientStatus",
    "ClientGroup",
    "ClientGroupMembership",
    "ClientPhone",
    "ImportConfigRecord",
    "Region",
    "User",
    "UserRole",
]
