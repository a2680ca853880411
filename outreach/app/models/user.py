"""SQLAlchemy model definition for application users."""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, String, func
from sqlalchemy.orm import relationship

from ..database import Base


class UserRole(str, enum.Enum):
    """Roles recognised by the backoffice."""

    ROOT = "ROOT"
    ADMIN = "ADMIN"
    USER = "USER"


class User(Base):
    """An operator who owns contact groups and import configurations."""

    __tablename__ = "users"

    id = Column("user_id", String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(100), unique=True, nullable=False)
    role = Column(
        Enum(
            UserRole,
            name="user_role_enum",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=UserRole.USER,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    clients = relationship("Client", back_populates="owner")
    groups = relationship("ClientGroup", back_populates="owner")
    import_configs = relationship(
        "ImportConfigRecord",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
