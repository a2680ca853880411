"""SQLAlchemy model definitions for clients (contacts)."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, String, func
from sqlalchemy.orm import relationship

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClientStatus(str, enum.Enum):
    """Lifecycle marker used by campaigns to tell fresh contacts apart."""

    NEW = "NEW"
    OLD = "OLD"


class Client(Base):
    """Represents a contact owned by a user."""

    __tablename__ = "clients"

    id = Column("client_id", String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String(36),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    last_name = Column(String(255), nullable=False, default="")
    first_name = Column(String(255), nullable=False, default="")
    middle_name = Column(String(255), nullable=True)
    region_id = Column(
        String(36),
        ForeignKey("regions.region_id", ondelete="SET NULL"),
        nullable=True,
    )
    status = Column(
        Enum(
            ClientStatus,
            name="client_status_enum",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=ClientStatus.NEW,
    )
    # Set in Python so rows created within the same second keep their order.
    created_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    owner = relationship("User", back_populates="clients")
    region = relationship("Region", back_populates="clients")
    phones = relationship(
        "ClientPhone",
        back_populates="client",
        cascade="all, delete-orphan",
        order_by="ClientPhone.created_at",
    )
    memberships = relationship(
        "ClientGroupMembership",
        back_populates="client",
        cascade="all, delete-orphan",
    )


Index("clients_user_idx", Client.user_id)
Index("clients_name_idx", Client.last_name, Client.first_name)
Index("clients_created_idx", Client.created_at)
