"""Contact groups and the membership of clients in them."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import relationship

from ..database import Base


class ClientGroup(Base):
    """A named list of clients owned by a user; campaigns target groups."""

    __tablename__ = "client_groups"

    id = Column("group_id", String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String(36),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    owner = relationship("User", back_populates="groups")
    memberships = relationship(
        "ClientGroupMembership",
        back_populates="group",
        cascade="all, delete-orphan",
    )


class ClientGroupMembership(Base):
    """Association between a client and a group."""

    __tablename__ = "client_group_members"

    client_id = Column(
        String(36),
        ForeignKey("clients.client_id", ondelete="CASCADE"),
        primary_key=True,
    )
    group_id = Column(
        String(36),
        ForeignKey("client_groups.group_id", ondelete="CASCADE"),
        primary_key=True,
    )
    added_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
    )

    client = relationship("Client", back_populates="memberships")
    group = relationship("ClientGroup", back_populates="memberships")
