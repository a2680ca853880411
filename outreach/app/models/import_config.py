"""Persisted import configurations."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import relationship

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImportConfigRecord(Base):
    """A user's saved import configuration.

    ``config`` holds the JSON form of the policy object; ``name``,
    ``description`` and ``is_default`` are duplicated as columns so listings
    and the single-default invariant can be handled in SQL.
    """

    __tablename__ = "import_configs"

    id = Column("config_id", String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String(36),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False, server_default="0")
    config = Column(JSON, nullable=False)
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

    owner = relationship("User", back_populates="import_configs")


Index("import_configs_user_default_idx", ImportConfigRecord.user_id, ImportConfigRecord.is_default)
