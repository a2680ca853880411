"""SQLAlchemy model definition for regions."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.orm import relationship

from ..database import Base


class Region(Base):
    """Geographic region a client belongs to."""

    __tablename__ = "regions"

    id = Column("region_id", String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    clients = relationship("Client", back_populates="region")
