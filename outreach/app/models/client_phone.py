"""Phone numbers attached to clients."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from ..database import Base


class ClientPhone(Base):
    """A normalized phone number belonging to one client."""

    __tablename__ = "client_phones"
    __table_args__ = (
        UniqueConstraint("client_id", "phone", name="uq_client_phones_client_phone"),
    )

    id = Column("phone_id", String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = Column(
        String(36),
        ForeignKey("clients.client_id", ondelete="CASCADE"),
        nullable=False,
    )
    phone = Column(String(32), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
    )

    client = relationship("Client", back_populates="phones")


Index("client_phones_phone_idx", ClientPhone.phone)
