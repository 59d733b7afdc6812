"""SmsEvent model - every SMS we received or tried to send."""

import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.business import Business


class SmsDirection(str, Enum):
    """Message direction."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


class SmsStatus(str, Enum):
    """Delivery outcome as far as we know it."""

    RECEIVED = "received"
    QUEUED = "queued"
    SENT = "sent"
    SKIPPED = "skipped"  # Rate limited
    FAILED = "failed"


class SmsEvent(Base, UUIDMixin, TimestampMixin):
    """SMS activity log row."""

    __tablename__ = "sms_events"

    message_sid: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    business_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=True
    )
    from_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    to_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    business: Mapped["Business | None"] = relationship("Business", back_populates="sms_events")

    __table_args__ = (
        Index("ix_sms_events_business_created", "business_id", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<SmsEvent(direction={self.direction}, status={self.status}, to={self.to_number})>"
