"""CallEvent model - voice webhook activity for analytics and dedupe."""

import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.business import Business


class CallEventType(str, Enum):
    """Kinds of call events we record."""

    INBOUND = "voice.inbound"
    MISSED = "voice.missed"
    STATUS = "voice.status"


class CallEvent(Base, UUIDMixin, TimestampMixin):
    """A single voice webhook we processed."""

    __tablename__ = "call_events"

    call_sid: Mapped[str] = mapped_column(String(64), nullable=False)
    business_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=True
    )
    from_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    to_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    event_type: Mapped[str] = mapped_column(String(30), nullable=False)
    call_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    owner_notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    business: Mapped["Business | None"] = relationship("Business", back_populates="call_events")

    __table_args__ = (
        Index("ix_call_events_call_sid_event_type", "call_sid", "event_type"),
        Index("ix_call_events_business_created", "business_id", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<CallEvent(call_sid={self.call_sid}, type={self.event_type}, status={self.call_status})>"
