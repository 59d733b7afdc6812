"""OwnerAlert model - SMS alerts sent to business owners."""

import uuid
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.business import Business


class OwnerAlertType(str, Enum):
    """Why the owner was alerted."""

    MISSED_CALL = "missed_call"
    URGENT_MESSAGE = "urgent_message"


class OwnerAlert(Base, UUIDMixin, TimestampMixin):
    """One alert delivered (or attempted) to an owner."""

    __tablename__ = "owner_alerts"

    business_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    alert_type: Mapped[str] = mapped_column(String(30), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # sent | failed
    message_sid: Mapped[str | None] = mapped_column(String(64), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    business: Mapped["Business"] = relationship("Business", back_populates="owner_alerts")

    def __repr__(self) -> str:
        """String representation."""
        return f"<OwnerAlert(type={self.alert_type}, status={self.status})>"
