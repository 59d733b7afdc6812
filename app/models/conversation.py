"""Conversation model - one inbox thread per customer of a business."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.business import Business
    from app.models.conversation_message import ConversationMessage


class ConversationStatus(str, Enum):
    """Inbox status enum."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    ARCHIVED = "archived"


class ConversationPriority(str, Enum):
    """Inbox priority enum."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ConversationSource(str, Enum):
    """What opened the thread."""

    SMS = "sms"
    MISSED_CALL = "missed_call"


class Conversation(Base, UUIDMixin, TimestampMixin):
    """Texts and missed calls between a business and one customer number."""

    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("business_id", "customer_phone", name="uq_conversations_business_customer"),
    )

    business_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    location_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("locations.id", ondelete="SET NULL"), nullable=True
    )
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ConversationStatus.NEW.value
    )
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ConversationPriority.MEDIUM.value
    )
    source: Mapped[str] = mapped_column(String(20), nullable=False)

    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_message_preview: Mapped[str | None] = mapped_column(String(160), nullable=True)
    unread_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    business: Mapped["Business"] = relationship("Business", back_populates="conversations")
    messages: Mapped[list["ConversationMessage"]] = relationship(
        "ConversationMessage", back_populates="conversation", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Conversation(id={self.id}, status='{self.status}', unread={self.unread_count})>"
