"""ConversationMessage model - one entry in an inbox thread."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.conversation import Conversation


class MessageSenderType(str, Enum):
    """Who wrote the message."""

    CUSTOMER = "customer"
    AUTO_REPLY = "auto_reply"
    TEAM = "team"
    SYSTEM = "system"  # e.g. "Missed call"


class ConversationMessage(Base, UUIDMixin, TimestampMixin):
    """A text or call note shown in the inbox."""

    __tablename__ = "conversation_messages"
    __table_args__ = (
        Index("ix_conversation_messages_conversation_created", "conversation_id", "created_at"),
    )

    conversation_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_type: Mapped[str] = mapped_column(String(20), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    message_sid: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reply_source: Mapped[str | None] = mapped_column(String(30), nullable=True)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    conversation: Mapped["Conversation"] = relationship("Conversation", back_populates="messages")

    def __repr__(self) -> str:
        """String representation."""
        return f"<ConversationMessage(sender={self.sender_type}, read={self.is_read})>"
