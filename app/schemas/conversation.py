"""Pydantic schemas for the conversation inbox."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models import ConversationPriority, ConversationStatus


class ConversationUpdate(BaseModel):
    """Status/priority change from the dashboard."""

    status: ConversationStatus | None = None
    priority: ConversationPriority | None = None

    model_config = ConfigDict(extra="forbid")


class TeamReplyCreate(BaseModel):
    """A reply typed by the team."""

    body: str = Field(..., min_length=1, max_length=1600)


class ConversationMessageResponse(BaseModel):
    """One message in a thread."""

    id: UUID
    conversation_id: UUID
    sender_type: str
    body: str
    message_sid: str | None = None
    reply_source: str | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConversationResponse(BaseModel):
    """Inbox row."""

    id: UUID
    business_id: UUID
    location_id: UUID | None = None
    customer_phone: str
    status: str
    priority: str
    source: str
    last_message_at: datetime | None = None
    last_message_preview: str | None = None
    unread_count: int
    resolved_at: datetime | None = None
    archived_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConversationDetailResponse(ConversationResponse):
    """Conversation with its messages, oldest first."""

    messages: list[ConversationMessageResponse] = Field(default_factory=list)


class InboxStats(BaseModel):
    """Inbox counters (archived conversations excluded)."""

    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    unread_messages: int


class MarkReadResponse(BaseModel):
    """Result of marking a conversation read."""

    conversation_id: UUID
    marked_read: int
