"""Inbox service - one conversation per customer, with read state.

Every inbound text, missed call and reply the pipeline sends lands in the
customer's conversation so the team can follow up from the dashboard. A
resolved or archived conversation is reopened when the customer gets in
touch again.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import (
    Business,
    Conversation,
    ConversationMessage,
    ConversationPriority,
    ConversationSource,
    ConversationStatus,
    Location,
    MessageSenderType,
)
from app.models.base import utcnow
from app.schemas.conversation import ConversationUpdate
from app.services import location as location_service
from app.services.events import EventRecorder
from app.services.messaging import SmsClient, send_sms
from app.services.replies import truncate_sms
from app.utils.phone import mask_phone

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 160

# Messages that need a human to look at them
_UNREAD_SENDERS = frozenset({MessageSenderType.CUSTOMER, MessageSenderType.SYSTEM})

_CLOSED_STATUSES = frozenset({ConversationStatus.RESOLVED.value, ConversationStatus.ARCHIVED.value})


async def get_or_open_conversation(
    db: AsyncSession,
    business_id: UUID,
    customer_phone: str,
    source: ConversationSource,
    location_id: UUID | None = None,
) -> Conversation:
    """Get the customer's conversation, creating or reopening it.

    Args:
        db: Database session
        business_id: Business the customer contacted
        customer_phone: Normalized customer number
        source: What brought the customer in (only stored on creation)
        location_id: Location that was contacted, if any

    Returns:
        An open conversation
    """
    result = await db.execute(
        select(Conversation).where(
            Conversation.business_id == business_id,
            Conversation.customer_phone == customer_phone,
        )
    )
    conversation = result.scalar_one_or_none()

    if conversation is None:
        conversation = Conversation(
            business_id=business_id,
            location_id=location_id,
            customer_phone=customer_phone,
            source=source.value,
            status=ConversationStatus.NEW.value,
            priority=ConversationPriority.MEDIUM.value,
            unread_count=0,
        )
        db.add(conversation)
        await db.flush()
        logger.info(f"📥 New conversation {conversation.id} with {mask_phone(customer_phone)}")
        return conversation

    if conversation.status in _CLOSED_STATUSES:
        logger.info(f"Reopening {conversation.status} conversation {conversation.id}")
        conversation.status = ConversationStatus.NEW.value
        conversation.resolved_at = None
        conversation.archived_at = None
    if location_id is not None:
        conversation.location_id = location_id
    return conversation


async def add_message(
    db: AsyncSession,
    conversation: Conversation,
    sender_type: MessageSenderType,
    body: str,
    message_sid: str | None = None,
    reply_source: str | None = None,
) -> ConversationMessage:
    """Append a message and update the conversation's preview and counters."""
    now = utcnow()
    is_read = sender_type not in _UNREAD_SENDERS
    message = ConversationMessage(
        conversation_id=conversation.id,
        sender_type=sender_type.value,
        body=body,
        message_sid=message_sid,
        reply_source=reply_source,
        is_read=is_read,
        read_at=now if is_read else None,
    )
    db.add(message)

    conversation.last_message_at = now
    conversation.last_message_preview = truncate_sms(body, PREVIEW_LENGTH)
    if not is_read:
        conversation.unread_count = (conversation.unread_count or 0) + 1
    if (
        sender_type == MessageSenderType.TEAM
        and conversation.status == ConversationStatus.NEW.value
    ):
        conversation.status = ConversationStatus.IN_PROGRESS.value

    await db.flush()
    return message


async def record_inbound_text(
    db: AsyncSession,
    business: Business,
    customer_phone: str,
    body: str,
    message_sid: str | None = None,
    location: Location | None = None,
) -> Conversation:
    """File a customer's text in their conversation."""
    conversation = await get_or_open_conversation(
        db,
        business.id,
        customer_phone,
        ConversationSource.SMS,
        location_id=location.id if location else None,
    )
    await add_message(db, conversation, MessageSenderType.CUSTOMER, body, message_sid=message_sid)
    return conversation


async def record_missed_call(
    db: AsyncSession,
    business: Business,
    caller: str,
    call_status: str,
    location: Location | None = None,
) -> Conversation:
    """File a missed call as an unread system note in the caller's conversation."""
    conversation = await get_or_open_conversation(
        db,
        business.id,
        caller,
        ConversationSource.MISSED_CALL,
        location_id=location.id if location else None,
    )
    note = f"Missed call ({call_status})"
    if location is not None:
        note = f"Missed call to {location.name} ({call_status})"
    await add_message(db, conversation, MessageSenderType.SYSTEM, note)
    return conversation


async def record_auto_reply(
    db: AsyncSession,
    conversation: Conversation,
    body: str,
    message_sid: str | None,
    reply_source: str | None,
) -> ConversationMessage:
    """File a text the pipeline sent on the business's behalf."""
    return await add_message(
        db,
        conversation,
        MessageSenderType.AUTO_REPLY,
        body,
        message_sid=message_sid,
        reply_source=reply_source,
    )


async def flag_urgent(db: AsyncSession, conversation: Conversation) -> None:
    """Raise the conversation to urgent priority."""
    conversation.priority = ConversationPriority.URGENT.value
    await db.flush()


async def get_conversation(
    db: AsyncSession, business_id: UUID, conversation_id: UUID
) -> Conversation | None:
    """Get a conversation only if it belongs to the business."""
    result = await db.execute(
        select(Conversation).where(
            Conversation.id == conversation_id,
            Conversation.business_id == business_id,
        )
    )
    return result.scalar_one_or_none()


async def list_conversations(
    db: AsyncSession,
    business_id: UUID,
    status: ConversationStatus | None = None,
    include_archived: bool = False,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 50,
) -> list[Conversation]:
    """List a business's conversations, most recent activity first.

    Archived conversations are hidden unless asked for by status or with
    ``include_archived``.
    """
    query = select(Conversation).where(Conversation.business_id == business_id)
    if status is not None:
        query = query.where(Conversation.status == status.value)
    elif not include_archived:
        query = query.where(Conversation.status != ConversationStatus.ARCHIVED.value)
    if unread_only:
        query = query.where(Conversation.unread_count > 0)

    query = query.order_by(
        Conversation.last_message_at.desc().nulls_last(),
        Conversation.created_at.desc(),
    )
    result = await db.execute(query.offset(skip).limit(limit))
    return list(result.scalars().all())


async def list_conversation_messages(
    db: AsyncSession, conversation_id: UUID, skip: int = 0, limit: int = 100
) -> list[ConversationMessage]:
    """Messages of a conversation, oldest first."""
    result = await db.execute(
        select(ConversationMessage)
        .where(ConversationMessage.conversation_id == conversation_id)
        .order_by(ConversationMessage.created_at.asc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_conversation_read(db: AsyncSession, conversation: Conversation) -> int:
    """Mark every unread message as read.

    Returns:
        Number of messages that were unread
    """
    result = await db.execute(
        update(ConversationMessage)
        .where(
            ConversationMessage.conversation_id == conversation.id,
            ConversationMessage.is_read.is_(False),
        )
        .values(is_read=True, read_at=utcnow())
    )
    conversation.unread_count = 0
    await db.flush()
    return result.rowcount or 0


async def update_conversation(
    db: AsyncSession, conversation: Conversation, data: ConversationUpdate
) -> Conversation:
    """Change status and/or priority, keeping resolved_at/archived_at in step."""
    if data.priority is not None:
        conversation.priority = data.priority.value

    if data.status is not None and data.status.value != conversation.status:
        now = utcnow()
        conversation.status = data.status.value
        conversation.resolved_at = now if data.status == ConversationStatus.RESOLVED else None
        conversation.archived_at = now if data.status == ConversationStatus.ARCHIVED else None
        logger.info(f"Conversation {conversation.id} is now {conversation.status}")

    await db.flush()
    await db.refresh(conversation)
    return conversation


async def get_inbox_stats(db: AsyncSession, business_id: UUID) -> dict[str, Any]:
    """Counts of non-archived conversations by status and priority, plus unread."""
    result = await db.execute(
        select(
            Conversation.status,
            Conversation.priority,
            func.count(Conversation.id),
            func.coalesce(func.sum(Conversation.unread_count), 0),
        )
        .where(
            Conversation.business_id == business_id,
            Conversation.status != ConversationStatus.ARCHIVED.value,
        )
        .group_by(Conversation.status, Conversation.priority)
    )

    by_status = {s.value: 0 for s in ConversationStatus if s != ConversationStatus.ARCHIVED}
    by_priority = {p.value: 0 for p in ConversationPriority}
    total = 0
    unread_messages = 0
    for status_value, priority_value, count, unread in result.all():
        total += count
        unread_messages += int(unread)
        if status_value in by_status:
            by_status[status_value] += count
        if priority_value in by_priority:
            by_priority[priority_value] += count

    return {
        "total": total,
        "by_status": by_status,
        "by_priority": by_priority,
        "unread_messages": unread_messages,
    }


async def send_team_reply(
    db: AsyncSession,
    sms_client: SmsClient,
    events: EventRecorder,
    business: Business,
    conversation: Conversation,
    body: str,
) -> ConversationMessage:
    """Text the customer from the dashboard and file the reply.

    Sent from the location's number when the conversation came in through
    one. The customer cooldown does not apply to a human reply.

    Raises:
        SmsSendError: If Twilio rejects the message
    """
    from_number = business.sender_phone
    if conversation.location_id is not None:
        location = await location_service.get_location(db, conversation.location_id)
        if location is not None and location.phone_number:
            from_number = location.phone_number

    sms_result = await send_sms(
        db,
        sms_client,
        events,
        to=conversation.customer_phone,
        body=body,
        from_number=from_number,
        business_id=business.id,
        bypass_rate_limit=True,
    )
    logger.info(f"✉️ Team reply sent in conversation {conversation.id}")
    return await add_message(
        db, conversation, MessageSenderType.TEAM, body, message_sid=sms_result.sid
    )
