"""Conversation inbox API endpoints."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import (
    PaginationParams,
    get_current_business,
    get_db,
    get_event_recorder,
    get_sms_client,
)
from app.models import Business, Conversation, ConversationMessage, ConversationStatus
from app.schemas.conversation import (
    ConversationDetailResponse,
    ConversationMessageResponse,
    ConversationResponse,
    ConversationUpdate,
    InboxStats,
    MarkReadResponse,
    TeamReplyCreate,
)
from app.services import inbox as inbox_service
from app.services.events import EventRecorder
from app.services.messaging import SmsClient, SmsSendError

router = APIRouter(prefix="/businesses/me/conversations", tags=["conversations"])
logger = logging.getLogger(__name__)


async def _get_owned_conversation(
    db: AsyncSession, business: Business, conversation_id: UUID
) -> Conversation:
    conversation = await inbox_service.get_conversation(db, business.id, conversation_id)
    if not conversation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Conversation {conversation_id} not found",
        )
    return conversation


@router.get(
    "",
    response_model=list[ConversationResponse],
    summary="List conversations",
)
async def list_conversations(
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
    pagination: Annotated[PaginationParams, Depends()],
    status_filter: Annotated[ConversationStatus | None, Query(alias="status")] = None,
    include_archived: bool = False,
    unread_only: bool = False,
) -> list[Conversation]:
    """Conversations with the most recent activity first."""
    return await inbox_service.list_conversations(
        db,
        business.id,
        status=status_filter,
        include_archived=include_archived,
        unread_only=unread_only,
        skip=pagination.skip,
        limit=pagination.limit,
    )


@router.get(
    "/stats",
    response_model=InboxStats,
    summary="Inbox counters",
)
async def get_inbox_stats(
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InboxStats:
    return InboxStats(**await inbox_service.get_inbox_stats(db, business.id))


@router.get(
    "/{conversation_id}",
    response_model=ConversationDetailResponse,
    summary="Get a conversation with its messages",
)
async def get_conversation(
    conversation_id: UUID,
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ConversationDetailResponse:
    conversation = await _get_owned_conversation(db, business, conversation_id)
    messages = await inbox_service.list_conversation_messages(db, conversation.id)
    # Built from the row's columns; the messages relationship is never lazy-loaded
    return ConversationDetailResponse(
        **ConversationResponse.model_validate(conversation).model_dump(),
        messages=[ConversationMessageResponse.model_validate(m) for m in messages],
    )


@router.get(
    "/{conversation_id}/messages",
    response_model=list[ConversationMessageResponse],
    summary="List messages in a conversation",
)
async def list_conversation_messages(
    conversation_id: UUID,
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
    pagination: Annotated[PaginationParams, Depends()],
) -> list[ConversationMessage]:
    """Messages oldest first."""
    conversation = await _get_owned_conversation(db, business, conversation_id)
    return await inbox_service.list_conversation_messages(
        db, conversation.id, skip=pagination.skip, limit=pagination.limit
    )


@router.post(
    "/{conversation_id}/read",
    response_model=MarkReadResponse,
    summary="Mark a conversation read",
)
async def mark_conversation_read(
    conversation_id: UUID,
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MarkReadResponse:
    conversation = await _get_owned_conversation(db, business, conversation_id)
    marked = await inbox_service.mark_conversation_read(db, conversation)
    await db.commit()
    return MarkReadResponse(conversation_id=conversation.id, marked_read=marked)


@router.patch(
    "/{conversation_id}",
    response_model=ConversationResponse,
    summary="Change status or priority",
)
async def update_conversation(
    conversation_id: UUID,
    data: ConversationUpdate,
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Conversation:
    """Resolve, archive, reopen or reprioritize a conversation."""
    conversation = await _get_owned_conversation(db, business, conversation_id)
    conversation = await inbox_service.update_conversation(db, conversation, data)
    await db.commit()
    return conversation


@router.post(
    "/{conversation_id}/messages",
    response_model=ConversationMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reply to the customer",
)
async def send_team_reply(
    conversation_id: UUID,
    data: TeamReplyCreate,
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
    sms_client: Annotated[SmsClient, Depends(get_sms_client)],
    events: Annotated[EventRecorder, Depends(get_event_recorder)],
) -> ConversationMessage:
    """Text the customer from the inbox."""
    conversation = await _get_owned_conversation(db, business, conversation_id)
    try:
        message = await inbox_service.send_team_reply(
            db, sms_client, events, business, conversation, data.body.strip()
        )
    except SmsSendError as e:
        logger.error(f"❌ Team reply in conversation {conversation_id} failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to send SMS: {e}",
        ) from e
    await db.commit()
    return message
