"""Business API endpoints used by the dashboard."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import PaginationParams, get_current_business, get_current_user, get_db
from app.models import Business, CallEvent, CallEventType, OwnerAlert, SmsDirection, SmsEvent, SmsStatus
from app.schemas.business import (
    BusinessCreate,
    BusinessResponse,
    BusinessStats,
    BusinessUpdate,
    CallEventResponse,
    SmsEventResponse,
)
from app.services import business as business_service
from app.services.usage import get_daily_token_usage
from app.utils.auth0 import Auth0Claims

router = APIRouter(prefix="/businesses", tags=["businesses"])


@router.post(
    "",
    response_model=BusinessResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create the current user's business",
)
async def create_business(
    data: BusinessCreate,
    user: Annotated[Auth0Claims, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Business:
    """Create a business on a free trial (signup step)."""
    existing = await business_service.get_business_by_auth0_user(db, user.sub)
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A business already exists for this account",
        )

    business = await business_service.create_business(
        db, data, auth0_user_id=user.sub, owner_email=user.email
    )
    await db.commit()
    return business


@router.get(
    "/me",
    response_model=BusinessResponse,
    summary="Get the current user's business",
)
async def get_my_business(
    business: Annotated[Business, Depends(get_current_business)],
) -> Business:
    return business


@router.patch(
    "/me",
    response_model=BusinessResponse,
    summary="Update the current user's business",
)
async def update_my_business(
    data: BusinessUpdate,
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Business:
    """Update settings, FAQs, hours and alert keywords."""
    business = await business_service.update_business(db, business, data)
    await db.commit()
    return business


@router.get(
    "/me/calls",
    response_model=list[CallEventResponse],
    summary="List missed calls",
)
async def list_missed_calls(
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
    pagination: Annotated[PaginationParams, Depends()],
) -> list[CallEvent]:
    """Missed calls, newest first."""
    result = await db.execute(
        select(CallEvent)
        .where(
            CallEvent.business_id == business.id,
            CallEvent.event_type == CallEventType.MISSED.value,
        )
        .order_by(CallEvent.created_at.desc())
        .offset(pagination.skip)
        .limit(pagination.limit)
    )
    return list(result.scalars().all())


@router.get(
    "/me/messages",
    response_model=list[SmsEventResponse],
    summary="List SMS activity",
)
async def list_messages(
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
    pagination: Annotated[PaginationParams, Depends()],
) -> list[SmsEvent]:
    """Inbound and outbound texts, newest first."""
    result = await db.execute(
        select(SmsEvent)
        .where(SmsEvent.business_id == business.id)
        .order_by(SmsEvent.created_at.desc())
        .offset(pagination.skip)
        .limit(pagination.limit)
    )
    return list(result.scalars().all())


@router.get(
    "/me/stats",
    response_model=BusinessStats,
    summary="Dashboard counters",
)
async def get_stats(
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BusinessStats:
    """All-time missed calls, texts sent and owner alerts, plus today's LLM tokens."""
    missed_calls = await db.scalar(
        select(func.count(CallEvent.id)).where(
            CallEvent.business_id == business.id,
            CallEvent.event_type == CallEventType.MISSED.value,
        )
    )
    texts_sent = await db.scalar(
        select(func.count(SmsEvent.id)).where(
            SmsEvent.business_id == business.id,
            SmsEvent.direction == SmsDirection.OUTBOUND.value,
            SmsEvent.status == SmsStatus.SENT.value,
        )
    )
    owner_alerts = await db.scalar(
        select(func.count(OwnerAlert.id)).where(OwnerAlert.business_id == business.id)
    )
    return BusinessStats(
        missed_calls=missed_calls or 0,
        texts_sent=texts_sent or 0,
        owner_alerts=owner_alerts or 0,
        tokens_used_today=await get_daily_token_usage(db, business.id),
    )
