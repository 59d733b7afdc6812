"""Billing API endpoints - Stripe checkout, portal and webhook."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_business, get_db
from app.models import Business
from app.schemas.billing import CheckoutRequest, RedirectResponse, WebhookAck
from app.services import billing as billing_service
from app.services.billing import BillingError, WebhookVerificationError

router = APIRouter(prefix="/billing", tags=["billing"])
logger = logging.getLogger(__name__)


@router.post(
    "/checkout",
    response_model=RedirectResponse,
    summary="Start a subscription checkout",
)
async def create_checkout(
    data: CheckoutRequest,
    business: Annotated[Business, Depends(get_current_business)],
) -> RedirectResponse:
    """Create a Stripe Checkout session for the current business."""
    try:
        url = billing_service.create_checkout_session(business, data.plan)
    except BillingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return RedirectResponse(url=url)


@router.post(
    "/portal",
    response_model=RedirectResponse,
    summary="Open the Stripe customer portal",
)
async def create_portal(
    business: Annotated[Business, Depends(get_current_business)],
) -> RedirectResponse:
    """Create a Stripe billing portal session for the current business."""
    try:
        url = billing_service.create_portal_session(business)
    except BillingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return RedirectResponse(url=url)


@router.post(
    "/webhook",
    response_model=WebhookAck,
    summary="Stripe webhook",
)
async def stripe_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    stripe_signature: Annotated[str | None, Header(alias="stripe-signature")] = None,
) -> WebhookAck:
    """Verify and apply a Stripe event.

    Returns:
        {"received": true} once the event is applied (or ignored)
    """
    payload = await request.body()
    try:
        event = billing_service.parse_webhook_event(payload, stripe_signature)
    except WebhookVerificationError as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except BillingError as e:
        logger.error(f"Stripe webhook received but billing is not configured: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e

    logger.info(f"Stripe event {event.get('id')} ({event.get('type')})")
    await billing_service.handle_webhook_event(db, event)
    await db.commit()
    return WebhookAck()
