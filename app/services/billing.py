"""Stripe billing - checkout, customer portal and webhook sync."""

import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models import Business, SubscriptionStatus, SubscriptionTier
from app.services import business as business_service

logger = logging.getLogger(__name__)
settings = get_settings()

# Stripe subscription statuses we do not model directly
_STATUS_MAP = {
    "unpaid": SubscriptionStatus.PAST_DUE.value,
    "paused": SubscriptionStatus.PAST_DUE.value,
    "incomplete_expired": SubscriptionStatus.CANCELED.value,
}


class BillingError(Exception):
    """Stripe is not configured or refused a request."""


class WebhookVerificationError(BillingError):
    """The Stripe-Signature header did not verify."""


def _stripe():
    """Configured stripe module."""
    if not settings.stripe_secret_key:
        raise BillingError("Stripe is not configured")
    stripe.api_key = settings.stripe_secret_key
    return stripe


def price_for_plan(plan: str) -> str | None:
    """Stripe price id for a plan name."""
    return {
        SubscriptionTier.BASIC.value: settings.stripe_price_basic,
        SubscriptionTier.PRO.value: settings.stripe_price_pro,
        SubscriptionTier.ENTERPRISE.value: settings.stripe_price_enterprise,
    }.get(plan) or None


def plan_for_price(price_id: str | None) -> str:
    """Plan name for a Stripe price id; unknown prices are basic."""
    if price_id and price_id == settings.stripe_price_pro:
        return SubscriptionTier.PRO.value
    if price_id and price_id == settings.stripe_price_enterprise:
        return SubscriptionTier.ENTERPRISE.value
    return SubscriptionTier.BASIC.value


def map_subscription_status(status: str | None) -> str:
    """Collapse Stripe's subscription statuses onto ours."""
    if not status:
        return SubscriptionStatus.INCOMPLETE.value
    if status in {s.value for s in SubscriptionStatus}:
        return status
    return _STATUS_MAP.get(status, SubscriptionStatus.INCOMPLETE.value)


def _timestamp_to_datetime(value: int | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def create_checkout_session(business: Business, plan: str) -> str:
    """Start a subscription checkout for a business.

    Args:
        business: Business subscribing
        plan: basic | pro | enterprise

    Returns:
        Hosted checkout URL

    Raises:
        BillingError: If the plan has no price or Stripe fails
    """
    price_id = price_for_plan(plan)
    if not price_id:
        raise BillingError(f"No Stripe price configured for plan '{plan}'")

    client = _stripe()
    metadata = {"business_id": str(business.id), "plan": plan}
    params: dict[str, Any] = {
        "mode": "subscription",
        "line_items": [{"price": price_id, "quantity": 1}],
        "success_url": f"{settings.frontend_url}/dashboard/subscription?checkout=success&session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{settings.frontend_url}/dashboard/subscription?checkout=canceled",
        "client_reference_id": str(business.id),
        "metadata": metadata,
        "subscription_data": {"metadata": metadata},
    }
    if business.stripe_customer_id:
        params["customer"] = business.stripe_customer_id
    elif business.owner_email:
        params["customer_email"] = business.owner_email

    # Only the first subscription gets the free trial
    if not business.stripe_subscription_id and settings.trial_days > 0:
        params["subscription_data"]["trial_period_days"] = settings.trial_days

    try:
        session = client.checkout.Session.create(**params)
    except stripe.StripeError as e:
        logger.error(f"Stripe checkout failed for business {business.id}: {e}")
        raise BillingError(str(e)) from e

    logger.info(f"💳 Checkout session {session.id} created for {business.name} ({plan})")
    return session.url


def create_portal_session(business: Business) -> str:
    """Customer portal URL for managing an existing subscription."""
    if not business.stripe_customer_id:
        raise BillingError("Business has no Stripe customer yet")

    client = _stripe()
    try:
        session = client.billing_portal.Session.create(
            customer=business.stripe_customer_id,
            return_url=f"{settings.frontend_url}/dashboard/subscription",
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe portal session failed for business {business.id}: {e}")
        raise BillingError(str(e)) from e
    return session.url


def parse_webhook_event(payload: bytes, signature: str | None) -> dict[str, Any]:
    """Verify a Stripe webhook and return the event as a plain dict.

    Raises:
        WebhookVerificationError: Missing/invalid signature or payload
        BillingError: If the webhook secret is not configured
    """
    if not settings.stripe_webhook_secret:
        raise BillingError("Stripe webhook secret is not configured")
    if not signature:
        raise WebhookVerificationError("Missing stripe-signature header")

    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"), signature, settings.stripe_webhook_secret
        )
        return json.loads(payload)
    except stripe.SignatureVerificationError as e:
        raise WebhookVerificationError(f"Invalid signature: {e}") from e
    except ValueError as e:
        raise WebhookVerificationError(f"Invalid payload: {e}") from e


async def _find_business(
    db: AsyncSession, metadata: dict[str, Any] | None, customer_id: str | None
) -> Business | None:
    business_id = (metadata or {}).get("business_id")
    if business_id:
        try:
            business = await business_service.get_business(db, UUID(business_id))
        except ValueError:
            business = None
        if business:
            return business
    if customer_id:
        return await business_service.get_business_by_stripe_customer(db, customer_id)
    return None


async def _handle_checkout_completed(db: AsyncSession, obj: dict[str, Any]) -> Business | None:
    business = await _find_business(db, obj.get("metadata"), obj.get("customer"))
    if business is None:
        logger.warning(f"Checkout {obj.get('id')} completed for unknown business")
        return None

    plan = (obj.get("metadata") or {}).get("plan")
    if plan in {t.value for t in SubscriptionTier}:
        business.subscription_tier = plan
    business.stripe_customer_id = obj.get("customer") or business.stripe_customer_id
    business.stripe_subscription_id = obj.get("subscription") or business.stripe_subscription_id
    business.subscription_status = SubscriptionStatus.ACTIVE.value
    business.cancel_at_period_end = False
    return business


async def _handle_subscription_changed(db: AsyncSession, obj: dict[str, Any]) -> Business | None:
    business = await _find_business(db, obj.get("metadata"), obj.get("customer"))
    if business is None:
        logger.warning(f"Subscription {obj.get('id')} for unknown customer {obj.get('customer')}")
        return None

    items = (obj.get("items") or {}).get("data") or []
    price_id = (items[0].get("price") or {}).get("id") if items else None

    business.stripe_customer_id = obj.get("customer") or business.stripe_customer_id
    business.stripe_subscription_id = obj.get("id")
    business.subscription_status = map_subscription_status(obj.get("status"))
    business.subscription_tier = plan_for_price(price_id)
    business.cancel_at_period_end = bool(obj.get("cancel_at_period_end"))
    trial_end = _timestamp_to_datetime(obj.get("trial_end"))
    if trial_end:
        business.trial_ends_at = trial_end
    return business


async def _handle_subscription_deleted(db: AsyncSession, obj: dict[str, Any]) -> Business | None:
    business = await _find_business(db, obj.get("metadata"), obj.get("customer"))
    if business is None:
        return None
    business.subscription_status = SubscriptionStatus.CANCELED.value
    business.cancel_at_period_end = False
    return business


async def _handle_payment_failed(db: AsyncSession, obj: dict[str, Any]) -> Business | None:
    business = await _find_business(db, None, obj.get("customer"))
    if business is None:
        return None
    business.subscription_status = SubscriptionStatus.PAST_DUE.value
    return business


EVENT_HANDLERS: dict[str, Callable[[AsyncSession, dict[str, Any]], Awaitable[Business | None]]] = {
    "checkout.session.completed": _handle_checkout_completed,
    "customer.subscription.created": _handle_subscription_changed,
    "customer.subscription.updated": _handle_subscription_changed,
    "customer.subscription.deleted": _handle_subscription_deleted,
    "invoice.payment_failed": _handle_payment_failed,
}


async def handle_webhook_event(db: AsyncSession, event: dict[str, Any]) -> Business | None:
    """Apply a verified Stripe event to the matching business.

    Returns:
        The updated business, or None for unhandled events / unknown customers
    """
    event_type = event.get("type", "")
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.debug(f"Ignoring Stripe event {event_type}")
        return None

    obj = (event.get("data") or {}).get("object") or {}
    business = await handler(db, obj)
    if business is not None:
        await db.flush()
        logger.info(
            f"💳 Stripe {event_type}: {business.name} is now "
            f"{business.subscription_tier}/{business.subscription_status}"
        )
    return business
