"""Business service - tenant lookup and management."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models import Business, Location, SubscriptionStatus, SubscriptionTier
from app.models.base import utcnow
from app.schemas.business import BusinessCreate, BusinessUpdate
from app.utils.phone import mask_phone, phone_variants

logger = logging.getLogger(__name__)
settings = get_settings()


async def get_business(db: AsyncSession, business_id: UUID) -> Business | None:
    """Get business by ID."""
    result = await db.execute(select(Business).where(Business.id == business_id))
    return result.scalar_one_or_none()


@dataclass
class CalledNumber:
    """Who answers a called number: a business, and the location if it is one."""

    business: Business
    location: Location | None = None


async def get_location_by_phone(db: AsyncSession, phone: str) -> Location | None:
    """Find the location whose own number was called (newest wins)."""
    variants = phone_variants(phone)
    if not variants:
        return None
    result = await db.execute(
        select(Location)
        .where(Location.phone_number.in_(variants))
        .order_by(Location.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def resolve_called_number(db: AsyncSession, phone: str) -> CalledNumber | None:
    """Resolve a called number to a location of a business, or the business itself.

    Location numbers are checked first so a branch replies under its own
    name, hours and manager.
    """
    location = await get_location_by_phone(db, phone)
    if location is not None:
        business = await get_business(db, location.business_id)
        if business is not None:
            logger.info(f"Number {mask_phone(phone)} belongs to location '{location.name}' of {business.name}")
            return CalledNumber(business=business, location=location)

    business = await _get_business_by_own_phone(db, phone)
    if business is None:
        return None
    return CalledNumber(business=business)


async def get_business_by_phone(db: AsyncSession, phone: str) -> Business | None:
    """Find the business that owns a called number, directly or through a location.

    Args:
        db: Database session
        phone: Number that was called or texted

    Returns:
        Matching business or None
    """
    called = await resolve_called_number(db, phone)
    return called.business if called else None


async def _get_business_by_own_phone(db: AsyncSession, phone: str) -> Business | None:
    """Match the business's public or Twilio number, with and without the +.

    When several businesses share a number the most recently created one wins.
    """
    variants = phone_variants(phone)
    if not variants:
        return None

    result = await db.execute(
        select(Business)
        .where(
            or_(
                Business.public_phone.in_(variants),
                Business.twilio_phone.in_(variants),
            )
        )
        .order_by(Business.created_at.desc())
        .limit(2)
    )
    matches = list(result.scalars().all())
    if not matches:
        logger.info(f"No business found for number {mask_phone(phone)}")
        return None

    if len(matches) > 1:
        logger.warning(
            f"Multiple businesses share {mask_phone(phone)}, using newest ({matches[0].id})"
        )
    return matches[0]


async def get_business_by_auth0_user(db: AsyncSession, auth0_user_id: str) -> Business | None:
    """Get the business owned by an Auth0 user."""
    result = await db.execute(
        select(Business).where(Business.auth0_user_id == auth0_user_id)
    )
    return result.scalar_one_or_none()


async def get_business_by_stripe_customer(
    db: AsyncSession, stripe_customer_id: str
) -> Business | None:
    """Get business by Stripe customer ID."""
    result = await db.execute(
        select(Business).where(Business.stripe_customer_id == stripe_customer_id)
    )
    return result.scalars().first()


async def create_business(
    db: AsyncSession,
    data: BusinessCreate,
    auth0_user_id: str | None = None,
    owner_email: str | None = None,
) -> Business:
    """Create a business on a free trial."""
    business = Business(
        name=data.name,
        business_type=data.business_type,
        address=data.address,
        public_phone=data.public_phone,
        owner_phone=data.owner_phone,
        forwarding_number=data.forwarding_number,
        online_ordering_url=data.online_ordering_url,
        hours=data.hours,
        faqs=[faq.model_dump() for faq in data.faqs],
        auth0_user_id=auth0_user_id,
        owner_email=owner_email,
        subscription_tier=SubscriptionTier.BASIC.value,
        subscription_status=SubscriptionStatus.TRIALING.value,
        trial_ends_at=utcnow() + timedelta(days=settings.trial_days),
    )
    db.add(business)
    await db.flush()
    await db.refresh(business)
    logger.info(f"Created business {business.id} ({business.name}) on a {settings.trial_days}-day trial")
    return business


async def update_business(
    db: AsyncSession, business: Business, data: BusinessUpdate
) -> Business:
    """Update a business."""
    update_dict = data.model_dump(exclude_unset=True)
    if "faqs" in update_dict and update_dict["faqs"] is not None:
        update_dict["faqs"] = [dict(faq) for faq in update_dict["faqs"]]
    for key, value in update_dict.items():
        setattr(business, key, value)
    await db.flush()
    await db.refresh(business)
    return business
