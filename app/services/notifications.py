"""Owner alerts for missed calls and urgent messages."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models import Business, Location, OwnerAlertType
from app.services.events import EventRecorder
from app.services.messaging import SmsClient, SmsSendError, send_sms
from app.services.replies import reply_name
from app.services.urgency import UrgencyResult
from app.utils.phone import mask_phone, normalize_phone

logger = logging.getLogger(__name__)
settings = get_settings()


def resolve_owner_phone(business: Business, location: Location | None = None) -> str | None:
    """Alert number: the location manager, then the owner, then the platform default."""
    if location is not None and location.manager_phone:
        phone = normalize_phone(location.manager_phone)
        if phone:
            return phone
    phone = normalize_phone(business.owner_phone or settings.default_owner_phone)
    return phone or None


def build_missed_call_alert(caller: str, call_status: str, location: Location | None = None) -> str:
    if location is not None:
        return f"Missed call from {caller} at {location.name}. Status: {call_status}"
    return f"Missed call from {caller}. Status: {call_status}"


def build_urgent_alert(
    business: Business,
    customer_phone: str,
    message: str,
    urgency: UrgencyResult,
    location: Location | None = None,
) -> str:
    source = urgency.source.value if urgency.source else "unknown"
    return (
        f"🚨 Urgent Customer Message for {reply_name(business, location)}: {message}\n"
        f"From: {customer_phone}\n"
        f"Detected via: {source}"
    )


async def _send_owner_alert(
    db: AsyncSession,
    sms_client: SmsClient,
    events: EventRecorder,
    business: Business,
    alert_type: OwnerAlertType,
    body: str,
    request_id: str | None,
    location: Location | None = None,
) -> bool:
    """Text the owner, bypassing the customer cooldown, and record the attempt."""
    owner_phone = resolve_owner_phone(business, location)
    if not owner_phone:
        logger.warning(f"No owner phone for business {business.id}, skipping {alert_type.value} alert")
        return False

    try:
        result = await send_sms(
            db,
            sms_client,
            events,
            to=owner_phone,
            body=body,
            from_number=business.sender_phone,
            business_id=business.id,
            request_id=request_id,
            bypass_rate_limit=True,
        )
    except SmsSendError as e:
        logger.error(f"❌ Failed to alert owner {mask_phone(owner_phone)} ({alert_type.value}): {e}")
        await events.record_owner_alert(
            business_id=business.id,
            owner_phone=owner_phone,
            alert_type=alert_type.value,
            message=body,
            status="failed",
            error=str(e),
        )
        return False

    logger.info(f"📣 Owner alerted ({alert_type.value}) for {reply_name(business, location)}")
    await events.record_owner_alert(
        business_id=business.id,
        owner_phone=owner_phone,
        alert_type=alert_type.value,
        message=body,
        status="sent",
        message_sid=result.sid,
    )
    return True


async def notify_owner_missed_call(
    db: AsyncSession,
    sms_client: SmsClient,
    events: EventRecorder,
    business: Business,
    caller: str,
    call_status: str,
    request_id: str | None = None,
    location: Location | None = None,
) -> bool:
    """Tell the owner a call was missed. Returns True if the alert went out."""
    return await _send_owner_alert(
        db,
        sms_client,
        events,
        business,
        OwnerAlertType.MISSED_CALL,
        build_missed_call_alert(caller, call_status, location),
        request_id,
        location,
    )


async def notify_owner_urgent_message(
    db: AsyncSession,
    sms_client: SmsClient,
    events: EventRecorder,
    business: Business,
    customer_phone: str,
    message: str,
    urgency: UrgencyResult,
    request_id: str | None = None,
    location: Location | None = None,
) -> bool:
    """Escalate an urgent customer text to the owner (or the location's manager)."""
    return await _send_owner_alert(
        db,
        sms_client,
        events,
        business,
        OwnerAlertType.URGENT_MESSAGE,
        build_urgent_alert(business, customer_phone, message, urgency, location),
        request_id,
        location,
    )
