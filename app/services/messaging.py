"""Outbound SMS - Twilio REST client and rate-limited sending."""

import logging
import uuid
from dataclasses import dataclass
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models import SmsDirection, SmsStatus
from app.services import rate_limit
from app.services.events import EventRecorder
from app.utils.phone import mask_phone, normalize_phone

logger = logging.getLogger(__name__)
settings = get_settings()

# Twilio error codes worth a specific explanation in the logs
TWILIO_ERROR_HINTS = {
    "21608": "Unverified recipient - trial accounts can only text verified numbers",
    "21211": "Invalid 'To' phone number",
    "20003": "Authentication failed - check TWILIO_ACCOUNT_SID / TWILIO_AUTH_TOKEN",
    "21610": "Recipient has opted out (STOP)",
}


class SmsSendError(Exception):
    """Raised when Twilio rejects or fails to accept a message."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class SmsResult:
    """Outcome of a send attempt."""

    sid: str
    status: str
    rate_limited: bool = False

    @property
    def sent(self) -> bool:
        return not self.rate_limited


RATE_LIMITED_RESULT = SmsResult(sid="RATE_LIMITED", status=SmsStatus.SKIPPED.value, rate_limited=True)


class SmsClient:
    """Client for the Twilio Messages API."""

    def __init__(self, mock_mode: bool = False):
        """Initialize SMS client.

        Args:
            mock_mode: If True, don't actually call Twilio API (for testing)
        """
        self.mock_mode = mock_mode
        self.base_url = "https://api.twilio.com/2010-04-01"
        self.account_sid = settings.twilio_account_sid
        self.auth_token = settings.twilio_auth_token
        self.default_from = settings.twilio_phone_number
        self.client = httpx.AsyncClient(timeout=30.0)

    async def send_message(self, to: str, body: str, from_number: str | None = None) -> dict[str, Any]:
        """Send an SMS.

        Args:
            to: Recipient number
            body: Message text
            from_number: Sender number (defaults to settings.twilio_phone_number)

        Returns:
            Twilio message resource (or mock response)

        Raises:
            SmsSendError: If Twilio rejects the request
        """
        sender = from_number or self.default_from
        if self.mock_mode:
            logger.info(
                f"📱 [MOCK] Sending SMS:\n"
                f"  From: {sender}\n"
                f"  To: {to}\n"
                f"  Message: {body}"
            )
            return {
                "sid": f"mock_msg_{uuid.uuid4().hex}",
                "status": "queued",
                "to": to,
                "from": sender,
            }

        if not sender:
            raise SmsSendError("Missing SMS sender number")

        url = f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"
        try:
            response = await self.client.post(
                url,
                data={"From": sender, "To": to, "Body": body},
                auth=(self.account_sid, self.auth_token),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            code = self._error_code(e.response)
            hint = TWILIO_ERROR_HINTS.get(code or "")
            logger.error(f"❌ Twilio rejected SMS to {mask_phone(to)} (code {code}): {hint or e.response.text}")
            raise SmsSendError(f"Twilio error {code or e.response.status_code}", code=code) from e
        except httpx.HTTPError as e:
            logger.error(f"❌ Failed to reach Twilio: {e}")
            raise SmsSendError(str(e)) from e

        result = response.json()
        logger.info(f"✅ Sent SMS via Twilio to {mask_phone(to)} (SID: {result.get('sid')})")
        return result

    @staticmethod
    def _error_code(response: httpx.Response) -> str | None:
        try:
            code = response.json().get("code")
        except ValueError:
            return None
        return str(code) if code is not None else None

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()


def build_sms_client() -> SmsClient:
    """SmsClient in mock mode when Twilio credentials are missing."""
    mock_mode = not (settings.twilio_account_sid and settings.twilio_auth_token)
    if mock_mode:
        logger.info("🔧 SMS client in MOCK mode (no TWILIO credentials)")
    return SmsClient(mock_mode=mock_mode)


async def send_sms(
    db: AsyncSession,
    sms_client: SmsClient,
    events: EventRecorder,
    to: str,
    body: str,
    from_number: str | None = None,
    business_id: uuid.UUID | None = None,
    request_id: str | None = None,
    bypass_rate_limit: bool = False,
) -> SmsResult:
    """Send an SMS subject to the per-recipient cooldown.

    A customer gets at most one automated text per cooldown window. Owner
    alerts pass ``bypass_rate_limit`` and neither check nor start a window.

    Returns:
        SmsResult; ``RATE_LIMITED_RESULT`` when the recipient is cooling down

    Raises:
        SmsSendError: If Twilio fails (the failure is recorded first)
    """
    to = normalize_phone(to)

    if not bypass_rate_limit and await rate_limit.check_rate_limit(
        db, to, rate_limit.SMS_COOLDOWN_KEY
    ):
        remaining = await rate_limit.get_time_remaining(db, to, rate_limit.SMS_COOLDOWN_KEY)
        logger.info(f"⏳ SMS to {mask_phone(to)} skipped, rate limited for another {remaining}s")
        await events.record_sms_event(
            direction=SmsDirection.OUTBOUND.value,
            status=SmsStatus.SKIPPED.value,
            business_id=business_id,
            from_number=from_number,
            to_number=to,
            body=body,
            request_id=request_id,
            payload={"rate_limited": True, "seconds_remaining": remaining},
        )
        return RATE_LIMITED_RESULT

    try:
        response = await sms_client.send_message(to=to, body=body, from_number=from_number)
    except SmsSendError as e:
        await events.record_sms_event(
            direction=SmsDirection.OUTBOUND.value,
            status=SmsStatus.FAILED.value,
            business_id=business_id,
            from_number=from_number,
            to_number=to,
            body=body,
            error_code=e.code,
            error_message=str(e),
            request_id=request_id,
        )
        raise

    if not bypass_rate_limit:
        await rate_limit.set_rate_limit(
            db, to, rate_limit.SMS_COOLDOWN_KEY, settings.sms_cooldown_seconds
        )

    result = SmsResult(sid=response.get("sid", ""), status=response.get("status", SmsStatus.QUEUED.value))
    await events.record_sms_event(
        direction=SmsDirection.OUTBOUND.value,
        status=SmsStatus.SENT.value,
        business_id=business_id,
        message_sid=result.sid,
        from_number=from_number,
        to_number=to,
        body=body,
        request_id=request_id,
        payload={"twilio_status": result.status},
    )
    return result
