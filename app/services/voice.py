"""TwiML for inbound calls."""

from urllib.parse import urlencode

from twilio.twiml.voice_response import VoiceResponse

from app.config import get_settings
from app.models import Business, Location
from app.services.replies import build_voice_greeting, reply_name
from app.utils.phone import normalize_phone

settings = get_settings()

DIAL_TIMEOUT_SECONDS = 20


def resolve_forwarding_number(business: Business | None, location: Location | None = None) -> str | None:
    """Where to ring before treating the call as missed.

    A location's own forwarding number wins, then the business's, then
    ``custom_settings["forwardingNumber"]``, then the platform fallback.
    """
    candidates = []
    if location is not None:
        candidates.append(location.forwarding_number)
    if business is not None:
        candidates.append(business.forwarding_number)
        candidates.append((business.custom_settings or {}).get("forwardingNumber"))
    candidates.append(settings.fallback_forwarding_number)

    for candidate in candidates:
        number = normalize_phone(candidate) if candidate else ""
        if number:
            return number
    return None


def _greeting(business: Business | None, location: Location | None) -> str:
    return build_voice_greeting(reply_name(business, location) if business else None)


def dial_action_url(call_sid: str, caller: str, called: str) -> str:
    """Callback Twilio hits when the forwarded leg ends."""
    query = urlencode({"CallSid": call_sid, "From": caller, "To": called})
    return f"{settings.app_base_url.rstrip('/')}/api/v1/twilio/dial-complete?{query}"


def build_forward_twiml(
    business: Business | None,
    forwarding_number: str,
    call_sid: str,
    caller: str,
    called: str,
    location: Location | None = None,
) -> str:
    """Greet, then ring the business with our dial-complete callback."""
    response = VoiceResponse()
    response.say(_greeting(business, location))
    dial = response.dial(
        action=dial_action_url(call_sid, caller, called),
        method="POST",
        timeout=DIAL_TIMEOUT_SECONDS,
        caller_id=called,
    )
    dial.number(forwarding_number)
    return str(response)


def build_unavailable_twiml(business: Business | None, location: Location | None = None) -> str:
    """Greet and hang up; the caller gets a text instead."""
    response = VoiceResponse()
    response.say(_greeting(business, location))
    response.pause(length=1)
    response.hangup()
    return str(response)


def build_hangup_twiml() -> str:
    response = VoiceResponse()
    response.hangup()
    return str(response)


def build_error_twiml() -> str:
    """Something broke; still give Twilio valid TwiML."""
    response = VoiceResponse()
    response.say("Sorry, we're unable to take your call right now. We'll text you shortly.")
    response.hangup()
    return str(response)
