"""Phone number helpers."""

import re

_NON_PHONE_CHARS = re.compile(r"[^\d+]")


def normalize_phone(phone: str | None) -> str:
    """Normalize a phone number to E.164.

    Strips a ``whatsapp:`` prefix and every character that is not a digit or
    ``+``. Ten-digit numbers are assumed to be North American and get ``+1``;
    anything else without a leading ``+`` gets one.

    Args:
        phone: Raw number as received from Twilio or a form

    Returns:
        E.164 number, or an empty string for empty input
    """
    if not phone:
        return ""

    phone = phone.strip()
    if phone.startswith("whatsapp:"):
        phone = phone[9:]

    # Form decoding turns a leading + into a space
    cleaned = _NON_PHONE_CHARS.sub("", phone)
    if not cleaned:
        return ""
    if cleaned.startswith("+"):
        return cleaned
    if len(cleaned) == 10:
        return f"+1{cleaned}"
    return f"+{cleaned}"


def phone_variants(phone: str) -> list[str]:
    """Return the stored forms a number may have (with and without +)."""
    normalized = normalize_phone(phone)
    if not normalized:
        return []
    variants = [normalized, normalized.lstrip("+")]
    raw = phone.strip()
    if raw and raw not in variants:
        variants.append(raw)
    return variants


def mask_phone(phone: str | None) -> str:
    """Mask all but the last four digits for logs."""
    if not phone:
        return "<none>"
    return f"***{phone[-4:]}"
