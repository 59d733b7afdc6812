"""Templated replies and business-hours formatting."""

from typing import Any

from app.models import Business, Location

DAYS_OF_WEEK = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

NO_HOURS_TEXT = "Please contact us for our business hours"

DEFAULT_FALLBACK_REPLY = "Sorry, we couldn't understand your question. Please call us directly."


def _format_day_group(days: list[str], hours: str) -> str:
    if len(days) == 1:
        return f"{days[0]}: {hours}"
    if len(days) == 2:
        return f"{days[0]} and {days[1]}: {hours}"
    return f"{days[0]}-{days[-1]}: {hours}"


def format_hours(hours: dict[str, Any] | None) -> str:
    """Format weekly hours, grouping consecutive days with the same hours.

    >>> format_hours({"Monday": "9-5", "Tuesday": "9-5", "Wednesday": "9-5"})
    'Monday-Wednesday: 9-5'

    Day names are matched case-insensitively. A day without hours ends the
    current group, so {"Monday": "9-5", "Wednesday": "9-5"} reads
    "Monday: 9-5, Wednesday: 9-5" rather than joining the two across the
    closed Tuesday. This is deliberate: a range like "Monday-Wednesday"
    would tell customers Tuesday is open.
    """
    if not hours:
        return NO_HOURS_TEXT

    by_day = {str(day).strip().lower(): value for day, value in hours.items()}

    groups: list[str] = []
    current_days: list[str] = []
    current_hours = ""
    for day in DAYS_OF_WEEK:
        value = by_day.get(day.lower())
        day_hours = str(value).strip() if value else ""

        if day_hours and day_hours == current_hours:
            current_days.append(day)
            continue

        if current_days:
            groups.append(_format_day_group(current_days, current_hours))
        current_days = [day] if day_hours else []
        current_hours = day_hours

    if current_days:
        groups.append(_format_day_group(current_days, current_hours))

    return ", ".join(groups) if groups else NO_HOURS_TEXT


def reply_name(business: Business, location: Location | None = None) -> str:
    """How a reply names the sender: "Downtown at Joe's Pizza" for a location."""
    if location is not None:
        return f"{location.name} at {business.name}"
    return business.name


def reply_hours(business: Business, location: Location | None = None) -> dict[str, Any]:
    """A location's own hours when it has them, else the business hours."""
    if location is not None and location.hours:
        return location.hours
    return business.hours or {}


def reply_ordering_url(business: Business, location: Location | None = None) -> str | None:
    if location is not None and location.online_ordering_url:
        return location.online_ordering_url
    return business.online_ordering_url


def build_missed_call_template(business: Business, location: Location | None = None) -> str:
    """Basic-tier missed-call text."""
    return (
        f"Hey thanks for calling {reply_name(business, location)}. We're currently unavailable. "
        f"Our hours are {format_hours(reply_hours(business, location))}. Please call back during our "
        f"business hours or leave a message and we'll get back to you as soon as possible."
    )


def build_limited_missed_call_template(business: Business, location: Location | None = None) -> str:
    """Missed-call text used when the LLM is unavailable for a paid tier."""
    return (
        f"Thanks for calling {reply_name(business, location)}. We're currently unavailable. "
        f"Please call back during our business hours: {format_hours(reply_hours(business, location))}."
    )


def build_default_auto_reply(business: Business, location: Location | None = None) -> str:
    """Last-resort missed-call text."""
    if location is not None:
        return (
            f"Thanks for calling {reply_name(business, location)}. "
            f"We'll get back to you as soon as possible."
        )
    return f"Hi! Thanks for calling {business.name}. We missed you but will ring back ASAP."


def build_voice_greeting(business_name: str | None) -> str:
    """What the caller hears before the forward is attempted."""
    name = business_name or "us"
    return f"Hey, thanks for calling {name}. We're currently unavailable, but we'll text you shortly."


def truncate_sms(text: str, max_length: int) -> str:
    """Cut a reply to max_length, marking the cut with an ellipsis."""
    text = text.strip()
    if len(text) <= max_length:
        return text
    return text[: max_length - 3].rstrip() + "..."
