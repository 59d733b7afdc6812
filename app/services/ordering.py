"""Online-ordering intent detection."""

import re

ORDERING_PHRASES = (
    "order",
    "orders",
    "ordering",
    "menu",
    "delivery",
    "deliver",
    "pickup",
    "pick up",
    "takeout",
    "take out",
    "carryout",
)

_ORDERING_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(phrase) for phrase in ORDERING_PHRASES) + r")\b",
    re.IGNORECASE,
)


def is_ordering_request(message: str) -> bool:
    """Check whether a customer text asks about ordering food or goods."""
    return bool(_ORDERING_PATTERN.search(message or ""))


def ordering_link_line(url: str) -> str:
    """Sentence appended to replies when a business takes online orders."""
    return f"Order online here: {url}"


def build_ordering_reply(business_name: str, url: str) -> str:
    """Reply to an ordering request with the business's ordering link."""
    return f"Thanks for reaching out to {business_name}! {ordering_link_line(url)}"
