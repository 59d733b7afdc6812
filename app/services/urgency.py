"""Keyword-based urgency detection."""

import re
from dataclasses import dataclass
from enum import Enum


class UrgencySource(str, Enum):
    """How a message was flagged as urgent."""

    CUSTOM_KEYWORDS = "custom_keywords"
    GPT_CLASSIFICATION = "gpt_classification"


@dataclass(frozen=True)
class UrgencyResult:
    """Outcome of urgency detection."""

    is_urgent: bool
    source: UrgencySource | None = None
    matched_keyword: str | None = None


NOT_URGENT = UrgencyResult(is_urgent=False)


def match_alert_keyword(message: str, keywords: list[str] | None) -> str | None:
    """Return the first alert keyword found in the message.

    Keywords match case-insensitively on word boundaries, so "leak" matches
    "there's a leak!" but not "leaky".
    """
    if not message or not keywords:
        return None

    for keyword in keywords:
        if not isinstance(keyword, str) or not keyword.strip():
            continue
        pattern = r"\b" + re.escape(keyword.strip()) + r"\b"
        if re.search(pattern, message, re.IGNORECASE):
            return keyword.strip()
    return None


def detect_keyword_urgency(message: str, keywords: list[str] | None) -> UrgencyResult:
    """Flag a message as urgent if it contains one of the business's keywords."""
    keyword = match_alert_keyword(message, keywords)
    if keyword is None:
        return NOT_URGENT
    return UrgencyResult(
        is_urgent=True,
        source=UrgencySource.CUSTOM_KEYWORDS,
        matched_keyword=keyword,
    )
