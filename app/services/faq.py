"""FAQ matching against a business's stored question/answer pairs."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class FAQEntry:
    """A usable FAQ pair."""

    question: str
    answer: str


def normalize_text(text: str) -> str:
    """Lower-case, drop punctuation and collapse whitespace."""
    text = _NON_WORD.sub("", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def parse_faqs(raw: Any) -> list[FAQEntry]:
    """Parse stored FAQs, tolerating legacy and malformed shapes.

    Accepts a list of ``{"question", "answer"}`` dicts or a JSON string of
    one. Entries missing either field are skipped; anything unparseable
    yields an empty list.
    """
    if raw is None:
        return []

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Stored FAQs are not valid JSON, ignoring")
            return []

    if not isinstance(raw, list):
        logger.warning(f"Stored FAQs have unexpected type {type(raw).__name__}, ignoring")
        return []

    entries = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        question = item.get("question")
        answer = item.get("answer")
        if isinstance(question, str) and isinstance(answer, str) and question.strip() and answer.strip():
            entries.append(FAQEntry(question=question.strip(), answer=answer.strip()))
    return entries


def match_faq(message: str, faqs: list[FAQEntry]) -> FAQEntry | None:
    """Return the first FAQ whose normalized question appears in the message."""
    normalized_message = normalize_text(message)
    if not normalized_message:
        return None

    for faq in faqs:
        normalized_question = normalize_text(faq.question)
        if normalized_question and normalized_question in normalized_message:
            return faq
    return None
