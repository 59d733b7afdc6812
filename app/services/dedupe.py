"""In-memory duplicate suppression for Twilio webhook retries."""

import logging
import threading
import time
from collections.abc import Callable

from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class EventDeduplicator:
    """Remembers event ids (CallSid / MessageSid) for a fixed TTL.

    Twilio retries webhooks on slow responses, and both the dial action and
    the status callback can report the same missed call. The first caller of
    ``check_and_mark`` for an id wins; later callers within the TTL are
    told it is a duplicate.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.call_dedupe_ttl_seconds
        self._clock = clock
        self._seen: dict[str, float] = {}
        self._lock = threading.Lock()

    def _purge(self, now: float) -> None:
        expired = [key for key, expires in self._seen.items() if expires <= now]
        for key in expired:
            del self._seen[key]

    def check_and_mark(self, event_id: str) -> bool:
        """Mark an id as seen.

        Returns:
            True if the id was already seen within the TTL (a duplicate)
        """
        now = self._clock()
        with self._lock:
            self._purge(now)
            if event_id in self._seen:
                logger.info(f"🔁 Duplicate event {event_id} suppressed")
                return True
            self._seen[event_id] = now + self.ttl_seconds
            return False

    def forget(self, event_id: str) -> None:
        """Drop an id so a retry is processed again."""
        with self._lock:
            self._seen.pop(event_id, None)

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._seen)


# Process-wide instance shared by the webhook handlers
event_deduplicator = EventDeduplicator()
