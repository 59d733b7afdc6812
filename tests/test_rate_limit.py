"""Tests for the SMS cooldown and webhook deduplication."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from app.models import RateLimit
from app.models.base import utcnow
from app.services import rate_limit
from app.services.dedupe import EventDeduplicator

PHONE = "+15550009999"


@pytest.mark.asyncio
class TestRateLimit:
    """Tests for the database-backed rate limits."""

    async def test_not_limited_by_default(self, db):
        assert await rate_limit.check_rate_limit(db, PHONE, rate_limit.SMS_COOLDOWN_KEY) is False
        assert await rate_limit.get_time_remaining(db, PHONE, rate_limit.SMS_COOLDOWN_KEY) == 0

    async def test_set_then_check(self, db):
        await rate_limit.set_rate_limit(db, PHONE, rate_limit.SMS_COOLDOWN_KEY, 600)

        assert await rate_limit.check_rate_limit(db, PHONE, rate_limit.SMS_COOLDOWN_KEY) is True
        remaining = await rate_limit.get_time_remaining(db, PHONE, rate_limit.SMS_COOLDOWN_KEY)
        assert 590 <= remaining <= 600

    async def test_keys_are_independent(self, db):
        await rate_limit.set_rate_limit(db, PHONE, "other_key", 600)
        assert await rate_limit.check_rate_limit(db, PHONE, rate_limit.SMS_COOLDOWN_KEY) is False

    async def test_set_twice_keeps_one_row(self, db):
        await rate_limit.set_rate_limit(db, PHONE, rate_limit.SMS_COOLDOWN_KEY, 60)
        await rate_limit.set_rate_limit(db, PHONE, rate_limit.SMS_COOLDOWN_KEY, 600)

        rows = (await db.execute(select(RateLimit).where(RateLimit.phone == PHONE))).scalars().all()
        assert len(rows) == 1
        assert await rate_limit.get_time_remaining(db, PHONE, rate_limit.SMS_COOLDOWN_KEY) > 60

    async def test_expired_window_is_not_limited(self, db):
        db.add(RateLimit(phone=PHONE, key=rate_limit.SMS_COOLDOWN_KEY, expires_at=utcnow() - timedelta(seconds=5)))
        await db.flush()

        assert await rate_limit.check_rate_limit(db, PHONE, rate_limit.SMS_COOLDOWN_KEY) is False
        assert await rate_limit.get_time_remaining(db, PHONE, rate_limit.SMS_COOLDOWN_KEY) == 0

    async def test_clear(self, db):
        await rate_limit.set_rate_limit(db, PHONE, rate_limit.SMS_COOLDOWN_KEY, 600)
        assert await rate_limit.clear_rate_limit(db, PHONE, rate_limit.SMS_COOLDOWN_KEY) is True
        assert await rate_limit.clear_rate_limit(db, PHONE, rate_limit.SMS_COOLDOWN_KEY) is False

    async def test_cleanup_removes_only_expired(self, db):
        db.add(RateLimit(phone="+15550000001", key="k", expires_at=utcnow() - timedelta(minutes=1)))
        db.add(RateLimit(phone="+15550000002", key="k", expires_at=utcnow() + timedelta(minutes=10)))
        await db.flush()

        assert await rate_limit.cleanup_expired_rate_limits(db) == 1
        remaining = (await db.execute(select(RateLimit.phone))).scalars().all()
        assert remaining == ["+15550000002"]


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestEventDeduplicator:
    """Tests for the CallSid/MessageSid TTL set."""

    def test_first_sighting_is_not_duplicate(self):
        dedupe = EventDeduplicator(ttl_seconds=300)
        assert dedupe.check_and_mark("CA1") is False
        assert dedupe.check_and_mark("CA1") is True
        assert dedupe.check_and_mark("CA2") is False

    def test_ids_expire_after_ttl(self):
        clock = FakeClock()
        dedupe = EventDeduplicator(ttl_seconds=300, clock=clock)
        dedupe.check_and_mark("CA1")

        clock.now += 301
        assert dedupe.check_and_mark("CA1") is False

    def test_len_purges_expired(self):
        clock = FakeClock()
        dedupe = EventDeduplicator(ttl_seconds=10, clock=clock)
        dedupe.check_and_mark("a")
        dedupe.check_and_mark("b")
        assert len(dedupe) == 2

        clock.now += 11
        assert len(dedupe) == 0

    def test_forget_allows_reprocessing(self):
        dedupe = EventDeduplicator(ttl_seconds=300)
        dedupe.check_and_mark("CA1")
        dedupe.forget("CA1")
        assert dedupe.check_and_mark("CA1") is False
