"""Tests for LLM usage accounting and the retention cleanup job."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from app.models import ApiUsage, CallEvent, SmsEvent
from app.models.base import utcnow
from app.services.events import EventRecorder
from app.services.usage import estimate_cost, get_daily_token_usage, is_usage_limit_exceeded
from app.tasks.celery_app import EVENT_RETENTION_DAYS, celery_app
from app.tasks.cleanup import purge_old_events


class TestEstimateCost:
    def test_known_model(self):
        assert estimate_cost("gpt-4o", 1000, 1000) == pytest.approx(0.02)

    def test_unknown_model_priced_as_default(self):
        assert estimate_cost("some-new-model", 1000, 0) == estimate_cost("gpt-4o", 1000, 0)


@pytest.mark.asyncio
class TestDailyUsage:
    async def _usage(self, db, business_id, tokens, created_at=None):
        row = ApiUsage(
            business_id=business_id,
            model="gpt-4o",
            request_type="generate_sms_reply",
            prompt_tokens=tokens,
            completion_tokens=0,
            total_tokens=tokens,
            estimated_cost=0.0,
        )
        if created_at is not None:
            row.created_at = created_at
        db.add(row)
        await db.flush()

    async def test_counts_only_today(self, db, business):
        await self._usage(db, business.id, 300)
        await self._usage(db, business.id, 200)
        await self._usage(db, business.id, 9999, created_at=utcnow() - timedelta(days=2))

        assert await get_daily_token_usage(db, business.id) == 500

    async def test_limit(self, db, business):
        await self._usage(db, business.id, 900)

        with patch("app.services.usage.settings") as mock_settings:
            mock_settings.openai_daily_token_limit = 1000
            assert await is_usage_limit_exceeded(db, business.id) is False
            mock_settings.openai_daily_token_limit = 900
            assert await is_usage_limit_exceeded(db, business.id) is True
            mock_settings.openai_daily_token_limit = 0
            assert await is_usage_limit_exceeded(db, business.id) is False


@pytest.mark.asyncio
class TestEventRecorder:
    async def test_write_failure_is_swallowed(self, db):
        class BrokenSession:
            async def __aenter__(self):
                raise RuntimeError("database unavailable")

            async def __aexit__(self, *exc):
                return False

        recorder = EventRecorder(session_factory=BrokenSession, background=False)

        # Must not raise
        await recorder.record_sms_event(direction="inbound", status="received", body="hi")

    async def test_background_writes_drain(self, event_recorder, db):
        recorder = EventRecorder(session_factory=event_recorder._session_factory, background=True)

        await recorder.record_call_event(call_sid="CA1", event_type="voice.inbound")
        await recorder.drain()

        assert recorder.pending_count == 0
        assert await db.scalar(select(func.count(CallEvent.id))) == 1


@pytest.mark.asyncio
class TestPurgeOldEvents:
    async def test_deletes_only_rows_past_retention(self, db, business):
        old = utcnow() - timedelta(days=120)
        db.add(SmsEvent(direction="inbound", status="received", business_id=business.id, created_at=old))
        db.add(SmsEvent(direction="inbound", status="received", business_id=business.id))
        db.add(CallEvent(call_sid="CAold", event_type="voice.missed", business_id=business.id, created_at=old))
        await db.flush()

        deleted = await purge_old_events(db, days_to_keep=90)

        assert deleted["sms_events"] == 1
        assert deleted["call_events"] == 1
        assert deleted["owner_alerts"] == 0
        assert await db.scalar(select(func.count(SmsEvent.id))) == 1


class TestBeatSchedule:
    def test_schedules_both_cleanups(self):
        schedule = celery_app.conf.beat_schedule

        assert schedule["cleanup-expired-rate-limits"]["schedule"] == 600.0
        assert schedule["cleanup-old-events"]["args"] == [EVENT_RETENTION_DAYS]
        assert schedule["cleanup-old-events"]["task"] == "app.tasks.cleanup.cleanup_old_events"

    def test_results_are_not_stored(self):
        assert celery_app.conf.task_ignore_result is True
