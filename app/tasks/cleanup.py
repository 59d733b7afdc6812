"""Cleanup tasks for maintenance operations."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import get_settings
from app.models import ApiUsage, CallEvent, OwnerAlert, SmsEvent
from app.services.rate_limit import cleanup_expired_rate_limits
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

T = TypeVar("T")

EVENT_TABLES = (CallEvent, SmsEvent, OwnerAlert, ApiUsage)


async def purge_old_events(db: AsyncSession, days_to_keep: int) -> dict[str, int]:
    """Delete analytics rows older than the retention window.

    Args:
        db: Database session (committed by the caller)
        days_to_keep: Number of days of events to retain

    Returns:
        Deleted row count per table
    """
    cutoff_date = datetime.now(timezone.utc) - timedelta(days=days_to_keep)
    deleted: dict[str, int] = {}
    for model in EVENT_TABLES:
        result = await db.execute(delete(model).where(model.created_at < cutoff_date))
        deleted[model.__tablename__] = result.rowcount
    return deleted


def _run_with_session(work: Callable[[AsyncSession], Awaitable[T]]) -> T:
    """Run a coroutine against a fresh engine from a sync Celery worker."""

    async def _runner() -> T:
        settings = get_settings()
        engine = create_async_engine(settings.async_database_url)
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        try:
            async with session_factory() as db:
                outcome = await work(db)
                await db.commit()
                return outcome
        finally:
            await engine.dispose()

    return asyncio.run(_runner())


@celery_app.task(name="app.tasks.cleanup.cleanup_expired_rate_limits")
def cleanup_expired_rate_limits_task() -> dict[str, Any]:
    """
    Delete expired SMS cooldown windows.

    Runs every 10 minutes so the rate_limits table only holds live windows.
    """
    deleted_count = _run_with_session(cleanup_expired_rate_limits)
    logger.info(f"Cleaned up {deleted_count} expired rate limits")
    return {"deleted_count": deleted_count}


@celery_app.task(name="app.tasks.cleanup.cleanup_old_events")
def cleanup_old_events(days_to_keep: int = 90) -> dict[str, Any]:
    """
    Delete call, SMS, owner alert and usage events older than days_to_keep.

    Args:
        days_to_keep: Number of days of events to retain (default 90)

    Returns:
        Dict with deleted counts per table
    """
    deleted = _run_with_session(lambda db: purge_old_events(db, days_to_keep))
    logger.info(f"Cleaned up events older than {days_to_keep} days: {deleted}")
    return {"deleted": deleted, "days_to_keep": days_to_keep}
