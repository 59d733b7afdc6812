"""Database-backed rate limits keyed by (phone, key)."""

import logging
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import RateLimit
from app.models.base import as_utc, utcnow
from app.utils.phone import mask_phone

logger = logging.getLogger(__name__)

SMS_COOLDOWN_KEY = "sms_cooldown"
DEFAULT_WINDOW_SECONDS = 3600


async def check_rate_limit(db: AsyncSession, phone: str, key: str) -> bool:
    """Return True if the (phone, key) pair is currently rate limited."""
    result = await db.execute(
        select(RateLimit.id).where(
            RateLimit.phone == phone,
            RateLimit.key == key,
            RateLimit.expires_at > utcnow(),
        )
    )
    return result.first() is not None


async def set_rate_limit(
    db: AsyncSession,
    phone: str,
    key: str,
    window_seconds: int = DEFAULT_WINDOW_SECONDS,
) -> None:
    """Start (or restart) a rate-limit window for a (phone, key) pair."""
    now = utcnow()
    expires_at = now + timedelta(seconds=window_seconds)

    if db.get_bind().dialect.name == "postgresql":
        stmt = pg_insert(RateLimit).values(
            phone=phone, key=key, expires_at=expires_at, created_at=now, updated_at=now
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_rate_limits_phone_key",
            set_={"expires_at": expires_at, "updated_at": now},
        )
        await db.execute(stmt)
    else:
        result = await db.execute(
            select(RateLimit).where(RateLimit.phone == phone, RateLimit.key == key)
        )
        existing = result.scalar_one_or_none()
        if existing:
            existing.expires_at = expires_at
        else:
            db.add(RateLimit(phone=phone, key=key, expires_at=expires_at))
        await db.flush()

    logger.debug(f"Rate limit '{key}' set for {mask_phone(phone)} ({window_seconds}s)")


async def get_time_remaining(db: AsyncSession, phone: str, key: str) -> int:
    """Seconds left in the current window, 0 if not limited."""
    result = await db.execute(
        select(RateLimit.expires_at).where(RateLimit.phone == phone, RateLimit.key == key)
    )
    expires_at = result.scalar_one_or_none()
    if expires_at is None:
        return 0
    remaining = (as_utc(expires_at) - utcnow()).total_seconds()
    return max(0, int(remaining))


async def clear_rate_limit(db: AsyncSession, phone: str, key: str) -> bool:
    """Remove a rate limit. Returns True if one existed."""
    result = await db.execute(
        delete(RateLimit).where(RateLimit.phone == phone, RateLimit.key == key)
    )
    return result.rowcount > 0


async def cleanup_expired_rate_limits(db: AsyncSession) -> int:
    """Delete expired windows. Returns the number of rows removed."""
    result = await db.execute(delete(RateLimit).where(RateLimit.expires_at <= utcnow()))
    return result.rowcount
