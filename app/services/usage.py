"""LLM usage accounting and daily limits."""

import logging
from datetime import datetime, time, timezone
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models import ApiUsage

logger = logging.getLogger(__name__)
settings = get_settings()

# USD per 1K tokens
MODEL_COSTS: dict[str, dict[str, float]] = {
    "gpt-4o": {"input": 0.005, "output": 0.015},
    "gpt-4": {"input": 0.01, "output": 0.03},
    "gpt-3.5-turbo": {"input": 0.0005, "output": 0.0015},
}

WARNING_THRESHOLD = 0.8


def estimate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    """Estimate the USD cost of a completion; unknown models are priced as gpt-4o."""
    costs = MODEL_COSTS.get(model, MODEL_COSTS["gpt-4o"])
    cost = (prompt_tokens / 1000) * costs["input"] + (completion_tokens / 1000) * costs["output"]
    return round(cost, 6)


def _start_of_day_utc() -> datetime:
    return datetime.combine(datetime.now(timezone.utc).date(), time.min, tzinfo=timezone.utc)


async def get_daily_token_usage(db: AsyncSession, business_id: UUID | None = None) -> int:
    """Total tokens spent today, for one business or overall."""
    query = select(func.coalesce(func.sum(ApiUsage.total_tokens), 0)).where(
        ApiUsage.created_at >= _start_of_day_utc()
    )
    if business_id is not None:
        query = query.where(ApiUsage.business_id == business_id)
    result = await db.execute(query)
    return int(result.scalar_one())


async def is_usage_limit_exceeded(db: AsyncSession, business_id: UUID | None = None) -> bool:
    """Check today's token spend against the configured daily limit."""
    limit = settings.openai_daily_token_limit
    if limit <= 0:
        return False

    used = await get_daily_token_usage(db, business_id)
    if used >= limit:
        logger.warning(f"🚫 Daily OpenAI token limit reached for {business_id}: {used}/{limit}")
        return True
    if used >= limit * WARNING_THRESHOLD:
        logger.warning(f"⚠️ OpenAI usage at {used / limit:.0%} of daily limit for {business_id}")
    return False
