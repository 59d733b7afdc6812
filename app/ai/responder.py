"""LLM-backed classification and reply generation.

Every call runs the (blocking) OpenAI SDK in a worker thread under a hard
timeout so a slow completion cannot hold a Twilio webhook open, and records
token usage for the business.
"""

import asyncio
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.ai.client import OpenAIClient
from app.ai.prompts import (
    build_missed_call_system_prompt,
    build_missed_call_user_prompt,
    build_sms_reply_prompt,
    build_urgency_prompt,
)
from app.config import get_settings
from app.models import Business, Location, SubscriptionTier
from app.services.events import EventRecorder
from app.services.faq import FAQEntry
from app.services.replies import truncate_sms
from app.services.usage import estimate_cost, is_usage_limit_exceeded

logger = logging.getLogger(__name__)
settings = get_settings()


class LLMResponder:
    """Runs the prompts the decision pipeline needs."""

    def __init__(self, client: OpenAIClient, db: AsyncSession, events: EventRecorder):
        self.client = client
        self.db = db
        self.events = events

    @property
    def is_available(self) -> bool:
        """LLM features are on and the client has credentials."""
        return settings.enable_openai_fallback and self.client.is_configured

    async def _complete(
        self,
        business: Business,
        request_type: str,
        system_prompt: str,
        messages: list[dict[str, Any]],
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Run one completion with timeout and usage tracking.

        Raises:
            TimeoutError: If the completion exceeds openai_timeout_seconds
            openai.APIError: If the API call fails
        """
        model = settings.openai_model
        response = await asyncio.wait_for(
            asyncio.to_thread(
                self.client.create_message,
                system_prompt=system_prompt,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                model=model,
            ),
            timeout=settings.openai_timeout_seconds,
        )

        usage = self.client.extract_usage(response)
        await self.events.record_api_usage(
            business_id=business.id,
            model=model,
            request_type=request_type,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            estimated_cost=estimate_cost(model, usage.prompt_tokens, usage.completion_tokens),
        )
        return self.client.extract_text_response(response)

    async def classify_urgency(self, business: Business, message: str) -> bool:
        """Ask the model whether a customer message needs the owner now.

        Raises:
            Exception: Whatever the completion raised; callers decide how to degrade
        """
        answer = await self._complete(
            business,
            request_type="classify_urgency",
            system_prompt=build_urgency_prompt(business),
            messages=[{"role": "user", "content": f'Message: "{message}"'}],
            max_tokens=10,
            temperature=0.3,
        )
        return answer.strip().strip(".").lower() == "true"

    async def generate_sms_reply(
        self, business: Business, message: str, faqs: list[FAQEntry]
    ) -> str | None:
        """Draft a reply to a customer's text.

        Returns:
            Reply text no longer than sms_max_length, or None when the LLM is
            unavailable, over its daily limit, failed or timed out
        """
        if not self.is_available:
            return None
        if await is_usage_limit_exceeded(self.db, business.id):
            return None

        try:
            reply = await self._complete(
                business,
                request_type="generate_sms_reply",
                system_prompt=build_sms_reply_prompt(business, faqs, settings.sms_max_length),
                messages=[{"role": "user", "content": message}],
                max_tokens=150,
                temperature=0.7,
            )
        except TimeoutError:
            logger.warning(f"⏱️ OpenAI reply timed out after {settings.openai_timeout_seconds}s")
            return None
        except Exception as e:
            logger.error(f"Error generating SMS reply with OpenAI: {e}")
            return None

        if not reply:
            logger.warning("OpenAI returned an empty reply")
            return None
        return truncate_sms(reply, settings.sms_max_length)

    async def generate_missed_call_reply(
        self, business: Business, location: Location | None = None
    ) -> str | None:
        """Draft a personalised missed-call text for paid tiers.

        Returns:
            Reply text, or None when the tier is basic or the LLM cannot be used
        """
        tier = business.subscription_tier
        if tier == SubscriptionTier.BASIC.value or not self.is_available:
            return None
        if await is_usage_limit_exceeded(self.db, business.id):
            return None

        try:
            reply = await self._complete(
                business,
                request_type="generate_missed_call_reply",
                system_prompt=build_missed_call_system_prompt(business, tier, location),
                messages=[{"role": "user", "content": build_missed_call_user_prompt(business, location)}],
                max_tokens=200,
                temperature=0.7 if tier == SubscriptionTier.ENTERPRISE.value else 0.5,
            )
        except TimeoutError:
            logger.warning(f"⏱️ OpenAI missed-call reply timed out after {settings.openai_timeout_seconds}s")
            return None
        except Exception as e:
            logger.error(f"Error generating missed call response: {e}")
            return None

        return truncate_sms(reply, settings.sms_max_length) if reply else None
