"""Tests for the inbound text decision pipeline."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from app.models import ApiUsage, OwnerAlert, SmsDirection, SmsEvent, SmsStatus
from app.services.messaging import SmsSendError
from app.services.pipeline import BusinessNotFoundError
from app.services.replies import DEFAULT_FALLBACK_REPLY
from tests.conftest import BUSINESS_PHONE, CUSTOMER_PHONE, OWNER_PHONE

pytestmark = pytest.mark.asyncio


async def _owner_alerts(db) -> list[OwnerAlert]:
    return list((await db.execute(select(OwnerAlert))).scalars().all())


class TestReplySelection:
    """Reply order: ordering link, FAQ, LLM, custom fallback, default."""

    async def test_faq_match(self, pipeline, business, mock_sms_client):
        result = await pipeline.handle_inbound_message(
            CUSTOMER_PHONE, BUSINESS_PHONE, "are you open on sunday?", "SM1"
        )

        assert result["success"] is True
        assert result["responseSource"] == "faq"
        assert result["matchedFaq"] == "Are you open on Sunday?"
        assert result["responseMessage"] == "No, we're closed Sundays."
        mock_sms_client.send_message.assert_awaited_once_with(
            to=CUSTOMER_PHONE, body="No, we're closed Sundays.", from_number=BUSINESS_PHONE
        )

    async def test_ordering_link_beats_faq(self, pipeline, business):
        business.online_ordering_url = "https://order.joes.test"
        business.faqs = [{"question": "order", "answer": "Call us to order."}]

        result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "Can I order a pie?")

        assert result["responseSource"] == "online_ordering"
        assert result["responseMessage"] == (
            "Thanks for reaching out to Joe's Pizza! Order online here: https://order.joes.test"
        )

    async def test_ordering_words_without_url_fall_through(self, pipeline, business):
        result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "Do you deliver?")
        assert result["responseSource"] == "default_fallback"

    async def test_llm_reply_when_no_faq(self, make_pipeline, business, db, mock_openai_client):
        mock_openai_client.queue_response("false")  # urgency
        mock_openai_client.queue_response("We have gluten free crust!", prompt_tokens=50, completion_tokens=8)
        pipeline = make_pipeline(mock_openai_client)

        result = await pipeline.handle_inbound_message(
            CUSTOMER_PHONE, BUSINESS_PHONE, "Do you have gluten free crust?"
        )

        assert result["responseSource"] == "openai"
        assert result["responseMessage"] == "We have gluten free crust!"
        assert result["urgent"] is False

        usage = (await db.execute(select(ApiUsage))).scalars().all()
        assert {u.request_type for u in usage} == {"classify_urgency", "generate_sms_reply"}
        assert sum(u.total_tokens for u in usage) == 15 + 58

    async def test_llm_reply_is_truncated(self, make_pipeline, business, mock_openai_client):
        mock_openai_client.queue_response("false")
        mock_openai_client.queue_response("x" * 500)
        pipeline = make_pipeline(mock_openai_client)

        result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "tell me everything")

        assert len(result["responseMessage"]) <= 300

    async def test_llm_error_falls_back_to_custom_message(self, make_pipeline, business, mock_openai_client):
        business.custom_fallback_message = "Text us back during business hours!"
        mock_openai_client.queue_response("false")
        mock_openai_client.queue_response(error=RuntimeError("openai down"))
        pipeline = make_pipeline(mock_openai_client)

        result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "random question")

        assert result["responseSource"] == "custom_fallback"
        assert result["responseMessage"] == "Text us back during business hours!"

    async def test_default_fallback_without_llm(self, pipeline, business):
        result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "random question")

        assert result["responseSource"] == "default_fallback"
        assert result["responseMessage"] == DEFAULT_FALLBACK_REPLY

    async def test_llm_skipped_when_daily_limit_reached(self, make_pipeline, business, db, mock_openai_client):
        db.add(ApiUsage(
            business_id=business.id,
            model="gpt-4o",
            request_type="generate_sms_reply",
            prompt_tokens=100_000,
            completion_tokens=0,
            total_tokens=100_000,
            estimated_cost=0.5,
        ))
        await db.flush()
        pipeline = make_pipeline(mock_openai_client)

        with patch("app.services.usage.settings") as mock_settings:
            mock_settings.openai_daily_token_limit = 1000
            result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "random question")

        assert result["responseSource"] == "default_fallback"
        assert mock_openai_client.calls == []


class TestUrgency:
    """Urgent messages escalate to the owner."""

    async def test_keyword_alerts_owner(self, pipeline, business, db, mock_sms_client):
        result = await pipeline.handle_inbound_message(
            CUSTOMER_PHONE, BUSINESS_PHONE, "There is a LEAK under the sink"
        )

        assert result["urgent"] is True
        assert result["urgencySource"] == "custom_keywords"
        assert result["ownerAlertSent"] is True

        recipients = [c.kwargs["to"] for c in mock_sms_client.send_message.await_args_list]
        assert recipients == [OWNER_PHONE, CUSTOMER_PHONE]

        alerts = await _owner_alerts(db)
        assert len(alerts) == 1
        assert alerts[0].alert_type == "urgent_message"
        assert alerts[0].message.startswith("🚨 Urgent Customer Message for Joe's Pizza:")
        assert "Detected via: custom_keywords" in alerts[0].message

    async def test_llm_classifies_urgent(self, make_pipeline, business, mock_openai_client):
        mock_openai_client.queue_response("true")
        mock_openai_client.queue_response("We'll call you right away.")
        pipeline = make_pipeline(mock_openai_client)

        result = await pipeline.handle_inbound_message(
            CUSTOMER_PHONE, BUSINESS_PHONE, "the food made my kid sick"
        )

        assert result["urgent"] is True
        assert result["urgencySource"] == "gpt_classification"
        assert result["ownerAlertSent"] is True

    async def test_keyword_match_skips_llm_classification(self, make_pipeline, business, mock_openai_client):
        mock_openai_client.queue_response("A reply")
        pipeline = make_pipeline(mock_openai_client)

        await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "emergency! what now")

        assert len(mock_openai_client.calls) == 1
        assert mock_openai_client.calls[0]["max_tokens"] == 150

    async def test_classification_error_still_replies(self, make_pipeline, business, mock_openai_client):
        mock_openai_client.queue_response(error=RuntimeError("connection reset"))
        mock_openai_client.queue_response("Here's your answer")
        pipeline = make_pipeline(mock_openai_client)

        result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "hello?")

        assert result["urgent"] is False
        assert result["success"] is True
        assert result["responseSource"] == "openai"

    async def test_missing_owner_phone_means_no_alert(self, pipeline, business, db):
        business.owner_phone = None
        with patch("app.services.notifications.settings") as mock_settings:
            mock_settings.default_owner_phone = ""
            result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "emergency")

        assert result["urgent"] is True
        assert result["ownerAlertSent"] is False
        assert result["success"] is True
        assert await _owner_alerts(db) == []


class TestInboundFlow:
    """Dedupe, lookup, cooldown and auto-reply toggles."""

    async def test_unknown_business_raises(self, pipeline, business):
        with pytest.raises(BusinessNotFoundError):
            await pipeline.handle_inbound_message(CUSTOMER_PHONE, "+15559999999", "hi")

    async def test_matches_business_number_without_plus(self, pipeline, business):
        result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, "15550001111", "are you open on sunday")
        assert result["businessId"] == str(business.id)

    async def test_duplicate_message_sid_is_ignored(self, pipeline, business, mock_sms_client):
        await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "hi", "SMdup")
        result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "hi", "SMdup")

        assert result["duplicate"] is True
        assert mock_sms_client.send_message.await_count == 1

    async def test_auto_reply_disabled(self, pipeline, business, db, mock_sms_client):
        business.auto_reply_enabled = False

        result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "emergency!")

        assert result["success"] is True
        assert result["message"] == "Auto-reply disabled"
        mock_sms_client.send_message.assert_not_awaited()

        inbound = (await db.execute(select(SmsEvent))).scalars().all()
        assert [(e.direction, e.status) for e in inbound] == [
            (SmsDirection.INBOUND.value, SmsStatus.RECEIVED.value)
        ]

    async def test_second_text_within_cooldown_is_rate_limited(self, pipeline, business, mock_sms_client):
        first = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "hi", "SM1")
        second = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "hello again", "SM2")

        assert first["rateLimited"] is False
        assert second["rateLimited"] is True
        assert second["messageSid"] == "RATE_LIMITED"
        assert second["success"] is True
        assert mock_sms_client.send_message.await_count == 1

    async def test_send_failure_reported(self, pipeline, business, mock_sms_client):
        mock_sms_client.send_message = AsyncMock(side_effect=SmsSendError("Twilio error 21211", code="21211"))

        result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "hi")

        assert result["success"] is False
        assert "Failed to send SMS" in result["error"]
        assert "processingTime" in result


    async def test_unexpected_error_lets_retry_through(self, pipeline, business, deduplicator, mock_sms_client):
        mock_sms_client.send_message = AsyncMock(
            side_effect=[RuntimeError("connection reset"), {"sid": "SM_ok", "status": "queued"}]
        )

        with pytest.raises(RuntimeError):
            await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "hi", "SMretry")
        assert len(deduplicator) == 0

        result = await pipeline.handle_inbound_message(CUSTOMER_PHONE, BUSINESS_PHONE, "hi", "SMretry")

        assert "duplicate" not in result
        assert result["success"] is True
        assert result["messageSid"] == "SM_ok"
        assert mock_sms_client.send_message.await_count == 2

    async def test_unknown_business_allows_retry(self, pipeline, business, deduplicator):
        with pytest.raises(BusinessNotFoundError):
            await pipeline.handle_inbound_message(CUSTOMER_PHONE, "+15559999999", "hi", "SMlost")
        assert deduplicator.check_and_mark("SMlost") is False
