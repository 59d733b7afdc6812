"""Decision pipeline - turns a missed call or inbound text into replies.

Inbound text:
    duplicate? -> location or business -> inbox -> auto-reply enabled? ->
    urgency (keywords, then LLM) with owner escalation -> reply (online
    ordering, FAQ, LLM, custom fallback, default fallback) -> rate-limited
    send -> inbox

Missed call:
    missed? -> duplicate? -> location or business -> owner alert -> call
    event -> inbox -> auto-reply (custom message, LLM for paid tiers, hours
    template) plus the online ordering link -> rate-limited send -> inbox

A call or text to a location number is answered in the location's name,
and its alerts go to the location manager.
"""

import logging
import time
import uuid
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.ai.client import OpenAIClient
from app.ai.responder import LLMResponder
from app.config import get_settings
from app.models import (
    Business,
    CallEvent,
    CallEventType,
    Location,
    SmsDirection,
    SmsStatus,
    SubscriptionTier,
)
from app.services import business as business_service
from app.services import inbox as inbox_service
from app.services.business import CalledNumber
from app.services.dedupe import EventDeduplicator
from app.services.events import EventRecorder
from app.services.faq import match_faq, parse_faqs
from app.services.messaging import SmsClient, SmsSendError, send_sms
from app.services.notifications import notify_owner_missed_call, notify_owner_urgent_message
from app.services.ordering import build_ordering_reply, is_ordering_request, ordering_link_line
from app.services.replies import (
    DEFAULT_FALLBACK_REPLY,
    build_default_auto_reply,
    build_limited_missed_call_template,
    build_missed_call_template,
    reply_hours,
    reply_name,
    reply_ordering_url,
)
from app.services.urgency import NOT_URGENT, UrgencyResult, UrgencySource, detect_keyword_urgency
from app.services.usage import is_usage_limit_exceeded
from app.utils.phone import mask_phone, normalize_phone

logger = logging.getLogger(__name__)
settings = get_settings()

MISSED_CALL_STATUSES = frozenset({"no-answer", "busy", "failed", "canceled"})


class ReplySource(str, Enum):
    """Where the text sent to the customer came from."""

    ONLINE_ORDERING = "online_ordering"
    FAQ = "faq"
    OPENAI = "openai"
    CUSTOM_FALLBACK = "custom_fallback"
    DEFAULT_FALLBACK = "default_fallback"
    CUSTOM_MESSAGE = "custom_message"
    TEMPLATE = "template"


class BusinessNotFoundError(Exception):
    """No business owns the number that was called or texted."""

    def __init__(self, phone: str):
        super().__init__(f"Business not found for {mask_phone(phone)}")
        self.phone = phone


def is_missed_call(call_status: str | None, duration_seconds: int | None = None) -> bool:
    """A call is missed if it was never answered, or answered only briefly.

    Args:
        call_status: Twilio CallStatus / DialCallStatus
        duration_seconds: Connected duration, when Twilio reports one

    Returns:
        True if the call should trigger missed-call handling
    """
    status = (call_status or "").strip().lower()
    if status in MISSED_CALL_STATUSES:
        return True
    if status == "completed" and duration_seconds is not None:
        return duration_seconds < settings.missed_call_duration_threshold_seconds
    return False


def _new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class TextBackPipeline:
    """Runs the decision pipeline for one webhook."""

    def __init__(
        self,
        db: AsyncSession,
        sms_client: SmsClient,
        openai_client: OpenAIClient,
        events: EventRecorder,
        deduplicator: EventDeduplicator,
    ):
        """Initialize the pipeline.

        Args:
            db: Database session (rate limits, business lookup)
            sms_client: Twilio SMS client (can be in mock mode)
            openai_client: OpenAI wrapper (may be unconfigured)
            events: Best-effort analytics recorder
            deduplicator: Shared CallSid/MessageSid TTL set
        """
        self.db = db
        self.sms = sms_client
        self.events = events
        self.deduplicator = deduplicator
        self.llm = LLMResponder(openai_client, db, events)

    async def _resolve_called(self, called: str) -> CalledNumber:
        resolved = await business_service.resolve_called_number(self.db, called)
        if resolved is None:
            raise BusinessNotFoundError(called)
        return resolved

    # ------------------------------------------------------------------
    # Inbound text
    # ------------------------------------------------------------------

    async def handle_inbound_message(
        self,
        from_number: str,
        to_number: str,
        body: str,
        message_sid: str | None = None,
    ) -> dict[str, Any]:
        """Reply to a customer's text message.

        Raises:
            BusinessNotFoundError: If no business or location owns ``to_number``
        """
        started = time.perf_counter()
        request_id = _new_request_id()
        customer = normalize_phone(from_number)
        called = normalize_phone(to_number)

        logger.info(
            f"\n{'='*80}\n"
            f"💬 INBOUND SMS [{request_id}]\n"
            f"  MessageSid: {message_sid}\n"
            f"  From: {mask_phone(customer)}\n"
            f"  To: {called}\n"
            f"{'='*80}"
        )

        if message_sid and self.deduplicator.check_and_mark(message_sid):
            return {
                "success": True,
                "duplicate": True,
                "requestId": request_id,
                "messageSid": message_sid,
            }

        try:
            return await self._process_inbound_message(
                started, request_id, customer, called, body, message_sid
            )
        except Exception:
            # Let a Twilio retry through
            if message_sid:
                self.deduplicator.forget(message_sid)
            raise

    async def _process_inbound_message(
        self,
        started: float,
        request_id: str,
        customer: str,
        called: str,
        body: str,
        message_sid: str | None,
    ) -> dict[str, Any]:
        resolved = await self._resolve_called(called)
        business, location = resolved.business, resolved.location

        await self.events.record_sms_event(
            direction=SmsDirection.INBOUND.value,
            status=SmsStatus.RECEIVED.value,
            business_id=business.id,
            message_sid=message_sid,
            from_number=customer,
            to_number=called,
            body=body,
            request_id=request_id,
        )
        conversation = await inbox_service.record_inbound_text(
            self.db, business, customer, body, message_sid=message_sid, location=location
        )

        if not business.auto_reply_enabled:
            logger.info(f"Auto-reply disabled for {business.name}, not replying")
            return {
                "success": True,
                "message": "Auto-reply disabled",
                "requestId": request_id,
                "businessId": str(business.id),
                "conversationId": str(conversation.id),
            }

        urgency = await self._detect_urgency(business, body)
        owner_alert_sent = False
        if urgency.is_urgent:
            logger.info(f"🚨 Urgent message for {business.name} (via {urgency.source.value})")
            await inbox_service.flag_urgent(self.db, conversation)
            owner_alert_sent = await notify_owner_urgent_message(
                self.db,
                self.sms,
                self.events,
                business,
                customer_phone=customer,
                message=body,
                urgency=urgency,
                request_id=request_id,
                location=location,
            )

        reply, source, matched_faq = await self._compose_message_reply(business, body, location)
        logger.info(f"Reply for {business.name} from {source.value}: {reply[:60]}")

        result: dict[str, Any] = {
            "requestId": request_id,
            "businessId": str(business.id),
            "businessName": business.name,
            "locationId": str(location.id) if location else None,
            "conversationId": str(conversation.id),
            "matchedFaq": matched_faq,
            "responseMessage": reply,
            "responseSource": source.value,
            "urgent": urgency.is_urgent,
            "urgencySource": urgency.source.value if urgency.source else None,
            "ownerAlertSent": owner_alert_sent,
        }

        try:
            sms_result = await send_sms(
                self.db,
                self.sms,
                self.events,
                to=customer,
                body=reply,
                from_number=called or business.sender_phone,
                business_id=business.id,
                request_id=request_id,
            )
        except SmsSendError as e:
            result.update(
                success=False,
                error=f"Failed to send SMS: {e}",
                processingTime=_elapsed_ms(started),
            )
            return result

        if sms_result.sent:
            await inbox_service.record_auto_reply(
                self.db, conversation, reply, sms_result.sid, source.value
            )

        result.update(
            success=True,
            messageSid=sms_result.sid,
            rateLimited=sms_result.rate_limited,
            processingTime=_elapsed_ms(started),
        )
        return result

    async def _detect_urgency(self, business: Business, body: str) -> UrgencyResult:
        """Keywords first; the LLM only when no keyword matched."""
        keyword_result = detect_keyword_urgency(body, business.custom_alert_keywords)
        if keyword_result.is_urgent:
            return keyword_result

        if not self.llm.is_available:
            return NOT_URGENT
        if await is_usage_limit_exceeded(self.db, business.id):
            return NOT_URGENT

        try:
            if await self.llm.classify_urgency(business, body):
                return UrgencyResult(is_urgent=True, source=UrgencySource.GPT_CLASSIFICATION)
        except Exception as e:
            # Classification is advisory; the customer still gets a reply
            logger.error(f"Error during GPT urgency classification: {e}")
        return NOT_URGENT

    async def _compose_message_reply(
        self, business: Business, body: str, location: Location | None = None
    ) -> tuple[str, ReplySource, str | None]:
        """Pick the reply text.

        Returns:
            (reply, source, matched FAQ question or None)
        """
        ordering_url = reply_ordering_url(business, location)
        if ordering_url and is_ordering_request(body):
            return (
                build_ordering_reply(reply_name(business, location), ordering_url),
                ReplySource.ONLINE_ORDERING,
                None,
            )

        faqs = parse_faqs(business.faqs)
        faq = match_faq(body, faqs)
        if faq:
            return faq.answer, ReplySource.FAQ, faq.question

        generated = await self.llm.generate_sms_reply(business, body, faqs)
        if generated:
            return generated, ReplySource.OPENAI, None

        if business.custom_fallback_message:
            return business.custom_fallback_message, ReplySource.CUSTOM_FALLBACK, None

        return DEFAULT_FALLBACK_REPLY, ReplySource.DEFAULT_FALLBACK, None

    # ------------------------------------------------------------------
    # Missed call
    # ------------------------------------------------------------------

    async def handle_missed_call(
        self,
        call_sid: str | None,
        from_number: str,
        to_number: str,
        call_status: str,
        duration_seconds: int | None = None,
        trigger: str = "status_callback",
    ) -> dict[str, Any]:
        """Alert the owner and text the caller back after a missed call.

        Args:
            call_sid: Twilio CallSid (used for duplicate suppression)
            from_number: Caller
            to_number: Business number that was called
            call_status: CallStatus / DialCallStatus
            duration_seconds: Connected duration if known
            trigger: Which webhook reported the call (stored on the event)

        Raises:
            BusinessNotFoundError: If no business owns ``to_number``
        """
        request_id = _new_request_id()
        caller = normalize_phone(from_number)
        called = normalize_phone(to_number)
        base: dict[str, Any] = {"callSid": call_sid, "callStatus": call_status}

        if not is_missed_call(call_status, duration_seconds):
            logger.info(f"Call {call_sid} status '{call_status}' is not a missed call, ignoring")
            return {**base, "success": True, "ignored": True, "message": f"Status {call_status} ignored"}

        if call_sid and (
            self.deduplicator.check_and_mark(call_sid)
            or await self._missed_call_already_logged(call_sid)
        ):
            return {**base, "success": True, "duplicate": True}

        logger.info(
            f"\n{'='*80}\n"
            f"📞 MISSED CALL [{request_id}]\n"
            f"  CallSid: {call_sid}\n"
            f"  From: {mask_phone(caller)}\n"
            f"  To: {called}\n"
            f"  Status: {call_status} (duration: {duration_seconds})\n"
            f"{'='*80}"
        )

        try:
            return await self._process_missed_call(
                base, request_id, call_sid, caller, called, call_status, duration_seconds, trigger
            )
        except Exception:
            # Let a Twilio retry through
            if call_sid:
                self.deduplicator.forget(call_sid)
            raise

    async def _process_missed_call(
        self,
        base: dict[str, Any],
        request_id: str,
        call_sid: str | None,
        caller: str,
        called: str,
        call_status: str,
        duration_seconds: int | None,
        trigger: str,
    ) -> dict[str, Any]:
        resolved = await self._resolve_called(called)
        business, location = resolved.business, resolved.location

        owner_notified = await notify_owner_missed_call(
            self.db,
            self.sms,
            self.events,
            business,
            caller=caller,
            call_status=call_status,
            request_id=request_id,
            location=location,
        )

        await self.events.record_call_event(
            call_sid=call_sid or f"unknown-{request_id}",
            event_type=CallEventType.MISSED.value,
            business_id=business.id,
            from_number=caller,
            to_number=called,
            call_status=call_status,
            owner_notified=owner_notified,
            payload={"duration": duration_seconds, "trigger": trigger, "request_id": request_id},
        )
        conversation = await inbox_service.record_missed_call(
            self.db, business, caller, call_status, location=location
        )

        result: dict[str, Any] = {
            **base,
            "success": True,
            "businessId": str(business.id),
            "locationId": str(location.id) if location else None,
            "conversationId": str(conversation.id),
            "ownerNotificationSent": owner_notified,
            "autoReplySent": False,
            "responseSource": None,
            "rateLimited": False,
        }

        if not business.auto_reply_enabled:
            logger.info(f"Auto-reply disabled for {business.name}, owner alert only")
            return result

        reply, source = await self.compose_missed_call_reply(business, location)
        result["responseSource"] = source.value

        try:
            sms_result = await send_sms(
                self.db,
                self.sms,
                self.events,
                to=caller,
                body=reply,
                from_number=called or business.sender_phone,
                business_id=business.id,
                request_id=request_id,
            )
        except SmsSendError as e:
            logger.error(f"❌ Missed-call auto-reply to {mask_phone(caller)} failed: {e}")
            result["error"] = f"Failed to send auto-reply: {e}"
            return result

        if sms_result.sent:
            await inbox_service.record_auto_reply(
                self.db, conversation, reply, sms_result.sid, source.value
            )

        result["autoReplySent"] = sms_result.sent
        result["rateLimited"] = sms_result.rate_limited
        result["messageSid"] = sms_result.sid
        return result

    async def compose_missed_call_reply(
        self, business: Business, location: Location | None = None
    ) -> tuple[str, ReplySource]:
        """Build the text sent to a caller we missed.

        An owner-written message wins (the location's, then the business's);
        paid tiers get an LLM-written text; otherwise a template with the
        hours. A call to a location is answered in its name with its own
        hours when it has them. The online ordering link is appended
        whenever there is one.
        """
        custom = (location.auto_reply_message if location else None) or business.auto_reply_message
        if custom:
            reply, source = custom.strip(), ReplySource.CUSTOM_MESSAGE
        else:
            generated = await self.llm.generate_missed_call_reply(business, location)
            if generated:
                reply, source = generated, ReplySource.OPENAI
            elif not reply_hours(business, location):
                reply, source = build_default_auto_reply(business, location), ReplySource.TEMPLATE
            elif business.subscription_tier == SubscriptionTier.BASIC.value:
                reply, source = build_missed_call_template(business, location), ReplySource.TEMPLATE
            else:
                reply, source = build_limited_missed_call_template(business, location), ReplySource.TEMPLATE

        url = reply_ordering_url(business, location)
        if url and url not in reply:
            reply = f"{reply} {ordering_link_line(url)}"
        return reply, source

    async def _missed_call_already_logged(self, call_sid: str) -> bool:
        """Check the store for a missed-call event from another worker."""
        result = await self.db.execute(
            select(CallEvent.id)
            .where(
                CallEvent.call_sid == call_sid,
                CallEvent.event_type == CallEventType.MISSED.value,
            )
            .limit(1)
        )
        if result.first() is not None:
            logger.info(f"🔁 Missed call {call_sid} already logged, skipping")
            return True
        return False
