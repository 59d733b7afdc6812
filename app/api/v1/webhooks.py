"""Twilio webhook endpoints - inbound calls, missed calls and texts."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Form, HTTPException, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_event_recorder, get_pipeline, verify_twilio_signature
from app.models import CallEventType
from app.services import business as business_service
from app.services.events import EventRecorder
from app.services.pipeline import BusinessNotFoundError, TextBackPipeline
from app.services.voice import (
    build_error_twiml,
    build_forward_twiml,
    build_hangup_twiml,
    build_unavailable_twiml,
    resolve_forwarding_number,
)
from app.utils.phone import mask_phone, normalize_phone

router = APIRouter(
    prefix="/twilio",
    tags=["twilio"],
    dependencies=[Depends(verify_twilio_signature)],
)
logger = logging.getLogger(__name__)


def _twiml(content: str) -> PlainTextResponse:
    return PlainTextResponse(content=content, media_type="text/xml")


def _parse_duration(value: str | None) -> int | None:
    """Twilio durations arrive as strings and may be empty."""
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric call duration {value!r}")
        return None


@router.post("/voice", status_code=status.HTTP_200_OK)
async def receive_voice_call(
    db: Annotated[AsyncSession, Depends(get_db)],
    pipeline: Annotated[TextBackPipeline, Depends(get_pipeline)],
    events: Annotated[EventRecorder, Depends(get_event_recorder)],
    CallSid: Annotated[str, Form()],
    From: Annotated[str, Form()],
    To: Annotated[str, Form()],
    CallStatus: Annotated[str | None, Form()] = None,
) -> PlainTextResponse:
    """Answer an inbound call.

    Rings the location's or business's forwarding number; when nobody picks up Twilio
    calls /dial-complete. Without a forwarding number the caller hears the
    unavailable greeting and gets a text straight away.

    Returns:
        TwiML, even when processing fails
    """
    caller = normalize_phone(From)
    called = normalize_phone(To)
    logger.info(f"📞 Inbound call {CallSid} from {mask_phone(caller)} to {called}")

    try:
        resolved = await business_service.resolve_called_number(db, called)
        business = resolved.business if resolved else None
        location = resolved.location if resolved else None
        await events.record_call_event(
            call_sid=CallSid,
            event_type=CallEventType.INBOUND.value,
            business_id=business.id if business else None,
            from_number=caller,
            to_number=called,
            call_status=CallStatus,
        )

        forwarding_number = resolve_forwarding_number(business, location)
        if forwarding_number:
            logger.info(f"Forwarding call {CallSid} to {mask_phone(forwarding_number)}")
            twiml = build_forward_twiml(
                business, forwarding_number, CallSid, caller, called, location=location
            )
            return _twiml(twiml)

        if business is not None:
            await pipeline.handle_missed_call(
                call_sid=CallSid,
                from_number=caller,
                to_number=called,
                call_status="no-answer",
                trigger="no_forwarding_number",
            )
            await db.commit()
        return _twiml(build_unavailable_twiml(business, location))

    except Exception as e:
        logger.error(f"❌ Error handling voice webhook for {CallSid}: {e}", exc_info=True)
        return _twiml(build_error_twiml())


@router.post("/dial-complete", status_code=status.HTTP_200_OK)
async def dial_complete(
    db: Annotated[AsyncSession, Depends(get_db)],
    pipeline: Annotated[TextBackPipeline, Depends(get_pipeline)],
    CallSid: Annotated[str, Form()],
    From: Annotated[str, Form()],
    To: Annotated[str, Form()],
    DialCallStatus: Annotated[str | None, Form()] = None,
    DialCallDuration: Annotated[str | None, Form()] = None,
) -> PlainTextResponse:
    """Dial action callback: the forwarded leg has ended.

    Returns:
        Hang-up TwiML, even when processing fails
    """
    try:
        result = await pipeline.handle_missed_call(
            call_sid=CallSid,
            from_number=From,
            to_number=To,
            call_status=DialCallStatus or "",
            duration_seconds=_parse_duration(DialCallDuration),
            trigger="dial_complete",
        )
        await db.commit()
        logger.info(f"Dial for {CallSid} ended with {DialCallStatus}: {result}")
    except BusinessNotFoundError as e:
        logger.warning(f"Dial complete for {CallSid}: {e}")
    except Exception as e:
        logger.error(f"❌ Error handling dial completion for {CallSid}: {e}", exc_info=True)

    return _twiml(build_hangup_twiml())


@router.post("/missed-call", status_code=status.HTTP_200_OK)
async def receive_missed_call(
    db: Annotated[AsyncSession, Depends(get_db)],
    pipeline: Annotated[TextBackPipeline, Depends(get_pipeline)],
    To: Annotated[str | None, Form()] = None,
    From: Annotated[str | None, Form()] = None,
    CallSid: Annotated[str | None, Form()] = None,
    CallStatus: Annotated[str | None, Form()] = None,
    DialCallStatus: Annotated[str | None, Form()] = None,
    CallDuration: Annotated[str | None, Form()] = None,
    DialCallDuration: Annotated[str | None, Form()] = None,
) -> dict[str, Any]:
    """Status-callback style missed-call webhook.

    Args:
        To: Business number that was called
        From: Caller
        CallSid: Unique call identifier
        CallStatus: Parent call status
        DialCallStatus: Forwarded leg status (takes precedence)
        CallDuration: Parent call duration in seconds
        DialCallDuration: Forwarded leg duration in seconds (takes precedence)

    Returns:
        Pipeline result
    """
    call_status = DialCallStatus or CallStatus
    if not To or not From or not call_status:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: To, From and CallStatus",
        )

    duration = _parse_duration(DialCallDuration)
    if duration is None:
        duration = _parse_duration(CallDuration)

    try:
        result = await pipeline.handle_missed_call(
            call_sid=CallSid,
            from_number=From,
            to_number=To,
            call_status=call_status,
            duration_seconds=duration,
        )
    except BusinessNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found") from e

    await db.commit()
    return result


@router.post("/sms", status_code=status.HTTP_200_OK)
async def receive_sms(
    db: Annotated[AsyncSession, Depends(get_db)],
    pipeline: Annotated[TextBackPipeline, Depends(get_pipeline)],
    To: Annotated[str | None, Form()] = None,
    From: Annotated[str | None, Form()] = None,
    Body: Annotated[str | None, Form()] = None,
    MessageSid: Annotated[str | None, Form()] = None,
) -> dict[str, Any]:
    """Inbound customer text.

    Args:
        To: Business number that was texted
        From: Customer number
        Body: Message content
        MessageSid: Unique message identifier

    Returns:
        Pipeline result; a failed reply is reported with success=false and
        a 200 status so Twilio does not retry
    """
    if not To or not From or not Body or not Body.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields",
        )

    try:
        result = await pipeline.handle_inbound_message(
            from_number=From,
            to_number=To,
            body=Body.strip(),
            message_sid=MessageSid,
        )
    except BusinessNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found") from e

    await db.commit()
    return result


@router.post("/call-status", status_code=status.HTTP_200_OK)
async def receive_call_status(
    db: Annotated[AsyncSession, Depends(get_db)],
    events: Annotated[EventRecorder, Depends(get_event_recorder)],
    CallSid: Annotated[str, Form()],
    CallStatus: Annotated[str, Form()],
    From: Annotated[str | None, Form()] = None,
    To: Annotated[str | None, Form()] = None,
    CallDuration: Annotated[str | None, Form()] = None,
    Direction: Annotated[str | None, Form()] = None,
) -> dict[str, Any]:
    """Record a call status callback for analytics."""
    called = normalize_phone(To)
    business = await business_service.get_business_by_phone(db, called) if called else None

    logger.info(
        f"Call status {CallSid}: {CallStatus} "
        f"(duration={CallDuration}, direction={Direction}, business={business.id if business else None})"
    )
    await events.record_call_event(
        call_sid=CallSid,
        event_type=CallEventType.STATUS.value,
        business_id=business.id if business else None,
        from_number=normalize_phone(From) or None,
        to_number=called or None,
        call_status=CallStatus,
        payload={"duration": _parse_duration(CallDuration), "direction": Direction},
    )
    return {
        "success": True,
        "message": "Call status received",
        "callSid": CallSid,
        "callStatus": CallStatus,
    }
