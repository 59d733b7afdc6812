"""Best-effort analytics event logging.

Call, SMS, owner-alert and LLM-usage rows are written on their own session,
off the request path. A failed write is logged and dropped; it never fails
the webhook that produced it.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.database import async_session_maker
from app.models import ApiUsage, Base, CallEvent, OwnerAlert, SmsEvent

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class EventRecorder:
    """Writes analytics rows without blocking the caller."""

    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        background: bool = True,
    ):
        """Initialize the recorder.

        Args:
            session_factory: Opens a session per write (defaults to the app's)
            background: If False, writes are awaited inline (used in tests)
        """
        self._session_factory = session_factory or async_session_maker
        self.background = background
        self._pending: set[asyncio.Task] = set()

    async def record(self, row: Base) -> None:
        """Schedule a row to be persisted."""
        if not self.background:
            await self._write(row)
            return

        task = asyncio.create_task(self._write(row))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, row: Base) -> bool:
        table = row.__tablename__
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
            return True
        except Exception as e:
            logger.error(f"⚠️ Failed to record {table} event: {e}")
            return False

    async def drain(self) -> None:
        """Wait for every scheduled write to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def record_call_event(
        self,
        call_sid: str,
        event_type: str,
        business_id: uuid.UUID | None = None,
        from_number: str | None = None,
        to_number: str | None = None,
        call_status: str | None = None,
        owner_notified: bool = False,
        payload: dict[str, Any] | None = None,
    ) -> None:
        await self.record(
            CallEvent(
                call_sid=call_sid,
                event_type=event_type,
                business_id=business_id,
                from_number=from_number,
                to_number=to_number,
                call_status=call_status,
                owner_notified=owner_notified,
                payload=payload or {},
            )
        )

    async def record_sms_event(
        self,
        direction: str,
        status: str,
        business_id: uuid.UUID | None = None,
        message_sid: str | None = None,
        from_number: str | None = None,
        to_number: str | None = None,
        body: str | None = None,
        error_code: str | None = None,
        error_message: str | None = None,
        request_id: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        await self.record(
            SmsEvent(
                direction=direction,
                status=status,
                business_id=business_id,
                message_sid=message_sid,
                from_number=from_number,
                to_number=to_number,
                body=body,
                error_code=error_code,
                error_message=error_message,
                request_id=request_id,
                payload=payload or {},
            )
        )

    async def record_owner_alert(
        self,
        business_id: uuid.UUID,
        owner_phone: str,
        alert_type: str,
        message: str,
        status: str,
        message_sid: str | None = None,
        error: str | None = None,
    ) -> None:
        await self.record(
            OwnerAlert(
                business_id=business_id,
                owner_phone=owner_phone,
                alert_type=alert_type,
                message=message,
                status=status,
                message_sid=message_sid,
                error=error,
            )
        )

    async def record_api_usage(
        self,
        business_id: uuid.UUID | None,
        model: str,
        request_type: str,
        prompt_tokens: int,
        completion_tokens: int,
        estimated_cost: float,
        service: str = "openai",
    ) -> None:
        await self.record(
            ApiUsage(
                business_id=business_id,
                service=service,
                model=model,
                request_type=request_type,
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
                estimated_cost=estimated_cost,
            )
        )


# Process-wide recorder used by the API
event_recorder = EventRecorder()


def get_event_recorder() -> EventRecorder:
    """Dependency returning the shared recorder."""
    return event_recorder
