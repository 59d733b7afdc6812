"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.ai.client import TokenUsage
from app.models import Base, Business, Location, SubscriptionStatus, SubscriptionTier
from app.services.dedupe import EventDeduplicator, event_deduplicator
from app.services.events import EventRecorder
from app.services.messaging import SmsClient
from app.services.pipeline import TextBackPipeline

# In-memory SQLite shared across connections for one test
TEST_DATABASE_URL = "sqlite+aiosqlite://"

BUSINESS_PHONE = "+15550001111"
OWNER_PHONE = "+15550002222"
CUSTOMER_PHONE = "+15550003333"
LOCATION_PHONE = "+15550005555"
MANAGER_PHONE = "+15550006666"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_factory = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def _reset_deduplicator():
    """The webhook deduplicator is process-wide; start every test empty."""
    event_deduplicator.clear()
    yield
    event_deduplicator.clear()


@pytest.fixture
def event_recorder(db: AsyncSession) -> EventRecorder:
    """Recorder that writes inline on the test session."""

    @asynccontextmanager
    async def _session() -> AsyncIterator[AsyncSession]:
        yield db

    return EventRecorder(session_factory=_session, background=False)


@pytest.fixture
def deduplicator() -> EventDeduplicator:
    return EventDeduplicator(ttl_seconds=300)


class MockOpenAIClient:
    """Mock OpenAI client for deterministic completions in tests.

    Usage:
        client = MockOpenAIClient()
        client.queue_response("true")
        client.queue_response("Thanks! We open at 9.", prompt_tokens=40, completion_tokens=12)
        response = client.create_message(...)
    """

    def __init__(self, configured: bool = True):
        self.is_configured = configured
        self._response_queue: list[dict[str, Any]] = []
        self.calls: list[dict[str, Any]] = []

    def queue_response(
        self,
        content: str | None = None,
        prompt_tokens: int = 10,
        completion_tokens: int = 5,
        error: Exception | None = None,
    ) -> None:
        """Queue a response (or an error to raise) for the next create_message call."""
        self._response_queue.append({
            "content": content,
            "usage": TokenUsage(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
            "error": error,
        })

    def create_message(self, system_prompt: str, messages: list[dict[str, Any]], **kwargs) -> dict[str, Any]:
        """Return queued response or default text response."""
        self.calls.append({"system_prompt": system_prompt, "messages": messages, **kwargs})
        if self._response_queue:
            response = self._response_queue.pop(0)
        else:
            response = {"content": "OK", "usage": TokenUsage(), "error": None}
        if response["error"] is not None:
            raise response["error"]
        return response

    def extract_text_response(self, response: dict[str, Any]) -> str:
        """Extract text from response."""
        return (response.get("content") or "").strip()

    def extract_usage(self, response: dict[str, Any]) -> TokenUsage:
        return response["usage"]


@pytest.fixture
def mock_openai_client() -> MockOpenAIClient:
    """Return a configured mock OpenAI client."""
    return MockOpenAIClient()


@pytest.fixture
def mock_sms_client() -> MagicMock:
    """Return a mock Twilio SMS client."""
    client = MagicMock(spec=SmsClient)
    client.mock_mode = True
    counter = {"n": 0}

    async def _send(to: str, body: str, from_number: str | None = None) -> dict[str, Any]:
        counter["n"] += 1
        return {"sid": f"SM_test_{counter['n']}", "status": "queued", "to": to, "from": from_number}

    client.send_message = AsyncMock(side_effect=_send)
    client.close = AsyncMock()
    return client


@pytest.fixture
def make_pipeline(db, mock_sms_client, event_recorder, deduplicator):
    """Build a pipeline; the LLM is off unless a client is passed in."""

    def _make(openai_client: MockOpenAIClient | None = None) -> TextBackPipeline:
        return TextBackPipeline(
            db=db,
            sms_client=mock_sms_client,
            openai_client=openai_client or MockOpenAIClient(configured=False),
            events=event_recorder,
            deduplicator=deduplicator,
        )

    return _make


@pytest.fixture
def pipeline(make_pipeline) -> TextBackPipeline:
    return make_pipeline()


@pytest_asyncio.fixture
async def business(db: AsyncSession) -> Business:
    """Create a test business on the basic tier."""
    b = Business(
        id=uuid4(),
        name="Joe's Pizza",
        business_type="restaurant",
        public_phone=BUSINESS_PHONE,
        twilio_phone=BUSINESS_PHONE,
        owner_phone=OWNER_PHONE,
        auth0_user_id="auth0|owner-1",
        owner_email="joe@example.com",
        subscription_tier=SubscriptionTier.BASIC.value,
        subscription_status=SubscriptionStatus.ACTIVE.value,
        auto_reply_enabled=True,
        hours={"Monday": "9am-5pm", "Tuesday": "9am-5pm", "Wednesday": "9am-5pm"},
        faqs=[{"question": "Are you open on Sunday?", "answer": "No, we're closed Sundays."}],
        custom_alert_keywords=["emergency", "leak"],
    )
    db.add(b)
    await db.flush()
    return b


@pytest_asyncio.fixture
async def location(db: AsyncSession, business: Business) -> Location:
    """A second branch of the test business with its own number and manager."""
    loc = Location(
        id=uuid4(),
        business_id=business.id,
        name="Downtown",
        phone_number=LOCATION_PHONE,
        address="1 Main St",
        hours={"Friday": "11am-10pm", "Saturday": "11am-10pm"},
        manager_name="Maria",
        manager_phone=MANAGER_PHONE,
    )
    db.add(loc)
    await db.flush()
    return loc


@pytest_asyncio.fixture
async def api_client(
    db: AsyncSession,
    mock_sms_client: MagicMock,
    event_recorder: EventRecorder,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app with storage, Twilio and OpenAI swapped out."""
    from app.api import deps
    from app.main import app

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    async def _get_sms_client() -> AsyncGenerator[SmsClient, None]:
        yield mock_sms_client

    app.dependency_overrides[deps.get_db] = _get_db
    app.dependency_overrides[deps.get_sms_client] = _get_sms_client
    app.dependency_overrides[deps.get_openai] = lambda: MockOpenAIClient(configured=False)
    app.dependency_overrides[deps.get_event_recorder] = lambda: event_recorder
    app.dependency_overrides[deps.get_deduplicator] = lambda: event_deduplicator

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
