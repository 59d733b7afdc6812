"""Pydantic schemas for the TextBack API."""

from app.schemas.billing import CheckoutRequest, RedirectResponse, WebhookAck
from app.schemas.business import (
    FAQ,
    BusinessCreate,
    BusinessResponse,
    BusinessStats,
    BusinessUpdate,
    CallEventResponse,
    SmsEventResponse,
)
from app.schemas.conversation import (
    ConversationDetailResponse,
    ConversationMessageResponse,
    ConversationResponse,
    ConversationUpdate,
    InboxStats,
    MarkReadResponse,
    TeamReplyCreate,
)
from app.schemas.location import LocationCreate, LocationResponse, LocationUpdate

__all__ = [
    # Business
    "FAQ",
    "BusinessCreate",
    "BusinessUpdate",
    "BusinessResponse",
    "BusinessStats",
    "CallEventResponse",
    "SmsEventResponse",
    # Location
    "LocationCreate",
    "LocationUpdate",
    "LocationResponse",
    # Conversation
    "ConversationUpdate",
    "ConversationResponse",
    "ConversationDetailResponse",
    "ConversationMessageResponse",
    "TeamReplyCreate",
    "InboxStats",
    "MarkReadResponse",
    # Billing
    "CheckoutRequest",
    "RedirectResponse",
    "WebhookAck",
]
