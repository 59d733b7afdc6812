"""SQLAlchemy models for TextBack."""

from app.models.api_usage import ApiUsage
from app.models.base import Base, TimestampMixin, UUIDMixin
from app.models.business import Business, SubscriptionStatus, SubscriptionTier
from app.models.call_event import CallEvent, CallEventType
from app.models.conversation import (
    Conversation,
    ConversationPriority,
    ConversationSource,
    ConversationStatus,
)
from app.models.conversation_message import ConversationMessage, MessageSenderType
from app.models.location import Location
from app.models.owner_alert import OwnerAlert, OwnerAlertType
from app.models.rate_limit import RateLimit
from app.models.sms_event import SmsDirection, SmsEvent, SmsStatus

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Models
    "Business",
    "Location",
    "Conversation",
    "ConversationMessage",
    "CallEvent",
    "SmsEvent",
    "OwnerAlert",
    "ApiUsage",
    "RateLimit",
    # Enums
    "SubscriptionTier",
    "SubscriptionStatus",
    "ConversationStatus",
    "ConversationPriority",
    "ConversationSource",
    "MessageSenderType",
    "CallEventType",
    "SmsDirection",
    "SmsStatus",
    "OwnerAlertType",
]
