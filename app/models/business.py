"""Business model - a tenant using the text-back service."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.call_event import CallEvent
    from app.models.conversation import Conversation
    from app.models.location import Location
    from app.models.owner_alert import OwnerAlert
    from app.models.sms_event import SmsEvent


class SubscriptionTier(str, Enum):
    """Subscription plan enum."""

    BASIC = "basic"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    """Stripe-backed subscription status."""

    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"


class Business(Base, UUIDMixin, TimestampMixin):
    """A business whose missed calls and texts get automatic replies."""

    __tablename__ = "businesses"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    business_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Phone numbers (E.164)
    public_phone: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    twilio_phone: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    forwarding_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    owner_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Owner identity
    owner_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    auth0_user_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True, index=True
    )

    # Billing
    subscription_tier: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubscriptionTier.BASIC.value
    )
    subscription_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubscriptionStatus.TRIALING.value
    )
    stripe_customer_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, index=True
    )
    stripe_subscription_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    trial_ends_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancel_at_period_end: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # Auto-reply behaviour
    auto_reply_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    auto_reply_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_fallback_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    online_ordering_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    custom_alert_keywords: Mapped[list[str]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    faqs: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    hours: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    custom_settings: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )

    # Relationships
    call_events: Mapped[list["CallEvent"]] = relationship(
        "CallEvent", back_populates="business", cascade="all, delete-orphan"
    )
    sms_events: Mapped[list["SmsEvent"]] = relationship(
        "SmsEvent", back_populates="business", cascade="all, delete-orphan"
    )
    owner_alerts: Mapped[list["OwnerAlert"]] = relationship(
        "OwnerAlert", back_populates="business", cascade="all, delete-orphan"
    )
    locations: Mapped[list["Location"]] = relationship(
        "Location", back_populates="business", cascade="all, delete-orphan"
    )
    conversations: Mapped[list["Conversation"]] = relationship(
        "Conversation", back_populates="business", cascade="all, delete-orphan"
    )

    @property
    def sender_phone(self) -> str | None:
        """Number the business texts customers from."""
        return self.twilio_phone or self.public_phone

    def __repr__(self) -> str:
        """String representation."""
        return f"<Business(id={self.id}, name='{self.name}', tier='{self.subscription_tier}')>"
