"""Pydantic schemas for Business."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.utils.phone import normalize_phone


class FAQ(BaseModel):
    """A stored question/answer pair."""

    question: str = Field(..., min_length=1, max_length=500)
    answer: str = Field(..., min_length=1, max_length=1000)


def _normalize_optional_phone(value: str | None) -> str | None:
    if value is None:
        return None
    return normalize_phone(value) or None


# Base schema with common fields
class BusinessBase(BaseModel):
    """Base business schema with common fields."""

    name: str = Field(..., min_length=1, max_length=255, description="Business name")
    business_type: str | None = Field(None, max_length=100, description="e.g. restaurant")
    address: str | None = None
    public_phone: str | None = Field(None, description="Number customers call (E.164)")
    owner_phone: str | None = Field(None, description="Where owner alerts go (E.164)")
    online_ordering_url: str | None = Field(None, max_length=500)

    @field_validator("public_phone", "owner_phone", mode="before")
    @classmethod
    def _normalize_phones(cls, value: str | None) -> str | None:
        return _normalize_optional_phone(value)


# Schema for creating a new business (trial signup)
class BusinessCreate(BusinessBase):
    """Schema for creating a business during signup."""

    forwarding_number: str | None = None
    hours: dict[str, str] = Field(default_factory=dict, description="Weekday -> hours text")
    faqs: list[FAQ] = Field(default_factory=list)

    @field_validator("forwarding_number", mode="before")
    @classmethod
    def _normalize_forwarding(cls, value: str | None) -> str | None:
        return _normalize_optional_phone(value)


# Schema for updating a business
class BusinessUpdate(BaseModel):
    """Schema for updating a business (all fields optional)."""

    name: str | None = Field(None, min_length=1, max_length=255)
    business_type: str | None = Field(None, max_length=100)
    address: str | None = None
    public_phone: str | None = None
    twilio_phone: str | None = None
    forwarding_number: str | None = None
    owner_phone: str | None = None
    auto_reply_enabled: bool | None = None
    auto_reply_message: str | None = Field(None, max_length=1000)
    custom_fallback_message: str | None = Field(None, max_length=1000)
    online_ordering_url: str | None = Field(None, max_length=500)
    custom_alert_keywords: list[str] | None = None
    faqs: list[FAQ] | None = None
    hours: dict[str, str] | None = None
    custom_settings: dict[str, Any] | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator(
        "public_phone", "twilio_phone", "forwarding_number", "owner_phone", mode="before"
    )
    @classmethod
    def _normalize_phones(cls, value: str | None) -> str | None:
        return _normalize_optional_phone(value)

    @field_validator("custom_alert_keywords")
    @classmethod
    def _clean_keywords(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [kw.strip() for kw in value if kw and kw.strip()]


# Response schema
class BusinessResponse(BusinessBase):
    """Schema for business responses."""

    id: UUID
    twilio_phone: str | None = None
    forwarding_number: str | None = None
    owner_email: str | None = None
    subscription_tier: str
    subscription_status: str
    trial_ends_at: datetime | None = None
    cancel_at_period_end: bool
    auto_reply_enabled: bool
    auto_reply_message: str | None = None
    custom_fallback_message: str | None = None
    custom_alert_keywords: list[str]
    faqs: list[dict[str, Any]]
    hours: dict[str, Any]
    custom_settings: dict[str, Any]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BusinessStats(BaseModel):
    """Dashboard counters."""

    missed_calls: int
    texts_sent: int
    owner_alerts: int
    tokens_used_today: int


class CallEventResponse(BaseModel):
    """A call event as shown on the dashboard."""

    id: UUID
    call_sid: str
    from_number: str | None
    to_number: str | None
    event_type: str
    call_status: str | None
    owner_notified: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SmsEventResponse(BaseModel):
    """An SMS event as shown on the dashboard."""

    id: UUID
    message_sid: str | None
    from_number: str | None
    to_number: str | None
    direction: Literal["inbound", "outbound"]
    status: str
    body: str | None
    error_code: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
