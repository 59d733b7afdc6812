"""Pydantic schemas for Location."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.business import _normalize_optional_phone

_PHONE_FIELDS = ("phone_number", "manager_phone", "forwarding_number")


class LocationBase(BaseModel):
    """Base location schema with common fields."""

    name: str = Field(..., min_length=1, max_length=255)
    phone_number: str | None = Field(None, description="Number customers call for this location")
    address: str | None = None
    hours: dict[str, str] = Field(default_factory=dict)
    manager_name: str | None = Field(None, max_length=255)
    manager_phone: str | None = Field(None, description="Receives this location's owner alerts")
    forwarding_number: str | None = None
    online_ordering_url: str | None = Field(None, max_length=500)
    auto_reply_message: str | None = Field(None, max_length=1000)

    @field_validator(*_PHONE_FIELDS, mode="before")
    @classmethod
    def _normalize_phones(cls, value: str | None) -> str | None:
        return _normalize_optional_phone(value)


class LocationCreate(LocationBase):
    """Schema for creating a location."""

    custom_settings: dict[str, Any] = Field(default_factory=dict)


class LocationUpdate(BaseModel):
    """Schema for updating a location (all fields optional)."""

    name: str | None = Field(None, min_length=1, max_length=255)
    phone_number: str | None = None
    address: str | None = None
    hours: dict[str, str] | None = None
    manager_name: str | None = Field(None, max_length=255)
    manager_phone: str | None = None
    forwarding_number: str | None = None
    online_ordering_url: str | None = Field(None, max_length=500)
    auto_reply_message: str | None = Field(None, max_length=1000)
    custom_settings: dict[str, Any] | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator(*_PHONE_FIELDS, mode="before")
    @classmethod
    def _normalize_phones(cls, value: str | None) -> str | None:
        return _normalize_optional_phone(value)


class LocationResponse(LocationBase):
    """Schema for location responses."""

    id: UUID
    business_id: UUID
    hours: dict[str, Any]
    custom_settings: dict[str, Any]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
