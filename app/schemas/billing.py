"""Pydantic schemas for billing endpoints."""

from typing import Literal

from pydantic import BaseModel, Field

PlanName = Literal["basic", "pro", "enterprise"]


class CheckoutRequest(BaseModel):
    """Start a Stripe Checkout session for a plan."""

    plan: PlanName = Field(..., description="Subscription plan to purchase")


class RedirectResponse(BaseModel):
    """A hosted Stripe URL the dashboard should redirect to."""

    url: str


class WebhookAck(BaseModel):
    """Acknowledgement returned to Stripe."""

    received: bool = True
