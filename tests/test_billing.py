"""Tests for Stripe billing: plan mapping, webhook verification and sync."""

import json
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
import stripe

from app.models import Business, SubscriptionStatus, SubscriptionTier
from app.services import billing
from app.services.billing import BillingError, WebhookVerificationError


def _business(**kwargs) -> Business:
    return Business(id=uuid4(), name="Joe's Pizza", owner_email="joe@example.com", **kwargs)


def _mock_settings(mock_settings):
    mock_settings.stripe_secret_key = "sk_test_123"
    mock_settings.stripe_webhook_secret = "whsec_123"
    mock_settings.stripe_price_basic = "price_basic"
    mock_settings.stripe_price_pro = "price_pro"
    mock_settings.stripe_price_enterprise = "price_ent"
    mock_settings.frontend_url = "https://app.textback.test"
    mock_settings.trial_days = 14


class TestPlanMapping:
    def test_plan_for_price(self):
        with patch("app.services.billing.settings") as mock_settings:
            _mock_settings(mock_settings)
            assert billing.plan_for_price("price_pro") == SubscriptionTier.PRO.value
            assert billing.plan_for_price("price_ent") == SubscriptionTier.ENTERPRISE.value
            assert billing.plan_for_price("price_unknown") == SubscriptionTier.BASIC.value
            assert billing.plan_for_price(None) == SubscriptionTier.BASIC.value

    def test_price_for_plan(self):
        with patch("app.services.billing.settings") as mock_settings:
            _mock_settings(mock_settings)
            assert billing.price_for_plan("pro") == "price_pro"
            assert billing.price_for_plan("platinum") is None

    @pytest.mark.parametrize(
        "stripe_status,expected",
        [
            ("active", "active"),
            ("trialing", "trialing"),
            ("unpaid", "past_due"),
            ("incomplete_expired", "canceled"),
            (None, "incomplete"),
            ("something_new", "incomplete"),
        ],
    )
    def test_map_subscription_status(self, stripe_status, expected):
        assert billing.map_subscription_status(stripe_status) == expected


class TestCheckoutSession:
    def test_first_subscription_gets_trial(self):
        business = _business()
        session = MagicMock(id="cs_1", url="https://checkout.stripe.test/cs_1")
        with patch("app.services.billing.settings") as mock_settings, patch(
            "app.services.billing.stripe.checkout.Session.create", return_value=session
        ) as create:
            _mock_settings(mock_settings)
            url = billing.create_checkout_session(business, "pro")

        assert url == "https://checkout.stripe.test/cs_1"
        params = create.call_args.kwargs
        assert params["line_items"] == [{"price": "price_pro", "quantity": 1}]
        assert params["customer_email"] == "joe@example.com"
        assert params["subscription_data"]["trial_period_days"] == 14
        assert params["metadata"]["business_id"] == str(business.id)

    def test_existing_subscriber_gets_no_trial(self):
        business = _business(stripe_customer_id="cus_1", stripe_subscription_id="sub_1")
        session = MagicMock(id="cs_2", url="https://checkout.stripe.test/cs_2")
        with patch("app.services.billing.settings") as mock_settings, patch(
            "app.services.billing.stripe.checkout.Session.create", return_value=session
        ) as create:
            _mock_settings(mock_settings)
            billing.create_checkout_session(business, "enterprise")

        params = create.call_args.kwargs
        assert params["customer"] == "cus_1"
        assert "trial_period_days" not in params["subscription_data"]

    def test_unknown_plan_raises(self):
        business = _business()
        with patch("app.services.billing.settings") as mock_settings:
            _mock_settings(mock_settings)
            with pytest.raises(BillingError):
                billing.create_checkout_session(business, "platinum")

    def test_portal_requires_customer(self):
        with pytest.raises(BillingError):
            billing.create_portal_session(_business())


class TestParseWebhookEvent:
    PAYLOAD = json.dumps({"id": "evt_1", "type": "customer.subscription.deleted"}).encode()

    def test_valid_signature_returns_dict(self):
        with patch("app.services.billing.settings") as mock_settings, patch(
            "app.services.billing.stripe.WebhookSignature.verify_header", return_value=True
        ):
            _mock_settings(mock_settings)
            event = billing.parse_webhook_event(self.PAYLOAD, "t=1,v1=abc")
        assert event["id"] == "evt_1"

    def test_invalid_signature_raises(self):
        error = stripe.SignatureVerificationError("bad sig", "t=1,v1=abc")
        with patch("app.services.billing.settings") as mock_settings, patch(
            "app.services.billing.stripe.WebhookSignature.verify_header", side_effect=error
        ):
            _mock_settings(mock_settings)
            with pytest.raises(WebhookVerificationError):
                billing.parse_webhook_event(self.PAYLOAD, "t=1,v1=abc")

    def test_missing_signature_raises(self):
        with patch("app.services.billing.settings") as mock_settings:
            _mock_settings(mock_settings)
            with pytest.raises(WebhookVerificationError):
                billing.parse_webhook_event(self.PAYLOAD, None)

    def test_unconfigured_secret_raises_billing_error(self):
        with patch("app.services.billing.settings") as mock_settings:
            mock_settings.stripe_webhook_secret = ""
            with pytest.raises(BillingError):
                billing.parse_webhook_event(self.PAYLOAD, "t=1,v1=abc")


@pytest.mark.asyncio
class TestHandleWebhookEvent:
    async def test_checkout_completed_activates_plan(self, db, business):
        event = {
            "type": "checkout.session.completed",
            "data": {"object": {
                "id": "cs_1",
                "customer": "cus_9",
                "subscription": "sub_9",
                "metadata": {"business_id": str(business.id), "plan": "pro"},
            }},
        }

        updated = await billing.handle_webhook_event(db, event)

        assert updated is business
        assert business.subscription_tier == SubscriptionTier.PRO.value
        assert business.subscription_status == SubscriptionStatus.ACTIVE.value
        assert business.stripe_customer_id == "cus_9"
        assert business.stripe_subscription_id == "sub_9"

    async def test_subscription_updated_by_customer_id(self, db, business):
        business.stripe_customer_id = "cus_9"
        await db.flush()
        event = {
            "type": "customer.subscription.updated",
            "data": {"object": {
                "id": "sub_9",
                "customer": "cus_9",
                "status": "past_due",
                "cancel_at_period_end": True,
                "trial_end": 1767225600,
                "items": {"data": [{"price": {"id": "price_ent"}}]},
            }},
        }

        with patch("app.services.billing.settings") as mock_settings:
            _mock_settings(mock_settings)
            await billing.handle_webhook_event(db, event)

        assert business.subscription_tier == SubscriptionTier.ENTERPRISE.value
        assert business.subscription_status == SubscriptionStatus.PAST_DUE.value
        assert business.cancel_at_period_end is True
        assert business.trial_ends_at is not None

    async def test_subscription_deleted_cancels(self, db, business):
        business.stripe_customer_id = "cus_9"
        await db.flush()
        event = {"type": "customer.subscription.deleted", "data": {"object": {"id": "sub_9", "customer": "cus_9"}}}

        await billing.handle_webhook_event(db, event)

        assert business.subscription_status == SubscriptionStatus.CANCELED.value

    async def test_payment_failed_marks_past_due(self, db, business):
        business.stripe_customer_id = "cus_9"
        await db.flush()
        event = {"type": "invoice.payment_failed", "data": {"object": {"customer": "cus_9"}}}

        await billing.handle_webhook_event(db, event)

        assert business.subscription_status == SubscriptionStatus.PAST_DUE.value

    async def test_unknown_customer_and_event_ignored(self, db, business):
        assert await billing.handle_webhook_event(
            db, {"type": "invoice.payment_failed", "data": {"object": {"customer": "cus_x"}}}
        ) is None
        assert await billing.handle_webhook_event(db, {"type": "charge.refunded", "data": {}}) is None
