"""
Premium & Stripe Billing Tests
==============================

Entitlement rules, the feature gate, and Stripe webhook event handling
against a mocked database session.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
import uuid

import pytest

from app.core.errors import ConflictError, ForbiddenError, ValidationError
from app.core.feature_limits import FeatureGate, get_required_tier_for_feature, has_feature
from app.models.subscription import PremiumSubscription, SubscriptionEvent
from app.models.user import User
from app.services.premium_service import build_status_payload, has_premium_access, subscription_tier
from app.services.stripe_service import StripeService, map_plan_type, map_subscription_status

NOW = datetime(2026, 10, 17, tzinfo=timezone.utc)
USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")


def _subscription(status, period_end=None, trial_end=None) -> PremiumSubscription:
    return PremiumSubscription(
        user_id=USER_ID,
        status=status,
        current_period_end=period_end,
        trial_ends_at=trial_end,
    )


def _db(existing=None):
    db = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = existing
    db.execute = AsyncMock(return_value=result)
    db.flush = AsyncMock()
    return db


# ---------------------------------------------------------------------------
# Premium access
# ---------------------------------------------------------------------------

class TestPremiumAccess:

    def test_no_subscription(self):
        assert has_premium_access(None, NOW) is False

    def test_active_within_period(self):
        assert has_premium_access(_subscription("active", NOW + timedelta(days=3)), NOW) is True

    def test_active_past_period(self):
        assert has_premium_access(_subscription("active", NOW - timedelta(days=1)), NOW) is False

    def test_active_without_period_end(self):
        assert has_premium_access(_subscription("active"), NOW) is True

    def test_trial_open_after_period(self):
        sub = _subscription("trial", NOW - timedelta(days=1), NOW + timedelta(days=2))

        assert has_premium_access(sub, NOW) is True

    @pytest.mark.parametrize("status", ["cancelled", "past_due", "none"])
    def test_other_statuses(self, status):
        assert has_premium_access(_subscription(status, NOW + timedelta(days=10)), NOW) is False

    def test_status_payload_without_subscription(self):
        payload = build_status_payload(None)

        assert payload["has_premium"] is False
        assert payload["subscription_status"] == "none"
        assert payload["trial_available"] is True

    def test_status_payload_during_trial(self):
        sub = _subscription("trial", trial_end=NOW + timedelta(days=5))
        sub.plan_type = "premium_trial"

        payload = build_status_payload(sub, NOW)

        assert payload["has_premium"] is True
        assert payload["plan_type"] == "premium_trial"
        assert payload["trial_available"] is False
        assert payload["trial_ends_at"] == (NOW + timedelta(days=5)).isoformat()


# ---------------------------------------------------------------------------
# Feature gate
# ---------------------------------------------------------------------------

class TestFeatureGate:

    def test_feature_matrix(self):
        assert has_feature("free", "journal_entries") is True
        assert has_feature("free", "partner_suggestions") is False
        assert has_feature("premium", "partner_suggestions") is True
        assert has_feature("unknown-tier", "daily_checkins") is True
        assert get_required_tier_for_feature("premium_analytics") == "premium"
        assert get_required_tier_for_feature("health_score") == "free"

    @pytest.mark.asyncio
    async def test_free_user_is_blocked(self):
        user = User(user_id=USER_ID, email="free@example.com")
        user.premium_subscription = None

        with pytest.raises(ForbiddenError) as exc:
            await FeatureGate("premium_analytics")(user)

        assert exc.value.status_code == 403
        assert exc.value.detail["required_tier"] == "premium"
        assert exc.value.detail["current_tier"] == "free"

    @pytest.mark.asyncio
    async def test_premium_user_passes(self):
        user = User(user_id=USER_ID, email="paid@example.com")
        user.premium_subscription = _subscription("active", datetime.now(timezone.utc) + timedelta(days=30))

        assert subscription_tier(user.premium_subscription) == "premium"
        assert await FeatureGate("premium_analytics")(user) is None


# ---------------------------------------------------------------------------
# Stripe mapping
# ---------------------------------------------------------------------------

class TestStripeMapping:

    @pytest.mark.parametrize(
        "stripe_status, stored",
        [
            ("active", "active"),
            ("trialing", "trial"),
            ("canceled", "cancelled"),
            ("past_due", "past_due"),
            (None, "none"),
        ],
    )
    def test_status(self, stripe_status, stored):
        assert map_subscription_status(stripe_status) == stored

    def test_plan_type(self):
        assert map_plan_type("trialing", "month") == "premium_trial"
        assert map_plan_type("active", "month") == "premium_monthly"
        assert map_plan_type("active", "year") == "premium_yearly"


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------

class TestCheckout:

    @pytest.mark.asyncio
    async def test_unknown_plan(self):
        user = User(user_id=USER_ID, email="a@example.com")

        with pytest.raises(ValidationError):
            await StripeService(_db()).create_checkout_session(user, "weekly")

    @pytest.mark.asyncio
    async def test_active_premium_is_conflict(self, monkeypatch):
        monkeypatch.setattr("app.config.settings.STRIPE_PRICE_ID_MONTHLY", "price_monthly")
        user = User(user_id=USER_ID, email="a@example.com")
        active = _subscription("active", datetime.now(timezone.utc) + timedelta(days=10))

        with pytest.raises(ConflictError) as exc:
            await StripeService(_db(active)).create_checkout_session(user, "monthly")

        assert exc.value.detail["code"] == "SUB_003"


# ---------------------------------------------------------------------------
# Webhook events
# ---------------------------------------------------------------------------

class TestProcessEvent:

    @pytest.mark.asyncio
    async def test_subscription_update_creates_row(self):
        db = _db()
        event = {
            "id": "evt_1",
            "type": "customer.subscription.updated",
            "data": {"object": {
                "id": "sub_1",
                "customer": "cus_1",
                "status": "trialing",
                "trial_end": 1_800_000_000,
                "metadata": {"supabase_user_id": str(USER_ID)},
                "items": {"data": [{
                    "price": {"recurring": {"interval": "month"}},
                    "current_period_start": 1_790_000_000,
                    "current_period_end": 1_800_000_000,
                }]},
            }},
        }

        user_id = await StripeService(db).process_event(event)

        assert user_id == USER_ID
        added = [call.args[0] for call in db.add.call_args_list]
        row = next(a for a in added if isinstance(a, PremiumSubscription))
        audit = next(a for a in added if isinstance(a, SubscriptionEvent))
        assert row.status == "trial"
        assert row.plan_type == "premium_trial"
        assert row.stripe_subscription_id == "sub_1"
        assert row.current_period_end == datetime.fromtimestamp(1_800_000_000, tz=timezone.utc)
        assert audit.event_type == "subscription_updated"
        db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_subscription_deleted_cancels_row(self):
        existing = _subscription("active", NOW + timedelta(days=20))
        db = _db(existing)
        event = {
            "id": "evt_2",
            "type": "customer.subscription.deleted",
            "data": {"object": {"id": "sub_1", "metadata": {"supabase_user_id": str(USER_ID)}}},
        }

        assert await StripeService(db).process_event(event) == USER_ID
        assert existing.status == "cancelled"
        assert existing.cancelled_at is not None

    @pytest.mark.asyncio
    async def test_missing_metadata_is_acknowledged(self):
        db = _db()
        event = {
            "id": "evt_3",
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_1", "metadata": {}}},
        }

        assert await StripeService(db).process_event(event) is None
        db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_invoice_without_subscription_is_acknowledged(self):
        db = _db()
        event = {
            "id": "evt_4",
            "type": "invoice.payment_succeeded",
            "data": {"object": {"id": "in_1"}},
        }

        assert await StripeService(db).process_event(event) is None
        db.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unhandled_type(self):
        db = _db()
        event = {"id": "evt_5", "type": "charge.refunded", "data": {"object": {}}}

        assert await StripeService(db).process_event(event) is None
        db.flush.assert_not_awaited()
