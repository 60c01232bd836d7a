"""
API Contract Tests
==================

Status codes and error envelopes at the HTTP boundary:
- 401 without a bearer token
- 400 on request validation failures
- 404 / 403 on relationship membership
- 403 on premium-gated features
- Cron secret guard
- Stripe webhook configuration, signature and idempotency handling
"""

from unittest.mock import AsyncMock, MagicMock, patch
import uuid

import pytest
from httpx import AsyncClient


def _result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


# ---------------------------------------------------------------------------
# Authentication & validation
# ---------------------------------------------------------------------------

class TestAuthentication:

    @pytest.mark.asyncio
    async def test_missing_token_is_401(self, anon_client: AsyncClient):
        response = await anon_client.get("/api/v1/profile")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "AUTH_002"

    @pytest.mark.asyncio
    async def test_garbage_token_is_401(self, anon_client: AsyncClient):
        response = await anon_client.get(
            "/api/v1/relationships",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid or expired token"


class TestValidation:

    @pytest.mark.asyncio
    async def test_missing_body_field_is_400(self, client: AsyncClient):
        response = await client.post("/api/v1/journal/entries", json={"mood_score": 5})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["field"] == "content"

    @pytest.mark.asyncio
    async def test_out_of_range_checkin_is_400(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/checkins",
            json={"connection_score": 11, "mood_score": 5},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_invalid_invite_email_is_400(self, client: AsyncClient):
        response = await client.post(
            f"/api/v1/relationships/{uuid.uuid4()}/invite",
            json={"email": "not-an-email"},
        )

        assert response.status_code == 400


# ---------------------------------------------------------------------------
# Profile & premium
# ---------------------------------------------------------------------------

class TestProfile:

    @pytest.mark.asyncio
    async def test_profile_for_free_user(self, client: AsyncClient, fake_redis):
        response = await client.get("/api/v1/profile")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["email"] == "dev@test.local"
        assert data["subscription"]["has_premium"] is False
        assert data["subscription"]["subscription_status"] == "none"
        assert data["relationship_goals"] == ["communicate better"]
        fake_redis.setex.assert_awaited()

    @pytest.mark.asyncio
    async def test_feature_catalogue_flags(self, client: AsyncClient):
        response = await client.get("/api/v1/premium/features")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["tier"] == "free"
        features = {f["key"]: f for f in data["features"]}
        assert features["journal_entries"]["has_access"] is True
        assert features["partner_suggestions"]["has_access"] is False
        assert features["partner_suggestions"]["required_tier"] == "premium"


# ---------------------------------------------------------------------------
# Relationship membership
# ---------------------------------------------------------------------------

class TestRelationshipAccess:

    @pytest.mark.asyncio
    async def test_unknown_relationship_is_404(self, client: AsyncClient, db_session):
        db_session.execute.return_value = _result(None)

        response = await client.get(f"/api/v1/relationships/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "REL_001"

    @pytest.mark.asyncio
    async def test_non_member_is_403(self, client: AsyncClient, db_session):
        relationship = MagicMock(member_ids=[uuid.uuid4(), uuid.uuid4()])
        db_session.execute.return_value = _result(relationship)

        response = await client.get(f"/api/v1/relationships/{uuid.uuid4()}")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_suggestions_require_premium(self, client: AsyncClient):
        response = await client.post(
            f"/api/v1/relationships/{uuid.uuid4()}/suggestions",
            json={},
        )

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "FEATURE_001"
        assert error["feature"] == "partner_suggestions"
        assert error["current_tier"] == "free"

    @pytest.mark.asyncio
    async def test_account_delete_for_other_user_is_403(self, client: AsyncClient):
        response = await client.delete(f"/api/v1/account/{uuid.uuid4()}")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ACCOUNT_001"

    @pytest.mark.asyncio
    async def test_account_delete_self(self, client: AsyncClient, test_user):
        with patch(
            "app.api.v1.account.AccountService.delete_account",
            new=AsyncMock(return_value={"deleted": True, "relationshipsDeleted": 0}),
        ) as delete_account:
            response = await client.delete(f"/api/v1/account/{test_user.user_id}")

        assert response.status_code == 200
        delete_account.assert_awaited_once_with(test_user.user_id)


# ---------------------------------------------------------------------------
# Scheduled jobs
# ---------------------------------------------------------------------------

class TestCronGuard:

    @pytest.mark.asyncio
    async def test_missing_secret_is_401(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr("app.config.settings.CRON_SECRET", "cron-secret")

        response = await client.post("/api/v1/jobs/daily-suggestions")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "CRON_001"

    @pytest.mark.asyncio
    async def test_unset_secret_never_matches(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr("app.config.settings.CRON_SECRET", "")

        response = await client.post(
            "/api/v1/jobs/daily-suggestions",
            headers={"Authorization": "Bearer "},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_valid_secret_runs_job(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr("app.config.settings.CRON_SECRET", "cron-secret")
        summary = {"totalSuggestionsGenerated": 2, "relationshipsProcessed": 1}

        with patch("app.api.v1.jobs.run_daily_suggestions", new=AsyncMock(return_value=summary)):
            response = await client.post(
                "/api/v1/jobs/daily-suggestions",
                headers={"Authorization": "Bearer cron-secret"},
            )

        assert response.status_code == 200
        assert response.json() == summary


# ---------------------------------------------------------------------------
# Stripe webhooks
# ---------------------------------------------------------------------------

class TestStripeWebhook:

    @pytest.mark.asyncio
    async def test_missing_webhook_secret_is_500(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr("app.config.settings.STRIPE_WEBHOOK_SECRET", "")

        response = await client.post("/api/v1/webhooks/stripe", content=b"{}")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "STRIPE_001"

    @pytest.mark.asyncio
    async def test_bad_signature_is_400(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr("app.config.settings.STRIPE_WEBHOOK_SECRET", "whsec_test")

        response = await client.post(
            "/api/v1/webhooks/stripe",
            content=b'{"id": "evt_1"}',
            headers={"Stripe-Signature": "t=1,v1=deadbeef"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "STRIPE_002"

    @pytest.mark.asyncio
    async def test_duplicate_event_is_skipped(self, client: AsyncClient, monkeypatch, fake_redis):
        monkeypatch.setattr("app.config.settings.STRIPE_WEBHOOK_SECRET", "whsec_test")
        fake_redis.exists.return_value = 1
        event = {"id": "evt_dup", "type": "customer.subscription.updated"}

        with patch("app.api.v1.webhooks.StripeService.construct_event", return_value=event), \
                patch("app.api.v1.webhooks.StripeService.process_event", new=AsyncMock()) as process:
            response = await client.post("/api/v1/webhooks/stripe", content=b"{}")

        assert response.status_code == 200
        assert response.json() == {"received": True, "duplicate": True}
        process.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_processed_event_is_marked(self, client: AsyncClient, monkeypatch, fake_redis, db_session):
        monkeypatch.setattr("app.config.settings.STRIPE_WEBHOOK_SECRET", "whsec_test")
        event = {"id": "evt_new", "type": "invoice.payment_succeeded"}

        with patch("app.api.v1.webhooks.StripeService.construct_event", return_value=event), \
                patch("app.api.v1.webhooks.StripeService.process_event", new=AsyncMock(return_value=None)):
            response = await client.post("/api/v1/webhooks/stripe", content=b"{}")

        assert response.status_code == 200
        assert response.json() == {"received": True}
        db_session.commit.assert_awaited()
        fake_redis.setex.assert_awaited_once_with("webhook:stripe:event:evt_new", 86400 * 7, "1")

    @pytest.mark.asyncio
    async def test_processing_failure_is_500_for_retry(self, client: AsyncClient, monkeypatch, db_session):
        monkeypatch.setattr("app.config.settings.STRIPE_WEBHOOK_SECRET", "whsec_test")
        event = {"id": "evt_fail", "type": "customer.subscription.created"}

        with patch("app.api.v1.webhooks.StripeService.construct_event", return_value=event), \
                patch(
                    "app.api.v1.webhooks.StripeService.process_event",
                    new=AsyncMock(side_effect=RuntimeError("db down")),
                ):
            response = await client.post("/api/v1/webhooks/stripe", content=b"{}")

        assert response.status_code == 500
        db_session.rollback.assert_awaited()
