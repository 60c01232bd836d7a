"""
FIRO Compatibility Tests
========================

Difference bands, overall level and insights, the per-relationship cache
and the premium endpoint.
"""

from datetime import datetime, timedelta, timezone
import json
from types import SimpleNamespace
from unittest.mock import MagicMock
import uuid

import pytest
from httpx import AsyncClient

from app.core.errors import ValidationError
from app.models.subscription import PremiumSubscription
from app.services.cache import CacheKeys
from app.services.compatibility_service import (
    FIRO_CACHE_TTL,
    CompatibilityService,
    FiroProfile,
    band_score,
    compatibility_level,
    firo_compatibility,
)

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
PARTNER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")


def _profile(user_id, inclusion, control, affection):
    return SimpleNamespace(
        user_id=user_id,
        inclusion_need=inclusion,
        control_need=control,
        affection_need=affection,
    )


def _scalars(items):
    result = MagicMock()
    result.scalars.return_value.all.return_value = items
    return result


def _scalar(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def _relationship(*member_ids):
    return SimpleNamespace(relationship_id=uuid.uuid4(), member_ids=list(member_ids))


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

class TestFiroScoring:

    @pytest.mark.parametrize("difference,score", [
        (0, 95), (1, 95), (2, 85), (3, 75), (4, 60), (5, 45), (6, 30), (9, 30),
    ])
    def test_band_scores_are_fixed(self, difference, score):
        assert band_score(difference) == score

    @pytest.mark.parametrize("score,level", [
        (95, "Excellent"), (85, "Excellent"), (80, "Very Good"),
        (55, "Good"), (45, "Moderate"), (30, "Challenging"),
    ])
    def test_levels(self, score, level):
        assert compatibility_level(score) == level

    def test_mixed_profiles(self):
        result = firo_compatibility(FiroProfile(5, 5, 5), FiroProfile(6, 7, 9))

        assert result["inclusion_compatibility"] == 95
        assert result["control_compatibility"] == 85
        assert result["affection_compatibility"] == 60
        assert result["overall_score"] == 80
        assert result["compatibility_level"] == "Very Good"
        assert result["confidence_level"] == 85
        assert len(result["research_insights"]) == 2
        assert "intimacy" in result["research_insights"][1]

    def test_identical_profiles(self):
        result = firo_compatibility(FiroProfile(7, 3, 8), FiroProfile(7, 3, 8))

        assert result["overall_score"] == 95
        assert result["compatibility_level"] == "Excellent"
        assert len(result["research_insights"]) == 4
        assert "smoother" in result["research_insights"][-1]

    def test_opposite_profiles(self):
        result = firo_compatibility(FiroProfile(1, 1, 1), FiroProfile(10, 10, 10))

        assert result["overall_score"] == 30
        assert result["compatibility_level"] == "Challenging"
        assert "strengths" in result["research_insights"][-1]

    def test_same_inputs_same_result(self):
        first, second = FiroProfile(2, 6, 4), FiroProfile(5, 2, 8)

        assert firo_compatibility(first, second) == firo_compatibility(first, second)

    def test_incomplete_profile_is_none(self):
        assert FiroProfile.from_universal(None) is None
        assert FiroProfile.from_universal(_profile(USER_ID, 5, None, 5)) is None
        assert FiroProfile.from_universal(_profile(USER_ID, 5, 4, 3)) == FiroProfile(5, 4, 3)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class TestCompatibilityService:

    @pytest.mark.asyncio
    async def test_computes_and_caches(self, db_session, fake_redis):
        relationship = _relationship(USER_ID, PARTNER_ID)
        db_session.execute.return_value = _scalars([
            _profile(USER_ID, 5, 5, 5),
            _profile(PARTNER_ID, 6, 7, 9),
        ])

        result = await CompatibilityService(db_session).firo_for_relationship(relationship)

        assert result["cached"] is False
        assert result["analysis"]["overall_score"] == 80
        key, ttl, payload = fake_redis.setex.await_args.args
        assert key == CacheKeys.firo_compatibility(str(relationship.relationship_id))
        assert ttl == FIRO_CACHE_TTL == 30 * 86400
        assert json.loads(payload)["overall_score"] == 80

    @pytest.mark.asyncio
    async def test_cached_analysis_skips_profiles(self, db_session, fake_redis):
        fake_redis.get.return_value = json.dumps({"overall_score": 72})

        result = await CompatibilityService(db_session).firo_for_relationship(
            _relationship(USER_ID, PARTNER_ID)
        )

        assert result == {"analysis": {"overall_score": 72}, "cached": True}
        db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requires_exactly_two_members(self, db_session):
        relationship = _relationship(USER_ID, PARTNER_ID, uuid.uuid4())

        with pytest.raises(ValidationError) as exc:
            await CompatibilityService(db_session).firo_for_relationship(relationship)

        assert exc.value.detail["reason"] == "REL_003"

    @pytest.mark.asyncio
    async def test_requires_both_profiles(self, db_session, fake_redis):
        db_session.execute.return_value = _scalars([_profile(USER_ID, 5, 5, 5)])

        with pytest.raises(ValidationError) as exc:
            await CompatibilityService(db_session).firo_for_relationship(
                _relationship(USER_ID, PARTNER_ID)
            )

        assert exc.value.detail["reason"] == "ONBOARDING_002"
        fake_redis.setex.assert_not_awaited()


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------

class TestFiroEndpoint:

    @pytest.mark.asyncio
    async def test_free_tier_is_403(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/premium/firo-compatibility",
            json={"relationshipId": str(uuid.uuid4())},
        )

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "FEATURE_001"
        assert error["feature"] == "firo_compatibility"

    @pytest.mark.asyncio
    async def test_premium_member_gets_analysis(self, client: AsyncClient, db_session, test_user):
        test_user.premium_subscription = PremiumSubscription(
            user_id=test_user.user_id,
            status="active",
            current_period_end=datetime.now(timezone.utc) + timedelta(days=30),
        )
        relationship = _relationship(USER_ID, PARTNER_ID)
        db_session.execute.side_effect = [
            _scalar(relationship),
            _scalars([_profile(USER_ID, 4, 4, 4), _profile(PARTNER_ID, 4, 6, 5)]),
        ]

        response = await client.post(
            "/api/v1/premium/firo-compatibility",
            json={"relationshipId": str(relationship.relationship_id)},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["cached"] is False
        assert data["analysis"]["overall_score"] == 92
        assert data["analysis"]["compatibility_level"] == "Excellent"
