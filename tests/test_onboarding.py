"""
Onboarding Tests
================
"""

from unittest.mock import AsyncMock, MagicMock
import uuid

import pytest

from app.models.onboarding import UniversalUserProfile
from app.models.user import User
from app.services.onboarding_service import (
    OnboardingService,
    infer_attachment_style,
    preference_context,
)


class TestAttachmentStyle:

    def test_no_responses(self):
        assert infer_attachment_style([]) == (None, 0.0)

    def test_majority_wins(self):
        style, confidence = infer_attachment_style(["anxious", "anxious", "secure"])

        assert style == "anxious"
        assert confidence == 0.67

    def test_tie_goes_to_first_listed_style(self):
        assert infer_attachment_style(["avoidant", "secure"]) == ("secure", 0.5)

    def test_accepts_id_value_mappings(self):
        responses = [{"id": "q1", "value": "avoidant"}, {"id": "q2", "value": "avoidant"}]

        assert infer_attachment_style(responses) == ("avoidant", 1.0)

    def test_unknown_values_have_zero_confidence(self):
        assert infer_attachment_style(["unsure"]) == ("secure", 0.0)


class TestPreferenceContext:

    def test_defaults_without_profile(self):
        context = preference_context(None)

        assert context["love_languages"] == []
        assert context["conflict_style"] is None
        assert context["goals"] == []

    def test_profile_and_goals(self):
        profile = UniversalUserProfile(
            love_language_receive="quality_time",
            love_language_give="acts_of_service",
            communication_directness="direct",
            conflict_style="collaborative",
        )
        user = User(email="a@example.com", relationship_goals={"goals": ["communicate better"]})

        context = preference_context(profile, user)

        assert context["love_languages"] == ["quality_time"]
        assert context["love_language_give"] == ["acts_of_service"]
        assert context["communication_style"] == "direct"
        assert context["goals"] == ["communicate better"]


class TestSaveUniversal:

    @pytest.mark.asyncio
    async def test_creates_profile_with_inferred_style(self):
        db = MagicMock()
        missing = MagicMock()
        missing.scalar_one_or_none.return_value = None
        db.execute = AsyncMock(return_value=missing)
        db.flush = AsyncMock()
        user_id = uuid.uuid4()

        profile = await OnboardingService(db).save_universal(
            user_id,
            {
                "inclusion_need": 7,
                "conflict_style": "avoiding",
                "attachment_responses": ["secure", "secure", "anxious", "secure"],
            },
        )

        db.add.assert_called_once_with(profile)
        assert profile.user_id == user_id
        assert profile.inclusion_need == 7
        assert profile.conflict_style == "avoiding"
        assert profile.attachment_style == "secure"
        assert profile.attachment_confidence == 0.75
