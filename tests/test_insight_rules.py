"""
Rule-Based Generation Tests
===========================

Fallbacks used when the LLM is unavailable: relationship stage, insight
rules, partner suggestion rules, check-in metric validation and
mood-derived sentiment.
"""

from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from app.core.errors import ValidationError
from app.models.relationship import RelationshipType
from app.services.checkin_service import validate_metric_values
from app.services.insight_service import analyze_patterns, relationship_stage, rule_based_insights
from app.services.journal_service import rule_based_sentiment
from app.services.suggestion_service import (
    rule_based_checkin_suggestion,
    rule_based_partner_suggestion,
    rule_based_relationship_suggestions,
)

TODAY = date(2026, 10, 17)


def _relationship(start_date=None, created=datetime(2026, 1, 1, tzinfo=timezone.utc), members=2):
    return SimpleNamespace(
        start_date=start_date,
        created_at=created,
        members=[object()] * members,
        relationship_type=RelationshipType.ROMANTIC,
    )


def _preferences(**overrides):
    prefs = {
        "love_languages": [],
        "love_language_give": [],
        "communication_style": None,
        "conflict_style": None,
        "goals": [],
    }
    prefs.update(overrides)
    return prefs


def _checkin(connection=None, mood=None, relationship_id=None, gratitude=None, challenge=None):
    return SimpleNamespace(
        connection_score=connection,
        mood_score=mood,
        relationship_id=relationship_id,
        gratitude_note=gratitude,
        challenge_note=challenge,
    )


class TestRelationshipStage:

    def test_single_without_relationships(self):
        assert relationship_stage([], TODAY) == "single"

    @pytest.mark.parametrize(
        "start, stage",
        [
            (date(2026, 8, 1), "new"),
            (date(2025, 6, 1), "developing"),
            (date(2022, 1, 1), "established"),
            (date(2015, 1, 1), "longterm"),
        ],
    )
    def test_stage_from_start_date(self, start, stage):
        assert relationship_stage([_relationship(start_date=start)], TODAY) == stage

    def test_falls_back_to_created_at(self):
        # created 2026-01-01, roughly nine months ago
        assert relationship_stage([_relationship()], TODAY) == "developing"


class TestInsightRules:

    def test_single_user_with_good_mood_and_goal(self):
        patterns = analyze_patterns(
            [],
            [_checkin(connection=7, mood=8, gratitude="Sunny walk")],
            [],
            TODAY,
        )

        insights = rule_based_insights(
            patterns,
            _preferences(goals=["Better communication"], conflict_style="collaborative"),
        )

        titles = [i["title"] for i in insights]
        assert titles == ["Building Relationship Readiness", "Communication Skills Development"]
        assert all(i["category"] == "rule-based" for i in insights)

    def test_low_partnership_connection(self):
        relationship = _relationship(start_date=date(2026, 9, 1))
        checkins = [_checkin(connection=4, mood=5, relationship_id="rel") for _ in range(3)]
        patterns = analyze_patterns([], checkins, [relationship], TODAY)

        insights = rule_based_insights(patterns, _preferences(love_languages=["physical_touch"]))

        titles = [i["title"] for i in insights]
        assert titles[0] == "New Relationship Foundation"
        assert "Strengthening Partnership Connection" in titles
        assert "physical touch" in insights[1]["description"]
        assert patterns["partner_count"] == 1

    def test_always_at_least_one(self):
        patterns = analyze_patterns([], [], [], TODAY)

        insights = rule_based_insights(patterns, _preferences())

        assert [i["title"] for i in insights] == ["Continue Your Personal Growth"]


class TestSuggestionRules:

    def test_keywords_map_to_types(self):
        suggestions = rule_based_relationship_suggestions(
            ["So tired this week", "I miss our time together", "Really grateful for dinner"],
            max_suggestions=3,
        )

        assert [s["suggestion_type"] for s in suggestions] == [
            "acts_of_service",
            "quality_time",
            "words_of_affirmation",
        ]

    def test_default_is_communication(self):
        suggestions = rule_based_relationship_suggestions(["Nothing much happened"], max_suggestions=3)

        assert len(suggestions) == 1
        assert suggestions[0]["suggestion_type"] == "communication"

    def test_max_suggestions_is_respected(self):
        suggestions = rule_based_relationship_suggestions(
            ["tired, miss you, grateful, need a hug"],
            max_suggestions=2,
        )

        assert len(suggestions) == 2

    def test_partner_suggestion_for_exhaustion(self):
        assert rule_based_partner_suggestion("Completely exhausted today")["type"] == "support"
        assert rule_based_partner_suggestion("Nice quiet day") is None

    def test_checkin_suggestions(self):
        assert rule_based_checkin_suggestion(_checkin(connection=3))["type"] == "quality_time"
        assert rule_based_checkin_suggestion(_checkin(connection=8, challenge="Argued about chores"))["type"] == "communication"
        assert rule_based_checkin_suggestion(_checkin(connection=8, challenge="  ")) is None


class TestMetricValidation:

    def test_valid_work_metrics(self):
        values = {"professional_rapport": 7, "boundary_health": 8.5}

        assert validate_metric_values(RelationshipType.WORK, values) == values

    def test_metric_from_other_type_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_metric_values(RelationshipType.WORK, {"intimacy_score": 5})

        assert exc.value.detail["field"] == "metricValues.intimacy_score"

    @pytest.mark.parametrize("value", [0, 11, True, "7"])
    def test_out_of_range_or_non_numeric(self, value):
        with pytest.raises(ValidationError):
            validate_metric_values(RelationshipType.FRIEND, {"trust_level": value})

    def test_empty_is_rejected(self):
        with pytest.raises(ValidationError):
            validate_metric_values(RelationshipType.FAMILY, {})


@pytest.mark.parametrize(
    "mood, sentiment",
    [(None, "neutral"), (8, "positive"), (5, "neutral"), (3, "negative")],
)
def test_rule_based_sentiment(mood, sentiment):
    result = rule_based_sentiment(mood)

    assert result["overall_sentiment"] == sentiment
    assert result["source"] == "rules"
