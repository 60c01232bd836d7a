"""
Scoring Tests
=============

Connection score, relationship health score, dashboard card heuristics
and insight ranking over in-memory rows.
"""

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
import uuid

import pytest

from app.models.relationship import RelationshipType
from app.services import scoring

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def _checkin(days_ago: float, connection=None, mood=None, gratitude=None, challenge=None):
    return SimpleNamespace(
        created_at=NOW - timedelta(days=days_ago),
        connection_score=connection,
        mood_score=mood,
        gratitude_note=gratitude,
        challenge_note=challenge,
    )


def _insight(priority, relevance, hours_ago=0, relationship_id=None):
    return SimpleNamespace(
        priority=priority,
        relevance_score=relevance,
        created_at=NOW - timedelta(hours=hours_ago),
        relationship_id=relationship_id,
    )


# ---------------------------------------------------------------------------
# Connection score
# ---------------------------------------------------------------------------

class TestConnectionScore:

    def test_no_checkins_is_neutral(self):
        result = scoring.calculate_connection_score([], NOW)

        assert result["score"] == 50
        assert result["trend"] == "stable"
        assert result["analytics"]["consistencyRating"] == "Getting Started"

    def test_rows_outside_lookback_are_ignored(self):
        result = scoring.calculate_connection_score([_checkin(120, connection=10, mood=10)], NOW)

        assert result["score"] == 50
        assert result["analytics"]["totalCheckins"] == 0

    def test_steady_daily_checkins(self):
        checkins = [_checkin(i, connection=9, mood=8, gratitude="Dinner together") for i in range(10)]

        result = scoring.calculate_connection_score(checkins, NOW)

        assert result["score"] == 77
        assert result["trend"] == "stable"
        assert result["components"] == {
            "connection": 90,
            "consistency": 47,
            "positivity": 86,
            "growth": 60,
        }
        analytics = result["analytics"]
        assert analytics["streakDays"] == 10
        assert analytics["totalCheckins"] == 10
        assert analytics["avgConnection"] == 9.0
        assert analytics["gratitudeFrequency"] == 100
        assert analytics["consistencyRating"] == "Needs Improvement"
        assert "Amazing 10-day check-in streak!" in result["insights"]

    def test_declining_connection(self):
        checkins = [_checkin(i, connection=3, mood=5) for i in range(7)]
        checkins += [_checkin(i, connection=8, mood=5) for i in range(7, 14)]

        result = scoring.calculate_connection_score(checkins, NOW)

        assert result["trend"] == "declining"
        assert result["analytics"]["weeklyTrend"] == -5.0
        assert any("reconnect" in insight for insight in result["insights"])

    def test_score_is_clamped(self):
        checkins = [_checkin(i, connection=1, mood=1) for i in range(3)]

        result = scoring.calculate_connection_score(checkins, NOW)

        assert 10 <= result["score"] <= 100

    def test_streak_stops_at_gap(self):
        rows = [_checkin(0), _checkin(1), _checkin(3)]

        assert scoring.checkin_streak(rows, NOW.date()) == 2

    def test_missing_connection_counts_as_five(self):
        assert scoring.connection_component([_checkin(0)], NOW) == pytest.approx(50.0)


# ---------------------------------------------------------------------------
# Relationship-type health score
# ---------------------------------------------------------------------------

class TestRelationshipHealth:

    def test_weighted_over_present_metrics(self):
        score = scoring.relationship_health_score(
            RelationshipType.ROMANTIC,
            {"connection_score": 8, "intimacy_score": 6},
        )

        # (8 * 0.30 + 6 * 0.25) / 0.55 * 10
        assert score == 71

    def test_no_metrics_is_zero(self):
        assert scoring.relationship_health_score(RelationshipType.WORK, {}) == 0

    def test_accepts_plain_type_string(self):
        assert scoring.relationship_health_score("friend", {"trust_level": 10}) == 100

    def test_metric_names_by_type(self):
        assert scoring.metric_names(RelationshipType.WORK) == [
            "professional_rapport",
            "collaboration_effectiveness",
            "boundary_health",
            "communication_clarity",
            "goal_alignment",
        ]

    def test_aggregate_skips_missing_values(self):
        rows = [{"family_harmony": 8}, {"family_harmony": 6, "support_level": 4}, {}]

        aggregated = scoring.aggregate_metrics(rows, ["family_harmony", "support_level", "boundary_respect"])

        assert aggregated == {"family_harmony": 7.0, "support_level": 4.0}

    def test_metric_trends(self):
        trends = scoring.metric_trends(
            [{"mutual_respect": 8}, {"mutual_respect": 9}],
            [{"mutual_respect": 6}],
            ["mutual_respect", "boundary_clarity"],
        )

        assert trends == {"mutual_respect": {"current": 8.5, "previous": 6.0, "trend": "up"}}

    def test_legacy_metrics_for_work(self):
        migrated = scoring.migrate_legacy_metrics(RelationshipType.WORK, 8, 6)

        assert migrated == {
            "professional_rapport": 8,
            "collaboration_effectiveness": 6,
            "boundary_health": 9,
        }

    def test_legacy_metrics_are_valid_names(self):
        for relationship_type in RelationshipType:
            migrated = scoring.migrate_legacy_metrics(relationship_type, 5, 5)
            assert set(migrated) <= set(scoring.metric_names(relationship_type))


# ---------------------------------------------------------------------------
# Dashboard cards
# ---------------------------------------------------------------------------

class TestRelationshipCards:

    def test_busy_relationship_caps_at_100(self):
        score = scoring.relationship_card_score(
            activity_count=11,
            journal_moods=[8],
            checkin_connections=[8],
            days_since_last_activity=1,
            engagement_days=16,
        )

        assert score == 100

    def test_inactive_relationship(self):
        score = scoring.relationship_card_score(0, [], [], None, 0)

        assert score == 30

    def test_missing_source_counts_as_neutral(self):
        score = scoring.relationship_card_score(
            activity_count=1,
            journal_moods=[9],
            checkin_connections=[],
            days_since_last_activity=0,
            engagement_days=1,
        )

        # 50 + 5 activity + round(((9 + 5) / 2 - 5) * 5)
        assert score == 65

    def test_null_moods_read_as_five(self):
        assert scoring.relationship_card_score(1, [None, 9], [None], 0, 1) == 60

    def test_card_trend_compares_halves(self):
        assert scoring.card_trend([8, 8, 8, 8, 8, 5, 5, 5, 5, 5]) == "improving"
        assert scoring.card_trend([4, 4, 4, 4, 4, 7, 7, 7, 7, 7]) == "declining"
        assert scoring.card_trend([5, 5, 5, 5, 5, 5.2]) == "stable"

    def test_card_trend_empty_older_half_reads_as_neutral(self):
        assert scoring.card_trend([7, 6]) == "improving"
        assert scoring.card_trend([3]) == "declining"
        assert scoring.card_trend([None, 5]) == "stable"
        assert scoring.card_trend([]) == "stable"


# ---------------------------------------------------------------------------
# Insight ranking
# ---------------------------------------------------------------------------

class TestInsightRanking:

    def test_priority_then_relevance_then_recency(self):
        low = _insight("low", 9.0)
        high_old = _insight("high", 5.0, hours_ago=10)
        high_new = _insight("high", 5.0, hours_ago=1)
        medium = _insight("medium", 9.5)

        ranked = scoring.rank_insights([low, high_old, medium, high_new])

        assert ranked == [high_new, high_old, medium, low]

    def test_cap_per_relationship(self):
        rel_a, rel_b = uuid.uuid4(), uuid.uuid4()
        items = [
            _insight("high", 9, relationship_id=rel_a),
            _insight("high", 8, relationship_id=rel_a),
            _insight("medium", 7, relationship_id=rel_a),
            _insight("medium", 6, relationship_id=rel_b),
        ]

        kept = scoring.cap_per_relationship(items, 2)

        assert kept == [items[0], items[1], items[3]]


# ---------------------------------------------------------------------------
# Connection-health dashboard
# ---------------------------------------------------------------------------

class TestConnectionHealth:

    def test_vitals_default_without_journals(self):
        vitals = scoring.relationship_vitals([])

        assert vitals["connection_score"] == 6.0
        assert vitals["support_satisfaction"] == 6.3
        assert vitals["last_7_days_avg"] == 6.0

    def test_low_vitals_trigger_actions(self):
        vitals = scoring.relationship_vitals([3, 4, 3])

        titles = [a["title"] for a in scoring.immediate_actions(vitals)]

        assert titles == ["Schedule Quality Time", "Improve Communication"]
        assert scoring.celebration_highlights(vitals) == []

    def test_trend_analysis_uses_data(self):
        result = scoring.trend_analysis([8] * 7 + [5] * 7)

        assert result["overall_direction"] == "improving"
        assert result["key_improvements"]
        assert result["areas_for_attention"] == []

    def test_sentiment_overview_without_analysis(self):
        assert scoring.sentiment_overview(None)["current_sentiment"] == "neutral"

    def test_weekly_goal_target(self):
        goals = scoring.weekly_goals(NOW)

        assert goals[0]["target_date"] == (date(2026, 10, 24)).isoformat()
