"""
Scoring
=======

Deterministic health-score and ranking arithmetic.

Every function here is pure: it takes already-loaded rows (anything with
the right attributes) plus ``now`` and returns plain values, so the
routes stay thin and the arithmetic is unit-testable without a database.

Lookback windows:
    - connection score: 90 days of daily check-ins
    - relationship cards / relationship health: 30 days
    - dashboard insights and cron activity: 48 hours
    - suggestion generation: 72 hours
"""

import math
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional, Sequence

from app.models.relationship import RelationshipType

CONNECTION_LOOKBACK_DAYS = 90
HEALTH_LOOKBACK_DAYS = 30
DASHBOARD_INSIGHT_HOURS = 48
SUGGESTION_LOOKBACK_HOURS = 72

NEUTRAL_SCORE = 50
RECENCY_HALF_LIFE_DAYS = 14

TREND_IMPROVING = "improving"
TREND_DECLINING = "declining"
TREND_STABLE = "stable"


# =============================================================================
# Helpers
# =============================================================================

def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def average(values: Iterable[Optional[float]], default: float = 5.0) -> float:
    """Mean of the non-null values, ``default`` when there are none."""
    present = [v for v in values if v is not None]
    if not present:
        return default
    return sum(present) / len(present)


def age_days(moment: datetime, now: datetime) -> float:
    return (now - moment).total_seconds() / 86400


def within_days(rows: Sequence[Any], now: datetime, start: float, end: float) -> list:
    """Rows whose age in days falls in ``[start, end)``."""
    return [r for r in rows if start <= age_days(r.created_at, now) < end]


def trend_label(delta: float, threshold: float = 0.5) -> str:
    if delta > threshold:
        return TREND_IMPROVING
    if delta < -threshold:
        return TREND_DECLINING
    return TREND_STABLE


def checkin_streak(rows: Sequence[Any], today: date) -> int:
    """Consecutive distinct days with activity, counting back from today."""
    days = {r.created_at.date() for r in rows}
    streak = 0
    cursor = today
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


# =============================================================================
# Connection score (daily check-ins, 90 days)
# =============================================================================

def neutral_connection_score() -> dict:
    """Result for a user with no check-ins yet."""
    return {
        "score": NEUTRAL_SCORE,
        "trend": TREND_STABLE,
        "components": {
            "connection": NEUTRAL_SCORE,
            "consistency": NEUTRAL_SCORE,
            "positivity": NEUTRAL_SCORE,
            "growth": NEUTRAL_SCORE,
        },
        "analytics": {
            "weeklyTrend": 0,
            "monthlyTrend": 0,
            "streakDays": 0,
            "totalCheckins": 0,
            "avgDailyMood": 5,
            "avgConnection": 5,
            "gratitudeFrequency": 0,
            "challengeAwareness": 0,
            "recentActivity": 0,
            "consistencyRating": "Getting Started",
        },
        "insights": ["Start with your first check-in to see your personalized score!"],
    }


def connection_component(checkins: Sequence[Any], now: datetime) -> float:
    """Recency-weighted mean connection rating scaled to 0-100."""
    weighted = 0.0
    total_weight = 0.0
    for c in checkins:
        weight = math.exp(-age_days(c.created_at, now) / RECENCY_HALF_LIFE_DAYS)
        value = c.connection_score if c.connection_score is not None else 5
        weighted += value * 10 * weight
        total_weight += weight
    return weighted / total_weight if total_weight else NEUTRAL_SCORE


def consistency_component(checkins: Sequence[Any], now: datetime) -> float:
    unique_days = {c.created_at.date() for c in within_days(checkins, now, 0, 30)}
    streak = checkin_streak(checkins, now.date())
    return min(100.0, min(len(unique_days) / 30, 1) * 80 + min(streak * 2, 20))


def gratitude_frequency(checkins: Sequence[Any]) -> float:
    if not checkins:
        return 0.0
    return sum(1 for c in checkins if _has_text(c.gratitude_note)) / len(checkins)


def challenge_frequency(checkins: Sequence[Any]) -> float:
    if not checkins:
        return 0.0
    return sum(1 for c in checkins if _has_text(c.challenge_note)) / len(checkins)


def positivity_component(checkins: Sequence[Any]) -> float:
    avg_mood = average(c.mood_score for c in checkins)
    return avg_mood * 10 * 0.7 + gratitude_frequency(checkins) * 100 * 0.3


def growth_component(checkins: Sequence[Any], now: datetime) -> float:
    """Last 7 days vs the 7 days before, both bounded by date."""
    recent = within_days(checkins, now, 0, 7)
    previous = within_days(checkins, now, 7, 14)
    if not recent or not previous:
        return 60.0
    delta = (
        average(c.connection_score for c in recent)
        - average(c.connection_score for c in previous)
    )
    return clamp(60 + delta * 20, 10, 100)


def _window_delta(checkins: Sequence[Any], now: datetime, recent: tuple, previous: tuple) -> float:
    recent_rows = within_days(checkins, now, *recent)
    previous_rows = within_days(checkins, now, *previous)
    if not recent_rows or not previous_rows:
        return 0.0
    return (
        average(c.connection_score for c in recent_rows)
        - average(c.connection_score for c in previous_rows)
    )


def consistency_rating(consistency: float) -> str:
    if consistency >= 90:
        return "Excellent"
    if consistency >= 75:
        return "Good"
    if consistency >= 60:
        return "Fair"
    return "Needs Improvement"


def connection_insights(score: int, trend: str, analytics: dict) -> list[str]:
    insights: list[str] = []

    if score >= 85:
        insights.append("Outstanding relationship health! Your connection is thriving.")
    elif score >= 70:
        insights.append("Strong relationship foundation with room for growth.")
    elif score >= 55:
        insights.append("Building positive momentum - keep up the daily check-ins!")
    else:
        insights.append("Focus on consistency to strengthen your connection.")

    if trend == TREND_IMPROVING:
        insights.append("Your relationship is on an upward trajectory!")
    elif trend == TREND_DECLINING:
        insights.append("Consider what might help reconnect and communicate more.")

    if analytics["streakDays"] >= 7:
        insights.append(f"Amazing {analytics['streakDays']}-day check-in streak!")

    if analytics["gratitudeFrequency"] >= 60:
        insights.append("Your gratitude practice is strengthening your relationship.")

    return insights


def calculate_connection_score(checkins: Sequence[Any], now: datetime) -> dict:
    """
    Universal connection score over daily check-ins.

    Weighted blend of connection (40%), consistency (25%), positivity (25%)
    and growth (10%), plus an engagement bonus of up to 5 points.
    The final score is clamped to [10, 100].
    """
    checkins = [
        c for c in checkins if age_days(c.created_at, now) < CONNECTION_LOOKBACK_DAYS
    ]
    if not checkins:
        return neutral_connection_score()

    connection = connection_component(checkins, now)
    consistency = consistency_component(checkins, now)
    positivity = positivity_component(checkins)
    growth = growth_component(checkins, now)

    raw = 0.4 * connection + 0.25 * consistency + 0.25 * positivity + 0.1 * growth
    bonus = min(5.0, len(checkins) * 0.2)
    score = int(min(100, max(10, round(raw + bonus))))

    weekly = _window_delta(checkins, now, (0, 7), (7, 14))
    monthly = _window_delta(checkins, now, (0, 30), (30, 60))
    trend = trend_label(0.7 * weekly + 0.3 * monthly)

    analytics = {
        "weeklyTrend": round(weekly, 2),
        "monthlyTrend": round(monthly, 2),
        "streakDays": checkin_streak(checkins, now.date()),
        "totalCheckins": len(checkins),
        "avgDailyMood": round(average(c.mood_score for c in checkins), 1),
        "avgConnection": round(average(c.connection_score for c in checkins), 1),
        "gratitudeFrequency": round(gratitude_frequency(checkins) * 100),
        "challengeAwareness": round(challenge_frequency(checkins) * 100),
        "recentActivity": len(within_days(checkins, now, 0, 7)),
        "consistencyRating": consistency_rating(consistency),
    }

    return {
        "score": score,
        "trend": trend,
        "components": {
            "connection": round(connection),
            "consistency": round(consistency),
            "positivity": round(positivity),
            "growth": round(growth),
        },
        "analytics": analytics,
        "insights": connection_insights(score, trend, analytics),
    }


# =============================================================================
# Relationship-type health score (relationship check-ins, 30 days)
# =============================================================================

RELATIONSHIP_METRIC_WEIGHTS: dict[RelationshipType, dict[str, float]] = {
    RelationshipType.ROMANTIC: {
        "connection_score": 0.30,
        "intimacy_score": 0.25,
        "future_alignment": 0.20,
        "communication_quality": 0.15,
        "conflict_resolution": 0.10,
    },
    RelationshipType.WORK: {
        "professional_rapport": 0.25,
        "collaboration_effectiveness": 0.25,
        "boundary_health": 0.20,
        "communication_clarity": 0.15,
        "goal_alignment": 0.15,
    },
    RelationshipType.FAMILY: {
        "family_harmony": 0.25,
        "boundary_respect": 0.25,
        "generational_understanding": 0.20,
        "communication_openness": 0.15,
        "support_level": 0.15,
    },
    RelationshipType.FRIEND: {
        "friendship_satisfaction": 0.30,
        "mutual_support": 0.25,
        "social_energy": 0.20,
        "shared_interests": 0.15,
        "trust_level": 0.10,
    },
    RelationshipType.OTHER: {
        "relationship_satisfaction": 0.35,
        "mutual_respect": 0.25,
        "communication_quality": 0.20,
        "boundary_clarity": 0.20,
    },
}


def metric_names(relationship_type: RelationshipType) -> list[str]:
    return list(RELATIONSHIP_METRIC_WEIGHTS[RelationshipType(relationship_type)])


def aggregate_metrics(metric_rows: Sequence[dict], names: Sequence[str]) -> dict[str, float]:
    """Per-metric mean over the rows that report the metric."""
    aggregated: dict[str, float] = {}
    for name in names:
        values = [float(row[name]) for row in metric_rows if row.get(name) is not None]
        if values:
            aggregated[name] = sum(values) / len(values)
    return aggregated


def relationship_health_score(
    relationship_type: RelationshipType,
    metrics: dict[str, float],
) -> int:
    """
    Weighted mean of the 1-10 metric values scaled to 0-100.

    Only metrics that are present contribute weight; 0 when none are.
    """
    weights = RELATIONSHIP_METRIC_WEIGHTS[RelationshipType(relationship_type)]
    weighted = 0.0
    total_weight = 0.0
    for name, weight in weights.items():
        value = metrics.get(name)
        if value is None:
            continue
        weighted += value * weight
        total_weight += weight

    if total_weight == 0:
        return 0
    return int(clamp(round(weighted / total_weight * 10), 0, 100))


def metric_trends(
    recent_rows: Sequence[dict],
    previous_rows: Sequence[dict],
    names: Sequence[str],
) -> dict[str, dict]:
    """Current vs previous average per metric with an up/down/stable label."""
    current = aggregate_metrics(recent_rows, names)
    previous = aggregate_metrics(previous_rows, names)
    trends: dict[str, dict] = {}
    for name in names:
        if name not in current or name not in previous:
            continue
        delta = current[name] - previous[name]
        trends[name] = {
            "current": round(current[name], 2),
            "previous": round(previous[name], 2),
            "trend": "up" if delta > 0.5 else "down" if delta < -0.5 else "stable",
        }
    return trends


def migrate_legacy_metrics(
    relationship_type: RelationshipType,
    connection_avg: float,
    mood_avg: float,
) -> dict[str, float]:
    """
    Map the universal connection / mood averages onto type-specific metrics.
    """
    c, m = connection_avg, mood_avg
    relationship_type = RelationshipType(relationship_type)

    if relationship_type == RelationshipType.ROMANTIC:
        return {
            "connection_score": c,
            "intimacy_score": max(1, c - 1),
            "communication_quality": m,
        }
    if relationship_type == RelationshipType.WORK:
        return {
            "professional_rapport": c,
            "collaboration_effectiveness": m,
            "boundary_health": min(10, c + 1),
        }
    if relationship_type == RelationshipType.FAMILY:
        return {
            "family_harmony": c,
            "boundary_respect": m,
            "communication_openness": max(1, (c + m) / 2),
        }
    if relationship_type == RelationshipType.FRIEND:
        return {
            "friendship_satisfaction": c,
            "social_energy": m,
            "mutual_support": min(10, c + 1),
        }
    return {
        "relationship_satisfaction": c,
        "communication_quality": m,
        "mutual_respect": max(1, (c + m) / 2),
    }


# =============================================================================
# Dashboard relationship cards (30 days)
# =============================================================================

def _neutral_mean(values: Sequence[Optional[float]]) -> float:
    """Mean with missing values read as 5; 5 for an empty sequence."""
    if not values:
        return 5.0
    return sum(5.0 if v is None else v for v in values) / len(values)


def relationship_card_score(
    activity_count: int,
    journal_moods: Sequence[Optional[float]],
    checkin_connections: Sequence[Optional[float]],
    days_since_last_activity: Optional[float],
    engagement_days: int,
) -> int:
    """
    Heuristic card score: base 50 adjusted for activity volume, mood,
    recency and engagement breadth, clamped to [10, 100].
    """
    score = float(NEUTRAL_SCORE)

    if activity_count > 10:
        score += 25
    elif activity_count > 5:
        score += 15
    elif activity_count > 2:
        score += 10
    elif activity_count > 0:
        score += 5

    # Each source counts as 5 when it has no rows
    mood = (_neutral_mean(journal_moods) + _neutral_mean(checkin_connections)) / 2
    score += round((mood - 5) * 5)

    # No activity in the window counts as the longest gap
    gap = days_since_last_activity if days_since_last_activity is not None else math.inf
    if gap > 14:
        score -= 20
    elif gap > 7:
        score -= 10
    elif gap > 3:
        score -= 5

    if engagement_days > 15:
        score += 10
    elif engagement_days > 10:
        score += 7
    elif engagement_days > 5:
        score += 5

    return int(clamp(score, 10, 100))


def card_trend(moods_newest_first: Sequence[Optional[float]]) -> str:
    """First five entries vs the next five; an empty half counts as 5."""
    recent = _neutral_mean(moods_newest_first[:5])
    older = _neutral_mean(moods_newest_first[5:10])
    return trend_label(recent - older)


# =============================================================================
# Insight ranking
# =============================================================================

PRIORITY_WEIGHTS = {"high": 3, "medium": 2, "low": 1}


def _priority_value(priority: Any) -> str:
    return getattr(priority, "value", priority) or ""


def rank_insights(insights: Sequence[Any]) -> list:
    """Order by priority (high > medium > low), relevance, then recency."""
    return sorted(
        insights,
        key=lambda i: (
            PRIORITY_WEIGHTS.get(_priority_value(i.priority), 0),
            i.relevance_score or 0,
            i.created_at,
        ),
        reverse=True,
    )


def cap_per_relationship(ranked: Sequence[Any], max_per_relationship: int) -> list:
    """Keep at most ``max_per_relationship`` items per relationship id."""
    counts: dict[Any, int] = {}
    kept = []
    for item in ranked:
        key = item.relationship_id
        if counts.get(key, 0) >= max_per_relationship:
            continue
        counts[key] = counts.get(key, 0) + 1
        kept.append(item)
    return kept


# =============================================================================
# Connection-health dashboard
# =============================================================================

VITAL_OFFSETS = {
    "connection_score": 0.0,
    "communication_quality": 0.2,
    "intimacy_level": -0.1,
    "support_satisfaction": 0.3,
    "growth_momentum": 0.1,
}


def relationship_vitals(journal_scores: Sequence[Optional[float]]) -> dict[str, float]:
    """Vitals from the last seven journal mood scores (6.0 when none)."""
    base = average(journal_scores[:7], default=6.0)
    vitals = {
        name: round(clamp(base + offset, 0, 10), 1)
        for name, offset in VITAL_OFFSETS.items()
    }
    vitals["last_7_days_avg"] = round(base, 1)
    return vitals


def overall_health_score(vitals: dict[str, float], sentiment: str) -> float:
    values = [vitals[name] for name in VITAL_OFFSETS]
    multiplier = {"positive": 1.1, "negative": 0.9}.get(sentiment, 1.0)
    return round(sum(values) / len(values) * multiplier, 1)


def sentiment_overview(latest_analysis: Optional[dict]) -> dict:
    """Summary of the most recent journal analysis."""
    if not latest_analysis:
        return {
            "current_sentiment": "neutral",
            "confidence": 0.5,
            "dominant_emotions": ["calm", "content"],
            "needs_summary": ["Continue building positive patterns"],
            "emotional_trajectory": TREND_STABLE,
        }

    emotional_state = latest_analysis.get("emotional_state") or {}
    secondary = emotional_state.get("secondary_emotions") or []
    needs = latest_analysis.get("relationship_needs") or []

    return {
        "current_sentiment": latest_analysis.get("overall_sentiment") or "neutral",
        "confidence": latest_analysis.get("confidence_score") or 0.5,
        "dominant_emotions": (
            [emotional_state.get("primary_emotion") or "neutral"] + list(secondary)
        )[:3],
        "needs_summary": [
            (need or {}).get("need_type") or "general support" for need in needs[:3]
        ],
        "emotional_trajectory": TREND_STABLE,
    }


def immediate_actions(vitals: dict[str, float]) -> list[dict]:
    actions = []
    if vitals["connection_score"] < 6:
        actions.append({
            "title": "Schedule Quality Time",
            "category": "connection_building",
            "priority": "high",
            "description": "Plan dedicated time together to strengthen your connection",
            "timeframe": "This week",
        })
    if vitals["communication_quality"] < 6:
        actions.append({
            "title": "Improve Communication",
            "category": "communication",
            "priority": "high",
            "description": "Practice active listening and express feelings more clearly",
            "timeframe": "Ongoing",
        })
    return actions


def weekly_goals(now: datetime) -> list[dict]:
    return [{
        "title": "Strengthen Emotional Connection",
        "description": "Have at least 3 meaningful conversations this week",
        "progress": 30,
        "target_date": (now + timedelta(days=7)).date().isoformat(),
        "success_criteria": [
            "3 uninterrupted conversations",
            "Share feelings openly",
            "Practice active listening",
        ],
    }]


def celebration_highlights(vitals: dict[str, float]) -> list[dict]:
    if vitals["connection_score"] < 7:
        return []
    return [{
        "achievement": "Strong Connection Score",
        "significance": vitals["connection_score"],
        "suggested_celebration": "Plan a special date night to celebrate your strong connection",
        "timing": "This weekend",
    }]


def trend_analysis(journal_scores: Sequence[Optional[float]]) -> dict:
    """
    Direction of the newest seven mood scores against the seven before.

    ``journal_scores`` is ordered newest first.
    """
    recent = [s for s in journal_scores[:7] if s is not None]
    previous = [s for s in journal_scores[7:14] if s is not None]

    delta = average(recent) - average(previous) if recent and previous else 0.0
    direction = trend_label(delta)

    improvements: list[str] = []
    attention: list[str] = []
    if direction == TREND_IMPROVING:
        improvements.append("Your recent entries are more positive than the week before")
    elif direction == TREND_DECLINING:
        attention.append("Your recent entries are less positive than the week before")
    if recent and average(recent) < 5:
        attention.append("Recent moods are below average; consider a check-in conversation")
    if recent and average(recent) >= 7:
        improvements.append("Consistently positive recent entries")

    return {
        "overall_direction": direction,
        "key_improvements": improvements,
        "areas_for_attention": attention,
        "momentum_score": round(clamp(average(recent, default=6.0) + delta, 0, 10), 1),
    }


def partner_suggestion_summary(suggestions: Sequence[Any]) -> list[dict]:
    """Compact view of the top unread partner suggestions."""
    return [
        {
            "suggestion_id": str(s.suggestion_id),
            "suggestion_type": s.suggestion_type,
            "anonymized_context": s.anonymized_context,
            "urgency": "soon" if (s.priority_score or 0) >= 8 else "when_possible",
            "confidence_score": round((s.confidence_score or 7) / 10, 2),
        }
        for s in suggestions[:3]
    ]
