"""
Insight Service
===============

Personal relationship insights for the insights feed.

Generation reads the user's recent journals and check-ins, derives a small
pattern summary, and asks Gemini for 2-4 insights. When Gemini is not
available a rule table produces them instead.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional, Sequence
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorCodes, NotFoundError
from app.models.insight import InsightFeedback, InsightPriority, RelationshipInsight
from app.models.journal import DailyCheckin, JournalEntry
from app.models.relationship import Relationship, RelationshipType
from app.models.user import User
from app.services.gemini_llm import get_gemini_service
from app.services.onboarding_service import OnboardingService, preference_context
from app.services.relationship_service import RelationshipService
from app.services.scoring import average

logger = logging.getLogger(__name__)

MAX_SAVED_INSIGHTS = 4
PATTERN_JOURNALS = 10
PATTERN_CHECKINS = 14


# =============================================================================
# Pattern analysis
# =============================================================================

def relationship_stage(relationships: Sequence[Relationship], today: date) -> str:
    """
    Stage label from the age of the oldest relationship.

    ``single`` without relationships; otherwise months since ``start_date``
    (falling back to ``created_at``): <6 new, <24 developing, <60
    established, else longterm.
    """
    if not relationships:
        return "single"

    started = [
        r.start_date or r.created_at.date()
        for r in relationships
        if r.start_date or r.created_at
    ]
    months = (today - min(started)).days / 30 if started else 0

    if months < 6:
        return "new"
    if months < 24:
        return "developing"
    if months < 60:
        return "established"
    return "longterm"


def analyze_patterns(
    journals: Sequence[Any],
    checkins: Sequence[Any],
    relationships: Sequence[Relationship],
    today: date,
) -> dict:
    """
    Summary statistics over newest-first journals and check-ins.

    The trend compares the latest 7 check-ins with the 7 before them.
    """
    avg_connection = average(c.connection_score for c in checkins)
    recent = checkins[:7]
    previous = checkins[7:14]
    recent_avg = average((c.connection_score for c in recent), default=avg_connection)
    previous_avg = average((c.connection_score for c in previous), default=avg_connection)

    linked = [c for c in checkins if c.relationship_id]
    avg_relationship_connection = (
        round(average(c.connection_score for c in linked), 1) if linked else None
    )

    return {
        "avg_mood_from_journals": round(average(j.mood_score for j in journals), 1),
        "avg_connection_score": round(avg_connection, 1),
        "avg_mood_from_checkins": round(average(c.mood_score for c in checkins), 1),
        "avg_relationship_connection": avg_relationship_connection,
        "trend": round(recent_avg - previous_avg, 1),
        "gratitude_count": sum(1 for c in checkins if c.gratitude_note and c.gratitude_note.strip()),
        "challenge_count": sum(1 for c in checkins if c.challenge_note and c.challenge_note.strip()),
        "total_activity": len(journals) + len(checkins),
        "relationship_stage": relationship_stage(relationships, today),
        "has_active_partnership": bool(relationships),
        "partner_count": sum(max(len(r.members) - 1, 0) for r in relationships),
        "relationship_types": sorted({RelationshipType(r.relationship_type).value for r in relationships}),
    }


def _humanize(value: Optional[str], default: str) -> str:
    return (value or default).replace("_", " ")


def stage_advice(stage: str, preferences: dict) -> Optional[dict]:
    give = preferences["love_language_give"][0] if preferences["love_language_give"] else "words"
    conflict = preferences.get("conflict_style") or "thoughtful"

    if stage == "new":
        return {
            "type": "suggestion",
            "priority": "high",
            "title": "New Relationship Foundation",
            "description": f"In this exciting new phase, focus on building trust and open communication. Since you prefer {conflict} approaches to conflict and show love through {_humanize(give, 'words')}, share these preferences with your partner to build understanding.",
        }
    if stage == "developing":
        return {
            "type": "pattern",
            "priority": "medium",
            "title": "Deepening Your Bond",
            "description": f"Your relationship is developing beautifully. This is the perfect time to deepen intimacy and navigate your first challenges together. Practice using your {conflict} conflict style constructively.",
        }
    if stage == "established":
        return {
            "type": "suggestion",
            "priority": "medium",
            "title": "Maintaining Connection",
            "description": f"In established relationships, it's important to keep growing together. Consider planning regular date nights and continue expressing love through {_humanize(give, 'words')} as you both evolve.",
        }
    if stage == "longterm":
        return {
            "type": "appreciation",
            "priority": "medium",
            "title": "Celebrating Your Journey",
            "description": f"Your long-term relationship is a testament to your commitment. Focus on rekindling romance and celebrating how far you've come together. Your {conflict} approach to challenges has served you well.",
        }
    return None


def rule_based_insights(patterns: dict, preferences: dict) -> list[dict]:
    """Fallback insights; always returns at least one."""
    insights: list[dict] = []

    if not patterns["has_active_partnership"]:
        if patterns["avg_mood_from_checkins"] >= 7 and patterns["gratitude_count"] > 0:
            insights.append({
                "type": "appreciation",
                "priority": "medium",
                "title": "Building Relationship Readiness",
                "description": f"Your positive mood ({patterns['avg_mood_from_checkins']}/10) and gratitude practice are excellent foundations for future relationships. Consider reflecting on what qualities you'd want in a partner and what you bring to a relationship.",
            })

        if any("communication" in str(goal).lower() for goal in preferences.get("goals") or []):
            insights.append({
                "type": "suggestion",
                "priority": "high",
                "title": "Communication Skills Development",
                "description": f"Since you want to improve communication and prefer {preferences.get('conflict_style') or 'thoughtful'} approaches to conflict, consider practicing active listening and expressing needs clearly. These skills will serve you well in future relationships.",
            })
    else:
        advice = stage_advice(patterns["relationship_stage"], preferences)
        if advice:
            insights.append(advice)

        connection = patterns["avg_relationship_connection"]
        if connection is not None and connection < 6:
            receive = preferences["love_languages"][0] if preferences["love_languages"] else None
            insights.append({
                "type": "suggestion",
                "priority": "high",
                "title": "Strengthening Partnership Connection",
                "description": f"Your relationship connection score ({connection}/10) suggests room for improvement. Since your partner's love language includes {_humanize(receive, 'quality time')}, try focusing on that area this week.",
            })

        if patterns["trend"] > 1.5:
            insights.append({
                "type": "appreciation",
                "priority": "medium",
                "title": "Partnership Momentum",
                "description": "Your relationship is on a positive trajectory! Your connection scores are improving. This is a great time to plan something special together or discuss future goals as a couple.",
            })

    if not insights:
        if patterns["has_active_partnership"]:
            insights.append({
                "type": "suggestion",
                "priority": "medium",
                "title": "Continue Your Partnership Journey",
                "description": "You're building great habits with regular check-ins. Keep focusing on communication and connection with your partner.",
            })
        else:
            insights.append({
                "type": "suggestion",
                "priority": "medium",
                "title": "Continue Your Personal Growth",
                "description": "You're developing excellent self-awareness through journaling and check-ins. This emotional intelligence will serve you well in all relationships.",
            })

    for insight in insights:
        insight.setdefault("category", "rule-based")
    return insights[:MAX_SAVED_INSIGHTS]


# =============================================================================
# Service
# =============================================================================

class InsightService:
    """Service for relationship insight operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def generate(self, user: User, now: Optional[datetime] = None) -> dict:
        """Analyze recent activity and save up to four new insights."""
        now = now or datetime.now(timezone.utc)

        journals = list((await self.db.execute(
            select(JournalEntry)
            .where(JournalEntry.user_id == user.user_id)
            .order_by(JournalEntry.created_at.desc())
            .limit(PATTERN_JOURNALS)
        )).scalars().all())
        checkins = list((await self.db.execute(
            select(DailyCheckin)
            .where(DailyCheckin.user_id == user.user_id)
            .order_by(DailyCheckin.created_at.desc())
            .limit(PATTERN_CHECKINS)
        )).scalars().all())

        relationships = await RelationshipService(self.db).list_for_user(user.user_id)
        profile = await OnboardingService(self.db).get_universal(user.user_id)
        preferences = preference_context(profile, user)

        patterns = analyze_patterns(journals, checkins, relationships, now.date())

        generated = await get_gemini_service().generate_relationship_insights({
            **patterns,
            "conflict_style": preferences["conflict_style"],
            "love_language_give": preferences["love_language_give"],
            "love_language_receive": preferences["love_languages"],
            "goals": preferences["goals"],
        })
        source = "ai"
        if not generated:
            generated = rule_based_insights(patterns, preferences)
            source = "rules"

        default_relationship = relationships[0].relationship_id if relationships else None
        saved = []
        for item in generated[:MAX_SAVED_INSIGHTS]:
            saved.append(RelationshipInsight(
                user_id=user.user_id,
                relationship_id=default_relationship,
                insight_type=item["type"],
                title=item["title"][:200],
                description=item["description"],
                priority=InsightPriority(item["priority"]),
                category=item.get("category"),
            ))
        self.db.add_all(saved)
        await self.db.flush()

        logger.info("Generated %d insights for %s (%s)", len(saved), user.user_id, source)
        return {"insights": saved, "patterns": patterns, "source": source}

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 20,
    ) -> list[RelationshipInsight]:
        stmt = select(RelationshipInsight).where(
            RelationshipInsight.user_id == user_id,
            RelationshipInsight.dashboard_dismissed.is_(False),
        )
        if unread_only:
            stmt = stmt.where(RelationshipInsight.is_read.is_(False))
        stmt = stmt.order_by(RelationshipInsight.created_at.desc()).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _get_owned(self, insight_id: uuid.UUID, user_id: uuid.UUID) -> Optional[RelationshipInsight]:
        result = await self.db.execute(
            select(RelationshipInsight).where(
                RelationshipInsight.insight_id == insight_id,
                RelationshipInsight.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def mark_read(self, insight_id: uuid.UUID, user_id: uuid.UUID) -> RelationshipInsight:
        insight = await self._get_owned(insight_id, user_id)
        if insight is None or insight.is_read:
            raise NotFoundError(
                code=ErrorCodes.INSIGHT_NOT_FOUND,
                message="Insight not found or already read",
            )

        insight.is_read = True
        insight.read_at = datetime.now(timezone.utc)
        await self.db.flush()
        return insight

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            update(RelationshipInsight)
            .where(
                RelationshipInsight.user_id == user_id,
                RelationshipInsight.is_read.is_(False),
            )
            .values(is_read=True, read_at=datetime.now(timezone.utc))
        )
        return result.rowcount or 0

    async def dismiss(self, insight_id: uuid.UUID, user_id: uuid.UUID) -> None:
        insight = await self._get_owned(insight_id, user_id)
        if insight is None:
            raise NotFoundError(
                code=ErrorCodes.INSIGHT_NOT_FOUND,
                message="Insight not found",
            )
        insight.dashboard_dismissed = True
        await self.db.flush()

    async def submit_feedback(
        self,
        insight_id: uuid.UUID,
        user_id: uuid.UUID,
        rating: int,
        helpful: Optional[bool] = None,
        comment: Optional[str] = None,
    ) -> InsightFeedback:
        if await self._get_owned(insight_id, user_id) is None:
            raise NotFoundError(
                code=ErrorCodes.INSIGHT_NOT_FOUND,
                message="Insight not found",
            )

        feedback = InsightFeedback(
            insight_id=insight_id,
            user_id=user_id,
            rating=rating,
            helpful=helpful,
            comment=comment,
        )
        self.db.add(feedback)
        await self.db.flush()
        return feedback
