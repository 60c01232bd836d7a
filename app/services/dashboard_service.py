"""
Dashboard Service
=================

Relationship cards, the ranked insights feed and the connection-health view.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Optional
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.insight import PartnerSuggestion, RelationshipInsight
from app.models.journal import DailyCheckin, JournalEntry
from app.models.relationship import Relationship, RelationshipType
from app.models.score import RelationshipHealthScore
from app.services.cache import CacheKeys, CacheManager
from app.services.relationship_service import RelationshipService
from app.services.scoring import (
    DASHBOARD_INSIGHT_HOURS,
    HEALTH_LOOKBACK_DAYS,
    age_days,
    cap_per_relationship,
    card_trend,
    celebration_highlights,
    immediate_actions,
    overall_health_score,
    partner_suggestion_summary,
    rank_insights,
    relationship_card_score,
    relationship_vitals,
    sentiment_overview,
    trend_analysis,
    weekly_goals,
)

logger = logging.getLogger(__name__)

HEALTH_JOURNALS = 14


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class DashboardService:
    """Service for dashboard views."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Relationship cards ────────────────────────────────────────

    async def _unread_suggestions(self, user_id: uuid.UUID, relationship_id: uuid.UUID, now: datetime) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(PartnerSuggestion)
            .where(
                PartnerSuggestion.recipient_user_id == user_id,
                PartnerSuggestion.relationship_id == relationship_id,
                PartnerSuggestion.is_read.is_(False),
                or_(PartnerSuggestion.expires_at.is_(None), PartnerSuggestion.expires_at > now),
            )
        )
        return result.scalar() or 0

    async def _latest_health(self, user_id: uuid.UUID, relationship_id: uuid.UUID) -> Optional[RelationshipHealthScore]:
        result = await self.db.execute(
            select(RelationshipHealthScore)
            .where(
                RelationshipHealthScore.user_id == user_id,
                RelationshipHealthScore.relationship_id == relationship_id,
            )
            .order_by(RelationshipHealthScore.calculated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _relationship_card(self, user_id: uuid.UUID, relationship: Relationship, now: datetime) -> dict:
        since = now - timedelta(days=HEALTH_LOOKBACK_DAYS)

        journals = list((await self.db.execute(
            select(JournalEntry)
            .where(
                JournalEntry.user_id == user_id,
                JournalEntry.relationship_id == relationship.relationship_id,
                JournalEntry.created_at >= since,
            )
            .order_by(JournalEntry.created_at.desc())
        )).scalars().all())
        checkins = list((await self.db.execute(
            select(DailyCheckin)
            .where(
                DailyCheckin.user_id == user_id,
                DailyCheckin.relationship_id == relationship.relationship_id,
                DailyCheckin.created_at >= since,
            )
            .order_by(DailyCheckin.created_at.desc())
        )).scalars().all())

        last_activity = max(
            [row.created_at for row in journals + checkins] or [relationship.created_at]
        )
        unread = await self._unread_suggestions(user_id, relationship.relationship_id, now)
        saved = await self._latest_health(user_id, relationship.relationship_id)

        if saved is not None:
            score = saved.health_score
        else:
            score = relationship_card_score(
                activity_count=len(journals) + len(checkins),
                journal_moods=[j.mood_score for j in journals],
                checkin_connections=[c.connection_score for c in checkins],
                days_since_last_activity=age_days(last_activity, now) if last_activity else None,
                engagement_days=len({row.created_at.date() for row in journals + checkins}),
            )
        trend = card_trend([j.mood_score for j in journals])

        return {
            "id": str(relationship.relationship_id),
            "name": relationship.name,
            "type": RelationshipType(relationship.relationship_type).value,
            "health_score": score,
            "trend": trend,
            "unread_insights": 0,
            "unread_suggestions": unread,
            "last_activity": _iso(last_activity),
            "needs_attention": score < 60 or unread > 3,
        }

    async def relationship_cards(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now(timezone.utc)
        relationships = await RelationshipService(self.db).list_for_user(user_id)

        cards = [await self._relationship_card(user_id, r, now) for r in relationships]
        return {
            "relationships": cards,
            "total_count": len(cards),
            "total_unread": sum(card["unread_suggestions"] for card in cards),
        }

    # ── Insights feed ─────────────────────────────────────────────

    async def ranked_insights(
        self,
        user_id: uuid.UUID,
        hours_ago: int = DASHBOARD_INSIGHT_HOURS,
        max_per_relationship: int = 3,
        relationship_id: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        """Unread, undismissed insights from the window, ranked and capped."""
        now = now or datetime.now(timezone.utc)
        stmt = select(RelationshipInsight).where(
            RelationshipInsight.user_id == user_id,
            RelationshipInsight.is_read.is_(False),
            RelationshipInsight.dashboard_dismissed.is_(False),
            RelationshipInsight.created_at >= now - timedelta(hours=hours_ago),
        )
        if relationship_id is not None:
            stmt = stmt.where(RelationshipInsight.relationship_id == relationship_id)

        result = await self.db.execute(stmt)
        insights = cap_per_relationship(rank_insights(result.scalars().all()), max_per_relationship)

        return {
            "insights": insights,
            "total_count": len(insights),
            "filtered_by_relationship": str(relationship_id) if relationship_id else None,
            "hours_window": hours_ago,
        }

    # ── Connection health ─────────────────────────────────────────

    async def connection_health(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> dict:
        """Connection-health dashboard, cached per user for six hours."""
        cache_key = CacheKeys.connection_health(str(user_id))
        cached = await CacheManager.get(cache_key)
        if cached is not None:
            return cached

        now = now or datetime.now(timezone.utc)
        journals = list((await self.db.execute(
            select(JournalEntry)
            .where(JournalEntry.user_id == user_id)
            .order_by(JournalEntry.created_at.desc())
            .limit(HEALTH_JOURNALS)
        )).scalars().all())
        suggestions = list((await self.db.execute(
            select(PartnerSuggestion)
            .where(
                PartnerSuggestion.recipient_user_id == user_id,
                PartnerSuggestion.is_read.is_(False),
                or_(PartnerSuggestion.expires_at.is_(None), PartnerSuggestion.expires_at > now),
            )
            .order_by(PartnerSuggestion.priority_score.desc(), PartnerSuggestion.created_at.desc())
            .limit(3)
        )).scalars().all())

        scores = [j.mood_score for j in journals]
        latest_analysis = next((j.ai_analysis for j in journals if j.ai_analysis), None)

        vitals = relationship_vitals(scores)
        sentiment = sentiment_overview(latest_analysis)
        trends = trend_analysis(scores)
        sentiment["emotional_trajectory"] = trends["overall_direction"]

        payload = {
            "overall_health_score": overall_health_score(vitals, sentiment["current_sentiment"]),
            "health_trend": trends["overall_direction"],
            "last_updated": now.isoformat(),
            "relationship_vitals": vitals,
            "sentiment_overview": sentiment,
            "immediate_actions": immediate_actions(vitals),
            "weekly_goals": weekly_goals(now),
            "celebration_highlights": celebration_highlights(vitals),
            "trend_analysis": trends,
            "partner_suggestions": partner_suggestion_summary(suggestions),
        }

        await CacheManager.set(cache_key, payload, ttl=CacheManager.TTL_DASHBOARD)
        return payload
