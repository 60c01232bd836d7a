"""
Score Service
=============

Loads check-ins, runs the scoring arithmetic and stores the results.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.journal import DailyCheckin, RelationshipCheckin
from app.models.relationship import RelationshipType
from app.models.score import ConnectionScore, RelationshipHealthScore
from app.services.relationship_service import RelationshipService
from app.services.scoring import (
    CONNECTION_LOOKBACK_DAYS,
    HEALTH_LOOKBACK_DAYS,
    NEUTRAL_SCORE,
    aggregate_metrics,
    average,
    calculate_connection_score,
    metric_names,
    metric_trends,
    migrate_legacy_metrics,
    relationship_health_score,
)

logger = logging.getLogger(__name__)

HEALTH_SAMPLE_SIZE = 7


class ScoreService:
    """Service for connection and relationship-health scores."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def calculate_connection(
        self,
        user_id: uuid.UUID,
        relationship_id: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        """Connection score over the last 90 days of daily check-ins."""
        now = now or datetime.now(timezone.utc)
        if relationship_id is not None:
            await RelationshipService(self.db).require_member(relationship_id, user_id)

        stmt = select(DailyCheckin).where(
            DailyCheckin.user_id == user_id,
            DailyCheckin.created_at >= now - timedelta(days=CONNECTION_LOOKBACK_DAYS),
        )
        if relationship_id is not None:
            stmt = stmt.where(DailyCheckin.relationship_id == relationship_id)
        result = await self.db.execute(stmt.order_by(DailyCheckin.created_at.desc()))
        checkins = list(result.scalars().all())

        score = calculate_connection_score(checkins, now)

        self.db.add(ConnectionScore(
            user_id=user_id,
            relationship_id=relationship_id,
            score=score["score"],
            trend=score["trend"],
            factors={"components": score["components"], "analytics": score["analytics"]},
        ))
        await self.db.flush()

        logger.info("Connection score for %s: %s (%s)", user_id, score["score"], score["trend"])
        return score

    async def calculate_relationship_health(
        self,
        user_id: uuid.UUID,
        relationship_id: uuid.UUID,
        relationship_type: RelationshipType,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Type-aware health score from the latest relationship check-ins.

        Falls back to the user's daily check-ins for the relationship, and
        to a neutral 50 when there is no data at all.
        """
        now = now or datetime.now(timezone.utc)
        relationship_type = RelationshipType(relationship_type)
        await RelationshipService(self.db).require_member(relationship_id, user_id)
        since = now - timedelta(days=HEALTH_LOOKBACK_DAYS)
        names = metric_names(relationship_type)

        result = await self.db.execute(
            select(RelationshipCheckin)
            .where(
                RelationshipCheckin.user_id == user_id,
                RelationshipCheckin.relationship_id == relationship_id,
                RelationshipCheckin.created_at >= since,
            )
            .order_by(RelationshipCheckin.created_at.desc())
        )
        rows = [c.metric_values or {} for c in result.scalars().all()]

        migrated = False
        trends: dict = {}
        if rows:
            recent = rows[:HEALTH_SAMPLE_SIZE]
            metrics = aggregate_metrics(recent, names)
            trends = metric_trends(recent, rows[HEALTH_SAMPLE_SIZE:HEALTH_SAMPLE_SIZE * 2], names)
            analyzed = len(recent)
        else:
            legacy = list((await self.db.execute(
                select(DailyCheckin)
                .where(
                    DailyCheckin.user_id == user_id,
                    DailyCheckin.relationship_id == relationship_id,
                    DailyCheckin.created_at >= since,
                )
                .order_by(DailyCheckin.created_at.desc())
                .limit(HEALTH_SAMPLE_SIZE)
            )).scalars().all())

            if not legacy:
                return {
                    "relationshipType": relationship_type.value,
                    "healthScore": NEUTRAL_SCORE,
                    "metricScores": {},
                    "trends": {},
                    "checkinsAnalyzed": 0,
                    "migrated": False,
                }

            metrics = migrate_legacy_metrics(
                relationship_type,
                average(c.connection_score for c in legacy),
                average(c.mood_score for c in legacy),
            )
            migrated = True
            analyzed = len(legacy)

        health = relationship_health_score(relationship_type, metrics)
        metric_scores = {name: round(value, 2) for name, value in metrics.items()}

        self.db.add(RelationshipHealthScore(
            user_id=user_id,
            relationship_id=relationship_id,
            relationship_type=relationship_type,
            health_score=health,
            metric_values=metric_scores,
            trend_data=trends,
        ))
        await self.db.flush()

        logger.info(
            "%s health score for relationship %s: %d (migrated=%s)",
            relationship_type.value, relationship_id, health, migrated,
        )
        return {
            "relationshipType": relationship_type.value,
            "healthScore": health,
            "metricScores": metric_scores,
            "trends": trends,
            "checkinsAnalyzed": analyzed,
            "migrated": migrated,
        }
