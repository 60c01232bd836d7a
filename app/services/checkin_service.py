"""
Check-in Service
================

Daily check-ins and relationship-specific metric check-ins.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationError
from app.models.journal import DailyCheckin, RelationshipCheckin
from app.models.relationship import RelationshipType
from app.services.cache import CacheInvalidator
from app.services.relationship_service import RelationshipService
from app.services.scoring import metric_names

logger = logging.getLogger(__name__)


def validate_metric_values(relationship_type: RelationshipType, values: dict) -> dict:
    """
    Keep ``values`` only if every key is a metric of the type and every value is 1-10.

    Raises:
        ValidationError: unknown metric, non-integer or out-of-range value
    """
    if not values:
        raise ValidationError(message="At least one metric value is required", field="metricValues")

    allowed = set(metric_names(relationship_type))
    for name, value in values.items():
        if name not in allowed:
            raise ValidationError(
                message=f"Unknown metric '{name}' for {RelationshipType(relationship_type).value} relationships",
                field=f"metricValues.{name}",
            )
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not 1 <= value <= 10:
            raise ValidationError(
                message=f"Metric '{name}' must be between 1 and 10",
                field=f"metricValues.{name}",
            )
    return dict(values)


class CheckinService:
    """Service for check-in operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_daily(self, user_id: uuid.UUID, data) -> DailyCheckin:
        if data.relationship_id is not None:
            await RelationshipService(self.db).require_member(data.relationship_id, user_id)

        checkin = DailyCheckin(
            user_id=user_id,
            relationship_id=data.relationship_id,
            connection_score=data.connection_score,
            mood_score=data.mood_score,
            gratitude_note=data.gratitude_note,
            challenge_note=data.challenge_note,
            notes=data.notes,
        )
        self.db.add(checkin)
        await self.db.flush()

        await CacheInvalidator.on_checkin_create(str(user_id))
        return checkin

    async def list_recent(
        self,
        user_id: uuid.UUID,
        days: int = 30,
        now: Optional[datetime] = None,
    ) -> list[DailyCheckin]:
        now = now or datetime.now(timezone.utc)
        stmt = (
            select(DailyCheckin)
            .where(
                DailyCheckin.user_id == user_id,
                DailyCheckin.created_at >= now - timedelta(days=days),
            )
            .order_by(DailyCheckin.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_relationship_checkin(
        self,
        user_id: uuid.UUID,
        relationship_id: uuid.UUID,
        metric_values: dict,
    ) -> RelationshipCheckin:
        """Metric check-in scored against the relationship's own type."""
        relationship = await RelationshipService(self.db).require_member(relationship_id, user_id)
        relationship_type = RelationshipType(relationship.relationship_type)

        checkin = RelationshipCheckin(
            user_id=user_id,
            relationship_id=relationship_id,
            relationship_type=relationship_type,
            metric_values=validate_metric_values(relationship_type, metric_values),
        )
        self.db.add(checkin)
        await self.db.flush()

        await CacheInvalidator.on_checkin_create(str(user_id))
        logger.info("Relationship check-in for %s in %s", user_id, relationship_id)
        return checkin
