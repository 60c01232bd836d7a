"""
Score Models
============

Persisted results of the connection-score and relationship-health calculations.
"""

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.relationship import RelationshipType


class ConnectionScore(Base):
    """Universal connection score (10-100) derived from daily check-ins."""

    __tablename__ = "connection_scores"

    score_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    relationship_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("relationships.relationship_id", ondelete="CASCADE"),
        nullable=True,
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    trend: Mapped[str] = mapped_column(String(20), nullable=False, default="stable")
    factors: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_connection_scores_user_calc", "user_id", "calculated_at"),
    )


class RelationshipHealthScore(Base):
    """Relationship-type-aware health score (0-100)."""

    __tablename__ = "relationship_health_scores"

    score_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    relationship_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("relationships.relationship_id", ondelete="CASCADE"),
        nullable=False,
    )
    relationship_type: Mapped[RelationshipType] = mapped_column(
        SQLEnum(RelationshipType),
        nullable=False,
    )
    health_score: Mapped[int] = mapped_column(Integer, nullable=False)
    metric_values: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    trend_data: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_health_scores_rel_calc", "relationship_id", "user_id", "calculated_at"),
    )
