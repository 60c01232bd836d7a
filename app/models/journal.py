"""
Journal Models
==============

SQLAlchemy models for journal entries and daily / relationship check-ins.
"""

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, CreatedAtMixin, TimestampMixin
from app.models.relationship import RelationshipType


class JournalEntry(Base, TimestampMixin):
    """
    Journal entry model.

    Free-text reflection with an optional mood score and relationship link.
    AI analysis is attached asynchronously after save.
    """

    __tablename__ = "journal_entries"

    entry_id: Mapped[uuid.UUID] = mapped_column(
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
        ForeignKey("relationships.relationship_id", ondelete="SET NULL"),
        nullable=True,
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    mood_score: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )

    # Analysis fields
    ai_analysis: Mapped[Optional[dict]] = mapped_column(
        JSONB,
        nullable=True,
    )
    analysis_completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Nightly partner-suggestion batch
    ready_for_batch_processing: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    batch_processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("idx_journal_user_created", "user_id", "created_at"),
        Index("idx_journal_relationship", "relationship_id"),
    )

    def __repr__(self) -> str:
        return f"<JournalEntry(entry_id={self.entry_id}, user_id={self.user_id})>"


class DailyCheckin(Base, TimestampMixin):
    """
    Daily check-in model.

    A mood / connection rating (1-10) with optional gratitude and challenge notes.
    """

    __tablename__ = "daily_checkins"

    checkin_id: Mapped[uuid.UUID] = mapped_column(
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
        ForeignKey("relationships.relationship_id", ondelete="SET NULL"),
        nullable=True,
    )
    connection_score: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    mood_score: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    gratitude_note: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    challenge_note: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    __table_args__ = (
        Index("idx_checkins_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<DailyCheckin(user_id={self.user_id}, connection={self.connection_score})>"


class RelationshipCheckin(Base, CreatedAtMixin):
    """
    Relationship-specific check-in.

    ``metric_values`` maps metric names of the relationship type
    (e.g. ``professional_rapport`` for work) to 1-10 ratings.
    """

    __tablename__ = "relationship_checkins"

    checkin_id: Mapped[uuid.UUID] = mapped_column(
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
    metric_values: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
    )

    __table_args__ = (
        Index("idx_rel_checkins_lookup", "user_id", "relationship_id", "created_at"),
    )
