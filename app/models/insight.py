"""
Insight Models
==============

Generated content shown to users: personal relationship insights,
anonymized partner suggestions, and the feedback collected on both.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, CreatedAtMixin


class InsightPriority(str, Enum):
    """Dashboard ordering priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RelationshipInsight(Base, CreatedAtMixin):
    """
    Relationship insight model.

    A generated recommendation addressed to a single user.
    """

    __tablename__ = "relationship_insights"

    insight_id: Mapped[uuid.UUID] = mapped_column(
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

    insight_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="suggestion",
    )
    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    priority: Mapped[InsightPriority] = mapped_column(
        SQLEnum(InsightPriority),
        nullable=False,
        default=InsightPriority.MEDIUM,
    )
    relevance_score: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=5.0,
    )
    category: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    action_steps: Mapped[Optional[list]] = mapped_column(
        JSONB,
        nullable=True,
    )

    # State
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    dashboard_dismissed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_insights_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<RelationshipInsight(user_id={self.user_id}, title={self.title!r})>"


class InsightFeedback(Base, CreatedAtMixin):
    """User rating of an insight."""

    __tablename__ = "insight_feedback"

    feedback_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    insight_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("relationship_insights.insight_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    helpful: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class PartnerSuggestion(Base, CreatedAtMixin):
    """
    Partner suggestion model.

    Derived from one member's journal and delivered, anonymized, to another
    member of the same relationship.
    """

    __tablename__ = "partner_suggestions"

    suggestion_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    recipient_user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    source_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=True,
    )
    relationship_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("relationships.relationship_id", ondelete="CASCADE"),
        nullable=True,
    )
    source_entry_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("journal_entries.entry_id", ondelete="SET NULL"),
        nullable=True,
    )

    suggestion_type: Mapped[str] = mapped_column(String(50), nullable=False)
    suggestion_text: Mapped[str] = mapped_column(Text, nullable=False)
    anonymized_context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority_score: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    confidence_score: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    source_need_intensity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # State
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Nightly batch provenance
    batch_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    batch_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("idx_suggestions_recipient_created", "recipient_user_id", "created_at"),
        Index("idx_suggestions_relationship_created", "relationship_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<PartnerSuggestion(recipient={self.recipient_user_id}, type={self.suggestion_type})>"


class SuggestionFeedback(Base, CreatedAtMixin):
    """User rating of a partner suggestion."""

    __tablename__ = "suggestion_feedback"

    feedback_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    suggestion_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("partner_suggestions.suggestion_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    # Denormalized so the quality validator can aggregate by type
    suggestion_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    helpful: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
