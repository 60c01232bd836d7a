"""
Menstrual Cycle Model
=====================
"""

from datetime import date
from typing import Optional
import uuid

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin


class MenstrualCycle(Base, TimestampMixin):
    """
    Menstrual cycle model.

    At most one row per user has ``is_active`` set; the partial unique
    index backs up the service-level deactivation.
    """

    __tablename__ = "menstrual_cycles"

    cycle_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    cycle_start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    cycle_length: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=28,
    )
    period_length: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=5,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )
    symptoms: Mapped[Optional[list]] = mapped_column(
        JSONB,
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    __table_args__ = (
        Index(
            "uq_cycle_one_active_per_user",
            "user_id",
            unique=True,
            postgresql_where=text("is_active"),
        ),
    )

    def __repr__(self) -> str:
        return f"<MenstrualCycle(user_id={self.user_id}, start={self.cycle_start_date})>"
