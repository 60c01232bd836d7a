"""
Batch Processing Log
====================

Bookkeeping for the nightly partner-suggestion batch. A ``completed`` row
for a date marks that date as already processed.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class BatchStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BatchProcessingLog(Base):
    """One row per (batch date, relationship) attempt."""

    __tablename__ = "batch_processing_log"

    log_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    batch_date: Mapped[date] = mapped_column(Date, nullable=False)
    relationship_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("relationships.relationship_id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BatchStatus.RUNNING.value,
    )
    journals_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    suggestions_generated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("idx_batch_log_date_status", "batch_date", "status"),
    )
