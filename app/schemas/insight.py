"""
Insight & Suggestion Schemas
============================

Pydantic schemas for personal insights and partner suggestions.
"""

from datetime import date, datetime
from typing import Optional
import uuid

from pydantic import BaseModel, Field

from app.models.insight import InsightPriority


# ---------------------------------------------------------------------------
# Personal insights
# ---------------------------------------------------------------------------

class InsightResponse(BaseModel):
    insight_id: uuid.UUID
    relationship_id: Optional[uuid.UUID] = None
    insight_type: str
    title: str
    description: str
    priority: InsightPriority
    relevance_score: float
    category: Optional[str] = None
    action_steps: Optional[list[str]] = None
    is_read: bool
    read_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class InsightFeedbackRequest(BaseModel):
    """Request schema for POST /insights/feedback."""

    insightId: uuid.UUID
    rating: int = Field(..., ge=1, le=5)
    helpful: Optional[bool] = None
    comment: Optional[str] = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Partner suggestions
# ---------------------------------------------------------------------------

class PartnerSuggestionResponse(BaseModel):
    suggestion_id: uuid.UUID
    relationship_id: Optional[uuid.UUID] = None
    suggestion_type: str
    suggestion_text: str
    anonymized_context: Optional[str] = None
    priority_score: int
    confidence_score: int
    source_need_intensity: Optional[int] = None
    is_read: bool
    read_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    batch_date: Optional[date] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SuggestionFeedbackRequest(BaseModel):
    """Request schema for POST /partner-suggestions/feedback."""

    suggestionId: uuid.UUID
    rating: int = Field(..., ge=1, le=5)
    helpful: Optional[bool] = None
    comment: Optional[str] = Field(default=None, max_length=2000)


class SuggestionCleanupRequest(BaseModel):
    """Request schema for POST /partner-suggestions/cleanup."""

    daysOld: int = Field(default=30, ge=1, le=365)
    dryRun: bool = False
