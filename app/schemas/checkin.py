"""
Check-in Schemas
================
"""

from datetime import datetime
from typing import Optional
import uuid

from pydantic import BaseModel, Field

from app.models.relationship import RelationshipType


class DailyCheckinCreate(BaseModel):
    """Request schema for POST /checkins."""

    relationship_id: Optional[uuid.UUID] = None
    connection_score: int = Field(..., ge=1, le=10)
    mood_score: int = Field(..., ge=1, le=10)
    gratitude_note: Optional[str] = Field(default=None, max_length=2000)
    challenge_note: Optional[str] = Field(default=None, max_length=2000)
    notes: Optional[str] = Field(default=None, max_length=2000)


class DailyCheckinResponse(BaseModel):
    checkin_id: uuid.UUID
    relationship_id: Optional[uuid.UUID] = None
    connection_score: Optional[int] = None
    mood_score: Optional[int] = None
    gratitude_note: Optional[str] = None
    challenge_note: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RelationshipCheckinCreate(BaseModel):
    """
    Request schema for POST /checkins/relationship.

    ``metricValues`` keys are checked against the relationship type's metrics.
    """

    relationshipId: uuid.UUID
    metricValues: dict[str, float] = Field(..., min_length=1)


class RelationshipCheckinResponse(BaseModel):
    checkin_id: uuid.UUID
    relationship_id: uuid.UUID
    relationship_type: RelationshipType
    metric_values: dict[str, float]
    created_at: datetime

    class Config:
        from_attributes = True
