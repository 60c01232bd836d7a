"""
Relationship Schemas
====================
"""

from datetime import date, datetime
from typing import Optional
import uuid

from pydantic import BaseModel, EmailStr, Field

from app.models.relationship import MemberRole, RelationshipType


class RelationshipCreate(BaseModel):
    """Request schema for POST /relationships."""

    name: str = Field(..., min_length=1, max_length=255)
    relationship_type: RelationshipType = RelationshipType.ROMANTIC
    start_date: Optional[date] = None


class InviteRequest(BaseModel):
    email: EmailStr


class RelationshipSuggestionsRequest(BaseModel):
    """Request schema for POST /relationships/{id}/suggestions."""

    timeframe_hours: int = Field(default=72, ge=1, le=720)
    max_suggestions: int = Field(default=3, ge=1, le=10)


class MemberResponse(BaseModel):
    user_id: uuid.UUID
    role: MemberRole
    joined_at: datetime


class RelationshipResponse(BaseModel):
    relationship_id: uuid.UUID
    name: str
    relationship_type: RelationshipType
    created_by: Optional[uuid.UUID] = None
    start_date: Optional[date] = None
    members: list[MemberResponse] = Field(default_factory=list)
    created_at: datetime
