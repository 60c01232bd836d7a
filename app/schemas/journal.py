"""
Journal Schemas
===============

Pydantic schemas for journal entry endpoints.
"""

from datetime import datetime
from typing import Any, Optional
import uuid

from pydantic import BaseModel, Field


class JournalEntryCreate(BaseModel):
    """Request schema for creating a journal entry."""

    content: str
    mood_score: Optional[int] = Field(default=None, ge=1, le=10)
    relationship_id: Optional[uuid.UUID] = None


class JournalEntryUpdate(BaseModel):
    """Request schema for updating a journal entry."""

    content: Optional[str] = None
    mood_score: Optional[int] = Field(default=None, ge=1, le=10)


class JournalEntryResponse(BaseModel):
    """Response schema for a journal entry."""

    entry_id: uuid.UUID
    relationship_id: Optional[uuid.UUID] = None
    content: str
    mood_score: Optional[int] = None
    ai_analysis: Optional[dict[str, Any]] = None
    analysis_completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class JournalAnalysisStatus(BaseModel):
    """Response data for GET /journal/entries/{id}/analysis."""

    analysisComplete: bool
    analysis: Optional[dict[str, Any]] = None
