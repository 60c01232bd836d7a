"""
Cycle Schemas
=============

Pydantic schemas for menstrual cycle tracking.
"""

from datetime import date, datetime
from typing import Optional
import uuid

from pydantic import BaseModel, Field


class CycleCreate(BaseModel):
    """Request schema for POST /cycle."""

    cycle_start_date: date
    cycle_length: int = Field(default=28, ge=15, le=60)
    period_length: int = Field(default=5, ge=1, le=14)
    symptoms: Optional[list[str]] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class CycleUpdate(BaseModel):
    """Request schema for PATCH /cycle/{id}."""

    cycle_start_date: Optional[date] = None
    cycle_length: Optional[int] = Field(default=None, ge=15, le=60)
    period_length: Optional[int] = Field(default=None, ge=1, le=14)
    is_active: Optional[bool] = None
    symptoms: Optional[list[str]] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class CycleResponse(BaseModel):
    cycle_id: uuid.UUID
    cycle_start_date: date
    cycle_length: int
    period_length: int
    is_active: bool
    symptoms: Optional[list[str]] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CyclePrediction(BaseModel):
    """Response data for GET /cycle/predict."""

    cycleId: str
    phase: str
    cycleDay: int
    daysUntilNextPeriod: int
    predictedMood: str
    partnerSuggestion: str
