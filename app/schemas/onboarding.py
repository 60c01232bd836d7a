"""
Onboarding Schemas
==================

Universal (per-user) and per-relationship onboarding questionnaires.
FIRO needs are scored 1-10.
"""

from typing import Any, Optional
import uuid

from pydantic import BaseModel, Field

from app.models.relationship import RelationshipType


class UniversalProfileRequest(BaseModel):
    """Request schema for POST /onboarding/universal."""

    inclusion_need: Optional[int] = Field(default=None, ge=1, le=10)
    control_need: Optional[int] = Field(default=None, ge=1, le=10)
    affection_need: Optional[int] = Field(default=None, ge=1, le=10)
    attachment_responses: list[str] = Field(default_factory=list)
    communication_directness: Optional[str] = Field(default=None, max_length=50)
    communication_assertiveness: Optional[str] = Field(default=None, max_length=50)
    communication_context: Optional[str] = Field(default=None, max_length=50)
    support_preference: Optional[str] = Field(default=None, max_length=50)
    conflict_style: Optional[str] = Field(default=None, max_length=50)
    love_language_receive: Optional[str] = Field(default=None, max_length=50)
    love_language_give: Optional[str] = Field(default=None, max_length=50)


class RelationshipProfileRequest(BaseModel):
    """Request schema for POST /onboarding/relationship."""

    relationshipId: uuid.UUID
    relationshipType: Optional[RelationshipType] = None
    perceived_closeness: Optional[int] = Field(default=None, ge=1, le=10)
    communication_frequency: Optional[str] = Field(default=None, max_length=50)
    preferred_interaction_style: Optional[str] = Field(default=None, max_length=50)
    relationship_expectations: Optional[dict[str, Any]] = None
    interaction_preferences: Optional[dict[str, Any]] = None
