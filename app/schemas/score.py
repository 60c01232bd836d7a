"""
Score Schemas
=============
"""

from typing import Optional
import uuid

from pydantic import BaseModel

from app.models.relationship import RelationshipType


class ConnectionScoreRequest(BaseModel):
    relationshipId: Optional[uuid.UUID] = None


class RelationshipHealthRequest(BaseModel):
    relationshipId: uuid.UUID
    relationshipType: RelationshipType
