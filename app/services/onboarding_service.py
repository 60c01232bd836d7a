"""
Onboarding Service
==================

Universal and per-relationship onboarding profiles.
"""

import logging
from typing import Any, Optional, Sequence
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.onboarding import UniversalUserProfile
from app.models.relationship import RelationshipProfile, RelationshipType
from app.models.user import User

logger = logging.getLogger(__name__)

ATTACHMENT_STYLES = ("secure", "anxious", "avoidant", "disorganized")

UNIVERSAL_FIELDS = (
    "inclusion_need",
    "control_need",
    "affection_need",
    "communication_directness",
    "communication_assertiveness",
    "communication_context",
    "support_preference",
    "conflict_style",
    "love_language_receive",
    "love_language_give",
)

RELATIONSHIP_PROFILE_FIELDS = (
    "perceived_closeness",
    "communication_frequency",
    "preferred_interaction_style",
    "relationship_expectations",
    "interaction_preferences",
)


def infer_attachment_style(responses: Sequence[Any]) -> tuple[Optional[str], float]:
    """
    Majority attachment style across scenario answers.

    Each response is a ``{"id", "value"}`` mapping (or a bare value). Ties
    go to the style listed first in ``ATTACHMENT_STYLES``.

    Returns:
        ``(style, confidence)``; ``(None, 0.0)`` with no responses.
    """
    if not responses:
        return None, 0.0

    counts = dict.fromkeys(ATTACHMENT_STYLES, 0)
    for response in responses:
        value = response.get("value") if isinstance(response, dict) else response
        if value in counts:
            counts[value] += 1

    style = "secure"
    best = 0
    for candidate, count in counts.items():
        if count > best:
            best = count
            style = candidate

    return style, round(best / len(responses), 2)


def preference_context(
    profile: Optional[UniversalUserProfile],
    user: Optional[User] = None,
) -> dict:
    """Preferences fed into LLM prompts and quality scoring."""
    context: dict = {
        "love_languages": [],
        "love_language_give": [],
        "communication_style": None,
        "conflict_style": None,
        "goals": [],
    }
    if profile is not None:
        if profile.love_language_receive:
            context["love_languages"] = [profile.love_language_receive]
        if profile.love_language_give:
            context["love_language_give"] = [profile.love_language_give]
        context["communication_style"] = profile.communication_directness
        context["conflict_style"] = profile.conflict_style
    if user is not None and user.relationship_goals:
        goals = user.relationship_goals
        context["goals"] = goals.get("goals", []) if isinstance(goals, dict) else list(goals)
    return context


class OnboardingService:
    """Service for onboarding profiles."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_universal(self, user_id: uuid.UUID) -> Optional[UniversalUserProfile]:
        result = await self.db.execute(
            select(UniversalUserProfile).where(UniversalUserProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_universal_many(
        self,
        user_ids: Sequence[uuid.UUID],
    ) -> dict[uuid.UUID, UniversalUserProfile]:
        if not user_ids:
            return {}
        result = await self.db.execute(
            select(UniversalUserProfile).where(UniversalUserProfile.user_id.in_(list(user_ids)))
        )
        return {p.user_id: p for p in result.scalars().all()}

    async def save_universal(self, user_id: uuid.UUID, data: dict) -> UniversalUserProfile:
        """Insert or update the universal profile, inferring attachment style."""
        profile = await self.get_universal(user_id)
        if profile is None:
            profile = UniversalUserProfile(user_id=user_id)
            self.db.add(profile)

        for field in UNIVERSAL_FIELDS:
            if field in data:
                setattr(profile, field, data[field])

        style, confidence = infer_attachment_style(data.get("attachment_responses") or [])
        profile.attachment_style = style
        profile.attachment_confidence = confidence

        await self.db.flush()
        logger.info("Universal profile saved for %s (attachment=%s)", user_id, style)
        return profile

    async def save_relationship_profile(
        self,
        user_id: uuid.UUID,
        relationship,
        data: dict,
        relationship_type: Optional[RelationshipType] = None,
    ) -> RelationshipProfile:
        """Insert or update the caller's profile for one relationship."""
        if relationship_type is not None:
            relationship.relationship_type = relationship_type

        result = await self.db.execute(
            select(RelationshipProfile).where(
                RelationshipProfile.user_id == user_id,
                RelationshipProfile.relationship_id == relationship.relationship_id,
            )
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            profile = RelationshipProfile(
                user_id=user_id,
                relationship_id=relationship.relationship_id,
            )
            self.db.add(profile)

        for field in RELATIONSHIP_PROFILE_FIELDS:
            if field in data:
                setattr(profile, field, data[field])
        profile.relationship_expectations = profile.relationship_expectations or {}
        profile.interaction_preferences = profile.interaction_preferences or {}

        await self.db.flush()
        return profile

    async def list_relationship_profiles(
        self,
        user_id: uuid.UUID,
        relationship_id: Optional[uuid.UUID] = None,
    ) -> list[RelationshipProfile]:
        stmt = select(RelationshipProfile).where(RelationshipProfile.user_id == user_id)
        if relationship_id is not None:
            stmt = stmt.where(RelationshipProfile.relationship_id == relationship_id)
        result = await self.db.execute(stmt.order_by(RelationshipProfile.created_at.desc()))
        return list(result.scalars().all())
