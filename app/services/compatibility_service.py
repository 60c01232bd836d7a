"""
Compatibility Service
=====================

FIRO compatibility between the two members of a relationship.

Each FIRO need (inclusion, control, affection) is compared on its own; the
absolute difference between the partners falls into a fixed band score and
the overall score is the rounded mean of the three. Results are cached per
relationship for 30 days.
"""

from dataclasses import dataclass
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorCodes, ValidationError
from app.models.onboarding import UniversalUserProfile
from app.models.relationship import Relationship
from app.services.cache import CacheKeys, CacheManager
from app.services.onboarding_service import OnboardingService

logger = logging.getLogger(__name__)

FIRO_DIMENSIONS = ("inclusion", "control", "affection")

# (max difference, score)
COMPATIBILITY_BANDS = (
    (1, 95),
    (2, 85),
    (3, 75),
    (4, 60),
    (5, 45),
)
DISTANT_SCORE = 30

COMPATIBILITY_LEVELS = (
    (85, "Excellent"),
    (70, "Very Good"),
    (55, "Good"),
    (40, "Moderate"),
)

CONFIDENCE_LEVEL = 85
FIRO_CACHE_TTL = 30 * CacheManager.TTL_DAY

LIMITATIONS = [
    "Based on FIRO theory research (Schutz, 1958) and represents one aspect of compatibility",
    "Individual personalities and circumstances may override compatibility predictions",
    "Professional relationship counseling is recommended for serious compatibility concerns",
]


@dataclass(frozen=True)
class FiroProfile:
    inclusion: int
    control: int
    affection: int

    @classmethod
    def from_universal(cls, profile: Optional[UniversalUserProfile]) -> Optional["FiroProfile"]:
        """``None`` unless all three needs are recorded."""
        if profile is None:
            return None
        needs = (profile.inclusion_need, profile.control_need, profile.affection_need)
        if any(need is None for need in needs):
            return None
        return cls(*needs)


def band_score(difference: int) -> int:
    for limit, score in COMPATIBILITY_BANDS:
        if difference <= limit:
            return score
    return DISTANT_SCORE


def compatibility_level(score: int) -> str:
    for floor, level in COMPATIBILITY_LEVELS:
        if score >= floor:
            return level
    return "Challenging"


def firo_insights(diffs: dict[str, int]) -> list[str]:
    insights = []

    if diffs["inclusion"] <= 1:
        insights.append(
            "You both have very similar needs for social connection and inclusion, "
            "which makes social situations feel natural together."
        )
    elif diffs["inclusion"] >= 4:
        insights.append(
            "Your social needs differ noticeably. One of you may want more social time "
            "while the other prefers smaller groups or time alone."
        )

    if diffs["control"] <= 1:
        insights.append(
            "Similar control needs suggest good alignment on decision-making and leadership."
        )
    elif diffs["control"] >= 4:
        insights.append(
            "Different control preferences can turn into power struggles. "
            "Complementary roles and shared decisions help."
        )

    if diffs["affection"] <= 1:
        insights.append(
            "Aligned affection needs point to natural compatibility in intimacy and emotional expression."
        )
    elif diffs["affection"] >= 4:
        insights.append(
            "Your intimacy needs differ. One of you may want more emotional closeness "
            "while the other values more independence."
        )

    total = sum(diffs.values())
    if total <= 4:
        insights.append(
            "Close FIRO profiles tend to go with smoother day-to-day dynamics and fewer conflicts."
        )
    elif total >= 10:
        insights.append(
            "Large differences can be strengths when each of you understands what the other needs."
        )

    return insights


def firo_compatibility(first: FiroProfile, second: FiroProfile) -> dict:
    """
    Compatibility of two FIRO profiles.

    Per-dimension scores come from the difference bands; the overall
    level is read from the rounded mean.
    """
    diffs = {
        dimension: abs(getattr(first, dimension) - getattr(second, dimension))
        for dimension in FIRO_DIMENSIONS
    }
    scores = {dimension: band_score(diff) for dimension, diff in diffs.items()}
    overall = round(sum(scores.values()) / len(scores))

    return {
        "inclusion_compatibility": scores["inclusion"],
        "control_compatibility": scores["control"],
        "affection_compatibility": scores["affection"],
        "overall_score": overall,
        "compatibility_level": compatibility_level(overall),
        "confidence_level": CONFIDENCE_LEVEL,
        "research_insights": firo_insights(diffs),
        "limitations": list(LIMITATIONS),
    }


class CompatibilityService:
    """FIRO compatibility analysis for relationships."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.onboarding = OnboardingService(db)

    async def firo_for_relationship(self, relationship: Relationship) -> dict:
        """
        Cached analysis for a two-member relationship.

        Raises:
            ValidationError: not exactly two members, or a member has no
                complete FIRO profile
        """
        cache_key = CacheKeys.firo_compatibility(str(relationship.relationship_id))
        cached = await CacheManager.get(cache_key)
        if cached is not None:
            return {"analysis": cached, "cached": True}

        member_ids = list(relationship.member_ids)
        if len(member_ids) != 2:
            raise ValidationError(
                message="FIRO compatibility analysis requires exactly two relationship members",
                reason=ErrorCodes.REL_TOO_FEW_MEMBERS,
            )

        profiles = await self.onboarding.get_universal_many(member_ids)
        first, second = (FiroProfile.from_universal(profiles.get(uid)) for uid in member_ids)
        if first is None or second is None:
            raise ValidationError(
                message="Both members must complete FIRO profiling for compatibility analysis",
                reason=ErrorCodes.ONBOARDING_INCOMPLETE,
            )

        analysis = firo_compatibility(first, second)
        await CacheManager.set(cache_key, analysis, ttl=FIRO_CACHE_TTL)

        logger.info(
            "FIRO compatibility for relationship %s: %d (%s)",
            relationship.relationship_id, analysis["overall_score"], analysis["compatibility_level"],
        )
        return {"analysis": analysis, "cached": False}
