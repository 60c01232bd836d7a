"""
Onboarding API Endpoints
========================

Universal personality profile (FIRO needs, attachment, communication,
love languages) and per-relationship profiles.
"""

from typing import Annotated, Optional
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.dependencies import CurrentUser
from app.models.onboarding import UniversalUserProfile
from app.models.relationship import RelationshipProfile
from app.schemas.common import BaseResponse
from app.schemas.onboarding import RelationshipProfileRequest, UniversalProfileRequest
from app.services.onboarding_service import (
    RELATIONSHIP_PROFILE_FIELDS,
    UNIVERSAL_FIELDS,
    OnboardingService,
)
from app.services.relationship_service import RelationshipService

router = APIRouter()


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def universal_to_dict(profile: UniversalUserProfile) -> dict:
    data = {field: getattr(profile, field) for field in UNIVERSAL_FIELDS}
    data.update({
        "profile_id": str(profile.profile_id),
        "attachment_style": profile.attachment_style,
        "attachment_confidence": profile.attachment_confidence,
        "updated_at": _iso(profile.updated_at),
    })
    return data


def relationship_profile_to_dict(profile: RelationshipProfile) -> dict:
    data = {field: getattr(profile, field) for field in RELATIONSHIP_PROFILE_FIELDS}
    data.update({
        "profile_id": str(profile.profile_id),
        "relationship_id": str(profile.relationship_id),
        "updated_at": _iso(profile.updated_at),
    })
    return data


@router.post(
    "/universal",
    response_model=BaseResponse[dict],
)
async def save_universal_profile(
    body: UniversalProfileRequest,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Create or update the caller's universal profile.

    ``attachment_style`` is inferred from ``attachment_responses`` (majority vote).
    """
    profile = await OnboardingService(db).save_universal(
        current_user.user_id,
        body.model_dump(exclude_unset=True),
    )
    return BaseResponse(data=universal_to_dict(profile), message="Profile saved")


@router.get(
    "/universal",
    response_model=BaseResponse[dict],
)
async def get_universal_profile(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    profile = await OnboardingService(db).get_universal(current_user.user_id)
    return BaseResponse(
        data={
            "profile": universal_to_dict(profile) if profile else None,
            "exists": profile is not None,
        }
    )


@router.post(
    "/relationship",
    response_model=BaseResponse[dict],
)
async def save_relationship_profile(
    body: RelationshipProfileRequest,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create or update the caller's profile for one of their relationships."""
    relationship = await RelationshipService(db).require_member(body.relationshipId, current_user.user_id)
    profile = await OnboardingService(db).save_relationship_profile(
        current_user.user_id,
        relationship,
        body.model_dump(exclude_unset=True, exclude={"relationshipId", "relationshipType"}),
        relationship_type=body.relationshipType,
    )
    return BaseResponse(data=relationship_profile_to_dict(profile), message="Relationship profile saved")


@router.get(
    "/relationship",
    response_model=BaseResponse[list[dict]],
)
async def list_relationship_profiles(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    relationship_id: Optional[uuid.UUID] = Query(default=None, alias="relationshipId"),
):
    profiles = await OnboardingService(db).list_relationship_profiles(
        current_user.user_id,
        relationship_id=relationship_id,
    )
    return BaseResponse(data=[relationship_profile_to_dict(p) for p in profiles])
