"""
Premium API Endpoints
=====================

Subscription status, the free/premium feature catalogue and premium
relationship analyses.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.feature_limits import (
    FEATURE_CATALOGUE,
    FeatureGate,
    get_required_tier_for_feature,
    has_feature,
)
from app.core.rate_limit import create_rate_limit_dependency
from app.db.session import get_db
from app.dependencies import CurrentUser
from app.schemas.billing import FeatureInfo, FiroCompatibilityRequest, PremiumStatus
from app.schemas.common import BaseResponse
from app.services.compatibility_service import CompatibilityService
from app.services.premium_service import PremiumService, subscription_tier
from app.services.relationship_service import RelationshipService

router = APIRouter()


@router.get(
    "/status",
    response_model=BaseResponse[PremiumStatus],
)
async def get_premium_status(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Subscription check.

    ``has_premium`` requires an active or trial status and an unexpired
    period (or trial).
    """
    status_payload = await PremiumService(db).get_status(current_user.user_id)
    return BaseResponse(data=PremiumStatus(**status_payload))


@router.get(
    "/features",
    response_model=BaseResponse[dict],
)
async def get_features(current_user: CurrentUser):
    """
    Get all features with the caller's access flags.
    """
    tier = subscription_tier(current_user.premium_subscription)

    features = [
        FeatureInfo(
            key=key,
            name=name,
            category=category,
            required_tier=get_required_tier_for_feature(key),
            has_access=has_feature(tier, key),
        )
        for key, (name, category) in FEATURE_CATALOGUE.items()
    ]

    return BaseResponse(
        data={
            "tier": tier,
            "features": [f.model_dump() for f in features],
        }
    )


@router.post(
    "/firo-compatibility",
    response_model=BaseResponse[dict],
    dependencies=[
        Depends(FeatureGate("firo_compatibility")),
        Depends(create_rate_limit_dependency("ai")),
    ],
)
async def analyze_firo_compatibility(
    body: FiroCompatibilityRequest,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    FIRO compatibility of the two members of a relationship.

    Both members need inclusion, control and affection needs on their
    universal profile. Results are reused for 30 days.
    """
    relationship = await RelationshipService(db).require_member(body.relationship_id, current_user.user_id)
    result = await CompatibilityService(db).firo_for_relationship(relationship)

    return BaseResponse(
        data={
            **result,
            "research_note": "Analysis based on FIRO theory research (Schutz, 1958)",
        },
    )
