"""
Dashboard API Endpoints
=======================

Relationship cards, the ranked insights feed and the premium
connection-health view.
"""

from typing import Annotated, Optional
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.feature_limits import FeatureGate
from app.db.session import get_db
from app.dependencies import CurrentUser
from app.schemas.common import BaseResponse
from app.schemas.insight import InsightResponse
from app.services.dashboard_service import DashboardService
from app.services.scoring import DASHBOARD_INSIGHT_HOURS

router = APIRouter()


@router.get(
    "/relationships",
    response_model=BaseResponse[dict],
)
async def get_relationship_cards(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """One card per relationship with health score, trend and unread count."""
    return BaseResponse(data=await DashboardService(db).relationship_cards(current_user.user_id))


@router.get(
    "/insights",
    response_model=BaseResponse[dict],
)
async def get_dashboard_insights(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    hours_ago: int = Query(default=DASHBOARD_INSIGHT_HOURS, ge=1, le=720, alias="hoursAgo"),
    max_per_relationship: int = Query(default=3, ge=1, le=20, alias="maxPerRelationship"),
    relationship_id: Optional[uuid.UUID] = Query(default=None, alias="relationshipId"),
):
    """Unread insights from the window, ranked by priority, relevance and recency."""
    result = await DashboardService(db).ranked_insights(
        current_user.user_id,
        hours_ago=hours_ago,
        max_per_relationship=max_per_relationship,
        relationship_id=relationship_id,
    )
    result["insights"] = [
        InsightResponse.model_validate(i).model_dump(mode="json") for i in result["insights"]
    ]
    return BaseResponse(data=result)


@router.get(
    "/connection-health",
    response_model=BaseResponse[dict],
    dependencies=[Depends(FeatureGate("premium_analytics"))],
)
async def get_connection_health(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Premium connection-health dashboard, cached for six hours."""
    return BaseResponse(data=await DashboardService(db).connection_health(current_user.user_id))
