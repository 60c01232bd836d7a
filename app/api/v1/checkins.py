"""
Check-in API Endpoints
======================

Daily mood/connection check-ins and relationship-specific metric check-ins.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.rate_limit import create_rate_limit_dependency
from app.db.session import get_db
from app.dependencies import CurrentUser
from app.schemas.checkin import (
    DailyCheckinCreate,
    DailyCheckinResponse,
    RelationshipCheckinCreate,
    RelationshipCheckinResponse,
)
from app.schemas.common import BaseResponse
from app.services.checkin_service import CheckinService

router = APIRouter()


@router.post(
    "",
    response_model=BaseResponse[DailyCheckinResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(create_rate_limit_dependency("create"))],
)
async def create_checkin(
    body: DailyCheckinCreate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Record a daily check-in. A relationship id requires membership."""
    checkin = await CheckinService(db).create_daily(current_user.user_id, body)
    return BaseResponse(
        data=DailyCheckinResponse.model_validate(checkin),
        message="Check-in saved",
    )


@router.get(
    "",
    response_model=BaseResponse[list[DailyCheckinResponse]],
)
async def list_checkins(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    days: int = Query(default=30, ge=1, le=365),
):
    checkins = await CheckinService(db).list_recent(current_user.user_id, days=days)
    return BaseResponse(data=[DailyCheckinResponse.model_validate(c) for c in checkins])


@router.post(
    "/relationship",
    response_model=BaseResponse[RelationshipCheckinResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(create_rate_limit_dependency("create"))],
)
async def create_relationship_checkin(
    body: RelationshipCheckinCreate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Record metric values for one relationship.

    Metric names depend on the relationship type (e.g. ``intimacy_score`` for
    romantic, ``collaboration_effectiveness`` for work); every value must be 1-10.
    """
    checkin = await CheckinService(db).create_relationship_checkin(
        current_user.user_id,
        body.relationshipId,
        body.metricValues,
    )
    return BaseResponse(
        data=RelationshipCheckinResponse.model_validate(checkin),
        message="Relationship check-in saved",
    )
