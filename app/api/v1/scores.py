"""
Scores API Endpoints
====================

Connection score (daily check-ins) and per-relationship health score
(relationship metric check-ins).
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.dependencies import CurrentUser
from app.schemas.common import BaseResponse
from app.schemas.score import ConnectionScoreRequest, RelationshipHealthRequest
from app.services.score_service import ScoreService

router = APIRouter()


@router.post(
    "/calculate",
    response_model=BaseResponse[dict],
)
async def calculate_connection_score(
    body: ConnectionScoreRequest,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Connection score over the caller's last 90 days of check-ins."""
    result = await ScoreService(db).calculate_connection(
        current_user.user_id,
        relationship_id=body.relationshipId,
    )
    return BaseResponse(data=result)


@router.post(
    "/calculate-relationship",
    response_model=BaseResponse[dict],
)
async def calculate_relationship_health(
    body: RelationshipHealthRequest,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Weighted health score from the latest relationship check-ins."""
    result = await ScoreService(db).calculate_relationship_health(
        current_user.user_id,
        body.relationshipId,
        body.relationshipType,
    )
    return BaseResponse(data=result)
