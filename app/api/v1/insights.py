"""
Insights API Endpoints
======================

Personal relationship insights: generation, listing, read state,
dashboard dismissal and feedback.
"""

from typing import Annotated
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.rate_limit import create_rate_limit_dependency
from app.db.session import get_db
from app.dependencies import CurrentUser
from app.schemas.common import BaseResponse
from app.schemas.insight import InsightFeedbackRequest, InsightResponse
from app.services.insight_service import InsightService

router = APIRouter()


def insight_to_dict(insight) -> dict:
    return InsightResponse.model_validate(insight).model_dump(mode="json")


@router.get(
    "",
    response_model=BaseResponse[list[InsightResponse]],
)
async def list_insights(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    limit: int = Query(default=20, ge=1, le=100),
):
    insights = await InsightService(db).list_for_user(
        current_user.user_id,
        unread_only=unread_only,
        limit=limit,
    )
    return BaseResponse(data=[InsightResponse.model_validate(i) for i in insights])


@router.post(
    "/generate",
    response_model=BaseResponse[dict],
    dependencies=[Depends(create_rate_limit_dependency("ai"))],
)
async def generate_insights(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Generate up to four personal insights from recent journals,
    check-ins and relationship stage.
    """
    result = await InsightService(db).generate(current_user)
    return BaseResponse(
        data={
            "insights": [insight_to_dict(i) for i in result["insights"]],
            "patterns": result["patterns"],
            "source": result["source"],
        },
        message=f"Generated {len(result['insights'])} insights",
    )


@router.post(
    "/read-all",
    response_model=BaseResponse[dict],
)
async def mark_all_insights_read(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    count = await InsightService(db).mark_all_read(current_user.user_id)
    return BaseResponse(data={"updated": count})


@router.post(
    "/feedback",
    response_model=BaseResponse[dict],
)
async def submit_insight_feedback(
    body: InsightFeedbackRequest,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    feedback = await InsightService(db).submit_feedback(
        body.insightId,
        current_user.user_id,
        rating=body.rating,
        helpful=body.helpful,
        comment=body.comment,
    )
    return BaseResponse(
        data={"feedback_id": str(feedback.feedback_id)},
        message="Thanks for your feedback",
    )


@router.post(
    "/{insight_id}/read",
    response_model=BaseResponse[InsightResponse],
)
async def mark_insight_read(
    insight_id: uuid.UUID,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    insight = await InsightService(db).mark_read(insight_id, current_user.user_id)
    return BaseResponse(data=InsightResponse.model_validate(insight))


@router.delete(
    "/{insight_id}",
    response_model=BaseResponse[dict],
)
async def dismiss_insight(
    insight_id: uuid.UUID,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Hide an insight from the dashboard feed."""
    await InsightService(db).dismiss(insight_id, current_user.user_id)
    return BaseResponse(data={"insight_id": str(insight_id), "dismissed": True})
