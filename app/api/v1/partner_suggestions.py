"""
Partner Suggestions API Endpoints
=================================

Suggestions routed to the caller from their partners' journals and
check-ins, plus generation from the caller's own recent activity.
"""

from typing import Annotated
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.rate_limit import create_rate_limit_dependency
from app.db.session import get_db
from app.dependencies import CurrentUser
from app.schemas.common import BaseResponse
from app.schemas.insight import (
    InsightResponse,
    PartnerSuggestionResponse,
    SuggestionCleanupRequest,
    SuggestionFeedbackRequest,
)
from app.services.suggestion_service import SuggestionService

router = APIRouter()


@router.get(
    "",
    response_model=BaseResponse[list[PartnerSuggestionResponse]],
)
async def list_partner_suggestions(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    limit: int = Query(default=20, ge=1, le=100),
):
    """Unexpired suggestions addressed to the caller, newest first."""
    suggestions = await SuggestionService(db).list_for_recipient(
        current_user.user_id,
        unread_only=unread_only,
        limit=limit,
    )
    return BaseResponse(data=[PartnerSuggestionResponse.model_validate(s) for s in suggestions])


@router.post(
    "/generate",
    response_model=BaseResponse[dict],
    dependencies=[Depends(create_rate_limit_dependency("ai"))],
)
async def generate_partner_suggestions(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Analyze the caller's last three days of journals and check-ins.

    Produces personal insights for the caller and quality-checked
    suggestions for each of their partners.
    """
    result = await SuggestionService(db).generate_from_activity(current_user)
    return BaseResponse(
        data={
            "personalInsights": [
                InsightResponse.model_validate(i).model_dump(mode="json")
                for i in result["personal_insights"]
            ],
            "partnerSuggestions": [
                PartnerSuggestionResponse.model_validate(s).model_dump(mode="json")
                for s in result["partner_suggestions"]
            ],
            "summary": result["summary"],
        }
    )


@router.post(
    "/read-all",
    response_model=BaseResponse[dict],
)
async def mark_all_suggestions_read(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    count = await SuggestionService(db).mark_all_read(current_user.user_id)
    return BaseResponse(data={"updated": count})


@router.post(
    "/feedback",
    response_model=BaseResponse[dict],
)
async def submit_suggestion_feedback(
    body: SuggestionFeedbackRequest,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    feedback = await SuggestionService(db).submit_feedback(
        body.suggestionId,
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
    "/cleanup",
    response_model=BaseResponse[dict],
)
async def cleanup_suggestions(
    body: SuggestionCleanupRequest,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Mark the caller's old unread suggestions as read, or preview with ``dryRun``."""
    result = await SuggestionService(db).cleanup(
        current_user.user_id,
        days_old=body.daysOld,
        dry_run=body.dryRun,
    )
    return BaseResponse(data=result)


@router.post(
    "/{suggestion_id}/read",
    response_model=BaseResponse[PartnerSuggestionResponse],
)
async def mark_suggestion_read(
    suggestion_id: uuid.UUID,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    suggestion = await SuggestionService(db).mark_read(suggestion_id, current_user.user_id)
    return BaseResponse(data=PartnerSuggestionResponse.model_validate(suggestion))
