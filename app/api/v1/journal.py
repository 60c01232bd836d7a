"""
Journal API Endpoints
=====================

Handles journal entry CRUD, listing, and the save-and-analyze flow
(persist now, run AI analysis in a background task).
"""

import logging
from typing import Annotated, Optional
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorCodes, NotFoundError
from app.core.rate_limit import create_rate_limit_dependency
from app.db.session import get_db
from app.dependencies import CurrentUser
from app.models.journal import JournalEntry
from app.schemas.common import BaseResponse
from app.schemas.journal import (
    JournalAnalysisStatus,
    JournalEntryCreate,
    JournalEntryResponse,
    JournalEntryUpdate,
)
from app.services.cache import CacheInvalidator
from app.services.journal_service import JournalService, run_entry_analysis

logger = logging.getLogger(__name__)

router = APIRouter()


def entry_to_dict(entry: JournalEntry) -> dict:
    """Convert journal entry to a JSON-safe dict."""
    return JournalEntryResponse.model_validate(entry).model_dump(mode="json")


async def _get_entry_or_404(
    journal_service: JournalService,
    entry_id: uuid.UUID,
    user_id: uuid.UUID,
) -> JournalEntry:
    entry = await journal_service.get_entry_by_id(entry_id, user_id)
    if entry is None:
        raise NotFoundError(
            code=ErrorCodes.JOURNAL_NOT_FOUND,
            message="Journal entry not found",
        )
    return entry


@router.post(
    "/entries",
    response_model=BaseResponse[dict],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(create_rate_limit_dependency("create"))],
)
async def create_journal_entry(
    entry_data: JournalEntryCreate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a journal entry, optionally tied to one of the caller's relationships."""
    journal_service = JournalService(db)
    entry = await journal_service.create_entry(
        user_id=current_user.user_id,
        entry_data=entry_data,
    )

    await CacheInvalidator.on_journal_create(str(current_user.user_id))

    return BaseResponse(
        data=entry_to_dict(entry),
        message="Journal entry created successfully",
    )


@router.get(
    "/entries",
    response_model=BaseResponse[dict],
)
async def get_journal_entries(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=50),
    relationship_id: Optional[uuid.UUID] = Query(default=None, alias="relationshipId"),
):
    """
    Get paginated list of journal entries, newest first.

    Supports filtering by relationship.
    """
    journal_service = JournalService(db)
    result = await journal_service.get_entries_paginated(
        user_id=current_user.user_id,
        page=page,
        limit=limit,
        relationship_id=relationship_id,
    )

    return BaseResponse(
        data={
            "entries": [entry_to_dict(e) for e in result["entries"]],
            "pagination": result["pagination"],
        }
    )


@router.get(
    "/entries/{entry_id}",
    response_model=BaseResponse[dict],
)
async def get_journal_entry(
    entry_id: uuid.UUID,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    journal_service = JournalService(db)
    entry = await _get_entry_or_404(journal_service, entry_id, current_user.user_id)
    return BaseResponse(data=entry_to_dict(entry))


@router.patch(
    "/entries/{entry_id}",
    response_model=BaseResponse[dict],
)
async def update_journal_entry(
    entry_id: uuid.UUID,
    entry_data: JournalEntryUpdate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    journal_service = JournalService(db)
    entry = await _get_entry_or_404(journal_service, entry_id, current_user.user_id)
    entry = await journal_service.update_entry(entry, entry_data)

    await CacheInvalidator.on_journal_create(str(current_user.user_id))

    return BaseResponse(
        data=entry_to_dict(entry),
        message="Journal entry updated successfully",
    )


@router.delete(
    "/entries/{entry_id}",
    response_model=BaseResponse[dict],
)
async def delete_journal_entry(
    entry_id: uuid.UUID,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    journal_service = JournalService(db)
    entry = await _get_entry_or_404(journal_service, entry_id, current_user.user_id)
    await journal_service.delete_entry(entry)

    await CacheInvalidator.on_journal_create(str(current_user.user_id))

    return BaseResponse(
        data={"entry_id": str(entry_id), "deleted": True},
        message="Journal entry deleted successfully",
    )


# =========================================================================
# Save & Analyze
# =========================================================================


@router.post(
    "/save-and-analyze",
    response_model=BaseResponse[dict],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(create_rate_limit_dependency("ai"))],
)
async def save_and_analyze(
    entry_data: JournalEntryCreate,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Save a journal entry and return immediately.

    Sentiment analysis, personal insights and partner suggestions are
    produced by a background task with its own database session. Poll
    ``GET /journal/entries/{id}/analysis`` for the result.
    """
    journal_service = JournalService(db)
    entry = await journal_service.create_entry(
        user_id=current_user.user_id,
        entry_data=entry_data,
    )
    data = entry_to_dict(entry)

    # The background session must see the row
    await db.commit()

    await CacheInvalidator.on_journal_create(str(current_user.user_id))
    background_tasks.add_task(run_entry_analysis, entry.entry_id, current_user.user_id)

    return BaseResponse(
        data={
            "entry": data,
            "analysisStarted": True,
        },
        message="Journal entry saved. Analysis is running in the background.",
    )


@router.get(
    "/entries/{entry_id}/analysis",
    response_model=BaseResponse[JournalAnalysisStatus],
)
async def get_entry_analysis(
    entry_id: uuid.UUID,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Analysis status for an entry saved through save-and-analyze."""
    journal_service = JournalService(db)
    entry = await _get_entry_or_404(journal_service, entry_id, current_user.user_id)

    return BaseResponse(
        data=JournalAnalysisStatus(
            analysisComplete=entry.analysis_completed_at is not None,
            analysis=entry.ai_analysis,
        )
    )
