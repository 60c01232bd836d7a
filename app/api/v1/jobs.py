"""
Scheduled Job Endpoints
=======================

Called by the external scheduler with ``Authorization: Bearer <CRON_SECRET>``.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.dependencies import CronAuthorized
from app.schemas.billing import PartnerBatchRequest
from app.services.scheduled_jobs import run_daily_suggestions, run_partner_suggestion_batch

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/daily-suggestions")
async def daily_suggestions(
    _: CronAuthorized,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Generate suggestions for relationships active in the last 48 hours."""
    result = await run_daily_suggestions(db)
    logger.info(
        "daily-suggestions finished: %d suggestions, %d relationships",
        result["totalSuggestionsGenerated"],
        result["relationshipsProcessed"],
    )
    return result


@router.post("/daily-partner-suggestions")
async def daily_partner_suggestions(
    _: CronAuthorized,
    db: Annotated[AsyncSession, Depends(get_db)],
    body: Annotated[Optional[PartnerBatchRequest], Body()] = None,
):
    """Nightly partner-suggestion batch; ``date`` defaults to yesterday."""
    batch_date = body.batch_date if body else None
    return await run_partner_suggestion_batch(db, batch_date)
