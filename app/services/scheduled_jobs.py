"""
Scheduled Jobs
==============

Cron-triggered jobs:
- Daily relationship suggestions for recently active relationships
- Nightly partner-suggestion batch over the previous day's journals
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.batch import BatchProcessingLog, BatchStatus
from app.models.insight import PartnerSuggestion
from app.models.journal import JournalEntry
from app.models.relationship import Relationship
from app.services.premium_service import PremiumService
from app.services.scoring import DASHBOARD_INSIGHT_HOURS, SUGGESTION_LOOKBACK_HOURS
from app.services.suggestion_service import SuggestionService

logger = logging.getLogger(__name__)

RECENT_SUGGESTION_HOURS = 12
SUGGESTION_RETENTION_DAYS = 14
BATCH_WINDOW_HOURS = 24
# Spacing between relationships to stay under LLM rate limits
GENERATION_SPACING_SECONDS = 1


class ScheduledJobService:
    """Service for scheduled background jobs."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.suggestions = SuggestionService(db)

    async def _daily_candidates(self, now: datetime) -> tuple[list[Relationship], int]:
        """
        Relationships with two or more members, a member journal in the last
        48 hours and no suggestions in the last 12 hours.
        """
        result = await self.db.execute(select(Relationship).order_by(Relationship.created_at.asc()))
        relationships = list(result.scalars().all())

        active_authors = set((await self.db.execute(
            select(JournalEntry.user_id)
            .where(JournalEntry.created_at >= now - timedelta(hours=DASHBOARD_INSIGHT_HOURS))
            .distinct()
        )).scalars().all())
        recently_served = set((await self.db.execute(
            select(PartnerSuggestion.relationship_id)
            .where(PartnerSuggestion.created_at >= now - timedelta(hours=RECENT_SUGGESTION_HOURS))
            .distinct()
        )).scalars().all())

        candidates = [
            r for r in relationships
            if len(r.members) >= 2
            and active_authors.intersection(r.member_ids)
            and r.relationship_id not in recently_served
        ]
        return candidates, len(relationships)

    async def generate_daily_suggestions(self, now: Optional[datetime] = None) -> dict:
        """
        Generate relationship suggestions for every candidate, then delete
        suggestions older than 14 days.

        Run daily.

        Returns:
            Summary of processed relationships
        """
        now = now or datetime.now(timezone.utc)
        candidates, total_relationships = await self._daily_candidates(now)

        results = []
        errors = []
        total_generated = 0
        processed = 0

        for relationship in candidates:
            try:
                async with self.db.begin_nested():
                    generated = await self.suggestions.generate_for_relationship(
                        relationship,
                        timeframe_hours=SUGGESTION_LOOKBACK_HOURS,
                        max_suggestions=3,
                    )
                count = len(generated["suggestions"])
                total_generated += count
                processed += 1
                results.append({
                    "relationshipId": str(relationship.relationship_id),
                    "relationshipName": relationship.name,
                    "suggestionsGenerated": count,
                    "status": "success",
                })
            except Exception as e:
                logger.exception("Daily suggestions failed for relationship %s", relationship.relationship_id)
                results.append({
                    "relationshipId": str(relationship.relationship_id),
                    "relationshipName": relationship.name,
                    "suggestionsGenerated": 0,
                    "status": "error",
                    "error": str(e),
                })
                errors.append({"id": str(relationship.relationship_id), "error": str(e)})

            await asyncio.sleep(GENERATION_SPACING_SECONDS)

        cleanup = await self.db.execute(
            delete(PartnerSuggestion).where(
                PartnerSuggestion.created_at < now - timedelta(days=SUGGESTION_RETENTION_DAYS)
            )
        )
        await self.db.flush()

        logger.info(
            "Daily suggestions: %d generated for %d/%d candidate relationships",
            total_generated, processed, len(candidates),
        )

        return {
            "job": "daily_suggestions",
            "success": True,
            "totalSuggestionsGenerated": total_generated,
            "relationshipsProcessed": processed,
            "totalRelationships": total_relationships,
            "oldSuggestionsDeleted": cleanup.rowcount or 0,
            "results": results,
            "errors": errors,
            "timestamp": now.isoformat(),
        }

    async def process_partner_suggestion_batch(self, batch_date: Optional[date] = None) -> dict:
        """
        Nightly batch over journals written on ``batch_date`` (default: yesterday).

        Only premium users' relationship journals are used. Each relationship
        gets a ``batch_processing_log`` row that ends ``completed`` or ``failed``.
        """
        now = datetime.now(timezone.utc)
        batch_date = batch_date or (now.date() - timedelta(days=1))

        already = await self.db.execute(
            select(BatchProcessingLog.log_id)
            .where(
                BatchProcessingLog.batch_date == batch_date,
                BatchProcessingLog.status == BatchStatus.COMPLETED.value,
            )
            .limit(1)
        )
        if already.scalar_one_or_none() is not None:
            logger.info("Partner suggestion batch for %s already processed", batch_date)
            return {
                "job": "daily_partner_suggestions",
                "success": True,
                "alreadyProcessed": True,
                "message": f"Batch already processed for {batch_date.isoformat()}",
                "run_at": now.isoformat(),
            }

        day_start = datetime.combine(batch_date, time.min, tzinfo=timezone.utc)
        day_end = day_start + timedelta(days=1)

        journals = list((await self.db.execute(
            select(JournalEntry).where(
                JournalEntry.ready_for_batch_processing.is_(True),
                JournalEntry.batch_processed_at.is_(None),
                JournalEntry.created_at >= day_start,
                JournalEntry.created_at < day_end,
            ).order_by(JournalEntry.created_at.desc())
        )).scalars().all())

        if not journals:
            return {
                "job": "daily_partner_suggestions",
                "success": True,
                "message": f"No journals to process for {batch_date.isoformat()}",
                "journalsProcessed": 0,
                "run_at": now.isoformat(),
            }

        premium = await PremiumService(self.db).premium_user_ids(list({j.user_id for j in journals}))
        by_relationship: dict[uuid.UUID, list[JournalEntry]] = {}
        for journal in journals:
            if journal.user_id in premium and journal.relationship_id is not None:
                by_relationship.setdefault(journal.relationship_id, []).append(journal)

        relationships = []
        if by_relationship:
            relationships = list((await self.db.execute(
                select(Relationship).where(Relationship.relationship_id.in_(list(by_relationship)))
            )).scalars().all())

        batch_results = []
        errors = []
        for relationship in relationships:
            log = BatchProcessingLog(
                batch_date=batch_date,
                relationship_id=relationship.relationship_id,
                status=BatchStatus.RUNNING.value,
                journals_processed=len(by_relationship[relationship.relationship_id]),
                suggestions_generated=0,
            )
            self.db.add(log)
            await self.db.flush()

            try:
                async with self.db.begin_nested():
                    generated = await self.suggestions.generate_for_relationship(
                        relationship,
                        timeframe_hours=BATCH_WINDOW_HOURS,
                        max_suggestions=3,
                        batch_date=batch_date,
                        batch_id=str(log.log_id),
                        now=day_end,
                        entries=by_relationship[relationship.relationship_id],
                    )
                log.status = BatchStatus.COMPLETED.value
                log.suggestions_generated = len(generated["suggestions"])
            except Exception as e:
                logger.exception("Batch failed for relationship %s", relationship.relationship_id)
                log.status = BatchStatus.FAILED.value
                log.error_message = str(e)
                errors.append({"id": str(relationship.relationship_id), "error": str(e)})

            log.completed_at = datetime.now(timezone.utc)
            batch_results.append(log)

        for journal in journals:
            journal.batch_processed_at = now
        await self.db.flush()

        summary = {
            "journalsProcessed": len(journals),
            "relationshipsAnalyzed": len(relationships),
            "suggestionsGenerated": sum(log.suggestions_generated for log in batch_results),
            "successfulBatches": sum(1 for log in batch_results if log.status == BatchStatus.COMPLETED.value),
            "failedBatches": sum(1 for log in batch_results if log.status == BatchStatus.FAILED.value),
        }
        logger.info("Partner suggestion batch for %s: %s", batch_date, summary)

        return {
            "job": "daily_partner_suggestions",
            "success": True,
            "batchDate": batch_date.isoformat(),
            "summary": summary,
            "errors": errors,
            "run_at": now.isoformat(),
        }


# =============================================================================
# Job Runner Functions
# =============================================================================

async def run_daily_suggestions(db: AsyncSession) -> dict:
    """Run daily relationship suggestion generation."""
    service = ScheduledJobService(db)
    return await service.generate_daily_suggestions()


async def run_partner_suggestion_batch(db: AsyncSession, batch_date: Optional[date] = None) -> dict:
    """Run the nightly partner-suggestion batch."""
    service = ScheduledJobService(db)
    return await service.process_partner_suggestion_batch(batch_date)
