"""
Journal Service
===============

Business logic for journal entries and their post-save analysis.
"""

from datetime import datetime, timezone
import logging
from typing import Optional
import uuid

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationError
from app.db.session import session_scope
from app.models.journal import JournalEntry
from app.models.user import User
from app.schemas.journal import JournalEntryCreate, JournalEntryUpdate
from app.services.cache import CacheInvalidator
from app.services.gemini_llm import get_gemini_service
from app.services.relationship_service import RelationshipService
from app.services.suggestion_service import SuggestionService

logger = logging.getLogger(__name__)

ANALYSIS_LOOKBACK_DAYS = 3


def rule_based_sentiment(mood_score: Optional[int]) -> dict:
    """Sentiment derived from the self-reported mood when the LLM is unavailable."""
    if mood_score is None:
        sentiment = "neutral"
    elif mood_score >= 7:
        sentiment = "positive"
    elif mood_score <= 4:
        sentiment = "negative"
    else:
        sentiment = "neutral"

    return {
        "overall_sentiment": sentiment,
        "confidence_score": 0.5,
        "emotional_state": {"primary_emotion": None, "secondary_emotions": []},
        "relationship_needs": [],
        "source": "rules",
    }


class JournalService:
    """Service for journal operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_entry_by_id(
        self,
        entry_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Optional[JournalEntry]:
        """Get journal entry by ID ensuring it belongs to user."""
        stmt = select(JournalEntry).where(
            JournalEntry.entry_id == entry_id,
            JournalEntry.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_entry(
        self,
        user_id: uuid.UUID,
        entry_data: JournalEntryCreate,
    ) -> JournalEntry:
        """
        Create a new journal entry.

        Raises:
            ValidationError: content is blank
            ForbiddenError: caller is not a member of ``relationship_id``
        """
        content = (entry_data.content or "").strip()
        if not content:
            raise ValidationError(message="Journal content is required", field="content")

        if entry_data.relationship_id is not None:
            await RelationshipService(self.db).require_member(entry_data.relationship_id, user_id)

        entry = JournalEntry(
            user_id=user_id,
            relationship_id=entry_data.relationship_id,
            content=content,
            mood_score=entry_data.mood_score,
        )
        self.db.add(entry)
        await self.db.flush()

        await CacheInvalidator.on_journal_create(str(user_id))
        return entry

    async def update_entry(
        self,
        entry: JournalEntry,
        entry_data: JournalEntryUpdate,
    ) -> JournalEntry:
        """Update an existing journal entry."""
        if entry_data.content is not None:
            if not entry_data.content.strip():
                raise ValidationError(message="Journal content cannot be empty", field="content")
            entry.content = entry_data.content.strip()
        if entry_data.mood_score is not None:
            entry.mood_score = entry_data.mood_score

        await self.db.flush()
        return entry

    async def delete_entry(self, entry: JournalEntry) -> None:
        """Delete a journal entry."""
        await self.db.delete(entry)
        await self.db.flush()

    async def get_entries_paginated(
        self,
        user_id: uuid.UUID,
        page: int = 1,
        limit: int = 10,
        relationship_id: Optional[uuid.UUID] = None,
    ) -> dict:
        """
        Get paginated journal entries, newest first.

        Returns entries and pagination metadata.
        """
        conditions = [JournalEntry.user_id == user_id]
        if relationship_id:
            conditions.append(JournalEntry.relationship_id == relationship_id)

        count_stmt = select(func.count()).select_from(JournalEntry).where(
            and_(*conditions)
        )
        count_result = await self.db.execute(count_stmt)
        total = count_result.scalar() or 0

        total_pages = (total + limit - 1) // limit if total > 0 else 1
        offset = (page - 1) * limit

        entries_stmt = (
            select(JournalEntry)
            .where(and_(*conditions))
            .order_by(JournalEntry.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        entries_result = await self.db.execute(entries_stmt)
        entries = entries_result.scalars().all()

        return {
            "entries": entries,
            "pagination": {
                "current_page": page,
                "total_pages": total_pages,
                "total_entries": total,
                "per_page": limit,
                "has_next": page < total_pages,
                "has_previous": page > 1,
            },
        }

    # ── Analysis ──────────────────────────────────────────────────

    async def analyze_entry(self, entry_id: uuid.UUID, user_id: uuid.UUID) -> Optional[dict]:
        """
        Sentiment, personal insights and partner suggestions for a saved entry.

        Writes the combined result to ``ai_analysis``.
        """
        entry = await self.get_entry_by_id(entry_id, user_id)
        user = await self.db.get(User, user_id)
        if entry is None or user is None:
            logger.warning("Skipping analysis for missing entry %s", entry_id)
            return None

        sentiment = (
            await get_gemini_service().analyze_journal_sentiment(entry.content)
            or rule_based_sentiment(entry.mood_score)
        )

        generated = await SuggestionService(self.db).generate_from_activity(
            user,
            lookback_days=ANALYSIS_LOOKBACK_DAYS,
        )
        summary = generated["summary"]

        entry.ai_analysis = {
            **sentiment,
            "need_analysis": sentiment.get("relationship_needs") or [],
            "personal_insights_generated": summary["personalInsightsGenerated"],
            "partner_suggestions_generated": summary["partnerSuggestionsGenerated"],
            "relationships_analyzed": summary["relationshipsAnalyzed"],
        }
        entry.analysis_completed_at = datetime.now(timezone.utc)
        await self.db.flush()

        logger.info(
            "Journal %s analyzed: %s, %d insights, %d suggestions",
            entry_id,
            sentiment["overall_sentiment"],
            summary["personalInsightsGenerated"],
            summary["partnerSuggestionsGenerated"],
        )
        return entry.ai_analysis


async def run_entry_analysis(entry_id: uuid.UUID, user_id: uuid.UUID) -> None:
    """Background task: analyze ``entry_id`` in its own session."""
    try:
        async with session_scope() as db:
            await JournalService(db).analyze_entry(entry_id, user_id)
    except Exception:
        logger.exception("Background analysis failed for journal %s", entry_id)
