"""
Suggestion Service
==================

Generation of partner suggestions and personal insights.

Two entry points:

- ``generate_for_relationship``: every member receives suggestions built
  from the OTHER members' recent journals (dashboard trigger, daily cron,
  nightly batch).
- ``generate_from_activity``: one user's recent journals and check-ins
  produce personal insights for them and suggestions for their partners
  (post-save analysis, manual trigger).

Gemini is tried first everywhere; rule-based output is used when it is
unavailable or returns nothing usable.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Sequence
import uuid

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorCodes, NotFoundError, ValidationError
from app.models.insight import (
    InsightPriority,
    PartnerSuggestion,
    RelationshipInsight,
    SuggestionFeedback,
)
from app.models.journal import DailyCheckin, JournalEntry
from app.models.relationship import Relationship, RelationshipType
from app.models.user import User
from app.services.cache import CacheInvalidator
from app.services.content_filter import filter_content
from app.services.gemini_llm import get_gemini_service
from app.services.onboarding_service import OnboardingService, preference_context
from app.services.relationship_service import RelationshipService
from app.services.suggestion_quality import adjusted_confidence, validate_suggestion

logger = logging.getLogger(__name__)

RELATIONSHIP_JOURNAL_LIMIT = 20
PERSONAL_INSIGHT_JOURNALS = 5
PARTNER_SUGGESTION_JOURNALS = 3
PARTNER_SUGGESTION_CHECKINS = 3

JOURNAL_SUGGESTION_TTL = timedelta(days=7)
CHECKIN_SUGGESTION_TTL = timedelta(days=5)


# =============================================================================
# Rule-based fallbacks
# =============================================================================

def _mentions(text: str, *words: str) -> bool:
    return any(word in text for word in words)


def rule_based_relationship_suggestions(
    journal_contents: Sequence[str],
    max_suggestions: int,
) -> list[dict]:
    """Keyword rules over the combined journal text; always yields at least one."""
    text = " ".join(journal_contents).lower()
    suggestions: list[dict] = []

    if _mentions(text, "tired", "stressed", "overwhelmed"):
        suggestions.append({
            "suggestion_type": "acts_of_service",
            "suggestion_text": "Consider offering to help with daily tasks or household responsibilities to give your partner some breathing room.",
            "anonymized_context": "Your partner might benefit from some practical support right now",
            "priority_score": 8,
            "confidence_score": 0.8,
            "source_need_intensity": 7,
        })

    if _mentions(text, "miss", "time together", "connect"):
        suggestions.append({
            "suggestion_type": "quality_time",
            "suggestion_text": "Plan some dedicated one-on-one time together without distractions - perhaps a walk, shared meal, or activity you both enjoy.",
            "anonymized_context": "Quality time and connection would strengthen your bond right now",
            "priority_score": 9,
            "confidence_score": 0.9,
            "source_need_intensity": 8,
        })

    if _mentions(text, "appreciate", "grateful", "thank"):
        suggestions.append({
            "suggestion_type": "words_of_affirmation",
            "suggestion_text": "Express specific appreciation for something your partner has done recently that made a difference in your life.",
            "anonymized_context": "Your partner values recognition and verbal appreciation",
            "priority_score": 7,
            "confidence_score": 0.7,
            "source_need_intensity": 6,
        })

    if _mentions(text, "physical", "hug", "touch"):
        suggestions.append({
            "suggestion_type": "physical_touch",
            "suggestion_text": "Offer more physical affection through hugs, gentle touches, or cuddling during relaxing moments together.",
            "anonymized_context": "Physical connection and affection would be meaningful to your partner",
            "priority_score": 8,
            "confidence_score": 0.8,
            "source_need_intensity": 7,
        })

    if not suggestions:
        suggestions.append({
            "suggestion_type": "communication",
            "suggestion_text": "Check in with your partner about how they're feeling and ask if there's any way you can support them today.",
            "anonymized_context": "Open communication strengthens your relationship foundation",
            "priority_score": 6,
            "confidence_score": 0.6,
            "source_need_intensity": 5,
        })

    return suggestions[:max_suggestions]


def rule_based_partner_suggestion(content: str) -> Optional[dict]:
    text = content.lower()

    if _mentions(text, "tired", "exhausted", "overwhelmed"):
        return {
            "type": "support",
            "text": "Consider offering to help with household tasks or suggesting they take some time to relax",
            "context": "Your partner might benefit from some extra support right now",
            "priority": 8,
            "confidence": 7,
        }

    if _mentions(text, "miss", "time together", "date"):
        return {
            "type": "quality_time",
            "text": "Plan a special date night or quality time activity together",
            "context": "Connection and quality time would strengthen your relationship right now",
            "priority": 9,
            "confidence": 8,
        }

    return None


def rule_based_checkin_suggestion(checkin: DailyCheckin) -> Optional[dict]:
    """Low connection or a noted challenge on a check-in."""
    if checkin.connection_score is not None and checkin.connection_score <= 4:
        return {
            "type": "quality_time",
            "text": "How about planning an unhurried evening together this weekend, just the two of you?",
            "context": "A little dedicated time together could help you both feel closer",
            "priority": 7,
            "confidence": 6,
        }
    if checkin.challenge_note and checkin.challenge_note.strip():
        return {
            "type": "communication",
            "text": "You could ask your partner tonight how their week is going and simply listen",
            "context": "Your partner might appreciate some space to talk things through",
            "priority": 6,
            "confidence": 6,
        }
    return None


def rule_based_personal_insight(content: str) -> Optional[dict]:
    text = content.lower()
    if _mentions(text, "frustrated", "annoyed"):
        return {
            "priority": "medium",
            "title": "Processing Frustration Constructively",
            "insight": "It's natural to feel frustrated sometimes. Consider what specific need isn't being met and how you might communicate it positively.",
            "category": "emotional_processing",
            "actionableSteps": [
                "Take some time to identify the specific need behind the frustration",
                'Practice expressing this need using "I" statements',
                "Focus on solutions rather than problems",
            ],
        }
    return None


def _insight_priority(value: Optional[str]) -> InsightPriority:
    try:
        return InsightPriority(value)
    except ValueError:
        return InsightPriority.MEDIUM


def _journal_digest(entries: Sequence[JournalEntry]) -> list[str]:
    return [f"Entry from {e.created_at.date().isoformat()}: {e.content}" for e in entries]


# =============================================================================
# Service
# =============================================================================

class SuggestionService:
    """Service for partner suggestions and personal insights."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.relationships = RelationshipService(db)
        self.onboarding = OnboardingService(db)

    # ── Relationship-wide generation ──────────────────────────────

    async def _recent_member_journals(
        self,
        member_ids: list[uuid.UUID],
        since: datetime,
    ) -> list[JournalEntry]:
        stmt = (
            select(JournalEntry)
            .where(
                JournalEntry.user_id.in_(member_ids),
                JournalEntry.created_at >= since,
            )
            .order_by(JournalEntry.created_at.desc())
            .limit(RELATIONSHIP_JOURNAL_LIMIT)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _suggestions_for_recipient(
        self,
        relationship: Relationship,
        recipient_name: str,
        recipient_profile: dict,
        entries: list[JournalEntry],
        max_suggestions: int,
    ) -> list[dict]:
        relationship_type = RelationshipType(relationship.relationship_type).value
        contents = [e.content for e in entries]

        generated = await get_gemini_service().generate_relationship_suggestions(
            journal_entries=_journal_digest(entries),
            recipient_name=recipient_name,
            recipient_profile=recipient_profile,
            relationship_type=relationship_type,
            max_suggestions=max_suggestions,
        )
        if not generated:
            generated = rule_based_relationship_suggestions(contents, max_suggestions)

        accepted = []
        for suggestion in generated:
            verdict = filter_content(suggestion["suggestion_text"], relationship_type)
            if not verdict.is_valid:
                continue
            accepted.append({**suggestion, "suggestion_text": verdict.filtered_content})

        return accepted[:max_suggestions]

    async def generate_for_relationship(
        self,
        relationship: Relationship,
        timeframe_hours: int = 72,
        max_suggestions: int = 3,
        batch_date: Optional[date] = None,
        batch_id: Optional[str] = None,
        now: Optional[datetime] = None,
        entries: Optional[list[JournalEntry]] = None,
    ) -> dict:
        """
        Generate and save suggestions for every member of ``relationship``.

        ``entries`` restricts the source journals; by default the members'
        journals inside ``timeframe_hours`` are used.

        Raises:
            ValidationError: fewer than two members
        """
        now = now or datetime.now(timezone.utc)
        member_ids = relationship.member_ids
        if len(member_ids) < 2:
            raise ValidationError(
                message="Relationship needs at least two members to generate suggestions",
                reason=ErrorCodes.REL_TOO_FEW_MEMBERS,
            )

        if entries is None:
            entries = await self._recent_member_journals(
                member_ids, now - timedelta(hours=timeframe_hours)
            )
        names = await self.relationships.member_names(member_ids)
        profiles = await self.onboarding.get_universal_many(member_ids)

        rows: list[PartnerSuggestion] = []
        for recipient_id in member_ids:
            from_others = [e for e in entries if e.user_id != recipient_id]
            if not from_others:
                continue

            suggestions = await self._suggestions_for_recipient(
                relationship,
                names[recipient_id],
                preference_context(profiles.get(recipient_id)),
                from_others,
                max_suggestions,
            )
            for s in suggestions:
                rows.append(PartnerSuggestion(
                    recipient_user_id=recipient_id,
                    source_user_id=from_others[0].user_id,
                    relationship_id=relationship.relationship_id,
                    suggestion_type=s["suggestion_type"],
                    suggestion_text=s["suggestion_text"],
                    anonymized_context=s["anonymized_context"],
                    priority_score=int(s["priority_score"]),
                    confidence_score=round(float(s["confidence_score"]) * 10),
                    source_need_intensity=int(s["source_need_intensity"]),
                    expires_at=now + JOURNAL_SUGGESTION_TTL,
                    batch_date=batch_date,
                    batch_id=batch_id,
                ))

        if rows:
            self.db.add_all(rows)
            await self.db.flush()
            for recipient_id in {r.recipient_user_id for r in rows}:
                await CacheInvalidator.on_suggestions_change(str(recipient_id))

        logger.info(
            "Generated %d suggestions for relationship %s from %d journals",
            len(rows), relationship.relationship_id, len(entries),
        )

        return {
            "suggestions": rows,
            "processing_stats": {
                "entries_analyzed": len(entries),
                "active_members": len(member_ids),
                "suggestions_generated": len(rows),
                "confidence_threshold_met": sum(1 for r in rows if r.confidence_score >= 7),
            },
        }

    # ── Single-user activity ──────────────────────────────────────

    async def _past_feedback(
        self,
        recipient_id: uuid.UUID,
        source_id: uuid.UUID,
    ) -> list[SuggestionFeedback]:
        stmt = (
            select(SuggestionFeedback)
            .join(PartnerSuggestion, PartnerSuggestion.suggestion_id == SuggestionFeedback.suggestion_id)
            .where(
                PartnerSuggestion.recipient_user_id == recipient_id,
                PartnerSuggestion.source_user_id == source_id,
            )
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _personal_insights(
        self,
        user: User,
        journals: list[JournalEntry],
        preferences: dict,
    ) -> list[RelationshipInsight]:
        llm = get_gemini_service()
        insights = []
        for entry in journals[:PERSONAL_INSIGHT_JOURNALS]:
            insight = (
                await llm.generate_personal_insight(entry.content, preferences)
                or rule_based_personal_insight(entry.content)
            )
            if insight is None:
                continue
            insights.append(RelationshipInsight(
                user_id=user.user_id,
                relationship_id=entry.relationship_id,
                insight_type="personal_growth",
                title=insight["title"][:200],
                description=insight["insight"],
                priority=_insight_priority(insight.get("priority")),
                category=insight.get("category"),
                action_steps=insight.get("actionableSteps") or [],
            ))
        return insights

    async def _journal_suggestion(
        self,
        entry: JournalEntry,
        preferences: dict,
        relationship_type: str,
        feedback: list[SuggestionFeedback],
    ) -> Optional[dict]:
        """LLM or rule suggestion for one journal, dropped when it fails quality checks."""
        suggestion = (
            await get_gemini_service().generate_partner_suggestion(
                entry.content, preferences, relationship_type
            )
            or rule_based_partner_suggestion(entry.content)
        )
        if suggestion is None:
            return None

        primary = preferences["love_languages"][0] if preferences["love_languages"] else None
        report = validate_suggestion(
            suggestion_type=suggestion["type"],
            text=suggestion["text"],
            context=suggestion["context"],
            journal=entry.content,
            primary_love_language=primary,
            past_feedback=feedback,
        )
        if not report.is_valid:
            logger.info(
                "Dropped %s suggestion with quality %.1f: %s",
                suggestion["type"], report.overall, "; ".join(report.improvements),
            )
            return None

        return {**suggestion, "confidence": adjusted_confidence(suggestion["confidence"], report)}

    async def generate_from_activity(
        self,
        user: User,
        lookback_days: int = 3,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Personal insights for ``user`` and suggestions for their partners.

        Journal-derived suggestions expire after 7 days, check-in-derived
        ones after 5.
        """
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(days=lookback_days)

        journals = list((await self.db.execute(
            select(JournalEntry)
            .where(JournalEntry.user_id == user.user_id, JournalEntry.created_at >= since)
            .order_by(JournalEntry.created_at.desc())
        )).scalars().all())
        checkins = list((await self.db.execute(
            select(DailyCheckin)
            .where(DailyCheckin.user_id == user.user_id, DailyCheckin.created_at >= since)
            .order_by(DailyCheckin.created_at.desc())
        )).scalars().all())

        preferences = preference_context(await self.onboarding.get_universal(user.user_id), user)
        insights = await self._personal_insights(user, journals, preferences)

        suggestions: list[PartnerSuggestion] = []
        relationships = await self.relationships.list_for_user(user.user_id)
        for relationship in relationships:
            relationship_type = RelationshipType(relationship.relationship_type).value
            for partner_id in relationship.member_ids:
                if partner_id == user.user_id:
                    continue
                feedback = await self._past_feedback(partner_id, user.user_id)

                for entry in journals[:PARTNER_SUGGESTION_JOURNALS]:
                    s = await self._journal_suggestion(entry, preferences, relationship_type, feedback)
                    if s is None:
                        continue
                    suggestions.append(self._suggestion_row(
                        s, relationship, partner_id, user.user_id,
                        expires_at=now + JOURNAL_SUGGESTION_TTL,
                        source_entry_id=entry.entry_id,
                    ))

                for checkin in checkins[:PARTNER_SUGGESTION_CHECKINS]:
                    if checkin.relationship_id not in (None, relationship.relationship_id):
                        continue
                    s = rule_based_checkin_suggestion(checkin)
                    if s is None:
                        continue
                    suggestions.append(self._suggestion_row(
                        s, relationship, partner_id, user.user_id,
                        expires_at=now + CHECKIN_SUGGESTION_TTL,
                    ))

        self.db.add_all(insights)
        self.db.add_all(suggestions)
        await self.db.flush()

        for recipient_id in {s.recipient_user_id for s in suggestions}:
            await CacheInvalidator.on_suggestions_change(str(recipient_id))

        logger.info(
            "Activity analysis for %s: %d insights, %d partner suggestions",
            user.user_id, len(insights), len(suggestions),
        )

        return {
            "personal_insights": insights,
            "partner_suggestions": suggestions,
            "summary": {
                "personalInsightsGenerated": len(insights),
                "partnerSuggestionsGenerated": len(suggestions),
                "relationshipsAnalyzed": len(relationships),
                "dataPointsProcessed": len(journals) + len(checkins),
            },
        }

    @staticmethod
    def _suggestion_row(
        suggestion: dict,
        relationship: Relationship,
        recipient_id: uuid.UUID,
        source_id: uuid.UUID,
        expires_at: datetime,
        source_entry_id: Optional[uuid.UUID] = None,
    ) -> PartnerSuggestion:
        return PartnerSuggestion(
            recipient_user_id=recipient_id,
            source_user_id=source_id,
            relationship_id=relationship.relationship_id,
            source_entry_id=source_entry_id,
            suggestion_type=suggestion["type"],
            suggestion_text=suggestion["text"],
            anonymized_context=suggestion["context"],
            priority_score=int(suggestion["priority"]),
            confidence_score=int(suggestion["confidence"]),
            expires_at=expires_at,
        )

    # ── Recipient operations ──────────────────────────────────────

    async def list_for_recipient(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 20,
        now: Optional[datetime] = None,
    ) -> list[PartnerSuggestion]:
        """Unexpired suggestions addressed to ``user_id``, newest first."""
        now = now or datetime.now(timezone.utc)
        stmt = select(PartnerSuggestion).where(
            PartnerSuggestion.recipient_user_id == user_id,
            or_(PartnerSuggestion.expires_at.is_(None), PartnerSuggestion.expires_at > now),
        )
        if unread_only:
            stmt = stmt.where(PartnerSuggestion.is_read.is_(False))
        stmt = stmt.order_by(PartnerSuggestion.created_at.desc()).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def mark_read(self, suggestion_id: uuid.UUID, user_id: uuid.UUID) -> PartnerSuggestion:
        """
        Raises:
            NotFoundError: no unread suggestion with that id for the user
        """
        result = await self.db.execute(
            select(PartnerSuggestion).where(
                PartnerSuggestion.suggestion_id == suggestion_id,
                PartnerSuggestion.recipient_user_id == user_id,
                PartnerSuggestion.is_read.is_(False),
            )
        )
        suggestion = result.scalar_one_or_none()
        if suggestion is None:
            raise NotFoundError(
                code=ErrorCodes.SUGGESTION_NOT_FOUND,
                message="Suggestion not found or already read",
            )

        suggestion.is_read = True
        suggestion.read_at = datetime.now(timezone.utc)
        await self.db.flush()
        await CacheInvalidator.on_suggestions_change(str(user_id))
        return suggestion

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            update(PartnerSuggestion)
            .where(
                PartnerSuggestion.recipient_user_id == user_id,
                PartnerSuggestion.is_read.is_(False),
            )
            .values(is_read=True, read_at=datetime.now(timezone.utc))
        )
        await CacheInvalidator.on_suggestions_change(str(user_id))
        return result.rowcount or 0

    async def submit_feedback(
        self,
        suggestion_id: uuid.UUID,
        user_id: uuid.UUID,
        rating: int,
        helpful: Optional[bool] = None,
        comment: Optional[str] = None,
    ) -> SuggestionFeedback:
        result = await self.db.execute(
            select(PartnerSuggestion).where(
                PartnerSuggestion.suggestion_id == suggestion_id,
                PartnerSuggestion.recipient_user_id == user_id,
            )
        )
        suggestion = result.scalar_one_or_none()
        if suggestion is None:
            raise NotFoundError(
                code=ErrorCodes.SUGGESTION_NOT_FOUND,
                message="Suggestion not found",
            )

        feedback = SuggestionFeedback(
            suggestion_id=suggestion_id,
            user_id=user_id,
            suggestion_type=suggestion.suggestion_type,
            rating=rating,
            helpful=helpful,
            comment=comment,
        )
        self.db.add(feedback)
        await self.db.flush()
        return feedback

    async def cleanup(
        self,
        user_id: uuid.UUID,
        days_old: int = 30,
        dry_run: bool = False,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Mark the user's old unread suggestions as read.

        With ``dry_run`` only the counts and a recommendation are returned.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=days_old)

        result = await self.db.execute(
            select(PartnerSuggestion)
            .where(PartnerSuggestion.recipient_user_id == user_id)
            .order_by(PartnerSuggestion.created_at.asc())
        )
        suggestions = list(result.scalars().all())
        old = [s for s in suggestions if s.created_at < cutoff]
        old_unread = [s for s in old if not s.is_read]

        analysis = {
            "total_suggestions": len(suggestions),
            "old_suggestions": len(old),
            "old_unread_suggestions": len(old_unread),
            "cutoff_date": cutoff.isoformat(),
        }

        if dry_run:
            recommendation = (
                f"Would mark {len(old_unread)} old unread suggestions as read"
                if old_unread
                else "No cleanup needed"
            )
            return {"dry_run": True, "analysis": analysis, "recommendation": recommendation}

        for suggestion in old_unread:
            suggestion.is_read = True
            suggestion.read_at = now
        await self.db.flush()

        if old_unread:
            await CacheInvalidator.on_suggestions_change(str(user_id))
        logger.info("Cleaned %d old suggestions for %s", len(old_unread), user_id)

        return {
            "dry_run": False,
            "analysis": analysis,
            "cleaned": len(old_unread),
            "sample_cleaned": [
                {
                    "id": str(s.suggestion_id),
                    "created_at": s.created_at.isoformat(),
                    "preview": s.suggestion_text[:50] + "...",
                }
                for s in old_unread[:3]
            ],
        }
