"""
Service Tests
=============

Cycle activation, partner-suggestion expiry and cleanup, and the dashboard
views, exercised against a mocked database session.
"""

from datetime import date, datetime, timedelta, timezone
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
import uuid

import pytest
from sqlalchemy.dialects import postgresql

from app.core.errors import ValidationError
from app.models.cycle import MenstrualCycle
from app.models.relationship import RelationshipType
from app.services.cache import CacheKeys, CacheManager
from app.services.cycle_service import CycleService
from app.services.dashboard_service import DashboardService
from app.services.gemini_llm import GeminiLLMService
from app.services.suggestion_service import SuggestionService

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
PARTNER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")


def _scalars(items):
    result = MagicMock()
    result.scalars.return_value.all.return_value = items
    return result


def _scalar(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def _count(value):
    result = MagicMock()
    result.scalar.return_value = value
    return result


def _compiled(statement):
    return statement.compile(dialect=postgresql.dialect())


# ---------------------------------------------------------------------------
# Cycles
# ---------------------------------------------------------------------------

class TestOneActiveCycle:

    @pytest.mark.asyncio
    async def test_start_deactivates_existing_cycles_first(self, db_session):
        order = []
        db_session.execute.side_effect = lambda stmt: order.append(("execute", stmt)) or MagicMock()
        db_session.add = MagicMock(side_effect=lambda obj: order.append(("add", obj)))

        cycle = await CycleService(db_session).start_cycle(USER_ID, {
            "cycle_start_date": date(2026, 10, 1),
            "cycle_length": 30,
            "period_length": 4,
        })

        assert [step for step, _ in order] == ["execute", "add"]
        compiled = _compiled(order[0][1])
        assert str(compiled).startswith("UPDATE menstrual_cycles")
        assert compiled.params["is_active"] is False
        assert USER_ID in compiled.params.values()

        assert cycle.is_active is True
        assert cycle.cycle_length == 30
        assert cycle.period_length == 4

    @pytest.mark.asyncio
    async def test_start_rejects_period_longer_than_cycle(self, db_session):
        with pytest.raises(ValidationError):
            await CycleService(db_session).start_cycle(USER_ID, {
                "cycle_start_date": date(2026, 10, 1),
                "cycle_length": 21,
                "period_length": 21,
            })

        db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reactivating_keeps_only_that_cycle(self, db_session):
        cycle = MenstrualCycle(
            cycle_id=uuid.uuid4(),
            user_id=USER_ID,
            cycle_start_date=date(2026, 9, 1),
            cycle_length=28,
            period_length=5,
            is_active=False,
        )
        db_session.execute.side_effect = [_scalar(cycle), MagicMock()]

        updated = await CycleService(db_session).update_cycle(cycle.cycle_id, USER_ID, {"is_active": True})

        assert updated.is_active is True
        deactivate = _compiled(db_session.execute.await_args_list[1].args[0])
        assert str(deactivate).startswith("UPDATE menstrual_cycles")
        assert "cycle_id !=" in str(deactivate)
        assert cycle.cycle_id in deactivate.params.values()


# ---------------------------------------------------------------------------
# Partner suggestions
# ---------------------------------------------------------------------------

def _relationship():
    return SimpleNamespace(
        relationship_id=uuid.uuid4(),
        name="Alex",
        relationship_type=RelationshipType.ROMANTIC,
        member_ids=[USER_ID, PARTNER_ID],
    )


class TestActivitySuggestions:

    @pytest.mark.asyncio
    async def test_journal_and_checkin_expiry(self, db_session, test_user):
        journals = [
            SimpleNamespace(entry_id=uuid.uuid4(), content="I miss our time together", relationship_id=None),
            SimpleNamespace(entry_id=uuid.uuid4(), content="Work was long today", relationship_id=None),
        ]
        checkins = [SimpleNamespace(connection_score=3, challenge_note=None, relationship_id=None)]
        db_session.execute.side_effect = [_scalars(journals), _scalars(checkins)]
        db_session.add_all = MagicMock()

        service = SuggestionService(db_session)
        service.onboarding.get_universal = AsyncMock(return_value=None)
        service.relationships.list_for_user = AsyncMock(return_value=[_relationship()])
        service._past_feedback = AsyncMock(return_value=[])
        service._personal_insights = AsyncMock(return_value=[])
        service._journal_suggestion = AsyncMock(return_value={
            "type": "quality_time",
            "text": "Plan an unhurried walk together this weekend",
            "context": "Some shared time would feel good right now",
            "priority": 8,
            "confidence": 7,
        })

        result = await service.generate_from_activity(test_user, now=NOW)

        rows = result["partner_suggestions"]
        assert len(rows) == 3
        journal_rows = [r for r in rows if r.source_entry_id is not None]
        checkin_rows = [r for r in rows if r.source_entry_id is None]

        assert [r.source_entry_id for r in journal_rows] == [j.entry_id for j in journals]
        assert all(r.expires_at == NOW + timedelta(days=7) for r in journal_rows)
        assert len(checkin_rows) == 1
        assert checkin_rows[0].expires_at == NOW + timedelta(days=5)
        assert all(r.recipient_user_id == PARTNER_ID for r in rows)
        assert result["summary"]["partnerSuggestionsGenerated"] == 3

    @pytest.mark.asyncio
    async def test_given_entries_replace_the_journal_query(self, db_session):
        relationship = _relationship()
        premium_entry = SimpleNamespace(
            user_id=USER_ID,
            content="Feeling grateful for the support this week",
            created_at=NOW - timedelta(hours=3),
        )

        service = SuggestionService(db_session)
        service._recent_member_journals = AsyncMock()
        service.relationships.member_names = AsyncMock(return_value={USER_ID: "Sam", PARTNER_ID: "Alex"})
        service.onboarding.get_universal_many = AsyncMock(return_value={})
        service._suggestions_for_recipient = AsyncMock(return_value=[])

        result = await service.generate_for_relationship(relationship, now=NOW, entries=[premium_entry])

        service._recent_member_journals.assert_not_awaited()
        service._suggestions_for_recipient.assert_awaited_once()
        args = service._suggestions_for_recipient.await_args.args
        assert args[1] == "Alex"
        assert args[3] == [premium_entry]
        assert result["processing_stats"]["entries_analyzed"] == 1


class TestPartnerSuggestionScores:

    @pytest.mark.asyncio
    async def test_model_scores_are_clamped(self):
        service = GeminiLLMService()
        service._invoke_json = AsyncMock(return_value={
            "type": "support",
            "text": "Offer to take one chore off their plate this week",
            "context": "A lighter load could help right now",
            "priority": 15,
            "confidence": 0,
        })

        suggestion = await service.generate_partner_suggestion("long week", {}, "romantic")

        assert suggestion["priority"] == 10
        assert suggestion["confidence"] == 1

    @pytest.mark.asyncio
    async def test_non_numeric_priority_is_dropped(self):
        service = GeminiLLMService()
        service._invoke_json = AsyncMock(return_value={
            "type": "support",
            "text": "Offer a hand",
            "context": "Busy days",
            "priority": "urgent",
        })

        assert await service.generate_partner_suggestion("long week", {}, "romantic") is None


def _suggestion(days_ago: int, is_read: bool = False):
    return SimpleNamespace(
        suggestion_id=uuid.uuid4(),
        created_at=NOW - timedelta(days=days_ago),
        is_read=is_read,
        read_at=None,
        suggestion_text="Offer to cook dinner together on a quiet evening and talk about the week ahead",
    )


class TestSuggestionCleanup:

    @pytest.fixture
    def suggestions(self):
        return [_suggestion(45), _suggestion(40), _suggestion(35, is_read=True), _suggestion(2)]

    @pytest.mark.asyncio
    async def test_dry_run_changes_nothing(self, db_session, suggestions):
        db_session.execute.return_value = _scalars(suggestions)

        result = await SuggestionService(db_session).cleanup(USER_ID, days_old=30, dry_run=True, now=NOW)

        assert result["dry_run"] is True
        assert result["analysis"]["total_suggestions"] == 4
        assert result["analysis"]["old_suggestions"] == 3
        assert result["analysis"]["old_unread_suggestions"] == 2
        assert result["recommendation"] == "Would mark 2 old unread suggestions as read"
        assert [s.is_read for s in suggestions] == [False, False, True, False]
        db_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_marks_old_unread_as_read(self, db_session, suggestions):
        db_session.execute.return_value = _scalars(suggestions)

        result = await SuggestionService(db_session).cleanup(USER_ID, days_old=30, now=NOW)

        assert result["cleaned"] == 2
        assert [s.is_read for s in suggestions] == [True, True, True, False]
        assert suggestions[0].read_at == NOW
        assert suggestions[2].read_at is None
        preview = result["sample_cleaned"][0]["preview"]
        assert preview == suggestions[0].suggestion_text[:50] + "..."
        assert len(preview) == 53

    @pytest.mark.asyncio
    async def test_nothing_to_clean(self, db_session):
        db_session.execute.return_value = _scalars([_suggestion(1)])

        result = await SuggestionService(db_session).cleanup(USER_ID, dry_run=True, now=NOW)

        assert result["recommendation"] == "No cleanup needed"


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

class TestRelationshipCard:

    def _relationship(self):
        return SimpleNamespace(
            relationship_id=uuid.uuid4(),
            name="Jordan",
            relationship_type=RelationshipType.FRIEND,
            created_at=NOW - timedelta(days=40),
        )

    @pytest.mark.asyncio
    async def test_saved_health_score_takes_precedence(self, db_session):
        saved = SimpleNamespace(health_score=83)
        db_session.execute.side_effect = [_scalars([]), _scalars([]), _count(1), _scalar(saved)]

        card = await DashboardService(db_session)._relationship_card(USER_ID, self._relationship(), NOW)

        assert card["health_score"] == 83
        assert card["needs_attention"] is False
        assert card["unread_suggestions"] == 1
        assert card["trend"] == "stable"

    @pytest.mark.asyncio
    async def test_computed_score_without_saved_health(self, db_session):
        db_session.execute.side_effect = [_scalars([]), _scalars([]), _count(4), _scalar(None)]

        card = await DashboardService(db_session)._relationship_card(USER_ID, self._relationship(), NOW)

        # Neutral mood, 40 days idle
        assert card["health_score"] == 30
        assert card["needs_attention"] is True
        assert card["type"] == "friend"


class TestConnectionHealth:

    @pytest.mark.asyncio
    async def test_cached_payload_is_returned(self, db_session, fake_redis):
        fake_redis.get.return_value = json.dumps({"overall_health_score": 7.4})

        result = await DashboardService(db_session).connection_health(USER_ID, now=NOW)

        assert result == {"overall_health_score": 7.4}
        db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_computed_payload_is_cached_for_six_hours(self, db_session, fake_redis):
        journals = [SimpleNamespace(mood_score=7, ai_analysis=None) for _ in range(7)]
        db_session.execute.side_effect = [_scalars(journals), _scalars([])]

        result = await DashboardService(db_session).connection_health(USER_ID, now=NOW)

        assert result["last_updated"] == NOW.isoformat()
        assert result["partner_suggestions"] == []
        key, ttl, _ = fake_redis.setex.await_args.args
        assert key == CacheKeys.connection_health(str(USER_ID))
        assert ttl == CacheManager.TTL_DASHBOARD == 6 * 3600
