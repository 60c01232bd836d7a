"""
Scheduled Job Tests
===================

Daily suggestion run and the nightly partner-suggestion batch, with the
suggestion generator and database mocked out.
"""

from datetime import date, datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
import uuid

import pytest

from app.models.batch import BatchProcessingLog
from app.services.scheduled_jobs import ScheduledJobService

NOW = datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc)


def _nested():
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=None)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


def _scalars(items):
    result = MagicMock()
    result.scalars.return_value.all.return_value = items
    return result


def _scalar(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


@pytest.fixture
def job_db():
    db = MagicMock()
    db.execute = AsyncMock()
    db.flush = AsyncMock()
    db.begin_nested = MagicMock(side_effect=lambda: _nested())
    return db


def _relationship(name: str):
    return SimpleNamespace(relationship_id=uuid.uuid4(), name=name)


class TestDailySuggestions:

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_run(self, job_db):
        good, bad = _relationship("Alex"), _relationship("Work")
        cleanup = MagicMock()
        cleanup.rowcount = 4
        job_db.execute.return_value = cleanup

        service = ScheduledJobService(job_db)
        service.suggestions.generate_for_relationship = AsyncMock(
            side_effect=[{"suggestions": [{"id": 1}, {"id": 2}]}, RuntimeError("LLM down")]
        )

        with patch.object(service, "_daily_candidates", AsyncMock(return_value=([good, bad], 5))), \
                patch("app.services.scheduled_jobs.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await service.generate_daily_suggestions(now=NOW)

        assert result["success"] is True
        assert result["totalSuggestionsGenerated"] == 2
        assert result["relationshipsProcessed"] == 1
        assert result["totalRelationships"] == 5
        assert result["oldSuggestionsDeleted"] == 4
        assert result["errors"] == [{"id": str(bad.relationship_id), "error": "LLM down"}]
        assert [r["status"] for r in result["results"]] == ["success", "error"]
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_no_candidates(self, job_db):
        cleanup = MagicMock()
        cleanup.rowcount = 0
        job_db.execute.return_value = cleanup

        service = ScheduledJobService(job_db)
        with patch.object(service, "_daily_candidates", AsyncMock(return_value=([], 3))):
            result = await service.generate_daily_suggestions(now=NOW)

        assert result["relationshipsProcessed"] == 0
        assert result["results"] == []
        assert result["timestamp"] == NOW.isoformat()


class TestPartnerSuggestionBatch:

    @pytest.mark.asyncio
    async def test_already_processed(self, job_db):
        job_db.execute.return_value = _scalar(uuid.uuid4())

        result = await ScheduledJobService(job_db).process_partner_suggestion_batch(date(2026, 10, 16))

        assert result["alreadyProcessed"] is True
        assert result["message"] == "Batch already processed for 2026-10-16"

    @pytest.mark.asyncio
    async def test_no_journals(self, job_db):
        job_db.execute.side_effect = [_scalar(None), _scalars([])]

        result = await ScheduledJobService(job_db).process_partner_suggestion_batch(date(2026, 10, 16))

        assert result["journalsProcessed"] == 0
        assert result["message"] == "No journals to process for 2026-10-16"

    @pytest.mark.asyncio
    async def test_premium_journals_are_batched(self, job_db):
        premium_user, free_user = uuid.uuid4(), uuid.uuid4()
        relationship = _relationship("Alex")
        journals = [
            SimpleNamespace(user_id=premium_user, relationship_id=relationship.relationship_id, batch_processed_at=None),
            SimpleNamespace(user_id=free_user, relationship_id=relationship.relationship_id, batch_processed_at=None),
            SimpleNamespace(user_id=premium_user, relationship_id=None, batch_processed_at=None),
        ]
        job_db.execute.side_effect = [_scalar(None), _scalars(journals), _scalars([relationship])]

        service = ScheduledJobService(job_db)
        service.suggestions.generate_for_relationship = AsyncMock(return_value={"suggestions": [{}, {}, {}]})

        with patch(
            "app.services.scheduled_jobs.PremiumService.premium_user_ids",
            new=AsyncMock(return_value={premium_user}),
        ):
            result = await service.process_partner_suggestion_batch(date(2026, 10, 16))

        log = job_db.add.call_args.args[0]
        assert isinstance(log, BatchProcessingLog)
        assert log.status == "completed"
        assert log.journals_processed == 1
        assert log.suggestions_generated == 3
        assert result["summary"] == {
            "journalsProcessed": 3,
            "relationshipsAnalyzed": 1,
            "suggestionsGenerated": 3,
            "successfulBatches": 1,
            "failedBatches": 0,
        }
        assert all(j.batch_processed_at is not None for j in journals)

        kwargs = service.suggestions.generate_for_relationship.await_args.kwargs
        assert kwargs["batch_date"] == date(2026, 10, 16)
        assert kwargs["now"] == datetime(2026, 10, 17, tzinfo=timezone.utc)
        assert kwargs["entries"] == [journals[0]]

    @pytest.mark.asyncio
    async def test_failed_relationship_is_logged(self, job_db):
        user = uuid.uuid4()
        relationship = _relationship("Sam")
        journals = [SimpleNamespace(user_id=user, relationship_id=relationship.relationship_id, batch_processed_at=None)]
        job_db.execute.side_effect = [_scalar(None), _scalars(journals), _scalars([relationship])]

        service = ScheduledJobService(job_db)
        service.suggestions.generate_for_relationship = AsyncMock(side_effect=RuntimeError("quota"))

        with patch(
            "app.services.scheduled_jobs.PremiumService.premium_user_ids",
            new=AsyncMock(return_value={user}),
        ):
            result = await service.process_partner_suggestion_batch(date(2026, 10, 16))

        log = job_db.add.call_args.args[0]
        assert log.status == "failed"
        assert log.error_message == "quota"
        assert result["summary"]["failedBatches"] == 1
        assert result["summary"]["suggestionsGenerated"] == 0
