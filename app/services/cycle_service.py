"""
Cycle Service
=============

Menstrual cycle tracking and phase prediction.

A user has at most one active cycle: starting a new one deactivates every
other cycle of the user in the same transaction.
"""

from dataclasses import dataclass
from datetime import date
import logging
from typing import Optional
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorCodes, NotFoundError, ValidationError
from app.models.cycle import MenstrualCycle
from app.services.gemini_llm import get_gemini_service

logger = logging.getLogger(__name__)

PHASE_MENSTRUAL = "menstrual"
PHASE_FOLLICULAR = "follicular"
PHASE_OVULATION = "ovulation"
PHASE_LUTEAL = "luteal"

# Ovulation is counted back from the next period
LUTEAL_PHASE_DAYS = 14

PHASE_FALLBACK_SUGGESTIONS = {
    PHASE_MENSTRUAL: "Your partner might appreciate extra comfort and a slower pace this week.",
    PHASE_FOLLICULAR: "Your partner may enjoy trying something new together, like a fresh activity or outing.",
    PHASE_OVULATION: "This could be a great time for a social plan or a date night together.",
    PHASE_LUTEAL: "Your partner might appreciate extra patience, space and small gestures of care.",
}

CYCLE_FIELDS = ("cycle_start_date", "cycle_length", "period_length", "symptoms", "notes")


@dataclass(frozen=True)
class CyclePhase:
    phase: str
    cycle_day: int
    days_until_next_period: int


def predict_phase(
    cycle_start_date: date,
    cycle_length: int,
    period_length: int,
    today: date,
) -> CyclePhase:
    """
    Phase for ``today``.

    ``cycle_day`` is zero-based: ``(today - start) mod cycle_length``.
    Menstrual while the day is inside the period, ovulation within one
    day of ``cycle_length - 14``, follicular before it and luteal after.
    """
    if cycle_length <= 0:
        raise ValueError("cycle_length must be positive")

    day = (today - cycle_start_date).days % cycle_length
    ovulation_day = cycle_length - LUTEAL_PHASE_DAYS

    if day < period_length:
        phase = PHASE_MENSTRUAL
    elif abs(day - ovulation_day) <= 1:
        phase = PHASE_OVULATION
    elif day < ovulation_day:
        phase = PHASE_FOLLICULAR
    else:
        phase = PHASE_LUTEAL

    return CyclePhase(phase=phase, cycle_day=day, days_until_next_period=cycle_length - day)


def predicted_mood(phase: str) -> str:
    feeling = "more introspective and sensitive" if phase == PHASE_LUTEAL else "energetic and social"
    return f"During the {phase} phase, you might feel {feeling}."


class CycleService:
    """Service for menstrual cycle operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _deactivate_all(self, user_id: uuid.UUID, keep: Optional[uuid.UUID] = None) -> None:
        stmt = update(MenstrualCycle).where(
            MenstrualCycle.user_id == user_id,
            MenstrualCycle.is_active.is_(True),
        )
        if keep is not None:
            stmt = stmt.where(MenstrualCycle.cycle_id != keep)
        await self.db.execute(stmt.values(is_active=False))
        # The partial unique index is checked per statement
        await self.db.flush()

    async def start_cycle(self, user_id: uuid.UUID, data: dict) -> MenstrualCycle:
        """Deactivate existing cycles, then insert the new active one."""
        if data.get("period_length", 5) >= data.get("cycle_length", 28):
            raise ValidationError(
                message="Period length must be shorter than cycle length",
                field="period_length",
            )

        await self._deactivate_all(user_id)

        cycle = MenstrualCycle(user_id=user_id, is_active=True)
        for field in CYCLE_FIELDS:
            if data.get(field) is not None:
                setattr(cycle, field, data[field])
        self.db.add(cycle)
        await self.db.flush()

        logger.info("Cycle %s started for %s", cycle.cycle_id, user_id)
        return cycle

    async def get_active(self, user_id: uuid.UUID) -> Optional[MenstrualCycle]:
        result = await self.db.execute(
            select(MenstrualCycle).where(
                MenstrualCycle.user_id == user_id,
                MenstrualCycle.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def get_owned(self, cycle_id: uuid.UUID, user_id: uuid.UUID) -> MenstrualCycle:
        result = await self.db.execute(
            select(MenstrualCycle).where(
                MenstrualCycle.cycle_id == cycle_id,
                MenstrualCycle.user_id == user_id,
            )
        )
        cycle = result.scalar_one_or_none()
        if cycle is None:
            raise NotFoundError(code=ErrorCodes.CYCLE_NOT_FOUND, message="Cycle not found")
        return cycle

    async def update_cycle(self, cycle_id: uuid.UUID, user_id: uuid.UUID, data: dict) -> MenstrualCycle:
        cycle = await self.get_owned(cycle_id, user_id)

        if data.get("is_active"):
            await self._deactivate_all(user_id, keep=cycle.cycle_id)
            cycle.is_active = True
        elif data.get("is_active") is False:
            cycle.is_active = False

        for field in CYCLE_FIELDS:
            if data.get(field) is not None:
                setattr(cycle, field, data[field])

        if cycle.period_length >= cycle.cycle_length:
            raise ValidationError(
                message="Period length must be shorter than cycle length",
                field="period_length",
            )

        await self.db.flush()
        return cycle

    async def delete_cycle(self, cycle_id: uuid.UUID, user_id: uuid.UUID) -> None:
        cycle = await self.get_owned(cycle_id, user_id)
        await self.db.delete(cycle)
        await self.db.flush()

    async def predict(self, user_id: uuid.UUID, today: Optional[date] = None) -> dict:
        """
        Current phase of the active cycle with a partner suggestion.

        Raises:
            NotFoundError: no active cycle
        """
        cycle = await self.get_active(user_id)
        if cycle is None:
            raise NotFoundError(code=ErrorCodes.CYCLE_NO_ACTIVE, message="No active cycle found")

        phase = predict_phase(
            cycle.cycle_start_date,
            cycle.cycle_length,
            cycle.period_length,
            today or date.today(),
        )
        suggestion = (
            await get_gemini_service().generate_cycle_suggestion(phase.phase)
            or PHASE_FALLBACK_SUGGESTIONS[phase.phase]
        )

        return {
            "cycleId": str(cycle.cycle_id),
            "phase": phase.phase,
            "cycleDay": phase.cycle_day,
            "daysUntilNextPeriod": phase.days_until_next_period,
            "predictedMood": predicted_mood(phase.phase),
            "partnerSuggestion": suggestion,
        }
