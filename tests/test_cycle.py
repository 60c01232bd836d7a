"""
Cycle Prediction Tests
======================
"""

from datetime import date, timedelta

import pytest

from app.services.cycle_service import predict_phase, predicted_mood

START = date(2026, 10, 1)


@pytest.mark.parametrize(
    "offset, phase",
    [
        (0, "menstrual"),
        (4, "menstrual"),
        (5, "follicular"),
        (12, "follicular"),
        (13, "ovulation"),
        (14, "ovulation"),
        (15, "ovulation"),
        (16, "luteal"),
        (27, "luteal"),
    ],
)
def test_phase_for_standard_cycle(offset, phase):
    result = predict_phase(START, 28, 5, START + timedelta(days=offset))

    assert result.phase == phase
    assert result.cycle_day == offset
    assert result.days_until_next_period == 28 - offset


def test_day_wraps_into_next_cycle():
    result = predict_phase(START, 28, 5, START + timedelta(days=30))

    assert result.cycle_day == 2
    assert result.phase == "menstrual"
    assert result.days_until_next_period == 26


def test_date_before_start_wraps_backwards():
    result = predict_phase(START, 28, 5, START - timedelta(days=1))

    assert result.cycle_day == 27
    assert result.phase == "luteal"
    assert result.days_until_next_period == 1


def test_long_cycle_moves_ovulation():
    # 35-day cycle ovulates around day 21
    assert predict_phase(START, 35, 5, START + timedelta(days=21)).phase == "ovulation"
    assert predict_phase(START, 35, 5, START + timedelta(days=15)).phase == "follicular"


def test_non_positive_cycle_length_is_rejected():
    with pytest.raises(ValueError):
        predict_phase(START, 0, 5, START)


def test_predicted_mood_by_phase():
    assert "introspective" in predicted_mood("luteal")
    assert "energetic" in predicted_mood("follicular")
