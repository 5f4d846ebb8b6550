"""Tests for booking template and recurrence rule validation.

Covers every branch of validate_booking_template() and validate_recurrence_spec().
"""

from __future__ import annotations

from datetime import date

import pytest

from room_agenda.domain.constraints import (
    RecurrenceLimits,
    validate_booking_template,
    validate_recurrence_limits,
    validate_recurrence_spec,
)
from room_agenda.domain.errors import BookingValidationError
from room_agenda.domain.models import (
    BookingStatus,
    BookingTemplate,
    IndefiniteRecurrence,
    MonthlyMode,
    MonthlyRecurrence,
    Period,
    RoomKind,
    SlotKey,
    Weekday,
    WeeklyRecurrence,
    YearlyRecurrence,
)


def valid_template(**overrides) -> BookingTemplate:
    """Return a valid baseline BookingTemplate, optionally overriding fields."""
    defaults = {
        "slot": SlotKey(date=date(2025, 4, 22), period=Period.MORNING, room=RoomKind.AUDITORIUM),
        "status": BookingStatus.APPROVED,
        "headcount": 40,
        "purpose_text": "Onboarding",
    }
    defaults.update(overrides)
    return BookingTemplate(**defaults)


# --- Baseline pass ---

def test_valid_template_passes() -> None:
    """A fully valid template must not raise."""
    validate_booking_template(valid_template())


# --- headcount ---

def test_headcount_zero_raises() -> None:
    with pytest.raises(BookingValidationError):
        validate_booking_template(valid_template(headcount=0))


def test_headcount_at_room_maximum_passes() -> None:
    validate_booking_template(valid_template(headcount=60))
    meeting_room = SlotKey(date=date(2025, 4, 22), period=Period.MORNING, room=RoomKind.MEETING_ROOM)
    validate_booking_template(valid_template(slot=meeting_room, headcount=30))


def test_headcount_above_room_maximum_raises() -> None:
    meeting_room = SlotKey(date=date(2025, 4, 22), period=Period.MORNING, room=RoomKind.MEETING_ROOM)
    with pytest.raises(BookingValidationError, match="30"):
        validate_booking_template(valid_template(slot=meeting_room, headcount=31))


# --- internal block purpose ---

def test_internal_block_without_purpose_raises() -> None:
    with pytest.raises(BookingValidationError):
        validate_booking_template(valid_template(status=BookingStatus.INTERNAL_BLOCK, purpose_text="  "))


def test_approved_booking_without_purpose_passes() -> None:
    validate_booking_template(valid_template(purpose_text=None))


# --- recurrence limits ---

def test_non_positive_limits_raise() -> None:
    with pytest.raises(ValueError):
        validate_recurrence_limits(RecurrenceLimits(max_month_limit=0))
    with pytest.raises(ValueError):
        validate_recurrence_limits(RecurrenceLimits(max_interval_weeks=0))
    with pytest.raises(ValueError):
        validate_recurrence_limits(RecurrenceLimits(max_repeat_count=0))


def test_interval_above_limit_raises() -> None:
    spec = WeeklyRecurrence(interval_weeks=5, weekdays=frozenset({Weekday.MONDAY}), repeat_count=2)
    with pytest.raises(BookingValidationError):
        validate_recurrence_spec(spec, RecurrenceLimits(max_interval_weeks=4))


def test_month_limit_at_maximum_passes() -> None:
    validate_recurrence_spec(IndefiniteRecurrence(month_limit=120))


def test_month_limit_above_maximum_raises() -> None:
    with pytest.raises(BookingValidationError):
        validate_recurrence_spec(IndefiniteRecurrence(month_limit=121))


def test_repeat_count_at_maximum_passes() -> None:
    spec = WeeklyRecurrence(interval_weeks=1, weekdays=frozenset({Weekday.MONDAY}), repeat_count=120)
    validate_recurrence_spec(spec)


def test_repeat_count_above_maximum_raises() -> None:
    spec = WeeklyRecurrence(interval_weeks=1, weekdays=frozenset({Weekday.MONDAY}), repeat_count=121)
    with pytest.raises(BookingValidationError, match="120"):
        validate_recurrence_spec(spec)
    yearly = YearlyRecurrence(mode=MonthlyMode.DAY_OF_MONTH, months=frozenset({3}), repeat_count=121)
    with pytest.raises(BookingValidationError):
        validate_recurrence_spec(yearly)


def test_repeat_count_cap_follows_limits() -> None:
    spec = MonthlyRecurrence(mode=MonthlyMode.DAY_OF_MONTH, repeat_count=13)
    with pytest.raises(BookingValidationError, match="12"):
        validate_recurrence_spec(spec, RecurrenceLimits(max_repeat_count=12))


def test_unknown_monthly_mode_raises() -> None:
    with pytest.raises(BookingValidationError):
        validate_recurrence_spec(MonthlyRecurrence(mode="weekly", repeat_count=1))  # type: ignore[arg-type]


def test_yearly_month_out_of_range_raises() -> None:
    spec = YearlyRecurrence(mode=MonthlyMode.DAY_OF_MONTH, months=frozenset({0, 5}), repeat_count=1)
    with pytest.raises(BookingValidationError):
        validate_recurrence_spec(spec)


def test_unsupported_rule_type_raises() -> None:
    with pytest.raises(BookingValidationError):
        validate_recurrence_spec(object())  # type: ignore[arg-type]
