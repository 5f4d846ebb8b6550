"""Expansion of anchored recurrence rules into candidate booking dates.

The expander is calendar-only: it never looks at weekends, holidays, blocked
days or existing bookings. Those are resolved downstream by the slot
classifier and by the booking store when it reports conflicts.

Counting rules:
    * weekly rules stop after ``repeat_count`` emitted dates;
    * monthly rules scan ``repeat_count`` months starting at the anchor month;
    * yearly rules scan ``repeat_count`` years starting at the anchor year;
    * indefinite rules scan ``month_limit`` months.
A month where the target day does not exist (e.g. the 31st in April) is
skipped and not backfilled, so fewer dates than scanned periods may result.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import MAXYEAR, date, datetime, timedelta
from typing import Iterable, Iterator, Optional

from room_agenda.domain.constraints import RecurrenceLimits, validate_recurrence_spec
from room_agenda.domain.errors import RecurrenceComputeError
from room_agenda.domain.models import (
    IndefiniteRecurrence,
    MonthlyMode,
    MonthlyRecurrence,
    RecurrenceSpec,
    WeeklyRecurrence,
    Weekday,
    YearlyRecurrence,
)
from room_agenda.services.calendar_grid import (
    DAYS_PER_WEEK,
    days_in_month,
    shift_month,
    sunday_first_column,
)


@dataclass(frozen=True)
class OrdinalPattern:
    """Weekday position of the anchor inside its month, computed once."""

    weekday: Weekday
    ordinal: int
    is_last: bool


def ordinal_pattern(anchor: date) -> OrdinalPattern:
    ordinal = (anchor.day - 1) // DAYS_PER_WEEK + 1
    is_last = (anchor + timedelta(days=DAYS_PER_WEEK)).month != anchor.month
    return OrdinalPattern(weekday=Weekday(anchor.weekday()), ordinal=ordinal, is_last=is_last)


def nth_weekday_of_month(
    year: int,
    month_index: int,
    weekday: Weekday,
    ordinal: int,
) -> Optional[date]:
    first = date(year, month_index + 1, 1)
    offset = (int(weekday) - first.weekday()) % DAYS_PER_WEEK
    day = 1 + offset + (ordinal - 1) * DAYS_PER_WEEK
    if day > days_in_month(year, month_index):
        return None
    return date(year, month_index + 1, day)


def last_weekday_of_month(year: int, month_index: int, weekday: Weekday) -> date:
    last = date(year, month_index + 1, days_in_month(year, month_index))
    return last - timedelta(days=(last.weekday() - int(weekday)) % DAYS_PER_WEEK)


def _day_of_month(year: int, month_index: int, day: int) -> Optional[date]:
    if day > days_in_month(year, month_index):
        return None
    return date(year, month_index + 1, day)


def _occurrence_in_month(
    anchor: date,
    pattern: OrdinalPattern,
    mode: MonthlyMode,
    year: int,
    month_index: int,
) -> Optional[date]:
    if mode == MonthlyMode.DAY_OF_MONTH:
        return _day_of_month(year, month_index, anchor.day)
    if pattern.is_last:
        return last_weekday_of_month(year, month_index, pattern.weekday)
    return nth_weekday_of_month(year, month_index, pattern.weekday, pattern.ordinal)


def sunday_first_column_of(weekday: Weekday) -> int:
    return (int(weekday) + 1) % DAYS_PER_WEEK


def _iter_weekly(anchor: date, spec: WeeklyRecurrence) -> Iterator[date]:
    week_start = anchor - timedelta(days=sunday_first_column(anchor))
    columns = sorted(sunday_first_column_of(weekday) for weekday in spec.weekdays)
    emitted = 0
    step = timedelta(weeks=spec.interval_weeks)
    while emitted < spec.repeat_count:
        for column in columns:
            candidate = week_start + timedelta(days=column)
            if candidate < anchor:
                continue
            yield candidate
            emitted += 1
            if emitted >= spec.repeat_count:
                return
        if week_start.year >= MAXYEAR - 1:
            return
        week_start += step


def _iter_months(
    anchor: date,
    mode: MonthlyMode,
    month_count: int,
) -> Iterator[date]:
    pattern = ordinal_pattern(anchor)
    anchor_month_index = anchor.month - 1
    for delta in range(month_count):
        year, month_index = shift_month(anchor.year, anchor_month_index, delta)
        if year > MAXYEAR:
            return
        candidate = _occurrence_in_month(anchor, pattern, mode, year, month_index)
        if candidate is not None:
            yield candidate


def _iter_yearly(anchor: date, spec: YearlyRecurrence) -> Iterator[date]:
    pattern = ordinal_pattern(anchor)
    months = sorted(spec.months)
    for year in range(anchor.year, anchor.year + spec.repeat_count):
        if year > MAXYEAR:
            return
        for month in months:
            candidate = _occurrence_in_month(anchor, pattern, spec.mode, year, month - 1)
            if candidate is None or candidate < anchor:
                continue
            yield candidate


def _iter_candidates(anchor: date, spec: RecurrenceSpec) -> Iterator[date]:
    if isinstance(spec, WeeklyRecurrence):
        return _iter_weekly(anchor, spec)
    if isinstance(spec, MonthlyRecurrence):
        return _iter_months(anchor, spec.mode, spec.repeat_count)
    if isinstance(spec, YearlyRecurrence):
        return _iter_yearly(anchor, spec)
    if isinstance(spec, IndefiniteRecurrence):
        return _iter_months(anchor, MonthlyMode.DAY_OF_MONTH, spec.month_limit)
    raise RecurrenceComputeError(f"unsupported recurrence rule: {type(spec).__name__}")


def _ordered_unique(dates: Iterable[date]) -> tuple[date, ...]:
    return tuple(sorted(set(dates)))


def expand_recurrence(
    anchor: date,
    spec: RecurrenceSpec,
    limits: RecurrenceLimits = RecurrenceLimits(),
) -> tuple[date, ...]:
    """Return the ordered, deduplicated candidate dates of ``spec`` from ``anchor``."""
    if isinstance(anchor, datetime):
        anchor = anchor.date()
    if not isinstance(anchor, date):
        raise RecurrenceComputeError(f"anchor must be a date, got {type(anchor).__name__}")
    validate_recurrence_spec(spec, limits)
    return _ordered_unique(_iter_candidates(anchor, spec))
