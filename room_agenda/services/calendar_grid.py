"""Month grid construction and month arithmetic helpers."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterator, Optional


DAYS_PER_WEEK = 7

MonthGrid = tuple[tuple[Optional[int], ...], ...]


def _validate_month_index(month_index: int) -> None:
    if not 0 <= month_index <= 11:
        raise ValueError(f"month_index must be between 0 and 11, got {month_index}")


def days_in_month(year: int, month_index: int) -> int:
    _validate_month_index(month_index)
    next_year, next_month_index = shift_month(year, month_index, 1)
    first_of_next = date(next_year, next_month_index + 1, 1)
    return (first_of_next - timedelta(days=1)).day


def sunday_first_column(value: date) -> int:
    """Column of ``value`` in a week that starts on Sunday (0..6)."""
    return (value.weekday() + 1) % DAYS_PER_WEEK


def shift_month(year: int, month_index: int, delta: int) -> tuple[int, int]:
    """Move ``delta`` months from (year, month_index), rolling the year as needed."""
    absolute = year * 12 + month_index + delta
    return absolute // 12, absolute % 12


def build_month_grid(year: int, month_index: int) -> MonthGrid:
    """Return Sunday-first weeks of day numbers, padded with None outside the month."""
    _validate_month_index(month_index)
    total_days = days_in_month(year, month_index)
    first_column = sunday_first_column(date(year, month_index + 1, 1))

    weeks: list[tuple[Optional[int], ...]] = []
    current: list[Optional[int]] = [None] * first_column
    for day in range(1, total_days + 1):
        current.append(day)
        if len(current) == DAYS_PER_WEEK:
            weeks.append(tuple(current))
            current = []
    if current:
        current.extend([None] * (DAYS_PER_WEEK - len(current)))
        weeks.append(tuple(current))
    return tuple(weeks)


def iter_month_dates(year: int, month_index: int) -> Iterator[date]:
    for day in range(1, days_in_month(year, month_index) + 1):
        yield date(year, month_index + 1, day)
