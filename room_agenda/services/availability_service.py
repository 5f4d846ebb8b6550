"""Month availability matrix for the admin and requester agendas."""

from __future__ import annotations

import re
from datetime import date
from typing import Iterable, Optional

from room_agenda.domain.models import (
    Booking,
    BookingStatus,
    DayAvailability,
    ExclusionFact,
    ExclusionFeed,
    ExclusionKind,
    HolidayEntry,
    MonthAvailability,
    MonthSummary,
    Period,
    RoomKind,
    SlotKey,
    Viewer,
    Weekday,
)
from room_agenda.repository.base import BookingStore
from room_agenda.services.calendar_grid import build_month_grid, iter_month_dates
from room_agenda.services.slot_classifier import classify_slot
from room_agenda.utils.logger import get_logger


logger = get_logger(__name__)

_HOLIDAY_PREFIX = re.compile(r"^feriado\s*[-:]\s*", re.IGNORECASE)
_OPTIONAL_DAY_PREFIX = re.compile(r"^ponto\s*facultativo\s*[-:]\s*", re.IGNORECASE)

_WEEKEND_REASONS = {
    Weekday.SATURDAY: "Saturday",
    Weekday.SUNDAY: "Sunday",
}


def holiday_label(entry: HolidayEntry) -> str:
    name = _HOLIDAY_PREFIX.sub("", entry.name.strip())
    name = _OPTIONAL_DAY_PREFIX.sub("Ponto Facultativo: ", name).strip()
    if name:
        return name
    if entry.holiday_type == "ponto_facultativo":
        return "Ponto Facultativo"
    return "Holiday"


def merge_exclusion_feeds(primary: ExclusionFeed, secondary: ExclusionFeed) -> ExclusionFeed:
    """Prefer whichever feed returned data, list by list.

    Both rooms are expected to report the same days. When they disagree the
    non-empty list wins and the mismatch is logged, since it points at a data
    problem upstream.
    """
    holidays = primary.holidays or secondary.holidays
    blocked_dates = primary.blocked_dates or secondary.blocked_dates

    if primary.holidays and secondary.holidays and set(primary.holidays) != set(secondary.holidays):
        logger.warning(
            "Holiday feeds disagree | primary=%s | secondary=%s",
            len(primary.holidays),
            len(secondary.holidays),
        )
    if (
        primary.blocked_dates
        and secondary.blocked_dates
        and set(primary.blocked_dates) != set(secondary.blocked_dates)
    ):
        logger.warning(
            "Blocked-date feeds disagree | primary=%s | secondary=%s",
            len(primary.blocked_dates),
            len(secondary.blocked_dates),
        )
    return ExclusionFeed(holidays=holidays, blocked_dates=blocked_dates)


def resolve_exclusion(
    target: date,
    holidays: dict[date, HolidayEntry],
    blocked: dict[date, str],
) -> Optional[ExclusionFact]:
    """Collapse the whole-day sources of one date into at most one fact.

    Admin blocks outrank holidays, which outrank weekends.
    """
    if target in blocked:
        reason = blocked[target].strip()
        return ExclusionFact(
            date=target,
            kind=ExclusionKind.ADMIN_BLOCKED,
            reason=f"Blocked: {reason}" if reason else "Blocked",
        )
    if target in holidays:
        return ExclusionFact(
            date=target,
            kind=ExclusionKind.HOLIDAY,
            reason=holiday_label(holidays[target]),
        )
    weekday = Weekday(target.weekday())
    if weekday in _WEEKEND_REASONS:
        return ExclusionFact(
            date=target,
            kind=ExclusionKind.WEEKEND,
            reason=_WEEKEND_REASONS[weekday],
        )
    return None


def resolve_month_exclusions(
    year: int,
    month_index: int,
    feed: ExclusionFeed,
) -> dict[date, ExclusionFact]:
    holidays = {entry.date: entry for entry in feed.holidays}
    blocked = {entry.date: entry.reason for entry in feed.blocked_dates}
    facts: dict[date, ExclusionFact] = {}
    for target in iter_month_dates(year, month_index):
        fact = resolve_exclusion(target, holidays, blocked)
        if fact is not None:
            facts[target] = fact
    return facts


def index_bookings(bookings: Iterable[Booking]) -> dict[SlotKey, Booking]:
    """Key bookings by slot, letting an active booking shadow released ones."""
    indexed: dict[SlotKey, Booking] = {}
    for booking in bookings:
        current = indexed.get(booking.slot)
        if current is None or (booking.is_active and not current.is_active):
            indexed[booking.slot] = booking
    return indexed


def summarize_bookings(bookings: Iterable[Booking]) -> MonthSummary:
    total = approved = pending = 0
    for booking in bookings:
        total += 1
        if booking.status == BookingStatus.APPROVED:
            approved += 1
        elif booking.status == BookingStatus.PENDING:
            pending += 1
    return MonthSummary(total=total, approved=approved, pending=pending)


def assemble_month_view(
    *,
    year: int,
    month_index: int,
    exclusions: dict[date, ExclusionFact],
    bookings: Iterable[Booking],
    viewer: Viewer,
    rooms: tuple[RoomKind, ...] = tuple(RoomKind),
    periods: tuple[Period, ...] = tuple(Period),
) -> MonthAvailability:
    """Classify every slot of the month for ``viewer``."""
    booking_list = list(bookings)
    by_slot = index_bookings(booking_list)

    days: list[DayAvailability] = []
    for target in iter_month_dates(year, month_index):
        exclusion = exclusions.get(target)
        slots = {}
        for room in rooms:
            for period in periods:
                key = SlotKey(date=target, period=period, room=room)
                slots[(room, period)] = classify_slot(key, exclusion, by_slot.get(key), viewer)
        days.append(DayAvailability(date=target, exclusion=exclusion, slots=slots))

    return MonthAvailability(
        year=year,
        month_index=month_index,
        weeks=build_month_grid(year, month_index),
        days=tuple(days),
        summary=summarize_bookings(booking_list) if viewer.is_admin else None,
    )


class AvailabilityService:
    """Reads one month from the booking store and assembles the agenda view."""

    def __init__(self, store: BookingStore) -> None:
        self._store = store

    def load_exclusions(self, year: int, month_index: int) -> dict[date, ExclusionFact]:
        feeds = [
            self._store.list_exclusions(year, month_index, room)
            for room in (RoomKind.AUDITORIUM, RoomKind.MEETING_ROOM)
        ]
        merged = merge_exclusion_feeds(feeds[0], feeds[1])
        return resolve_month_exclusions(year, month_index, merged)

    def load_bookings(self, year: int, month_index: int) -> list[Booking]:
        bookings: list[Booking] = []
        for room in RoomKind:
            bookings.extend(
                booking
                for booking in self._store.list_bookings(year, month_index, room)
                if booking.slot.room == room
            )
        return bookings

    def month_view(self, *, year: int, month_index: int, viewer: Viewer) -> MonthAvailability:
        exclusions = self.load_exclusions(year, month_index)
        bookings = self.load_bookings(year, month_index)
        view = assemble_month_view(
            year=year,
            month_index=month_index,
            exclusions=exclusions,
            bookings=bookings,
            viewer=viewer,
        )
        logger.info(
            "Month view assembled | year=%s | month=%s | admin=%s | bookings=%s | excluded_days=%s",
            year,
            month_index + 1,
            viewer.is_admin,
            len(bookings),
            len(exclusions),
        )
        return view
