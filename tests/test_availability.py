"""Tests for exclusion resolution and month view assembly."""

from __future__ import annotations

from datetime import date

from room_agenda.domain.models import (
    BlockedDateEntry,
    Booking,
    BookingStatus,
    ExclusionFeed,
    ExclusionKind,
    HolidayEntry,
    Period,
    RoomKind,
    SlotKey,
    SlotStatus,
    Viewer,
)
from room_agenda.services.availability_service import (
    assemble_month_view,
    holiday_label,
    index_bookings,
    merge_exclusion_feeds,
    resolve_exclusion,
    resolve_month_exclusions,
    summarize_bookings,
)


def booking(
    booking_id: int,
    day: date,
    status: BookingStatus,
    *,
    room: RoomKind = RoomKind.AUDITORIUM,
    period: Period = Period.MORNING,
    requester_id: str | None = "u-1",
) -> Booking:
    return Booking(
        booking_id=booking_id,
        slot=SlotKey(date=day, period=period, room=room),
        status=status,
        headcount=12,
        requester_id=requester_id,
        purpose_text="Training",
    )


# --- Exclusion resolution ---

def test_blocked_outranks_holiday_and_weekend() -> None:
    saturday = date(2025, 4, 19)
    fact = resolve_exclusion(
        saturday,
        {saturday: HolidayEntry(date=saturday, name="Aleluia")},
        {saturday: "Maintenance"},
    )
    assert fact is not None
    assert fact.kind == ExclusionKind.ADMIN_BLOCKED
    assert fact.reason == "Blocked: Maintenance"


def test_holiday_outranks_weekend() -> None:
    sunday = date(2025, 4, 20)
    fact = resolve_exclusion(sunday, {sunday: HolidayEntry(date=sunday, name="Páscoa")}, {})
    assert fact is not None
    assert fact.kind == ExclusionKind.HOLIDAY
    assert fact.reason == "Páscoa"


def test_weekend_reason_and_plain_weekday() -> None:
    assert resolve_exclusion(date(2025, 4, 26), {}, {}).reason == "Saturday"
    assert resolve_exclusion(date(2025, 4, 27), {}, {}).reason == "Sunday"
    assert resolve_exclusion(date(2025, 4, 28), {}, {}) is None


def test_blocked_without_reason() -> None:
    day = date(2025, 4, 22)
    assert resolve_exclusion(day, {}, {day: "  "}).reason == "Blocked"


def test_holiday_label_strips_prefixes() -> None:
    day = date(2025, 4, 21)
    assert holiday_label(HolidayEntry(date=day, name="Feriado - Tiradentes")) == "Tiradentes"
    assert (
        holiday_label(HolidayEntry(date=day, name="ponto facultativo: Carnaval", holiday_type="ponto_facultativo"))
        == "Ponto Facultativo: Carnaval"
    )
    assert holiday_label(HolidayEntry(date=day, name="", holiday_type="ponto_facultativo")) == "Ponto Facultativo"
    assert holiday_label(HolidayEntry(date=day, name="")) == "Holiday"


def test_month_exclusions_include_every_weekend() -> None:
    facts = resolve_month_exclusions(2025, 3, ExclusionFeed())
    weekend_days = [day for day, fact in facts.items() if fact.kind == ExclusionKind.WEEKEND]
    assert len(weekend_days) == 8
    assert all(day.weekday() >= 5 for day in weekend_days)


# --- Feed merge ---

def test_merge_takes_non_empty_lists_independently() -> None:
    day = date(2025, 4, 21)
    primary = ExclusionFeed(holidays=(HolidayEntry(date=day, name="Tiradentes"),))
    secondary = ExclusionFeed(blocked_dates=(BlockedDateEntry(date=date(2025, 4, 22), reason="Inventory"),))

    merged = merge_exclusion_feeds(primary, secondary)

    assert merged.holidays == primary.holidays
    assert merged.blocked_dates == secondary.blocked_dates


def test_merge_prefers_primary_when_feeds_disagree(caplog) -> None:
    primary = ExclusionFeed(holidays=(HolidayEntry(date=date(2025, 4, 21), name="Tiradentes"),))
    secondary = ExclusionFeed(holidays=(HolidayEntry(date=date(2025, 5, 1), name="Trabalho"),))

    with caplog.at_level("WARNING"):
        merged = merge_exclusion_feeds(primary, secondary)

    assert merged.holidays == primary.holidays
    assert "Holiday feeds disagree" in caplog.text


# --- Booking index and summary ---

def test_active_booking_shadows_released_one() -> None:
    day = date(2025, 4, 22)
    cancelled = booking(1, day, BookingStatus.CANCELLED)
    approved = booking(2, day, BookingStatus.APPROVED, requester_id="u-2")

    indexed = index_bookings([cancelled, approved])
    assert indexed[approved.slot] == approved

    indexed = index_bookings([approved, cancelled])
    assert indexed[approved.slot] == approved


def test_summary_counts_total_approved_pending() -> None:
    day = date(2025, 4, 22)
    summary = summarize_bookings(
        [
            booking(1, day, BookingStatus.APPROVED),
            booking(2, day, BookingStatus.PENDING, period=Period.AFTERNOON),
            booking(3, day, BookingStatus.REJECTED, room=RoomKind.MEETING_ROOM),
        ]
    )
    assert (summary.total, summary.approved, summary.pending) == (3, 1, 1)


# --- Assembly ---

def test_assemble_month_view_for_requester() -> None:
    holiday = date(2025, 4, 21)
    exclusions = resolve_month_exclusions(
        2025,
        3,
        ExclusionFeed(holidays=(HolidayEntry(date=holiday, name="Tiradentes"),)),
    )
    bookings = [
        booking(1, holiday, BookingStatus.APPROVED),
        booking(2, date(2025, 4, 22), BookingStatus.PENDING),
        booking(3, date(2025, 4, 23), BookingStatus.APPROVED, requester_id="u-9"),
    ]

    view = assemble_month_view(
        year=2025,
        month_index=3,
        exclusions=exclusions,
        bookings=bookings,
        viewer=Viewer.requester("u-1"),
    )

    assert view.summary is None
    assert len(view.days) == 30
    by_date = {day.date: day for day in view.days}
    key = (RoomKind.AUDITORIUM, Period.MORNING)
    assert by_date[holiday].slots[key].status == SlotStatus.DAY_EXCLUDED
    assert by_date[date(2025, 4, 22)].slots[key].status == SlotStatus.OWN_PENDING
    assert by_date[date(2025, 4, 23)].slots[key].status == SlotStatus.OCCUPIED_BY_OTHER
    assert by_date[date(2025, 4, 23)].slots[(RoomKind.MEETING_ROOM, Period.MORNING)].status == SlotStatus.FREE
    assert all(len(day.slots) == 4 for day in view.days)


def test_assemble_month_view_for_admin_carries_summary() -> None:
    view = assemble_month_view(
        year=2025,
        month_index=3,
        exclusions={},
        bookings=[booking(1, date(2025, 4, 22), BookingStatus.APPROVED)],
        viewer=Viewer.admin(),
    )
    assert view.summary is not None
    assert view.summary.total == 1
    assert view.weeks[0] == (None, None, 1, 2, 3, 4, 5)
