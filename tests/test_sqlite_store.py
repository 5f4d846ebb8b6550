from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from room_agenda.domain.errors import (
    BookingNotFoundError,
    BookingNotPermittedError,
    SlotConflictError,
    StoreValidationError,
)
from room_agenda.domain.models import (
    Actor,
    BookingStatus,
    BookingTemplate,
    Period,
    RoomKind,
    SlotKey,
)
from room_agenda.repository.sqlite_store import (
    EXCLUSION_BLOCKED,
    EXCLUSION_HOLIDAY,
    SqliteBookingStore,
)
from room_agenda.utils.config import get_settings


def build_store(tmp_path) -> SqliteBookingStore:
    get_settings.cache_clear()
    settings = replace(get_settings(), database_path=tmp_path / "agenda.db")
    store = SqliteBookingStore(settings)
    store.initialize_database()
    return store


def template(day: date, **overrides) -> BookingTemplate:
    defaults = {
        "slot": SlotKey(date=day, period=Period.MORNING, room=RoomKind.AUDITORIUM),
        "status": BookingStatus.PENDING,
        "headcount": 15,
        "requester_id": "u-1",
        "purpose_text": "Workshop",
    }
    defaults.update(overrides)
    return BookingTemplate(**defaults)


def test_initialize_database_is_idempotent(tmp_path) -> None:
    store = build_store(tmp_path)
    store.initialize_database()
    assert store.count_bookings() == 0


def test_create_and_list_bookings_by_room_and_month(tmp_path) -> None:
    store = build_store(tmp_path)
    created = store.create_booking(template(date(2025, 4, 22), has_coffee_break=True))
    store.create_booking(
        template(
            date(2025, 4, 22),
            slot=SlotKey(date=date(2025, 4, 22), period=Period.MORNING, room=RoomKind.MEETING_ROOM),
        )
    )
    store.create_booking(template(date(2025, 5, 2)))

    april = store.list_bookings(2025, 3, RoomKind.AUDITORIUM)
    assert [booking.booking_id for booking in april] == [created.booking_id]
    assert april[0].has_coffee_break is True
    assert april[0].requester_id == "u-1"
    assert store.get_booking(created.booking_id) == created


def test_second_active_booking_on_same_slot_conflicts(tmp_path) -> None:
    store = build_store(tmp_path)
    store.create_booking(template(date(2025, 4, 22)))

    with pytest.raises(SlotConflictError) as exc_info:
        store.create_booking(template(date(2025, 4, 22), requester_id="u-2"))
    assert exc_info.value.conflicting_dates == (date(2025, 4, 22),)


def test_cancelled_booking_releases_the_slot(tmp_path) -> None:
    store = build_store(tmp_path)
    first = store.create_booking(template(date(2025, 4, 22)))
    store.update_booking(first.booking_id, template(date(2025, 4, 22), status=BookingStatus.CANCELLED), Actor.admin())

    second = store.create_booking(template(date(2025, 4, 22), requester_id="u-2"))
    assert second.status == BookingStatus.PENDING
    assert len(store.list_bookings(2025, 3, RoomKind.AUDITORIUM)) == 2


def test_weekend_and_registered_days_are_refused(tmp_path) -> None:
    store = build_store(tmp_path)
    store.add_exclusion_day(day=date(2025, 4, 21), kind=EXCLUSION_HOLIDAY, description="Tiradentes")

    with pytest.raises(SlotConflictError):
        store.create_booking(template(date(2025, 4, 19)))
    with pytest.raises(SlotConflictError):
        store.create_booking(template(date(2025, 4, 21)))


def test_batch_reports_occupied_excluded_and_repeated_dates_as_conflicts(tmp_path) -> None:
    store = build_store(tmp_path)
    store.create_booking(template(date(2025, 4, 23)))
    store.add_exclusion_day(day=date(2025, 4, 24), kind=EXCLUSION_BLOCKED, description="Painting")
    candidates = [
        date(2025, 4, 22),
        date(2025, 4, 23),
        date(2025, 4, 24),
        date(2025, 4, 26),
        date(2025, 4, 28),
        date(2025, 4, 28),
    ]

    result = store.create_bookings(template(date(2025, 4, 22), status=BookingStatus.APPROVED), candidates)

    assert result.inserted == (date(2025, 4, 22), date(2025, 4, 28))
    assert set(result.conflicts) == {date(2025, 4, 23), date(2025, 4, 24), date(2025, 4, 26), date(2025, 4, 28)}
    assert len(result.inserted) + len(result.conflicts) == len(candidates)
    assert not set(result.inserted) & {date(2025, 4, 23), date(2025, 4, 24), date(2025, 4, 26)}
    assert store.count_bookings() == 3


def test_batch_rejects_invalid_headcount(tmp_path) -> None:
    store = build_store(tmp_path)
    with pytest.raises(StoreValidationError):
        store.create_bookings(template(date(2025, 4, 22), headcount=0), [date(2025, 4, 22)])


def test_requester_may_only_edit_own_pending_request(tmp_path) -> None:
    store = build_store(tmp_path)
    booking = store.create_booking(template(date(2025, 4, 22)))

    with pytest.raises(BookingNotPermittedError):
        store.update_booking(booking.booking_id, template(date(2025, 4, 22), headcount=20), Actor.requester("u-2"))

    updated = store.update_booking(
        booking.booking_id,
        template(date(2025, 4, 23), headcount=20, status=BookingStatus.APPROVED),
        Actor.requester("u-1"),
    )
    assert updated.slot.date == date(2025, 4, 23)
    assert updated.headcount == 20
    assert updated.status == BookingStatus.PENDING

    store.update_booking(booking.booking_id, template(date(2025, 4, 23), status=BookingStatus.APPROVED), Actor.admin())
    with pytest.raises(BookingNotPermittedError):
        store.update_booking(booking.booking_id, template(date(2025, 4, 23)), Actor.requester("u-1"))


def test_update_into_occupied_slot_conflicts(tmp_path) -> None:
    store = build_store(tmp_path)
    store.create_booking(template(date(2025, 4, 22), requester_id="u-2"))
    booking = store.create_booking(template(date(2025, 4, 23)))

    with pytest.raises(SlotConflictError):
        store.update_booking(booking.booking_id, template(date(2025, 4, 22)), Actor.requester("u-1"))


def test_delete_permissions_and_missing_ids(tmp_path) -> None:
    store = build_store(tmp_path)
    booking = store.create_booking(template(date(2025, 4, 22)))

    with pytest.raises(BookingNotPermittedError):
        store.delete_booking(booking.booking_id, Actor.requester("u-2"))

    store.delete_booking(booking.booking_id, Actor.requester("u-1"))
    assert store.count_bookings() == 0

    with pytest.raises(BookingNotFoundError):
        store.delete_booking(booking.booking_id, Actor.admin())


def test_exclusion_registry_round_trip(tmp_path) -> None:
    store = build_store(tmp_path)
    store.add_exclusion_day(day=date(2025, 4, 21), kind=EXCLUSION_HOLIDAY, description=" Tiradentes ")
    store.add_exclusion_day(
        day=date(2025, 4, 21),
        kind=EXCLUSION_HOLIDAY,
        description="Tiradentes",
        holiday_type="feriado_estadual",
    )
    store.add_exclusion_day(day=date(2025, 4, 25), kind=EXCLUSION_BLOCKED, description="Inventory")

    feed = store.list_exclusions(2025, 3, RoomKind.MEETING_ROOM)
    assert len(feed.holidays) == 1
    assert feed.holidays[0].name == "Tiradentes"
    assert feed.holidays[0].holiday_type == "feriado_estadual"
    assert feed.blocked_dates[0].reason == "Inventory"

    store.remove_exclusion_day(day=date(2025, 4, 25))
    assert store.list_exclusions(2025, 3, RoomKind.AUDITORIUM).blocked_dates == ()

    with pytest.raises(BookingNotFoundError):
        store.remove_exclusion_day(day=date(2025, 4, 25))


def test_unknown_exclusion_kind_raises(tmp_path) -> None:
    store = build_store(tmp_path)
    with pytest.raises(StoreValidationError):
        store.add_exclusion_day(day=date(2025, 4, 25), kind="vacation", description="x")
