"""Embedded SQLite booking store that arbitrates slot conflicts."""

from __future__ import annotations

import sqlite3
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from room_agenda.domain.errors import (
    BookingNotFoundError,
    BookingNotPermittedError,
    SlotConflictError,
    StoreValidationError,
)
from room_agenda.domain.models import (
    ACTIVE_STATUSES,
    WEEKEND_DAYS,
    Actor,
    BatchWriteResult,
    BlockedDateEntry,
    Booking,
    BookingStatus,
    BookingTemplate,
    ExclusionFeed,
    HolidayEntry,
    Period,
    RoomKind,
    SlotKey,
    Weekday,
)
from room_agenda.repository.base import BookingStore
from room_agenda.services.calendar_grid import shift_month
from room_agenda.utils.config import Settings, get_settings
from room_agenda.utils.logger import get_logger


logger = get_logger(__name__)

EXCLUSION_HOLIDAY = "holiday"
EXCLUSION_BLOCKED = "blocked"

_ACTIVE_STATUS_SQL = ", ".join(f"'{status.value}'" for status in sorted(ACTIVE_STATUSES, key=lambda s: s.value))

_BOOKING_COLUMNS = """
    id,
    room,
    date,
    period,
    status,
    headcount,
    requester_id,
    purpose_text,
    coffee_break,
    notes,
    requester_name,
    requester_unit
"""


def _month_bounds(year: int, month_index: int) -> tuple[str, str]:
    next_year, next_month_index = shift_month(year, month_index, 1)
    start = date(year, month_index + 1, 1)
    end = date(next_year, next_month_index + 1, 1)
    return start.isoformat(), end.isoformat()


def _row_to_booking(row: sqlite3.Row) -> Booking:
    return Booking(
        booking_id=int(row["id"]),
        slot=SlotKey(
            date=date.fromisoformat(str(row["date"])),
            period=Period(str(row["period"])),
            room=RoomKind(str(row["room"])),
        ),
        status=BookingStatus(str(row["status"])),
        headcount=int(row["headcount"]),
        requester_id=row["requester_id"],
        purpose_text=row["purpose_text"],
        has_coffee_break=bool(row["coffee_break"]),
        notes=row["notes"],
        requester_name=row["requester_name"],
        requester_unit=row["requester_unit"],
    )


def _template_values(template: BookingTemplate, slot_date: date) -> tuple:
    return (
        template.slot.room.value,
        slot_date.isoformat(),
        template.slot.period.value,
        template.status.value,
        template.headcount,
        template.requester_id,
        template.purpose_text,
        1 if template.has_coffee_break else 0,
        template.notes,
        template.requester_name,
        template.requester_unit,
    )


class SqliteBookingStore(BookingStore):
    """Encapsulates SQLite access so services stay storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create tables and indexes; safe to run on every startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Bookings (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        room TEXT NOT NULL,
                        date TEXT NOT NULL,
                        period TEXT NOT NULL,
                        status TEXT NOT NULL,
                        headcount INTEGER NOT NULL CHECK (headcount > 0),
                        requester_id TEXT,
                        purpose_text TEXT,
                        coffee_break INTEGER NOT NULL DEFAULT 0 CHECK (coffee_break IN (0,1)),
                        notes TEXT,
                        requester_name TEXT,
                        requester_unit TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )
                cursor.execute(
                    f"""
                    CREATE UNIQUE INDEX IF NOT EXISTS idx_bookings_active_slot
                    ON Bookings(room, date, period)
                    WHERE status IN ({_ACTIVE_STATUS_SQL});
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_room_date
                    ON Bookings(room, date);
                    """
                )
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS CalendarExclusions (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        date TEXT NOT NULL,
                        kind TEXT NOT NULL CHECK (kind IN ('holiday', 'blocked')),
                        holiday_type TEXT,
                        description TEXT NOT NULL DEFAULT '',
                        UNIQUE (date, kind)
                    );
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def add_exclusion_day(
        self,
        *,
        day: date,
        kind: str,
        description: str,
        holiday_type: Optional[str] = None,
    ) -> None:
        """Register or replace a holiday or blocked date."""
        if kind not in (EXCLUSION_HOLIDAY, EXCLUSION_BLOCKED):
            raise StoreValidationError(f"unknown exclusion kind: {kind!r}")
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO CalendarExclusions (date, kind, holiday_type, description)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (date, kind)
                DO UPDATE SET holiday_type = excluded.holiday_type,
                              description = excluded.description;
                """,
                (
                    day.isoformat(),
                    kind,
                    (holiday_type or "feriado_nacional") if kind == EXCLUSION_HOLIDAY else None,
                    description.strip(),
                ),
            )
            conn.commit()
        logger.info("Exclusion day saved | date=%s | kind=%s", day.isoformat(), kind)

    def remove_exclusion_day(self, *, day: date, kind: Optional[str] = None) -> None:
        with self._connect() as conn:
            cursor = conn.cursor()
            if kind is None:
                cursor.execute(
                    "DELETE FROM CalendarExclusions WHERE date = ?;",
                    (day.isoformat(),),
                )
            else:
                cursor.execute(
                    "DELETE FROM CalendarExclusions WHERE date = ? AND kind = ?;",
                    (day.isoformat(), kind),
                )
            removed = cursor.rowcount
            conn.commit()
        if removed == 0:
            raise BookingNotFoundError(f"No exclusion registered for {day.isoformat()}")

    def list_exclusions(self, year: int, month_index: int, room: RoomKind) -> ExclusionFeed:
        # Exclusions are whole-day facts shared by every room.
        del room
        start, end = _month_bounds(year, month_index)
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT date, kind, holiday_type, description
                FROM CalendarExclusions
                WHERE date >= ? AND date < ?
                ORDER BY date ASC, kind ASC;
                """,
                (start, end),
            )
            rows = cursor.fetchall()

        holidays = tuple(
            HolidayEntry(
                date=date.fromisoformat(str(row["date"])),
                name=str(row["description"]),
                holiday_type=str(row["holiday_type"] or "feriado_nacional"),
            )
            for row in rows
            if row["kind"] == EXCLUSION_HOLIDAY
        )
        blocked = tuple(
            BlockedDateEntry(
                date=date.fromisoformat(str(row["date"])),
                reason=str(row["description"]),
            )
            for row in rows
            if row["kind"] == EXCLUSION_BLOCKED
        )
        return ExclusionFeed(holidays=holidays, blocked_dates=blocked)

    def list_bookings(self, year: int, month_index: int, room: RoomKind) -> list[Booking]:
        start, end = _month_bounds(year, month_index)
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_BOOKING_COLUMNS}
                FROM Bookings
                WHERE room = ? AND date >= ? AND date < ?
                ORDER BY date ASC, period ASC, id ASC;
                """,
                (room.value, start, end),
            )
            return [_row_to_booking(row) for row in cursor.fetchall()]

    def get_booking(self, booking_id: int) -> Booking:
        with self._connect() as conn:
            return self._get_booking(conn.cursor(), booking_id)

    def _get_booking(self, cursor: sqlite3.Cursor, booking_id: int) -> Booking:
        cursor.execute(
            f"SELECT {_BOOKING_COLUMNS} FROM Bookings WHERE id = ?;",
            (booking_id,),
        )
        row = cursor.fetchone()
        if row is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return _row_to_booking(row)

    def _is_excluded(self, cursor: sqlite3.Cursor, day: date) -> bool:
        if Weekday(day.weekday()) in WEEKEND_DAYS:
            return True
        cursor.execute(
            "SELECT 1 FROM CalendarExclusions WHERE date = ? LIMIT 1;",
            (day.isoformat(),),
        )
        return cursor.fetchone() is not None

    def _is_occupied(
        self,
        cursor: sqlite3.Cursor,
        slot: SlotKey,
        slot_date: date,
        ignore_booking_id: Optional[int] = None,
    ) -> bool:
        cursor.execute(
            f"""
            SELECT id FROM Bookings
            WHERE room = ? AND date = ? AND period = ?
              AND status IN ({_ACTIVE_STATUS_SQL});
            """,
            (slot.room.value, slot_date.isoformat(), slot.period.value),
        )
        return any(int(row["id"]) != ignore_booking_id for row in cursor.fetchall())

    def _insert(self, cursor: sqlite3.Cursor, template: BookingTemplate, slot_date: date) -> int:
        cursor.execute(
            """
            INSERT INTO Bookings (
                room,
                date,
                period,
                status,
                headcount,
                requester_id,
                purpose_text,
                coffee_break,
                notes,
                requester_name,
                requester_unit
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            _template_values(template, slot_date),
        )
        return int(cursor.lastrowid)

    @staticmethod
    def _check_template(template: BookingTemplate) -> None:
        if template.headcount <= 0:
            raise StoreValidationError("headcount must be > 0")

    def create_booking(self, template: BookingTemplate) -> Booking:
        self._check_template(template)
        slot_date = template.slot.date
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE;")
            if self._is_excluded(cursor, slot_date):
                raise SlotConflictError(
                    f"{slot_date.isoformat()} is not available for booking",
                    conflicting_dates=(slot_date,),
                )
            if template.status in ACTIVE_STATUSES and self._is_occupied(cursor, template.slot, slot_date):
                raise SlotConflictError(
                    "This slot is already booked",
                    conflicting_dates=(slot_date,),
                )
            booking_id = self._insert(cursor, template, slot_date)
            booking = self._get_booking(cursor, booking_id)
            conn.commit()
        logger.info(
            "Booking created | id=%s | room=%s | date=%s | period=%s | status=%s",
            booking.booking_id,
            booking.slot.room.value,
            slot_date.isoformat(),
            booking.slot.period.value,
            booking.status.value,
        )
        return booking

    def create_bookings(
        self,
        template: BookingTemplate,
        dates: Sequence[date],
    ) -> BatchWriteResult:
        """Insert every free candidate inside one transaction."""
        self._check_template(template)
        inserted: list[date] = []
        conflicts: list[date] = []
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE;")
            for slot_date in dates:
                if slot_date in inserted or slot_date in conflicts:
                    conflicts.append(slot_date)
                    continue
                if self._is_excluded(cursor, slot_date) or (
                    template.status in ACTIVE_STATUSES
                    and self._is_occupied(cursor, template.slot, slot_date)
                ):
                    conflicts.append(slot_date)
                    continue
                self._insert(cursor, template, slot_date)
                inserted.append(slot_date)
            conn.commit()
        logger.info(
            "Batch write completed | room=%s | period=%s | candidates=%s | inserted=%s | conflicts=%s",
            template.slot.room.value,
            template.slot.period.value,
            len(dates),
            len(inserted),
            len(conflicts),
        )
        return BatchWriteResult(inserted=tuple(inserted), conflicts=tuple(conflicts))

    def update_booking(
        self,
        booking_id: int,
        template: BookingTemplate,
        actor: Actor,
    ) -> Booking:
        self._check_template(template)
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE;")
            current = self._get_booking(cursor, booking_id)
            status = template.status
            if not actor.is_admin:
                if current.requester_id != actor.requester_id:
                    raise BookingNotPermittedError("Only the requester may edit this booking")
                if current.status != BookingStatus.PENDING:
                    raise BookingNotPermittedError("Only pending requests can be edited")
                status = BookingStatus.PENDING

            slot_date = template.slot.date
            if template.slot != current.slot and self._is_excluded(cursor, slot_date):
                raise SlotConflictError(
                    f"{slot_date.isoformat()} is not available for booking",
                    conflicting_dates=(slot_date,),
                )
            if status in ACTIVE_STATUSES and self._is_occupied(
                cursor,
                template.slot,
                slot_date,
                ignore_booking_id=booking_id,
            ):
                raise SlotConflictError(
                    "This slot is already booked",
                    conflicting_dates=(slot_date,),
                )
            cursor.execute(
                """
                UPDATE Bookings
                SET room = ?,
                    date = ?,
                    period = ?,
                    status = ?,
                    headcount = ?,
                    purpose_text = ?,
                    coffee_break = ?,
                    notes = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?;
                """,
                (
                    template.slot.room.value,
                    slot_date.isoformat(),
                    template.slot.period.value,
                    status.value,
                    template.headcount,
                    template.purpose_text,
                    1 if template.has_coffee_break else 0,
                    template.notes,
                    booking_id,
                ),
            )
            booking = self._get_booking(cursor, booking_id)
            conn.commit()
        logger.info("Booking updated | id=%s | status=%s", booking_id, booking.status.value)
        return booking

    def delete_booking(self, booking_id: int, actor: Actor) -> None:
        with self._connect() as conn:
            cursor = conn.cursor()
            current = self._get_booking(cursor, booking_id)
            if not actor.is_admin and current.requester_id != actor.requester_id:
                raise BookingNotPermittedError("Only the requester may delete this booking")
            cursor.execute("DELETE FROM Bookings WHERE id = ?;", (booking_id,))
            conn.commit()
        logger.info("Booking deleted | id=%s", booking_id)

    def count_bookings(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM Bookings;")
            return int(cursor.fetchone()["count"])
