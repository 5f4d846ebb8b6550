"""Domain models for room slots, bookings, exclusions and recurrence rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum, IntEnum
from typing import Optional, Union


class Period(str, Enum):
    MORNING = "manha"
    AFTERNOON = "tarde"


class RoomKind(str, Enum):
    AUDITORIUM = "auditorio"
    MEETING_ROOM = "sala_reuniao"

    @property
    def capacity(self) -> "RoomCapacity":
        return ROOM_CAPACITIES[self]

    @property
    def max_capacity(self) -> int:
        return ROOM_CAPACITIES[self].max_capacity


@dataclass(frozen=True)
class RoomCapacity:
    comfort_capacity: int
    max_capacity: int


ROOM_CAPACITIES: dict[RoomKind, RoomCapacity] = {
    RoomKind.AUDITORIUM: RoomCapacity(comfort_capacity=50, max_capacity=60),
    RoomKind.MEETING_ROOM: RoomCapacity(comfort_capacity=25, max_capacity=30),
}


class Weekday(IntEnum):
    """Weekday numbering shared with ``date.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


WEEKEND_DAYS = frozenset({Weekday.SATURDAY, Weekday.SUNDAY})


class BookingStatus(str, Enum):
    PENDING = "pendente"
    APPROVED = "aprovado"
    REJECTED = "rejeitado"
    CANCELLED = "cancelado"
    INTERNAL_BLOCK = "bloqueado"


# Statuses that hold a slot; at most one booking per SlotKey may be in one of these.
ACTIVE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.APPROVED, BookingStatus.INTERNAL_BLOCK}
)


@dataclass(frozen=True)
class SlotKey:
    date: date
    period: Period
    room: RoomKind


@dataclass(frozen=True)
class BookingTemplate:
    """Booking fields as submitted, before the store assigns an identity."""

    slot: SlotKey
    status: BookingStatus
    headcount: int
    requester_id: Optional[str] = None
    purpose_text: Optional[str] = None
    has_coffee_break: bool = False
    notes: Optional[str] = None
    requester_name: Optional[str] = None
    requester_unit: Optional[str] = None


@dataclass(frozen=True)
class Booking:
    booking_id: int
    slot: SlotKey
    status: BookingStatus
    headcount: int
    requester_id: Optional[str] = None
    purpose_text: Optional[str] = None
    has_coffee_break: bool = False
    notes: Optional[str] = None
    requester_name: Optional[str] = None
    requester_unit: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class ExclusionKind(str, Enum):
    WEEKEND = "weekend"
    HOLIDAY = "holiday"
    ADMIN_BLOCKED = "admin_blocked"


@dataclass(frozen=True)
class ExclusionFact:
    date: date
    kind: ExclusionKind
    reason: str


@dataclass(frozen=True)
class HolidayEntry:
    date: date
    name: str
    holiday_type: str = "feriado_nacional"


@dataclass(frozen=True)
class BlockedDateEntry:
    date: date
    reason: str


@dataclass(frozen=True)
class ExclusionFeed:
    """Whole-day facts for one month as returned by one room's feed."""

    holidays: tuple[HolidayEntry, ...] = ()
    blocked_dates: tuple[BlockedDateEntry, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.holidays and not self.blocked_dates


class MonthlyMode(str, Enum):
    DAY_OF_MONTH = "dia_mes"
    ORDINAL_WEEKDAY = "ordem_semana"


@dataclass(frozen=True)
class WeeklyRecurrence:
    interval_weeks: int
    weekdays: frozenset[Weekday]
    repeat_count: int


@dataclass(frozen=True)
class MonthlyRecurrence:
    mode: MonthlyMode
    repeat_count: int


@dataclass(frozen=True)
class YearlyRecurrence:
    mode: MonthlyMode
    months: frozenset[int]
    repeat_count: int


@dataclass(frozen=True)
class IndefiniteRecurrence:
    month_limit: int


RecurrenceSpec = Union[
    WeeklyRecurrence,
    MonthlyRecurrence,
    YearlyRecurrence,
    IndefiniteRecurrence,
]


@dataclass(frozen=True)
class Viewer:
    """Who is looking at the agenda; requester views hide other people's data."""

    is_admin: bool
    requester_id: Optional[str] = None

    @classmethod
    def admin(cls) -> "Viewer":
        return cls(is_admin=True)

    @classmethod
    def requester(cls, requester_id: str) -> "Viewer":
        return cls(is_admin=False, requester_id=requester_id)

    def owns(self, booking: Booking) -> bool:
        return (
            self.requester_id is not None
            and booking.requester_id is not None
            and booking.requester_id == self.requester_id
        )


class SlotStatus(str, Enum):
    DAY_EXCLUDED = "day_excluded"
    FREE = "free"
    OWN_PENDING = "own_pending"
    OWN_APPROVED = "own_approved"
    OCCUPIED_BY_OTHER = "occupied_by_other"
    ADMIN_INTERNAL_BLOCK = "admin_internal_block"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


BOOKABLE_SLOT_STATUSES = frozenset(
    {SlotStatus.FREE, SlotStatus.REJECTED, SlotStatus.CANCELLED}
)


@dataclass(frozen=True)
class SlotClassification:
    status: SlotStatus
    reason: Optional[str] = None
    booking: Optional[Booking] = None

    @property
    def is_bookable(self) -> bool:
        return self.status in BOOKABLE_SLOT_STATUSES


@dataclass(frozen=True)
class BatchWriteResult:
    inserted: tuple[date, ...]
    conflicts: tuple[date, ...]


@dataclass(frozen=True)
class Actor:
    """Identity performing a store mutation."""

    is_admin: bool
    requester_id: Optional[str] = None

    @classmethod
    def admin(cls) -> "Actor":
        return cls(is_admin=True)

    @classmethod
    def requester(cls, requester_id: str) -> "Actor":
        return cls(is_admin=False, requester_id=requester_id)


@dataclass(frozen=True)
class MonthSummary:
    total: int = 0
    approved: int = 0
    pending: int = 0


@dataclass(frozen=True)
class DayAvailability:
    date: date
    exclusion: Optional[ExclusionFact]
    slots: dict[tuple[RoomKind, Period], SlotClassification] = field(default_factory=dict)


@dataclass(frozen=True)
class MonthAvailability:
    year: int
    month_index: int
    weeks: tuple[tuple[Optional[int], ...], ...]
    days: tuple[DayAvailability, ...]
    summary: Optional[MonthSummary] = None
