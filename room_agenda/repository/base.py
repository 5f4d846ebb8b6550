from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Sequence

from room_agenda.domain.models import (
    Actor,
    BatchWriteResult,
    Booking,
    BookingTemplate,
    ExclusionFeed,
    RoomKind,
)


class BookingStore(ABC):
    """Boundary to whatever persists bookings and arbitrates slot conflicts."""

    @abstractmethod
    def list_exclusions(self, year: int, month_index: int, room: RoomKind) -> ExclusionFeed:
        """Holidays and blocked dates of one month, as seen by one room's feed."""
        raise NotImplementedError

    @abstractmethod
    def list_bookings(self, year: int, month_index: int, room: RoomKind) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def create_booking(self, template: BookingTemplate) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def create_bookings(
        self,
        template: BookingTemplate,
        dates: Sequence[date],
    ) -> BatchWriteResult:
        """Insert one booking per candidate date; occupied dates come back as conflicts."""
        raise NotImplementedError

    @abstractmethod
    def update_booking(
        self,
        booking_id: int,
        template: BookingTemplate,
        actor: Actor,
    ) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def delete_booking(self, booking_id: int, actor: Actor) -> None:
        raise NotImplementedError
