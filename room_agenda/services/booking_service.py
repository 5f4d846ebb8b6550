"""Booking request composition: validation, series expansion and store submission."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Iterable, Optional, Sequence

from room_agenda.domain.constraints import (
    RecurrenceLimits,
    validate_booking_template,
    validate_recurrence_spec,
)
from room_agenda.domain.errors import (
    BookingValidationError,
    SlotUnavailableError,
    StoreContractError,
    SubmissionCancelledError,
)
from room_agenda.domain.models import (
    Actor,
    BatchWriteResult,
    Booking,
    BookingStatus,
    BookingTemplate,
    RecurrenceSpec,
    SlotClassification,
    SlotKey,
    Viewer,
)
from room_agenda.repository.base import BookingStore
from room_agenda.services.availability_service import AvailabilityService
from room_agenda.services.recurrence_service import expand_recurrence
from room_agenda.services.slot_classifier import classify_slot
from room_agenda.utils.config import Settings, get_settings
from room_agenda.utils.logger import get_logger


logger = get_logger(__name__)


class SeriesOutcomeKind(str, Enum):
    CREATED = "created"
    PARTIAL = "partial"
    NOTHING_CREATED = "nothing_created"


@dataclass(frozen=True)
class SeriesOutcome:
    """Result of one series submission.

    ``preempted`` dates never reach the store. The store's batch invariant
    therefore holds over ``candidates`` minus ``preempted``: those dates are
    split exactly between ``inserted`` and ``conflicts``.
    """

    candidates: tuple[date, ...]
    inserted: tuple[date, ...]
    conflicts: tuple[date, ...]
    preempted: tuple[date, ...] = ()

    @property
    def kind(self) -> SeriesOutcomeKind:
        if not self.inserted:
            return SeriesOutcomeKind.NOTHING_CREATED
        if self.conflicts or self.preempted:
            return SeriesOutcomeKind.PARTIAL
        return SeriesOutcomeKind.CREATED

    @property
    def message(self) -> str:
        created = len(self.inserted)
        skipped = len(self.conflicts) + len(self.preempted)
        if created:
            base = "Booking created." if created == 1 else f"{created} bookings created."
            if skipped:
                return f"{base} Some dates were already taken and were skipped ({skipped})."
            return base
        if skipped:
            return "No booking created: every date was already taken."
        return "No booking created."


def check_batch_reply(submitted: Sequence[date], result: BatchWriteResult) -> None:
    """Every submitted date must come back exactly once, as inserted or as a conflict."""
    inserted = set(result.inserted)
    conflicts = set(result.conflicts)
    if len(result.inserted) + len(result.conflicts) != len(submitted):
        raise StoreContractError(
            f"store answered {len(result.inserted)} inserted and {len(result.conflicts)} "
            f"conflicts for {len(submitted)} candidates"
        )
    if inserted & conflicts:
        raise StoreContractError("store reported the same date as inserted and conflicting")
    if not (inserted | conflicts) <= set(submitted):
        raise StoreContractError("store reported dates that were not submitted")


class BookingService:
    """Validates booking templates and relays them to the booking store."""

    def __init__(
        self,
        store: BookingStore,
        availability_service: Optional[AvailabilityService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store
        self._availability = availability_service or AvailabilityService(store)
        self._limits = RecurrenceLimits(
            max_month_limit=self._settings.recurrence_max_month_limit,
            max_interval_weeks=self._settings.recurrence_max_interval_weeks,
            max_repeat_count=self._settings.recurrence_max_repeat_count,
        )

    @property
    def recurrence_limits(self) -> RecurrenceLimits:
        return self._limits

    def _validate_requester_template(self, template: BookingTemplate) -> None:
        validate_booking_template(template)
        if not (template.purpose_text or "").strip():
            raise BookingValidationError("purpose_text is required for booking requests")

    def _classify_for(self, slot: SlotKey, viewer: Viewer) -> SlotClassification:
        exclusions = self._availability.load_exclusions(slot.date.year, slot.date.month - 1)
        bookings = self._store.list_bookings(slot.date.year, slot.date.month - 1, slot.room)
        current = next(
            (booking for booking in bookings if booking.slot == slot and booking.is_active),
            None,
        )
        return classify_slot(slot, exclusions.get(slot.date), current, viewer)

    def _ensure_day_open(self, slot: SlotKey) -> None:
        exclusions = self._availability.load_exclusions(slot.date.year, slot.date.month - 1)
        fact = exclusions.get(slot.date)
        if fact is not None:
            raise SlotUnavailableError(f"{slot.date.isoformat()} is not available: {fact.reason}")

    def preview_series(self, anchor: date, spec: RecurrenceSpec) -> tuple[date, ...]:
        return expand_recurrence(anchor, spec, self._limits)

    def known_bookings_for(self, dates: Iterable[date]) -> list[Booking]:
        """Load every booking in the months touched by ``dates``."""
        months = sorted({(value.year, value.month - 1) for value in dates})
        bookings: list[Booking] = []
        for year, month_index in months:
            bookings.extend(self._availability.load_bookings(year, month_index))
        return bookings

    def create_booking(self, template: BookingTemplate) -> Booking:
        """Create one booking as an administrator."""
        validate_booking_template(template)
        self._ensure_day_open(template.slot)
        booking = self._store.create_booking(template)
        logger.info(
            "Admin booking created | id=%s | status=%s",
            booking.booking_id,
            booking.status.value,
        )
        return booking

    def create_series(
        self,
        template: BookingTemplate,
        spec: RecurrenceSpec,
        *,
        known_bookings: Iterable[Booking] = (),
        cancel_event: Optional[threading.Event] = None,
    ) -> SeriesOutcome:
        """Expand ``spec`` from the template's date and submit one batch.

        Dates already held by a known active booking on the same room and
        period are dropped before submission and reported as preempted. The
        store's inserted/conflict split is returned as received.
        """
        validate_booking_template(template)
        validate_recurrence_spec(spec, self._limits)
        candidates = expand_recurrence(template.slot.date, spec, self._limits)
        if not candidates:
            raise BookingValidationError("The recurrence rule produces no dates from this start date")

        taken = {
            booking.slot.date
            for booking in known_bookings
            if booking.is_active
            and booking.slot.room == template.slot.room
            and booking.slot.period == template.slot.period
        }
        preempted = tuple(value for value in candidates if value in taken)
        submitted = [value for value in candidates if value not in taken]

        if not submitted:
            logger.info(
                "Series skipped | candidates=%s | preempted=%s",
                len(candidates),
                len(preempted),
            )
            return SeriesOutcome(candidates=candidates, inserted=(), conflicts=(), preempted=preempted)

        if cancel_event is not None and cancel_event.is_set():
            raise SubmissionCancelledError("Series submission cancelled before it was sent")

        result = self._store.create_bookings(template, submitted)
        if cancel_event is not None and cancel_event.is_set():
            raise SubmissionCancelledError(
                "Series submission cancelled while waiting for the store; outcome unknown"
            )
        check_batch_reply(submitted, result)

        outcome = SeriesOutcome(
            candidates=candidates,
            inserted=tuple(result.inserted),
            conflicts=tuple(result.conflicts),
            preempted=preempted,
        )
        logger.info(
            "Series submitted | room=%s | period=%s | candidates=%s | inserted=%s | conflicts=%s | preempted=%s | kind=%s",
            template.slot.room.value,
            template.slot.period.value,
            len(candidates),
            len(outcome.inserted),
            len(outcome.conflicts),
            len(preempted),
            outcome.kind.value,
        )
        return outcome

    def update_booking(self, booking_id: int, template: BookingTemplate) -> Booking:
        validate_booking_template(template)
        return self._store.update_booking(booking_id, template, Actor.admin())

    def delete_booking(self, booking_id: int) -> None:
        self._store.delete_booking(booking_id, Actor.admin())

    def request_booking(self, template: BookingTemplate, requester_id: str) -> Booking:
        """Create a pending request on behalf of ``requester_id``."""
        template = replace(template, status=BookingStatus.PENDING, requester_id=requester_id)
        self._validate_requester_template(template)
        classification = self._classify_for(template.slot, Viewer.requester(requester_id))
        if not classification.is_bookable:
            raise SlotUnavailableError("This slot is not available for booking")
        booking = self._store.create_booking(template)
        logger.info("Booking requested | id=%s | requester_id=%s", booking.booking_id, requester_id)
        return booking

    def update_request(
        self,
        booking_id: int,
        template: BookingTemplate,
        requester_id: str,
    ) -> Booking:
        template = replace(template, status=BookingStatus.PENDING, requester_id=requester_id)
        self._validate_requester_template(template)
        return self._store.update_booking(booking_id, template, Actor.requester(requester_id))

    def delete_request(self, booking_id: int, requester_id: str) -> None:
        self._store.delete_booking(booking_id, Actor.requester(requester_id))
