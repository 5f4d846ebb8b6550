"""Exception taxonomy shared by services, stores and controllers."""

from __future__ import annotations

from datetime import date
from typing import Sequence


class BookingValidationError(ValueError):
    """Raised when a booking template or recurrence rule breaks a business rule."""


class SlotUnavailableError(BookingValidationError):
    """Raised when a requester asks for a slot that is not bookable."""


class RecurrenceComputeError(AssertionError):
    """Raised when the recurrence anchor is not a usable civil date."""


class SubmissionCancelledError(Exception):
    """Raised when the caller abandoned a batch submission.

    Nothing is assumed about which candidate dates were persisted.
    """


class BookingStoreError(Exception):
    """Base failure reported by a booking store."""


class TransportError(BookingStoreError):
    """Raised when the store cannot be reached or answers with a server error."""


class StoreContractError(TransportError):
    """Raised when a store reply does not respect the batch write contract."""


class StoreValidationError(BookingStoreError):
    """Raised when the store rejects a template it received."""


class SlotConflictError(BookingStoreError):
    """Raised when a single write targets a slot that is already held."""

    def __init__(self, message: str, conflicting_dates: Sequence[date] = ()) -> None:
        super().__init__(message)
        self.conflicting_dates = tuple(conflicting_dates)


class BookingNotFoundError(BookingStoreError):
    """Raised when a booking id does not exist."""


class BookingNotPermittedError(BookingStoreError):
    """Raised when the actor may not mutate the booking."""
