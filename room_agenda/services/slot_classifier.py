"""Single-status classification of one (date, period, room) slot."""

from __future__ import annotations

from typing import Optional

from room_agenda.domain.models import (
    Booking,
    BookingStatus,
    ExclusionFact,
    SlotClassification,
    SlotKey,
    SlotStatus,
    Viewer,
)


_ADMIN_RELEASED_STATUS = {
    BookingStatus.REJECTED: SlotStatus.REJECTED,
    BookingStatus.CANCELLED: SlotStatus.CANCELLED,
}

_OWN_STATUS = {
    BookingStatus.PENDING: SlotStatus.OWN_PENDING,
    BookingStatus.APPROVED: SlotStatus.OWN_APPROVED,
}


def classify_slot(
    slot: SlotKey,
    exclusion: Optional[ExclusionFact],
    booking: Optional[Booking],
    viewer: Viewer,
) -> SlotClassification:
    """Return the one status a viewer sees for ``slot``.

    Precedence, first match wins:
      1. a whole-day exclusion suppresses every booking on that day;
      2. no booking means the slot is free;
      3. rejected or cancelled bookings release the slot (administrators still
         see which one it was);
      4. internal blocks are never bookable, and only administrators see why;
      5. requesters see other people's bookings as occupied, without details;
      6. pending/approved bookings otherwise show their own state.
    """
    del slot
    if exclusion is not None:
        return SlotClassification(status=SlotStatus.DAY_EXCLUDED, reason=exclusion.reason)

    if booking is None:
        return SlotClassification(status=SlotStatus.FREE)

    if booking.status in _ADMIN_RELEASED_STATUS:
        if viewer.is_admin:
            return SlotClassification(
                status=_ADMIN_RELEASED_STATUS[booking.status],
                booking=booking,
            )
        return SlotClassification(status=SlotStatus.FREE)

    if booking.status == BookingStatus.INTERNAL_BLOCK:
        if viewer.is_admin:
            return SlotClassification(
                status=SlotStatus.ADMIN_INTERNAL_BLOCK,
                reason=booking.purpose_text,
                booking=booking,
            )
        return SlotClassification(status=SlotStatus.ADMIN_INTERNAL_BLOCK)

    if not viewer.is_admin and not viewer.owns(booking):
        return SlotClassification(status=SlotStatus.OCCUPIED_BY_OTHER)

    return SlotClassification(status=_OWN_STATUS[booking.status], booking=booking)
