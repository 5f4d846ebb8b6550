"""HTTP controller layer for booking mutations and the exclusion-day registry."""

from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from room_agenda.controllers.agenda_controller import BookingResponse, RecurrencePayload
from room_agenda.controllers.dependencies import (
    get_booking_service,
    get_exclusion_registry,
)
from room_agenda.domain.errors import (
    BookingNotFoundError,
    BookingNotPermittedError,
    BookingValidationError,
    SlotConflictError,
    StoreValidationError,
    SubmissionCancelledError,
    TransportError,
)
from room_agenda.domain.models import (
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
from room_agenda.services.booking_service import BookingService, SeriesOutcome
from room_agenda.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["bookings"])

_CREATABLE_STATUSES = {
    BookingStatus.PENDING,
    BookingStatus.APPROVED,
    BookingStatus.INTERNAL_BLOCK,
}


class AdminBookingRequest(BaseModel):
    """Administrator booking; ``recurrence`` turns it into a series anchored on ``date``."""

    room: RoomKind
    date: date
    period: Period
    status: BookingStatus = BookingStatus.APPROVED
    headcount: int
    purpose_text: str | None = None
    has_coffee_break: bool = False
    notes: str | None = None
    requester_id: str | None = None
    recurrence: RecurrencePayload | None = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: BookingStatus) -> BookingStatus:
        if value not in _CREATABLE_STATUSES:
            raise ValueError("new bookings must be pending, approved or an internal block")
        return value

    def to_template(self) -> BookingTemplate:
        return BookingTemplate(
            slot=SlotKey(date=self.date, period=self.period, room=self.room),
            status=self.status,
            headcount=self.headcount,
            requester_id=self.requester_id,
            purpose_text=self.purpose_text,
            has_coffee_break=self.has_coffee_break,
            notes=self.notes,
        )


class AdminBookingUpdateRequest(BaseModel):
    room: RoomKind
    date: date
    period: Period
    status: BookingStatus
    headcount: int
    purpose_text: str | None = None
    has_coffee_break: bool = False
    notes: str | None = None
    requester_id: str | None = None

    def to_template(self) -> BookingTemplate:
        return BookingTemplate(
            slot=SlotKey(date=self.date, period=self.period, room=self.room),
            status=self.status,
            headcount=self.headcount,
            requester_id=self.requester_id,
            purpose_text=self.purpose_text,
            has_coffee_break=self.has_coffee_break,
            notes=self.notes,
        )


class BookingRequestBody(BaseModel):
    """Requester-side booking fields; status is always forced to pending."""

    room: RoomKind
    date: date
    period: Period
    headcount: int
    purpose_text: str = Field(min_length=1)
    has_coffee_break: bool = False
    requester_name: str | None = None
    requester_unit: str | None = None

    @field_validator("purpose_text")
    @classmethod
    def validate_purpose_text(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("purpose_text must be non-empty")
        return cleaned

    def to_template(self) -> BookingTemplate:
        return BookingTemplate(
            slot=SlotKey(date=self.date, period=self.period, room=self.room),
            status=BookingStatus.PENDING,
            headcount=self.headcount,
            purpose_text=self.purpose_text,
            has_coffee_break=self.has_coffee_break,
            requester_name=self.requester_name,
            requester_unit=self.requester_unit,
        )


class NewBookingRequest(BookingRequestBody):
    requester_id: str = Field(min_length=1)

    @field_validator("requester_id")
    @classmethod
    def validate_requester_id(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("requester_id must be non-empty")
        return cleaned


class SeriesOutcomeResponse(BaseModel):
    kind: str
    message: str
    candidates: list[date]
    inserted: list[date]
    conflicts: list[date]
    preempted: list[date]

    @classmethod
    def from_outcome(cls, outcome: SeriesOutcome) -> "SeriesOutcomeResponse":
        return cls(
            kind=outcome.kind.value,
            message=outcome.message,
            candidates=list(outcome.candidates),
            inserted=list(outcome.inserted),
            conflicts=list(outcome.conflicts),
            preempted=list(outcome.preempted),
        )


class AdminCreateResponse(BaseModel):
    message: str
    booking: BookingResponse | None = None
    series: SeriesOutcomeResponse | None = None


class ExclusionDayRequest(BaseModel):
    date: date
    kind: Literal["holiday", "blocked"]
    description: str = Field(min_length=1)
    holiday_type: str | None = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("description must be non-empty")
        return cleaned


class ExclusionDayResponse(BaseModel):
    date: date
    kind: str
    description: str
    holiday_type: str | None = None


def _store_http_error(exc: Exception) -> HTTPException:
    """Translate service and store failures into the HTTP status they map to."""
    if isinstance(exc, (SlotConflictError, SubmissionCancelledError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, BookingNotPermittedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, BookingNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (BookingValidationError, StoreValidationError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


_HANDLED_ERRORS = (
    SlotConflictError,
    SubmissionCancelledError,
    BookingNotPermittedError,
    BookingNotFoundError,
    BookingValidationError,
    StoreValidationError,
    TransportError,
)


def _clean_requester_id(requester_id: str) -> str:
    cleaned = requester_id.strip()
    if not cleaned:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="requester_id must be non-empty",
        )
    return cleaned


@router.post(
    "/admin/bookings",
    response_model=AdminCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_admin_booking(
    payload: AdminBookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> AdminCreateResponse:
    """Create one booking, or a series when a recurrence rule is attached."""
    template = payload.to_template()
    try:
        if payload.recurrence is None:
            booking = service.create_booking(template)
            return AdminCreateResponse(
                message="Booking created.",
                booking=BookingResponse.from_booking(booking),
            )

        spec = payload.recurrence.to_spec()
        candidates = service.preview_series(template.slot.date, spec)
        outcome = service.create_series(
            template,
            spec,
            known_bookings=service.known_bookings_for(candidates),
        )
        return AdminCreateResponse(
            message=outcome.message,
            series=SeriesOutcomeResponse.from_outcome(outcome),
        )
    except _HANDLED_ERRORS as exc:
        raise _store_http_error(exc) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected admin booking failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create booking",
        ) from exc


@router.put(
    "/admin/bookings/{booking_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
async def update_admin_booking(
    booking_id: int,
    payload: AdminBookingUpdateRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = service.update_booking(booking_id, payload.to_template())
        return BookingResponse.from_booking(booking)
    except _HANDLED_ERRORS as exc:
        raise _store_http_error(exc) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected admin update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update booking",
        ) from exc


@router.delete(
    "/admin/bookings/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_admin_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
) -> None:
    try:
        service.delete_booking(booking_id)
    except _HANDLED_ERRORS as exc:
        raise _store_http_error(exc) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected admin delete failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete booking",
        ) from exc


@router.post(
    "/bookings/requests",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_booking(
    payload: NewBookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Submit a pending request; the slot must be free for this requester."""
    try:
        booking = service.request_booking(payload.to_template(), payload.requester_id)
        return BookingResponse.from_booking(booking)
    except _HANDLED_ERRORS as exc:
        raise _store_http_error(exc) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected booking request failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit booking request",
        ) from exc


@router.put(
    "/bookings/requests/{booking_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
async def update_booking_request(
    booking_id: int,
    payload: BookingRequestBody,
    requester_id: str = Query(min_length=1),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    requester_id = _clean_requester_id(requester_id)
    try:
        booking = service.update_request(booking_id, payload.to_template(), requester_id)
        return BookingResponse.from_booking(booking)
    except _HANDLED_ERRORS as exc:
        raise _store_http_error(exc) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected booking request update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update booking request",
        ) from exc


@router.delete(
    "/bookings/requests/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_booking_request(
    booking_id: int,
    requester_id: str = Query(min_length=1),
    service: BookingService = Depends(get_booking_service),
) -> None:
    requester_id = _clean_requester_id(requester_id)
    try:
        service.delete_request(booking_id, requester_id)
    except _HANDLED_ERRORS as exc:
        raise _store_http_error(exc) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected booking request delete failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete booking request",
        ) from exc


@router.post(
    "/admin/exclusions",
    response_model=ExclusionDayResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_exclusion_day(
    payload: ExclusionDayRequest,
    registry: SqliteBookingStore = Depends(get_exclusion_registry),
) -> ExclusionDayResponse:
    """Register a holiday or an administrative blocked date."""
    kind = EXCLUSION_HOLIDAY if payload.kind == "holiday" else EXCLUSION_BLOCKED
    try:
        registry.add_exclusion_day(
            day=payload.date,
            kind=kind,
            description=payload.description,
            holiday_type=payload.holiday_type,
        )
    except StoreValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return ExclusionDayResponse(
        date=payload.date,
        kind=kind,
        description=payload.description,
        holiday_type=(payload.holiday_type or "feriado_nacional") if kind == EXCLUSION_HOLIDAY else None,
    )


@router.delete(
    "/admin/exclusions/{day}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_exclusion_day(
    day: date,
    kind: Literal["holiday", "blocked"] | None = Query(default=None),
    registry: SqliteBookingStore = Depends(get_exclusion_registry),
) -> None:
    try:
        registry.remove_exclusion_day(day=day, kind=kind)
    except BookingNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
