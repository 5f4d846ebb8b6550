"""HTTP controller layer for month grids, agenda views and recurrence previews."""

from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from room_agenda.controllers.dependencies import get_availability_service, get_booking_service
from room_agenda.domain.errors import BookingStoreError, BookingValidationError, TransportError
from room_agenda.domain.models import (
    Booking,
    DayAvailability,
    IndefiniteRecurrence,
    MonthAvailability,
    MonthlyMode,
    MonthlyRecurrence,
    Period,
    RecurrenceSpec,
    RoomKind,
    SlotStatus,
    Viewer,
    Weekday,
    WeeklyRecurrence,
    YearlyRecurrence,
)
from room_agenda.services.availability_service import AvailabilityService
from room_agenda.services.booking_service import BookingService
from room_agenda.services.calendar_grid import build_month_grid
from room_agenda.utils.config import get_settings
from room_agenda.utils.logger import get_logger


logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(tags=["agenda"])


class RecurrencePayload(BaseModel):
    """Recurrence rule as sent by clients; business limits are checked by the service."""

    type: Literal["weekly", "monthly", "yearly", "indefinite"]
    repeat_count: int | None = None
    interval_weeks: int = 1
    weekdays: list[Weekday] = Field(default_factory=list)
    mode: MonthlyMode = MonthlyMode.DAY_OF_MONTH
    months: list[int] = Field(default_factory=list)
    month_limit: int | None = None

    def to_spec(self) -> RecurrenceSpec:
        repeat_count = (
            self.repeat_count
            if self.repeat_count is not None
            else settings.recurrence_default_repeat_count
        )
        if self.type == "weekly":
            return WeeklyRecurrence(
                interval_weeks=self.interval_weeks,
                weekdays=frozenset(self.weekdays),
                repeat_count=repeat_count,
            )
        if self.type == "monthly":
            return MonthlyRecurrence(mode=self.mode, repeat_count=repeat_count)
        if self.type == "yearly":
            return YearlyRecurrence(
                mode=self.mode,
                months=frozenset(self.months),
                repeat_count=repeat_count,
            )
        return IndefiniteRecurrence(
            month_limit=(
                self.month_limit
                if self.month_limit is not None
                else settings.recurrence_default_month_limit
            )
        )


class RecurrencePreviewRequest(BaseModel):
    anchor: date
    recurrence: RecurrencePayload


class RecurrencePreviewResponse(BaseModel):
    anchor: date
    dates: list[date]
    count: int = Field(ge=0)


class MonthGridResponse(BaseModel):
    year: int
    month: int = Field(ge=1, le=12)
    weeks: list[list[int | None]]


class BookingResponse(BaseModel):
    id: int
    room: RoomKind
    date: date
    period: Period
    status: str
    headcount: int = Field(ge=0)
    requester_id: str | None = None
    purpose_text: str | None = None
    has_coffee_break: bool = False
    notes: str | None = None
    requester_name: str | None = None
    requester_unit: str | None = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.booking_id,
            room=booking.slot.room,
            date=booking.slot.date,
            period=booking.slot.period,
            status=booking.status.value,
            headcount=booking.headcount,
            requester_id=booking.requester_id,
            purpose_text=booking.purpose_text,
            has_coffee_break=booking.has_coffee_break,
            notes=booking.notes,
            requester_name=booking.requester_name,
            requester_unit=booking.requester_unit,
        )


class SlotResponse(BaseModel):
    room: RoomKind
    period: Period
    status: SlotStatus
    bookable: bool
    reason: str | None = None
    booking: BookingResponse | None = None


class ExclusionResponse(BaseModel):
    kind: str
    reason: str


class DayResponse(BaseModel):
    date: date
    exclusion: ExclusionResponse | None = None
    slots: list[SlotResponse]


class MonthSummaryResponse(BaseModel):
    total: int = Field(ge=0)
    approved: int = Field(ge=0)
    pending: int = Field(ge=0)


class MonthAgendaResponse(BaseModel):
    year: int
    month: int = Field(ge=1, le=12)
    weeks: list[list[int | None]]
    days: list[DayResponse]
    summary: MonthSummaryResponse | None = None


def _day_response(day: DayAvailability) -> DayResponse:
    return DayResponse(
        date=day.date,
        exclusion=(
            ExclusionResponse(kind=day.exclusion.kind.value, reason=day.exclusion.reason)
            if day.exclusion is not None
            else None
        ),
        slots=[
            SlotResponse(
                room=room,
                period=period,
                status=classification.status,
                bookable=classification.is_bookable,
                reason=classification.reason,
                booking=(
                    BookingResponse.from_booking(classification.booking)
                    if classification.booking is not None
                    else None
                ),
            )
            for (room, period), classification in day.slots.items()
        ],
    )


def _agenda_response(view: MonthAvailability) -> MonthAgendaResponse:
    return MonthAgendaResponse(
        year=view.year,
        month=view.month_index + 1,
        weeks=[list(week) for week in view.weeks],
        days=[_day_response(day) for day in view.days],
        summary=(
            MonthSummaryResponse(
                total=view.summary.total,
                approved=view.summary.approved,
                pending=view.summary.pending,
            )
            if view.summary is not None
            else None
        ),
    )


def _month_view(
    service: AvailabilityService,
    *,
    year: int,
    month: int,
    viewer: Viewer,
) -> MonthAgendaResponse:
    try:
        view = service.month_view(year=year, month_index=month - 1, viewer=viewer)
        return _agenda_response(view)
    except TransportError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    except (BookingValidationError, BookingStoreError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected agenda failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load agenda",
        ) from exc


@router.get(
    "/calendar/{year}/{month}",
    response_model=MonthGridResponse,
    status_code=status.HTTP_200_OK,
)
async def month_grid(year: int, month: int) -> MonthGridResponse:
    """Sunday-first week rows for one month."""
    try:
        weeks = build_month_grid(year, month - 1)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return MonthGridResponse(year=year, month=month, weeks=[list(week) for week in weeks])


@router.get(
    "/agenda/admin",
    response_model=MonthAgendaResponse,
    status_code=status.HTTP_200_OK,
)
async def admin_agenda(
    year: int = Query(ge=1, le=9999),
    month: int = Query(ge=1, le=12),
    service: AvailabilityService = Depends(get_availability_service),
) -> MonthAgendaResponse:
    return _month_view(service, year=year, month=month, viewer=Viewer.admin())


@router.get(
    "/agenda/requester",
    response_model=MonthAgendaResponse,
    status_code=status.HTTP_200_OK,
)
async def requester_agenda(
    year: int = Query(ge=1, le=9999),
    month: int = Query(ge=1, le=12),
    requester_id: str = Query(min_length=1),
    service: AvailabilityService = Depends(get_availability_service),
) -> MonthAgendaResponse:
    """Requester view; other people's bookings are reported as occupied only."""
    requester_id = requester_id.strip()
    if not requester_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="requester_id must be non-empty",
        )
    return _month_view(
        service,
        year=year,
        month=month,
        viewer=Viewer.requester(requester_id),
    )


@router.post(
    "/recurrence/preview",
    response_model=RecurrencePreviewResponse,
    status_code=status.HTTP_200_OK,
)
async def preview_recurrence(
    payload: RecurrencePreviewRequest,
    service: BookingService = Depends(get_booking_service),
) -> RecurrencePreviewResponse:
    try:
        dates = service.preview_series(payload.anchor, payload.recurrence.to_spec())
    except BookingValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return RecurrencePreviewResponse(anchor=payload.anchor, dates=list(dates), count=len(dates))
