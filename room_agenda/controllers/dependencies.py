"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from room_agenda.repository.base import BookingStore
from room_agenda.repository.sqlite_store import SqliteBookingStore
from room_agenda.services.availability_service import AvailabilityService
from room_agenda.services.booking_service import BookingService
from room_agenda.utils.config import get_settings


def get_booking_store(request: Request) -> BookingStore:
    store = getattr(request.app.state, "booking_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking store is not initialized",
        )
    return store


def get_availability_service(request: Request) -> AvailabilityService:
    service = getattr(request.app.state, "availability_service", None)
    if service is None:
        service = AvailabilityService(get_booking_store(request))
        request.app.state.availability_service = service
    return service


def get_booking_service(request: Request) -> BookingService:
    service = getattr(request.app.state, "booking_service", None)
    if service is None:
        service = BookingService(
            store=get_booking_store(request),
            availability_service=get_availability_service(request),
            settings=get_settings(),
        )
        request.app.state.booking_service = service
    return service


def get_exclusion_registry(request: Request) -> SqliteBookingStore:
    store = get_booking_store(request)
    if not isinstance(store, SqliteBookingStore):
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Exclusion days are managed by the remote booking store",
        )
    return store
