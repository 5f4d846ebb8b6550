"""HTTP client for a remote booking store."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

import requests

from room_agenda.domain.errors import (
    BookingNotFoundError,
    BookingNotPermittedError,
    SlotConflictError,
    StoreContractError,
    StoreValidationError,
    TransportError,
)
from room_agenda.domain.models import (
    Actor,
    BatchWriteResult,
    Booking,
    BookingTemplate,
    ExclusionFeed,
    RoomKind,
)
from room_agenda.repository.base import BookingStore
from room_agenda.repository.wire_adapter import (
    batch_result_from_wire,
    batch_to_wire,
    booking_from_wire,
    bookings_from_wire,
    exclusion_feed_from_wire,
    template_to_wire,
)
from room_agenda.utils.config import Settings, get_settings
from room_agenda.utils.logger import get_logger


logger = get_logger(__name__)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("erro") or body.get("detail") or body)
    return str(body)


class RemoteBookingStore(BookingStore):
    """Talks to the remote agenda API; one HTTP request per operation, no retries."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._base_url = self._settings.remote_store_base_url
        self._timeout = self._settings.remote_store_timeout_seconds
        self._session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.exceptions.RequestException as exc:
            logger.warning("Booking store unreachable | method=%s | url=%s | error=%s", method, url, exc)
            raise TransportError(f"Booking store request failed: {exc}") from exc

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                "Booking store rejected request | method=%s | url=%s | status=%s | message=%s",
                method,
                url,
                response.status_code,
                message,
            )
            if response.status_code == 400 or response.status_code == 422:
                raise StoreValidationError(message)
            if response.status_code == 403:
                raise BookingNotPermittedError(message)
            if response.status_code == 404:
                raise BookingNotFoundError(message)
            if response.status_code == 409:
                raise SlotConflictError(message)
            raise TransportError(f"Booking store error {response.status_code}: {message}")

        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise StoreContractError("Booking store returned a non-JSON body") from exc

    def _agenda(self, year: int, month_index: int, room: RoomKind) -> dict[str, Any]:
        payload = self._request(
            "GET",
            "/salas/agenda-admin",
            params={"ano": year, "mes": month_index + 1, "sala": room.value},
        )
        if not isinstance(payload, dict):
            raise StoreContractError("agenda payload must be an object")
        return payload

    def list_exclusions(self, year: int, month_index: int, room: RoomKind) -> ExclusionFeed:
        return exclusion_feed_from_wire(self._agenda(year, month_index, room))

    def list_bookings(self, year: int, month_index: int, room: RoomKind) -> list[Booking]:
        payload = self._agenda(year, month_index, room)
        return bookings_from_wire(payload.get("reservas") or [], room)

    def _single_booking(self, payload: Any, room: RoomKind) -> Booking:
        record = payload.get("reserva", payload) if isinstance(payload, dict) else None
        if not isinstance(record, dict):
            raise StoreContractError("booking payload must be an object")
        booking = booking_from_wire(record, default_room=room)
        if booking is None:
            raise StoreContractError("booking payload has no date")
        return booking

    def create_booking(self, template: BookingTemplate) -> Booking:
        payload = self._request("POST", "/salas/reservas", json=template_to_wire(template))
        return self._single_booking(payload, template.slot.room)

    def create_bookings(
        self,
        template: BookingTemplate,
        dates: Sequence[date],
    ) -> BatchWriteResult:
        payload = self._request("POST", "/salas/admin/reservas/lote", json=batch_to_wire(template, dates))
        if not isinstance(payload, dict):
            raise StoreContractError("batch reply must be an object")
        return batch_result_from_wire(payload)

    def update_booking(
        self,
        booking_id: int,
        template: BookingTemplate,
        actor: Actor,
    ) -> Booking:
        path = f"/salas/admin/reservas/{booking_id}" if actor.is_admin else f"/salas/minhas/{booking_id}"
        payload = self._request("PUT", path, json=template_to_wire(template))
        return self._single_booking(payload, template.slot.room)

    def delete_booking(self, booking_id: int, actor: Actor) -> None:
        path = f"/salas/admin/reservas/{booking_id}" if actor.is_admin else f"/salas/minhas/{booking_id}"
        self._request("DELETE", path)
