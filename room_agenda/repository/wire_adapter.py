"""Translation between store wire records and the typed domain model.

Store payloads use Portuguese field names and several historical aliases for
the same field. All of that is absorbed here so the rest of the package only
sees ``Booking``, ``ExclusionFeed`` and ``BatchWriteResult``.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence

from room_agenda.domain.errors import StoreContractError
from room_agenda.domain.models import (
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
)


_STATUS_ALIASES = {
    "pendente": BookingStatus.PENDING,
    "em_analise": BookingStatus.PENDING,
    "solicitado": BookingStatus.PENDING,
    "aprovado": BookingStatus.APPROVED,
    "confirmado": BookingStatus.APPROVED,
    "rejeitado": BookingStatus.REJECTED,
    "cancelado": BookingStatus.CANCELLED,
    "bloqueado": BookingStatus.INTERNAL_BLOCK,
}


def _first(record: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = record.get(name)
        if value is not None:
            return value
    return None


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_wire_date(value: Any) -> Optional[date]:
    """Read the date part of an ISO date or timestamp string."""
    if value is None:
        return None
    if isinstance(value, date):
        return value
    text = str(value)[:10]
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise StoreContractError(f"invalid date in store payload: {value!r}") from exc


def parse_status(value: Any) -> BookingStatus:
    key = str(value or "pendente").strip().lower()
    try:
        return _STATUS_ALIASES[key]
    except KeyError as exc:
        raise StoreContractError(f"unknown booking status in store payload: {value!r}") from exc


_TRUE_WORDS = frozenset({"true", "1", "sim", "s", "yes"})
_FALSE_WORDS = frozenset({"false", "0", "nao", "não", "n", "no", ""})


def parse_wire_flag(value: Any) -> bool:
    """Read a boolean flag sent as a JSON bool, a 0/1 number or a word."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    key = str(value).strip().lower()
    if key in _TRUE_WORDS:
        return True
    if key in _FALSE_WORDS:
        return False
    raise StoreContractError(f"invalid boolean flag in store payload: {value!r}")


def booking_from_wire(record: Mapping[str, Any], default_room: Optional[RoomKind] = None) -> Optional[Booking]:
    """Build a Booking from a store record; records without a date are ignored."""
    booking_date = parse_wire_date(_first(record, "data", "dataISO", "dia"))
    if booking_date is None:
        return None

    raw_room = _first(record, "sala", "room")
    raw_period = _first(record, "periodo", "turno", "slot") or Period.MORNING.value
    try:
        room = RoomKind(raw_room) if raw_room is not None else default_room
        period = Period(raw_period)
    except ValueError as exc:
        raise StoreContractError(f"invalid slot in store payload: {exc}") from exc
    if room is None:
        raise StoreContractError("store record has no room")

    raw_id = _first(record, "id", "reserva_id")
    try:
        booking_id = int(raw_id)
    except (TypeError, ValueError) as exc:
        raise StoreContractError(f"invalid booking id in store payload: {raw_id!r}") from exc

    raw_headcount = _first(record, "qtd_pessoas", "qtdPessoas", "qtd", "capacidade")
    try:
        headcount = int(raw_headcount or 0)
    except (TypeError, ValueError) as exc:
        raise StoreContractError(f"invalid headcount in store payload: {raw_headcount!r}") from exc

    requester_id = _first(record, "solicitante_id", "usuario_id", "user_id")
    return Booking(
        booking_id=booking_id,
        slot=SlotKey(date=booking_date, period=period, room=room),
        status=parse_status(record.get("status")),
        headcount=headcount,
        requester_id=str(requester_id) if requester_id is not None else None,
        purpose_text=_text_or_none(_first(record, "finalidade", "descricao", "titulo", "assunto")),
        has_coffee_break=parse_wire_flag(_first(record, "coffee_break", "coffeeBreak", "coffee")),
        notes=_text_or_none(_first(record, "observacao", "obs", "observacao_admin")),
        requester_name=_text_or_none(
            _first(record, "solicitante_nome", "usuario_nome", "nome_solicitante", "nome")
        ),
        requester_unit=_text_or_none(
            _first(record, "solicitante_unidade", "unidade", "unidade_nome", "setor")
        ),
    )


def bookings_from_wire(records: Iterable[Mapping[str, Any]], room: RoomKind) -> list[Booking]:
    bookings: list[Booking] = []
    for record in records:
        booking = booking_from_wire(record, default_room=room)
        if booking is None or booking.slot.room != room:
            continue
        bookings.append(booking)
    return bookings


def exclusion_feed_from_wire(payload: Mapping[str, Any]) -> ExclusionFeed:
    holidays: list[HolidayEntry] = []
    for record in payload.get("feriados") or []:
        holiday_date = parse_wire_date(record.get("data"))
        if holiday_date is None:
            continue
        holidays.append(
            HolidayEntry(
                date=holiday_date,
                name=str(_first(record, "nome", "titulo", "descricao", "motivo") or ""),
                holiday_type=str(record.get("tipo") or "feriado_nacional"),
            )
        )

    blocked: list[BlockedDateEntry] = []
    for record in payload.get("datas_bloqueadas") or []:
        blocked_date = parse_wire_date(record.get("data"))
        if blocked_date is None:
            continue
        blocked.append(
            BlockedDateEntry(
                date=blocked_date,
                reason=str(_first(record, "motivo", "descricao", "titulo") or ""),
            )
        )
    return ExclusionFeed(holidays=tuple(holidays), blocked_dates=tuple(blocked))


def _dates_from_wire(items: Any) -> tuple[date, ...]:
    if items is None:
        return ()
    if not isinstance(items, list):
        raise StoreContractError("batch reply lists must be arrays")
    dates: list[date] = []
    for item in items:
        value = item.get("data") if isinstance(item, Mapping) else item
        parsed = parse_wire_date(value)
        if parsed is None:
            raise StoreContractError(f"batch reply entry without a date: {item!r}")
        dates.append(parsed)
    return tuple(dates)


def batch_result_from_wire(payload: Mapping[str, Any]) -> BatchWriteResult:
    return BatchWriteResult(
        inserted=_dates_from_wire(payload.get("inseridas")),
        conflicts=_dates_from_wire(payload.get("conflitos")),
    )


def template_to_wire(template: BookingTemplate) -> dict[str, Any]:
    return {
        "sala": template.slot.room.value,
        "data": template.slot.date.isoformat(),
        "periodo": template.slot.period.value,
        "status": template.status.value,
        "qtd_pessoas": template.headcount,
        "coffee_break": template.has_coffee_break,
        "finalidade": _text_or_none(template.purpose_text),
        "observacao": _text_or_none(template.notes),
        "solicitante_id": template.requester_id,
    }


def batch_to_wire(template: BookingTemplate, dates: Sequence[date]) -> dict[str, Any]:
    payload = template_to_wire(template)
    payload["datas"] = [value.isoformat() for value in dates]
    return payload
