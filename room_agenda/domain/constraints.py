"""Domain-level validation rules for booking templates and recurrence rules."""

from __future__ import annotations

from dataclasses import dataclass

from room_agenda.domain.errors import BookingValidationError
from room_agenda.domain.models import (
    BookingStatus,
    BookingTemplate,
    IndefiniteRecurrence,
    MonthlyMode,
    MonthlyRecurrence,
    RecurrenceSpec,
    WeeklyRecurrence,
    YearlyRecurrence,
)


@dataclass(frozen=True)
class RecurrenceLimits:
    max_month_limit: int = 120
    max_interval_weeks: int = 52
    max_repeat_count: int = 120


def validate_recurrence_limits(limits: RecurrenceLimits) -> None:
    if limits.max_month_limit <= 0:
        raise ValueError("max_month_limit must be > 0")
    if limits.max_interval_weeks <= 0:
        raise ValueError("max_interval_weeks must be > 0")
    if limits.max_repeat_count <= 0:
        raise ValueError("max_repeat_count must be > 0")


def validate_booking_template(template: BookingTemplate) -> None:
    max_capacity = template.slot.room.max_capacity
    if template.headcount <= 0:
        raise BookingValidationError("headcount must be at least 1")
    if template.headcount > max_capacity:
        raise BookingValidationError(
            f"headcount exceeds the maximum capacity of this room ({max_capacity})"
        )
    if template.status == BookingStatus.INTERNAL_BLOCK and not (template.purpose_text or "").strip():
        raise BookingValidationError("purpose_text is required for internal blocks")


def validate_recurrence_spec(
    spec: RecurrenceSpec,
    limits: RecurrenceLimits = RecurrenceLimits(),
) -> None:
    validate_recurrence_limits(limits)

    if isinstance(spec, IndefiniteRecurrence):
        if not 1 <= spec.month_limit <= limits.max_month_limit:
            raise BookingValidationError(
                f"month_limit must be between 1 and {limits.max_month_limit}"
            )
        return

    if not isinstance(spec, (WeeklyRecurrence, MonthlyRecurrence, YearlyRecurrence)):
        raise BookingValidationError(f"unsupported recurrence rule: {type(spec).__name__}")

    if spec.repeat_count <= 0:
        raise BookingValidationError("repeat_count must be > 0")
    if spec.repeat_count > limits.max_repeat_count:
        raise BookingValidationError(
            f"repeat_count must be between 1 and {limits.max_repeat_count}"
        )

    if isinstance(spec, WeeklyRecurrence):
        if not 1 <= spec.interval_weeks <= limits.max_interval_weeks:
            raise BookingValidationError(
                f"interval_weeks must be between 1 and {limits.max_interval_weeks}"
            )
        if not spec.weekdays:
            raise BookingValidationError("select at least one weekday")
    elif isinstance(spec, MonthlyRecurrence):
        _validate_mode(spec.mode)
    else:
        _validate_mode(spec.mode)
        if not spec.months:
            raise BookingValidationError("select at least one month")
        if any(not 1 <= month <= 12 for month in spec.months):
            raise BookingValidationError("months must be between 1 and 12")


def _validate_mode(mode: MonthlyMode) -> None:
    if not isinstance(mode, MonthlyMode):
        raise BookingValidationError(f"unsupported monthly mode: {mode!r}")
