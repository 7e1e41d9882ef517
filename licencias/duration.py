"""Requested-quantity computation for leave requests."""

from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from licencias.models import LeaveUnit
from licencias.org_time import CalendarInput, org_instant, parse_org_date


class InvalidRangeError(ValueError):
    """End boundary precedes (or, for hours, equals) the start boundary."""


@dataclass(frozen=True)
class RequestedDuration:
    unit: LeaveUnit
    quantity: Decimal
    calendar_days: int = 0
    business_days: int = 0
    start_at: datetime | None = None
    end_at: datetime | None = None


def calendar_days(start: CalendarInput, end: CalendarInput) -> int:
    # Inclusive of both endpoints: a one-day leave has start == end.
    days = (parse_org_date(end) - parse_org_date(start)).days + 1
    if days <= 0:
        raise InvalidRangeError("La fecha de fin debe ser posterior o igual a la de inicio")
    return days


def business_days(start: CalendarInput, end: CalendarInput) -> int:
    first = parse_org_date(start)
    last = parse_org_date(end)
    total = 0
    current = first
    while current <= last:
        if current.weekday() < 5:
            total += 1
        current += timedelta(days=1)
    return total


def hours_between(day: CalendarInput, start_time: time | str, end_time: time | str) -> Decimal:
    start_at = org_instant(day, start_time)
    end_at = org_instant(day, end_time)
    seconds = int((end_at - start_at).total_seconds())
    if seconds <= 0:
        raise InvalidRangeError("La hora de fin debe ser posterior a la de inicio")
    return Decimal(seconds) / Decimal(3600)


def add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def compute_duration(
    unit: LeaveUnit,
    *,
    start_date: CalendarInput | None = None,
    end_date: CalendarInput | None = None,
    day: CalendarInput | None = None,
    start_time: time | str | None = None,
    end_time: time | str | None = None,
) -> RequestedDuration | None:
    """Compute the requested quantity in the unit of control.

    Returns ``None`` for ``NONE`` (bare log entry). Raises
    ``InvalidRangeError`` for non-positive durations and ``ValueError``
    when a boundary required by the unit is missing.
    """
    if unit == LeaveUnit.NONE:
        return None

    if unit == LeaveUnit.HOURS:
        if day is None or start_time is None or end_time is None:
            raise ValueError("hour-based duration needs a date and both times")
        quantity = hours_between(day, start_time, end_time)
        return RequestedDuration(
            unit=unit,
            quantity=quantity,
            calendar_days=1,
            business_days=business_days(day, day),
            start_at=org_instant(day, start_time),
            end_at=org_instant(day, end_time),
        )

    if start_date is None or end_date is None:
        raise ValueError("day-based duration needs both dates")
    days = calendar_days(start_date, end_date)
    return RequestedDuration(
        unit=unit,
        quantity=Decimal(days),
        calendar_days=days,
        business_days=business_days(start_date, end_date),
    )
