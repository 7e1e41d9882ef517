"""Organizational timezone helpers (El Salvador, fixed UTC-6).

Leave dates are stored as plain calendar values with no offset attached.
The fixed offset is only applied when an absolute instant is needed
(hour-based requests). The host timezone is never consulted.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

ORG_UTC_OFFSET = timedelta(hours=-6)
ORG_TZ = timezone(ORG_UTC_OFFSET, "America/El_Salvador")

CalendarInput = date | datetime | str


def _parse_time(value: time | str) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    text = value.strip()
    try:
        return datetime.strptime(text, "%H:%M").time()
    except ValueError:
        return datetime.strptime(text, "%H:%M:%S").time().replace(second=0)


def parse_org_date(value: CalendarInput) -> date:
    """Read any supported date input as a calendar date in the org timezone.

    Aware datetimes (or ISO strings carrying an offset) are converted to
    UTC-6 before taking the date. Naive datetimes are taken as org wall
    time. Plain dates are returned unchanged.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(ORG_TZ).date()
    if isinstance(value, date):
        return value

    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return parse_org_date(datetime.fromisoformat(text))


def to_org_date(value: CalendarInput) -> str:
    return parse_org_date(value).isoformat()


def from_org_date(value: str) -> str:
    if not value:
        return ""
    return date.fromisoformat(value.strip()[:10]).isoformat()


def org_instant(day: CalendarInput, clock: time | str) -> datetime:
    return datetime.combine(parse_org_date(day), _parse_time(clock), tzinfo=ORG_TZ)


def combine_date_and_time(day: CalendarInput | None, clock: time | str | None) -> str:
    """Return the UTC ISO instant for ``day`` at ``clock`` in org time.

    ``2025-06-24`` + ``14:30`` -> ``2025-06-24T20:30:00.000Z``.
    """
    if not day or not clock:
        return ""
    instant = org_instant(day, clock).astimezone(timezone.utc)
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def current_org_date(now: datetime | None = None) -> date:
    reference = now or datetime.now(timezone.utc)
    return parse_org_date(reference if reference.tzinfo else reference.replace(tzinfo=timezone.utc))
