from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

import pytest

from licencias.org_time import (
    ORG_TZ,
    combine_date_and_time,
    current_org_date,
    from_org_date,
    org_instant,
    parse_org_date,
    to_org_date,
)


@pytest.mark.parametrize(
    "day",
    [date(2025, 1, 1), date(2025, 6, 24), date(2024, 2, 29), date(2025, 12, 31)],
)
def test_org_date_round_trip_is_identity(day):
    assert from_org_date(to_org_date(day)) == day.isoformat()


def test_to_org_date_reads_utc_instant_in_org_timezone():
    # 03:00 UTC on the 25th is still the evening of the 24th in UTC-6.
    assert to_org_date(datetime(2025, 6, 25, 3, 0, tzinfo=timezone.utc)) == "2025-06-24"
    assert to_org_date("2025-06-25T03:00:00Z") == "2025-06-24"
    assert to_org_date("2025-06-25T07:00:00.000Z") == "2025-06-25"


def test_to_org_date_keeps_naive_wall_time():
    assert to_org_date(datetime(2025, 6, 24, 23, 59)) == "2025-06-24"
    assert to_org_date("2025-06-24") == "2025-06-24"


def test_from_org_date_handles_empty_and_timestamps():
    assert from_org_date("") == ""
    assert from_org_date("2025-06-24T00:00:00") == "2025-06-24"


def test_combine_date_and_time_returns_utc_iso_instant():
    assert combine_date_and_time("2025-06-24", "14:30") == "2025-06-24T20:30:00.000Z"
    assert combine_date_and_time(date(2025, 6, 24), time(20, 0)) == "2025-06-25T02:00:00.000Z"
    assert combine_date_and_time("", "14:30") == ""
    assert combine_date_and_time("2025-06-24", None) == ""


def test_org_instant_attaches_fixed_offset():
    instant = org_instant("2025-03-09", "08:15")
    assert instant.utcoffset() == timedelta(hours=-6)
    assert instant.tzinfo == ORG_TZ
    assert (instant.hour, instant.minute) == (8, 15)


def test_current_org_date_uses_org_offset():
    assert current_org_date(datetime(2025, 1, 1, 5, 59, tzinfo=timezone.utc)) == date(2024, 12, 31)
    assert current_org_date(datetime(2025, 1, 1, 6, 0, tzinfo=timezone.utc)) == date(2025, 1, 1)


def test_parse_org_date_rejects_garbage():
    with pytest.raises(ValueError):
        parse_org_date("not-a-date")
