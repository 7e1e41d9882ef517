from __future__ import annotations

import uuid
from datetime import date, time
from decimal import Decimal

import pytest

from licencias.models import ControlPeriod, Department, Gender, LeaveType, LeaveUnit, PersonnelType, Worker
from licencias.policy import (
    BalanceSnapshot,
    LeaveRequestDraft,
    ViolationKind,
    check_eligibility,
    effective_max_duration,
    format_amount,
    validate_leave_type_config,
    validate_request,
)


def _leave_type(
    code: str = "VACACIONES",
    unit: LeaveUnit = LeaveUnit.DAYS,
    period: ControlPeriod = ControlPeriod.YEAR,
    max_duration: str = "15",
    **overrides,
) -> LeaveType:
    fields = {
        "requires_justification": False,
        "applies_gender": False,
        "gender": Gender.ANY,
        "applies_seniority": False,
        "seniority_min": 0,
        "applies_age": False,
        "age_min": 0,
        "age_max": 0,
        "applies_department": False,
        "applies_position": False,
        "applies_personnel_type": False,
    }
    fields.update(overrides)
    return LeaveType(
        code=code,
        name=code.title(),
        unit_of_control=unit,
        control_period=period,
        max_duration=Decimal(max_duration),
        **fields,
    )


def _worker(code: str = "W001", **overrides) -> Worker:
    fields = {
        "id": uuid.uuid4(),
        "full_name": "Ana Martinez",
        "personnel_type": PersonnelType.OPERATIVO,
        "gender": Gender.FEMALE,
        "birth_date": date(1990, 5, 10),
        "hire_date": date(2015, 3, 1),
    }
    fields.update(overrides)
    return Worker(code=code, **fields)


def test_days_request_within_cap_and_balance_is_accepted():
    decision = validate_request(
        _leave_type(),
        LeaveRequestDraft(start_date=date(2025, 6, 1), end_date=date(2025, 6, 5)),
        balance=BalanceSnapshot(available=Decimal("15"), used=Decimal("0")),
    )

    assert decision.ok
    assert decision.duration.quantity == Decimal("5")
    assert decision.notes == []
    assert not decision.insufficient_balance


def test_insufficient_balance_is_a_note_not_a_violation():
    decision = validate_request(
        _leave_type(),
        LeaveRequestDraft(start_date=date(2025, 6, 1), end_date=date(2025, 6, 5)),
        balance=BalanceSnapshot(available=Decimal("15"), used=Decimal("12")),
    )

    assert decision.ok
    assert decision.insufficient_balance
    assert decision.notes[0].kind == ViolationKind.INSUFFICIENT_BALANCE
    assert decision.notes[0].message == (
        "No hay suficientes días disponibles. Días restantes: 3, Días solicitados: 5"
    )


def test_insufficient_hours_message_uses_feminine_agreement():
    leave_type = _leave_type("PERMISO-HORAS", LeaveUnit.HOURS, ControlPeriod.MONTH, "8")
    decision = validate_request(
        leave_type,
        LeaveRequestDraft(day=date(2025, 6, 2), start_time=time(8, 0), end_time=time(11, 0)),
        balance=BalanceSnapshot(available=Decimal("8"), used=Decimal("7")),
    )

    assert decision.insufficient_balance
    assert decision.notes[0].message == (
        "No hay suficientes horas disponibles. Horas restantes: 1, Horas solicitadas: 3"
    )


def test_missing_endpoint_is_reported_first():
    decision = validate_request(_leave_type(), LeaveRequestDraft(start_date=date(2025, 6, 1)))

    assert not decision.ok
    assert decision.violation.kind == ViolationKind.MISSING_REQUIRED_FIELD
    assert decision.violation.field == "end_date"


def test_hours_request_requires_date_and_both_times():
    leave_type = _leave_type("PERMISO-HORAS", LeaveUnit.HOURS, ControlPeriod.MONTH, "8")
    decision = validate_request(leave_type, LeaveRequestDraft(day=date(2025, 6, 2), start_time=time(8, 0)))

    assert decision.violation.kind == ViolationKind.MISSING_REQUIRED_FIELD
    assert decision.violation.field == "end_time"

    missing_day = validate_request(leave_type, LeaveRequestDraft(start_time=time(8, 0), end_time=time(9, 0)))
    assert missing_day.violation.field == "date"


def test_hours_request_falls_back_to_start_date():
    leave_type = _leave_type("PERMISO-HORAS", LeaveUnit.HOURS, ControlPeriod.MONTH, "8")
    decision = validate_request(
        leave_type,
        LeaveRequestDraft(start_date=date(2025, 6, 2), start_time=time(8, 0), end_time=time(10, 0)),
    )

    assert decision.ok
    assert decision.request.end_date == date(2025, 6, 2)
    assert decision.duration.quantity == Decimal("2")


def test_inverted_range_fails_with_invalid_range():
    decision = validate_request(
        _leave_type(),
        LeaveRequestDraft(start_date=date(2025, 6, 5), end_date=date(2025, 6, 1)),
    )
    assert decision.violation.kind == ViolationKind.INVALID_RANGE
    assert decision.violation.field == "end_date"

    hours = validate_request(
        _leave_type("PERMISO-HORAS", LeaveUnit.HOURS, ControlPeriod.MONTH, "8"),
        LeaveRequestDraft(day=date(2025, 6, 2), start_time=time(10, 0), end_time=time(10, 0)),
    )
    assert hours.violation.kind == ViolationKind.INVALID_RANGE
    assert hours.violation.field == "end_time"


def test_max_duration_exceeded_blocks_request():
    decision = validate_request(
        _leave_type(max_duration="3"),
        LeaveRequestDraft(start_date=date(2025, 6, 1), end_date=date(2025, 6, 5)),
    )

    assert decision.violation.kind == ViolationKind.MAX_DURATION_EXCEEDED
    assert decision.violation.message == "No puede solicitar más de 3 días para este permiso."


def test_per_request_cap_applies_without_control_period():
    decision = validate_request(
        _leave_type("DUELO", period=ControlPeriod.NONE, max_duration="3"),
        LeaveRequestDraft(start_date=date(2025, 6, 1), end_date=date(2025, 6, 4)),
    )

    assert decision.violation.kind == ViolationKind.MAX_DURATION_EXCEEDED
    assert decision.violation.message == "No puede solicitar más de 3 días por solicitud."


def test_unbounded_type_accepts_any_positive_duration():
    decision = validate_request(
        _leave_type("LICENCIA-LIBRE", period=ControlPeriod.NONE, max_duration="0"),
        LeaveRequestDraft(start_date=date(2025, 1, 1), end_date=date(2025, 12, 31)),
    )

    assert decision.ok
    assert decision.duration.quantity == Decimal("365")
    assert decision.notes[0].kind == ViolationKind.AVAILABILITY_NOT_CHECKED


@pytest.mark.parametrize("configured", ["0", "112", "150"])
def test_maternity_is_capped_at_112_days(configured):
    leave_type = _leave_type("MATERNIDAD", period=ControlPeriod.NONE, max_duration=configured)
    start = date(2025, 1, 1)

    assert effective_max_duration(leave_type) == Decimal("112")

    allowed = validate_request(leave_type, LeaveRequestDraft(start_date=start, end_date=date(2025, 4, 22)))
    assert allowed.ok
    assert allowed.duration.quantity == Decimal("112")

    rejected = validate_request(leave_type, LeaveRequestDraft(start_date=start, end_date=date(2025, 4, 23)))
    assert rejected.violation.kind == ViolationKind.MAX_DURATION_EXCEEDED
    assert rejected.violation.message == "No puede solicitar más de 112 días por solicitud."


def test_olvido_sets_end_to_start_and_requires_olvido_type():
    leave_type = _leave_type("OLVIDO-ENT", period=ControlPeriod.NONE, max_duration="0")
    decision = validate_request(leave_type, LeaveRequestDraft(start_date=date(2025, 7, 1)))

    assert decision.request.end_date == date(2025, 7, 1)
    assert decision.violation.kind == ViolationKind.MISSING_REQUIRED_FIELD
    assert decision.violation.field == "olvido_type"

    fixed = validate_request(leave_type, LeaveRequestDraft(start_date=date(2025, 7, 1), olvido_type="ENTRADA"))
    assert fixed.ok
    assert fixed.duration.quantity == Decimal("1")


def test_lactancia_defaults_to_six_months():
    leave_type = _leave_type("LACTANCIA", period=ControlPeriod.NONE, max_duration="0")
    decision = validate_request(leave_type, LeaveRequestDraft(start_date=date(2025, 1, 15)))

    assert decision.ok
    assert decision.request.end_date == date(2025, 7, 15)


def test_shift_change_requires_dates_and_covering_worker():
    leave_type = _leave_type("CAMBIO-TUR", period=ControlPeriod.NONE, max_duration="0")
    requester = _worker()
    colleague = _worker("W002", full_name="Luis Hernandez")
    workers = {"W001": requester, "W002": colleague}
    base = {"start_date": date(2025, 6, 2), "end_date": date(2025, 6, 2)}

    missing_dates = validate_request(leave_type, LeaveRequestDraft(**base), worker=requester)
    assert missing_dates.violation.field == "date_not_attending"

    draft = LeaveRequestDraft(
        **base,
        date_not_attending=date(2025, 6, 2),
        date_attending_instead=date(2025, 6, 7),
    )
    missing_code = validate_request(leave_type, draft, worker=requester, resolve_worker=workers.get)
    assert missing_code.violation.kind == ViolationKind.MISSING_REQUIRED_FIELD
    assert missing_code.violation.field == "covering_worker_code"

    draft.covering_worker_code = "W999"
    unknown = validate_request(leave_type, draft, worker=requester, resolve_worker=workers.get)
    assert unknown.violation.kind == ViolationKind.UNRESOLVED_REFERENCE

    draft.covering_worker_code = "W001"
    same_worker = validate_request(leave_type, draft, worker=requester, resolve_worker=workers.get)
    assert same_worker.violation.kind == ViolationKind.UNRESOLVED_REFERENCE

    draft.covering_worker_code = "W002"
    resolved = validate_request(leave_type, draft, worker=requester, resolve_worker=workers.get)
    assert resolved.ok
    assert resolved.covering_worker is colleague


def test_justification_required_when_configured():
    leave_type = _leave_type("ENFERMEDAD", period=ControlPeriod.MONTH, max_duration="3", requires_justification=True)
    draft = LeaveRequestDraft(start_date=date(2025, 6, 2), end_date=date(2025, 6, 2))

    assert validate_request(leave_type, draft).violation.field == "justification"

    draft.justification = "Consulta medica"
    assert validate_request(leave_type, draft).ok


def test_none_unit_needs_a_representative_date():
    leave_type = _leave_type("CAPACITACION", LeaveUnit.NONE, ControlPeriod.NONE, "0")

    missing = validate_request(leave_type, LeaveRequestDraft())
    assert missing.violation.kind == ViolationKind.MISSING_REQUIRED_FIELD

    logged = validate_request(leave_type, LeaveRequestDraft(day=date(2025, 6, 3)))
    assert logged.ok
    assert logged.duration is None
    assert logged.request.start_date == logged.request.end_date == date(2025, 6, 3)


def test_retroactive_request_skips_availability():
    decision = validate_request(
        _leave_type(),
        LeaveRequestDraft(start_date=date(2025, 6, 1), end_date=date(2025, 6, 5), affects_availability=False),
        balance=BalanceSnapshot(available=Decimal("1"), used=Decimal("1")),
    )

    assert decision.ok
    assert not decision.insufficient_balance
    assert decision.notes[0].kind == ViolationKind.AVAILABILITY_NOT_CHECKED


def test_eligibility_rules():
    on_date = date(2025, 6, 1)
    worker = _worker(department=Department(name="Produccion"))

    assert check_eligibility(_leave_type(applies_gender=True, gender=Gender.MALE), worker, on_date).field == "gender"
    assert check_eligibility(_leave_type(applies_gender=True, gender=Gender.ANY), worker, on_date) is None
    assert check_eligibility(_leave_type(applies_seniority=True, seniority_min=10), worker, on_date) is None
    assert (
        check_eligibility(_leave_type(applies_seniority=True, seniority_min=11), worker, on_date).field
        == "seniority"
    )
    assert check_eligibility(_leave_type(applies_age=True, age_min=18, age_max=30), worker, on_date).field == "age"
    assert (
        check_eligibility(_leave_type(applies_department=True, departments=["produccion"]), worker, on_date)
        is None
    )
    assert (
        check_eligibility(_leave_type(applies_personnel_type=True, personnel_types=["ADMINISTRATIVO"]), worker, on_date)
        .kind
        == ViolationKind.NOT_ELIGIBLE
    )


def test_not_eligible_comes_after_type_specific_checks():
    leave_type = _leave_type(
        "ENFERMEDAD",
        period=ControlPeriod.MONTH,
        max_duration="3",
        requires_justification=True,
        applies_gender=True,
        gender=Gender.MALE,
    )
    draft = LeaveRequestDraft(start_date=date(2025, 6, 2), end_date=date(2025, 6, 2))

    assert validate_request(leave_type, draft, worker=_worker()).violation.field == "justification"
    draft.justification = "Consulta"
    assert validate_request(leave_type, draft, worker=_worker()).violation.kind == ViolationKind.NOT_ELIGIBLE


def test_leave_type_config_rules():
    assert validate_leave_type_config(code="VAC", control_period=ControlPeriod.YEAR, max_duration=Decimal("15")) == {}
    assert "code" in validate_leave_type_config(code="VA", control_period=ControlPeriod.NONE, max_duration=Decimal("0"))
    assert "max_duration" in validate_leave_type_config(
        code="VAC", control_period=ControlPeriod.MONTH, max_duration=Decimal("0")
    )
    assert validate_leave_type_config(code="LOG", control_period=ControlPeriod.NONE, max_duration=Decimal("0")) == {}
    assert "age_max" in validate_leave_type_config(
        code="JOV",
        control_period=ControlPeriod.NONE,
        max_duration=Decimal("0"),
        applies_age=True,
        age_min=30,
        age_max=18,
    )
    assert "unit_of_control" in validate_leave_type_config(
        code="maternidad",
        unit_of_control=LeaveUnit.HOURS,
        control_period=ControlPeriod.NONE,
        max_duration=Decimal("0"),
    )
    assert (
        validate_leave_type_config(
            code="MATERNIDAD",
            unit_of_control=LeaveUnit.DAYS,
            control_period=ControlPeriod.NONE,
            max_duration=Decimal("112"),
        )
        == {}
    )


def test_format_amount():
    assert format_amount(Decimal("5.00")) == "5"
    assert format_amount(Decimal("2.50")) == "2.5"
    assert format_amount(Decimal("-3")) == "-3"
