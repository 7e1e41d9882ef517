"""Leave-type policy checks.

``validate_request`` is the single decision function shared by the
create, edit and direct-registration flows. It never raises for user
input: the first violated rule is returned as a value, in a fixed order.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import date, time
from decimal import Decimal
from typing import Any, Callable

from licencias.duration import InvalidRangeError, RequestedDuration, add_months, compute_duration
from licencias.models import ControlPeriod, Gender, LeaveUnit, OlvidoType

OLVIDO_CODES = {"OLVIDO-ENT", "OLVIDO-SAL"}
SHIFT_CHANGE_CODE = "CAMBIO-TUR"
NURSING_CODE = "LACTANCIA"
MATERNITY_CODE = "MATERNIDAD"
MATERNITY_MAX_DAYS = Decimal("112")
NURSING_MONTHS = 6

UNIT_LABELS = {
    LeaveUnit.DAYS: "días",
    LeaveUnit.HOURS: "horas",
    LeaveUnit.NONE: "registros",
}

REQUESTED_LABELS = {
    LeaveUnit.DAYS: "solicitados",
    LeaveUnit.HOURS: "solicitadas",
    LeaveUnit.NONE: "solicitados",
}


class ViolationKind(str, enum.Enum):
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    INVALID_RANGE = "InvalidRangeError"
    MAX_DURATION_EXCEEDED = "MaxDurationExceeded"
    UNRESOLVED_REFERENCE = "UnresolvedReference"
    NOT_ELIGIBLE = "NotEligible"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    AVAILABILITY_NOT_CHECKED = "AvailabilityNotChecked"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    field: str | None
    message: str

    def as_dict(self) -> dict[str, str | None]:
        return {"kind": self.kind.value, "field": self.field, "message": self.message}


@dataclass
class LeaveRequestDraft:
    start_date: date | None = None
    end_date: date | None = None
    day: date | None = None
    start_time: time | None = None
    end_time: time | None = None
    affects_availability: bool = True
    justification: str | None = None
    olvido_type: str | None = None
    date_not_attending: date | None = None
    date_attending_instead: date | None = None
    covering_worker_code: str | None = None


@dataclass(frozen=True)
class BalanceSnapshot:
    available: Decimal
    used: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.available - self.used


@dataclass
class PolicyDecision:
    request: LeaveRequestDraft
    duration: RequestedDuration | None = None
    violation: Violation | None = None
    notes: list[Violation] = field(default_factory=list)
    covering_worker: Any = None

    @property
    def ok(self) -> bool:
        return self.violation is None

    @property
    def insufficient_balance(self) -> bool:
        return any(note.kind == ViolationKind.INSUFFICIENT_BALANCE for note in self.notes)


WorkerResolver = Callable[[str], Any]


def format_amount(value: Decimal | int | float) -> str:
    value_as_float = float(value)
    if abs(value_as_float - round(value_as_float)) < 0.000001:
        return str(int(round(value_as_float)))
    return f"{value_as_float:.2f}".rstrip("0").rstrip(".")


def _enum_value(value: object) -> str:
    return str(getattr(value, "value", value) or "")


def _unit(leave_type: Any) -> LeaveUnit:
    return LeaveUnit(_enum_value(leave_type.unit_of_control))


def _period(leave_type: Any) -> ControlPeriod:
    return ControlPeriod(_enum_value(leave_type.control_period))


def _code(leave_type: Any) -> str:
    return (leave_type.code or "").strip().upper()


def _max_duration(leave_type: Any) -> Decimal:
    return Decimal(leave_type.max_duration or 0)


def effective_max_duration(leave_type: Any) -> Decimal:
    """Cap applied per request; ``0`` means unbounded."""
    configured = _max_duration(leave_type)
    if _code(leave_type) == MATERNITY_CODE and _unit(leave_type) == LeaveUnit.DAYS:
        if configured <= 0 or configured > MATERNITY_MAX_DAYS:
            return MATERNITY_MAX_DAYS
    return configured


def normalize_request(leave_type: Any, draft: LeaveRequestDraft) -> LeaveRequestDraft:
    """Apply the type-specific date rules to a copy of ``draft``."""
    normalized = replace(draft)
    code = _code(leave_type)
    unit = _unit(leave_type)

    if unit == LeaveUnit.HOURS:
        if normalized.day is None:
            normalized.day = normalized.start_date
        normalized.start_date = normalized.day
        normalized.end_date = normalized.day
        return normalized

    if code in OLVIDO_CODES and normalized.start_date is not None:
        normalized.end_date = normalized.start_date
    elif code == NURSING_CODE and normalized.start_date is not None and normalized.end_date is None:
        normalized.end_date = add_months(normalized.start_date, NURSING_MONTHS)

    if unit == LeaveUnit.NONE:
        if normalized.start_date is None:
            normalized.start_date = normalized.day
        if normalized.end_date is None:
            normalized.end_date = normalized.start_date
    return normalized


def _missing_endpoints(unit: LeaveUnit, draft: LeaveRequestDraft) -> Violation | None:
    if unit == LeaveUnit.DAYS:
        if draft.start_date is None:
            return Violation(ViolationKind.MISSING_REQUIRED_FIELD, "start_date", "Debe ingresar fecha de inicio y fin")
        if draft.end_date is None:
            return Violation(ViolationKind.MISSING_REQUIRED_FIELD, "end_date", "Debe ingresar fecha de inicio y fin")
    elif unit == LeaveUnit.HOURS:
        for attr_name, field_name in (("day", "date"), ("start_time", "start_time"), ("end_time", "end_time")):
            if getattr(draft, attr_name) is None:
                return Violation(
                    ViolationKind.MISSING_REQUIRED_FIELD,
                    field_name,
                    "Debe ingresar fecha y hora de inicio y fin",
                )
    elif draft.start_date is None:
        return Violation(ViolationKind.MISSING_REQUIRED_FIELD, "start_date", "Debe ingresar la fecha del registro")
    return None


def _duration_for(unit: LeaveUnit, draft: LeaveRequestDraft) -> RequestedDuration | None:
    if unit == LeaveUnit.NONE:
        if draft.end_date is not None and draft.start_date is not None and draft.end_date < draft.start_date:
            raise InvalidRangeError("La fecha de fin debe ser posterior o igual a la de inicio")
        return None
    return compute_duration(
        unit,
        start_date=draft.start_date,
        end_date=draft.end_date,
        day=draft.day,
        start_time=draft.start_time,
        end_time=draft.end_time,
    )


def _max_duration_violation(leave_type: Any, duration: RequestedDuration | None) -> Violation | None:
    if duration is None:
        return None
    cap = effective_max_duration(leave_type)
    if cap <= 0 or duration.quantity <= cap:
        return None

    unit_label = UNIT_LABELS[duration.unit]
    field_name = "end_time" if duration.unit == LeaveUnit.HOURS else "end_date"
    if _period(leave_type) != ControlPeriod.NONE:
        message = f"No puede solicitar más de {format_amount(cap)} {unit_label} para este permiso."
    else:
        # No recurring quota, but the type still carries a hard per-request cap.
        message = f"No puede solicitar más de {format_amount(cap)} {unit_label} por solicitud."
    return Violation(ViolationKind.MAX_DURATION_EXCEEDED, field_name, message)


def _missing(field_name: str, message: str) -> Violation:
    return Violation(ViolationKind.MISSING_REQUIRED_FIELD, field_name, message)


def _type_specific_violation(leave_type: Any, draft: LeaveRequestDraft) -> Violation | None:
    code = _code(leave_type)

    if code in OLVIDO_CODES:
        if _enum_value(draft.olvido_type).upper() not in {item.value for item in OlvidoType}:
            return _missing("olvido_type", "Debe especificar si el olvido fue de ENTRADA o SALIDA")

    if code == SHIFT_CHANGE_CODE:
        if draft.date_not_attending is None:
            return _missing("date_not_attending", "Debe indicar la fecha en que no asiste")
        if draft.date_attending_instead is None:
            return _missing("date_attending_instead", "Debe indicar la fecha en que sí asiste")
        if not (draft.covering_worker_code or "").strip():
            return _missing("covering_worker_code", "Debe especificar el trabajador que hará el cambio de turno")

    if leave_type.requires_justification and not (draft.justification or "").strip():
        return _missing("justification", "Debe ingresar una justificación para este permiso")
    return None


def _resolve_covering_worker(
    draft: LeaveRequestDraft,
    worker: Any,
    resolve_worker: WorkerResolver | None,
) -> tuple[Any, Violation | None]:
    covering_code = (draft.covering_worker_code or "").strip()
    covering_worker = resolve_worker(covering_code) if resolve_worker is not None else None
    if covering_worker is None:
        return None, Violation(
            ViolationKind.UNRESOLVED_REFERENCE,
            "covering_worker_code",
            f"No se encontró un trabajador con el código {covering_code}",
        )
    worker_id = getattr(worker, "id", None)
    if worker_id is not None and getattr(covering_worker, "id", None) == worker_id:
        return None, Violation(
            ViolationKind.UNRESOLVED_REFERENCE,
            "covering_worker_code",
            "El trabajador que cubre el turno debe ser distinto del solicitante",
        )
    return covering_worker, None


def years_between(start: date, end: date) -> int:
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return years


def _matches_any(allowed: list[str] | None, *candidates: object) -> bool:
    allowed_values = {str(item).strip().lower() for item in (allowed or [])}
    for candidate in candidates:
        if candidate is None:
            continue
        if str(getattr(candidate, "value", candidate)).strip().lower() in allowed_values:
            return True
    return False


def check_eligibility(leave_type: Any, worker: Any, on_date: date) -> Violation | None:
    """Gender, seniority, age, department, position and personnel-type rules."""
    if leave_type.applies_gender:
        required_gender = _enum_value(leave_type.gender) or Gender.ANY.value
        if required_gender != Gender.ANY.value and _enum_value(getattr(worker, "gender", None)) != required_gender:
            return Violation(ViolationKind.NOT_ELIGIBLE, "gender", "El trabajador no cumple el género aplicable")

    if leave_type.applies_seniority:
        hire_date = getattr(worker, "hire_date", None)
        if hire_date is None or years_between(hire_date, on_date) < int(leave_type.seniority_min or 0):
            return Violation(
                ViolationKind.NOT_ELIGIBLE,
                "seniority",
                f"Se requiere una antigüedad mínima de {leave_type.seniority_min} años",
            )

    if leave_type.applies_age:
        birth_date = getattr(worker, "birth_date", None)
        age = years_between(birth_date, on_date) if birth_date is not None else None
        if age is None or not int(leave_type.age_min or 0) <= age <= int(leave_type.age_max or 0):
            return Violation(
                ViolationKind.NOT_ELIGIBLE,
                "age",
                f"La edad debe estar entre {leave_type.age_min} y {leave_type.age_max} años",
            )

    if leave_type.applies_department:
        department = getattr(worker, "department", None)
        if not _matches_any(
            leave_type.departments,
            getattr(worker, "department_id", None),
            getattr(department, "name", None),
        ):
            return Violation(ViolationKind.NOT_ELIGIBLE, "department", "El permiso no aplica al departamento")

    if leave_type.applies_position:
        position = getattr(worker, "position", None)
        if not _matches_any(
            leave_type.positions,
            getattr(worker, "position_id", None),
            getattr(position, "name", None),
        ):
            return Violation(ViolationKind.NOT_ELIGIBLE, "position", "El permiso no aplica al puesto")

    if leave_type.applies_personnel_type:
        if not _matches_any(leave_type.personnel_types, getattr(worker, "personnel_type", None)):
            return Violation(
                ViolationKind.NOT_ELIGIBLE,
                "personnel_type",
                "El permiso no aplica al tipo de personal",
            )
    return None


def _availability_notes(
    leave_type: Any,
    draft: LeaveRequestDraft,
    duration: RequestedDuration | None,
    balance: BalanceSnapshot | None,
) -> list[Violation]:
    if not draft.affects_availability:
        return [
            Violation(
                ViolationKind.AVAILABILITY_NOT_CHECKED,
                None,
                "Solicitud retroactiva: no afecta la disponibilidad",
            )
        ]
    if duration is None or _period(leave_type) == ControlPeriod.NONE:
        return [
            Violation(
                ViolationKind.AVAILABILITY_NOT_CHECKED,
                None,
                "El tipo de licencia no lleva control de disponibilidad",
            )
        ]
    if balance is None:
        return [
            Violation(
                ViolationKind.AVAILABILITY_NOT_CHECKED,
                None,
                "No hay saldo registrado para el período",
            )
        ]
    if duration.quantity > balance.remaining:
        unit_label = UNIT_LABELS[duration.unit].capitalize()
        return [
            Violation(
                ViolationKind.INSUFFICIENT_BALANCE,
                None,
                (
                    f"No hay suficientes {UNIT_LABELS[duration.unit]} disponibles. "
                    f"{unit_label} restantes: {format_amount(balance.remaining)}, "
                    f"{unit_label} {REQUESTED_LABELS[duration.unit]}: {format_amount(duration.quantity)}"
                ),
            )
        ]
    return []


def validate_request(
    leave_type: Any,
    draft: LeaveRequestDraft,
    *,
    worker: Any = None,
    balance: BalanceSnapshot | None = None,
    resolve_worker: WorkerResolver | None = None,
) -> PolicyDecision:
    unit = _unit(leave_type)
    normalized = normalize_request(leave_type, draft)
    decision = PolicyDecision(request=normalized)

    missing = _missing_endpoints(unit, normalized)
    if missing is not None:
        decision.violation = missing
        return decision

    try:
        decision.duration = _duration_for(unit, normalized)
    except InvalidRangeError as exc:
        field_name = "end_time" if unit == LeaveUnit.HOURS else "end_date"
        decision.violation = Violation(ViolationKind.INVALID_RANGE, field_name, str(exc))
        return decision

    exceeded = _max_duration_violation(leave_type, decision.duration)
    if exceeded is not None:
        decision.violation = exceeded
        return decision

    specific = _type_specific_violation(leave_type, normalized)
    if specific is not None:
        decision.violation = specific
        return decision

    if _code(leave_type) == SHIFT_CHANGE_CODE:
        decision.covering_worker, unresolved = _resolve_covering_worker(normalized, worker, resolve_worker)
        if unresolved is not None:
            decision.violation = unresolved
            return decision

    if worker is not None and normalized.start_date is not None:
        not_eligible = check_eligibility(leave_type, worker, normalized.start_date)
        if not_eligible is not None:
            decision.violation = not_eligible
            return decision

    decision.notes = _availability_notes(leave_type, normalized, decision.duration, balance)
    return decision


def validate_leave_type_config(
    *,
    code: str,
    unit_of_control: LeaveUnit | None = None,
    control_period: ControlPeriod,
    max_duration: Decimal,
    applies_age: bool = False,
    age_min: int = 0,
    age_max: int = 0,
    applies_seniority: bool = False,
    seniority_min: int = 0,
) -> dict[str, str]:
    errors: dict[str, str] = {}
    if len((code or "").strip()) < 3:
        errors["code"] = "El código debe tener al menos 3 caracteres"
    elif (
        code.strip().upper() == MATERNITY_CODE
        and unit_of_control is not None
        and LeaveUnit(_enum_value(unit_of_control)) != LeaveUnit.DAYS
    ):
        errors["unit_of_control"] = "El permiso de maternidad se controla en días"
    if max_duration < 0:
        errors["max_duration"] = "La duración máxima no puede ser negativa"
    elif max_duration == 0 and control_period != ControlPeriod.NONE:
        errors["max_duration"] = "La duración máxima debe ser mayor a 0 cuando hay período de control"
    if applies_age and age_max <= age_min:
        errors["age_max"] = "La edad máxima debe ser mayor que la mínima"
    if applies_seniority and seniority_min <= 0:
        errors["seniority_min"] = "La antigüedad mínima debe ser mayor a 0"
    return errors
