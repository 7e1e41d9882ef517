"""JSON API for leave types, requests, leaves and availability."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from flask import Blueprint, abort, current_app, jsonify, request
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from werkzeug.datastructures import ImmutableMultiDict
from werkzeug.exceptions import HTTPException

from licencias.audit import log_audit
from licencias.extensions import db
from licencias.forms import (
    ControlLimitForm,
    DecisionForm,
    FinalizeDueForm,
    LeaveCancelForm,
    LeaveRequestForm,
    LeaveTypeForm,
)
from licencias.ledger import AvailabilityLedger, ReservationResult, period_key_for
from licencias.models import (
    ControlLimit,
    ControlPeriod,
    Department,
    Gender,
    Leave,
    LeaveRequest,
    LeaveRequestStatus,
    LeaveStatus,
    LeaveType,
    LeaveUnit,
    OlvidoType,
    Worker,
    now_utc,
)
from licencias.org_time import combine_date_and_time, current_org_date, parse_org_date
from licencias.policy import (
    LeaveRequestDraft,
    PolicyDecision,
    format_amount,
    normalize_request,
    validate_leave_type_config,
    validate_request,
)
from licencias.workflow import (
    LEAVE_STATUS_LABELS,
    REQUEST_STATUS_LABELS,
    InvalidTransitionError,
    transition_leave,
    transition_request,
)


bp = Blueprint("leaves", __name__, url_prefix="/api")


@bp.errorhandler(HTTPException)
def json_http_error(exc: HTTPException):
    return jsonify({"error": exc.description, "status": exc.code}), exc.code


def _form_value(value):
    # WTForms fields parse strings; BooleanField reads "" as false.
    if isinstance(value, bool):
        return "y" if value else ""
    if isinstance(value, list):
        return [_form_value(item) for item in value if item is not None]
    if isinstance(value, str):
        return value
    return str(value)


def _json_formdata() -> ImmutableMultiDict:
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        abort(400, description="El cuerpo debe ser un objeto JSON.")
    return ImmutableMultiDict({key: _form_value(value) for key, value in payload.items() if value is not None})


def _form_errors(form) -> tuple:
    errors = {name: messages[0] for name, messages in form.errors.items() if messages}
    return jsonify({"errors": errors}), 400


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _amount(value: Decimal | None) -> str | None:
    return format_amount(value) if value is not None else None


def _worker_by_code(code: str | None) -> Worker | None:
    normalized = (code or "").strip().lower()
    if not normalized:
        return None
    return db.session.execute(select(Worker).where(func.lower(Worker.code) == normalized)).scalar_one_or_none()


def _leave_type_by_code(code: str | None) -> LeaveType | None:
    normalized = (code or "").strip().upper()
    if not normalized:
        return None
    return db.session.execute(select(LeaveType).where(func.upper(LeaveType.code) == normalized)).scalar_one_or_none()


def _leave_request_or_404(leave_request_id: uuid.UUID, *, for_update: bool = False) -> LeaveRequest:
    # A locked read is reloaded so a concurrent decision is seen after the lock is granted.
    leave_request = db.session.get(
        LeaveRequest,
        leave_request_id,
        with_for_update=for_update,
        populate_existing=for_update,
    )
    if leave_request is None:
        abort(404, description="Solicitud no encontrada.")
    return leave_request


def _leave_or_404(leave_id: uuid.UUID, *, for_update: bool = False) -> Leave:
    leave = db.session.get(Leave, leave_id, with_for_update=for_update, populate_existing=for_update)
    if leave is None:
        abort(404, description="Licencia no encontrada.")
    return leave


def _draft_from_form(form: LeaveRequestForm) -> LeaveRequestDraft:
    return LeaveRequestDraft(
        start_date=form.start_date.data,
        end_date=form.end_date.data,
        day=form.date.data,
        start_time=form.start_time.data,
        end_time=form.end_time.data,
        affects_availability=not form.retroactive.data,
        justification=form.justification.data or None,
        olvido_type=(form.olvido_type.data or "").upper() or None,
        date_not_attending=form.date_not_attending.data,
        date_attending_instead=form.date_attending_instead.data,
        covering_worker_code=form.covering_worker_code.data or None,
    )


def _evaluate(form: LeaveRequestForm, ledger: AvailabilityLedger) -> tuple[Worker, LeaveType, PolicyDecision]:
    worker = _worker_by_code(form.worker_code.data)
    if worker is None:
        abort(404, description="Trabajador no encontrado.")
    if not worker.active:
        abort(409, description="El trabajador está inactivo.")
    leave_type = _leave_type_by_code(form.leave_type_code.data)
    if leave_type is None or not leave_type.active:
        abort(404, description="Tipo de licencia no encontrado.")

    draft = _draft_from_form(form)
    # Same anchor the request is stored and later reserved under.
    anchor = normalize_request(leave_type, draft).start_date
    balance = None
    if anchor is not None and draft.affects_availability:
        balance = ledger.snapshot(worker.id, leave_type, period_key_for(leave_type.control_period, anchor))

    decision = validate_request(
        leave_type,
        draft,
        worker=worker,
        balance=balance,
        resolve_worker=_worker_by_code,
    )
    return worker, leave_type, decision


def _apply_decision(
    leave_request: LeaveRequest,
    worker: Worker,
    leave_type: LeaveType,
    form: LeaveRequestForm,
    decision: PolicyDecision,
) -> None:
    normalized = decision.request
    duration = decision.duration
    is_hours = leave_type.unit_of_control == LeaveUnit.HOURS
    olvido_values = {item.value for item in OlvidoType}

    leave_request.worker_id = worker.id
    leave_request.leave_type_id = leave_type.id
    leave_request.start_date = normalized.start_date
    leave_request.end_date = normalized.end_date
    leave_request.start_time = normalized.start_time if is_hours else None
    leave_request.end_time = normalized.end_time if is_hours else None
    leave_request.start_at = duration.start_at if duration is not None else None
    leave_request.end_at = duration.end_at if duration is not None else None
    leave_request.quantity = duration.quantity if duration is not None else None
    leave_request.calendar_days = duration.calendar_days if duration is not None else 0
    leave_request.business_days = duration.business_days if duration is not None else 0
    leave_request.reason = form.reason.data or ""
    leave_request.justification = normalized.justification
    leave_request.observations = form.observations.data or None
    leave_request.olvido_type = (
        OlvidoType(normalized.olvido_type) if normalized.olvido_type in olvido_values else None
    )
    leave_request.date_not_attending = normalized.date_not_attending
    leave_request.date_attending_instead = normalized.date_attending_instead
    leave_request.covering_worker_id = decision.covering_worker.id if decision.covering_worker is not None else None
    leave_request.affects_availability = normalized.affects_availability


def _decision_payload(decision: PolicyDecision) -> dict[str, object]:
    duration = decision.duration
    return {
        "ok": decision.ok,
        "violation": decision.violation.as_dict() if decision.violation is not None else None,
        "notes": [note.as_dict() for note in decision.notes],
        "insufficient_balance": decision.insufficient_balance,
        "start_date": _iso(decision.request.start_date),
        "end_date": _iso(decision.request.end_date),
        "duration": None
        if duration is None
        else {
            "unit": duration.unit.value,
            "quantity": _amount(duration.quantity),
            "calendar_days": duration.calendar_days,
            "business_days": duration.business_days,
            "start_at": duration.start_at.isoformat() if duration.start_at is not None else None,
            "end_at": duration.end_at.isoformat() if duration.end_at is not None else None,
        },
    }


def _request_payload(leave_request: LeaveRequest) -> dict[str, object]:
    return {
        "id": str(leave_request.id),
        "worker_code": leave_request.worker.code,
        "leave_type_code": leave_request.leave_type.code,
        "start_date": _iso(leave_request.start_date),
        "end_date": _iso(leave_request.end_date),
        "start_time": leave_request.start_time.strftime("%H:%M") if leave_request.start_time else None,
        "end_time": leave_request.end_time.strftime("%H:%M") if leave_request.end_time else None,
        "start_at": combine_date_and_time(leave_request.start_date, leave_request.start_time) or None,
        "end_at": combine_date_and_time(leave_request.end_date, leave_request.end_time) or None,
        "quantity": _amount(leave_request.quantity),
        "calendar_days": leave_request.calendar_days,
        "business_days": leave_request.business_days,
        "reason": leave_request.reason,
        "justification": leave_request.justification,
        "observations": leave_request.observations,
        "olvido_type": leave_request.olvido_type.value if leave_request.olvido_type else None,
        "date_not_attending": _iso(leave_request.date_not_attending),
        "date_attending_instead": _iso(leave_request.date_attending_instead),
        "covering_worker_code": leave_request.covering_worker.code if leave_request.covering_worker else None,
        "affects_availability": leave_request.affects_availability,
        "status": leave_request.status.value,
        "status_label": REQUEST_STATUS_LABELS[leave_request.status],
    }


def _leave_payload(leave: Leave) -> dict[str, object]:
    return {
        "id": str(leave.id),
        "request_id": str(leave.request_id),
        "worker_code": leave.worker.code,
        "leave_type_code": leave.leave_type.code,
        "start_date": _iso(leave.start_date),
        "end_date": _iso(leave.end_date),
        "quantity": _amount(leave.quantity),
        "period_key": leave.period_key,
        "consumed_balance": leave.consumed_balance,
        "status": leave.status.value,
        "status_label": LEAVE_STATUS_LABELS[leave.status],
        "cancel_reason": leave.cancel_reason,
    }


def _leave_type_payload(leave_type: LeaveType) -> dict[str, object]:
    return {
        "id": str(leave_type.id),
        "code": leave_type.code,
        "name": leave_type.name,
        "description": leave_type.description,
        "unit_of_control": leave_type.unit_of_control.value,
        "control_period": leave_type.control_period.value,
        "max_duration": _amount(leave_type.max_duration),
        "requires_justification": leave_type.requires_justification,
        "requires_special_approval": leave_type.requires_special_approval,
        "requires_documentation": leave_type.requires_documentation,
        "pays_salary": leave_type.pays_salary,
        "accumulable": leave_type.accumulable,
        "transferable": leave_type.transferable,
        "applies_gender": leave_type.applies_gender,
        "gender": leave_type.gender.value,
        "applies_seniority": leave_type.applies_seniority,
        "seniority_min": leave_type.seniority_min,
        "applies_age": leave_type.applies_age,
        "age_min": leave_type.age_min,
        "age_max": leave_type.age_max,
        "applies_department": leave_type.applies_department,
        "departments": leave_type.departments or [],
        "applies_position": leave_type.applies_position,
        "positions": leave_type.positions or [],
        "applies_personnel_type": leave_type.applies_personnel_type,
        "personnel_types": leave_type.personnel_types or [],
        "active": leave_type.active,
    }


def _approval_payload(leave_request: LeaveRequest, leave: Leave, reservation: ReservationResult) -> dict[str, object]:
    warning = None
    if reservation.overdrawn:
        warning = (
            "La aprobación excede la disponibilidad del período. "
            f"Saldo restante: {format_amount(reservation.remaining)}"
        )
    return {
        "request": _request_payload(leave_request),
        "leave": _leave_payload(leave),
        "remaining": _amount(reservation.remaining),
        "warning": warning,
    }


def _approve(leave_request: LeaveRequest, observations: str | None) -> tuple[Leave, ReservationResult]:
    try:
        leave_request.status = transition_request(leave_request.status, LeaveRequestStatus.APPROVED)
    except InvalidTransitionError as exc:
        abort(409, description=str(exc))

    leave_type = leave_request.leave_type
    period_key = None
    if leave_request.quantity is not None:
        period_key = period_key_for(leave_type.control_period, leave_request.start_date)
    leave_request_id = leave_request.id
    worker_id = leave_request.worker_id
    leave_type_code = leave_type.code

    try:
        reservation = AvailabilityLedger().check_and_reserve(
            leave_request.worker_id,
            leave_type,
            period_key,
            leave_request.quantity or Decimal("0"),
            is_retroactive=not leave_request.affects_availability,
        )
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning(
            "Availability row for worker %s, type %s, period %s was created concurrently.",
            worker_id,
            leave_type_code,
            period_key,
            exc_info=True,
        )
        abort(409, description="La disponibilidad cambió durante la aprobación. Intente de nuevo.")

    if not reservation.ok:
        db.session.rollback()
        abort(409, description="La disponibilidad de este período está inactiva.")

    leave_request.decided_at = now_utc()
    if observations:
        leave_request.observations = observations

    leave = Leave(
        request_id=leave_request.id,
        worker_id=leave_request.worker_id,
        leave_type_id=leave_request.leave_type_id,
        start_date=leave_request.start_date,
        end_date=leave_request.end_date,
        quantity=leave_request.quantity,
        period_key=reservation.period_key,
        consumed_balance=reservation.consumed,
        status=LeaveStatus.ACTIVE,
    )
    db.session.add(leave)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning(
            "Leave request %s was approved concurrently.", leave_request_id, exc_info=True
        )
        abort(409, description="La solicitud ya fue aprobada.")

    if reservation.overdrawn:
        current_app.logger.warning(
            "Leave %s overdraws availability for worker %s, type %s, period %s (remaining %s).",
            leave.id,
            leave_request.worker_id,
            leave_type.code,
            reservation.period_key,
            format_amount(reservation.remaining),
        )

    current_app.logger.info("Leave request %s approved as leave %s.", leave_request.id, leave.id)
    log_audit(
        action="LEAVE_REQUEST_APPROVED",
        entity_type="leave_requests",
        entity_id=leave_request.id,
        payload={
            "leave_id": str(leave.id),
            "worker_id": str(leave_request.worker_id),
            "leave_type": leave_type.code,
            "quantity": _amount(leave_request.quantity),
            "period_key": reservation.period_key,
            "consumed_balance": reservation.consumed,
            "remaining": _amount(reservation.remaining),
        },
    )
    return leave, reservation


@bp.post("/leave-requests/preview")
def leave_request_preview():
    form = LeaveRequestForm(formdata=_json_formdata())
    if not form.validate():
        return _form_errors(form)
    _worker, _leave_type, decision = _evaluate(form, AvailabilityLedger())
    return jsonify(_decision_payload(decision)), 200


@bp.post("/leave-requests")
def leave_request_create():
    form = LeaveRequestForm(formdata=_json_formdata())
    if not form.validate():
        return _form_errors(form)
    worker, leave_type, decision = _evaluate(form, AvailabilityLedger())
    if not decision.ok:
        return jsonify({"violation": decision.violation.as_dict(), "decision": _decision_payload(decision)}), 422

    leave_request = LeaveRequest(status=LeaveRequestStatus.PENDING)
    _apply_decision(leave_request, worker, leave_type, form, decision)
    db.session.add(leave_request)
    db.session.flush()
    log_audit(
        action="LEAVE_REQUEST_CREATED",
        entity_type="leave_requests",
        entity_id=leave_request.id,
        payload={
            "worker_id": str(worker.id),
            "leave_type": leave_type.code,
            "start_date": _iso(leave_request.start_date),
            "end_date": _iso(leave_request.end_date),
            "quantity": _amount(leave_request.quantity),
            "affects_availability": leave_request.affects_availability,
        },
    )
    db.session.commit()
    return jsonify({"request": _request_payload(leave_request), "decision": _decision_payload(decision)}), 201


@bp.put("/leave-requests/<uuid:leave_request_id>")
def leave_request_update(leave_request_id: uuid.UUID):
    leave_request = _leave_request_or_404(leave_request_id, for_update=True)
    if leave_request.status != LeaveRequestStatus.PENDING:
        abort(409, description="Solo se pueden editar solicitudes pendientes.")

    form = LeaveRequestForm(formdata=_json_formdata())
    if not form.validate():
        return _form_errors(form)
    worker, leave_type, decision = _evaluate(form, AvailabilityLedger())
    if worker.id != leave_request.worker_id:
        abort(409, description="La solicitud pertenece a otro trabajador.")
    if not decision.ok:
        return jsonify({"violation": decision.violation.as_dict(), "decision": _decision_payload(decision)}), 422

    _apply_decision(leave_request, worker, leave_type, form, decision)
    log_audit(
        action="LEAVE_REQUEST_UPDATED",
        entity_type="leave_requests",
        entity_id=leave_request.id,
        payload={
            "leave_type": leave_type.code,
            "start_date": _iso(leave_request.start_date),
            "end_date": _iso(leave_request.end_date),
            "quantity": _amount(leave_request.quantity),
            "affects_availability": leave_request.affects_availability,
        },
    )
    db.session.commit()
    return jsonify({"request": _request_payload(leave_request), "decision": _decision_payload(decision)}), 200


@bp.post("/leave-requests/<uuid:leave_request_id>/approve")
def leave_request_approve(leave_request_id: uuid.UUID):
    leave_request = _leave_request_or_404(leave_request_id, for_update=True)
    form = DecisionForm(formdata=_json_formdata())
    if not form.validate():
        return _form_errors(form)
    leave, reservation = _approve(leave_request, form.observations.data)
    db.session.commit()
    return jsonify(_approval_payload(leave_request, leave, reservation)), 200


def _close_request(leave_request_id: uuid.UUID, target: LeaveRequestStatus, action: str):
    leave_request = _leave_request_or_404(leave_request_id, for_update=True)
    form = DecisionForm(formdata=_json_formdata())
    if not form.validate():
        return _form_errors(form)
    try:
        leave_request.status = transition_request(leave_request.status, target)
    except InvalidTransitionError as exc:
        abort(409, description=str(exc))

    leave_request.decided_at = now_utc()
    if form.observations.data:
        leave_request.observations = form.observations.data
    current_app.logger.info("Leave request %s moved to %s.", leave_request.id, target.value)
    log_audit(
        action=action,
        entity_type="leave_requests",
        entity_id=leave_request.id,
        payload={"status": leave_request.status.value, "observations": form.observations.data or None},
    )
    db.session.commit()
    return jsonify({"request": _request_payload(leave_request)}), 200


@bp.post("/leave-requests/<uuid:leave_request_id>/reject")
def leave_request_reject(leave_request_id: uuid.UUID):
    return _close_request(leave_request_id, LeaveRequestStatus.REJECTED, "LEAVE_REQUEST_REJECTED")


@bp.post("/leave-requests/<uuid:leave_request_id>/cancel")
def leave_request_cancel(leave_request_id: uuid.UUID):
    return _close_request(leave_request_id, LeaveRequestStatus.CANCELLED, "LEAVE_REQUEST_CANCELLED")


@bp.post("/leaves")
def leave_register():
    form = LeaveRequestForm(formdata=_json_formdata())
    if not form.validate():
        return _form_errors(form)
    worker, leave_type, decision = _evaluate(form, AvailabilityLedger())
    if not decision.ok:
        return jsonify({"violation": decision.violation.as_dict(), "decision": _decision_payload(decision)}), 422

    leave_request = LeaveRequest(status=LeaveRequestStatus.PENDING)
    _apply_decision(leave_request, worker, leave_type, form, decision)
    db.session.add(leave_request)
    db.session.flush()
    log_audit(
        action="LEAVE_REGISTERED",
        entity_type="leave_requests",
        entity_id=leave_request.id,
        payload={
            "worker_id": str(worker.id),
            "leave_type": leave_type.code,
            "quantity": _amount(leave_request.quantity),
            "affects_availability": leave_request.affects_availability,
        },
    )
    leave, reservation = _approve(leave_request, None)
    db.session.commit()
    return jsonify(_approval_payload(leave_request, leave, reservation)), 201


@bp.post("/leaves/<uuid:leave_id>/cancel")
def leave_cancel(leave_id: uuid.UUID):
    leave = _leave_or_404(leave_id, for_update=True)
    form = LeaveCancelForm(formdata=_json_formdata())
    if not form.validate():
        return _form_errors(form)
    try:
        leave.status = transition_leave(leave.status, LeaveStatus.CANCELLED)
    except InvalidTransitionError as exc:
        abort(409, description=str(exc))

    remaining = None
    released = False
    if leave.consumed_balance and leave.period_key is not None and leave.quantity is not None:
        remaining = AvailabilityLedger().release(leave.worker_id, leave.leave_type, leave.period_key, leave.quantity)
        leave.consumed_balance = False
        released = True

    leave.cancel_reason = form.reason.data or None
    leave.closed_at = now_utc()
    current_app.logger.info("Leave %s cancelled (balance released: %s).", leave.id, released)
    log_audit(
        action="LEAVE_CANCELLED",
        entity_type="leaves",
        entity_id=leave.id,
        payload={
            "reason": leave.cancel_reason,
            "released": released,
            "period_key": leave.period_key,
            "remaining": _amount(remaining),
        },
    )
    db.session.commit()
    return jsonify({"leave": _leave_payload(leave), "remaining": _amount(remaining)}), 200


def _finalize(leave: Leave, *, automatic: bool) -> None:
    leave.status = transition_leave(leave.status, LeaveStatus.FINALIZED)
    leave.closed_at = now_utc()
    log_audit(
        action="LEAVE_FINALIZED",
        entity_type="leaves",
        entity_id=leave.id,
        payload={"end_date": _iso(leave.end_date), "automatic": automatic},
    )


@bp.post("/leaves/<uuid:leave_id>/finalize")
def leave_finalize(leave_id: uuid.UUID):
    leave = _leave_or_404(leave_id, for_update=True)
    try:
        _finalize(leave, automatic=False)
    except InvalidTransitionError as exc:
        abort(409, description=str(exc))
    db.session.commit()
    return jsonify({"leave": _leave_payload(leave)}), 200


@bp.post("/leaves/finalize-due")
def leaves_finalize_due():
    form = FinalizeDueForm(formdata=_json_formdata())
    if not form.validate():
        return _form_errors(form)
    today = form.today.data or current_org_date()
    due = (
        db.session.execute(
            select(Leave)
            .where(Leave.status == LeaveStatus.ACTIVE, Leave.end_date < today)
            .order_by(Leave.end_date.asc())
        )
        .scalars()
        .all()
    )
    for leave in due:
        _finalize(leave, automatic=True)
    db.session.commit()
    current_app.logger.info("Finalized %s leaves ending before %s.", len(due), today.isoformat())
    return jsonify({"finalized": len(due), "ids": [str(leave.id) for leave in due]}), 200


def _date_args(*names: str) -> tuple[dict[str, date | None], dict[str, str]]:
    values: dict[str, date | None] = {}
    errors: dict[str, str] = {}
    for name in names:
        raw = (request.args.get(name) or "").strip()
        try:
            values[name] = parse_org_date(raw) if raw else None
        except ValueError:
            errors[name] = "Fecha invalida."
    return values, errors


def _listing_stmt(model, status_enum) -> tuple[object, dict[str, str]]:
    """Shared filters for request and leave listings: status, worker, leave_type, from, to."""
    dates, errors = _date_args("from", "to")
    status = None
    raw_status = (request.args.get("status") or "").strip().upper()
    if raw_status:
        try:
            status = status_enum(raw_status)
        except ValueError:
            errors["status"] = "Estado invalido."
    if errors:
        return None, errors

    stmt = (
        select(model)
        .join(Worker, Worker.id == model.worker_id)
        .join(LeaveType, LeaveType.id == model.leave_type_id)
        .order_by(model.start_date.desc(), model.created_at.desc())
    )
    worker_code = (request.args.get("worker") or "").strip()
    if worker_code:
        stmt = stmt.where(func.lower(Worker.code) == worker_code.lower())
    leave_type_code = (request.args.get("leave_type") or "").strip()
    if leave_type_code:
        stmt = stmt.where(func.upper(LeaveType.code) == leave_type_code.upper())
    if status is not None:
        stmt = stmt.where(model.status == status)
    # Overlap with the [from, to] window.
    if dates["from"] is not None:
        stmt = stmt.where(model.end_date >= dates["from"])
    if dates["to"] is not None:
        stmt = stmt.where(model.start_date <= dates["to"])
    return stmt, errors


def _balance_payload(row: dict[str, object]) -> dict[str, object]:
    return {
        **row,
        "available": _amount(row["available"]),
        "used": _amount(row["used"]),
        "remaining": _amount(row["remaining"]),
    }


@bp.get("/leave-requests")
def leave_request_list():
    stmt, errors = _listing_stmt(LeaveRequest, LeaveRequestStatus)
    if errors:
        return jsonify({"errors": errors}), 400
    leave_requests = db.session.execute(stmt).scalars().all()
    return jsonify({"items": [_request_payload(leave_request) for leave_request in leave_requests]}), 200


@bp.get("/leave-requests/<uuid:leave_request_id>")
def leave_request_detail(leave_request_id: uuid.UUID):
    leave_request = _leave_request_or_404(leave_request_id)
    leave = db.session.execute(select(Leave).where(Leave.request_id == leave_request.id)).scalar_one_or_none()
    return (
        jsonify(
            {
                "request": _request_payload(leave_request),
                "leave": _leave_payload(leave) if leave is not None else None,
            }
        ),
        200,
    )


@bp.get("/leaves")
def leave_list():
    stmt, errors = _listing_stmt(Leave, LeaveStatus)
    if errors:
        return jsonify({"errors": errors}), 400
    leaves = db.session.execute(stmt).scalars().all()
    return jsonify({"items": [_leave_payload(leave) for leave in leaves]}), 200


@bp.get("/leaves/<uuid:leave_id>")
def leave_detail(leave_id: uuid.UUID):
    leave = _leave_or_404(leave_id)
    return jsonify({"leave": _leave_payload(leave), "request": _request_payload(leave.request)}), 200


@bp.get("/workers/<code>/availability")
def worker_availability(code: str):
    worker = _worker_by_code(code)
    if worker is None:
        abort(404, description="Trabajador no encontrado.")
    dates, errors = _date_args("on")
    if errors:
        return jsonify({"errors": errors}), 400
    on_date = dates["on"] or current_org_date()

    rows = AvailabilityLedger().balances_for_worker(worker.id, on_date)
    return (
        jsonify(
            {
                "worker_code": worker.code,
                "on": on_date.isoformat(),
                "balances": [_balance_payload(row) for row in rows],
            }
        ),
        200,
    )


@bp.get("/availability")
def availability_overview():
    raw_year = (request.args.get("year") or "").strip()
    year = current_org_date().year
    if raw_year:
        if not raw_year.isdigit() or len(raw_year) != 4:
            return jsonify({"errors": {"year": "Año invalido."}}), 400
        year = int(raw_year)

    department = None
    department_name = (request.args.get("department") or "").strip()
    if department_name:
        department = db.session.execute(
            select(Department).where(func.lower(Department.name) == department_name.lower())
        ).scalar_one_or_none()
        if department is None:
            abort(404, description="Departamento no encontrado.")

    rows = AvailabilityLedger().balances_for_year(year, department.id if department is not None else None)
    return (
        jsonify(
            {
                "year": year,
                "department": department.name if department is not None else None,
                "balances": [_balance_payload(row) for row in rows],
            }
        ),
        200,
    )


def _leave_type_or_404(code: str) -> LeaveType:
    leave_type = _leave_type_by_code(code)
    if leave_type is None:
        abort(404, description="Tipo de licencia no encontrado.")
    return leave_type


def _leave_type_config_errors(form: LeaveTypeForm) -> dict[str, str]:
    return validate_leave_type_config(
        code=form.code.data,
        unit_of_control=LeaveUnit(form.unit_of_control.data),
        control_period=ControlPeriod(form.control_period.data),
        max_duration=Decimal(form.max_duration.data or 0),
        applies_age=form.applies_age.data,
        age_min=form.age_min.data or 0,
        age_max=form.age_max.data or 0,
        applies_seniority=form.applies_seniority.data,
        seniority_min=form.seniority_min.data or 0,
    )


def _apply_leave_type_form(leave_type: LeaveType, form: LeaveTypeForm) -> None:
    leave_type.code = form.code.data.upper()
    leave_type.name = form.name.data
    leave_type.description = form.description.data or None
    leave_type.unit_of_control = LeaveUnit(form.unit_of_control.data)
    leave_type.control_period = ControlPeriod(form.control_period.data)
    leave_type.max_duration = Decimal(form.max_duration.data or 0)
    leave_type.requires_justification = form.requires_justification.data
    leave_type.requires_special_approval = form.requires_special_approval.data
    leave_type.requires_documentation = form.requires_documentation.data
    leave_type.pays_salary = form.pays_salary.data
    leave_type.accumulable = form.accumulable.data
    leave_type.transferable = form.transferable.data
    leave_type.applies_gender = form.applies_gender.data
    leave_type.gender = Gender(form.gender.data)
    leave_type.applies_seniority = form.applies_seniority.data
    leave_type.seniority_min = form.seniority_min.data or 0
    leave_type.applies_age = form.applies_age.data
    leave_type.age_min = form.age_min.data or 0
    leave_type.age_max = form.age_max.data or 0
    leave_type.applies_department = form.applies_department.data
    leave_type.departments = form.departments.data or None
    leave_type.applies_position = form.applies_position.data
    leave_type.positions = form.positions.data or None
    leave_type.applies_personnel_type = form.applies_personnel_type.data
    leave_type.personnel_types = [item.upper() for item in form.personnel_types.data or []] or None


def _leave_type_audit_payload(leave_type: LeaveType) -> dict[str, object]:
    return {
        "code": leave_type.code,
        "unit_of_control": leave_type.unit_of_control.value,
        "control_period": leave_type.control_period.value,
        "max_duration": _amount(leave_type.max_duration),
        "active": leave_type.active,
    }


@bp.get("/leave-types")
def leave_type_list():
    include_inactive = request.args.get("all") == "1"
    stmt = select(LeaveType).order_by(LeaveType.code.asc())
    if not include_inactive:
        stmt = stmt.where(LeaveType.active.is_(True))
    leave_types = db.session.execute(stmt).scalars().all()
    return jsonify({"items": [_leave_type_payload(leave_type) for leave_type in leave_types]}), 200


@bp.get("/leave-types/<code>")
def leave_type_detail(code: str):
    return jsonify({"leave_type": _leave_type_payload(_leave_type_or_404(code))}), 200


@bp.post("/leave-types")
def leave_type_create():
    form = LeaveTypeForm(formdata=_json_formdata())
    if not form.validate():
        return _form_errors(form)
    config_errors = _leave_type_config_errors(form)
    if config_errors:
        return jsonify({"errors": config_errors}), 400
    if _leave_type_by_code(form.code.data) is not None:
        abort(409, description="Ya existe un tipo de licencia con ese código.")

    leave_type = LeaveType(active=True)
    _apply_leave_type_form(leave_type, form)
    db.session.add(leave_type)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        abort(409, description="Ya existe un tipo de licencia con ese código.")

    log_audit(
        action="LEAVE_TYPE_CREATED",
        entity_type="leave_types",
        entity_id=leave_type.id,
        payload=_leave_type_audit_payload(leave_type),
    )
    db.session.commit()
    return jsonify({"leave_type": _leave_type_payload(leave_type)}), 201


@bp.put("/leave-types/<code>")
def leave_type_update(code: str):
    leave_type = _leave_type_or_404(code)
    form = LeaveTypeForm(formdata=_json_formdata())
    if not form.validate():
        return _form_errors(form)
    config_errors = _leave_type_config_errors(form)
    if config_errors:
        return jsonify({"errors": config_errors}), 400
    existing = _leave_type_by_code(form.code.data)
    if existing is not None and existing.id != leave_type.id:
        abort(409, description="Ya existe un tipo de licencia con ese código.")

    _apply_leave_type_form(leave_type, form)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        abort(409, description="Ya existe un tipo de licencia con ese código.")

    log_audit(
        action="LEAVE_TYPE_UPDATED",
        entity_type="leave_types",
        entity_id=leave_type.id,
        payload=_leave_type_audit_payload(leave_type),
    )
    db.session.commit()
    return jsonify({"leave_type": _leave_type_payload(leave_type)}), 200


def _set_leave_type_active(code: str, active: bool):
    leave_type = _leave_type_or_404(code)
    if leave_type.active != active:
        leave_type.active = active
        current_app.logger.info("Leave type %s %s.", leave_type.code, "activated" if active else "deactivated")
        log_audit(
            action="LEAVE_TYPE_ACTIVATED" if active else "LEAVE_TYPE_DEACTIVATED",
            entity_type="leave_types",
            entity_id=leave_type.id,
            payload=_leave_type_audit_payload(leave_type),
        )
        db.session.commit()
    return jsonify({"leave_type": _leave_type_payload(leave_type)}), 200


@bp.delete("/leave-types/<code>")
def leave_type_deactivate(code: str):
    # Requests and leaves keep referencing the type, so it is never removed.
    return _set_leave_type_active(code, False)


@bp.post("/leave-types/<code>/activate")
def leave_type_activate(code: str):
    return _set_leave_type_active(code, True)


@bp.post("/control-limits")
def control_limit_save():
    form = ControlLimitForm(formdata=_json_formdata())
    if not form.validate():
        return _form_errors(form)
    leave_type = _leave_type_by_code(form.leave_type_code.data)
    if leave_type is None:
        abort(404, description="Tipo de licencia no encontrado.")

    control_limit = db.session.execute(
        select(ControlLimit).where(
            ControlLimit.leave_type_id == leave_type.id,
            ControlLimit.year == form.year.data,
        )
    ).scalar_one_or_none()
    created = control_limit is None
    if created:
        control_limit = ControlLimit(leave_type_id=leave_type.id, year=form.year.data)
        db.session.add(control_limit)
    control_limit.monthly_limit = Decimal(form.monthly_limit.data or 0)
    control_limit.annual_limit = Decimal(form.annual_limit.data or 0)
    db.session.flush()

    log_audit(
        action="CONTROL_LIMIT_CREATED" if created else "CONTROL_LIMIT_UPDATED",
        entity_type="control_limits",
        entity_id=control_limit.id,
        payload={
            "leave_type": leave_type.code,
            "year": control_limit.year,
            "monthly_limit": _amount(control_limit.monthly_limit),
            "annual_limit": _amount(control_limit.annual_limit),
        },
    )
    db.session.commit()
    return (
        jsonify(
            {
                "control_limit": {
                    "id": str(control_limit.id),
                    "leave_type_code": leave_type.code,
                    "year": control_limit.year,
                    "monthly_limit": _amount(control_limit.monthly_limit),
                    "annual_limit": _amount(control_limit.annual_limit),
                }
            }
        ),
        201 if created else 200,
    )
