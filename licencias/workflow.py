"""Status transitions for leave requests and leaves."""

from __future__ import annotations

from licencias.models import LeaveRequestStatus, LeaveStatus

REQUEST_TRANSITIONS: dict[LeaveRequestStatus, set[LeaveRequestStatus]] = {
    LeaveRequestStatus.PENDING: {
        LeaveRequestStatus.APPROVED,
        LeaveRequestStatus.REJECTED,
        LeaveRequestStatus.CANCELLED,
    },
    LeaveRequestStatus.APPROVED: set(),
    LeaveRequestStatus.REJECTED: set(),
    LeaveRequestStatus.CANCELLED: set(),
}

LEAVE_TRANSITIONS: dict[LeaveStatus, set[LeaveStatus]] = {
    LeaveStatus.ACTIVE: {LeaveStatus.FINALIZED, LeaveStatus.CANCELLED},
    LeaveStatus.FINALIZED: set(),
    LeaveStatus.CANCELLED: set(),
}

REQUEST_STATUS_LABELS = {
    LeaveRequestStatus.PENDING: "Pendiente",
    LeaveRequestStatus.APPROVED: "Aprobada",
    LeaveRequestStatus.REJECTED: "Rechazada",
    LeaveRequestStatus.CANCELLED: "Cancelada",
}
LEAVE_STATUS_LABELS = {
    LeaveStatus.ACTIVE: "Activa",
    LeaveStatus.FINALIZED: "Finalizada",
    LeaveStatus.CANCELLED: "Cancelada",
}


class InvalidTransitionError(ValueError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"No se puede pasar de {current} a {target}.")
        self.current = current
        self.target = target


def can_transition_request(current: LeaveRequestStatus, target: LeaveRequestStatus) -> bool:
    return target in REQUEST_TRANSITIONS.get(current, set())


def can_transition_leave(current: LeaveStatus, target: LeaveStatus) -> bool:
    return target in LEAVE_TRANSITIONS.get(current, set())


def transition_request(current: LeaveRequestStatus, target: LeaveRequestStatus) -> LeaveRequestStatus:
    if not can_transition_request(current, target):
        raise InvalidTransitionError(current.value, target.value)
    return target


def transition_leave(current: LeaveStatus, target: LeaveStatus) -> LeaveStatus:
    if not can_transition_leave(current, target):
        raise InvalidTransitionError(current.value, target.value)
    return target
