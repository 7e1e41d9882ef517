from __future__ import annotations

import pytest

from licencias.models import LeaveRequestStatus, LeaveStatus
from licencias.workflow import (
    InvalidTransitionError,
    can_transition_leave,
    can_transition_request,
    transition_leave,
    transition_request,
)


@pytest.mark.parametrize(
    "target",
    [LeaveRequestStatus.APPROVED, LeaveRequestStatus.REJECTED, LeaveRequestStatus.CANCELLED],
)
def test_pending_request_can_be_decided(target):
    assert transition_request(LeaveRequestStatus.PENDING, target) == target


@pytest.mark.parametrize(
    "current",
    [LeaveRequestStatus.APPROVED, LeaveRequestStatus.REJECTED, LeaveRequestStatus.CANCELLED],
)
def test_decided_request_is_terminal(current):
    for target in LeaveRequestStatus:
        assert not can_transition_request(current, target)
    with pytest.raises(InvalidTransitionError):
        transition_request(current, LeaveRequestStatus.APPROVED)


def test_active_leave_can_be_finalized_or_cancelled():
    assert can_transition_leave(LeaveStatus.ACTIVE, LeaveStatus.FINALIZED)
    assert can_transition_leave(LeaveStatus.ACTIVE, LeaveStatus.CANCELLED)
    assert not can_transition_leave(LeaveStatus.ACTIVE, LeaveStatus.ACTIVE)


def test_closed_leave_cannot_change():
    with pytest.raises(InvalidTransitionError) as excinfo:
        transition_leave(LeaveStatus.FINALIZED, LeaveStatus.CANCELLED)

    assert excinfo.value.current == "FINALIZED"
    assert excinfo.value.target == "CANCELLED"
