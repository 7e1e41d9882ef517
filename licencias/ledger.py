"""Server-side availability ledger.

One ``AvailabilityBalance`` row per (worker, leave type, period). Every
change to ``used`` happens with the row locked (``SELECT ... FOR UPDATE``)
and is applied as a SQL increment, so concurrent approvals for the same
key serialize instead of overwriting each other.

Over-draw is allowed: a reservation larger than ``remaining`` succeeds and
leaves ``remaining`` negative; callers warn, they never refuse.
Retroactive reservations are recorded by the caller but never touch
``used``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from licencias.extensions import db
from licencias.models import AvailabilityBalance, ControlLimit, ControlPeriod, LeaveType, Worker, now_utc
from licencias.policy import BalanceSnapshot


@dataclass(frozen=True)
class ReservationResult:
    ok: bool
    remaining: Decimal | None
    period_key: str | None = None
    consumed: bool = False

    @property
    def overdrawn(self) -> bool:
        return self.remaining is not None and self.remaining < 0


def period_key_for(control_period: ControlPeriod | str, on_date: date) -> str | None:
    period = ControlPeriod(getattr(control_period, "value", control_period))
    if period == ControlPeriod.YEAR:
        return f"{on_date.year:04d}"
    if period == ControlPeriod.MONTH:
        return f"{on_date.year:04d}-{on_date.month:02d}"
    return None


class AvailabilityLedger:
    def __init__(self, session: Session | None = None) -> None:
        self.session = session if session is not None else db.session

    def _balance_stmt(self, worker_id: uuid.UUID, leave_type_id: uuid.UUID, period_key: str):
        return select(AvailabilityBalance).where(
            AvailabilityBalance.worker_id == worker_id,
            AvailabilityBalance.leave_type_id == leave_type_id,
            AvailabilityBalance.period_key == period_key,
        )

    def opening_amount(self, leave_type: LeaveType, period_key: str) -> Decimal:
        """Quota granted when a period is first opened for a worker."""
        limit = self.session.execute(
            select(ControlLimit).where(
                ControlLimit.leave_type_id == leave_type.id,
                ControlLimit.year == int(period_key[:4]),
            )
        ).scalar_one_or_none()
        if limit is not None:
            configured = limit.monthly_limit if len(period_key) == 7 else limit.annual_limit
            if configured and Decimal(configured) > 0:
                return Decimal(configured)
        return Decimal(leave_type.max_duration or 0)

    def balance(self, worker_id: uuid.UUID, leave_type: LeaveType, period_key: str) -> AvailabilityBalance | None:
        return self.session.execute(self._balance_stmt(worker_id, leave_type.id, period_key)).scalar_one_or_none()

    def snapshot(self, worker_id: uuid.UUID, leave_type: LeaveType, period_key: str | None) -> BalanceSnapshot | None:
        """Committed state for the key; an unopened period reads as its full quota."""
        if period_key is None:
            return None
        row = self.balance(worker_id, leave_type, period_key)
        if row is None:
            return BalanceSnapshot(available=self.opening_amount(leave_type, period_key), used=Decimal("0"))
        if not row.active:
            return None
        return BalanceSnapshot(available=Decimal(row.available), used=Decimal(row.used))

    def _locked_balance(self, worker_id: uuid.UUID, leave_type: LeaveType, period_key: str) -> AvailabilityBalance:
        stmt = self._balance_stmt(worker_id, leave_type.id, period_key).with_for_update()
        row = self.session.execute(stmt).scalar_one_or_none()
        if row is not None:
            return row

        # A concurrent first reservation for the same key surfaces as an
        # IntegrityError on flush; the caller rolls back and retries.
        row = AvailabilityBalance(
            worker_id=worker_id,
            leave_type_id=leave_type.id,
            period_key=period_key,
            available=self.opening_amount(leave_type, period_key),
            used=Decimal("0"),
            active=True,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def _apply_delta(self, row: AvailabilityBalance, delta: Decimal) -> None:
        self.session.execute(
            update(AvailabilityBalance)
            .where(AvailabilityBalance.id == row.id)
            .values(used=AvailabilityBalance.used + delta, updated_at=now_utc())
            .execution_options(synchronize_session=False)
        )
        self.session.refresh(row)

    def check_and_reserve(
        self,
        worker_id: uuid.UUID,
        leave_type: LeaveType,
        period_key: str | None,
        quantity: Decimal,
        *,
        is_retroactive: bool,
    ) -> ReservationResult:
        if period_key is None:
            return ReservationResult(ok=True, remaining=None)

        if is_retroactive:
            current = self.balance(worker_id, leave_type, period_key)
            return ReservationResult(
                ok=True,
                remaining=current.remaining if current is not None else None,
                period_key=period_key,
            )

        row = self._locked_balance(worker_id, leave_type, period_key)
        if not row.active:
            return ReservationResult(ok=False, remaining=row.remaining, period_key=period_key)

        self._apply_delta(row, Decimal(quantity))
        return ReservationResult(ok=True, remaining=row.remaining, period_key=period_key, consumed=True)

    def release(
        self,
        worker_id: uuid.UUID,
        leave_type: LeaveType,
        period_key: str,
        quantity: Decimal,
    ) -> Decimal:
        row = self._locked_balance(worker_id, leave_type, period_key)
        self._apply_delta(row, -Decimal(quantity))
        return row.remaining

    def balances_for_worker(self, worker_id: uuid.UUID, on_date: date) -> list[dict[str, Any]]:
        leave_types = (
            self.session.execute(
                select(LeaveType)
                .where(LeaveType.active.is_(True), LeaveType.control_period != ControlPeriod.NONE)
                .order_by(LeaveType.code.asc())
            )
            .scalars()
            .all()
        )
        rows: list[dict[str, Any]] = []
        for leave_type in leave_types:
            period_key = period_key_for(leave_type.control_period, on_date)
            if period_key is None:
                continue
            row = self.balance(worker_id, leave_type, period_key)
            if row is None:
                rows.append(_balance_row(leave_type, period_key, self.opening_amount(leave_type, period_key)))
            else:
                rows.append(_balance_row(leave_type, period_key, row.available, row.used, row.active))
        return rows

    def balances_for_year(self, year: int, department_id: uuid.UUID | None = None) -> list[dict[str, Any]]:
        """Periods of ``year`` already opened, across workers."""
        stmt = (
            select(AvailabilityBalance, Worker, LeaveType)
            .join(Worker, Worker.id == AvailabilityBalance.worker_id)
            .join(LeaveType, LeaveType.id == AvailabilityBalance.leave_type_id)
            .where(AvailabilityBalance.period_key.startswith(f"{year:04d}"))
            .order_by(Worker.code.asc(), LeaveType.code.asc(), AvailabilityBalance.period_key.asc())
        )
        if department_id is not None:
            stmt = stmt.where(Worker.department_id == department_id)

        rows: list[dict[str, Any]] = []
        for balance, worker, leave_type in self.session.execute(stmt).all():
            row = _balance_row(leave_type, balance.period_key, balance.available, balance.used, balance.active)
            row.update(worker_code=worker.code, worker_name=worker.full_name)
            rows.append(row)
        return rows


def _balance_row(
    leave_type: LeaveType,
    period_key: str,
    available: Decimal,
    used: Decimal = Decimal("0"),
    active: bool = True,
) -> dict[str, Any]:
    return {
        "leave_type_code": leave_type.code,
        "leave_type_name": leave_type.name,
        "unit": leave_type.unit_of_control.value,
        "period_key": period_key,
        "available": Decimal(available),
        "used": Decimal(used),
        "remaining": Decimal(available) - Decimal(used),
        "active": active,
    }
