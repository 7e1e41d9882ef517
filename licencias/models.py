"""Database models."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    Uuid,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from licencias.extensions import db


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class LeaveUnit(str, enum.Enum):
    DAYS = "DAYS"
    HOURS = "HOURS"
    NONE = "NONE"


class ControlPeriod(str, enum.Enum):
    MONTH = "MONTH"
    YEAR = "YEAR"
    NONE = "NONE"


class Gender(str, enum.Enum):
    MALE = "M"
    FEMALE = "F"
    ANY = "A"


class PersonnelType(str, enum.Enum):
    OPERATIVO = "OPERATIVO"
    ADMINISTRATIVO = "ADMINISTRATIVO"


class OlvidoType(str, enum.Enum):
    ENTRADA = "ENTRADA"
    SALIDA = "SALIDA"


class LeaveRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LeaveStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    FINALIZED = "FINALIZED"
    CANCELLED = "CANCELLED"


class Department(db.Model):
    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)


class Position(db.Model):
    __tablename__ = "positions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    department_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
    )


class Worker(db.Model):
    __tablename__ = "workers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
    )
    position_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("positions.id", ondelete="SET NULL"), nullable=True
    )
    personnel_type: Mapped[PersonnelType] = mapped_column(
        Enum(PersonnelType, name="personnel_type"),
        nullable=False,
        default=PersonnelType.OPERATIVO,
    )
    gender: Mapped[Gender | None] = mapped_column(Enum(Gender, name="worker_gender"), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    hire_date: Mapped[date] = mapped_column(Date, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    department: Mapped[Department | None] = relationship()
    position: Mapped[Position | None] = relationship()


class LeaveType(db.Model):
    __tablename__ = "leave_types"
    __table_args__ = (
        CheckConstraint("max_duration >= 0", name="ck_leave_types_max_duration_non_negative"),
        CheckConstraint(
            "max_duration > 0 OR control_period = 'NONE'",
            name="ck_leave_types_unbounded_only_without_period",
        ),
        CheckConstraint("NOT applies_age OR age_max > age_min", name="ck_leave_types_age_range"),
        CheckConstraint("NOT applies_seniority OR seniority_min > 0", name="ck_leave_types_seniority"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit_of_control: Mapped[LeaveUnit] = mapped_column(Enum(LeaveUnit, name="leave_unit"), nullable=False)
    control_period: Mapped[ControlPeriod] = mapped_column(
        Enum(ControlPeriod, name="control_period"), nullable=False
    )
    max_duration: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=Decimal("0"))

    requires_justification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requires_special_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requires_documentation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pays_salary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    accumulable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    transferable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    applies_gender: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    gender: Mapped[Gender] = mapped_column(Enum(Gender, name="leave_type_gender"), nullable=False, default=Gender.ANY)
    applies_seniority: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    seniority_min: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    applies_age: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    age_min: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    age_max: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    applies_department: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    departments: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    applies_position: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    positions: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    applies_personnel_type: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    personnel_types: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)


class ControlLimit(db.Model):
    __tablename__ = "control_limits"
    __table_args__ = (
        UniqueConstraint("leave_type_id", "year", name="uq_control_limits_type_year"),
        CheckConstraint("monthly_limit >= 0 AND annual_limit >= 0", name="ck_control_limits_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    leave_type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("leave_types.id", ondelete="CASCADE"), nullable=False
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    monthly_limit: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=Decimal("0"))
    annual_limit: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=Decimal("0"))


class LeaveRequest(db.Model):
    __tablename__ = "leave_requests"
    __table_args__ = (
        Index("ix_leave_requests_worker_status", "worker_id", "status"),
        CheckConstraint("quantity IS NULL OR quantity > 0", name="ck_leave_requests_quantity_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    worker_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("workers.id", ondelete="CASCADE"), nullable=False)
    leave_type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("leave_types.id", ondelete="RESTRICT"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    start_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    calendar_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    business_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    justification: Mapped[str | None] = mapped_column(Text, nullable=True)
    observations: Mapped[str | None] = mapped_column(Text, nullable=True)
    olvido_type: Mapped[OlvidoType | None] = mapped_column(Enum(OlvidoType, name="olvido_type"), nullable=True)
    date_not_attending: Mapped[date | None] = mapped_column(Date, nullable=True)
    date_attending_instead: Mapped[date | None] = mapped_column(Date, nullable=True)
    covering_worker_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("workers.id", ondelete="SET NULL"), nullable=True
    )
    affects_availability: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[LeaveRequestStatus] = mapped_column(
        Enum(LeaveRequestStatus, name="leave_request_status"),
        nullable=False,
        default=LeaveRequestStatus.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    worker: Mapped[Worker] = relationship(foreign_keys=[worker_id])
    covering_worker: Mapped[Worker | None] = relationship(foreign_keys=[covering_worker_id])
    leave_type: Mapped[LeaveType] = relationship()


class Leave(db.Model):
    __tablename__ = "leaves"
    __table_args__ = (Index("ix_leaves_worker_status", "worker_id", "status"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("leave_requests.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    worker_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("workers.id", ondelete="CASCADE"), nullable=False)
    leave_type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("leave_types.id", ondelete="RESTRICT"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    period_key: Mapped[str | None] = mapped_column(String(7), nullable=True)
    consumed_balance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[LeaveStatus] = mapped_column(
        Enum(LeaveStatus, name="leave_status"),
        nullable=False,
        default=LeaveStatus.ACTIVE,
    )
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    request: Mapped[LeaveRequest] = relationship()
    worker: Mapped[Worker] = relationship()
    leave_type: Mapped[LeaveType] = relationship()


class AvailabilityBalance(db.Model):
    __tablename__ = "availability_balances"
    __table_args__ = (
        UniqueConstraint("worker_id", "leave_type_id", "period_key", name="uq_availability_worker_type_period"),
        Index("ix_availability_worker", "worker_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    worker_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("workers.id", ondelete="CASCADE"), nullable=False)
    leave_type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("leave_types.id", ondelete="CASCADE"), nullable=False
    )
    period_key: Mapped[str] = mapped_column(String(7), nullable=False)
    available: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=Decimal("0"))
    used: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=Decimal("0"))
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, onupdate=now_utc
    )

    worker: Mapped[Worker] = relationship()
    leave_type: Mapped[LeaveType] = relationship()

    @property
    def remaining(self) -> Decimal:
        # Over-draw is allowed, so this can be negative.
        return Decimal(self.available) - Decimal(self.used)


class AuditLog(db.Model):
    __tablename__ = "audit_log"
    __table_args__ = (Index("ix_audit_log_entity", "entity_type", "entity_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    action: Mapped[str] = mapped_column(String(128), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    payload_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)
