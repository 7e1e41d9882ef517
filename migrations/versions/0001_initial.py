"""Initial schema.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


personnel_type = sa.Enum("OPERATIVO", "ADMINISTRATIVO", name="personnel_type")
worker_gender = sa.Enum("MALE", "FEMALE", "ANY", name="worker_gender")
leave_type_gender = sa.Enum("MALE", "FEMALE", "ANY", name="leave_type_gender")
leave_unit = sa.Enum("DAYS", "HOURS", "NONE", name="leave_unit")
control_period = sa.Enum("MONTH", "YEAR", "NONE", name="control_period")
olvido_type = sa.Enum("ENTRADA", "SALIDA", name="olvido_type")
leave_request_status = sa.Enum("PENDING", "APPROVED", "REJECTED", "CANCELLED", name="leave_request_status")
leave_status = sa.Enum("ACTIVE", "FINALIZED", "CANCELLED", name="leave_status")


def upgrade() -> None:
    op.create_table(
        "departments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "positions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("department_id", sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "workers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("department_id", sa.Uuid(), nullable=True),
        sa.Column("position_id", sa.Uuid(), nullable=True),
        sa.Column("personnel_type", personnel_type, nullable=False, server_default="OPERATIVO"),
        sa.Column("gender", worker_gender, nullable=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("hire_date", sa.Date(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["position_id"], ["positions.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workers_code", "workers", ["code"], unique=True)

    op.create_table(
        "leave_types",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit_of_control", leave_unit, nullable=False),
        sa.Column("control_period", control_period, nullable=False),
        sa.Column("max_duration", sa.Numeric(precision=8, scale=2), nullable=False, server_default=sa.text("0")),
        sa.Column("requires_justification", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requires_special_approval", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requires_documentation", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pays_salary", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("accumulable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("transferable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("applies_gender", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("gender", leave_type_gender, nullable=False, server_default="ANY"),
        sa.Column("applies_seniority", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("seniority_min", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("applies_age", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("age_min", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("age_max", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("applies_department", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("departments", sa.JSON(), nullable=True),
        sa.Column("applies_position", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("positions", sa.JSON(), nullable=True),
        sa.Column("applies_personnel_type", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("personnel_types", sa.JSON(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("max_duration >= 0", name="ck_leave_types_max_duration_non_negative"),
        sa.CheckConstraint(
            "max_duration > 0 OR control_period = 'NONE'",
            name="ck_leave_types_unbounded_only_without_period",
        ),
        sa.CheckConstraint("NOT applies_age OR age_max > age_min", name="ck_leave_types_age_range"),
        sa.CheckConstraint("NOT applies_seniority OR seniority_min > 0", name="ck_leave_types_seniority"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_leave_types_code", "leave_types", ["code"], unique=True)

    op.create_table(
        "control_limits",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("leave_type_id", sa.Uuid(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("monthly_limit", sa.Numeric(precision=8, scale=2), nullable=False, server_default=sa.text("0")),
        sa.Column("annual_limit", sa.Numeric(precision=8, scale=2), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("monthly_limit >= 0 AND annual_limit >= 0", name="ck_control_limits_non_negative"),
        sa.ForeignKeyConstraint(["leave_type_id"], ["leave_types.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("leave_type_id", "year", name="uq_control_limits_type_year"),
    )

    op.create_table(
        "leave_requests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("worker_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type_id", sa.Uuid(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("quantity", sa.Numeric(precision=8, scale=2), nullable=True),
        sa.Column("calendar_days", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("business_days", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("reason", sa.Text(), nullable=False, server_default=""),
        sa.Column("justification", sa.Text(), nullable=True),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("olvido_type", olvido_type, nullable=True),
        sa.Column("date_not_attending", sa.Date(), nullable=True),
        sa.Column("date_attending_instead", sa.Date(), nullable=True),
        sa.Column("covering_worker_id", sa.Uuid(), nullable=True),
        sa.Column("affects_availability", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("status", leave_request_status, nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("quantity IS NULL OR quantity > 0", name="ck_leave_requests_quantity_positive"),
        sa.ForeignKeyConstraint(["worker_id"], ["workers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["leave_type_id"], ["leave_types.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["covering_worker_id"], ["workers.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_leave_requests_worker_status", "leave_requests", ["worker_id", "status"], unique=False)

    op.create_table(
        "leaves",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("request_id", sa.Uuid(), nullable=False),
        sa.Column("worker_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type_id", sa.Uuid(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("quantity", sa.Numeric(precision=8, scale=2), nullable=True),
        sa.Column("period_key", sa.String(length=7), nullable=True),
        sa.Column("consumed_balance", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", leave_status, nullable=False, server_default="ACTIVE"),
        sa.Column("cancel_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["request_id"], ["leave_requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["worker_id"], ["workers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["leave_type_id"], ["leave_types.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("request_id"),
    )
    op.create_index("ix_leaves_worker_status", "leaves", ["worker_id", "status"], unique=False)

    op.create_table(
        "availability_balances",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("worker_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type_id", sa.Uuid(), nullable=False),
        sa.Column("period_key", sa.String(length=7), nullable=False),
        sa.Column("available", sa.Numeric(precision=8, scale=2), nullable=False, server_default=sa.text("0")),
        sa.Column("used", sa.Numeric(precision=8, scale=2), nullable=False, server_default=sa.text("0")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["worker_id"], ["workers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["leave_type_id"], ["leave_types.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("worker_id", "leave_type_id", "period_key", name="uq_availability_worker_type_period"),
    )
    op.create_index("ix_availability_worker", "availability_balances", ["worker_id"], unique=False)

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=True),
        sa.Column("payload_json", sa.JSON(), nullable=True),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_type", "entity_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_log_entity", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_availability_worker", table_name="availability_balances")
    op.drop_table("availability_balances")
    op.drop_index("ix_leaves_worker_status", table_name="leaves")
    op.drop_table("leaves")
    op.drop_index("ix_leave_requests_worker_status", table_name="leave_requests")
    op.drop_table("leave_requests")
    op.drop_table("control_limits")
    op.drop_index("ix_leave_types_code", table_name="leave_types")
    op.drop_table("leave_types")
    op.drop_index("ix_workers_code", table_name="workers")
    op.drop_table("workers")
    op.drop_table("positions")
    op.drop_table("departments")

    bind = op.get_bind()
    leave_status.drop(bind, checkfirst=True)
    leave_request_status.drop(bind, checkfirst=True)
    olvido_type.drop(bind, checkfirst=True)
    control_period.drop(bind, checkfirst=True)
    leave_unit.drop(bind, checkfirst=True)
    leave_type_gender.drop(bind, checkfirst=True)
    worker_gender.drop(bind, checkfirst=True)
    personnel_type.drop(bind, checkfirst=True)
