from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterator

import pytest
from sqlalchemy import event
from sqlalchemy.dialects import postgresql
from sqlalchemy.pool import StaticPool

from licencias import create_app
from licencias.config import Config
from licencias.extensions import db
from licencias.models import (
    ControlPeriod,
    Department,
    Gender,
    LeaveType,
    LeaveUnit,
    PersonnelType,
    Position,
    Worker,
)


class TestConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    SQLALCHEMY_DATABASE_URI = "sqlite+pysqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }


def _leave_type(code: str, name: str, unit: LeaveUnit, period: ControlPeriod, max_duration: str, **flags) -> LeaveType:
    return LeaveType(
        code=code,
        name=name,
        unit_of_control=unit,
        control_period=period,
        max_duration=Decimal(max_duration),
        **flags,
    )


@pytest.fixture()
def app() -> Iterator:
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()

        production = Department(name="Produccion")
        finance = Department(name="Finanzas")
        db.session.add_all([production, finance])
        db.session.flush()
        operator = Position(name="Operario", department_id=production.id)
        analyst = Position(name="Analista", department_id=finance.id)
        db.session.add_all([operator, analyst])
        db.session.flush()

        db.session.add_all(
            [
                Worker(
                    code="W001",
                    full_name="Ana Martinez",
                    email="ana@example.com",
                    department_id=production.id,
                    position_id=operator.id,
                    personnel_type=PersonnelType.OPERATIVO,
                    gender=Gender.FEMALE,
                    birth_date=date(1990, 5, 10),
                    hire_date=date(2015, 3, 1),
                    active=True,
                ),
                Worker(
                    code="W002",
                    full_name="Luis Hernandez",
                    email="luis@example.com",
                    department_id=finance.id,
                    position_id=analyst.id,
                    personnel_type=PersonnelType.ADMINISTRATIVO,
                    gender=Gender.MALE,
                    birth_date=date(1985, 11, 2),
                    hire_date=date(2024, 1, 15),
                    active=True,
                ),
                Worker(
                    code="W003",
                    full_name="Carla Lopez",
                    department_id=production.id,
                    personnel_type=PersonnelType.OPERATIVO,
                    gender=Gender.FEMALE,
                    hire_date=date(2019, 8, 1),
                    active=False,
                ),
                _leave_type("VACACIONES", "Vacaciones", LeaveUnit.DAYS, ControlPeriod.YEAR, "15"),
                _leave_type("PERSONAL", "Permiso personal", LeaveUnit.DAYS, ControlPeriod.MONTH, "5"),
                _leave_type("PERMISO-HORAS", "Permiso por horas", LeaveUnit.HOURS, ControlPeriod.MONTH, "8"),
                _leave_type(
                    "ENFERMEDAD",
                    "Enfermedad",
                    LeaveUnit.DAYS,
                    ControlPeriod.MONTH,
                    "3",
                    requires_justification=True,
                ),
                _leave_type("OLVIDO-ENT", "Olvido de marcación de entrada", LeaveUnit.DAYS, ControlPeriod.NONE, "0"),
                _leave_type("CAMBIO-TUR", "Cambio de turno", LeaveUnit.DAYS, ControlPeriod.NONE, "0"),
                _leave_type("LACTANCIA", "Lactancia", LeaveUnit.DAYS, ControlPeriod.NONE, "0"),
                _leave_type(
                    "MATERNIDAD",
                    "Maternidad",
                    LeaveUnit.DAYS,
                    ControlPeriod.NONE,
                    "120",
                    applies_gender=True,
                    gender=Gender.FEMALE,
                ),
                _leave_type("CAPACITACION", "Capacitación", LeaveUnit.NONE, ControlPeriod.NONE, "0"),
            ]
        )
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def recorded_selects(app) -> Iterator[list[str]]:
    """SELECTs issued through the session, compiled as PostgreSQL would run them."""
    statements: list[str] = []

    def _record(orm_execute_state) -> None:
        if orm_execute_state.is_select:
            statements.append(str(orm_execute_state.statement.compile(dialect=postgresql.dialect())))

    event.listen(db.session, "do_orm_execute", _record)
    yield statements
    event.remove(db.session, "do_orm_execute", _record)
