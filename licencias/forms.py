"""WTForms form classes for JSON payloads."""

from __future__ import annotations

from flask_wtf import FlaskForm
from wtforms import BooleanField, DateField, DecimalField, Field, IntegerField, SelectField, StringField, TimeField
from wtforms.validators import DataRequired, Length, NumberRange, Optional, ValidationError

from licencias.org_time import current_org_date


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class StringListField(Field):
    """Accepts a JSON array of strings."""

    def _value(self) -> str:
        return ", ".join(self.data or [])

    def process_formdata(self, valuelist) -> None:
        self.data = [str(item).strip() for item in valuelist if str(item).strip()]


class LeaveRequestForm(FlaskForm):
    worker_code = StringField("Trabajador", validators=[DataRequired(), Length(max=32)], filters=[_strip])
    leave_type_code = StringField("Tipo de licencia", validators=[DataRequired(), Length(max=32)], filters=[_strip])
    start_date = DateField("Fecha inicio", validators=[Optional()])
    end_date = DateField("Fecha fin", validators=[Optional()])
    date = DateField("Fecha", validators=[Optional()])
    start_time = TimeField("Hora inicio", validators=[Optional()])
    end_time = TimeField("Hora fin", validators=[Optional()])
    reason = StringField("Motivo", validators=[Optional(), Length(max=500)], filters=[_strip])
    justification = StringField("Justificación", validators=[Optional(), Length(max=500)], filters=[_strip])
    observations = StringField("Observaciones", validators=[Optional(), Length(max=500)], filters=[_strip])
    olvido_type = StringField("Tipo de olvido", validators=[Optional(), Length(max=16)], filters=[_strip])
    date_not_attending = DateField("Fecha no asiste", validators=[Optional()])
    date_attending_instead = DateField("Fecha sí asiste", validators=[Optional()])
    covering_worker_code = StringField(
        "Trabajador que cubre",
        validators=[Optional(), Length(max=32)],
        filters=[_strip],
    )
    retroactive = BooleanField("Retroactiva", default=False)


class DecisionForm(FlaskForm):
    observations = StringField("Observaciones", validators=[Optional(), Length(max=500)], filters=[_strip])


class LeaveCancelForm(FlaskForm):
    reason = StringField("Motivo de cancelación", validators=[Optional(), Length(max=500)], filters=[_strip])


class FinalizeDueForm(FlaskForm):
    today = DateField("Fecha de corte", validators=[Optional()])


class LeaveTypeForm(FlaskForm):
    code = StringField("Código", validators=[DataRequired(), Length(min=3, max=32)], filters=[_strip])
    name = StringField("Nombre", validators=[DataRequired(), Length(min=3, max=128)], filters=[_strip])
    description = StringField("Descripción", validators=[Optional(), Length(max=1000)], filters=[_strip])
    unit_of_control = SelectField(
        "Unidad de control",
        choices=[("DAYS", "Días"), ("HOURS", "Horas"), ("NONE", "Ninguno (solo registro)")],
        validators=[DataRequired()],
    )
    control_period = SelectField(
        "Período de control",
        choices=[("MONTH", "Mensual"), ("YEAR", "Anual"), ("NONE", "Ninguno")],
        validators=[DataRequired()],
    )
    max_duration = DecimalField("Duración máxima", validators=[Optional()], default=0)
    requires_justification = BooleanField("Requiere justificación")
    requires_special_approval = BooleanField("Requiere aprobación especial")
    requires_documentation = BooleanField("Requiere documentación")
    pays_salary = BooleanField("Goce de salario")
    accumulable = BooleanField("Acumulable")
    transferable = BooleanField("Transferible")
    applies_gender = BooleanField("Aplica por género")
    gender = SelectField(
        "Género aplicable",
        choices=[("A", "Ambos"), ("M", "Masculino"), ("F", "Femenino")],
        default="A",
    )
    applies_seniority = BooleanField("Aplica por antigüedad")
    seniority_min = IntegerField("Antigüedad mínima (años)", validators=[Optional(), NumberRange(min=0)], default=0)
    applies_age = BooleanField("Aplica por edad")
    age_min = IntegerField("Edad mínima", validators=[Optional(), NumberRange(min=0, max=120)], default=0)
    age_max = IntegerField("Edad máxima", validators=[Optional(), NumberRange(min=0, max=120)], default=0)
    applies_department = BooleanField("Aplica por departamento")
    departments = StringListField("Departamentos aplicables")
    applies_position = BooleanField("Aplica por puesto")
    positions = StringListField("Puestos aplicables")
    applies_personnel_type = BooleanField("Aplica por tipo de personal")
    personnel_types = StringListField("Tipos de personal aplicables")

    def validate_personnel_types(self, field: StringListField) -> None:
        allowed = {"OPERATIVO", "ADMINISTRATIVO"}
        if any(item.upper() not in allowed for item in field.data or []):
            raise ValidationError("Tipo de personal invalido.")


class ControlLimitForm(FlaskForm):
    leave_type_code = StringField("Tipo de licencia", validators=[DataRequired(), Length(max=32)], filters=[_strip])
    year = IntegerField(
        "Año",
        validators=[DataRequired(), NumberRange(min=2000, max=2100)],
        default=lambda: current_org_date().year,
    )
    monthly_limit = DecimalField("Límite mensual", validators=[Optional(), NumberRange(min=0)], default=0)
    annual_limit = DecimalField("Límite anual", validators=[Optional(), NumberRange(min=0)], default=0)
