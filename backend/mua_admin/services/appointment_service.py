# Overview: Calendar appointment CRUD.

from __future__ import annotations

from datetime import datetime

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Appointment, Client
from ..validation import ModelValidationPolicy, validate_payload


APPOINTMENT_POLICY = ModelValidationPolicy(
    writable_fields={"title", "description", "start_time", "end_time", "client_id", "color"},
    required_on_create={"title", "start_time", "end_time"},
)

DEFAULT_COLOR = "#d4b896"


def _check(start_time: datetime, end_time: datetime, client_id: int | None) -> None:
    if end_time <= start_time:
        raise ValidationError("end_time must be after start_time")
    if client_id is not None and not db.session.get(Client, client_id):
        raise NotFoundError("Client not found")


def create_appointment(payload: dict) -> Appointment:
    patch = validate_payload(model=Appointment, payload=payload, policy=APPOINTMENT_POLICY, partial=False)
    if not patch.get("color"):
        patch["color"] = DEFAULT_COLOR
    _check(patch["start_time"], patch["end_time"], patch.get("client_id"))

    appointment = Appointment(**patch)
    db.session.add(appointment)
    db.session.commit()
    return appointment


def update_appointment(appointment_id: int, payload: dict) -> Appointment:
    patch = validate_payload(model=Appointment, payload=payload, policy=APPOINTMENT_POLICY, partial=True)

    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        raise NotFoundError("Appointment not found")

    _check(
        patch.get("start_time", appointment.start_time),
        patch.get("end_time", appointment.end_time),
        patch.get("client_id", appointment.client_id),
    )
    for key, value in patch.items():
        setattr(appointment, key, value)
    db.session.commit()
    return appointment


def delete_appointment(appointment_id: int) -> bool:
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return False
    db.session.delete(appointment)
    db.session.commit()
    return True


def list_appointments(start: datetime | None = None, end: datetime | None = None) -> list[Appointment]:
    """Appointments overlapping [start, end), ordered by start time."""
    query = db.session.query(Appointment)
    if start is not None:
        query = query.filter(Appointment.end_time > start)
    if end is not None:
        query = query.filter(Appointment.start_time < end)
    return query.order_by(Appointment.start_time.asc()).all()
