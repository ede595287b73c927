# Overview: Client intake; booking a client also books its ceremony and reception.

from __future__ import annotations

import re
from datetime import datetime, timedelta

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Appointment, Client
from ..validation import ModelValidationPolicy, validate_payload


CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "bride_name", "groom_name", "primary_phone", "secondary_phone",
        "bride_address", "groom_address", "bride_parents", "groom_parents",
        "ceremony_date", "ceremony_time", "reception_date", "reception_time",
        "event_location",
    },
    required_on_create={"bride_name", "groom_name", "primary_phone", "ceremony_date", "reception_date"},
)

CEREMONY_DURATION = timedelta(hours=2)
RECEPTION_DURATION = timedelta(hours=3)
CEREMONY_COLOR = "#9c27b0"
RECEPTION_COLOR = "#e91e63"
DEFAULT_EVENT_HOUR = 9

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def _check_times(patch: dict) -> None:
    for field in ("ceremony_time", "reception_time"):
        value = patch.get(field)
        if value and not _TIME_RE.match(value):
            raise ValidationError(f"{field} must be HH:MM")


def event_start(date: datetime, time_str: str | None) -> datetime:
    """Combine an event date with an "HH:MM" time; missing time means 09:00."""
    if time_str:
        hours, minutes = (int(part) for part in time_str.split(":"))
    else:
        hours, minutes = DEFAULT_EVENT_HOUR, 0
    return date.replace(hour=hours, minute=minutes, second=0, microsecond=0)


def _event_fields(client: Client) -> list[tuple[str, dict]]:
    """(title keyword, appointment fields) for the client's Akad and Resepsi."""
    couple = f"{client.bride_name} & {client.groom_name}"
    location = client.event_location or "-"

    ceremony_start = event_start(client.ceremony_date, client.ceremony_time)
    reception_start = event_start(client.reception_date, client.reception_time)

    return [
        ("akad", {
            "title": f"Akad - {couple}",
            "description": f"Akad Nikah di {location}",
            "start_time": ceremony_start,
            "end_time": ceremony_start + CEREMONY_DURATION,
            "color": CEREMONY_COLOR,
        }),
        ("resepsi", {
            "title": f"Resepsi - {couple}",
            "description": f"Resepsi Pernikahan di {location}",
            "start_time": reception_start,
            "end_time": reception_start + RECEPTION_DURATION,
            "color": RECEPTION_COLOR,
        }),
    ]


def _sync_event_appointments(client: Client) -> None:
    """
    Refresh the Akad and Resepsi appointments from the client's dates.

    Existing entries are found by title keyword and keep their color; missing
    ones are created. Does not commit.
    """
    existing = sorted(client.appointments, key=lambda a: a.start_time)
    for keyword, fields in _event_fields(client):
        appointment = next((a for a in existing if keyword in a.title.lower()), None)
        if appointment is None:
            db.session.add(Appointment(client=client, **fields))
            continue
        for key in ("title", "description", "start_time", "end_time"):
            setattr(appointment, key, fields[key])


def create_client(payload: dict) -> Client:
    """Create a client plus its Akad and Resepsi appointments in one transaction."""
    patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=False)
    _check_times(patch)

    client = Client(**patch)
    db.session.add(client)
    _sync_event_appointments(client)
    db.session.commit()
    return client


def update_client(client_id: int, payload: dict) -> Client:
    """Patch a client and refresh its Akad and Resepsi appointments in the same commit."""
    patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=True)
    _check_times(patch)

    client = get_client(client_id)
    for key, value in patch.items():
        setattr(client, key, value)
    _sync_event_appointments(client)
    db.session.commit()
    return client


def delete_client(client_id: int) -> bool:
    """Delete a client with its orders (and their payments/invoices) and appointments."""
    client = db.session.get(Client, client_id)
    if not client:
        return False
    db.session.delete(client)
    db.session.commit()
    return True


def get_client(client_id: int) -> Client:
    client = db.session.get(Client, client_id)
    if not client:
        raise NotFoundError("Client not found")
    return client


def list_clients() -> list[Client]:
    return db.session.query(Client).order_by(Client.created_at.desc(), Client.id.desc()).all()
