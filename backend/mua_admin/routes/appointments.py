# Overview: Flask API routes for the appointment calendar.

# backend/mua_admin/routes/appointments.py
from flask import Blueprint, request

from ..decorators import require_auth
from ..errors import NotFoundError, ValidationError
from ..services import appointment_service
from ..time_utils import parse_iso_datetime
from . import internal_error

appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")


@appointments_bp.get("")
@require_auth
def list_appointments_route():
    """
    List appointments, optionally limited to a window.

    Query params:
    - start, end: ISO-8601 datetimes; returns appointments overlapping [start, end)
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return {"error": "start and end must be ISO-8601 datetimes"}, 400

    appointments = appointment_service.list_appointments(start=start, end=end)
    return {"appointments": [a.to_dict() for a in appointments]}


@appointments_bp.post("")
@require_auth
def create_appointment_route():
    payload = request.get_json(silent=True) or {}

    try:
        appointment = appointment_service.create_appointment(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        return internal_error("Failed to create appointment")

    return {"appointment": appointment.to_dict()}, 201


@appointments_bp.put("/<int:appointment_id>")
@require_auth
def update_appointment_route(appointment_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        appointment = appointment_service.update_appointment(appointment_id, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        return internal_error("Failed to update appointment")

    return {"appointment": appointment.to_dict()}


@appointments_bp.delete("/<int:appointment_id>")
@require_auth
def delete_appointment_route(appointment_id: int):
    if not appointment_service.delete_appointment(appointment_id):
        return {"error": "Appointment not found"}, 404
    return {"success": True, "message": "Appointment deleted"}
