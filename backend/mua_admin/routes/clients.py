# Overview: Flask API routes for client intake; parses input and returns JSON responses.

# backend/mua_admin/routes/clients.py
"""
Client routes.

Creating a client books its Akad and Resepsi appointments in the same
transaction. Deleting a client removes its orders (with their payments and
invoices) and its appointments.

SECURITY: All routes require authentication.
"""
from flask import Blueprint, request

from ..decorators import require_auth
from ..errors import NotFoundError, ValidationError
from ..services import client_service
from . import internal_error

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


@clients_bp.get("")
@require_auth
def list_clients_route():
    try:
        return {"clients": [c.to_dict() for c in client_service.list_clients()]}
    except Exception:
        return internal_error("Failed to list clients")


@clients_bp.post("")
@require_auth
def create_client_route():
    payload = request.get_json(silent=True) or {}

    try:
        client = client_service.create_client(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        return internal_error("Failed to create client")

    return {"client": client.to_dict(include_appointments=True)}, 201


@clients_bp.get("/<int:client_id>")
@require_auth
def get_client_route(client_id: int):
    try:
        client = client_service.get_client(client_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"client": client.to_dict(include_appointments=True)}


@clients_bp.put("/<int:client_id>")
@require_auth
def update_client_route(client_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        client = client_service.update_client(client_id, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        return internal_error("Failed to update client")

    return {"client": client.to_dict(include_appointments=True)}


@clients_bp.delete("/<int:client_id>")
@require_auth
def delete_client_route(client_id: int):
    try:
        deleted = client_service.delete_client(client_id)
    except Exception:
        return internal_error("Failed to delete client")

    if not deleted:
        return {"error": "Client not found"}, 404
    return {"success": True, "message": "Client deleted"}
