# Overview: Flask API routes for reading invoices and adjusting due dates.

# backend/mua_admin/routes/invoices.py
from flask import Blueprint, request

from ..decorators import require_auth
from ..errors import NotFoundError, ValidationError
from ..services import invoice_service
from . import internal_error

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    order_id = request.args.get("order_id", type=int)
    invoices = invoice_service.list_invoices(order_id=order_id)
    return {"invoices": [i.to_dict() for i in invoices]}


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(invoice_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"invoice": invoice.to_dict()}


@invoices_bp.patch("/<int:invoice_id>/due-date")
@require_auth
def update_due_date_route(invoice_id: int):
    """Body: {"due_days": int >= 1}; due_date becomes issue_date + due_days."""
    payload = request.get_json(silent=True) or {}

    try:
        invoice = invoice_service.update_due_date(invoice_id, payload.get("due_days"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        return internal_error("Failed to update invoice due date")

    return {"success": True, "invoice": invoice.to_dict()}
