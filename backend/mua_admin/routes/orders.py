# Overview: Flask API routes for orders, their payment ledger and invoice generation.

# backend/mua_admin/routes/orders.py
"""
Order routes.

MONEY INVARIANTS (maintained by payment_service, never by routes):
- paid_amount == sum(payment.amount for the order)
- remaining_amount == total_amount - paid_amount
- payment_status == "Lunas" iff remaining_amount <= 0

Payments are append-only: there is no update or delete route for them.
Invoice generation is idempotent per payment; a repeat call answers 200 with
the existing invoice instead of 201.

SECURITY: All routes require authentication.
"""
from flask import Blueprint, request

from ..decorators import require_auth
from ..errors import ConflictError, NotFoundError, ValidationError
from ..services import invoice_service
from ..services import order_service
from ..services import payment_service
from . import internal_error

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders_route():
    """
    List orders, newest first.

    Query params:
    - client_id: int (optional) - only this client's orders
    """
    client_id = request.args.get("client_id", type=int)
    orders = order_service.list_orders(client_id=client_id)
    return {"orders": [o.to_dict() for o in orders]}


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Create an order.

    A non-zero paid_amount becomes payment DP1 in the same transaction.
    """
    payload = request.get_json(silent=True) or {}

    try:
        order = order_service.create_order(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        return internal_error("Failed to create order")

    return {"order": order.to_dict(include_payments=True)}, 201


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"order": order.to_dict(include_payments=True)}


@orders_bp.put("/<int:order_id>")
@require_auth
def update_order_route(order_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        order = order_service.update_order(order_id, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        return internal_error("Failed to update order")

    return {"order": order.to_dict(include_payments=True)}


@orders_bp.delete("/<int:order_id>")
@require_auth
def delete_order_route(order_id: int):
    try:
        deleted = order_service.delete_order(order_id)
    except Exception:
        return internal_error("Failed to delete order")

    if not deleted:
        return {"error": "Order not found"}, 404
    return {"success": True, "message": "Order deleted"}


# =============================================================================
# PAYMENTS
# =============================================================================

@orders_bp.post("/<int:order_id>/payments")
@require_auth
def add_payment_route(order_id: int):
    """
    Append a payment (next DP number) to the order's ledger.

    Body: {"amount": int, "payment_method"?: str, "notes"?: str}
    Rejects amounts <= 0 and amounts above the remaining balance; a rejected
    payment leaves the order untouched.
    """
    payload = request.get_json(silent=True) or {}

    try:
        payment, order = payment_service.add_payment(
            order_id,
            payload.get("amount"),
            payment_method=payload.get("payment_method"),
            notes=payload.get("notes"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        return internal_error("Failed to add payment")

    return {
        "success": True,
        "message": "Payment added successfully",
        "payment": payment.to_dict(),
        "order": order.to_dict(),
    }, 201


@orders_bp.get("/<int:order_id>/payments")
@require_auth
def list_payments_route(order_id: int):
    try:
        payments = payment_service.list_payments(order_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"payments": [p.to_dict(include_invoice=True) for p in payments]}


# =============================================================================
# INVOICES
# =============================================================================

@orders_bp.post("/<int:order_id>/generate-invoice")
@require_auth
def generate_invoice_route(order_id: int):
    """
    Issue the invoice for the order's most recent payment.

    Body: {"due_days"?: int} (default INVOICE_DEFAULT_DUE_DAYS)
    Returns 201 with the new invoice, or 200 with the invoice already issued
    for that payment.
    """
    payload = request.get_json(silent=True) or {}

    try:
        invoice, created = invoice_service.generate_for_latest_payment(
            order_id, due_days=payload.get("due_days")
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        return internal_error("Failed to generate invoice")

    if not created:
        return {
            "success": True,
            "message": "Invoice already exists",
            "invoice": invoice.to_dict(),
        }, 200

    return {
        "success": True,
        "message": "Invoice generated successfully",
        "invoice": invoice.to_dict(),
    }, 201
