# Overview: Order creation, edits and deletion; delegates money fields to the payment ledger.

"""
Order Service

Order numbers are human-readable ("ORD-001") and allocated from the highest
existing order_sequence. Two concurrent creations can pick the same number;
the unique constraint rejects the loser, which is retried once before the
conflict is surfaced.

Money fields are never taken from the client as-is: paid_amount comes from
the payment ledger and remaining_amount/payment_status are recomputed by
payment_service.recalculate_order_totals on every change.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Client, Order
from ..validation import clean_string, coerce_int, parse_amount, validate_items
from . import payment_service
from .concurrency import lock_for_update, run_with_retry


ORDER_NUMBER_PREFIX = "ORD"
ORDER_CREATE_ATTEMPTS = 2


def format_order_number(sequence: int) -> str:
    return f"{ORDER_NUMBER_PREFIX}-{sequence:03d}"


def next_order_sequence() -> int:
    last = db.session.query(db.func.max(Order.order_sequence)).scalar()
    return (last or 0) + 1


def _items_total(items: list[dict]) -> int:
    return sum(item["total"] for item in items)


def _require_client(client_id) -> int:
    client_id = coerce_int(client_id, "client_id")
    if not db.session.get(Client, client_id):
        raise NotFoundError("Client not found")
    return client_id


def create_order(payload: dict) -> Order:
    """
    Create an order, optionally with an initial payment (DP1).

    Payload fields: client_id, event_location, items (required); total_amount
    (defaults to the sum of item totals); paid_amount, payment_method
    (optional initial payment); chair_model, softlens_color, special_request.

    Raises:
        ValidationError: missing/invalid fields or paid_amount > total_amount
        NotFoundError: client does not exist
        ConflictError: order number collision persisted after retry
    """
    if not payload.get("client_id") or not payload.get("event_location") or not payload.get("items"):
        raise ValidationError("Client, event location, and items are required")

    client_id = _require_client(payload["client_id"])
    event_location = clean_string(payload["event_location"], "event_location", 500, required=True)
    items = validate_items(payload["items"])

    if payload.get("total_amount") is not None:
        total_amount = parse_amount(payload["total_amount"], "total_amount", allow_zero=True)
    else:
        total_amount = _items_total(items)

    paid_amount = 0
    if payload.get("paid_amount"):
        paid_amount = parse_amount(payload["paid_amount"], "paid_amount")
    if paid_amount > total_amount:
        raise ValidationError(
            f"Payment amount ({paid_amount}) exceeds remaining amount ({total_amount})"
        )

    extras = {
        "chair_model": clean_string(payload.get("chair_model"), "chair_model", 255),
        "softlens_color": clean_string(payload.get("softlens_color"), "softlens_color", 100),
        "special_request": clean_string(payload.get("special_request"), "special_request", 1000),
    }
    payment_method = clean_string(payload.get("payment_method"), "payment_method", 64)

    for attempt in range(ORDER_CREATE_ATTEMPTS):
        sequence = next_order_sequence()
        order = Order(
            order_number=format_order_number(sequence),
            order_sequence=sequence,
            client_id=client_id,
            event_location=event_location,
            items=items,
            total_amount=total_amount,
            paid_amount=0,
            remaining_amount=total_amount,
            payment_status=payment_service.payment_status_for(total_amount),
            **extras,
        )
        try:
            db.session.add(order)
            db.session.flush()
            if paid_amount > 0:
                payment_service.append_payment(order, paid_amount, payment_method)
            else:
                payment_service.recalculate_order_totals(order)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.warning(
                "Order number %s collided (attempt %s)", format_order_number(sequence), attempt + 1
            )
            continue
        current_app.logger.info("Order %s created", order.order_number)
        return order

    raise ConflictError("Order number conflict. Please try again.")


def update_order(order_id: int, payload: dict) -> Order:
    """
    Edit an order's details.

    paid_amount and payment_status cannot be set directly; they follow the
    ledger. A new total below what has already been paid is rejected.
    """
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError("Order not found")

        if "client_id" in payload:
            order.client_id = _require_client(payload["client_id"])
        if "event_location" in payload:
            order.event_location = clean_string(payload["event_location"], "event_location", 500, required=True)

        items = None
        if "items" in payload:
            items = validate_items(payload["items"])
            order.items = items

        if payload.get("total_amount") is not None:
            order.total_amount = parse_amount(payload["total_amount"], "total_amount", allow_zero=True)
        elif items is not None:
            order.total_amount = _items_total(items)

        for field, max_length in (("chair_model", 255), ("softlens_color", 100), ("special_request", 1000)):
            if field in payload:
                setattr(order, field, clean_string(payload[field], field, max_length))

        paid = payment_service.ledger_total(order.id)
        if order.total_amount < paid:
            raise ValidationError(
                f"total_amount ({order.total_amount}) cannot be less than the amount already paid ({paid})"
            )

        payment_service.recalculate_order_totals(order)
        db.session.commit()
        return order

    return run_with_retry(_op)


def delete_order(order_id: int) -> bool:
    """Delete an order with its payments and invoices. Returns False if missing."""
    order = db.session.get(Order, order_id)
    if not order:
        return False
    db.session.delete(order)
    db.session.commit()
    return True


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def list_orders(client_id: int | None = None) -> list[Order]:
    query = db.session.query(Order)
    if client_id is not None:
        query = query.filter(Order.client_id == client_id)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()
