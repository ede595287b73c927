# Overview: Idempotent invoice generation for the latest payment of an order.

"""
Invoice Service

One invoice per payment. Generating for an order always targets its most
recent payment; if that payment already has an invoice, the existing row is
returned unchanged, so retried client requests never create duplicates.

NUMBERING: "INV-<year>-<NNN>" where NNN starts at (invoice count + 1). The
candidate is bumped past numbers that already exist (gaps left by deleted
orders), and the unique constraint on invoice_number catches concurrent
allocations. Invoice numbers are cosmetic, so there is no sequence table.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Invoice, Order
from ..validation import parse_due_days
from mua_admin.time_utils import utcnow
from .payment_service import latest_payment


INVOICE_STATUS_PAID = "Paid"
GENERATE_ATTEMPTS = 2


def format_invoice_number(year: int, sequence: int) -> str:
    return f"INV-{year}-{sequence:03d}"


def next_invoice_number(year: int) -> str:
    candidate = db.session.query(Invoice).count() + 1
    while True:
        number = format_invoice_number(year, candidate)
        taken = db.session.query(Invoice.id).filter_by(invoice_number=number).first()
        if not taken:
            return number
        candidate += 1


def _default_due_days() -> int:
    return int(current_app.config.get("INVOICE_DEFAULT_DUE_DAYS", 7))


def generate_for_latest_payment(order_id: int, due_days=None) -> tuple[Invoice, bool]:
    """
    Create (or fetch) the invoice for an order's latest payment.

    Args:
        order_id: Order to invoice
        due_days: Days from issue date until due (default INVOICE_DEFAULT_DUE_DAYS)

    Returns:
        (invoice, created) where created is False for an idempotent hit

    Raises:
        NotFoundError: order does not exist
        ValidationError: order has no payments, or due_days invalid
        ConflictError: invoice number collided twice in a row
    """
    days = parse_due_days(due_days) if due_days is not None else _default_due_days()

    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")

    payment = latest_payment(order_id)
    if not payment:
        raise ValidationError("No payment found for this order")

    payment_id = payment.id
    payment_number = payment.payment_number
    amount = payment.amount
    order_number = order.order_number

    existing = db.session.query(Invoice).filter_by(payment_id=payment_id).first()
    if existing:
        current_app.logger.info(
            "Invoice %s already exists for payment %s", existing.invoice_number, payment_id
        )
        return existing, False

    for attempt in range(GENERATE_ATTEMPTS):
        issue_date = utcnow()
        invoice = Invoice(
            invoice_number=next_invoice_number(issue_date.year),
            order_id=order_id,
            payment_id=payment_id,
            amount=amount,
            paid_amount=amount,
            status=INVOICE_STATUS_PAID,
            issue_date=issue_date,
            due_date=issue_date + timedelta(days=days),
            notes=f"Invoice untuk pembayaran DP{payment_number} - {order_number}",
        )
        db.session.add(invoice)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            # A concurrent request may have invoiced the same payment
            existing = db.session.query(Invoice).filter_by(payment_id=payment_id).first()
            if existing:
                return existing, False
            current_app.logger.warning(
                "Invoice number collision for order %s (attempt %s)", order_number, attempt + 1
            )
            continue

        current_app.logger.info(
            "Invoice %s generated for %s DP%s", invoice.invoice_number, order_number, payment_number
        )
        return invoice, True

    raise ConflictError("Invoice number conflict. Please try again.")


def update_due_date(invoice_id: int, due_days) -> Invoice:
    """Set due_date to issue_date + due_days (due_days >= 1)."""
    if due_days is None:
        raise ValidationError("Invalid due days value")
    days = parse_due_days(due_days)

    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError("Invoice not found")

    invoice.due_date = invoice.issue_date + timedelta(days=days)
    db.session.commit()
    return invoice


def get_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError("Invoice not found")
    return invoice


def list_invoices(order_id: int | None = None) -> list[Invoice]:
    query = db.session.query(Invoice)
    if order_id is not None:
        query = query.filter(Invoice.order_id == order_id)
    return query.order_by(Invoice.issue_date.desc(), Invoice.id.desc()).all()
