# Overview: Append-only payment ledger for orders; keeps order aggregates in lockstep.

"""
Payment Ledger Service

Orders are paid in installments (DP1, DP2, ...). Each installment is an
immutable Payment row; the order's paid/remaining/status fields are derived
from the ledger and recomputed in the same transaction as every insert.

DESIGN PRINCIPLES:
- Append-only: payments are never updated or deleted individually
- Monotonic numbering: payment_number = max(existing) + 1 per order
- Single transaction: payment insert + order aggregate update commit together
- Concurrency: order row locked (FOR UPDATE) and version-checked; conflicting
  writers are retried against fresh state, so two payments can never both
  pass the remaining-balance check on a stale read
"""

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Order, Payment
from ..validation import parse_amount, clean_string
from mua_admin.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry


# =============================================================================
# PAYMENT STATUS (CONSTANTS)
# =============================================================================

PAYMENT_STATUS_UNPAID = "Belum Lunas"
PAYMENT_STATUS_PAID = "Lunas"

DEFAULT_PAYMENT_METHOD = "Transfer Bank"


def payment_status_for(remaining_amount: int) -> str:
    return PAYMENT_STATUS_PAID if remaining_amount <= 0 else PAYMENT_STATUS_UNPAID


def ledger_total(order_id: int) -> int:
    """Sum of all payment amounts for an order (the source of truth for paid_amount)."""
    total = db.session.query(
        db.func.coalesce(db.func.sum(Payment.amount), 0)
    ).filter(Payment.order_id == order_id).scalar()
    return int(total or 0)


def recalculate_order_totals(order: Order) -> Order:
    """
    Recompute derived order fields from the ledger.

    Every mutation of payments or total_amount goes through here:
    - paid_amount = sum(payments)
    - remaining_amount = total_amount - paid_amount
    - payment_status = "Lunas" iff remaining_amount <= 0
    """
    paid = ledger_total(order.id) if order.id is not None else 0
    order.paid_amount = paid
    order.remaining_amount = order.total_amount - paid
    order.payment_status = payment_status_for(order.remaining_amount)
    return order


def next_payment_number(order_id: int) -> int:
    last = db.session.query(db.func.max(Payment.payment_number)).filter(
        Payment.order_id == order_id
    ).scalar()
    return (last or 0) + 1


def default_payment_notes(payment_number: int, order_number: str) -> str:
    return f"Pembayaran DP{payment_number} untuk pesanan {order_number}"


def append_payment(
    order: Order,
    amount: int,
    payment_method: str | None = None,
    notes: str | None = None,
) -> Payment:
    """
    Insert the next ledger row for an already-locked order and resync totals.

    Does not commit; callers own the transaction.
    """
    number = next_payment_number(order.id)
    now = utcnow()
    payment = Payment(
        order_id=order.id,
        payment_number=number,
        amount=amount,
        payment_date=now,
        payment_method=payment_method or DEFAULT_PAYMENT_METHOD,
        notes=notes or default_payment_notes(number, order.order_number),
        created_at=now,
    )
    db.session.add(payment)
    db.session.flush()

    recalculate_order_totals(order)
    return payment


# =============================================================================
# PAYMENT CREATION
# =============================================================================

def add_payment(
    order_id: int,
    amount,
    payment_method: str | None = None,
    notes: str | None = None,
) -> tuple[Payment, Order]:
    """
    Record a payment against an order.

    Args:
        order_id: Order being paid
        amount: Installment amount in rupiah (must be > 0 and <= remaining)
        payment_method: e.g. "Transfer Bank", "Cash" (default "Transfer Bank")
        notes: Free text (default "Pembayaran DP<n> untuk pesanan <order>")

    Returns:
        (payment, updated order)

    Raises:
        ValidationError: amount invalid or exceeds the remaining balance
        NotFoundError: order does not exist
    """
    amount = parse_amount(amount, "Payment amount")
    payment_method = clean_string(payment_method, "payment_method", 64)
    notes = clean_string(notes, "notes", 1000)

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError("Order not found")

        remaining = order.total_amount - order.paid_amount
        if amount > remaining:
            raise ValidationError(
                f"Payment amount ({amount}) exceeds remaining amount ({remaining})"
            )

        payment = append_payment(order, amount, payment_method, notes)
        db.session.commit()
        return payment, order

    payment, order = run_with_retry(_op)
    current_app.logger.info(
        "Payment DP%s recorded for order %s: %s (remaining %s)",
        payment.payment_number, order.order_number, payment.amount, order.remaining_amount,
    )
    return payment, order


# =============================================================================
# QUERIES
# =============================================================================

def list_payments(order_id: int) -> list[Payment]:
    """Payments for an order in ledger order (payment_number ascending)."""
    if not db.session.get(Order, order_id):
        raise NotFoundError("Order not found")
    return db.session.query(Payment).filter_by(order_id=order_id).order_by(
        Payment.payment_number.asc()
    ).all()


def latest_payment(order_id: int) -> Payment | None:
    """Most recently created payment for an order."""
    return db.session.query(Payment).filter_by(order_id=order_id).order_by(
        Payment.created_at.desc(), Payment.id.desc()
    ).first()
