# Overview: Aggregate figures for the dashboard landing page.

from __future__ import annotations

from ..extensions import db
from ..models import Appointment, Client, Invoice, Order
from mua_admin.time_utils import utcnow
from .payment_service import PAYMENT_STATUS_UNPAID


UPCOMING_APPOINTMENTS = 5


def get_summary() -> dict:
    """Counts and rupiah totals across all orders plus the next few appointments."""
    revenue, outstanding = db.session.query(
        db.func.coalesce(db.func.sum(Order.paid_amount), 0),
        db.func.coalesce(db.func.sum(Order.remaining_amount), 0),
    ).one()

    upcoming = db.session.query(Appointment).filter(
        Appointment.start_time >= utcnow()
    ).order_by(Appointment.start_time.asc()).limit(UPCOMING_APPOINTMENTS).all()

    return {
        "total_clients": db.session.query(Client).count(),
        "total_orders": db.session.query(Order).count(),
        "unpaid_orders": db.session.query(Order).filter_by(payment_status=PAYMENT_STATUS_UNPAID).count(),
        "total_invoices": db.session.query(Invoice).count(),
        "total_revenue": int(revenue),
        "outstanding_amount": int(outstanding),
        "upcoming_appointments": [a.to_dict() for a in upcoming],
    }
