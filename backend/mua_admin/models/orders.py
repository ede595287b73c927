from __future__ import annotations

from ..extensions import db
from mua_admin.time_utils import to_utc_z


class Order(db.Model):
    """
    Customer order with derived payment aggregates (amounts in whole rupiah).

    INVARIANTS (maintained by payment_service.recalculate_order_totals):
    - paid_amount == sum(payment.amount for payment in payments)
    - remaining_amount == total_amount - paid_amount
    - payment_status == "Lunas" iff remaining_amount <= 0

    version_id is an optimistic lock: a concurrent writer working from a stale
    read fails with StaleDataError and is retried against fresh state.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_client_created", "client_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number, e.g. "ORD-007"
    order_number = db.Column(db.String(32), nullable=False, unique=True)
    order_sequence = db.Column(db.Integer, nullable=False, unique=True)

    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)
    event_location = db.Column(db.String(500), nullable=False)

    # [{"name": str, "quantity": int, "price": int, "total": int}, ...]
    items = db.Column(db.JSON, nullable=False, default=list)

    chair_model = db.Column(db.String(255), nullable=True)
    softlens_color = db.Column(db.String(100), nullable=True)
    special_request = db.Column(db.Text, nullable=True)

    total_amount = db.Column(db.Integer, nullable=False)
    paid_amount = db.Column(db.Integer, nullable=False, default=0)
    remaining_amount = db.Column(db.Integer, nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default="Belum Lunas", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    client = db.relationship("Client", back_populates="orders")
    payments = db.relationship(
        "Payment",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Payment.payment_number",
        lazy=True,
    )
    invoices = db.relationship("Invoice", back_populates="order", cascade="all, delete-orphan", lazy=True)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_payments: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "order_sequence": self.order_sequence,
            "client_id": self.client_id,
            "client": {
                "id": self.client.id,
                "bride_name": self.client.bride_name,
                "groom_name": self.client.groom_name,
            } if self.client else None,
            "event_location": self.event_location,
            "items": self.items or [],
            "chair_model": self.chair_model,
            "softlens_color": self.softlens_color,
            "special_request": self.special_request,
            "total_amount": self.total_amount,
            "paid_amount": self.paid_amount,
            "remaining_amount": self.remaining_amount,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_payments:
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class Payment(db.Model):
    """
    One installment (DP) against an order.

    APPEND-ONLY: rows are inserted by payment_service.add_payment and never
    updated. payment_number is 1-based and strictly increasing per order.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.UniqueConstraint("order_id", "payment_number", name="uq_payments_order_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    payment_number = db.Column(db.Integer, nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False)
    payment_method = db.Column(db.String(64), nullable=False, default="Transfer Bank")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    order = db.relationship("Order", back_populates="payments")
    invoice = db.relationship("Invoice", back_populates="payment", uselist=False)

    def to_dict(self, include_invoice: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_id": self.order_id,
            "payment_number": self.payment_number,
            "amount": self.amount,
            "payment_date": to_utc_z(self.payment_date),
            "payment_method": self.payment_method,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_invoice:
            data["invoice"] = self.invoice.to_dict() if self.invoice else None
        return data


class Invoice(db.Model):
    """
    Invoice issued for a single payment.

    At most one invoice per payment (unique payment_id); generation returns the
    existing row instead of creating a duplicate.
    """
    __tablename__ = "invoices"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    # "INV-YYYY-NNN"
    invoice_number = db.Column(db.String(32), nullable=False, unique=True)

    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=True, unique=True)

    amount = db.Column(db.Integer, nullable=False)
    paid_amount = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="Paid")

    issue_date = db.Column(db.DateTime(timezone=True), nullable=False)
    due_date = db.Column(db.DateTime(timezone=True), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="invoices")
    payment = db.relationship("Payment", back_populates="invoice")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "order_id": self.order_id,
            "order_number": self.order.order_number if self.order else None,
            "payment_id": self.payment_id,
            "payment_number": self.payment.payment_number if self.payment else None,
            "amount": self.amount,
            "paid_amount": self.paid_amount,
            "status": self.status,
            "issue_date": to_utc_z(self.issue_date),
            "due_date": to_utc_z(self.due_date),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
