"""
Invoice generator tests.

Verifies:
- One invoice per payment: repeat generation returns the same row
- A new payment gets a new invoice
- INV-<year>-NNN numbering, including gaps left by deleted orders
- Due date arithmetic and validation
"""

from datetime import timedelta

import pytest

from mua_admin.errors import NotFoundError, ValidationError
from mua_admin.models import Invoice
from mua_admin.services import invoice_service, order_service
from mua_admin.services.invoice_service import (
    format_invoice_number,
    generate_for_latest_payment,
    update_due_date,
)
from mua_admin.services.payment_service import add_payment


class TestIdempotence:

    def test_repeat_generation_returns_existing_invoice(self, db_session, order):
        add_payment(order.id, 3_000_000)

        first, created_first = generate_for_latest_payment(order.id)
        second, created_second = generate_for_latest_payment(order.id)

        assert created_first is True
        assert created_second is False
        assert first.id == second.id
        assert db_session.query(Invoice).count() == 1

    def test_new_payment_gets_new_invoice(self, db_session, order):
        p1, _ = add_payment(order.id, 3_000_000)
        inv1, _ = generate_for_latest_payment(order.id)
        p2, _ = add_payment(order.id, 5_000_000)
        inv2, created = generate_for_latest_payment(order.id)

        assert created is True
        assert inv1.payment_id == p1.id
        assert inv2.payment_id == p2.id
        assert inv2.amount == inv2.paid_amount == 5_000_000
        assert db_session.query(Invoice).count() == 2

    def test_invoice_fields(self, order):
        add_payment(order.id, 3_000_000)
        invoice, _ = generate_for_latest_payment(order.id)

        assert invoice.status == "Paid"
        assert invoice.amount == 3_000_000
        assert invoice.notes == f"Invoice untuk pembayaran DP1 - {order.order_number}"
        assert invoice.to_dict()["order_number"] == order.order_number

    def test_order_without_payments(self, order):
        with pytest.raises(ValidationError, match="No payment found for this order"):
            generate_for_latest_payment(order.id)

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError, match="Order not found"):
            generate_for_latest_payment(999_999)


class TestNumbering:

    def test_sequential_numbers_within_year(self, order):
        add_payment(order.id, 1_000_000)
        inv1, _ = generate_for_latest_payment(order.id)
        add_payment(order.id, 1_000_000)
        inv2, _ = generate_for_latest_payment(order.id)

        year = inv1.issue_date.year
        assert inv1.invoice_number == format_invoice_number(year, 1)
        assert inv2.invoice_number == format_invoice_number(year, 2)

    def test_format(self):
        assert format_invoice_number(2026, 7) == "INV-2026-007"
        assert format_invoice_number(2026, 1234) == "INV-2026-1234"

    def test_number_skips_past_existing_after_deletion(self, db_session, wedding_client, order):
        other = order_service.create_order({
            "client_id": wedding_client.id,
            "event_location": "Rumah Mempelai",
            "items": [{"name": "Touch up", "quantity": 1, "price": 500_000}],
            "paid_amount": 500_000,
        })
        add_payment(order.id, 1_000_000)
        first, _ = generate_for_latest_payment(other.id)
        second, _ = generate_for_latest_payment(order.id)

        # Deleting the first order frees a count slot, not a number
        order_service.delete_order(other.id)
        add_payment(order.id, 1_000_000)
        third, _ = generate_for_latest_payment(order.id)

        numbers = {i.invoice_number for i in db_session.query(Invoice).all()}
        assert numbers == {second.invoice_number, third.invoice_number}
        assert third.invoice_number != second.invoice_number


class TestDueDate:

    def test_default_due_days(self, app, order):
        add_payment(order.id, 1_000_000)
        invoice, _ = generate_for_latest_payment(order.id)
        expected = timedelta(days=app.config["INVOICE_DEFAULT_DUE_DAYS"])
        assert invoice.due_date - invoice.issue_date == expected

    def test_custom_due_days(self, order):
        add_payment(order.id, 1_000_000)
        invoice, _ = generate_for_latest_payment(order.id, due_days=14)
        assert invoice.due_date - invoice.issue_date == timedelta(days=14)

    @pytest.mark.parametrize("due_days", [0, -3, "abc", 1.5])
    def test_invalid_due_days_rejected(self, order, due_days):
        add_payment(order.id, 1_000_000)
        with pytest.raises(ValidationError):
            generate_for_latest_payment(order.id, due_days=due_days)

    def test_update_due_date(self, order):
        add_payment(order.id, 1_000_000)
        invoice, _ = generate_for_latest_payment(order.id)

        updated = update_due_date(invoice.id, 30)
        assert updated.due_date - updated.issue_date == timedelta(days=30)

    def test_update_due_date_rejects_missing_value(self, order):
        add_payment(order.id, 1_000_000)
        invoice, _ = generate_for_latest_payment(order.id)
        with pytest.raises(ValidationError, match="Invalid due days value"):
            update_due_date(invoice.id, None)

    def test_update_due_date_unknown_invoice(self, db_session):
        with pytest.raises(NotFoundError):
            update_due_date(999_999, 5)

    def test_list_invoices_by_order(self, order):
        add_payment(order.id, 1_000_000)
        generate_for_latest_payment(order.id)
        assert len(invoice_service.list_invoices(order_id=order.id)) == 1
        assert invoice_service.list_invoices(order_id=order.id + 1000) == []
