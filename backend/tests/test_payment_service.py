"""
Payment ledger tests.

Verifies:
- The 10,000,000 IDR installment scenario end to end
- payment_number increases by exactly one per order
- Order aggregates always agree with the ledger
- Rejected payments (overpayment, non-positive, unknown order) change nothing
- A payment read before a competing commit is retried and then rejected
"""

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from mua_admin import create_app
from mua_admin.errors import NotFoundError, ValidationError
from mua_admin.extensions import db
from mua_admin.models import Order, Payment
from mua_admin.services import client_service, order_service, payment_service
from mua_admin.services.concurrency import run_with_retry
from mua_admin.services.payment_service import (
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_UNPAID,
    add_payment,
    ledger_total,
)
from mua_admin.time_utils import utcnow

from conftest import TEST_SECRET


def _assert_consistent(order):
    paid = ledger_total(order.id)
    assert order.paid_amount == paid
    assert order.remaining_amount == order.total_amount - paid
    expected = PAYMENT_STATUS_PAID if order.remaining_amount <= 0 else PAYMENT_STATUS_UNPAID
    assert order.payment_status == expected


class TestInstallmentScenario:

    def test_three_installments_settle_the_order(self, order):
        assert order.total_amount == 10_000_000
        assert order.payment_status == PAYMENT_STATUS_UNPAID

        p1, o = add_payment(order.id, 3_000_000)
        assert (p1.payment_number, o.paid_amount, o.remaining_amount) == (1, 3_000_000, 7_000_000)
        assert o.payment_status == PAYMENT_STATUS_UNPAID

        p2, o = add_payment(order.id, 5_000_000)
        assert (p2.payment_number, o.paid_amount, o.remaining_amount) == (2, 8_000_000, 2_000_000)

        with pytest.raises(ValidationError, match=r"exceeds remaining amount \(2000000\)"):
            add_payment(order.id, 3_000_000)

        p3, o = add_payment(order.id, 2_000_000)
        assert (p3.payment_number, o.paid_amount, o.remaining_amount) == (3, 10_000_000, 0)
        assert o.payment_status == PAYMENT_STATUS_PAID

    def test_fully_paid_order_rejects_further_payments(self, order):
        add_payment(order.id, 10_000_000)
        with pytest.raises(ValidationError):
            add_payment(order.id, 1)


class TestLedgerProperties:

    def test_payment_numbers_are_monotonic(self, order):
        numbers = [add_payment(order.id, 1_000_000)[0].payment_number for _ in range(4)]
        assert numbers == [1, 2, 3, 4]

    def test_aggregates_agree_with_ledger_after_every_payment(self, order):
        for amount in (1, 2_500_000, 499_999, 7_000_000):
            _, updated = add_payment(order.id, amount)
            _assert_consistent(updated)

    def test_defaults_for_method_and_notes(self, order):
        payment, _ = add_payment(order.id, 1_000_000)
        assert payment.payment_method == "Transfer Bank"
        assert payment.notes == f"Pembayaran DP1 untuk pesanan {order.order_number}"

    def test_custom_method_and_notes(self, order):
        payment, _ = add_payment(order.id, 1_000_000, payment_method="Cash", notes="Titip ke asisten")
        assert payment.payment_method == "Cash"
        assert payment.notes == "Titip ke asisten"

    def test_latest_payment(self, order):
        add_payment(order.id, 1_000_000)
        second, _ = add_payment(order.id, 2_000_000)
        assert payment_service.latest_payment(order.id).id == second.id

    def test_list_payments_in_ledger_order(self, order):
        add_payment(order.id, 1_000_000)
        add_payment(order.id, 2_000_000)
        assert [p.payment_number for p in payment_service.list_payments(order.id)] == [1, 2]


class TestRejectedPayments:

    @pytest.mark.parametrize("amount", [0, -5, None, "", "1.5", 2.5, "1e6", True, "abc"])
    def test_invalid_amounts_leave_state_unchanged(self, db_session, order, amount):
        with pytest.raises(ValidationError):
            add_payment(order.id, amount)

        refreshed = db_session.get(Order, order.id)
        assert refreshed.paid_amount == 0
        assert refreshed.remaining_amount == 10_000_000
        assert db_session.query(Payment).count() == 0

    def test_overpayment_leaves_state_unchanged(self, db_session, order):
        add_payment(order.id, 4_000_000)

        with pytest.raises(ValidationError, match="exceeds remaining amount"):
            add_payment(order.id, 6_000_001)

        refreshed = db_session.get(Order, order.id)
        assert refreshed.paid_amount == 4_000_000
        assert refreshed.remaining_amount == 6_000_000
        assert db_session.query(Payment).filter_by(order_id=order.id).count() == 1

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError, match="Order not found"):
            add_payment(999_999, 1_000)

    def test_list_for_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            payment_service.list_payments(999_999)


class TestConcurrentPayments:
    """A competing payment committed after our read must not be double-counted."""

    @pytest.fixture
    def file_app(self, tmp_path):
        # Real file database: the competing writer gets its own connection
        app = create_app({
            'TESTING': True,
            'SESSION_SECRET': TEST_SECRET,
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'ledger.sqlite3'}",
            'BCRYPT_ROUNDS': 4,
        })
        with app.app_context():
            db.create_all()
            yield app
            db.session.remove()
            db.engine.dispose()

    @pytest.fixture
    def unpaid_order_id(self, file_app):
        wedding = client_service.create_client({
            "bride_name": "Rina",
            "groom_name": "Agus",
            "primary_phone": "081300002222",
            "ceremony_date": "2030-06-01T00:00:00",
            "reception_date": "2030-06-01T00:00:00",
        })
        order = order_service.create_order({
            "client_id": wedding.id,
            "event_location": "Rumah Mempelai Wanita",
            "items": [{"name": "Paket Lengkap", "quantity": 1, "price": 10_000_000}],
        })
        return order.id

    @staticmethod
    def _pay_in_full_elsewhere(order_id):
        with Session(db.engine) as other:
            order = other.get(Order, order_id)
            other.add(Payment(
                order_id=order_id,
                payment_number=1,
                amount=order.total_amount,
                payment_date=utcnow(),
                payment_method="Cash",
                created_at=utcnow(),
            ))
            order.paid_amount = order.total_amount
            order.remaining_amount = 0
            order.payment_status = PAYMENT_STATUS_PAID
            other.commit()

    def test_stale_read_is_retried_and_rejected(self, file_app, unpaid_order_id, monkeypatch):
        real_lock = payment_service.lock_for_update
        reads = []

        class ReadThenCompete:
            def __init__(self, query):
                self.query = query

            def first(self):
                row = self.query.first()
                if not reads:
                    TestConcurrentPayments._pay_in_full_elsewhere(row.id)
                reads.append(row.id)
                return row

        monkeypatch.setattr(payment_service, "lock_for_update", lambda q: ReadThenCompete(real_lock(q)))

        with pytest.raises(ValidationError, match=r"exceeds remaining amount \(0\)"):
            add_payment(unpaid_order_id, 10_000_000)

        # First attempt hit the version conflict; the replay saw the competitor's payment
        assert len(reads) == 2

        db.session.expire_all()
        order = db.session.get(Order, unpaid_order_id)
        assert ledger_total(unpaid_order_id) == 10_000_000
        assert ledger_total(unpaid_order_id) <= order.total_amount
        assert order.paid_amount == 10_000_000
        assert order.remaining_amount == 0
        assert db.session.query(Payment).filter_by(order_id=unpaid_order_id).count() == 1

    def test_version_conflict_surfaces_after_retries(self, db_session):
        attempts = []

        def always_stale():
            attempts.append(1)
            raise StaleDataError("version mismatch")

        with pytest.raises(StaleDataError):
            run_with_retry(always_stale, attempts=3, backoff_base=0)
        assert len(attempts) == 3
