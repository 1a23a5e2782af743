"""Tests for the payment ledger and balance queries."""
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from exceptions import OrderNotFoundError, PaymentExceedsBalanceError
from models import Payment
from services.order_service import OrderService
from services.payment_service import PaymentService, format_amount, order_lock_query


@pytest.fixture()
def payments():
    return PaymentService()


@pytest.fixture()
def order_id(db, customer, make_product):
    """An order worth 20.00 (two units at 10.00)."""
    product = make_product(product_id=7, price="10.00", stock=5)
    return OrderService().create_order(db, customer.id, [(product.id, 2)])


class TestCreatePayment:
    def test_overpayment_rejected_and_not_persisted(self, db, payments, order_id):
        with pytest.raises(PaymentExceedsBalanceError):
            payments.create_payment(db, order_id, Decimal("25.00"), "cash", "completed")

        assert db.query(Payment).count() == 0
        assert payments.get_order_balance(db, order_id) == "20.00"

    def test_partial_payments_settle_order(self, db, payments, order_id):
        first = payments.create_payment(db, order_id, Decimal("15.00"), "card", "completed")
        assert first.amount == Decimal("15.00")
        assert payments.get_order_balance(db, order_id) == "5.00"

        payments.create_payment(db, order_id, Decimal("5.00"), "cash", "completed")
        assert payments.get_order_balance(db, order_id) == "0.00"

    def test_no_payment_accepted_once_settled(self, db, payments, order_id):
        payments.create_payment(db, order_id, Decimal("20.00"), "card", "completed")

        with pytest.raises(PaymentExceedsBalanceError):
            payments.create_payment(db, order_id, Decimal("0.01"), "cash", "completed")

        assert db.query(Payment).count() == 1

    def test_sum_of_payments_never_exceeds_total(self, db, payments, order_id):
        for amount in ["7.50", "7.50", "7.50", "2.50", "2.50"]:
            try:
                payments.create_payment(db, order_id, Decimal(amount))
            except PaymentExceedsBalanceError:
                pass

        paid = sum(p.amount for p in db.query(Payment).all())
        assert paid == Decimal("20.00")

    def test_records_mode_and_status(self, db, payments, order_id):
        payment = payments.create_payment(db, order_id, Decimal("10.00"), "card", "pending")

        assert payment.order_id == order_id
        assert payment.payment_mode == "card"
        assert payment.status == "pending"
        assert payment.payment_timestamp is not None

    def test_unknown_order(self, db, payments):
        with pytest.raises(OrderNotFoundError) as exc_info:
            payments.create_payment(db, 999, Decimal("1.00"))

        assert str(exc_info.value) == "Order not found"


class TestOrderBalance:
    def test_unpaid_order_balance_is_total(self, db, payments, order_id):
        assert payments.get_order_balance(db, order_id) == "20.00"

    def test_unknown_order_balance_is_zero(self, db, payments):
        assert payments.get_order_balance(db, 999) == "0.00"


def test_format_amount():
    assert format_amount(None) == "0.00"
    assert format_amount(0) == "0.00"
    assert format_amount(Decimal("12.5")) == "12.50"


def test_payment_locks_the_order_row():
    sql = str(order_lock_query(3).compile(dialect=postgresql.dialect()))

    assert "FROM orders" in sql
    assert sql.rstrip().endswith("FOR UPDATE")
