"""Tests for order fulfillment: stock, totals, price snapshots and rollback."""
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from exceptions import (
    CustomerNotFoundError,
    EmptyCartError,
    InsufficientStockError,
    ProductNotFoundError,
)
from models import Order, OrderDetail, Product
from services.order_service import OrderService, product_lock_query


@pytest.fixture()
def service():
    return OrderService(allow_empty_orders=False)


def _stock(db, product_id):
    db.expire_all()
    return db.get(Product, product_id).stock


class TestCreateOrder:
    def test_total_is_price_times_quantity(self, db, service, customer, make_product):
        product = make_product(product_id=7, price="10.00", stock=5)

        order_id = service.create_order(db, customer.id, [(product.id, 2)])

        order = db.get(Order, order_id)
        assert order.total_amount == Decimal("20.00")
        assert order.customer_id == customer.id

    def test_total_matches_sum_of_lines(self, db, service, customer, make_product):
        speaker = make_product(name="Speaker", price="129.99", stock=4)
        cable = make_product(name="HDMI Cable", price="7.50", stock=100)

        order_id = service.create_order(db, customer.id, [(speaker.id, 1), (cable.id, 3)])

        lines = db.query(OrderDetail).filter(OrderDetail.order_id == order_id).all()
        assert len(lines) == 2
        line_total = sum(line.price_per_unit * line.quantity for line in lines)
        assert db.get(Order, order_id).total_amount == line_total == Decimal("152.49")

    def test_decrements_stock(self, db, service, customer, make_product):
        product = make_product(stock=10)

        service.create_order(db, customer.id, [(product.id, 4)])

        assert _stock(db, product.id) == 6

    def test_stock_can_reach_zero(self, db, service, customer, make_product):
        product = make_product(stock=3)

        service.create_order(db, customer.id, [(product.id, 3)])

        assert _stock(db, product.id) == 0

    def test_repeated_product_lines_draw_from_same_stock(self, db, service, customer, make_product):
        product = make_product(stock=5)

        with pytest.raises(InsufficientStockError):
            service.create_order(db, customer.id, [(product.id, 3), (product.id, 3)])

        assert _stock(db, product.id) == 5

    def test_line_keeps_price_at_time_of_sale(self, db, service, customer, make_product):
        product = make_product(price="99.99", stock=5)
        order_id = service.create_order(db, customer.id, [(product.id, 1)])

        product = db.get(Product, product.id)
        product.price = Decimal("149.99")
        db.commit()

        line = db.query(OrderDetail).filter(OrderDetail.order_id == order_id).one()
        assert line.price_per_unit == Decimal("99.99")
        assert db.get(Order, order_id).total_amount == Decimal("99.99")


class TestCreateOrderFailures:
    def test_insufficient_stock_names_product(self, db, service, customer, make_product):
        product = make_product(name="Webcam", stock=1)

        with pytest.raises(InsufficientStockError) as exc_info:
            service.create_order(db, customer.id, [(product.id, 2)])

        assert str(exc_info.value) == "Insufficient stock for product Webcam"
        assert _stock(db, product.id) == 1
        assert db.query(Order).count() == 0

    def test_missing_product_rolls_back_whole_order(self, db, service, customer, make_product):
        product = make_product(stock=10)

        with pytest.raises(ProductNotFoundError) as exc_info:
            service.create_order(db, customer.id, [(product.id, 2), (999, 1)])

        assert str(exc_info.value) == "Product 999 does not exist"
        assert db.query(Order).count() == 0
        assert db.query(OrderDetail).count() == 0
        assert _stock(db, product.id) == 10

    def test_unknown_customer(self, db, service, make_product):
        product = make_product()

        with pytest.raises(CustomerNotFoundError):
            service.create_order(db, 404, [(product.id, 1)])

        assert db.query(Order).count() == 0

    def test_empty_cart_rejected_when_disabled(self, db, service, customer):
        with pytest.raises(EmptyCartError):
            service.create_order(db, customer.id, [])

        assert db.query(Order).count() == 0

    def test_empty_cart_creates_zero_total_order_by_default(self, db, customer):
        service = OrderService()

        order_id = service.create_order(db, customer.id, [])

        assert db.get(Order, order_id).total_amount == Decimal("0.00")


class TestReadOrders:
    def test_get_order_includes_lines_and_customer(self, db, service, customer, make_product):
        product = make_product(name="Keyboard", price="79.99", stock=5)
        order_id = service.create_order(db, customer.id, [(product.id, 2)])

        order = service.get_order(db, order_id)

        assert order["customer_name"] == "Ada Lovelace"
        assert order["customer_email"] == "ada@example.com"
        assert order["total_amount"] == Decimal("159.98")
        assert order["order_details"][0]["product_name"] == "Keyboard"
        assert order["order_details"][0]["quantity"] == 2
        assert order["payments"] == []

    def test_get_unknown_order(self, db, service):
        assert service.get_order(db, 12345) is None

    def test_list_orders_newest_first(self, db, service, customer, make_product):
        product = make_product(stock=10)
        first = service.create_order(db, customer.id, [(product.id, 1)])
        second = service.create_order(db, customer.id, [(product.id, 1)])

        orders = service.list_orders(db)

        assert [order["id"] for order in orders] == [second, first]
        assert orders[0]["customer_name"] == "Ada Lovelace"


class TestRowLocks:
    def test_product_lookup_locks_the_row(self):
        sql = str(product_lock_query(7).compile(dialect=postgresql.dialect()))

        assert "FROM products" in sql
        assert sql.rstrip().endswith("FOR UPDATE")
