from decimal import Decimal

from models import Customer
from services.order_service import OrderService
from services.report_service import ReportService


def test_dashboard_stats_empty_store(db):
    stats = ReportService().dashboard_stats(db)

    assert stats == {
        "total_products": 0,
        "total_customers": 0,
        "total_orders": 0,
        "total_revenue": "0.00",
    }


def test_dashboard_stats_counts_and_revenue(db, customer, make_product):
    monitor = make_product(name="Monitor", price="299.99", stock=5)
    make_product(name="Mouse", price="29.99", stock=5)
    orders = OrderService()
    orders.create_order(db, customer.id, [(monitor.id, 1)])
    orders.create_order(db, customer.id, [(monitor.id, 2)])

    stats = ReportService().dashboard_stats(db)

    assert stats["total_products"] == 2
    assert stats["total_customers"] == 1
    assert stats["total_orders"] == 2
    assert stats["total_revenue"] == "899.97"


def test_customer_total_spent(db, customer, make_product):
    product = make_product(price="10.00", stock=10)
    other = Customer(first_name="Alan", last_name="Turing", email="alan@example.com")
    db.add(other)
    db.commit()

    orders = OrderService()
    orders.create_order(db, customer.id, [(product.id, 2)])
    orders.create_order(db, customer.id, [(product.id, 1)])
    orders.create_order(db, other.id, [(product.id, 5)])

    reports = ReportService()
    assert reports.customer_total_spent(db, customer.id) == "30.00"
    assert reports.customer_total_spent(db, other.id) == "50.00"


def test_customer_without_orders_spent_nothing(db, customer):
    assert ReportService().customer_total_spent(db, customer.id) == "0.00"
    assert Decimal(ReportService().customer_total_spent(db, 999)) == 0
