"""Dashboard and customer reporting queries."""
from typing import Any, Dict
from sqlalchemy import func
from sqlalchemy.orm import Session
from opentelemetry import trace

from models import Customer, Order, Product
from services.payment_service import format_amount


class ReportService:
    """Read-only aggregates for the back office."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def dashboard_stats(self, db: Session) -> Dict[str, Any]:
        """Counts of products, customers and orders plus total revenue."""
        with self.tracer.start_as_current_span("db.query.dashboard_stats") as db_span:
            db_span.set_attribute("db.operation", "SELECT")

            total_products = db.query(func.count(Product.id)).scalar()
            total_customers = db.query(func.count(Customer.id)).scalar()
            total_orders = db.query(func.count(Order.id)).scalar()
            revenue = db.query(func.coalesce(func.sum(Order.total_amount), 0)).scalar()

        return {
            "total_products": total_products or 0,
            "total_customers": total_customers or 0,
            "total_orders": total_orders or 0,
            "total_revenue": format_amount(revenue),
        }

    def customer_total_spent(self, db: Session, customer_id: int) -> str:
        """Sum of order totals for a customer, "0.00" when there are none."""
        with self.tracer.start_as_current_span("db.query.customer_total_spent") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "orders")
            db_span.set_attribute("customer.id", customer_id)

            total = (
                db.query(func.coalesce(func.sum(Order.total_amount), 0))
                .filter(Order.customer_id == customer_id)
                .scalar()
            )

        return format_amount(total)
