"""Order fulfillment service."""
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple
from sqlalchemy import Select, select
from sqlalchemy.orm import Session
from opentelemetry import trace

from config import ALLOW_EMPTY_ORDERS
from exceptions import (
    BusinessRuleError,
    CustomerNotFoundError,
    EmptyCartError,
    InsufficientStockError,
    ProductNotFoundError,
)
from models import Customer, Order, OrderDetail, Payment, Product
from monitoring import (
    orders_created_counter,
    order_amount_histogram,
    order_failures_counter,
    stock_units_sold_counter,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def product_lock_query(product_id: int) -> Select:
    """SELECT ... FOR UPDATE on one product row."""
    return select(Product).where(Product.id == product_id).with_for_update()


def payment_to_dict(payment: Payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "order_id": payment.order_id,
        "amount": payment.amount,
        "payment_mode": payment.payment_mode,
        "status": payment.status,
        "payment_timestamp": payment.payment_timestamp,
    }


def _customer_name(customer: Optional[Customer]) -> Optional[str]:
    if customer is None:
        return None
    return f"{customer.first_name} {customer.last_name}"


class OrderService:
    """Service for turning carts into orders and reading them back."""

    def __init__(self, allow_empty_orders: bool = ALLOW_EMPTY_ORDERS):
        """
        Initialize order service.

        Args:
            allow_empty_orders: Accept an empty cart as a zero-total order
        """
        self.allow_empty_orders = allow_empty_orders
        self.tracer = trace.get_tracer(__name__)

    def create_order(
        self,
        db: Session,
        customer_id: int,
        cart_items: Iterable[Tuple[int, int]]
    ) -> int:
        """
        Fulfill a cart as one transaction.

        Each product row is locked (SELECT ... FOR UPDATE) before its stock is
        checked and decremented, and every line records the price the product
        had at that moment. Any failure rolls the whole order back.

        Args:
            db: Database session
            customer_id: Owning customer
            cart_items: (product_id, quantity) pairs

        Returns:
            The new order id

        Raises:
            EmptyCartError: If the cart is empty and empty orders are disabled
            CustomerNotFoundError: If the customer does not exist
            ProductNotFoundError: If a cart line names an unknown product
            InsufficientStockError: If a product has less stock than requested
        """
        cart_items = list(cart_items)

        span = trace.get_current_span()
        span.set_attribute("customer.id", customer_id)
        span.set_attribute("cart.line_count", len(cart_items))

        if not cart_items and not self.allow_empty_orders:
            order_failures_counter.add(1, {"reason": "empty_cart"})
            logger.warning("Order rejected: empty cart", extra={"customer_id": customer_id})
            raise EmptyCartError()

        try:
            with self.tracer.start_as_current_span("db.transaction.create_order") as tx_span:
                tx_span.set_attribute("db.operation", "INSERT")
                tx_span.set_attribute("db.table", "orders")
                tx_span.set_attribute("customer.id", customer_id)

                if db.get(Customer, customer_id) is None:
                    raise CustomerNotFoundError(customer_id)

                order = Order(customer_id=customer_id, total_amount=ZERO)
                db.add(order)
                db.flush()
                order_id = order.id

                total_amount = ZERO
                units = 0
                for product_id, quantity in cart_items:
                    total_amount += self._fulfill_line(db, order_id, product_id, quantity)
                    units += quantity

                order.total_amount = total_amount
                db.commit()

                tx_span.set_attribute("order.id", order_id)
                tx_span.set_attribute("order.total_amount", float(total_amount))

        except BusinessRuleError as e:
            db.rollback()
            order_failures_counter.add(1, {"reason": type(e).__name__})
            logger.warning("Order rejected", extra={
                "customer_id": customer_id,
                "reason": str(e)
            })
            raise
        except Exception as e:
            db.rollback()
            order_failures_counter.add(1, {"reason": "error"})
            logger.error("Failed to create order", extra={
                "customer_id": customer_id,
                "error": str(e)
            })
            raise

        orders_created_counter.add(1)
        order_amount_histogram.record(float(total_amount))
        stock_units_sold_counter.add(units)

        logger.info("Order created", extra={
            "order_id": order_id,
            "customer_id": customer_id,
            "amount": str(total_amount),
            "item_count": len(cart_items)
        })

        return order_id

    def _fulfill_line(self, db: Session, order_id: int, product_id: int, quantity: int) -> Decimal:
        """Lock, check and decrement one product; return the line total."""
        with self.tracer.start_as_current_span("db.query.lock_product") as db_span:
            db_span.set_attribute("db.operation", "SELECT FOR UPDATE")
            db_span.set_attribute("db.table", "products")
            db_span.set_attribute("product.id", product_id)

            product = db.scalars(product_lock_query(product_id)).first()

            if product is None:
                db_span.set_attribute("db.rows_returned", 0)
                raise ProductNotFoundError(product_id)
            db_span.set_attribute("db.rows_returned", 1)

            if product.stock < quantity:
                raise InsufficientStockError(product.id, product.name, quantity, product.stock)

        with self.tracer.start_as_current_span("db.query.update_product_stock") as update_span:
            update_span.set_attribute("db.operation", "UPDATE")
            update_span.set_attribute("db.table", "products")
            update_span.set_attribute("product.id", product_id)

            old_stock = product.stock
            product.stock = old_stock - quantity
            update_span.set_attribute("product.stock.before", old_stock)
            update_span.set_attribute("product.stock.after", product.stock)

            # Price snapshot: later catalogue changes leave this line untouched
            db.add(OrderDetail(
                order_id=order_id,
                product_id=product.id,
                quantity=quantity,
                price_per_unit=product.price
            ))

        return product.price * quantity

    def list_orders(self, db: Session) -> List[Dict[str, Any]]:
        """
        Get all orders, newest first, with the customer's name and email.

        Args:
            db: Database session

        Returns:
            List of orders
        """
        with self.tracer.start_as_current_span("db.query.list_orders") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "orders")

            rows = (
                db.query(Order, Customer)
                .outerjoin(Customer, Order.customer_id == Customer.id)
                .order_by(Order.order_date.desc(), Order.id.desc())
                .all()
            )

            db_span.set_attribute("db.rows_returned", len(rows))

        return [self._summary(order, customer) for order, customer in rows]

    def get_order(self, db: Session, order_id: int) -> Optional[Dict[str, Any]]:
        """
        Get an order with its lines and payments.

        Args:
            db: Database session
            order_id: Order identifier

        Returns:
            Order details, or None if the order does not exist
        """
        with self.tracer.start_as_current_span("db.query.get_order") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "orders")
            db_span.set_attribute("order.id", order_id)

            row = (
                db.query(Order, Customer)
                .outerjoin(Customer, Order.customer_id == Customer.id)
                .filter(Order.id == order_id)
                .first()
            )
            if row is None:
                db_span.set_attribute("db.rows_returned", 0)
                return None

            lines = (
                db.query(OrderDetail, Product.name)
                .outerjoin(Product, OrderDetail.product_id == Product.id)
                .filter(OrderDetail.order_id == order_id)
                .order_by(OrderDetail.id)
                .all()
            )
            payments = (
                db.query(Payment)
                .filter(Payment.order_id == order_id)
                .order_by(Payment.id)
                .all()
            )

        order, customer = row
        result = self._summary(order, customer)
        result["order_details"] = [
            {
                "id": line.id,
                "product_id": line.product_id,
                "product_name": product_name,
                "quantity": line.quantity,
                "price_per_unit": line.price_per_unit,
            }
            for line, product_name in lines
        ]
        result["payments"] = [payment_to_dict(payment) for payment in payments]
        return result

    @staticmethod
    def _summary(order: Order, customer: Optional[Customer]) -> Dict[str, Any]:
        return {
            "id": order.id,
            "order_date": order.order_date,
            "total_amount": order.total_amount,
            "customer_id": order.customer_id,
            "customer_name": _customer_name(customer),
            "customer_email": customer.email if customer else None,
        }
