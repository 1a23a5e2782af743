"""Payment ledger service."""
import logging
from decimal import Decimal
from typing import Optional
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session
from opentelemetry import trace

from exceptions import OrderNotFoundError, PaymentExceedsBalanceError, PosError
from models import Order, Payment
from monitoring import payments_counter, payment_amount_histogram, payment_rejections_counter

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def format_amount(value) -> str:
    """Render a money value as a two-decimal string."""
    return str(Decimal(str(value or 0)).quantize(TWO_PLACES))


def order_lock_query(order_id: int) -> Select:
    """SELECT ... FOR UPDATE on one order row; serializes payments per order."""
    return select(Order).where(Order.id == order_id).with_for_update()


class PaymentService:
    """Service for applying payments against order balances."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def _total_paid(self, db: Session, order_id: int) -> Decimal:
        with self.tracer.start_as_current_span("db.query.sum_payments") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "payments")
            db_span.set_attribute("order.id", order_id)

            total = (
                db.query(func.coalesce(func.sum(Payment.amount), 0))
                .filter(Payment.order_id == order_id)
                .scalar()
            )
        return Decimal(str(total or 0))

    def create_payment(
        self,
        db: Session,
        order_id: int,
        amount: Decimal,
        payment_mode: Optional[str] = None,
        status: Optional[str] = None
    ) -> Payment:
        """
        Record a payment if it fits within the order's remaining balance.

        The order row is locked for the duration of the transaction so two
        concurrent payments cannot both pass the balance check.

        Args:
            db: Database session
            order_id: Order being paid
            amount: Payment amount
            payment_mode: Cash, card, ...
            status: Free-form payment status

        Returns:
            The persisted payment

        Raises:
            OrderNotFoundError: If the order does not exist
            PaymentExceedsBalanceError: If amount is larger than the balance
        """
        span = trace.get_current_span()
        span.set_attribute("order.id", order_id)
        span.set_attribute("payment.mode", payment_mode or "unknown")

        try:
            with self.tracer.start_as_current_span("db.transaction.create_payment") as tx_span:
                tx_span.set_attribute("db.operation", "INSERT")
                tx_span.set_attribute("db.table", "payments")

                order = db.scalars(order_lock_query(order_id)).first()
                if order is None:
                    raise OrderNotFoundError(order_id)

                balance = order.total_amount - self._total_paid(db, order_id)
                tx_span.set_attribute("order.balance", float(balance))

                if amount > balance:
                    raise PaymentExceedsBalanceError(order_id, amount, balance)

                payment = Payment(
                    order_id=order_id,
                    amount=amount,
                    payment_mode=payment_mode,
                    status=status
                )
                db.add(payment)
                db.commit()
                db.refresh(payment)

                tx_span.set_attribute("payment.id", payment.id)

        except PosError as e:
            db.rollback()
            payment_rejections_counter.add(1, {"reason": type(e).__name__})
            logger.warning("Payment rejected", extra={
                "order_id": order_id,
                "amount": str(amount),
                "reason": str(e)
            })
            raise
        except Exception as e:
            db.rollback()
            logger.error("Failed to record payment", extra={
                "order_id": order_id,
                "amount": str(amount),
                "error": str(e)
            })
            raise

        payments_counter.add(1, {"payment_mode": payment_mode or "unknown"})
        payment_amount_histogram.record(float(amount), {"payment_mode": payment_mode or "unknown"})

        logger.info("Payment recorded", extra={
            "order_id": order_id,
            "payment_id": payment.id,
            "amount": str(amount),
            "payment_mode": payment_mode
        })

        return payment

    def get_order_balance(self, db: Session, order_id: int) -> str:
        """
        Outstanding balance of an order.

        Returns:
            Total minus payments as a two-decimal string; "0.00" for an
            unknown order
        """
        order = db.get(Order, order_id)
        if order is None:
            return format_amount(0)
        return format_amount(order.total_amount - self._total_paid(db, order_id))
