"""Domain errors raised by the service layer.

Services raise these; routers translate them into HTTP responses. Business
rule violations subclass ``ValueError`` and missing path resources subclass
``LookupError`` so callers that only care about the broad category can catch
the builtin.
"""


class PosError(Exception):
    """Base class for POS domain errors."""


class NotFoundError(PosError, LookupError):
    """A resource addressed by the request does not exist."""


class BusinessRuleError(PosError, ValueError):
    """A request is well-formed but violates a business rule."""


class OrderNotFoundError(NotFoundError):
    """The order named in the path does not exist."""

    def __init__(self, order_id: int):
        super().__init__("Order not found")
        self.order_id = order_id


class ProductNotFoundError(BusinessRuleError):
    """A cart line references an unknown product."""

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} does not exist")
        self.product_id = product_id


class CustomerNotFoundError(BusinessRuleError):
    """The order body references an unknown customer."""

    def __init__(self, customer_id: int):
        super().__init__(f"Customer {customer_id} does not exist")
        self.customer_id = customer_id


class InsufficientStockError(BusinessRuleError):
    """A product has fewer units on hand than the cart asks for."""

    def __init__(self, product_id: int, product_name: str, requested: int, available: int):
        super().__init__(f"Insufficient stock for product {product_name}")
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available


class EmptyCartError(BusinessRuleError):
    """An order was placed with no cart lines while empty orders are disabled."""

    def __init__(self):
        super().__init__("Cart is empty")


class PaymentExceedsBalanceError(BusinessRuleError):
    """A payment is larger than what is still owed on the order."""

    def __init__(self, order_id: int, amount, balance):
        super().__init__("Payment exceeds remaining balance")
        self.order_id = order_id
        self.amount = amount
        self.balance = balance


class RecordConflictError(PosError):
    """A write collided with a unique or foreign key constraint."""

    def __init__(self, entity: str):
        super().__init__(f"{entity} conflicts with existing data")
        self.entity = entity
