"""Pydantic schemas for request/response validation.

These are deliberately independent of the ORM models. JSON keys are camelCase
(``customerId``, ``cartItems``); snake_case is accepted on input as well.
"""
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Annotated, List, Optional

Money = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]
PositiveMoney = Annotated[Decimal, Field(gt=0, max_digits=10, decimal_places=2)]


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Brands

class BrandCreate(CamelModel):
    """Schema for creating or replacing a brand."""
    name: str = Field(min_length=1, max_length=100)
    discounts: Decimal = Field(default=Decimal("0.00"), ge=0, le=100, max_digits=5, decimal_places=2)


class BrandResponse(BrandCreate):
    id: int


# Suppliers

class SupplierCreate(CamelModel):
    """Schema for creating or replacing a supplier."""
    name: str = Field(min_length=1, max_length=100)
    contact_email: Optional[str] = Field(default=None, max_length=100)
    contact_phone: Optional[str] = Field(default=None, max_length=20)


class SupplierResponse(SupplierCreate):
    id: int


# Products

class ProductCreate(CamelModel):
    """Schema for creating or replacing a product."""
    name: str = Field(min_length=1, max_length=255)
    price: Money
    stock: int = Field(ge=0)
    brand_id: Optional[int] = None


class ProductResponse(ProductCreate):
    """Schema for product response."""
    id: int


class ProductListItem(ProductResponse):
    """Product row in the catalogue listing, with its brand name."""
    brand_name: Optional[str] = None


# Customers

class CustomerCreate(CamelModel):
    """Schema for creating or replacing a customer."""
    first_name: str = Field(min_length=1, max_length=50)
    middle_name: Optional[str] = Field(default=None, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: str = Field(min_length=3, max_length=100, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=255)


class CustomerResponse(CustomerCreate):
    id: int


# Employees

class EmployeeCreate(CamelModel):
    """Schema for creating or replacing an employee."""
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    designation: Optional[str] = Field(default=None, max_length=100)
    hire_date: Optional[date] = None


class EmployeeResponse(EmployeeCreate):
    id: int


# Orders

class CartItem(CamelModel):
    """One cart line submitted at checkout."""
    product_id: int
    quantity: int = Field(gt=0)


class OrderCreate(CamelModel):
    """Schema for placing an order from a cart."""
    customer_id: int
    cart_items: List[CartItem]


class OrderCreatedResponse(CamelModel):
    order_id: int


class OrderSummary(CamelModel):
    """Order row as listed in the back office."""
    id: int
    order_date: datetime
    total_amount: Decimal
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None


class OrderLineResponse(CamelModel):
    id: int
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    quantity: int
    price_per_unit: Decimal


# Payments

class PaymentCreate(CamelModel):
    """Schema for recording a payment against an order."""
    amount: PositiveMoney
    payment_mode: Optional[str] = Field(default=None, max_length=50)
    status: Optional[str] = Field(default=None, max_length=50)


class PaymentResponse(CamelModel):
    """Schema for payment response."""
    id: int
    order_id: int
    amount: Decimal
    payment_mode: Optional[str] = None
    status: Optional[str] = None
    payment_timestamp: datetime


class OrderDetailResponse(OrderSummary):
    """Order with its lines and payments."""
    order_details: List[OrderLineResponse]
    payments: List[PaymentResponse]


# Reporting

class DashboardStats(CamelModel):
    total_products: int
    total_customers: int
    total_orders: int
    total_revenue: str


class OrderBalanceResponse(CamelModel):
    balance: str


class CustomerSpentResponse(CamelModel):
    total_spent: str
