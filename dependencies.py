"""Dependency injection for services."""
from config import ALLOW_EMPTY_ORDERS
from models import Brand, Customer, Employee, Supplier
from services.crud_service import CrudService, ProductService
from services.order_service import OrderService
from services.payment_service import PaymentService
from services.report_service import ReportService


def get_brand_service() -> CrudService:
    return CrudService(Brand, "Brand")


def get_supplier_service() -> CrudService:
    return CrudService(Supplier, "Supplier")


def get_product_service() -> ProductService:
    return ProductService()


def get_customer_service() -> CrudService:
    return CrudService(Customer, "Customer")


def get_employee_service() -> CrudService:
    return CrudService(Employee, "Employee")


def get_order_service() -> OrderService:
    """Get order service instance."""
    return OrderService(allow_empty_orders=ALLOW_EMPTY_ORDERS)


def get_payment_service() -> PaymentService:
    """Get payment service instance."""
    return PaymentService()


def get_report_service() -> ReportService:
    return ReportService()
