"""Dashboard and function endpoints."""
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from auth import require_operator
from config import API_PREFIX
from database import get_db
from dependencies import get_payment_service, get_report_service
from schemas import CustomerSpentResponse, DashboardStats, OrderBalanceResponse

router = APIRouter(
    prefix=API_PREFIX,
    tags=["reports"],
    dependencies=[Depends(require_operator)],
)


@router.get("/dashboard/stats", response_model=DashboardStats)
def dashboard_stats(
    db: Session = Depends(get_db),
    report_service=Depends(get_report_service)
):
    return report_service.dashboard_stats(db)


@router.get("/functions/customer-spent/{customer_id}", response_model=CustomerSpentResponse)
def customer_spent(
    customer_id: int = Path(..., description="Customer ID"),
    db: Session = Depends(get_db),
    report_service=Depends(get_report_service)
):
    """Total of all order amounts for a customer."""
    return {"total_spent": report_service.customer_total_spent(db, customer_id)}


@router.get("/functions/order-balance/{order_id}", response_model=OrderBalanceResponse)
def order_balance(
    order_id: int = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    payment_service=Depends(get_payment_service)
):
    """Outstanding balance; "0.00" for unknown orders."""
    return {"balance": payment_service.get_order_balance(db, order_id)}
