"""Orders and payments API router.

Endpoints are plain ``def``: fulfillment and payments wait on row locks, so
they run in the threadpool instead of on the event loop.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session

from auth import require_operator
from config import API_PREFIX
from database import get_db
from dependencies import get_order_service, get_payment_service
from exceptions import BusinessRuleError, NotFoundError
from schemas import (
    OrderCreate,
    OrderCreatedResponse,
    OrderDetailResponse,
    OrderSummary,
    PaymentCreate,
    PaymentResponse,
)
from services.order_service import payment_to_dict

router = APIRouter(
    prefix=f"{API_PREFIX}/orders",
    tags=["orders"],
    dependencies=[Depends(require_operator)],
)


@router.get("", response_model=List[OrderSummary])
def list_orders(
    db: Session = Depends(get_db),
    order_service=Depends(get_order_service)
):
    """List every order with the customer's name and email."""
    return order_service.list_orders(db)


@router.get("/{order_id}", response_model=OrderDetailResponse)
def get_order(
    order_id: int = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    order_service=Depends(get_order_service)
):
    """Order header with its lines and payments."""
    order = order_service.get_order(db, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.post("", response_model=OrderCreatedResponse, status_code=201)
def create_order(
    request: OrderCreate,
    db: Session = Depends(get_db),
    order_service=Depends(get_order_service)
):
    """
    Place an order from a cart.

    Stock is decremented and prices are captured per line in a single
    transaction; a missing product or short stock rejects the whole cart.
    """
    try:
        order_id = order_service.create_order(
            db=db,
            customer_id=request.customer_id,
            cart_items=[(item.product_id, item.quantity) for item in request.cart_items]
        )
    except BusinessRuleError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"order_id": order_id}


@router.post("/{order_id}/payments", response_model=PaymentResponse, status_code=201)
def create_payment(
    request: PaymentCreate,
    order_id: int = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    payment_service=Depends(get_payment_service)
):
    """Record a payment; it may not exceed the order's remaining balance."""
    try:
        payment = payment_service.create_payment(
            db=db,
            order_id=order_id,
            amount=request.amount,
            payment_mode=request.payment_mode,
            status=request.status
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BusinessRuleError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return payment_to_dict(payment)
