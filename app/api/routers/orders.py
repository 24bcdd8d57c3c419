# app/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_order_service, raise_http_error
from app.domain.errors import OrderingError
from app.domain.schemas import MessageOut, Order, OrderPlacedOut, PlaceOrderIn, StatusIn
from app.services.order_service import OrderService
from app.utils.settings import ORDER_LIST_DEFAULT_LIMIT, ORDER_LIST_MAX_LIMIT

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=OrderPlacedOut, status_code=201)
def place_order(payload: PlaceOrderIn, svc: OrderService = Depends(get_order_service)):
    """
    Turns the user's cart into an order.
    The mirror write is bounded by the mirror statement and lock timeouts,
    a failed or timed out mirror write still returns 201.
    """
    try:
        order = svc.place_order(
            user_id=payload.user_id,
            delivery_address=payload.delivery_address,
            notes=payload.notes,
            payment_method=payload.payment_method,
        )
    except OrderingError as e:
        raise_http_error(e)
    return OrderPlacedOut(message="Order placed successfully", order_id=order.id, order=order)


@router.get("", response_model=List[Order])
def list_all_orders(
    status: str | None = None,
    limit: int = Query(ORDER_LIST_DEFAULT_LIMIT, ge=1, le=ORDER_LIST_MAX_LIMIT),
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.list_all_orders(status=status, limit=limit)
    except OrderingError as e:
        raise_http_error(e)


@router.get("/user/{user_id}", response_model=List[Order])
def list_user_orders(user_id: int, svc: OrderService = Depends(get_order_service)):
    try:
        return svc.list_orders(user_id)
    except OrderingError as e:
        raise_http_error(e)


@router.get("/{order_id}", response_model=Order)
def get_order(order_id: str, svc: OrderService = Depends(get_order_service)):
    try:
        return svc.get_order(order_id)
    except OrderingError as e:
        raise_http_error(e)


@router.put("/{order_id}/status", response_model=MessageOut)
def update_status(order_id: str, payload: StatusIn, svc: OrderService = Depends(get_order_service)):
    try:
        order = svc.update_status(order_id, payload.status)
    except OrderingError as e:
        raise_http_error(e)
    return MessageOut(message="Order status updated", status=order.status)


@router.delete("/{order_id}", response_model=MessageOut)
def cancel_order(order_id: str, svc: OrderService = Depends(get_order_service)):
    try:
        order = svc.cancel_order(order_id)
    except OrderingError as e:
        raise_http_error(e)
    return MessageOut(message="Order cancelled successfully", status=order.status)
