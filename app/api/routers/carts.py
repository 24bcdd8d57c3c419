# app/api/routers/carts.py
from fastapi import APIRouter, Depends

from app.api.deps import get_cart_service, raise_http_error
from app.domain.errors import OrderingError
from app.domain.schemas import Cart, ItemIn, QuantityIn
from app.services.cart_service import CartService

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("/{user_id}", response_model=Cart)
def get_cart(user_id: int, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.get_cart(user_id)
    except OrderingError as e:
        raise_http_error(e)


@router.post("/{user_id}/items", response_model=Cart)
def add_item(user_id: int, payload: ItemIn, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.add_item(
            user_id=user_id,
            item_id=payload.item_id,
            item_name=payload.item_name,
            unit_price=payload.unit_price,
            quantity=payload.quantity,
        )
    except OrderingError as e:
        raise_http_error(e)


@router.put("/{user_id}/items/{item_id}", response_model=Cart)
def update_item(
    user_id: int,
    item_id: int,
    payload: QuantityIn,
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.set_item_quantity(user_id, item_id, payload.quantity)
    except OrderingError as e:
        raise_http_error(e)


@router.delete("/{user_id}/items/{item_id}", response_model=Cart)
def remove_item(user_id: int, item_id: int, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.remove_item(user_id, item_id)
    except OrderingError as e:
        raise_http_error(e)


@router.delete("/{user_id}")
def clear_cart(user_id: int, svc: CartService = Depends(get_cart_service)):
    try:
        svc.clear_cart(user_id)
    except OrderingError as e:
        raise_http_error(e)
    return {"message": "Cart cleared"}
