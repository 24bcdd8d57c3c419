# app/api/routers/users.py
from typing import List

from fastapi import APIRouter, Depends

from app.api.deps import get_order_service, raise_http_error
from app.domain.errors import OrderingError
from app.domain.schemas import OrderProjection
from app.services.order_service import OrderService

router = APIRouter(prefix="/api/users", tags=["users"])


# served from the relational mirror, may lag behind /api/orders/user/{id}
@router.get("/{user_id}/orders", response_model=List[OrderProjection])
def get_user_order_history(user_id: int, svc: OrderService = Depends(get_order_service)):
    try:
        return svc.list_user_orders_from_mirror(user_id)
    except OrderingError as e:
        raise_http_error(e)
