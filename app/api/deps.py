# app/api/deps.py
from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.data.stores import get_orders_collection, get_redis
from app.domain.errors import OrderingError
from app.repos.cart_repo import CartRepo
from app.repos.mirror_repo import MirrorRepo
from app.repos.order_repo import OrderRepo
from app.services.cart_service import CartService
from app.services.order_service import OrderService


def get_cart_repo() -> CartRepo:
    return CartRepo(get_redis())


def get_order_repo() -> OrderRepo:
    return OrderRepo(get_orders_collection())


def get_cart_service(repo: CartRepo = Depends(get_cart_repo)) -> CartService:
    return CartService(repo)


def get_order_service(
    db: Session = Depends(get_db),
    cart_repo: CartRepo = Depends(get_cart_repo),
    ledger: OrderRepo = Depends(get_order_repo),
) -> OrderService:
    return OrderService(cart_repo=cart_repo, ledger=ledger, mirror=MirrorRepo(db))


def raise_http_error(e: OrderingError) -> None:
    raise HTTPException(status_code=e.status_code, detail=str(e)) from e
