"""Shared fixtures: fake redis and mongo, in-memory sqlite mirror."""
from __future__ import annotations

import os

# settings are read at import time, keep tests off real services
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.data.database import Base
from app.data.models import OrderModel  # noqa: F401
from app.repos.cart_repo import CartRepo
from app.repos.mirror_repo import MirrorRepo
from app.repos.order_repo import OrderRepo
from app.services.cart_service import CartService
from app.services.order_service import OrderService
from fakes import FakeOrdersCollection, FakeRedisClient


@pytest.fixture()
def fake_redis() -> FakeRedisClient:
    return FakeRedisClient()


@pytest.fixture()
def orders_collection() -> FakeOrdersCollection:
    return FakeOrdersCollection()


@pytest.fixture()
def mirror_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(mirror_engine):
    session = sessionmaker(bind=mirror_engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def cart_repo(fake_redis) -> CartRepo:
    return CartRepo(fake_redis)


@pytest.fixture()
def ledger(orders_collection) -> OrderRepo:
    return OrderRepo(orders_collection)


@pytest.fixture()
def mirror(db_session) -> MirrorRepo:
    return MirrorRepo(db_session)


@pytest.fixture()
def cart_service(cart_repo) -> CartService:
    return CartService(cart_repo)


@pytest.fixture()
def order_service(cart_repo, ledger, mirror) -> OrderService:
    return OrderService(cart_repo=cart_repo, ledger=ledger, mirror=mirror)
