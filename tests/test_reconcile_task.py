from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import sessionmaker

import app.tasks.reconcile as reconcile_module
from app.data.models.order import OrderModel


def test_reconcile_task_repairs_lost_projection(
    monkeypatch, fake_redis, orders_collection, mirror_engine, db_session, cart_service, order_service
) -> None:
    monkeypatch.setattr(reconcile_module, "get_redis", lambda: fake_redis)
    monkeypatch.setattr(reconcile_module, "get_orders_collection", lambda: orders_collection)
    monkeypatch.setattr(reconcile_module, "SessionLocal", sessionmaker(bind=mirror_engine))

    cart_service.add_item(1, 1, "Char Kuey Teow", Decimal("12.00"), 1)
    order = order_service.place_order(1, "X")
    db_session.delete(db_session.get(OrderModel, order.id))
    db_session.commit()

    result = reconcile_module.reconcile_mirror_task(limit=10)

    assert result == {"checked": 10, "repaired": [order.id]}
    db_session.expire_all()
    assert db_session.get(OrderModel, order.id).status == "pending"
