# app/tasks/reconcile.py
from app.celery_worker import celery_app
from app.data.database import SessionLocal
from app.data.stores import get_orders_collection, get_redis
from app.repos.cart_repo import CartRepo
from app.repos.mirror_repo import MirrorRepo
from app.repos.order_repo import OrderRepo
from app.services.order_service import OrderService
from app.utils.settings import RECONCILE_BATCH_SIZE
from app.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="app.tasks.reconcile.reconcile_mirror_task")
def reconcile_mirror_task(limit: int = RECONCILE_BATCH_SIZE):
    logger.info(f"Mirror reconcile started (newest {limit} orders)")

    db = SessionLocal()
    try:
        service = OrderService(
            cart_repo=CartRepo(get_redis()),
            ledger=OrderRepo(get_orders_collection()),
            mirror=MirrorRepo(db),
        )
        repaired = service.reconcile_mirror(limit)
    finally:
        db.close()

    return {"checked": limit, "repaired": repaired}
