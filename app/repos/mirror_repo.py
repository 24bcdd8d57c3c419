# app/repos/mirror_repo.py
from typing import Dict, Iterable, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.models.order import OrderModel
from app.domain.schemas import OrderProjection


class MirrorRepo:
    """Relational copy of ledger orders, written only by the order service."""

    def __init__(self, db: Session):
        self.db = db

    def _merge(self, projection: OrderProjection) -> OrderModel:
        row = OrderModel(
            id=projection.id,
            owner_id=projection.owner_id,
            total_amount=projection.total_amount,
            status=projection.status.value,
            delivery_address=projection.delivery_address,
            notes=projection.notes,
            created_at=projection.created_at,
            updated_at=projection.updated_at,
        )
        merged = self.db.merge(row)
        self.db.commit()
        return merged

    def upsert_order(self, projection: OrderProjection) -> OrderModel:
        """Idempotent upsert keyed by the ledger id."""
        try:
            return self._merge(projection)
        except IntegrityError:
            # a concurrent writer inserted the same id first, merge again as an update
            self.db.rollback()
            return self._merge(projection)
        except Exception:
            self.db.rollback()
            raise

    def get_order(self, order_id: str) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_orders(self, order_ids: Iterable[str]) -> Dict[str, OrderModel]:
        ids = list(order_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(OrderModel).where(OrderModel.id.in_(ids))
        ).scalars().all()
        return {row.id: row for row in rows}

    def list_by_owner(self, owner_id: int) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.owner_id == owner_id)
                .order_by(OrderModel.created_at.desc())
            ).scalars().all()
        )
