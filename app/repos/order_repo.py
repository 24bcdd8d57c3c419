# app/repos/order_repo.py
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List

from bson import Decimal128, ObjectId
from bson.errors import InvalidDocument, InvalidId
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.domain.errors import NotFound, PlacementFailed, StorageUnavailable
from app.domain.schemas import CartItem, Order, OrderStatus
from app.utils.retry import mongo_retry
from app.utils.logging import get_logger

logger = get_logger(__name__)

_NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


def _dec(value) -> Decimal:
    if isinstance(value, Decimal128):
        return value.to_decimal()
    return Decimal(str(value))


def parse_order_id(order_id: str) -> ObjectId:
    try:
        return ObjectId(order_id)
    except (InvalidId, TypeError) as e:
        raise NotFound(f"Order {order_id} not found") from e


def to_document(order: Order) -> dict:
    return {
        "_id": ObjectId(order.id),
        "owner_id": order.owner_id,
        "items": [
            {
                "item_id": i.item_id,
                "item_name": i.item_name,
                "unit_price": Decimal128(i.unit_price),
                "quantity": i.quantity,
            }
            for i in order.items
        ],
        "total_amount": Decimal128(order.total_amount),
        "delivery_address": order.delivery_address,
        "notes": order.notes,
        "payment_method": order.payment_method,
        "status": order.status.value,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


def from_document(doc: dict) -> Order:
    return Order(
        id=str(doc["_id"]),
        owner_id=doc["owner_id"],
        items=[
            CartItem(
                item_id=i["item_id"],
                item_name=i["item_name"],
                unit_price=_dec(i["unit_price"]),
                quantity=i["quantity"],
            )
            for i in doc.get("items", [])
        ],
        total_amount=_dec(doc["total_amount"]),
        delivery_address=doc["delivery_address"],
        notes=doc.get("notes") or "",
        payment_method=doc.get("payment_method") or "cash",
        status=OrderStatus(doc["status"]),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    )


class OrderRepo:
    """
    Order ledger on mongo, the source of truth for placed orders.
    Driver errors leave this class as StorageUnavailable.
    """

    def __init__(self, collection: Collection):
        self.collection = collection

    @staticmethod
    def new_id() -> str:
        # id is assigned before the insert so a retried insert can be recognised
        return str(ObjectId())

    @mongo_retry()
    def _insert(self, doc: dict) -> None:
        self.collection.insert_one(doc)

    def create_order(self, order: Order) -> Order:
        try:
            doc = to_document(order)
        except (ArithmeticError, InvalidDocument, ValueError) as e:
            # decimal128 holds 34 significant digits, nothing to retry here
            logger.error(f"Order {order.id} cannot be stored in the ledger: {e!r}")
            raise PlacementFailed(f"Order amounts cannot be stored: {e!r}") from e
        try:
            self._insert(doc)
        except DuplicateKeyError:
            # an earlier attempt landed before the connection dropped
            logger.warning(f"Order {order.id} already in ledger, treating insert as done")
        except InvalidDocument as e:
            raise PlacementFailed(f"Order document rejected by the ledger: {e}") from e
        except PyMongoError as e:
            raise StorageUnavailable(f"Order ledger write failed: {e}") from e
        return order

    @mongo_retry()
    def _find_one(self, query: dict) -> dict | None:
        return self.collection.find_one(query)

    def get_order(self, order_id: str) -> Order | None:
        oid = parse_order_id(order_id)
        try:
            doc = self._find_one({"_id": oid})
        except PyMongoError as e:
            raise StorageUnavailable(f"Order ledger read failed: {e}") from e
        return from_document(doc) if doc else None

    @mongo_retry()
    def _find(self, query: dict, limit: int = 0) -> List[dict]:
        cursor = self.collection.find(query).sort(_NEWEST_FIRST)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    def list_by_owner(self, owner_id: int) -> List[Order]:
        try:
            docs = self._find({"owner_id": owner_id})
        except PyMongoError as e:
            raise StorageUnavailable(f"Order ledger read failed: {e}") from e
        return [from_document(d) for d in docs]

    def list_all(self, status: OrderStatus | None, limit: int) -> List[Order]:
        query = {"status": status.value} if status else {}
        try:
            docs = self._find(query, limit)
        except PyMongoError as e:
            raise StorageUnavailable(f"Order ledger read failed: {e}") from e
        return [from_document(d) for d in docs]

    @mongo_retry()
    def _update_status(self, query: dict, status: str, now: datetime) -> dict | None:
        return self.collection.find_one_and_update(
            query,
            {"$set": {"status": status, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )

    def update_order_status(
        self,
        order_id: str,
        status: OrderStatus,
        now: datetime,
        expected: Iterable[OrderStatus] | None = None,
    ) -> Order | None:
        """
        Single-document conditional update, atomic on the server.
        With `expected` the write only applies while the current status is
        one of them. Returns None when nothing matched.
        """
        query: dict = {"_id": parse_order_id(order_id)}
        if expected is not None:
            query["status"] = {"$in": [s.value for s in expected]}
        try:
            doc = self._update_status(query, status.value, now)
        except PyMongoError as e:
            raise StorageUnavailable(f"Order ledger write failed: {e}") from e
        return from_document(doc) if doc else None
