# app/services/order_service.py
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, List

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from app.domain.errors import (
    EmptyCart,
    InvalidRequest,
    InvalidState,
    InvalidStatus,
    NotFound,
    PlacementFailed,
    StorageUnavailable,
)
from app.domain.schemas import (
    STATUS_TRANSITIONS,
    Order,
    OrderProjection,
    OrderStatus,
)
from app.repos.cart_repo import CartRepo
from app.repos.mirror_repo import MirrorRepo
from app.repos.order_repo import OrderRepo
from app.utils.settings import (
    ORDER_LIST_DEFAULT_LIMIT,
    ORDER_LIST_MAX_LIMIT,
    STRICT_STATUS_TRANSITIONS,
)
from app.utils.logging import get_logger

logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_CENT = Decimal("0.01")


def utc_now() -> datetime:
    # mongo keeps milliseconds, truncate so ledger, mirror and response agree
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _utc_millis(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH) // timedelta(milliseconds=1)


def _same_amount(stored, amount: Decimal) -> bool:
    # the mirror column keeps cents
    return Decimal(str(stored)) == amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def parse_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError as e:
        raise InvalidStatus(value) from e


def project(order: Order) -> OrderProjection:
    return OrderProjection(
        id=order.id,
        owner_id=order.owner_id,
        total_amount=order.total_amount,
        status=order.status,
        delivery_address=order.delivery_address,
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


class OrderService:
    """
    Turns a cart into an order and manages order status.

    Placement is commit-then-propagate: the ledger insert is the commit
    point, clearing the cart and writing the relational mirror happen after
    it and their failures are only logged.
    """

    def __init__(
        self,
        cart_repo: CartRepo,
        ledger: OrderRepo,
        mirror: MirrorRepo,
        strict_transitions: bool = STRICT_STATUS_TRANSITIONS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.cart_repo = cart_repo
        self.ledger = ledger
        self.mirror = mirror
        self.strict_transitions = strict_transitions
        self.clock = clock

    # placement

    def place_order(
        self,
        user_id: int,
        delivery_address: str | None,
        notes: str | None = None,
        payment_method: str | None = None,
    ) -> Order:
        if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id <= 0:
            raise InvalidRequest("User ID and delivery address are required")
        if not isinstance(delivery_address, str) or not delivery_address.strip():
            raise InvalidRequest("User ID and delivery address are required")

        cart, raw = self.cart_repo.snapshot(user_id)
        if cart.is_empty():
            raise EmptyCart(user_id)

        now = self.clock()
        order = Order(
            id=self.ledger.new_id(),
            owner_id=user_id,
            items=[item.model_copy() for item in cart.items],
            total_amount=cart.total,
            delivery_address=delivery_address,
            notes=notes or "",
            payment_method=payment_method or "cash",
            status=OrderStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

        # commit point
        try:
            self.ledger.create_order(order)
        except StorageUnavailable as e:
            logger.error(f"Placing order for user {user_id} failed, cart left intact: {e}")
            raise PlacementFailed(f"Failed to place order: {e}") from e

        logger.info(
            f"Order {order.id} placed for user {user_id}: "
            f"{len(order.items)} items, total {order.total_amount}"
        )

        self._clear_cart_after_commit(user_id, raw, order.id)
        self._mirror(order)
        return order

    def _clear_cart_after_commit(self, user_id: int, raw: str | None, order_id: str) -> None:
        try:
            cleared = self.cart_repo.clear_if_unchanged(user_id, raw)
        except RedisError as e:
            logger.error(f"Order {order_id} placed but cart of user {user_id} was not cleared: {e}")
            return
        if not cleared:
            # a mutation landed after the snapshot, keep it rather than drop it
            logger.warning(
                f"Cart of user {user_id} changed while order {order_id} was placed, not clearing it"
            )

    def _mirror(self, order: Order) -> None:
        try:
            self.mirror.upsert_order(project(order))
        except Exception as e:
            logger.error(
                f"Mirror write for order {order.id} (user {order.owner_id}) failed, "
                f"ledger stays authoritative: {e}"
            )

    # queries

    def get_order(self, order_id: str) -> Order:
        order = self.ledger.get_order(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        return order

    def list_orders(self, user_id: int) -> List[Order]:
        return self.ledger.list_by_owner(user_id)

    def list_all_orders(self, status: str | None = None, limit: int | None = None) -> List[Order]:
        if limit is None:
            limit = ORDER_LIST_DEFAULT_LIMIT
        limit = max(1, min(int(limit), ORDER_LIST_MAX_LIMIT))

        status_filter = None
        if status:
            try:
                status_filter = parse_status(status)
            except InvalidStatus:
                # unknown status matches nothing
                return []
        return self.ledger.list_all(status_filter, limit)

    def list_user_orders_from_mirror(self, user_id: int) -> List[OrderProjection]:
        """User order history from the relational mirror, may lag the ledger."""
        try:
            rows = self.mirror.list_by_owner(user_id)
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Order mirror read failed: {e}") from e
        return [OrderProjection.model_validate(row) for row in rows]

    # status changes

    def update_status(self, order_id: str, new_status) -> Order:
        status = parse_status(new_status)

        expected = None
        if self.strict_transitions:
            expected = [s for s, targets in STATUS_TRANSITIONS.items() if status in targets]
            if not expected:
                # an unknown id is still NotFound, not InvalidState
                self.get_order(order_id)
                raise InvalidState(f"Orders cannot be moved to {status.value}")

        updated = self.ledger.update_order_status(order_id, status, self.clock(), expected)
        if not updated:
            current = self.ledger.get_order(order_id) if expected is not None else None
            if not current:
                raise NotFound(f"Order {order_id} not found")
            raise InvalidState(
                f"Cannot move order {order_id} from {current.status.value} to {status.value}"
            )

        logger.info(f"Order {order_id} status set to {status.value}")
        self._mirror(updated)
        return updated

    def cancel_order(self, order_id: str) -> Order:
        # the status guard is part of the update filter, so a concurrent
        # confirm and cancel cannot both succeed from pending
        updated = self.ledger.update_order_status(
            order_id, OrderStatus.CANCELLED, self.clock(), expected=[OrderStatus.PENDING]
        )
        if not updated:
            current = self.ledger.get_order(order_id)
            if not current:
                raise NotFound(f"Order {order_id} not found")
            raise InvalidState(
                f"Only pending orders can be cancelled (order {order_id} is {current.status.value})"
            )

        logger.info(f"Order {order_id} cancelled")
        self._mirror(updated)
        return updated

    # reconciliation

    def reconcile_mirror(self, limit: int) -> List[str]:
        """
        Re-upsert mirror rows that are missing or disagree with the ledger
        for the newest `limit` orders. Returns the repaired order ids.
        """
        orders = self.ledger.list_all(None, limit)
        try:
            rows = self.mirror.get_orders(o.id for o in orders)
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Order mirror read failed: {e}") from e

        repaired = []
        for order in orders:
            row = rows.get(order.id)
            if (
                row is not None
                and row.status == order.status.value
                and _same_amount(row.total_amount, order.total_amount)
                and _utc_millis(row.updated_at) == _utc_millis(order.updated_at)
            ):
                continue
            try:
                self.mirror.upsert_order(project(order))
            except SQLAlchemyError as e:
                logger.error(f"Reconcile of order {order.id} failed: {e}")
                continue
            repaired.append(order.id)

        if repaired:
            logger.warning(f"Mirror diverged from ledger for {len(repaired)} orders, repaired: {repaired}")
        else:
            logger.info(f"Mirror consistent with ledger for newest {len(orders)} orders")
        return repaired
