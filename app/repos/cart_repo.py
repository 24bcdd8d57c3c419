# app/repos/cart_repo.py
from datetime import datetime, timezone
from typing import Callable, Tuple

import redis
from pydantic import ValidationError
from redis.exceptions import RedisError, WatchError

from app.domain.errors import StorageUnavailable
from app.domain.schemas import Cart
from app.utils.retry import redis_retry
from app.utils.settings import CART_CAS_MAX_ATTEMPTS, CART_TTL_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)

# compare and delete, redis runs the script atomically
# so nothing can land between GET and DEL
_CLEAR_IF_UNCHANGED_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

# mutator gets (cart, found) and returns True when the cart changed
Mutator = Callable[[Cart, bool], bool]


class CartRepo:
    """
    Cart store on redis, one JSON document per user under cart:user:{id}.

    Writes are optimistic transactions (WATCH/MULTI/EXEC) retried on
    WatchError, so two concurrent mutations of the same cart both land.
    Every write re-arms the TTL.
    """

    def __init__(
        self,
        client: redis.Redis,
        ttl: int = CART_TTL_SECONDS,
        max_attempts: int = CART_CAS_MAX_ATTEMPTS,
    ):
        self.redis = client
        self.ttl = ttl
        self.max_attempts = max_attempts

    @staticmethod
    def key(owner_id: int) -> str:
        return f"cart:user:{owner_id}"

    def _decode(self, owner_id: int, raw: str | None) -> Cart:
        if not raw:
            return Cart.empty(owner_id)
        try:
            cart = Cart.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Unreadable cart for user {owner_id}, treating as empty: {e}")
            return Cart.empty(owner_id)
        cart.recompute()
        return cart

    @staticmethod
    def _encode(cart: Cart) -> str:
        return cart.model_dump_json()

    # reads

    @redis_retry()
    def _get_raw(self, owner_id: int) -> str | None:
        return self.redis.get(self.key(owner_id))

    def snapshot(self, owner_id: int) -> Tuple[Cart, str | None]:
        """Cart plus the exact stored payload it was decoded from."""
        try:
            raw = self._get_raw(owner_id)
        except RedisError as e:
            logger.error(f"Cart store read failed for user {owner_id}: {e}")
            raise StorageUnavailable("Cart store is unavailable") from e
        return self._decode(owner_id, raw), raw

    def get_cart(self, owner_id: int) -> Cart:
        cart, _ = self.snapshot(owner_id)
        return cart

    # writes

    # no retry on connection errors here, EXEC may have landed before the socket dropped
    def _mutate(self, owner_id: int, mutator: Mutator) -> Cart:
        key = self.key(owner_id)

        with self.redis.pipeline() as pipe:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    pipe.watch(key)
                    raw = pipe.get(key)
                    cart = self._decode(owner_id, raw)

                    if not mutator(cart, raw is not None):
                        pipe.unwatch()
                        return cart

                    cart.version += 1
                    cart.updated_at = datetime.now(timezone.utc)

                    pipe.multi()
                    if cart.is_empty():
                        pipe.delete(key)
                    else:
                        pipe.setex(key, self.ttl, self._encode(cart))
                    pipe.execute()
                    return cart
                except WatchError:
                    logger.info(
                        f"Cart {key} changed during update (attempt {attempt}), retrying"
                    )

        logger.error(f"Cart {key} still contended after {self.max_attempts} attempts")
        raise StorageUnavailable(f"Cart for user {owner_id} is busy, try again")

    def mutate(self, owner_id: int, mutator: Mutator) -> Cart:
        try:
            return self._mutate(owner_id, mutator)
        except RedisError as e:
            logger.error(f"Cart store write failed for user {owner_id}: {e}")
            raise StorageUnavailable("Cart store is unavailable") from e

    @redis_retry()
    def _delete(self, owner_id: int) -> int:
        return self.redis.delete(self.key(owner_id))

    def clear(self, owner_id: int) -> bool:
        try:
            return bool(self._delete(owner_id))
        except RedisError as e:
            logger.error(f"Cart store delete failed for user {owner_id}: {e}")
            raise StorageUnavailable("Cart store is unavailable") from e

    @redis_retry()
    def clear_if_unchanged(self, owner_id: int, raw: str) -> bool:
        """Delete the cart only if it still holds exactly `raw`."""
        res = self.redis.eval(_CLEAR_IF_UNCHANGED_LUA, 1, self.key(owner_id), raw)
        return bool(res)
