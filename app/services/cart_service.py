# app/services/cart_service.py
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from app.domain.errors import InvalidRequest, NotFound
from app.domain.schemas import Cart
from app.repos.cart_repo import CartRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


def _check_id(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidRequest(f"{name} must be a positive integer")
    return value


_CENT = Decimal("0.01")
# Numeric(12, 2)-sized prices, totals get the wider mirror column
MAX_UNIT_PRICE = Decimal("9999999999.99")


def _check_price(value) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidRequest(f"Invalid unit price: {value!r}") from e
    if not price.is_finite() or price < 0 or price > MAX_UNIT_PRICE:
        raise InvalidRequest(f"Invalid unit price: {value!r}")
    return price.quantize(_CENT, rounding=ROUND_HALF_UP)


class CartService:
    """
    Cart use cases, all scoped by user id.
    Commands (add, set, remove, clear) go through CartRepo.mutate which is
    atomic per user; get is a plain read.
    """

    def __init__(self, repo: CartRepo):
        self.repo = repo

    #query
    def get_cart(self, user_id: int) -> Cart:
        _check_id(user_id, "user_id")
        return self.repo.get_cart(user_id)

    #commands
    def add_item(
        self,
        user_id: int,
        item_id: int,
        item_name: str,
        unit_price,
        quantity: int = 1,
    ) -> Cart:
        _check_id(user_id, "user_id")
        _check_id(item_id, "item_id")
        if not isinstance(item_name, str) or not item_name.strip():
            raise InvalidRequest("item_name is required")
        price = _check_price(unit_price)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidRequest("Quantity must be at least 1")

        def mutator(cart: Cart, found: bool) -> bool:
            cart.add(item_id, item_name, price, quantity)
            return True

        cart = self.repo.mutate(user_id, mutator)
        logger.info(
            f"Added item {item_id} x{quantity} to cart of user {user_id}, total {cart.total}"
        )
        return cart

    def set_item_quantity(self, user_id: int, item_id: int, quantity: int) -> Cart:
        _check_id(user_id, "user_id")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidRequest("Quantity must be an integer")

        def mutator(cart: Cart, found: bool) -> bool:
            if not found:
                raise NotFound(f"Cart for user {user_id} not found")
            if not cart.set_quantity(item_id, quantity):
                raise NotFound(f"Item {item_id} not found in cart")
            return True

        cart = self.repo.mutate(user_id, mutator)
        if quantity <= 0:
            logger.info(f"Removed item {item_id} from cart of user {user_id} (quantity {quantity})")
        else:
            logger.info(f"Set item {item_id} quantity to {quantity} in cart of user {user_id}")
        return cart

    def remove_item(self, user_id: int, item_id: int) -> Cart:
        _check_id(user_id, "user_id")

        def mutator(cart: Cart, found: bool) -> bool:
            if not cart.find(item_id):
                return False
            cart.remove(item_id)
            return True

        cart = self.repo.mutate(user_id, mutator)
        logger.info(f"Removed item {item_id} from cart of user {user_id}")
        return cart

    def clear_cart(self, user_id: int) -> None:
        _check_id(user_id, "user_id")
        self.repo.clear(user_id)
        logger.info(f"Cleared cart of user {user_id}")
