from __future__ import annotations

import random
from decimal import Decimal

import pytest

from app.domain.schemas import Cart


def _expected_total(cart: Cart) -> Decimal:
    return sum((i.unit_price * i.quantity for i in cart.items), Decimal("0"))


def test_add_appends_then_increments() -> None:
    cart = Cart.empty(1)
    cart.add(5, "Teh Tarik", Decimal("3.00"), 1)
    cart.add(5, "Teh Tarik", Decimal("3.00"), 2)
    cart.add(7, "Milo Ais", Decimal("4.00"), 1)

    assert [(i.item_id, i.quantity) for i in cart.items] == [(5, 3), (7, 1)]
    assert cart.total == Decimal("13.00")


def test_set_quantity_is_absolute_and_zero_removes() -> None:
    cart = Cart.empty(1)
    cart.add(1, "Nasi Lemak", Decimal("12.00"), 3)

    assert cart.set_quantity(1, 1)
    assert cart.items[0].quantity == 1
    assert cart.total == Decimal("12.00")

    assert cart.set_quantity(1, 0)
    assert cart.items == []
    assert cart.total == Decimal("0")


def test_set_quantity_on_missing_item_reports_false() -> None:
    cart = Cart.empty(1)
    assert cart.set_quantity(99, 2) is False


def test_remove_missing_item_is_noop() -> None:
    cart = Cart.empty(1)
    cart.add(1, "Roti Canai", Decimal("6.00"), 2)
    cart.remove(42)
    assert len(cart.items) == 1
    assert cart.total == Decimal("12.00")


@pytest.mark.parametrize("seed", range(25))
def test_total_matches_items_after_random_operations(seed: int) -> None:
    rng = random.Random(seed)
    prices = {i: Decimal(rng.randint(0, 2000)) / 100 for i in range(1, 8)}
    cart = Cart.empty(1)

    for _ in range(60):
        op = rng.choice(["add", "set", "remove"])
        item_id = rng.randint(1, 7)
        if op == "add":
            cart.add(item_id, f"item-{item_id}", prices[item_id], rng.randint(1, 5))
        elif op == "set":
            cart.set_quantity(item_id, rng.randint(-2, 6))
        else:
            cart.remove(item_id)

        assert cart.total == _expected_total(cart)
        assert all(i.quantity > 0 for i in cart.items)
        assert len({i.item_id for i in cart.items}) == len(cart.items)
