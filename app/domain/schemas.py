# app/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# forward-only graph, cancelled/delivered are terminal
STATUS_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING},
    OrderStatus.PREPARING: {OrderStatus.OUT_FOR_DELIVERY},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


class CartItem(BaseModel):
    """Line item in a cart, also copied verbatim into an order."""

    item_id: int
    item_name: str
    unit_price: Decimal
    quantity: int = Field(..., ge=1)


class Cart(BaseModel):
    """
    Cart kept in the cart store.
    Every mutation goes through the methods below so `total` is always
    recomputed from the current items.
    """

    owner_id: int
    items: List[CartItem] = Field(default_factory=list)
    total: Decimal = Decimal("0.00")
    version: int = 0
    updated_at: datetime | None = None

    @classmethod
    def empty(cls, owner_id: int) -> "Cart":
        return cls(owner_id=owner_id)

    def is_empty(self) -> bool:
        return not self.items

    def find(self, item_id: int) -> CartItem | None:
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None

    def recompute(self) -> None:
        self.total = sum(
            (i.unit_price * i.quantity for i in self.items), Decimal("0.00")
        )

    def add(self, item_id: int, item_name: str, unit_price: Decimal, quantity: int) -> None:
        existing = self.find(item_id)
        if existing:
            existing.quantity += quantity
        else:
            self.items.append(
                CartItem(
                    item_id=item_id,
                    item_name=item_name,
                    unit_price=unit_price,
                    quantity=quantity,
                )
            )
        self.recompute()

    def set_quantity(self, item_id: int, quantity: int) -> bool:
        """Absolute set; quantity <= 0 drops the line. False if the item is absent."""
        existing = self.find(item_id)
        if not existing:
            return False
        if quantity <= 0:
            self.items = [i for i in self.items if i.item_id != item_id]
        else:
            existing.quantity = quantity
        self.recompute()
        return True

    def remove(self, item_id: int) -> None:
        self.items = [i for i in self.items if i.item_id != item_id]
        self.recompute()


class Order(BaseModel):
    id: str
    owner_id: int
    items: List[CartItem]
    total_amount: Decimal
    delivery_address: str
    notes: str = ""
    payment_method: str = "cash"
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime
    updated_at: datetime


class OrderProjection(BaseModel):
    """Order row held by the relational mirror (non-authoritative)."""

    id: str
    owner_id: int
    total_amount: Decimal
    status: OrderStatus
    delivery_address: str
    notes: str = ""
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# request / response bodies

class ItemIn(BaseModel):
    item_id: int = Field(..., gt=0)
    item_name: str = Field(..., min_length=1, max_length=255)
    unit_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    quantity: int = Field(1, gt=0)


class QuantityIn(BaseModel):
    # <= 0 removes the line item
    quantity: int


class PlaceOrderIn(BaseModel):
    user_id: int = Field(..., gt=0)
    delivery_address: str | None = None
    notes: str | None = None
    payment_method: str | None = None


class OrderPlacedOut(BaseModel):
    message: str
    order_id: str
    order: Order


class StatusIn(BaseModel):
    status: str


class MessageOut(BaseModel):
    message: str
    status: OrderStatus | None = None
