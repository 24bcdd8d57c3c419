# app/data/models/order.py
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text

from app.data.database import Base


class OrderModel(Base):
    """Relational mirror of a ledger order, keyed by the ledger id."""

    __tablename__ = "orders"

    id = Column(String(64), primary_key=True)
    owner_id = Column(Integer, nullable=False, index=True)

    total_amount = Column(Numeric(20, 2), nullable=False)
    # pending, confirmed, preparing, out_for_delivery, delivered, cancelled
    status = Column(String(32), nullable=False, default="pending", index=True)
    delivery_address = Column(Text, nullable=False)
    notes = Column(Text, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
