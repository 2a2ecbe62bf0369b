from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Date,
    DateTime,
    Numeric,
    Text,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import relationship

from hmis.db.base import Base
from hmis.utils.timezone import now_local

TXN_TYPES = ("receipt", "issue", "adjustment", "wastage", "expiry", "return", "transfer")


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True)
    item_code = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False, index=True)
    unit = Column(String(30), default="unit")
    # quantity on hand; only moved by applying a transaction delta
    quantity = Column(Integer, nullable=False, default=0)
    reorder_level = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=now_local)
    updated_at = Column(DateTime, default=now_local, onupdate=now_local)

    @property
    def is_low_stock(self) -> bool:
        return (self.quantity or 0) <= (self.reorder_level or 0)


class InventoryTransaction(Base):
    """Append-only movement log; ``quantity`` is the signed delta."""

    __tablename__ = "inventory_transactions"
    __table_args__ = (
        Index("ix_inv_txn_item_date", "item_id", "transaction_date"),
        Index("ix_inv_txn_type_date", "transaction_type", "transaction_date"),
    )

    id = Column(Integer, primary_key=True)
    transaction_number = Column(String(30), unique=True, nullable=False)
    item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False)
    transaction_type = Column(String(20), nullable=False)
    transaction_date = Column(DateTime, nullable=False, default=now_local)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 4), nullable=True)
    total_value = Column(Numeric(14, 2), nullable=True)

    batch_number = Column(String(100), nullable=True)
    expiry_date = Column(Date, nullable=True)
    from_location = Column(String(120), nullable=True)
    to_location = Column(String(120), nullable=True)

    reference_number = Column(String(100), nullable=True)
    reference_type = Column(String(50), nullable=True)
    reason = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    performed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=now_local)

    item = relationship("InventoryItem", lazy="joined")

    @property
    def item_name(self):
        return self.item.name if self.item else None

    @property
    def item_code(self):
        return self.item.item_code if self.item else None
