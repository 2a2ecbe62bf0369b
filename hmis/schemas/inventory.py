# FILE: hmis/schemas/inventory.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class InventoryItemIn(BaseModel):
    item_code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    unit: Optional[str] = "unit"
    reorder_level: int = Field(0, ge=0)
    # booked as an "opening stock" receipt, never written onto the item
    quantity: int = Field(0, ge=0)


class InventoryItemOut(BaseModel):
    id: int
    item_code: str
    name: str
    unit: Optional[str] = None
    # may be negative when INVENTORY_ALLOW_NEGATIVE_STOCK is on
    quantity: int
    reorder_level: int = 0
    is_active: bool = True
    is_low_stock: bool = False

    model_config = ConfigDict(from_attributes=True)


class StockTransactionIn(BaseModel):
    item_id: int = Field(..., gt=0)
    quantity: int
    transaction_type: Optional[str] = None
    adjustment_type: Optional[Literal["add", "subtract"]] = None
    reason: Optional[str] = None
    transaction_date: Optional[datetime] = None

    unit_price: Optional[Decimal] = Field(None, ge=0)
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    from_location: Optional[str] = None
    to_location: Optional[str] = None
    reference_number: Optional[str] = None
    reference_type: Optional[str] = None
    notes: Optional[str] = None


class StockTransactionPatch(BaseModel):
    """Quantity, item and type are immutable once recorded."""

    notes: Optional[str] = None
    reference_number: Optional[str] = None
    reference_type: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class StockTransactionOut(BaseModel):
    id: int
    transaction_number: str
    item_id: int
    item_name: Optional[str] = None
    item_code: Optional[str] = None
    transaction_type: str
    transaction_date: datetime
    quantity: int
    unit_price: Optional[Decimal] = None
    total_value: Optional[Decimal] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    from_location: Optional[str] = None
    to_location: Optional[str] = None
    reference_number: Optional[str] = None
    reference_type: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    performed_by: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
