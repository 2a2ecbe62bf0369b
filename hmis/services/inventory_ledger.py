# FILE: hmis/services/inventory_ledger.py
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from hmis.core.config import settings
from hmis.core.errors import (
    InsufficientStock,
    ItemNotFound,
    TransactionNotFound,
    ValidationFailed,
)
from hmis.models.inventory import TXN_TYPES, InventoryItem, InventoryTransaction
from hmis.schemas.inventory import InventoryItemIn, StockTransactionIn, StockTransactionPatch
from hmis.services.number_series import next_document_number
from hmis.utils.timezone import now_local

logger = logging.getLogger(__name__)

REASON_TO_TYPE = {
    "purchase": "receipt",
    "return": "return",
    "damage": "wastage",
    "expiry": "expiry",
    "correction": "adjustment",
    "use": "issue",
    "transfer": "transfer",
    "other": "adjustment",
}

INBOUND_TYPES = {"receipt", "return"}
OUTBOUND_TYPES = {"issue", "wastage", "expiry"}


def D(v, default="0") -> Decimal:
    if v is None or v == "":
        return Decimal(default)
    return Decimal(str(v))


def resolve_type(transaction_type: Optional[str], reason: Optional[str]) -> str:
    if transaction_type:
        t = transaction_type.strip().lower()
        if t not in TXN_TYPES:
            raise ValidationFailed(f"Unknown transaction type: {transaction_type}",
                                   details={"allowed": list(TXN_TYPES)})
        return t
    if reason:
        return REASON_TO_TYPE.get(reason.strip().lower(), "adjustment")
    return "adjustment"


def signed_delta(quantity: int, txn_type: str, direction: Optional[str]) -> int:
    """Positive for stock in, negative for stock out."""
    if quantity is None or int(quantity) <= 0:
        raise ValidationFailed("quantity must be a positive whole number")
    qty = int(quantity)
    if direction == "add":
        return qty
    if direction == "subtract":
        return -qty
    if txn_type in INBOUND_TYPES:
        return qty
    if txn_type in OUTBOUND_TYPES:
        return -qty
    raise ValidationFailed(
        f"adjustment_type (add/subtract) is required for {txn_type} transactions")


def apply_delta(db: Session, item_id: int, delta: int) -> InventoryItem:
    """
    quantity = quantity + delta, evaluated by the database so concurrent
    movements never overwrite each other.
    """
    stmt = update(InventoryItem).where(InventoryItem.id == item_id)
    if delta < 0 and not settings.INVENTORY_ALLOW_NEGATIVE_STOCK:
        stmt = stmt.where(InventoryItem.quantity + delta >= 0)
    res = db.execute(
        stmt.values(quantity=InventoryItem.quantity + delta, updated_at=now_local())
        .execution_options(synchronize_session=False))

    item = db.get(InventoryItem, item_id, populate_existing=True)
    if res.rowcount == 1:
        return item
    if item is None:
        raise ItemNotFound(details={"item_id": item_id})
    logger.warning("Stock for item %s would go negative (on hand %s, delta %s)",
                   item_id, item.quantity, delta)
    raise InsufficientStock(
        f"Insufficient stock for {item.name}. On hand {item.quantity}, need {-delta}",
        details={"item_id": item_id, "on_hand": item.quantity, "delta": delta})


# ---------------------------------------------------------------------
# items
# ---------------------------------------------------------------------
def create_item(db: Session, payload: InventoryItemIn,
                user_id: Optional[int] = None) -> InventoryItem:
    """New items start empty; any starting quantity goes in as a receipt."""
    data = payload.model_dump(exclude={"quantity"})
    item = InventoryItem(**data, quantity=0, is_active=True)
    db.add(item)
    db.flush()

    if payload.quantity > 0:
        record_transaction(db, StockTransactionIn(
            item_id=item.id,
            quantity=payload.quantity,
            transaction_type="receipt",
            reason="opening stock",
        ), user_id)
    return item


def get_item(db: Session, item_id: int) -> InventoryItem:
    item = db.get(InventoryItem, item_id)
    if not item:
        raise ItemNotFound(details={"item_id": item_id})
    return item


def list_items(db: Session, *, low_stock_only: bool = False,
               search: Optional[str] = None) -> List[InventoryItem]:
    q = db.query(InventoryItem).filter(InventoryItem.is_active.is_(True))
    if low_stock_only:
        q = q.filter(InventoryItem.quantity <= InventoryItem.reorder_level)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter((InventoryItem.name.like(like)) | (InventoryItem.item_code.like(like)))
    return q.order_by(InventoryItem.name.asc()).all()


# ---------------------------------------------------------------------
# transactions
# ---------------------------------------------------------------------
def record_transaction(db: Session, payload: StockTransactionIn,
                       user_id: Optional[int] = None) -> InventoryTransaction:
    txn_type = resolve_type(payload.transaction_type, payload.reason)
    delta = signed_delta(payload.quantity, txn_type, payload.adjustment_type)

    unit_price = D(payload.unit_price) if payload.unit_price is not None else None
    total_value = None
    if unit_price is not None:
        total_value = (unit_price * abs(delta)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    number = next_document_number(db, "TXN", "TXN")
    txn = InventoryTransaction(
        transaction_number=number,
        item_id=payload.item_id,
        transaction_type=txn_type,
        transaction_date=payload.transaction_date or now_local(),
        quantity=delta,
        unit_price=unit_price,
        total_value=total_value,
        batch_number=payload.batch_number,
        expiry_date=payload.expiry_date,
        from_location=payload.from_location,
        to_location=payload.to_location,
        reference_number=payload.reference_number,
        reference_type=payload.reference_type,
        reason=payload.reason,
        notes=payload.notes,
        performed_by=user_id,
    )

    item = apply_delta(db, payload.item_id, delta)
    db.add(txn)
    db.flush()
    logger.info("%s %s item %s %+d -> %s", number, txn_type, item.id, delta, item.quantity)
    return txn


def get_transaction(db: Session, transaction_id: int, *, lock: bool = False) -> InventoryTransaction:
    q = db.query(InventoryTransaction).filter(InventoryTransaction.id == transaction_id)
    if lock:
        q = q.with_for_update(of=InventoryTransaction)
    txn = q.first()
    if not txn:
        raise TransactionNotFound(details={"transaction_id": transaction_id})
    return txn


def reverse_transaction(db: Session, transaction_id: int) -> InventoryItem:
    """Undo a movement: put the quantity back and drop the ledger row."""
    txn = get_transaction(db, transaction_id, lock=True)
    item = apply_delta(db, txn.item_id, -txn.quantity)
    number = txn.transaction_number
    db.delete(txn)
    db.flush()
    logger.info("%s reversed, item %s now %s", number, item.id, item.quantity)
    return item


def update_transaction_notes(db: Session, transaction_id: int,
                             patch: StockTransactionPatch) -> InventoryTransaction:
    txn = get_transaction(db, transaction_id, lock=True)
    for field, value in patch.model_dump(exclude_unset=True).items():
        setattr(txn, field, value)
    db.flush()
    return txn


def list_transactions(
    db: Session,
    *,
    item_id: Optional[int] = None,
    transaction_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[InventoryTransaction], int]:
    q = db.query(InventoryTransaction)
    if item_id:
        q = q.filter(InventoryTransaction.item_id == item_id)
    if transaction_type:
        q = q.filter(InventoryTransaction.transaction_type == transaction_type)
    if start_date:
        q = q.filter(InventoryTransaction.transaction_date >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        q = q.filter(InventoryTransaction.transaction_date <= datetime.combine(end_date, datetime.max.time()))

    total = q.count()
    rows = (q.order_by(InventoryTransaction.transaction_date.desc(), InventoryTransaction.id.desc())
            .offset((page - 1) * limit).limit(limit).all())
    return rows, total
