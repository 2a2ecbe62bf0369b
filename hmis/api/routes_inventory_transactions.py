# FILE: hmis/api/routes_inventory_transactions.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hmis.api.deps import current_user, get_db
from hmis.api.response import ok
from hmis.db.session import atomic
from hmis.models.user import User
from hmis.schemas.common import page_meta
from hmis.schemas.inventory import (
    InventoryItemIn,
    InventoryItemOut,
    StockTransactionIn,
    StockTransactionOut,
    StockTransactionPatch,
)
from hmis.services import inventory_ledger as ledger

router = APIRouter(prefix="/inventory", tags=["inventory"])


def _txn(row) -> dict:
    return StockTransactionOut.model_validate(row).model_dump()


# =========================
# ITEMS
# =========================
@router.get("/items")
def list_items(
    low_stock: bool = Query(False),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = ledger.list_items(db, low_stock_only=low_stock, search=search)
    return ok([InventoryItemOut.model_validate(x).model_dump() for x in rows])


@router.post("/items")
def create_item(payload: InventoryItemIn, db: Session = Depends(get_db),
                user: User = Depends(current_user)):
    with atomic(db):
        data = InventoryItemOut.model_validate(ledger.create_item(db, payload, user.id)).model_dump()
    return ok(data, status_code=201)


@router.get("/items/{item_id}")
def get_item(item_id: int, db: Session = Depends(get_db), user: User = Depends(current_user)):
    return ok(InventoryItemOut.model_validate(ledger.get_item(db, item_id)).model_dump())


# =========================
# TRANSACTIONS
# =========================
@router.get("/transactions")
def list_transactions(
    item_id: Optional[int] = Query(None),
    transaction_type: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows, total = ledger.list_transactions(
        db,
        item_id=item_id,
        transaction_type=transaction_type,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return ok([_txn(x) for x in rows], meta=page_meta(total, page, limit))


@router.get("/transactions/{transaction_id}")
def get_transaction(transaction_id: int, db: Session = Depends(get_db),
                    user: User = Depends(current_user)):
    return ok(_txn(ledger.get_transaction(db, transaction_id)))


@router.post("/transactions")
def record_transaction(payload: StockTransactionIn, db: Session = Depends(get_db),
                       user: User = Depends(current_user)):
    with atomic(db):
        txn = ledger.record_transaction(db, payload, user.id)
        data = _txn(txn)
        data["item_quantity"] = txn.item.quantity
    return ok(data, status_code=201)


@router.put("/transactions/{transaction_id}")
def update_transaction(transaction_id: int, payload: StockTransactionPatch,
                       db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        data = _txn(ledger.update_transaction_notes(db, transaction_id, payload))
    return ok(data)


@router.delete("/transactions/{transaction_id}")
def reverse_transaction(transaction_id: int, db: Session = Depends(get_db),
                        user: User = Depends(current_user)):
    with atomic(db):
        item = ledger.reverse_transaction(db, transaction_id)
        data = {"id": transaction_id, "item_id": item.id, "item_quantity": item.quantity}
    return ok(data)
