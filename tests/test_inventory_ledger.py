from decimal import Decimal

import pytest
from pydantic import ValidationError

from hmis.core.config import settings
from hmis.core.errors import InsufficientStock, ItemNotFound, TransactionNotFound, ValidationFailed
from hmis.db.session import atomic
from hmis.models.inventory import InventoryItem, InventoryTransaction
from hmis.schemas.inventory import (
    InventoryItemIn,
    InventoryItemOut,
    StockTransactionIn,
    StockTransactionPatch,
)
from hmis.services import inventory_ledger as ledger


def _record(db, **kw):
    with atomic(db):
        txn = ledger.record_transaction(db, StockTransactionIn(**kw))
        return txn.id


def _qty(db, item_id):
    db.expire_all()
    return db.get(InventoryItem, item_id).quantity


def test_issue_then_reverse_restores_quantity(db, make_item):
    item = make_item(quantity=100)

    txn_id = _record(db, item_id=item.id, transaction_type="issue", quantity=30)
    assert _qty(db, item.id) == 70
    txn = db.get(InventoryTransaction, txn_id)
    assert txn.quantity == -30
    assert txn.transaction_number == "TXN-000001"

    with atomic(db):
        ledger.reverse_transaction(db, txn_id)
    assert _qty(db, item.id) == 100
    assert db.get(InventoryTransaction, txn_id) is None


def test_reason_maps_to_type_and_sign(db, make_item):
    item = make_item(quantity=10)

    purchase = _record(db, item_id=item.id, reason="purchase", quantity=5, unit_price="2.50")
    damage = _record(db, item_id=item.id, reason="damage", quantity=3)
    fix = _record(db, item_id=item.id, reason="correction", quantity=4, adjustment_type="add")

    rows = {t.id: t for t in db.query(InventoryTransaction).all()}
    assert (rows[purchase].transaction_type, rows[purchase].quantity) == ("receipt", 5)
    assert rows[purchase].total_value == Decimal("12.50")
    assert (rows[damage].transaction_type, rows[damage].quantity) == ("wastage", -3)
    assert (rows[fix].transaction_type, rows[fix].quantity) == ("adjustment", 4)
    assert _qty(db, item.id) == 16
    assert rows[fix].transaction_number == "TXN-000003"


def test_adjustment_needs_direction(db, make_item):
    item = make_item()
    with pytest.raises(ValidationFailed):
        _record(db, item_id=item.id, transaction_type="adjustment", quantity=2)
    with pytest.raises(ValidationFailed):
        _record(db, item_id=item.id, transaction_type="receipt", quantity=0)
    with pytest.raises(ValidationFailed):
        _record(db, item_id=item.id, transaction_type="gift", quantity=1)
    assert db.query(InventoryTransaction).count() == 0
    assert _qty(db, item.id) == 100


def test_unknown_item_writes_nothing(db):
    with pytest.raises(ItemNotFound):
        _record(db, item_id=777, transaction_type="receipt", quantity=5)
    assert db.query(InventoryTransaction).count() == 0


def test_stock_cannot_go_negative(db, make_item):
    item = make_item(quantity=5)
    with pytest.raises(InsufficientStock):
        _record(db, item_id=item.id, transaction_type="issue", quantity=6)
    assert _qty(db, item.id) == 5
    assert db.query(InventoryTransaction).count() == 0


def test_reverse_missing_transaction(db):
    with pytest.raises(TransactionNotFound):
        with atomic(db):
            ledger.reverse_transaction(db, 31337)


def test_only_notes_and_references_are_editable(db, make_item):
    item = make_item()
    txn_id = _record(db, item_id=item.id, transaction_type="receipt", quantity=8,
                     reference_number="GRN-1", notes="first delivery")

    with atomic(db):
        ledger.update_transaction_notes(db, txn_id, StockTransactionPatch(notes="checked"))
    txn = db.get(InventoryTransaction, txn_id)
    assert txn.notes == "checked"
    assert txn.reference_number == "GRN-1"
    assert txn.quantity == 8

    with pytest.raises(ValidationError):
        StockTransactionPatch(quantity=80)


def test_list_filters_and_low_stock(db, make_item):
    low = make_item(item_code="ORS", name="ORS sachet", quantity=12, reorder_level=10)
    high = make_item(item_code="AMX", name="Amoxicillin", quantity=500, reorder_level=50)
    _record(db, item_id=low.id, transaction_type="issue", quantity=4)
    _record(db, item_id=high.id, transaction_type="receipt", quantity=20)

    rows, total = ledger.list_transactions(db, item_id=low.id)
    assert total == 1
    assert rows[0].item_name == "ORS sachet"

    rows, total = ledger.list_transactions(db, transaction_type="receipt")
    assert total == 1
    assert rows[0].item_id == high.id

    assert [i.item_code for i in ledger.list_items(db, low_stock_only=True)] == ["ORS"]


def _ledger_total(db, item_id):
    db.expire_all()
    return sum(t.quantity for t in
               db.query(InventoryTransaction).filter(InventoryTransaction.item_id == item_id))


def test_new_item_stock_is_booked_as_opening_receipt(db):
    with atomic(db):
        item = ledger.create_item(db, InventoryItemIn(item_code="GLV-M", name="Gloves (M)",
                                                      quantity=50, reorder_level=20))
        item_id = item.id

    txn = db.query(InventoryTransaction).filter(InventoryTransaction.item_id == item_id).one()
    assert (txn.transaction_type, txn.quantity, txn.reason) == ("receipt", 50, "opening stock")
    assert _qty(db, item_id) == 50
    assert _ledger_total(db, item_id) == _qty(db, item_id)

    _record(db, item_id=item_id, transaction_type="issue", quantity=12)
    assert _ledger_total(db, item_id) == _qty(db, item_id) == 38


def test_new_item_without_stock_has_no_ledger_rows(db):
    with atomic(db):
        item_id = ledger.create_item(db, InventoryItemIn(item_code="SYR-5", name="Syringe 5ml")).id
    assert _qty(db, item_id) == 0
    assert db.query(InventoryTransaction).count() == 0


def test_negative_stock_when_allowed_reads_back(db, make_item, monkeypatch):
    monkeypatch.setattr(settings, "INVENTORY_ALLOW_NEGATIVE_STOCK", True)
    item = make_item(quantity=5)

    _record(db, item_id=item.id, transaction_type="issue", quantity=10)
    assert _qty(db, item.id) == -5

    out = InventoryItemOut.model_validate(db.get(InventoryItem, item.id))
    assert out.quantity == -5
    assert out.is_low_stock is True
