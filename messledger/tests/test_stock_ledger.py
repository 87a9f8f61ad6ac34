from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from messledger.core.errors import (
    NotFoundError,
    PermissionDeniedError,
    ReconciliationError,
    StateError,
    ValidationError,
)
from messledger.database import SessionLocal
from messledger.models.inventory import InventoryConsumption, InventoryItem, InventoryPurchase
from messledger.services import inventory_service, remittance_ledger, stock_ledger


def _remittance_id() -> int:
    row = remittance_ledger.create_remittance(
        amount_inr=1000,
        rubal_rate=1,
        sent_to="Kitchen",
        purpose="Groceries",
        proof_image_url="proof://r1",
        role="admin",
    )
    return row.id


def _item(name: str = "Rice") -> int:
    return inventory_service.create_item(name=name, unit="kg", role="admin").id


def _purchase(item_id: int, remittance_id: int, quantity, price="100"):
    return inventory_service.create_purchase(
        item_id=item_id,
        quantity=quantity,
        price_rub=price,
        invoice_image="invoice://x",
        purchased_by="Ivan",
        remittance_id=remittance_id,
        role="manager",
    )


def _consume(item_id: int, quantity):
    return inventory_service.create_consumption(
        item_id=item_id, quantity_used=quantity, logged_by="Cook", role="cook"
    )


def _stock(item_id: int) -> Decimal:
    db = SessionLocal()
    try:
        return Decimal(str(db.get(InventoryItem, item_id).current_stock))
    finally:
        db.close()


def _drift(item_id: int) -> stock_ledger.StockDrift:
    db = SessionLocal()
    try:
        return stock_ledger.stock_drift(db, item_id)
    finally:
        db.close()


def test_counter_matches_log_fold_after_mixed_mutations():
    rid = _remittance_id()
    item_id = _item()

    p1 = _purchase(item_id, rid, "10")
    _purchase(item_id, rid, "4")
    c1 = _consume(item_id, "3")
    _consume(item_id, "2")

    inventory_service.update_purchase(p1.id, {"quantity": "7"}, role="manager")
    inventory_service.update_consumption(c1.id, {"quantity_used": "5"}, role="cook")

    # 7 + 4 - 5 - 2
    assert _stock(item_id) == Decimal("4")
    drift = _drift(item_id)
    assert drift.ok
    assert drift.recomputed_stock == Decimal("4")


def test_delete_then_recreate_leaves_stock_unchanged():
    rid = _remittance_id()
    item_id = _item()
    _purchase(item_id, rid, "6")
    before = _stock(item_id)

    doomed = _purchase(item_id, rid, "2.5")
    inventory_service.delete_purchase(doomed.id, role="manager")
    assert _stock(item_id) == before

    used = _consume(item_id, "1.5")
    inventory_service.delete_consumption(used.id, role="cook")
    assert _stock(item_id) == before
    assert _drift(item_id).ok


def test_moving_purchase_to_another_item_reverses_and_reapplies():
    rid = _remittance_id()
    rice = _item("Rice")
    flour = _item("Flour")

    purchase = _purchase(rice, rid, "8")
    inventory_service.update_purchase(purchase.id, {"item_id": flour, "quantity": "3"}, role="manager")

    assert _stock(rice) == Decimal("0")
    assert _stock(flour) == Decimal("3")
    assert _drift(rice).ok and _drift(flour).ok


def test_consumption_may_push_stock_negative():
    item_id = _item()
    _consume(item_id, "4")

    assert _stock(item_id) == Decimal("-4")
    assert _drift(item_id).ok


def test_adjust_unknown_item_raises_not_found():
    db = SessionLocal()
    try:
        with pytest.raises(NotFoundError):
            stock_ledger.adjust(db, 987654, Decimal("1"))
    finally:
        db.close()


def test_reconcile_rewrites_drifted_counter():
    rid = _remittance_id()
    item_id = _item()
    _purchase(item_id, rid, "5")

    db = SessionLocal()
    try:
        db.query(InventoryItem).filter(InventoryItem.id == item_id).update(
            {InventoryItem.current_stock: Decimal("9")}, synchronize_session=False
        )
        db.commit()
    finally:
        db.close()

    drift = stock_ledger.reconcile_item(item_id, role="admin")
    assert drift.recorded_stock == Decimal("9")
    assert drift.recomputed_stock == Decimal("5")
    assert drift.delta == Decimal("-4")
    assert _stock(item_id) == Decimal("5")


def test_reconcile_requires_admin():
    item_id = _item()
    with pytest.raises(PermissionDeniedError):
        stock_ledger.reconcile_item(item_id, role="manager")


def test_item_with_logs_cannot_be_deleted():
    item_id = _item()
    _consume(item_id, "1")

    with pytest.raises(StateError):
        inventory_service.delete_item(item_id, role="admin")


def test_stock_is_not_editable_directly():
    item_id = _item()
    with pytest.raises(ValidationError):
        inventory_service.update_item(item_id, {"current_stock": "50"}, role="admin")
    assert _stock(item_id) == Decimal("0")


def _count(model) -> int:
    db = SessionLocal()
    try:
        return db.query(model).count()
    finally:
        db.close()


def _broken_step(db, item_id, quantity):
    raise SQLAlchemyError("counter write failed")


def test_failed_reversal_keeps_purchase_and_stock(monkeypatch):
    rid = _remittance_id()
    item_id = _item()
    purchase = _purchase(item_id, rid, "3")

    monkeypatch.setattr(stock_ledger, "reverse_purchase", _broken_step)
    with pytest.raises(ReconciliationError) as excinfo:
        inventory_service.delete_purchase(purchase.id, role="manager")

    assert excinfo.value.step == "purchase.delete"
    assert _count(InventoryPurchase) == 1
    assert _stock(item_id) == Decimal("3")
    assert _drift(item_id).ok


def test_failed_consumption_step_leaves_no_log(monkeypatch):
    rid = _remittance_id()
    item_id = _item()
    _purchase(item_id, rid, "5")

    monkeypatch.setattr(stock_ledger, "apply_consumption", _broken_step)
    with pytest.raises(ReconciliationError) as excinfo:
        _consume(item_id, "2")

    assert excinfo.value.code == "RECONCILIATION_FAILED"
    assert excinfo.value.step == "consumption.create"
    assert _count(InventoryConsumption) == 0
    assert _stock(item_id) == Decimal("5")


def test_failed_step_on_caller_session_is_left_to_the_caller(monkeypatch):
    rid = _remittance_id()
    item_id = _item()
    purchase = _purchase(item_id, rid, "3")

    monkeypatch.setattr(stock_ledger, "reverse_purchase", _broken_step)
    db = SessionLocal()
    try:
        with pytest.raises(ReconciliationError):
            inventory_service.delete_purchase(purchase.id, role="manager", db=db)
        assert db.in_transaction()
        db.rollback()
    finally:
        db.close()

    assert _count(InventoryPurchase) == 1
    assert _stock(item_id) == Decimal("3")
