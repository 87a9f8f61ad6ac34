"""
Purchase and consumption logs, each written together with its stock delta.

Every function here is one composite mutation: the log row and the
``stock_ledger`` adjustment share a transaction. Input is validated before
anything is written. If the log write lands but the stock step fails,
``ReconciliationError`` is raised and neither write may be committed.

If db is provided, functions will NOT commit/close/rollback. Caller owns the
transaction and must discard it after a ``ReconciliationError``.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from messledger.core.authorization import Role, ensure_capability
from messledger.core.clock import as_naive_utc, utcnow
from messledger.core.errors import NotFoundError, ReconciliationError, StateError, ValidationError
from messledger.models.inventory import InventoryConsumption, InventoryItem, InventoryPurchase
from messledger.models.remittance import Remittance
from messledger.services import stock_ledger
from messledger.services.currency import positive, to_decimal
from messledger.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

PURCHASE_FIELDS = frozenset(
    {"item_id", "quantity", "price_rub", "invoice_image", "purchased_by", "remittance_id", "date"}
)
CONSUMPTION_FIELDS = frozenset({"item_id", "quantity_used", "logged_by", "notes", "date"})
ITEM_FIELDS = frozenset({"name", "unit", "minimum_threshold", "average_daily_usage"})


def _required_text(value: Any, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    return str(value).strip()


def _non_negative(value: Any, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative", field=field)
    return amount


def _reject_unknown(changes: Mapping[str, Any], allowed: frozenset) -> None:
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise ValidationError(f"Unsupported fields: {', '.join(unknown)}", fields=unknown)


def _item_ref(value: Any) -> int:
    if value is None:
        raise ValidationError("item_id is required", field="item_id")
    ref = to_decimal(value, "item_id")
    if not ref.is_finite() or ref != ref.to_integral_value():
        raise ValidationError("item_id must be an integer", field="item_id")
    return int(ref)


def _get_item(db: Session, item_id: int) -> InventoryItem:
    item = db.get(InventoryItem, int(item_id))
    if item is None:
        raise NotFoundError("InventoryItem", item_id)
    return item


def _require_remittance(db: Session, remittance_id: Any) -> Remittance:
    if remittance_id is None or remittance_id == "":
        raise ValidationError("A remittance link is required for purchases", field="remittance_id")
    remittance = db.get(Remittance, int(remittance_id))
    if remittance is None:
        raise NotFoundError("Remittance", remittance_id)
    return remittance


def _stock_step(db: Session, step: str, fn: Callable[..., Decimal], *args) -> Decimal:
    # Rollback belongs to unit_of_work or the session owner.
    try:
        return fn(db, *args)
    except OperationalError:
        raise
    except (NotFoundError, SQLAlchemyError) as exc:
        logger.error("stock reconciliation failed", extra={"step": step}, exc_info=True)
        raise ReconciliationError(
            f"Stock update failed during {step}; the change was not applied",
            step=step,
            cause=exc,
        ) from exc


# ---------- Items ----------

def create_item(
    *,
    name: str,
    unit: str,
    minimum_threshold: Any = 5,
    average_daily_usage: Any = 0,
    role: Role | str,
    db: Optional[Session] = None,
) -> InventoryItem:
    ensure_capability(role, "inventory.write")

    item = InventoryItem(
        name=_required_text(name, "name"),
        unit=_required_text(unit, "unit"),
        current_stock=Decimal("0"),
        minimum_threshold=_non_negative(minimum_threshold, "minimum_threshold"),
        average_daily_usage=_non_negative(average_daily_usage, "average_daily_usage"),
    )

    with unit_of_work(db) as session:
        session.add(item)
        session.flush()
        session.refresh(item)
        return item


def update_item(item_id: int, changes: Mapping[str, Any], *, role: Role | str, db: Optional[Session] = None) -> InventoryItem:
    """Descriptive fields only; stock moves through purchases and consumptions."""
    ensure_capability(role, "inventory.write")
    if "current_stock" in changes:
        raise ValidationError("current_stock is derived from purchase and consumption logs", field="current_stock")
    _reject_unknown(changes, ITEM_FIELDS)

    with unit_of_work(db) as session:
        item = _get_item(session, item_id)

        if "name" in changes:
            item.name = _required_text(changes["name"], "name")
        if "unit" in changes:
            item.unit = _required_text(changes["unit"], "unit")
        if "minimum_threshold" in changes:
            item.minimum_threshold = _non_negative(changes["minimum_threshold"], "minimum_threshold")
        if "average_daily_usage" in changes:
            item.average_daily_usage = _non_negative(changes["average_daily_usage"], "average_daily_usage")

        session.flush()
        session.refresh(item)
        return item


def delete_item(item_id: int, *, role: Role | str, db: Optional[Session] = None) -> None:
    ensure_capability(role, "inventory.write")

    with unit_of_work(db) as session:
        item = _get_item(session, item_id)

        purchases = session.query(InventoryPurchase.id).filter(InventoryPurchase.item_id == item.id).count()
        consumptions = (
            session.query(InventoryConsumption.id).filter(InventoryConsumption.item_id == item.id).count()
        )
        if purchases or consumptions:
            raise StateError(
                "Inventory item still has purchase or consumption logs",
                item_id=item.id,
                purchases=purchases,
                consumptions=consumptions,
            )

        session.delete(item)
        session.flush()


# ---------- Purchases ----------

def create_purchase(
    *,
    item_id: int,
    quantity: Any,
    price_rub: Any,
    invoice_image: Optional[str],
    purchased_by: str,
    remittance_id: Optional[int],
    date: Optional[datetime] = None,
    role: Role | str,
    db: Optional[Session] = None,
) -> InventoryPurchase:
    ensure_capability(role, "inventory.write")

    qty = positive(quantity, "quantity")
    price = positive(price_rub, "price_rub")
    invoice = _required_text(invoice_image, "invoice_image")
    buyer = _required_text(purchased_by, "purchased_by")

    with unit_of_work(db) as session:
        _get_item(session, item_id)
        remittance = _require_remittance(session, remittance_id)

        purchase = InventoryPurchase(
            item_id=int(item_id),
            remittance_id=remittance.id,
            quantity=qty,
            price_rub=price,
            invoice_image=invoice,
            purchased_by=buyer,
            date=as_naive_utc(date) or utcnow(),
        )
        session.add(purchase)
        session.flush()

        _stock_step(session, "purchase.create", stock_ledger.apply_purchase, purchase.item_id, qty)

        logger.info(
            "purchase logged",
            extra={
                "purchase_id": purchase.id,
                "item_id": purchase.item_id,
                "quantity": str(qty),
                "price_rub": str(price),
                "remittance_id": remittance.id,
            },
        )
        session.refresh(purchase)
        return purchase


def update_purchase(
    purchase_id: int,
    changes: Mapping[str, Any],
    *,
    role: Role | str,
    db: Optional[Session] = None,
) -> InventoryPurchase:
    ensure_capability(role, "inventory.write")
    _reject_unknown(changes, PURCHASE_FIELDS)

    new_qty = positive(changes["quantity"], "quantity") if "quantity" in changes else None
    new_price = positive(changes["price_rub"], "price_rub") if "price_rub" in changes else None

    with unit_of_work(db) as session:
        # Row lock keeps "read old qty, apply new - old" atomic with the counter.
        purchase = (
            session.query(InventoryPurchase)
            .filter(InventoryPurchase.id == int(purchase_id))
            .with_for_update()
            .populate_existing()
            .first()
        )
        if purchase is None:
            raise NotFoundError("InventoryPurchase", purchase_id)

        old_item_id = int(purchase.item_id)
        old_qty = to_decimal(purchase.quantity)

        new_item_id = _item_ref(changes["item_id"]) if "item_id" in changes else old_item_id
        if new_item_id != old_item_id:
            _get_item(session, new_item_id)
        if "remittance_id" in changes:
            purchase.remittance_id = _require_remittance(session, changes["remittance_id"]).id
        if "invoice_image" in changes:
            purchase.invoice_image = _required_text(changes["invoice_image"], "invoice_image")
        if "purchased_by" in changes:
            purchase.purchased_by = _required_text(changes["purchased_by"], "purchased_by")
        if "date" in changes and changes["date"] is not None:
            purchase.date = as_naive_utc(changes["date"])
        if new_price is not None:
            purchase.price_rub = new_price

        qty = new_qty if new_qty is not None else old_qty
        purchase.item_id = new_item_id
        purchase.quantity = qty
        session.flush()

        if new_item_id != old_item_id:
            _stock_step(session, "purchase.update", stock_ledger.reverse_purchase, old_item_id, old_qty)
            _stock_step(session, "purchase.update", stock_ledger.apply_purchase, new_item_id, qty)
        elif qty != old_qty:
            _stock_step(session, "purchase.update", stock_ledger.adjust, old_item_id, qty - old_qty)

        session.refresh(purchase)
        return purchase


def delete_purchase(purchase_id: int, *, role: Role | str, db: Optional[Session] = None) -> None:
    ensure_capability(role, "inventory.write")

    with unit_of_work(db) as session:
        purchase = (
            session.query(InventoryPurchase)
            .filter(InventoryPurchase.id == int(purchase_id))
            .with_for_update()
            .populate_existing()
            .first()
        )
        if purchase is None:
            raise NotFoundError("InventoryPurchase", purchase_id)

        item_id = int(purchase.item_id)
        qty = to_decimal(purchase.quantity)

        session.delete(purchase)
        session.flush()

        _stock_step(session, "purchase.delete", stock_ledger.reverse_purchase, item_id, qty)
        logger.info("purchase deleted", extra={"purchase_id": int(purchase_id), "item_id": item_id, "quantity": str(qty)})


# ---------- Consumptions ----------

def create_consumption(
    *,
    item_id: int,
    quantity_used: Any,
    logged_by: str,
    notes: Optional[str] = None,
    date: Optional[datetime] = None,
    role: Role | str,
    db: Optional[Session] = None,
) -> InventoryConsumption:
    ensure_capability(role, "consumption.write")

    qty = positive(quantity_used, "quantity_used")
    logged_by_name = _required_text(logged_by, "logged_by")

    with unit_of_work(db) as session:
        _get_item(session, item_id)

        consumption = InventoryConsumption(
            item_id=int(item_id),
            quantity_used=qty,
            logged_by=logged_by_name,
            notes=notes,
            date=as_naive_utc(date) or utcnow(),
        )
        session.add(consumption)
        session.flush()

        _stock_step(session, "consumption.create", stock_ledger.apply_consumption, consumption.item_id, qty)

        logger.info(
            "consumption logged",
            extra={"consumption_id": consumption.id, "item_id": consumption.item_id, "quantity_used": str(qty)},
        )
        session.refresh(consumption)
        return consumption


def update_consumption(
    consumption_id: int,
    changes: Mapping[str, Any],
    *,
    role: Role | str,
    db: Optional[Session] = None,
) -> InventoryConsumption:
    ensure_capability(role, "consumption.write")
    _reject_unknown(changes, CONSUMPTION_FIELDS)

    new_qty = positive(changes["quantity_used"], "quantity_used") if "quantity_used" in changes else None

    with unit_of_work(db) as session:
        consumption = (
            session.query(InventoryConsumption)
            .filter(InventoryConsumption.id == int(consumption_id))
            .with_for_update()
            .populate_existing()
            .first()
        )
        if consumption is None:
            raise NotFoundError("InventoryConsumption", consumption_id)

        old_item_id = int(consumption.item_id)
        old_qty = to_decimal(consumption.quantity_used)

        new_item_id = _item_ref(changes["item_id"]) if "item_id" in changes else old_item_id
        if new_item_id != old_item_id:
            _get_item(session, new_item_id)
        if "logged_by" in changes:
            consumption.logged_by = _required_text(changes["logged_by"], "logged_by")
        if "notes" in changes:
            consumption.notes = changes["notes"]
        if "date" in changes and changes["date"] is not None:
            consumption.date = as_naive_utc(changes["date"])

        qty = new_qty if new_qty is not None else old_qty
        consumption.item_id = new_item_id
        consumption.quantity_used = qty
        session.flush()

        if new_item_id != old_item_id:
            _stock_step(session, "consumption.update", stock_ledger.reverse_consumption, old_item_id, old_qty)
            _stock_step(session, "consumption.update", stock_ledger.apply_consumption, new_item_id, qty)
        elif qty != old_qty:
            # Used more than logged before => stock goes down by the difference.
            _stock_step(session, "consumption.update", stock_ledger.adjust, old_item_id, old_qty - qty)

        session.refresh(consumption)
        return consumption


def delete_consumption(consumption_id: int, *, role: Role | str, db: Optional[Session] = None) -> None:
    ensure_capability(role, "consumption.write")

    with unit_of_work(db) as session:
        consumption = (
            session.query(InventoryConsumption)
            .filter(InventoryConsumption.id == int(consumption_id))
            .with_for_update()
            .populate_existing()
            .first()
        )
        if consumption is None:
            raise NotFoundError("InventoryConsumption", consumption_id)

        item_id = int(consumption.item_id)
        qty = to_decimal(consumption.quantity_used)

        session.delete(consumption)
        session.flush()

        _stock_step(session, "consumption.delete", stock_ledger.reverse_consumption, item_id, qty)
        logger.info(
            "consumption deleted",
            extra={"consumption_id": int(consumption_id), "item_id": item_id, "quantity_used": str(qty)},
        )
