"""
Stock counter for inventory items.

``InventoryItem.current_stock`` is only ever moved here, one signed delta at a
time, with a single ``UPDATE ... SET current_stock = current_stock + :delta``
so concurrent mutations of the same item never lose an update.

Invariant kept by the callers in ``inventory_service``:

    current_stock == SUM(purchases.quantity) - SUM(consumptions.quantity_used)

``recompute_stock`` folds the full log and ``reconcile_item`` rewrites the
counter from that fold when the two have drifted apart.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from messledger.core.authorization import Role, ensure_capability
from messledger.core.errors import NotFoundError
from messledger.models.inventory import InventoryConsumption, InventoryItem, InventoryPurchase
from messledger.services.currency import positive
from messledger.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _D(x) -> Decimal:
    if x is None:
        return ZERO
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


@dataclass(frozen=True)
class StockDrift:
    item_id: int
    recorded_stock: Decimal
    recomputed_stock: Decimal

    @property
    def delta(self) -> Decimal:
        return self.recomputed_stock - self.recorded_stock

    @property
    def ok(self) -> bool:
        return self.delta == 0


def adjust(db: Session, item_id: int, delta: Decimal) -> Decimal:
    """Apply a signed delta to an item's stock and return the new level."""
    delta = _D(delta)

    result = db.execute(
        update(InventoryItem)
        .where(InventoryItem.id == int(item_id))
        .values(current_stock=InventoryItem.current_stock + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("InventoryItem", item_id)

    # Reload so any copy already in this session sees the new level.
    item = db.query(InventoryItem).filter(InventoryItem.id == int(item_id)).populate_existing().one()
    new_stock = _D(item.current_stock)

    logger.info(
        "stock adjusted",
        extra={"item_id": int(item_id), "delta": str(delta), "current_stock": str(new_stock)},
    )
    if new_stock < 0:
        # Allowed, only flagged.
        logger.warning(
            "stock below zero",
            extra={"item_id": int(item_id), "current_stock": str(new_stock)},
        )

    return new_stock


def apply_purchase(db: Session, item_id: int, quantity) -> Decimal:
    return adjust(db, item_id, positive(quantity, "quantity"))


def reverse_purchase(db: Session, item_id: int, quantity) -> Decimal:
    return adjust(db, item_id, -positive(quantity, "quantity"))


def apply_consumption(db: Session, item_id: int, quantity_used) -> Decimal:
    return adjust(db, item_id, -positive(quantity_used, "quantity_used"))


def reverse_consumption(db: Session, item_id: int, quantity_used) -> Decimal:
    return adjust(db, item_id, positive(quantity_used, "quantity_used"))


def recompute_stock(db: Session, item_id: int) -> Decimal:
    """Fold the purchase/consumption log for one item."""
    purchased = _D(
        db.query(func.coalesce(func.sum(InventoryPurchase.quantity), 0))
        .filter(InventoryPurchase.item_id == int(item_id))
        .scalar()
    )
    consumed = _D(
        db.query(func.coalesce(func.sum(InventoryConsumption.quantity_used), 0))
        .filter(InventoryConsumption.item_id == int(item_id))
        .scalar()
    )
    return purchased - consumed


def stock_drift(db: Session, item_id: int) -> StockDrift:
    item = db.get(InventoryItem, int(item_id))
    if item is None:
        raise NotFoundError("InventoryItem", item_id)

    db.refresh(item)
    return StockDrift(
        item_id=int(item.id),
        recorded_stock=_D(item.current_stock),
        recomputed_stock=recompute_stock(db, item.id),
    )


def reconcile_item(item_id: int, *, role: Role | str, db: Optional[Session] = None) -> StockDrift:
    """Rewrite the counter from the log fold. Returns the drift that was corrected."""
    ensure_capability(role, "stock.reconcile")

    with unit_of_work(db) as session:
        item = (
            session.query(InventoryItem)
            .filter(InventoryItem.id == int(item_id))
            .with_for_update()
            .populate_existing()
            .first()
        )
        if item is None:
            raise NotFoundError("InventoryItem", item_id)

        drift = StockDrift(
            item_id=int(item.id),
            recorded_stock=_D(item.current_stock),
            recomputed_stock=recompute_stock(session, item.id),
        )
        if not drift.ok:
            logger.warning(
                "stock drift corrected",
                extra={
                    "item_id": drift.item_id,
                    "recorded_stock": str(drift.recorded_stock),
                    "recomputed_stock": str(drift.recomputed_stock),
                },
            )
            item.current_stock = drift.recomputed_stock
            session.flush()

        return drift
