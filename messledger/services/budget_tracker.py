from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from messledger.core.clock import utcnow
from messledger.models.inventory import InventoryPurchase
from messledger.models.remittance import Remittance
from messledger.services.currency import to_decimal
from messledger.services.remittance_ledger import sum_confirmed


@dataclass(frozen=True)
class BudgetSnapshot:
    grocery_remitted_rub: Decimal
    total_purchased_rub: Decimal
    # Purchase cost keyed by the purpose of the remittance each purchase links to.
    purchased_by_linked_purpose: dict[str, Decimal] = field(default_factory=dict)

    @property
    def procurement_gap_rub(self) -> Decimal:
        return self.grocery_remitted_rub - self.total_purchased_rub


def total_purchased(db: Session, *, since: Optional[datetime] = None) -> Decimal:
    q = db.query(func.coalesce(func.sum(InventoryPurchase.price_rub), 0))
    if since is not None:
        q = q.filter(InventoryPurchase.date >= since)
    return to_decimal(q.scalar(), "price_rub")


def purchased_by_linked_purpose(db: Session) -> dict[str, Decimal]:
    rows = (
        db.query(
            Remittance.purpose.label("purpose"),
            func.coalesce(func.sum(InventoryPurchase.price_rub), 0).label("total_rub"),
        )
        .join(Remittance, Remittance.id == InventoryPurchase.remittance_id)
        .group_by(Remittance.purpose)
        .order_by(Remittance.purpose.asc())
        .all()
    )
    return {r.purpose: to_decimal(r.total_rub, "total_rub") for r in rows}


def budget_snapshot(db: Session) -> BudgetSnapshot:
    """
    Recomputed on every call:

      grocery_remitted = confirmed Groceries remittances
      total_purchased  = every purchase, whatever purpose its remittance has
      procurement_gap  = grocery_remitted - total_purchased
    """
    return BudgetSnapshot(
        grocery_remitted_rub=sum_confirmed(db, "Groceries"),
        total_purchased_rub=total_purchased(db),
        purchased_by_linked_purpose=purchased_by_linked_purpose(db),
    )


def rolling_purchase_cost(db: Session, *, days: int, now: Optional[datetime] = None) -> Decimal:
    now = now or utcnow()
    return total_purchased(db, since=now - timedelta(days=int(days)))
