from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session, joinedload

from messledger.core import config
from messledger.core.clock import utcnow
from messledger.models.inventory import InventoryConsumption, InventoryItem, InventoryPurchase
from messledger.models.remittance import Remittance
from messledger.services import alert_engine
from messledger.services.budget_tracker import budget_snapshot, rolling_purchase_cost
from messledger.services.contract_service import count_active_contracts, lifetime_income_inr
from messledger.services.currency import to_decimal
from messledger.services.payroll_ledger import payroll_totals
from messledger.services.remittance_ledger import confirmed_totals


def stock_levels(db: Session) -> list[alert_engine.StockLevel]:
    rows = db.query(InventoryItem).order_by(InventoryItem.name.asc(), InventoryItem.id.asc()).all()
    return [
        alert_engine.StockLevel(
            item_id=int(r.id),
            name=r.name,
            current_stock=to_decimal(r.current_stock, "current_stock"),
            minimum_threshold=to_decimal(r.minimum_threshold, "minimum_threshold"),
        )
        for r in rows
    ]


def recent_activity(db: Session, *, per_source: Optional[int] = None, limit: Optional[int] = None) -> list[dict[str, Any]]:
    """Latest remittances, purchases and consumptions merged newest-first."""
    per_source = per_source or config.RECENT_ACTIVITY_PER_SOURCE
    limit = limit or config.RECENT_ACTIVITY_LIMIT

    remittances = (
        db.query(Remittance).order_by(Remittance.date.desc(), Remittance.id.desc()).limit(per_source).all()
    )
    purchases = (
        db.query(InventoryPurchase)
        .options(joinedload(InventoryPurchase.item))
        .order_by(InventoryPurchase.date.desc(), InventoryPurchase.id.desc())
        .limit(per_source)
        .all()
    )
    consumptions = (
        db.query(InventoryConsumption)
        .options(joinedload(InventoryConsumption.item))
        .order_by(InventoryConsumption.date.desc(), InventoryConsumption.id.desc())
        .limit(per_source)
        .all()
    )

    feed: list[dict[str, Any]] = []
    feed.extend(
        {
            "type": "remittance",
            "id": r.id,
            "date": r.date,
            "title": f"Sent INR {r.amount_inr} ({r.purpose})",
        }
        for r in remittances
    )
    feed.extend(
        {
            "type": "purchase",
            "id": p.id,
            "date": p.date,
            "title": f"Bought {p.item.name if p.item else 'unknown item'} for {p.price_rub} RUB",
        }
        for p in purchases
    )
    feed.extend(
        {
            "type": "consumption",
            "id": c.id,
            "date": c.date,
            "title": f"Used {c.quantity_used} of {c.item.name if c.item else 'unknown item'}",
        }
        for c in consumptions
    )

    feed.sort(key=lambda a: a["date"], reverse=True)
    return feed[:limit]


def dashboard(db: Session, *, now: Optional[datetime] = None) -> dict[str, Any]:
    """
    Fresh aggregation on every call. The individual sums are independent
    reads; no cross-aggregate snapshot consistency is promised.
    """
    now = now or utcnow()

    income_inr = lifetime_income_inr(db)
    remitted = confirmed_totals(db)
    budget = budget_snapshot(db)
    payroll = payroll_totals(db)
    active_contracts = count_active_contracts(db, as_of=now.date())
    stock = stock_levels(db)
    window_cost = rolling_purchase_cost(db, days=config.COST_WINDOW_DAYS, now=now)

    per_day = alert_engine.cost_per_student_per_day(window_cost, active_contracts)
    alerts = alert_engine.derive_alerts(stock, budget, payroll, active_contracts, window_cost)

    return {
        "kpis": {
            "total_income_inr": income_inr,
            "total_remittance_sent_inr": remitted["total_inr"],
            "total_remittance_received_rub": remitted["total_rub"],
            "total_grocery_purchases_rub": budget.total_purchased_rub,
            "total_salary_paid_rub": payroll.total_paid_rub,
            "total_salary_pending_rub": payroll.total_pending_rub,
            "active_meal_students": active_contracts,
        },
        "metrics": {
            "grocery_remitted_rub": budget.grocery_remitted_rub,
            "procurement_gap_rub": budget.procurement_gap_rub,
            "cost_per_student_per_day": per_day.quantize(Decimal("1"), rounding=ROUND_HALF_UP),
            "thirty_day_purchase_cost_rub": window_cost,
            "low_stock_count": len(alert_engine.low_stock(stock)),
        },
        "alerts": [
            {"level": a.level, "code": a.code, "message": a.message}
            for a in alerts
        ],
        "recent_activity": recent_activity(db),
    }
