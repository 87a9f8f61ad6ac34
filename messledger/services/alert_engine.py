"""
Alert derivation over current ledger state.

``derive_alerts`` is pure: it takes snapshots already read from the store and
returns a fresh, ranked list on every call. Nothing is suppressed or
remembered between reads.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from messledger.core import config
from messledger.services.budget_tracker import BudgetSnapshot
from messledger.services.payroll_ledger import PayrollTotals

DANGER = "danger"
WARNING = "warning"

_LEVEL_RANK = {DANGER: 0, WARNING: 1}


@dataclass(frozen=True)
class StockLevel:
    item_id: int
    name: str
    current_stock: Decimal
    minimum_threshold: Decimal

    @property
    def is_low(self) -> bool:
        return self.current_stock < self.minimum_threshold


@dataclass(frozen=True)
class Alert:
    level: str
    code: str
    message: str
    value: Optional[Decimal] = None


def low_stock(stock: Iterable[StockLevel]) -> list[StockLevel]:
    return [s for s in stock if s.is_low]


def cost_per_student_per_day(thirty_day_cost_rub: Decimal, active_contracts: int) -> Decimal:
    if active_contracts <= 0:
        return Decimal("0")
    return Decimal(thirty_day_cost_rub) / Decimal(config.COST_WINDOW_DAYS) / Decimal(active_contracts)


def _whole(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def derive_alerts(
    stock: Iterable[StockLevel],
    budget: BudgetSnapshot,
    payroll: Optional[PayrollTotals],
    active_contracts: int,
    thirty_day_cost_rub: Decimal,
    *,
    gap_warning_rub: Optional[Decimal] = None,
    cost_warning_rub: Optional[Decimal] = None,
) -> list[Alert]:
    gap_warning_rub = config.procurement_gap_warning_rub() if gap_warning_rub is None else gap_warning_rub
    cost_warning_rub = config.cost_per_student_day_warning_rub() if cost_warning_rub is None else cost_warning_rub

    alerts: list[Alert] = []

    low = low_stock(stock)
    if low:
        alerts.append(
            Alert(
                level=DANGER,
                code="LOW_STOCK",
                message=f"{len(low)} items are below minimum stock thresholds.",
                value=Decimal(len(low)),
            )
        )

    gap = budget.procurement_gap_rub
    if gap > gap_warning_rub:
        alerts.append(
            Alert(
                level=WARNING,
                code="UNSPENT_GROCERY_CASH",
                message=f"High unspent grocery cash: {gap} RUB remains un-invoiced.",
                value=gap,
            )
        )
    if gap < 0:
        alerts.append(
            Alert(
                level=DANGER,
                code="PURCHASES_EXCEED_REMITTANCES",
                message=f"Fraud alert: Recorded purchases exceed sent remittances by {abs(gap)} RUB.",
                value=gap,
            )
        )

    per_day = cost_per_student_per_day(thirty_day_cost_rub, active_contracts)
    if per_day > cost_warning_rub:
        alerts.append(
            Alert(
                level=WARNING,
                code="HIGH_COST_PER_STUDENT",
                message=(
                    f"High cost anomaly: {_whole(per_day)} RUB per student per day "
                    f"over last {config.COST_WINDOW_DAYS} days."
                ),
                value=per_day,
            )
        )

    if payroll is not None and payroll.overpaid_staff > 0:
        alerts.append(
            Alert(
                level=WARNING,
                code="STAFF_OVERPAID",
                message=f"{payroll.overpaid_staff} staff ledgers are paid beyond their monthly salary.",
                value=Decimal(payroll.overpaid_staff),
            )
        )

    # sorted() is stable, so rule order holds within a level.
    return sorted(alerts, key=lambda a: _LEVEL_RANK[a.level])
