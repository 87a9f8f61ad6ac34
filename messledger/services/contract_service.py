from __future__ import annotations

import calendar
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from messledger.core.authorization import Role, ensure_capability
from messledger.core.clock import utcnow
from messledger.core.errors import NotFoundError, ValidationError
from messledger.models.meal_contract import Income, MealContract
from messledger.services.currency import inr_to_rub, positive, to_decimal
from messledger.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

MEAL_TYPES = ("lunch", "dinner", "both")


def add_months(start: date, months: int) -> date:
    # Clamp to month end: Jan 31 + 1 month -> Feb 28/29.
    month_index = start.month - 1 + int(months)
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def create_meal_contract(
    *,
    student_ref: str,
    meal_type: str,
    duration_months: int,
    start_date: date,
    amount_inr: Any,
    rubal_rate: Any,
    role: Role | str,
    db: Optional[Session] = None,
) -> MealContract:
    """Create a contract and log its fee as income in the same transaction."""
    ensure_capability(role, "contract.write")

    if not student_ref or not str(student_ref).strip():
        raise ValidationError("student_ref is required", field="student_ref")
    if meal_type not in MEAL_TYPES:
        raise ValidationError(f"meal_type must be one of {', '.join(MEAL_TYPES)}", field="meal_type")
    months = positive(duration_months, "duration_months")
    if months != months.to_integral_value():
        raise ValidationError("duration_months must be a whole number", field="duration_months")
    months = int(months)
    if isinstance(start_date, datetime):
        start_date = start_date.date()

    inr = positive(amount_inr, "amount_inr")
    rate = positive(rubal_rate, "rubal_rate")
    rub = inr_to_rub(inr, rate)

    with unit_of_work(db) as session:
        contract = MealContract(
            student_ref=str(student_ref).strip(),
            meal_type=meal_type,
            duration_months=months,
            start_date=start_date,
            end_date=add_months(start_date, months),
            amount_inr=inr,
            rubal_rate=rate,
            amount_rub=rub,
            status="active",
        )
        session.add(contract)

        session.add(
            Income(
                amount_inr=inr,
                amount_rub=rub,
                rubal_rate=rate,
                source="Student Fee",
                description=f"Meal Contract: {meal_type} ({months} month/s)",
                student_ref=contract.student_ref,
                date=utcnow(),
            )
        )
        session.flush()
        session.refresh(contract)

        logger.info(
            "meal contract created",
            extra={"contract_id": contract.id, "student_ref": contract.student_ref, "amount_inr": str(inr)},
        )
        return contract


def record_income(
    *,
    amount_inr: Any,
    source: str = "Student Fee",
    description: Optional[str] = None,
    student_ref: Optional[str] = None,
    rubal_rate: Any = None,
    role: Role | str,
    db: Optional[Session] = None,
) -> Income:
    ensure_capability(role, "contract.write")

    inr = positive(amount_inr, "amount_inr")
    rate = positive(rubal_rate, "rubal_rate") if rubal_rate not in (None, "") else None

    income = Income(
        amount_inr=inr,
        rubal_rate=rate,
        amount_rub=inr_to_rub(inr, rate) if rate is not None else None,
        source=source or "Student Fee",
        description=description,
        student_ref=student_ref,
        date=utcnow(),
    )

    with unit_of_work(db) as session:
        session.add(income)
        session.flush()
        session.refresh(income)
        return income


def set_contract_status(contract_id: int, status: str, *, role: Role | str, db: Optional[Session] = None) -> MealContract:
    ensure_capability(role, "contract.write")
    if status not in ("active", "expired"):
        raise ValidationError("status must be 'active' or 'expired'", field="status")

    with unit_of_work(db) as session:
        contract = session.get(MealContract, int(contract_id))
        if contract is None:
            raise NotFoundError("MealContract", contract_id)
        contract.status = status
        session.flush()
        session.refresh(contract)
        return contract


def expire_contracts(*, as_of: Optional[date] = None, role: Role | str, db: Optional[Session] = None) -> int:
    """Flip active contracts whose end_date has passed. Returns how many changed."""
    ensure_capability(role, "contract.write")
    as_of = as_of or utcnow().date()

    with unit_of_work(db) as session:
        result = session.execute(
            update(MealContract)
            .where(MealContract.status == "active", MealContract.end_date < as_of)
            .values(status="expired")
            .execution_options(synchronize_session=False)
        )
        logger.info("meal contracts expired", extra={"count": int(result.rowcount or 0), "as_of": as_of.isoformat()})
        return int(result.rowcount or 0)


def count_active_contracts(db: Session, *, as_of: Optional[date] = None) -> int:
    as_of = as_of or utcnow().date()
    return int(
        db.query(func.count(MealContract.id))
        .filter(MealContract.status == "active", MealContract.end_date >= as_of)
        .scalar()
        or 0
    )


def lifetime_income_inr(db: Session) -> Decimal:
    return to_decimal(db.query(func.coalesce(func.sum(Income.amount_inr), 0)).scalar(), "amount_inr")
