"""
Per-staff payroll bookkeeping.

Each payment appends a ``StaffLedgerEntry`` and increments the matching
cumulative column in the same transaction:

    salary_paid      -> salary_paid_rub
    advance_issued   -> advances_rub
    setup_recovered  -> setup_cost_paid_rub

    pending_balance      = monthly_salary - (salary_paid + advances + setup_cost_paid)
    setup_owed_remaining = setup_cost_owed - setup_cost_paid

History is never edited or deleted row by row. A mistaken entry is corrected
with ``compensate_entry``, which appends the negated amount pointing back at
the original; each entry can be compensated once.

If db is provided, functions will NOT commit/close. Caller owns the transaction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import delete, func, update
from sqlalchemy.orm import Session

from messledger.core.authorization import Role, ensure_capability
from messledger.core.clock import utcnow
from messledger.core.errors import NotFoundError, StateError, ValidationError
from messledger.models.staff_ledger import ENTRY_TYPES, StaffLedger, StaffLedgerEntry
from messledger.services.currency import positive, to_decimal
from messledger.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

CUMULATIVE_COLUMN = {
    "salary_paid": "salary_paid_rub",
    "advance_issued": "advances_rub",
    "setup_recovered": "setup_cost_paid_rub",
}


@dataclass(frozen=True)
class PayrollTotals:
    staff_count: int
    total_paid_rub: Decimal
    total_advances_rub: Decimal
    total_setup_recovered_rub: Decimal
    total_pending_rub: Decimal
    overpaid_staff: int


def _get(db: Session, staff_id: int) -> StaffLedger:
    ledger = db.get(StaffLedger, int(staff_id))
    if ledger is None:
        raise NotFoundError("StaffLedger", staff_id)
    return ledger


def _reload(db: Session, staff_id: int) -> StaffLedger:
    return db.query(StaffLedger).filter(StaffLedger.id == int(staff_id)).populate_existing().one()


def _staff_name(value: Any) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("staff_name is required", field="staff_name")
    return str(value).strip()


def pending_balance(ledger: StaffLedger) -> Decimal:
    paid = (
        to_decimal(ledger.salary_paid_rub or 0)
        + to_decimal(ledger.advances_rub or 0)
        + to_decimal(ledger.setup_cost_paid_rub or 0)
    )
    return to_decimal(ledger.monthly_salary_rub) - paid


def setup_owed_remaining(ledger: StaffLedger) -> Decimal:
    return to_decimal(ledger.setup_cost_owed_rub or 0) - to_decimal(ledger.setup_cost_paid_rub or 0)


def create_staff_ledger(
    *,
    staff_name: str,
    monthly_salary_rub: Any,
    setup_cost_owed_rub: Any = None,
    role: Role | str,
    db: Optional[Session] = None,
) -> StaffLedger:
    ensure_capability(role, "staff.manage")

    owed = Decimal("0")
    if setup_cost_owed_rub not in (None, "", 0):
        owed = positive(setup_cost_owed_rub, "setup_cost_owed_rub")

    ledger = StaffLedger(
        staff_name=_staff_name(staff_name),
        monthly_salary_rub=positive(monthly_salary_rub, "monthly_salary_rub"),
        salary_paid_rub=Decimal("0"),
        advances_rub=Decimal("0"),
        setup_cost_owed_rub=owed,
        setup_cost_paid_rub=Decimal("0"),
    )

    with unit_of_work(db) as session:
        session.add(ledger)
        session.flush()
        session.refresh(ledger)
        logger.info(
            "staff ledger created",
            extra={"staff_id": ledger.id, "monthly_salary_rub": str(ledger.monthly_salary_rub), "setup_cost_owed_rub": str(owed)},
        )
        return ledger


def update_staff_profile(
    staff_id: int,
    *,
    staff_name: Optional[str] = None,
    monthly_salary_rub: Any = None,
    role: Role | str,
    db: Optional[Session] = None,
) -> StaffLedger:
    ensure_capability(role, "staff.manage")

    with unit_of_work(db) as session:
        ledger = _get(session, staff_id)
        if staff_name is not None:
            ledger.staff_name = _staff_name(staff_name)
        if monthly_salary_rub is not None:
            ledger.monthly_salary_rub = positive(monthly_salary_rub, "monthly_salary_rub")
        session.flush()
        session.refresh(ledger)
        return ledger


def set_setup_cost(staff_id: int, amount: Any, *, role: Role | str, db: Optional[Session] = None) -> StaffLedger:
    """Record the onboarding debt once; it is fixed after that."""
    ensure_capability(role, "staff.manage")
    owed = positive(amount, "setup_cost_owed_rub")

    with unit_of_work(db) as session:
        _get(session, staff_id)

        result = session.execute(
            update(StaffLedger)
            .where(StaffLedger.id == int(staff_id), StaffLedger.setup_cost_owed_rub == 0)
            .values(setup_cost_owed_rub=owed, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise StateError("Setup cost is already set for this staff member", staff_id=int(staff_id))

        logger.info("setup cost set", extra={"staff_id": int(staff_id), "setup_cost_owed_rub": str(owed)})
        return _reload(session, staff_id)


def _append(
    db: Session,
    staff_id: int,
    entry_type: str,
    amount: Decimal,
    note: Optional[str],
    compensates_entry_id: Optional[int] = None,
) -> StaffLedgerEntry:
    column = CUMULATIVE_COLUMN[entry_type]

    result = db.execute(
        update(StaffLedger)
        .where(StaffLedger.id == int(staff_id))
        .values({column: getattr(StaffLedger, column) + amount, "updated_at": utcnow()})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("StaffLedger", staff_id)

    entry = StaffLedgerEntry(
        staff_ledger_id=int(staff_id),
        entry_type=entry_type,
        amount=amount,
        note=note,
        date=utcnow(),
        compensates_entry_id=compensates_entry_id,
    )
    db.add(entry)
    db.flush()

    logger.info(
        "payroll entry appended",
        extra={
            "staff_id": int(staff_id),
            "entry_id": entry.id,
            "entry_type": entry_type,
            "amount": str(amount),
            "compensates_entry_id": compensates_entry_id,
        },
    )
    return entry


def record_payment(
    staff_id: int,
    entry_type: str,
    amount: Any,
    note: Optional[str] = None,
    *,
    role: Role | str,
    db: Optional[Session] = None,
) -> StaffLedger:
    ensure_capability(role, "staff.pay")
    if entry_type not in ENTRY_TYPES:
        raise ValidationError(f"entry_type must be one of {', '.join(ENTRY_TYPES)}", field="entry_type")
    value = positive(amount, "amount")

    with unit_of_work(db) as session:
        _get(session, staff_id)
        _append(session, staff_id, entry_type, value, note)
        return _reload(session, staff_id)


def record_salary_payment(staff_id: int, amount: Any, note: Optional[str] = None, *, role: Role | str, db: Optional[Session] = None) -> StaffLedger:
    return record_payment(staff_id, "salary_paid", amount, note, role=role, db=db)


def record_advance(staff_id: int, amount: Any, note: Optional[str] = None, *, role: Role | str, db: Optional[Session] = None) -> StaffLedger:
    return record_payment(staff_id, "advance_issued", amount, note, role=role, db=db)


def record_setup_recovery(staff_id: int, amount: Any, note: Optional[str] = None, *, role: Role | str, db: Optional[Session] = None) -> StaffLedger:
    return record_payment(staff_id, "setup_recovered", amount, note, role=role, db=db)


def compensate_entry(
    entry_id: int,
    note: Optional[str] = None,
    *,
    role: Role | str,
    db: Optional[Session] = None,
) -> StaffLedgerEntry:
    ensure_capability(role, "staff.manage")

    with unit_of_work(db) as session:
        original = (
            session.query(StaffLedgerEntry)
            .filter(StaffLedgerEntry.id == int(entry_id))
            .with_for_update()
            .first()
        )
        if original is None:
            raise NotFoundError("StaffLedgerEntry", entry_id)
        if original.compensates_entry_id is not None:
            raise StateError("A compensation entry cannot itself be compensated", entry_id=original.id)

        already = (
            session.query(StaffLedgerEntry.id)
            .filter(StaffLedgerEntry.compensates_entry_id == original.id)
            .first()
        )
        if already is not None:
            raise StateError("Entry has already been compensated", entry_id=original.id, compensation_id=already.id)

        return _append(
            session,
            original.staff_ledger_id,
            original.entry_type,
            -to_decimal(original.amount),
            note or f"Compensates entry {original.id}",
            compensates_entry_id=original.id,
        )


def history(db: Session, staff_id: int) -> list[StaffLedgerEntry]:
    _get(db, staff_id)
    return (
        db.query(StaffLedgerEntry)
        .filter(StaffLedgerEntry.staff_ledger_id == int(staff_id))
        .order_by(StaffLedgerEntry.id.asc())
        .all()
    )


def delete_staff_ledger(staff_id: int, *, role: Role | str, db: Optional[Session] = None) -> None:
    ensure_capability(role, "staff.manage")

    with unit_of_work(db) as session:
        ledger = _get(session, staff_id)

        # Compensations first: they reference the entries they correct.
        session.execute(
            delete(StaffLedgerEntry)
            .where(
                StaffLedgerEntry.staff_ledger_id == int(staff_id),
                StaffLedgerEntry.compensates_entry_id.is_not(None),
            )
            .execution_options(synchronize_session=False)
        )
        session.execute(
            delete(StaffLedgerEntry)
            .where(StaffLedgerEntry.staff_ledger_id == int(staff_id))
            .execution_options(synchronize_session=False)
        )
        session.execute(
            delete(StaffLedger)
            .where(StaffLedger.id == int(staff_id))
            .execution_options(synchronize_session=False)
        )
        session.expunge(ledger)
        logger.info("staff ledger deleted", extra={"staff_id": int(staff_id)})


def payroll_totals(db: Session) -> PayrollTotals:
    paid_sum = StaffLedger.salary_paid_rub + StaffLedger.advances_rub + StaffLedger.setup_cost_paid_rub
    row = db.query(
        func.count(StaffLedger.id).label("staff_count"),
        func.coalesce(func.sum(StaffLedger.salary_paid_rub), 0).label("paid"),
        func.coalesce(func.sum(StaffLedger.advances_rub), 0).label("advances"),
        func.coalesce(func.sum(StaffLedger.setup_cost_paid_rub), 0).label("setup"),
        func.coalesce(func.sum(StaffLedger.monthly_salary_rub - paid_sum), 0).label("pending"),
    ).one()

    overpaid = (
        db.query(func.count(StaffLedger.id))
        .filter(paid_sum > StaffLedger.monthly_salary_rub)
        .scalar()
    )

    return PayrollTotals(
        staff_count=int(row.staff_count or 0),
        total_paid_rub=to_decimal(row.paid),
        total_advances_rub=to_decimal(row.advances),
        total_setup_recovered_rub=to_decimal(row.setup),
        total_pending_rub=to_decimal(row.pending),
        overpaid_staff=int(overpaid or 0),
    )
