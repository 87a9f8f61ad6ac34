from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from messledger.core.authorization import Role, require_role
from messledger.database import SessionLocal
from messledger.models.staff_ledger import StaffLedger
from messledger.schemas.staff import (
    CompensateRequest,
    PaymentCreate,
    SetupCostRequest,
    StaffLedgerCreate,
    StaffLedgerDetailResponse,
    StaffLedgerEntryResponse,
    StaffLedgerResponse,
    StaffProfileUpdate,
)
from messledger.services import payroll_ledger

router = APIRouter(prefix="/staff", tags=["Staff"])


def _ledger_out(ledger: StaffLedger) -> dict:
    return {
        "id": ledger.id,
        "staff_name": ledger.staff_name,
        "monthly_salary_rub": ledger.monthly_salary_rub,
        "salary_paid_rub": ledger.salary_paid_rub,
        "advances_rub": ledger.advances_rub,
        "setup_cost_owed_rub": ledger.setup_cost_owed_rub,
        "setup_cost_paid_rub": ledger.setup_cost_paid_rub,
        "pending_balance_rub": payroll_ledger.pending_balance(ledger),
        "setup_owed_remaining_rub": payroll_ledger.setup_owed_remaining(ledger),
        "created_at": ledger.created_at,
    }


@router.get("", response_model=List[StaffLedgerResponse])
def list_staff(_role=Depends(require_role(Role.MANAGER))):
    db: Session = SessionLocal()
    try:
        rows = db.query(StaffLedger).order_by(StaffLedger.staff_name.asc(), StaffLedger.id.asc()).all()
        return [_ledger_out(r) for r in rows]
    finally:
        db.close()


@router.post("", response_model=StaffLedgerResponse)
def create_staff(payload: StaffLedgerCreate, role: Role = Depends(require_role(Role.ADMIN))):
    db = SessionLocal()
    try:
        ledger = payroll_ledger.create_staff_ledger(**payload.model_dump(), role=role, db=db)
        db.commit()
        return _ledger_out(ledger)
    finally:
        db.close()


@router.get("/{staff_id}", response_model=StaffLedgerDetailResponse)
def get_staff(staff_id: int, _role=Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        entries = payroll_ledger.history(db, staff_id)
        ledger = db.get(StaffLedger, int(staff_id))
        return {**_ledger_out(ledger), "history": entries}
    finally:
        db.close()


@router.patch("/{staff_id}", response_model=StaffLedgerResponse)
def update_staff(
    staff_id: int,
    payload: StaffProfileUpdate,
    role: Role = Depends(require_role(Role.ADMIN)),
):
    db = SessionLocal()
    try:
        ledger = payroll_ledger.update_staff_profile(staff_id, **payload.model_dump(), role=role, db=db)
        db.commit()
        return _ledger_out(ledger)
    finally:
        db.close()


@router.delete("/{staff_id}")
def delete_staff(staff_id: int, role: Role = Depends(require_role(Role.ADMIN))):
    db = SessionLocal()
    try:
        payroll_ledger.delete_staff_ledger(staff_id, role=role, db=db)
        db.commit()
        return {"deleted": True, "id": int(staff_id)}
    finally:
        db.close()


@router.post("/{staff_id}/payments", response_model=StaffLedgerResponse)
def record_payment(
    staff_id: int,
    payload: PaymentCreate,
    role: Role = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        ledger = payroll_ledger.record_payment(
            staff_id, payload.entry_type, payload.amount, payload.note, role=role, db=db
        )
        db.commit()
        return _ledger_out(ledger)
    finally:
        db.close()


@router.post("/{staff_id}/setup-cost", response_model=StaffLedgerResponse)
def set_setup_cost(
    staff_id: int,
    payload: SetupCostRequest,
    role: Role = Depends(require_role(Role.ADMIN)),
):
    db = SessionLocal()
    try:
        ledger = payroll_ledger.set_setup_cost(staff_id, payload.amount, role=role, db=db)
        db.commit()
        return _ledger_out(ledger)
    finally:
        db.close()


@router.post("/entries/{entry_id}/compensate", response_model=StaffLedgerEntryResponse)
def compensate_entry(
    entry_id: int,
    payload: CompensateRequest,
    role: Role = Depends(require_role(Role.ADMIN)),
):
    db = SessionLocal()
    try:
        entry = payroll_ledger.compensate_entry(entry_id, payload.note, role=role, db=db)
        db.commit()
        return entry
    finally:
        db.close()
