from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class StaffLedgerCreate(BaseModel):
    staff_name: str
    monthly_salary_rub: Decimal
    setup_cost_owed_rub: Optional[Decimal] = None


class StaffProfileUpdate(BaseModel):
    staff_name: Optional[str] = None
    monthly_salary_rub: Optional[Decimal] = None


class PaymentCreate(BaseModel):
    entry_type: str
    amount: Decimal
    note: Optional[str] = None


class SetupCostRequest(BaseModel):
    amount: Decimal


class CompensateRequest(BaseModel):
    note: Optional[str] = None


class StaffLedgerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    staff_name: str
    monthly_salary_rub: Decimal
    salary_paid_rub: Decimal
    advances_rub: Decimal
    setup_cost_owed_rub: Decimal
    setup_cost_paid_rub: Decimal
    pending_balance_rub: Decimal
    setup_owed_remaining_rub: Decimal
    created_at: datetime


class StaffLedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    staff_ledger_id: int
    entry_type: str
    amount: Decimal
    note: Optional[str]
    date: datetime
    compensates_entry_id: Optional[int]


class StaffLedgerDetailResponse(StaffLedgerResponse):
    history: list[StaffLedgerEntryResponse]
