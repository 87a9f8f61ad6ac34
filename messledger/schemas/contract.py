from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class MealContractCreate(BaseModel):
    student_ref: str
    meal_type: str
    duration_months: int
    start_date: date
    amount_inr: Decimal
    rubal_rate: Decimal


class MealContractResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_ref: str
    meal_type: str
    duration_months: int
    start_date: date
    end_date: date
    amount_inr: Decimal
    rubal_rate: Decimal
    amount_rub: Decimal
    status: str
    created_at: datetime


class IncomeCreate(BaseModel):
    amount_inr: Decimal
    source: str = "Student Fee"
    description: Optional[str] = None
    student_ref: Optional[str] = None
    rubal_rate: Optional[Decimal] = None


class IncomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount_inr: Decimal
    amount_rub: Optional[Decimal]
    rubal_rate: Optional[Decimal]
    source: str
    description: Optional[str]
    student_ref: Optional[str]
    date: datetime
