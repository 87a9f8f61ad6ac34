from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FundRequestCreate(BaseModel):
    amount_rub: Decimal
    purpose: str
    requested_by: str
    notes: Optional[str] = None


class FundRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount_rub: Decimal
    purpose: str
    status: str
    requested_by: str
    notes: Optional[str]
    date_requested: datetime
    decided_at: Optional[datetime]


class InventoryRequestCreate(BaseModel):
    item_name: str
    quantity_needed: Decimal
    unit: str
    requested_by: str
    notes: Optional[str] = None


class InventoryRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_name: str
    quantity_needed: Decimal
    unit: str
    status: str
    requested_by: str
    notes: Optional[str]
    date_requested: datetime
    decided_at: Optional[datetime]


class StatusChange(BaseModel):
    status: str
    notes: Optional[str] = None
