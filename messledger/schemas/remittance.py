from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RemittanceCreate(BaseModel):
    amount_inr: Decimal
    rubal_rate: Decimal
    sent_to: str
    purpose: str
    proof_image_url: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[datetime] = None


class RemittanceUpdate(BaseModel):
    # status and amount_rub are accepted so the service can reject them explicitly.
    amount_inr: Optional[Decimal] = None
    rubal_rate: Optional[Decimal] = None
    amount_rub: Optional[Decimal] = None
    sent_to: Optional[str] = None
    purpose: Optional[str] = None
    status: Optional[str] = None
    proof_image_url: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[datetime] = None


class RemittanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount_inr: Decimal
    rubal_rate: Decimal
    amount_rub: Decimal
    sent_to: str
    purpose: str
    status: str
    proof_image_url: str
    notes: Optional[str]
    date: datetime
    confirmed_at: Optional[datetime]
