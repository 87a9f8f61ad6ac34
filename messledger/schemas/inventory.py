from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class InventoryItemCreate(BaseModel):
    name: str
    unit: str
    minimum_threshold: Decimal = Decimal("5")
    average_daily_usage: Decimal = Decimal("0")


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = None
    unit: Optional[str] = None
    minimum_threshold: Optional[Decimal] = None
    average_daily_usage: Optional[Decimal] = None


class InventoryItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    unit: str
    current_stock: Decimal
    minimum_threshold: Decimal
    average_daily_usage: Decimal
    created_at: datetime
    updated_at: datetime


class PurchaseCreate(BaseModel):
    item_id: int
    quantity: Decimal
    price_rub: Decimal
    invoice_image: Optional[str] = None
    purchased_by: str
    remittance_id: Optional[int] = None
    date: Optional[datetime] = None


class PurchaseUpdate(BaseModel):
    item_id: Optional[int] = None
    quantity: Optional[Decimal] = None
    price_rub: Optional[Decimal] = None
    invoice_image: Optional[str] = None
    purchased_by: Optional[str] = None
    remittance_id: Optional[int] = None
    date: Optional[datetime] = None


class PurchaseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: int
    remittance_id: int
    quantity: Decimal
    price_rub: Decimal
    invoice_image: str
    purchased_by: str
    date: datetime
    created_at: datetime


class ConsumptionCreate(BaseModel):
    item_id: int
    quantity_used: Decimal
    logged_by: str
    notes: Optional[str] = None
    date: Optional[datetime] = None


class ConsumptionUpdate(BaseModel):
    item_id: Optional[int] = None
    quantity_used: Optional[Decimal] = None
    logged_by: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[datetime] = None


class ConsumptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: int
    quantity_used: Decimal
    logged_by: str
    notes: Optional[str]
    date: datetime
    created_at: datetime


class StockReconciliationResponse(BaseModel):
    item_id: int
    recorded_stock: Decimal
    recomputed_stock: Decimal
    delta: Decimal
    ok: bool
