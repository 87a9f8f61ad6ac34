from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from messledger.core.authorization import Role, require_role
from messledger.database import SessionLocal
from messledger.models.inventory import InventoryConsumption, InventoryItem, InventoryPurchase
from messledger.models.requests import InventoryRequest
from messledger.schemas.inventory import (
    ConsumptionCreate,
    ConsumptionResponse,
    ConsumptionUpdate,
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    PurchaseCreate,
    PurchaseResponse,
    PurchaseUpdate,
    StockReconciliationResponse,
)
from messledger.schemas.requests import InventoryRequestCreate, InventoryRequestResponse, StatusChange
from messledger.services import inventory_service, request_workflow, stock_ledger

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def _drift_out(drift: stock_ledger.StockDrift) -> dict:
    return {
        "item_id": drift.item_id,
        "recorded_stock": drift.recorded_stock,
        "recomputed_stock": drift.recomputed_stock,
        "delta": drift.delta,
        "ok": drift.ok,
    }


# ---------- Items ----------

@router.get("/items", response_model=List[InventoryItemResponse])
def list_items(
    low_stock_only: bool = False,
    _role=Depends(require_role(Role.COOK)),
):
    db: Session = SessionLocal()
    try:
        q = db.query(InventoryItem)
        if low_stock_only:
            q = q.filter(InventoryItem.current_stock < InventoryItem.minimum_threshold)
        return q.order_by(InventoryItem.name.asc(), InventoryItem.id.asc()).all()
    finally:
        db.close()


@router.post("/items", response_model=InventoryItemResponse)
def create_item(payload: InventoryItemCreate, role: Role = Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        item = inventory_service.create_item(**payload.model_dump(), role=role, db=db)
        db.commit()
        return item
    finally:
        db.close()


@router.get("/items/{item_id}", response_model=InventoryItemResponse)
def get_item(item_id: int, _role=Depends(require_role(Role.COOK))):
    db = SessionLocal()
    try:
        item = db.get(InventoryItem, int(item_id))
        if item is None:
            raise HTTPException(status_code=404, detail="Inventory item not found")
        return item
    finally:
        db.close()


@router.patch("/items/{item_id}", response_model=InventoryItemResponse)
def update_item(
    item_id: int,
    payload: InventoryItemUpdate,
    role: Role = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        item = inventory_service.update_item(item_id, payload.model_dump(exclude_unset=True), role=role, db=db)
        db.commit()
        return item
    finally:
        db.close()


@router.delete("/items/{item_id}")
def delete_item(item_id: int, role: Role = Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        inventory_service.delete_item(item_id, role=role, db=db)
        db.commit()
        return {"deleted": True, "id": int(item_id)}
    finally:
        db.close()


@router.get("/items/{item_id}/reconciliation", response_model=StockReconciliationResponse)
def get_item_drift(item_id: int, _role=Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        return _drift_out(stock_ledger.stock_drift(db, item_id))
    finally:
        db.close()


@router.post("/items/{item_id}/reconciliation", response_model=StockReconciliationResponse)
def reconcile_item(item_id: int, role: Role = Depends(require_role(Role.ADMIN))):
    db = SessionLocal()
    try:
        drift = stock_ledger.reconcile_item(item_id, role=role, db=db)
        db.commit()
        return _drift_out(drift)
    finally:
        db.close()


# ---------- Purchases ----------

@router.get("/purchases", response_model=List[PurchaseResponse])
def list_purchases(
    item_id: Optional[int] = None,
    remittance_id: Optional[int] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _role=Depends(require_role(Role.COOK)),
):
    db = SessionLocal()
    try:
        q = db.query(InventoryPurchase)
        if item_id is not None:
            q = q.filter(InventoryPurchase.item_id == int(item_id))
        if remittance_id is not None:
            q = q.filter(InventoryPurchase.remittance_id == int(remittance_id))
        return (
            q.order_by(InventoryPurchase.date.desc(), InventoryPurchase.id.desc())
            .limit(int(limit))
            .offset(int(offset))
            .all()
        )
    finally:
        db.close()


@router.post("/purchases", response_model=PurchaseResponse)
def create_purchase(payload: PurchaseCreate, role: Role = Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        purchase = inventory_service.create_purchase(**payload.model_dump(), role=role, db=db)
        db.commit()
        return purchase
    finally:
        db.close()


@router.patch("/purchases/{purchase_id}", response_model=PurchaseResponse)
def update_purchase(
    purchase_id: int,
    payload: PurchaseUpdate,
    role: Role = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        purchase = inventory_service.update_purchase(
            purchase_id, payload.model_dump(exclude_unset=True), role=role, db=db
        )
        db.commit()
        return purchase
    finally:
        db.close()


@router.delete("/purchases/{purchase_id}")
def delete_purchase(purchase_id: int, role: Role = Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        inventory_service.delete_purchase(purchase_id, role=role, db=db)
        db.commit()
        return {"deleted": True, "id": int(purchase_id)}
    finally:
        db.close()


# ---------- Consumptions ----------

@router.get("/consumptions", response_model=List[ConsumptionResponse])
def list_consumptions(
    item_id: Optional[int] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _role=Depends(require_role(Role.COOK)),
):
    db = SessionLocal()
    try:
        q = db.query(InventoryConsumption)
        if item_id is not None:
            q = q.filter(InventoryConsumption.item_id == int(item_id))
        return (
            q.order_by(InventoryConsumption.date.desc(), InventoryConsumption.id.desc())
            .limit(int(limit))
            .offset(int(offset))
            .all()
        )
    finally:
        db.close()


@router.post("/consumptions", response_model=ConsumptionResponse)
def create_consumption(payload: ConsumptionCreate, role: Role = Depends(require_role(Role.COOK))):
    db = SessionLocal()
    try:
        consumption = inventory_service.create_consumption(**payload.model_dump(), role=role, db=db)
        db.commit()
        return consumption
    finally:
        db.close()


@router.patch("/consumptions/{consumption_id}", response_model=ConsumptionResponse)
def update_consumption(
    consumption_id: int,
    payload: ConsumptionUpdate,
    role: Role = Depends(require_role(Role.COOK)),
):
    db = SessionLocal()
    try:
        consumption = inventory_service.update_consumption(
            consumption_id, payload.model_dump(exclude_unset=True), role=role, db=db
        )
        db.commit()
        return consumption
    finally:
        db.close()


@router.delete("/consumptions/{consumption_id}")
def delete_consumption(consumption_id: int, role: Role = Depends(require_role(Role.COOK))):
    db = SessionLocal()
    try:
        inventory_service.delete_consumption(consumption_id, role=role, db=db)
        db.commit()
        return {"deleted": True, "id": int(consumption_id)}
    finally:
        db.close()


# ---------- Requests ----------

@router.get("/requests", response_model=List[InventoryRequestResponse])
def list_inventory_requests(status: Optional[str] = None, _role=Depends(require_role(Role.COOK))):
    db = SessionLocal()
    try:
        q = db.query(InventoryRequest)
        if status is not None:
            q = q.filter(InventoryRequest.status == str(status))
        return q.order_by(InventoryRequest.date_requested.desc(), InventoryRequest.id.desc()).all()
    finally:
        db.close()


@router.post("/requests", response_model=InventoryRequestResponse)
def create_inventory_request(payload: InventoryRequestCreate, role: Role = Depends(require_role(Role.COOK))):
    db = SessionLocal()
    try:
        row = request_workflow.create_inventory_request(**payload.model_dump(), role=role, db=db)
        db.commit()
        return row
    finally:
        db.close()


@router.post("/requests/{request_id}/status", response_model=InventoryRequestResponse)
def change_inventory_request_status(
    request_id: int,
    payload: StatusChange,
    role: Role = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = request_workflow.advance_request(
            InventoryRequest, request_id, payload.status, notes=payload.notes, role=role, db=db
        )
        db.commit()
        return row
    finally:
        db.close()


@router.delete("/requests/{request_id}")
def delete_inventory_request(request_id: int, role: Role = Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        request_workflow.delete_request(InventoryRequest, request_id, role=role, db=db)
        db.commit()
        return {"deleted": True, "id": int(request_id)}
    finally:
        db.close()
