from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from messledger.core.authorization import Role, require_role
from messledger.database import SessionLocal
from messledger.models.remittance import Remittance
from messledger.schemas.remittance import RemittanceCreate, RemittanceResponse, RemittanceUpdate
from messledger.services import remittance_ledger

router = APIRouter(prefix="/remittances", tags=["Remittances"])


@router.get("", response_model=List[RemittanceResponse])
def list_remittances(
    status: Optional[str] = None,
    purpose: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _role=Depends(require_role(Role.COOK)),
):
    db: Session = SessionLocal()
    try:
        q = db.query(Remittance)
        if status is not None:
            q = q.filter(Remittance.status == str(status))
        if purpose is not None:
            q = q.filter(Remittance.purpose == str(purpose))
        return (
            q.order_by(Remittance.date.desc(), Remittance.id.desc())
            .limit(int(limit))
            .offset(int(offset))
            .all()
        )
    finally:
        db.close()


@router.post("", response_model=RemittanceResponse)
def create_remittance(payload: RemittanceCreate, role: Role = Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        row = remittance_ledger.create_remittance(**payload.model_dump(), role=role, db=db)
        db.commit()
        return row
    finally:
        db.close()


@router.get("/{remittance_id}", response_model=RemittanceResponse)
def get_remittance(remittance_id: int, _role=Depends(require_role(Role.COOK))):
    db = SessionLocal()
    try:
        row = db.get(Remittance, int(remittance_id))
        if row is None:
            raise HTTPException(status_code=404, detail="Remittance not found")
        return row
    finally:
        db.close()


@router.patch("/{remittance_id}", response_model=RemittanceResponse)
def update_remittance(
    remittance_id: int,
    payload: RemittanceUpdate,
    role: Role = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = remittance_ledger.update_remittance(
            remittance_id, payload.model_dump(exclude_unset=True), role=role, db=db
        )
        db.commit()
        return row
    finally:
        db.close()


@router.post("/{remittance_id}/confirm", response_model=RemittanceResponse)
def confirm_remittance(remittance_id: int, role: Role = Depends(require_role(Role.ADMIN))):
    db = SessionLocal()
    try:
        row = remittance_ledger.confirm_remittance(remittance_id, role=role, db=db)
        db.commit()
        return row
    finally:
        db.close()


@router.delete("/{remittance_id}")
def delete_remittance(remittance_id: int, role: Role = Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        remittance_ledger.delete_remittance(remittance_id, role=role, db=db)
        db.commit()
        return {"deleted": True, "id": int(remittance_id)}
    finally:
        db.close()
