from typing import List, Optional

from fastapi import APIRouter, Depends

from messledger.core.authorization import Role, require_role
from messledger.database import SessionLocal
from messledger.models.requests import FundRequest
from messledger.schemas.requests import FundRequestCreate, FundRequestResponse, StatusChange
from messledger.services import request_workflow

router = APIRouter(prefix="/fund-requests", tags=["Requests"])


@router.get("", response_model=List[FundRequestResponse])
def list_fund_requests(status: Optional[str] = None, _role=Depends(require_role(Role.COOK))):
    db = SessionLocal()
    try:
        q = db.query(FundRequest)
        if status is not None:
            q = q.filter(FundRequest.status == str(status))
        return q.order_by(FundRequest.date_requested.desc(), FundRequest.id.desc()).all()
    finally:
        db.close()


@router.post("", response_model=FundRequestResponse)
def create_fund_request(payload: FundRequestCreate, role: Role = Depends(require_role(Role.COOK))):
    db = SessionLocal()
    try:
        row = request_workflow.create_fund_request(**payload.model_dump(), role=role, db=db)
        db.commit()
        return row
    finally:
        db.close()


@router.post("/{request_id}/status", response_model=FundRequestResponse)
def change_fund_request_status(
    request_id: int,
    payload: StatusChange,
    role: Role = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = request_workflow.advance_request(
            FundRequest, request_id, payload.status, notes=payload.notes, role=role, db=db
        )
        db.commit()
        return row
    finally:
        db.close()


@router.delete("/{request_id}")
def delete_fund_request(request_id: int, role: Role = Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        request_workflow.delete_request(FundRequest, request_id, role=role, db=db)
        db.commit()
        return {"deleted": True, "id": int(request_id)}
    finally:
        db.close()
