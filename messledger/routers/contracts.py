from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from messledger.core.authorization import Role, require_role
from messledger.database import SessionLocal
from messledger.models.meal_contract import Income, MealContract
from messledger.schemas.contract import IncomeCreate, IncomeResponse, MealContractCreate, MealContractResponse
from messledger.services import contract_service

router = APIRouter(tags=["Contracts"])


class ContractStatusChange(BaseModel):
    status: str


class ExpireRequest(BaseModel):
    as_of: Optional[date] = None


@router.get("/meal-contracts", response_model=List[MealContractResponse])
def list_meal_contracts(status: Optional[str] = None, _role=Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        q = db.query(MealContract)
        if status is not None:
            q = q.filter(MealContract.status == str(status))
        return q.order_by(MealContract.start_date.desc(), MealContract.id.desc()).all()
    finally:
        db.close()


@router.post("/meal-contracts", response_model=MealContractResponse)
def create_meal_contract(payload: MealContractCreate, role: Role = Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        contract = contract_service.create_meal_contract(**payload.model_dump(), role=role, db=db)
        db.commit()
        return contract
    finally:
        db.close()


@router.post("/meal-contracts/{contract_id}/status", response_model=MealContractResponse)
def set_meal_contract_status(
    contract_id: int,
    payload: ContractStatusChange,
    role: Role = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        contract = contract_service.set_contract_status(contract_id, payload.status, role=role, db=db)
        db.commit()
        return contract
    finally:
        db.close()


@router.post("/meal-contracts/expire")
def expire_meal_contracts(payload: ExpireRequest, role: Role = Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        expired = contract_service.expire_contracts(as_of=payload.as_of, role=role, db=db)
        db.commit()
        return {"expired": expired}
    finally:
        db.close()


@router.get("/income", response_model=List[IncomeResponse])
def list_income(_role=Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        return db.query(Income).order_by(Income.date.desc(), Income.id.desc()).all()
    finally:
        db.close()


@router.post("/income", response_model=IncomeResponse)
def record_income(payload: IncomeCreate, role: Role = Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        income = contract_service.record_income(**payload.model_dump(), role=role, db=db)
        db.commit()
        return income
    finally:
        db.close()
