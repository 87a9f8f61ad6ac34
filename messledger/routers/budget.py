from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from messledger.core.authorization import Role, require_role
from messledger.database import SessionLocal
from messledger.services.budget_tracker import budget_snapshot

router = APIRouter(prefix="/budget", tags=["Budget"])


class BudgetResponse(BaseModel):
    grocery_remitted_rub: Decimal
    total_purchased_rub: Decimal
    procurement_gap_rub: Decimal
    purchased_by_linked_purpose: dict[str, Decimal]


@router.get("", response_model=BudgetResponse)
def get_budget(_role=Depends(require_role(Role.COOK))):
    db = SessionLocal()
    try:
        snapshot = budget_snapshot(db)
        return {
            "grocery_remitted_rub": snapshot.grocery_remitted_rub,
            "total_purchased_rub": snapshot.total_purchased_rub,
            "procurement_gap_rub": snapshot.procurement_gap_rub,
            "purchased_by_linked_purpose": snapshot.purchased_by_linked_purpose,
        }
    finally:
        db.close()
