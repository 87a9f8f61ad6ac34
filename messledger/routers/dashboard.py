from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from messledger.core.authorization import Role, require_role
from messledger.database import SessionLocal
from messledger.services.dashboard_service import dashboard

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


class DashboardKpis(BaseModel):
    total_income_inr: Decimal
    total_remittance_sent_inr: Decimal
    total_remittance_received_rub: Decimal
    total_grocery_purchases_rub: Decimal
    total_salary_paid_rub: Decimal
    total_salary_pending_rub: Decimal
    active_meal_students: int


class DashboardMetrics(BaseModel):
    grocery_remitted_rub: Decimal
    procurement_gap_rub: Decimal
    cost_per_student_per_day: Decimal
    thirty_day_purchase_cost_rub: Decimal
    low_stock_count: int


class AlertRow(BaseModel):
    level: str
    code: str
    message: str


class ActivityRow(BaseModel):
    type: str
    id: int
    date: datetime
    title: str


class DashboardResponse(BaseModel):
    kpis: DashboardKpis
    metrics: DashboardMetrics
    alerts: list[AlertRow]
    recent_activity: list[ActivityRow]


@router.get("", response_model=DashboardResponse)
def get_dashboard(_role=Depends(require_role(Role.COOK))):
    db = SessionLocal()
    try:
        return dashboard(db)
    finally:
        db.close()
