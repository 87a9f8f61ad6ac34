from datetime import datetime, timedelta
from decimal import Decimal

from fastapi.testclient import TestClient

from messledger.core.clock import utcnow
from messledger.database import SessionLocal
from messledger.main import app
from messledger.services import (
    budget_tracker,
    contract_service,
    dashboard_service,
    inventory_service,
    payroll_ledger,
    remittance_ledger,
)

client = TestClient(app)


def _auth_headers() -> dict:
    resp = client.post("/auth/token", json={"pin": "9999"})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_empty_dashboard_is_all_zero():
    resp = client.get("/dashboard", headers=_auth_headers())
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert Decimal(body["kpis"]["total_income_inr"]) == Decimal("0")
    assert body["kpis"]["active_meal_students"] == 0
    assert Decimal(body["metrics"]["cost_per_student_per_day"]) == Decimal("0")
    assert body["alerts"] == []
    assert body["recent_activity"] == []


def test_recent_activity_merges_sources_newest_first_and_caps_at_eight():
    base = datetime(2026, 3, 1, 12, 0, 0)
    rem = remittance_ledger.create_remittance(
        amount_inr="5000", rubal_rate="1", sent_to="K", purpose="Groceries",
        proof_image_url="p", date=base, role="admin",
    )
    remittance_ledger.confirm_remittance(rem.id, role="admin")
    item = inventory_service.create_item(name="Rice", unit="kg", minimum_threshold="0", role="admin")

    for i in range(6):
        inventory_service.create_purchase(
            item_id=item.id, quantity="2", price_rub="10", invoice_image="i", purchased_by="Ivan",
            remittance_id=rem.id, date=base + timedelta(hours=i + 1), role="admin",
        )
        inventory_service.create_consumption(
            item_id=item.id, quantity_used="1", logged_by="Cook",
            date=base + timedelta(hours=i + 1, minutes=30), role="cook",
        )

    resp = client.get("/dashboard", headers=_auth_headers())
    assert resp.status_code == 200, resp.text
    feed = resp.json()["recent_activity"]

    assert len(feed) == 8
    dates = [row["date"] for row in feed]
    assert dates == sorted(dates, reverse=True)
    assert feed[0]["type"] == "consumption"
    assert feed[0]["title"].startswith("Used 1")
    assert feed[0]["title"].endswith("of Rice")
    assert feed[1]["title"].startswith("Bought Rice for 10")
    assert all(row["type"] != "remittance" for row in feed)


def test_kpis_reflect_ledgers():
    rem = remittance_ledger.create_remittance(
        amount_inr="1000", rubal_rate="0.9", sent_to="K", purpose="Groceries", proof_image_url="p", role="admin"
    )
    remittance_ledger.confirm_remittance(rem.id, role="admin")
    staff = payroll_ledger.create_staff_ledger(staff_name="Olga", monthly_salary_rub="5000", role="admin")
    payroll_ledger.record_salary_payment(staff.id, "1500", role="admin")

    body = client.get("/dashboard", headers=_auth_headers()).json()
    assert Decimal(body["kpis"]["total_remittance_sent_inr"]) == Decimal("1000")
    assert Decimal(body["kpis"]["total_remittance_received_rub"]) == Decimal("900")
    assert Decimal(body["kpis"]["total_salary_paid_rub"]) == Decimal("1500")
    assert Decimal(body["kpis"]["total_salary_pending_rub"]) == Decimal("3500")
    assert Decimal(body["metrics"]["procurement_gap_rub"]) == Decimal("900")


def test_cost_per_student_only_counts_last_thirty_days():
    now = utcnow()
    rem = remittance_ledger.create_remittance(
        amount_inr="200000", rubal_rate="1", sent_to="K", purpose="Groceries", proof_image_url="p", role="admin"
    )
    remittance_ledger.confirm_remittance(rem.id, role="admin")
    contract_service.create_meal_contract(
        student_ref="STU-1", meal_type="both", duration_months=1, start_date=now.date(),
        amount_inr="1000", rubal_rate="1", role="manager",
    )
    item = inventory_service.create_item(name="Meat", unit="kg", minimum_threshold="0", role="admin")

    def buy(price: str, days_ago: int):
        inventory_service.create_purchase(
            item_id=item.id, quantity="1", price_rub=price, invoice_image="i", purchased_by="Ivan",
            remittance_id=rem.id, date=now - timedelta(days=days_ago), role="manager",
        )

    buy("100000", 40)
    buy("6000", 2)

    db = SessionLocal()
    try:
        assert budget_tracker.rolling_purchase_cost(db, days=30, now=now) == Decimal("6000")
        body = dashboard_service.dashboard(db, now=now)
    finally:
        db.close()

    # 6000 / 30 days / 1 student
    assert body["metrics"]["thirty_day_purchase_cost_rub"] == Decimal("6000")
    assert body["metrics"]["cost_per_student_per_day"] == Decimal("200")
    assert "HIGH_COST_PER_STUDENT" not in [a["code"] for a in body["alerts"]]

    buy("9000", 1)

    resp = client.get("/dashboard", headers=_auth_headers())
    assert resp.status_code == 200, resp.text
    metrics = resp.json()["metrics"]
    assert Decimal(metrics["thirty_day_purchase_cost_rub"]) == Decimal("15000")
    assert Decimal(metrics["cost_per_student_per_day"]) == Decimal("500")
    assert "HIGH_COST_PER_STUDENT" in [a["code"] for a in resp.json()["alerts"]]
