from decimal import Decimal

from fastapi.testclient import TestClient

from messledger.main import app

client = TestClient(app)

PINS = {"admin": "1234", "manager": "5678", "cook": "9999"}


def _auth_headers(role: str) -> dict:
    resp = client.post("/auth/token", json={"pin": PINS[role]})
    assert resp.status_code == 200, f"token request failed: {resp.status_code} {resp.text}"
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def _stock(item_id: int) -> Decimal:
    resp = client.get(f"/inventory/items/{item_id}", headers=_auth_headers("cook"))
    assert resp.status_code == 200, resp.text
    return Decimal(resp.json()["current_stock"])


def _gap() -> Decimal:
    resp = client.get("/budget", headers=_auth_headers("cook"))
    assert resp.status_code == 200, resp.text
    return Decimal(resp.json()["procurement_gap_rub"])


def _alert_codes() -> list:
    resp = client.get("/dashboard", headers=_auth_headers("cook"))
    assert resp.status_code == 200, resp.text
    return [a["code"] for a in resp.json()["alerts"]]


def _seed() -> tuple[int, int]:
    item = client.post(
        "/inventory/items",
        headers=_auth_headers("manager"),
        json={"name": "Rice", "unit": "kg", "minimum_threshold": "5"},
    )
    assert item.status_code == 200, item.text

    rem = client.post(
        "/remittances",
        headers=_auth_headers("manager"),
        json={
            "amount_inr": "1000",
            "rubal_rate": "0.9",
            "sent_to": "Kitchen manager",
            "purpose": "Groceries",
            "proof_image_url": "proof://transfer-1",
        },
    )
    assert rem.status_code == 200, rem.text
    assert Decimal(rem.json()["amount_rub"]) == Decimal("900")

    confirm = client.post(f"/remittances/{rem.json()['id']}/confirm", headers=_auth_headers("admin"))
    assert confirm.status_code == 200, confirm.text
    assert confirm.json()["status"] == "confirmed"

    purchase = client.post(
        "/inventory/purchases",
        headers=_auth_headers("manager"),
        json={
            "item_id": item.json()["id"],
            "quantity": "10",
            "price_rub": "850",
            "invoice_image": "invoice://rice-1",
            "purchased_by": "Ivan",
            "remittance_id": rem.json()["id"],
        },
    )
    assert purchase.status_code == 200, purchase.text
    return item.json()["id"], purchase.json()["id"]


def test_purchase_then_consumption_triggers_low_stock():
    item_id, _ = _seed()

    assert _stock(item_id) == Decimal("10")
    assert _gap() == Decimal("50")
    assert _alert_codes() == []

    used = client.post(
        "/inventory/consumptions",
        headers=_auth_headers("cook"),
        json={"item_id": item_id, "quantity_used": "8", "logged_by": "Cook"},
    )
    assert used.status_code == 200, used.text

    assert _stock(item_id) == Decimal("2")
    assert _alert_codes() == ["LOW_STOCK"]


def test_deleting_the_purchase_restores_stock_and_gap():
    item_id, purchase_id = _seed()

    resp = client.delete(f"/inventory/purchases/{purchase_id}", headers=_auth_headers("manager"))
    assert resp.status_code == 200, resp.text

    assert _stock(item_id) == Decimal("0")
    assert _gap() == Decimal("900")


def test_deleting_the_purchase_after_consumption_leaves_surviving_logs():
    item_id, purchase_id = _seed()
    client.post(
        "/inventory/consumptions",
        headers=_auth_headers("cook"),
        json={"item_id": item_id, "quantity_used": "8", "logged_by": "Cook"},
    )

    resp = client.delete(f"/inventory/purchases/{purchase_id}", headers=_auth_headers("manager"))
    assert resp.status_code == 200, resp.text

    assert _stock(item_id) == Decimal("-8")
    assert _gap() == Decimal("900")

    drift = client.get(f"/inventory/items/{item_id}/reconciliation", headers=_auth_headers("admin"))
    assert drift.json()["ok"] is True
