from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from messledger.main import app
from messledger.services import stock_ledger

client = TestClient(app)

PINS = {"admin": "1234", "manager": "5678", "cook": "9999"}


def _auth_headers(role: str) -> dict:
    resp = client.post("/auth/token", json={"pin": PINS[role]})
    assert resp.status_code == 200, f"token request failed: {resp.status_code} {resp.text}"
    data = resp.json()
    assert "access_token" in data, f"token response missing access_token: {data}"
    return {"Authorization": f"Bearer {data['access_token']}"}


def _setup_item_and_remittance() -> tuple[int, int]:
    item = client.post("/inventory/items", headers=_auth_headers("manager"), json={"name": "Rice", "unit": "kg"})
    assert item.status_code == 200, item.text
    rem = client.post(
        "/remittances",
        headers=_auth_headers("manager"),
        json={
            "amount_inr": "1000",
            "rubal_rate": "1",
            "sent_to": "Kitchen",
            "purpose": "Groceries",
            "proof_image_url": "proof://1",
        },
    )
    assert rem.status_code == 200, rem.text
    return item.json()["id"], rem.json()["id"]


def _purchase_body(item_id: int, remittance_id, **overrides) -> dict:
    body = {
        "item_id": item_id,
        "quantity": "5",
        "price_rub": "250",
        "invoice_image": "invoice://1",
        "purchased_by": "Ivan",
        "remittance_id": remittance_id,
    }
    body.update(overrides)
    return body


def test_purchase_requires_invoice_image():
    item_id, rid = _setup_item_and_remittance()
    resp = client.post(
        "/inventory/purchases",
        headers=_auth_headers("manager"),
        json=_purchase_body(item_id, rid, invoice_image=None),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_purchase_requires_remittance_link():
    item_id, _ = _setup_item_and_remittance()
    resp = client.post(
        "/inventory/purchases",
        headers=_auth_headers("manager"),
        json=_purchase_body(item_id, None),
    )
    assert resp.status_code == 400
    assert resp.json()["context"]["field"] == "remittance_id"


def test_purchase_with_unknown_remittance_is_not_found():
    item_id, _ = _setup_item_and_remittance()
    resp = client.post(
        "/inventory/purchases",
        headers=_auth_headers("manager"),
        json=_purchase_body(item_id, 424242),
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"


def test_zero_quantity_is_rejected_and_stock_untouched():
    item_id, rid = _setup_item_and_remittance()
    resp = client.post(
        "/inventory/purchases",
        headers=_auth_headers("manager"),
        json=_purchase_body(item_id, rid, quantity="0"),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_AMOUNT"

    item = client.get(f"/inventory/items/{item_id}", headers=_auth_headers("cook"))
    assert Decimal(item.json()["current_stock"]) == Decimal("0")


def test_cook_can_log_consumption_but_not_purchases():
    item_id, rid = _setup_item_and_remittance()

    denied = client.post(
        "/inventory/purchases",
        headers=_auth_headers("cook"),
        json=_purchase_body(item_id, rid),
    )
    assert denied.status_code == 403

    used = client.post(
        "/inventory/consumptions",
        headers=_auth_headers("cook"),
        json={"item_id": item_id, "quantity_used": "2", "logged_by": "Cook"},
    )
    assert used.status_code == 200, used.text

    item = client.get(f"/inventory/items/{item_id}", headers=_auth_headers("cook"))
    assert Decimal(item.json()["current_stock"]) == Decimal("-2")


def test_purchase_edit_applies_difference():
    item_id, rid = _setup_item_and_remittance()
    created = client.post("/inventory/purchases", headers=_auth_headers("manager"), json=_purchase_body(item_id, rid))
    assert created.status_code == 200, created.text

    edited = client.patch(
        f"/inventory/purchases/{created.json()['id']}",
        headers=_auth_headers("manager"),
        json={"quantity": "12"},
    )
    assert edited.status_code == 200, edited.text

    item = client.get(f"/inventory/items/{item_id}", headers=_auth_headers("cook"))
    assert Decimal(item.json()["current_stock"]) == Decimal("12")

    drift = client.get(f"/inventory/items/{item_id}/reconciliation", headers=_auth_headers("manager"))
    assert drift.status_code == 200
    assert drift.json()["ok"] is True


def test_low_stock_filter_lists_items_below_threshold():
    item_id, _ = _setup_item_and_remittance()
    client.post("/inventory/items", headers=_auth_headers("manager"), json={"name": "Salt", "unit": "kg", "minimum_threshold": "0"})

    resp = client.get("/inventory/items?low_stock_only=true", headers=_auth_headers("cook"))
    assert resp.status_code == 200
    assert [row["id"] for row in resp.json()] == [item_id]


def test_item_with_purchases_cannot_be_deleted():
    item_id, rid = _setup_item_and_remittance()
    client.post("/inventory/purchases", headers=_auth_headers("manager"), json=_purchase_body(item_id, rid))

    resp = client.delete(f"/inventory/items/{item_id}", headers=_auth_headers("manager"))
    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_STATE"


def test_null_item_id_on_edit_is_a_validation_error():
    item_id, rid = _setup_item_and_remittance()
    purchase = client.post("/inventory/purchases", headers=_auth_headers("manager"), json=_purchase_body(item_id, rid))
    assert purchase.status_code == 200, purchase.text
    consumption = client.post(
        "/inventory/consumptions",
        headers=_auth_headers("cook"),
        json={"item_id": item_id, "quantity_used": "1", "logged_by": "Cook"},
    )
    assert consumption.status_code == 200, consumption.text

    for path, role in (
        (f"/inventory/purchases/{purchase.json()['id']}", "manager"),
        (f"/inventory/consumptions/{consumption.json()['id']}", "cook"),
    ):
        resp = client.patch(path, headers=_auth_headers(role), json={"item_id": None})
        assert resp.status_code == 400, resp.text
        assert resp.json()["code"] == "VALIDATION_ERROR"
        assert resp.json()["context"]["field"] == "item_id"

    item = client.get(f"/inventory/items/{item_id}", headers=_auth_headers("cook"))
    assert Decimal(item.json()["current_stock"]) == Decimal("4")


def test_failed_stock_step_reports_reconciliation_error(monkeypatch):
    item_id, _ = _setup_item_and_remittance()

    def broken(db, item_id, quantity):
        raise SQLAlchemyError("counter write failed")

    monkeypatch.setattr(stock_ledger, "apply_consumption", broken)

    resp = client.post(
        "/inventory/consumptions",
        headers=_auth_headers("cook"),
        json={"item_id": item_id, "quantity_used": "2", "logged_by": "Cook"},
    )
    assert resp.status_code == 500
    assert resp.json()["code"] == "RECONCILIATION_FAILED"
    assert resp.json()["context"]["step"] == "consumption.create"

    listed = client.get("/inventory/consumptions", headers=_auth_headers("cook"))
    assert listed.status_code == 200
    assert listed.json() == []
    item = client.get(f"/inventory/items/{item_id}", headers=_auth_headers("cook"))
    assert Decimal(item.json()["current_stock"]) == Decimal("0")
