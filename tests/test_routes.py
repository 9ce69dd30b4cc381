"""
HTTP surface through FastAPI's TestClient. Every request gets its own
session from the test database; the fixture session is closed first.
"""

import pytest
from fastapi.testclient import TestClient

from config.database import get_db
from common.security import create_access_token
from main import app


@pytest.fixture
def client(db, seed, session_factory):
    db.close()

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user_id):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user_id)})}"}


def _create_bill(client, seed, **extra):
    body = {
        "customer_id": seed.customer_id,
        "items": [{"product_id": seed.shirt_id, "quantity": 1, "unit_price": "800"}],
        "tax_amount": "144",
    }
    body.update(extra)
    return client.post("/api/bills", json=body, headers=auth(seed.member_id))


def test_requests_without_token_are_rejected(client):
    assert client.get("/api/bills").status_code == 401
    assert client.get("/api/bills", headers={"Authorization": "Bearer nonsense"}).status_code == 401


def test_inactive_user_is_rejected(client, seed):
    assert client.get("/api/bills", headers=auth(seed.former_id)).status_code == 401


def test_create_pay_and_fetch_bill(client, seed):
    r = _create_bill(client, seed)
    assert r.status_code == 201
    bill = r.json()["bill"]
    assert bill["final_amount"] == 944.0
    assert bill["payment_status"] == "PENDING"

    r = client.post(f"/api/bills/{bill['id']}/payments", json={"amount": "500", "method": "cash"},
                    headers=auth(seed.member_id))
    assert r.status_code == 201
    assert r.json()["payment_status"] == "PARTIAL"

    r = client.get(f"/api/bills/{bill['id']}", headers=auth(seed.member_id))
    detail = r.json()["bill"]
    assert detail["paid_amount"] == 500.0
    assert detail["balance_due"] == 444.0

    r = client.get(f"/api/bills/{bill['id']}/payments", headers=auth(seed.member_id))
    assert [p["method"] for p in r.json()["payments"]] == ["CASH"]


def test_business_errors_render_as_json(client, seed):
    r = client.post("/api/bills", json={
        "customer_id": seed.customer_id,
        "items": [{"product_id": seed.sold_out_id, "quantity": 1, "unit_price": "4200"}],
    }, headers=auth(seed.member_id))
    assert r.status_code == 409
    body = r.json()
    assert body["success"] is False
    assert body["code"] == "insufficient_stock"
    assert body["detail"]["product_id"] == seed.sold_out_id

    r = client.get("/api/bills/98765", headers=auth(seed.member_id))
    assert r.status_code == 404


def test_cancel_requires_admin(client, seed):
    bill_id = _create_bill(client, seed).json()["bill"]["id"]

    r = client.post(f"/api/bills/{bill_id}/cancel", json={"reason": "test"}, headers=auth(seed.member_id))
    assert r.status_code == 403

    r = client.post(f"/api/bills/{bill_id}/cancel", json={"reason": "test"}, headers=auth(seed.admin_id))
    assert r.status_code == 200
    assert r.json()["status"] == "CANCELLED"

    r = client.post(f"/api/bills/{bill_id}/cancel", json={"reason": "again"}, headers=auth(seed.admin_id))
    assert r.status_code == 409
    assert r.json()["code"] == "already_cancelled"


def test_update_and_list_bills(client, seed):
    bill_id = _create_bill(client, seed).json()["bill"]["id"]

    r = client.put(f"/api/bills/{bill_id}", json={
        "items": [{"product_id": seed.fabric_id, "quantity": "2", "unit_price": "350", "unit": "m"}],
    }, headers=auth(seed.member_id))
    assert r.status_code == 200
    assert r.json()["bill"]["subtotal"] == 700.0

    r = client.get("/api/bills", params={"customer_id": seed.customer_id}, headers=auth(seed.member_id))
    body = r.json()
    assert body["pagination"]["total"] == 1
    assert body["bills"][0]["item_count"] == 1


def test_share_link(client, seed):
    bill_id = _create_bill(client, seed).json()["bill"]["id"]
    r = client.post(f"/api/bills/{bill_id}/share", json={"phone_number": "98765 43210"},
                    headers=auth(seed.member_id))
    assert r.status_code == 200
    assert r.json()["url"].startswith("https://web.whatsapp.com/send?phone=919876543210")

    r = client.post(f"/api/bills/{bill_id}/share", json={"phone_number": "123"}, headers=auth(seed.member_id))
    assert r.status_code == 400


def test_reports_endpoints(client, seed):
    _create_bill(client, seed)

    assert client.get("/api/reports/daily", headers=auth(seed.member_id)).status_code == 403

    r = client.get("/api/reports/daily", headers=auth(seed.admin_id))
    assert r.json()["report"]["bill_count"] == 1

    r = client.get("/api/reports/stats", headers=auth(seed.admin_id))
    assert r.json()["stats"]["total_bills"] == 1

    r = client.get("/api/reports/daily.xlsx", headers=auth(seed.admin_id))
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/vnd.openxmlformats")


def test_customer_product_and_stock_endpoints(client, seed):
    r = client.post("/api/customers", json={"first_name": "Nisha", "phone": "9000000001"},
                    headers=auth(seed.member_id))
    assert r.status_code == 201
    customer_id = r.json()["customer"]["id"]
    assert client.get(f"/api/customers/{customer_id}", headers=auth(seed.member_id)).json()["customer"]["name"] == "Nisha"

    r = client.post("/api/customers", json={"first_name": "Copy", "phone": "9000000001"},
                    headers=auth(seed.member_id))
    assert r.status_code == 409

    r = client.post("/api/products", json={"name": "Denim Jeans", "sku": "jns-32", "selling_price": "1499",
                                           "opening_stock": "4"}, headers=auth(seed.admin_id))
    assert r.status_code == 201
    product = r.json()["product"]
    assert product["sku"] == "JNS-32"

    r = client.get(f"/api/products/{product['id']}/price", headers=auth(seed.member_id))
    assert r.json()["unit_price"] == 1499.0

    r = client.post(f"/api/inventory/{product['id']}/restock", json={"quantity": "6"}, headers=auth(seed.admin_id))
    assert r.json()["available"] == 10.0

    low = client.get("/api/products/low-stock", headers=auth(seed.member_id)).json()["products"]
    assert [p["sku"] for p in low] == ["BLZ-LIN"]


def test_lookup_by_bill_number(client, seed):
    bill = _create_bill(client, seed).json()["bill"]
    r = client.get(f"/api/bills/by-number/{bill['bill_number'].lower()}", headers=auth(seed.member_id))
    assert r.status_code == 200
    assert r.json()["bill"]["id"] == bill["id"]


def test_oversized_amounts_are_validation_errors(client, seed):
    bill_id = _create_bill(client, seed).json()["bill"]["id"]

    r = client.post(f"/api/bills/{bill_id}/payments", json={"amount": "1e30", "method": "CASH"},
                    headers=auth(seed.member_id))
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_payment"

    r = client.post("/api/bills", json={
        "customer_id": seed.customer_id,
        "items": [{"custom_name": "Alteration", "quantity": 1, "unit_price": "1e30"}],
    }, headers=auth(seed.member_id))
    assert r.status_code == 400
    assert r.json()["detail"]["field"] == "unit_price"
