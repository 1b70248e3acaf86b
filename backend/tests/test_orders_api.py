from decimal import Decimal

import pytest

from conftest import cart_count
from models.log import AuditEntry
from models.order import Order
from models.product import Product
from services.unit_of_work import transaction

SHIPPING = {
    "name": "Ana López",
    "address": "Av. Reforma 123",
    "city": "Ciudad de México",
    "postal_code": "06600",
    "phone": "5512345678",
    "country": "México",
    "payment_method": "tarjeta",
}


def add(client, headers, product_id, quantity):
    r = client.post("/cart/add", json={"product_id": product_id, "quantity": quantity}, headers=headers)
    assert r.status_code == 200, r.text


def checkout_actions(db):
    db.expire_all()
    return [e.status for e in db.query(AuditEntry).filter(AuditEntry.action == "CHECKOUT").order_by(AuditEntry.id)]


def test_checkout_endpoint(client, ana_headers, seed, db, notifier):
    add(client, ana_headers, seed.products["sofa"], 2)

    r = client.post("/orders/checkout", json={**SHIPPING, "coupon_code": "HOGAR10"}, headers=ana_headers)

    assert r.status_code == 201, r.text
    body = r.json()
    assert body["notified"] is True
    assert Decimal(body["totals"]["total"]) == Decimal("358.80")
    assert Decimal(body["totals"]["discount"]) == Decimal("20.00")
    assert len(notifier.invoices) == 1
    assert cart_count(db, seed.users["ana"]) == 0
    assert checkout_actions(db) == ["SUCCESS"]


def test_checkout_reports_failed_notification(client, ana_headers, seed, db, notifier):
    notifier.fail = True
    add(client, ana_headers, seed.products["sofa"], 1)

    r = client.post("/orders/checkout", json=SHIPPING, headers=ana_headers)

    assert r.status_code == 201
    body = r.json()
    assert body["notified"] is False
    assert body["notification_error"]
    db.expire_all()
    assert db.get(Order, body["order_id"]).status == "notification_failed"
    assert checkout_actions(db) == ["DEGRADED"]

    notifier.fail = False
    r = client.post(f"/orders/{body['order_id']}/send-invoice", headers=ana_headers)
    assert r.status_code == 200
    assert r.json() == {"order_id": body["order_id"], "notified": True}


def test_resend_failure_maps_to_bad_gateway(client, ana_headers, seed, notifier):
    add(client, ana_headers, seed.products["sofa"], 1)
    order_id = client.post("/orders/checkout", json=SHIPPING, headers=ana_headers).json()["order_id"]

    notifier.fail = True
    r = client.post(f"/orders/{order_id}/send-invoice", headers=ana_headers)
    assert r.status_code == 502
    assert r.json()["detail"]["kind"] == "notification"


@pytest.mark.parametrize(
    "prepare, payload, status, kind",
    [
        (None, {}, 400, "empty_cart"),
        ("sofa", {"coupon_code": "USADO50"}, 400, "invalid_coupon"),
        ("sofa", {"address": "   "}, 400, "validation"),
        ("sold_out", {}, 409, "insufficient_stock"),
    ],
)
def test_checkout_error_mapping(client, ana_headers, seed, db, prepare, payload, status, kind):
    if prepare == "sofa":
        add(client, ana_headers, seed.products["sofa"], 1)
    elif prepare == "sold_out":
        add(client, ana_headers, seed.products["silla"], 1)
        with transaction(db):
            db.get(Product, seed.products["silla"]).stock_on_hand = 0

    r = client.post("/orders/checkout", json={**SHIPPING, **payload}, headers=ana_headers)

    assert r.status_code == status, r.text
    assert r.json()["detail"]["kind"] == kind
    db.expire_all()
    assert db.query(Order).count() == 0
    assert checkout_actions(db) == ["FAIL"]


def test_duplicate_idempotency_key_returns_conflict(client, ana_headers, seed):
    headers = {**ana_headers, "Idempotency-Key": "pedido-77"}
    add(client, ana_headers, seed.products["sofa"], 1)
    first = client.post("/orders/checkout", json=SHIPPING, headers=headers)
    assert first.status_code == 201

    add(client, ana_headers, seed.products["sofa"], 1)
    again = client.post("/orders/checkout", json=SHIPPING, headers=headers)
    assert again.status_code == 409
    assert again.json()["detail"] == {
        "kind": "duplicate_checkout",
        "message": again.json()["detail"]["message"],
        "order_id": first.json()["order_id"],
    }


def test_missing_body_fields_fail_validation(client, ana_headers):
    r = client.post("/orders/checkout", json={"name": "Ana"}, headers=ana_headers)
    assert r.status_code == 422


def test_order_listing_and_detail(client, ana_headers, luis_headers, admin_headers, seed):
    for qty in (1, 2):
        add(client, ana_headers, seed.products["lampara"], qty)
        assert client.post("/orders/checkout", json=SHIPPING, headers=ana_headers).status_code == 201

    page = client.get("/orders", params={"page_size": 1}, headers=ana_headers).json()
    assert page["total"] == 2
    assert len(page["items"]) == 1

    order_id = page["items"][0]["id"]
    detail = client.get(f"/orders/{order_id}", headers=ana_headers)
    assert detail.status_code == 200
    assert detail.json()["items"][0]["product_name"] == "Lámpara Coral"
    assert detail.json()["status"] == "notified"

    assert client.get(f"/orders/{order_id}", headers=luis_headers).status_code == 404
    assert client.get(f"/orders/{order_id}", headers=admin_headers).status_code == 200
    assert client.get("/orders", headers=luis_headers).json()["total"] == 0


def test_invoice_download(client, ana_headers, luis_headers, seed):
    add(client, ana_headers, seed.products["sofa"], 1)
    order_id = client.post("/orders/checkout", json=SHIPPING, headers=ana_headers).json()["order_id"]

    r = client.get(f"/orders/{order_id}/invoice", headers=ana_headers)
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert r.content.startswith(b"%PDF")

    assert client.get(f"/orders/{order_id}/invoice", headers=luis_headers).status_code == 403
    assert client.get("/orders/999/invoice", headers=ana_headers).status_code == 404
