from decimal import Decimal

import pytest

from conftest import cart_count
from services.cart import CartStore
from services.errors import InsufficientStockError, NotFoundError, ValidationError
from services.unit_of_work import ReadOnlyHandle, transaction

carts = CartStore()


def test_add_merges_lines_for_same_product(db, seed):
    ana, sofa = seed.users["ana"], seed.products["sofa"]
    with transaction(db) as tx:
        carts.add(tx, ana, sofa, 2)
    with transaction(db) as tx:
        carts.add(tx, ana, sofa, 1)

    lines = carts.list_for_user(ReadOnlyHandle(db), ana)
    assert len(lines) == 1
    assert lines[0].quantity == 3
    assert lines[0].unit_price == Decimal("100.00")
    assert lines[0].category == "Salas"


def test_add_rejects_merged_quantity_above_stock(db, seed):
    ana, sofa = seed.users["ana"], seed.products["sofa"]
    with transaction(db) as tx:
        carts.add(tx, ana, sofa, 4)

    with pytest.raises(InsufficientStockError) as exc:
        with transaction(db) as tx:
            carts.add(tx, ana, sofa, 2)
    assert exc.value.requested == 6
    assert exc.value.available == 5
    assert carts.list_for_user(ReadOnlyHandle(db), ana)[0].quantity == 4


def test_add_unknown_product_or_bad_quantity(db, seed):
    with pytest.raises(NotFoundError):
        with transaction(db) as tx:
            carts.add(tx, seed.users["ana"], 9999, 1)
    with pytest.raises(ValidationError):
        with transaction(db) as tx:
            carts.add(tx, seed.users["ana"], seed.products["sofa"], 0)


def test_update_remove_and_clear(db, seed):
    ana = seed.users["ana"]
    with transaction(db) as tx:
        carts.add(tx, ana, seed.products["sofa"], 1)
        carts.add(tx, ana, seed.products["lampara"], 1)
    with transaction(db) as tx:
        carts.update_quantity(tx, ana, seed.products["lampara"], 4)
    assert {l.product_id: l.quantity for l in carts.list_for_user(ReadOnlyHandle(db), ana)} == {
        seed.products["sofa"]: 1,
        seed.products["lampara"]: 4,
    }

    with transaction(db) as tx:
        carts.remove(tx, ana, seed.products["sofa"])
    with pytest.raises(NotFoundError):
        with transaction(db) as tx:
            carts.remove(tx, ana, seed.products["sofa"])

    with transaction(db) as tx:
        assert carts.clear(tx, ana) == 1
    assert cart_count(db, ana) == 0


def test_carts_are_per_user(db, seed):
    with transaction(db) as tx:
        carts.add(tx, seed.users["ana"], seed.products["sofa"], 1)
    assert carts.list_for_user(ReadOnlyHandle(db), seed.users["luis"]) == []


# ---- HTTP ----

def test_cart_api_flow(client, ana_headers, seed):
    r = client.post("/cart/add", json={"product_id": seed.products["sofa"], "quantity": 2}, headers=ana_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["total_items"] == 2
    assert Decimal(body["subtotal"]) == Decimal("200.00")
    assert Decimal(body["tax"]) == Decimal("32.00")
    assert Decimal(body["total"]) == Decimal("382.00")

    r = client.put(f"/cart/items/{seed.products['sofa']}", json={"quantity": 1}, headers=ana_headers)
    assert r.status_code == 200
    assert r.json()["items"][0]["quantity"] == 1

    r = client.delete(f"/cart/items/{seed.products['sofa']}", headers=ana_headers)
    assert r.status_code == 200
    assert r.json()["items"] == []
    assert Decimal(r.json()["total"]) == Decimal("0.00")


def test_cart_api_maps_errors(client, ana_headers, seed):
    r = client.post("/cart/add", json={"product_id": seed.products["silla"], "quantity": 2}, headers=ana_headers)
    assert r.status_code == 409
    assert r.json()["detail"]["kind"] == "insufficient_stock"

    r = client.post("/cart/add", json={"product_id": 9999, "quantity": 1}, headers=ana_headers)
    assert r.status_code == 404

    r = client.delete(f"/cart/items/{seed.products['sofa']}", headers=ana_headers)
    assert r.status_code == 404


def test_cart_requires_authentication(client):
    assert client.get("/cart").status_code in (401, 403)


def test_clear_cart_endpoint(client, ana_headers, seed, db):
    client.post("/cart/add", json={"product_id": seed.products["sofa"], "quantity": 1}, headers=ana_headers)
    client.post("/cart/add", json={"product_id": seed.products["lampara"], "quantity": 1}, headers=ana_headers)

    r = client.delete("/cart", headers=ana_headers)
    assert r.status_code == 200
    assert r.json()["total_items"] == 0
    assert cart_count(db, seed.users["ana"]) == 0
