from decimal import Decimal

from models.cart import CartItem
from models.order import OrderItem
from models.product import Product


def test_catalog_is_public(client, seed):
    r = client.get("/shop/products", params={"category": "Dormitorio"})
    assert r.status_code == 200
    assert [p["name"] for p in r.json()["items"]] == ["Lámpara Coral"]

    assert client.get("/shop/categories").json() == ["Comedores", "Dormitorios", "Salas"]
    assert client.get(f"/shop/products/{seed.products['sofa']}").json()["stock_on_hand"] == 5
    assert client.get("/shop/products/9999").status_code == 404


def test_admin_creates_and_restocks_products(client, admin_headers, ana_headers):
    payload = {"name": "Vitrina Colonial", "price": "7450.00", "category": "Comedores", "stock": 5}
    assert client.post("/admin/products", json=payload, headers=ana_headers).status_code == 403

    r = client.post("/admin/products", json=payload, headers=admin_headers)
    assert r.status_code == 201
    product = r.json()
    assert Decimal(product["price"]) == Decimal("7450.00")
    assert product["stock_on_hand"] == 5

    r = client.put(f"/admin/products/{product['id']}/stock", json={"stock": 9}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["stock_on_hand"] == 9

    r = client.put("/admin/products/9999/stock", json={"stock": 1}, headers=admin_headers)
    assert r.status_code == 404


def test_admin_lists_users(client, admin_headers, ana_headers):
    assert client.get("/admin/users", headers=ana_headers).status_code == 403

    r = client.get("/admin/users", params={"q": "novahogar", "sort_by": "email"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["total"] == 3
    assert r.json()["items"][0]["email"] == "admin@novahogar.mx"


CHECKOUT_BODY = {
    "name": "Ana López", "address": "Av. Reforma 123", "city": "Ciudad de México",
    "postal_code": "06600", "phone": "5512345678", "country": "México", "payment_method": "tarjeta",
}


def test_editing_a_product_leaves_past_orders_untouched(client, admin_headers, ana_headers, seed, db):
    sofa = seed.products["sofa"]
    client.post("/cart/add", json={"product_id": sofa, "quantity": 2}, headers=ana_headers)
    order_id = client.post("/orders/checkout", json=CHECKOUT_BODY, headers=ana_headers).json()["order_id"]

    r = client.put(f"/admin/products/{sofa}", json={"name": "Sofá Oslo XL", "price": "180.00"},
                   headers=admin_headers)
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "Sofá Oslo XL"
    assert Decimal(r.json()["price"]) == Decimal("180.00")
    assert r.json()["category"] == "Salas"

    db.expire_all()
    line = db.query(OrderItem).filter(OrderItem.order_id == order_id).one()
    assert line.product_name == "Sofá Oslo"
    assert line.unit_price == Decimal("100.00")

    detail = client.get(f"/orders/{order_id}", headers=ana_headers).json()
    assert detail["items"][0]["product_name"] == "Sofá Oslo"
    assert Decimal(detail["items"][0]["unit_price"]) == Decimal("100.00")
    assert Decimal(detail["subtotal"]) == Decimal("200.00")


def test_product_update_validation(client, admin_headers, ana_headers, seed):
    sofa = seed.products["sofa"]
    assert client.put(f"/admin/products/{sofa}", json={"price": "1.00"}, headers=ana_headers).status_code == 403
    assert client.put(f"/admin/products/{sofa}", json={"price": "-1"}, headers=admin_headers).status_code == 422
    assert client.put(f"/admin/products/{sofa}", json={"name": ""}, headers=admin_headers).status_code == 422
    assert client.put("/admin/products/9999", json={"price": "1.00"}, headers=admin_headers).status_code == 404


def test_ordered_product_cannot_be_deleted(client, admin_headers, ana_headers, seed, db):
    lampara = seed.products["lampara"]
    client.post("/cart/add", json={"product_id": lampara, "quantity": 1}, headers=ana_headers)
    assert client.post("/orders/checkout", json=CHECKOUT_BODY, headers=ana_headers).status_code == 201

    r = client.delete(f"/admin/products/{lampara}", headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["detail"]["kind"] == "product_in_use"

    db.expire_all()
    assert db.query(Product).filter(Product.id == lampara).count() == 1


def test_delete_unused_product_clears_cart_lines(client, admin_headers, luis_headers, seed, db):
    silla = seed.products["silla"]
    client.post("/cart/add", json={"product_id": silla, "quantity": 1}, headers=luis_headers)

    assert client.delete(f"/admin/products/{silla}", headers=luis_headers).status_code == 403
    r = client.delete(f"/admin/products/{silla}", headers=admin_headers)
    assert r.status_code == 200, r.text

    db.expire_all()
    assert db.query(Product).filter(Product.id == silla).count() == 0
    assert db.query(CartItem).filter(CartItem.product_id == silla).count() == 0
    assert client.get(f"/shop/products/{silla}").status_code == 404
    assert client.delete(f"/admin/products/{silla}", headers=admin_headers).status_code == 404
