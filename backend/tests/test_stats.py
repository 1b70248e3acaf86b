from decimal import Decimal

from services.ledger import OrderLedger
from services.unit_of_work import ReadOnlyHandle

ledger = OrderLedger()


def test_reports_reflect_committed_orders(service, db, seed, shipping, fill_cart):
    fill_cart(seed.users["ana"], (seed.products["sofa"], 2), (seed.products["lampara"], 1))
    service.checkout(seed.users["ana"], shipping, "tarjeta")
    fill_cart(seed.users["luis"], (seed.products["lampara"], 2))
    service.checkout(seed.users["luis"], shipping, "tarjeta")

    reader = ReadOnlyHandle(db)
    by_category = {r["category"]: r for r in ledger.sales_by_category(reader)}
    assert by_category["Salas"]["total_sales"] == Decimal("200.00")
    assert by_category["Dormitorios"]["sales_count"] == 2
    assert by_category["Dormitorios"]["total_sales"] == Decimal("150.00")

    summary = ledger.sales_summary(reader)
    # (250 * 1.16 + 150) and (100 * 1.16 + 150)
    assert summary["total_orders"] == 2
    assert summary["total_sales"] == Decimal("706.00")
    assert summary["average_sale"] == Decimal("353.00")

    inventory = {r["name"]: r for r in ledger.detailed_inventory(reader)}
    assert inventory["Lámpara Coral"]["units_sold"] == 3
    assert inventory["Sofá Oslo"]["stock_on_hand"] == 3

    salas = next(r for r in ledger.inventory_by_category(reader) if r["category"] == "Salas")
    assert (salas["stock_on_hand"], salas["stock_initial"]) == (3, 5)


def test_empty_summary(db, seed):
    summary = ledger.sales_summary(ReadOnlyHandle(db))
    assert summary == {"total_orders": 0, "total_sales": Decimal("0.00"), "average_sale": Decimal("0.00")}


def test_stats_endpoints_are_admin_only(client, ana_headers, admin_headers):
    for path in ("/stats/sales-by-category", "/stats/summary", "/stats/inventory-by-category", "/stats/inventory"):
        assert client.get(path, headers=ana_headers).status_code == 403
        assert client.get(path, headers=admin_headers).status_code == 200

    rows = client.get("/stats/inventory", headers=admin_headers).json()
    assert {r["name"] for r in rows} == {"Sofá Oslo", "Lámpara Coral", "Silla Viena"}
    assert all(r["units_sold"] == 0 for r in rows)
