from shoppers.models.product import Product
from tests.conftest import make_product


def stock_url(product):
    return f"/api/inventory/products/{product.id}/variants/{product.variants[0].id}/stock"


def test_set_to_zero_deactivates_product(client, session, admin_headers, product):
    response = client.put(stock_url(product), json={"stock": 0}, headers=admin_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["previousStock"] == 20
    assert data["newStock"] == 0
    assert data["variant"]["stockStatus"] == "out_of_stock"

    session.expire_all()
    assert session.get(Product, product.id).is_active is False

    detailed = client.get("/api/inventory/detailed?stockStatus=out_of_stock", headers=admin_headers).json()["data"]
    assert [p["id"] for p in detailed["products"]] == [product.id]
    assert detailed["products"][0]["isActive"] is False
    assert detailed["products"][0]["outOfStockVariants"] == 1

    # restocking brings it back
    client.put(stock_url(product), json={"stock": 4, "operation": "increase"}, headers=admin_headers)
    session.expire_all()
    assert session.get(Product, product.id).is_active is True


def test_decrease_beyond_stock(client, admin_headers, product):
    response = client.put(stock_url(product), json={"stock": 25, "operation": "decrease"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Insufficient stock. Available: 20, Requested: 25"


def test_unknown_variant(client, admin_headers, product):
    response = client.put(f"/api/inventory/products/{product.id}/variants/999/stock",
                          json={"stock": 1}, headers=admin_headers)
    assert response.status_code == 404


def test_detailed_status_filter_pages_matching_products(client, session, admin_headers):
    for i, stock in enumerate([3, 40, 2, 8]):
        make_product(session, f"Item {i}", f"ITEM-{i}", stock=stock)

    data = client.get("/api/inventory/detailed?stockStatus=critical&limit=1", headers=admin_headers).json()["data"]
    assert data["pagination"]["total"] == 2
    assert [p["name"] for p in data["products"]] == ["Item 0"]
    assert [v["stockStatus"] for v in data["products"][0]["variants"]] == ["critical"]

    data = client.get("/api/inventory/detailed?stockStatus=critical&page=2&limit=1", headers=admin_headers).json()["data"]
    assert [p["name"] for p in data["products"]] == ["Item 2"]

    data = client.get("/api/inventory/detailed?search=item_", headers=admin_headers).json()["data"]
    assert data["pagination"]["total"] == 0


def test_bulk_update_keeps_good_rows(client, session, admin_headers, product):
    make_product(session, "Polo", "POLO-M", stock=3)
    response = client.post("/api/inventory/bulk-update", headers=admin_headers, json={"updates": [
        {"sku": "TEE-BLK-M", "newStock": 7},
        {"sku": "MISSING", "newStock": 1},
        {"sku": "POLO-M", "newStock": -2},
        {"sku": "POLO-M", "newStock": 30},
    ]})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["successful"] == 2
    assert data["total"] == 4
    assert [f["sku"] for f in data["failed"]] == ["MISSING", "POLO-M"]
    assert response.json()["message"] == "Bulk update completed: 2 successful, 2 failed"


def test_bulk_update_limits(client, admin_headers):
    assert client.post("/api/inventory/bulk-update", headers=admin_headers, json={"updates": []}).status_code == 400
    too_many = [{"sku": f"S{i}", "newStock": 1} for i in range(101)]
    assert client.post("/api/inventory/bulk-update", headers=admin_headers, json={"updates": too_many}).status_code == 400


def test_overview_and_alerts(client, session, admin_headers, product):
    make_product(session, "Polo", "POLO-M", stock=3)
    make_product(session, "Cap", "CAP-1", stock=8)

    overview = client.get("/api/inventory/overview", headers=admin_headers).json()["data"]
    assert overview["totalVariants"] == 3
    assert overview["totalStock"] == 31
    assert overview["criticalStockItems"] == 1
    assert overview["lowStockItems"] == 1

    alerts = client.get("/api/inventory/alerts", headers=admin_headers).json()["data"]
    assert alerts["count"] == 2
    assert [a["severity"] for a in alerts["alerts"]] == ["critical", "low"]


def test_reorder_suggestions(client, session, admin_headers, product):
    make_product(session, "Polo", "POLO-M", stock=0)
    data = client.get("/api/inventory/reorder-suggestions?threshold=5", headers=admin_headers).json()["data"]
    assert data["count"] == 1
    variant = data["suggestions"][0]["lowStockVariants"][0]
    assert variant["sku"] == "POLO-M"
    assert variant["priority"] == "urgent"
    assert variant["suggestedReorder"] == 50


def test_check_stock_is_public(client, product):
    variant_id = product.variants[0].id
    response = client.post("/api/inventory/check-stock", json={"items": [
        {"productId": product.id, "variantId": variant_id, "quantity": 2},
        {"productId": product.id, "variantId": variant_id + 100, "quantity": 1},
    ]})
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Some items are unavailable"
    assert body["data"]["inStock"] is False
    assert body["data"]["unavailableItems"][0]["available"] == 0
    assert len(body["data"]["availableItems"]) == 1


def test_inventory_requires_admin(client, user_headers):
    assert client.get("/api/inventory/overview", headers=user_headers).status_code == 403
