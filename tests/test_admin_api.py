from datetime import datetime, timedelta, timezone

import pytest

from tests.conftest import make_product
from tests.test_orders_api import ADDRESS, add_to_cart


def place_order(client, headers, product, quantity=2):
    add_to_cart(client, headers, product, quantity)
    return client.post("/api/orders/", headers=headers, json={"shippingAddress": ADDRESS}).json()["data"]["orderNumber"]


@pytest.fixture
def order_numbers(client, user_headers, product):
    return [place_order(client, user_headers, product), place_order(client, user_headers, product, 1)]


def test_bulk_order_status_reports_each_order(client, user_headers, admin_headers, order_numbers):
    first, second = order_numbers
    client.put(f"/api/orders/{second}/cancel", headers=user_headers)

    response = client.post("/api/admin/bulk/orders/update-status", headers=admin_headers, json={
        "orderNumbers": [first, second, "ORD-MISSING"], "status": "shipped",
    })
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["successful"] == 1
    assert data["total"] == 3
    assert data["successRate"] == "33.3%"
    assert data["failed"] == [
        {"orderNumber": second, "error": "Cancelled orders cannot be updated"},
        {"orderNumber": "ORD-MISSING", "error": "Order not found"},
    ]

    order = client.get(f"/api/admin/orders/{first}", headers=admin_headers).json()["data"]
    assert order["status"] == "shipped"

    empty = client.post("/api/admin/bulk/orders/update-status", headers=admin_headers,
                        json={"orderNumbers": [], "status": "shipped"})
    assert empty.status_code == 400


def test_bulk_product_status(client, session, admin_headers, product):
    other = make_product(session, "Denim Jacket", "DNM-1")

    response = client.post("/api/admin/bulk/products/update-status", headers=admin_headers, json={
        "productIds": [product.id, other.id, 999], "isActive": False,
    })
    data = response.json()["data"]
    assert data == {"updated": 2, "notFound": [999]}
    assert client.get("/api/products/").json()["data"]["pagination"]["total"] == 0

    client.post("/api/admin/bulk/products/update-status", headers=admin_headers,
                json={"productIds": [other.id], "isActive": True})
    names = [p["name"] for p in client.get("/api/products/").json()["data"]["products"]]
    assert names == ["Denim Jacket"]


def test_export_orders_by_date_range(client, admin_headers, order_numbers):
    data = client.get("/api/admin/export/orders", headers=admin_headers).json()["data"]
    assert data["count"] == 2
    assert {o["orderNumber"] for o in data["orders"]} == set(order_numbers)
    assert data["orders"][0]["customer"]["email"] == "shopper@example.com"

    tomorrow = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
    later = client.get("/api/admin/export/orders", headers=admin_headers, params={"startDate": tomorrow})
    assert later.json()["data"]["count"] == 0

    yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    window = client.get("/api/admin/export/orders", headers=admin_headers,
                        params={"startDate": yesterday, "endDate": tomorrow})
    assert window.json()["data"]["count"] == 2


def test_export_users(client, user, admin_headers):
    data = client.get("/api/admin/export/users", headers=admin_headers).json()["data"]
    assert data["count"] == 2
    assert {u["email"] for u in data["users"]} == {"shopper@example.com", "admin@example.com"}


def test_system_health(client, admin_headers):
    data = client.get("/api/admin/system/health", headers=admin_headers).json()["data"]
    assert data["status"] == "healthy"
    assert data["database"] == "connected"
    assert data["uptime"].endswith("minutes")


def test_admin_tools_require_admin(client, user_headers):
    assert client.get("/api/admin/export/users", headers=user_headers).status_code == 403
    assert client.get("/api/admin/system/health", headers=user_headers).status_code == 403
    response = client.post("/api/admin/bulk/products/update-status", headers=user_headers,
                           json={"productIds": [1], "isActive": False})
    assert response.status_code == 403


class TestSearchExtras:
    def test_autocomplete_mixes_suggestion_types(self, client, categories, product):
        data = client.get("/api/search/autocomplete?q=tee").json()["data"]
        assert [(s["text"], s["type"]) for s in data["suggestions"]] == [("Classic Tee", "product")]

        data = client.get("/api/search/autocomplete?q=me").json()["data"]
        kinds = {(s["text"], s["type"]) for s in data["suggestions"]}
        assert kinds == {("Men", "category"), ("Women", "category"), ("Acme", "brand")}

        assert client.get("/api/search/autocomplete?q=t").json()["data"]["suggestions"] == []

    def test_trending_follows_recent_orders(self, client, session, user_headers, product):
        jacket = make_product(session, "Denim Jacket", "DNM-1")
        assert client.get("/api/search/trending").json()["data"]["searches"] == []

        add_to_cart(client, user_headers, jacket, quantity=1)
        add_to_cart(client, user_headers, product, quantity=3)
        client.post("/api/orders/", headers=user_headers, json={"shippingAddress": ADDRESS})

        searches = client.get("/api/search/trending").json()["data"]["searches"]
        assert searches == ["Classic Tee", "Denim Jacket"]
        popular = client.get("/api/search/autocomplete?q=t").json()["data"]["popularSearches"]
        assert popular == searches
