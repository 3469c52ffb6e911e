import pytest

from tests.conftest import make_product
from tests.test_orders_api import ADDRESS, add_to_cart


@pytest.fixture
def order_number(client, user_headers, product):
    add_to_cart(client, user_headers, product)
    return client.post("/api/orders/", headers=user_headers, json={"shippingAddress": ADDRESS}).json()["data"]["orderNumber"]


def test_payment_methods_and_charges(client):
    methods = client.get("/api/payments/methods").json()["data"]
    assert [m["id"] for m in methods] == ["cod", "card", "upi", "netbanking", "wallet"]

    charges = client.post("/api/payments/calculate", json={"amount": 450}).json()["data"]
    assert charges["deliveryFee"] == 50.0
    assert charges["platformFee"] == 20.0
    assert charges["totalAmount"] == 520.0


def test_verify_payment_confirms_order(client, user_headers, order_number):
    response = client.post("/api/payments/verify", headers=user_headers, json={
        "orderNumber": order_number, "paymentId": "pay_123", "paymentMethod": "upi",
    })
    assert response.status_code == 200
    order = response.json()["data"]
    assert order["paymentStatus"] == "completed"
    assert order["status"] == "confirmed"
    assert order["paymentId"] == "pay_123"

    status = client.get(f"/api/payments/status/{order_number}", headers=user_headers).json()["data"]
    assert [p["paymentMethod"] for p in status["payments"]] == ["upi"]

    response = client.post("/api/payments/verify", headers=user_headers,
                           json={"orderNumber": order_number, "paymentId": "pay_456"})
    assert response.status_code == 400
    assert response.json()["message"] == "Order is already paid"


def test_refund_requires_completed_payment(client, user_headers, admin_headers, order_number):
    response = client.post(f"/api/admin/orders/{order_number}/refund", headers=admin_headers, json={})
    assert response.status_code == 400

    client.post("/api/payments/verify", headers=user_headers,
                json={"orderNumber": order_number, "paymentId": "pay_123"})
    data = client.post(f"/api/admin/orders/{order_number}/refund", headers=admin_headers, json={}).json()["data"]
    assert data["paymentStatus"] == "refunded"


def test_dashboard_counts(client, session, user, admin_headers, order_number):
    make_product(session, "Empty Shelf", "EMPTY-1", stock=0)
    data = client.get("/api/analytics/dashboard", headers=admin_headers).json()["data"]
    assert data["totalOrders"] == 1
    assert data["pendingOrders"] == 1
    assert data["totalRevenue"] == 1020.0
    assert data["monthlyRevenue"] == 1020.0
    assert data["outOfStockItems"] == 1
    assert data["recentOrders"][0]["orderNumber"] == order_number


def test_sales_excludes_cancelled(client, session, user_headers, admin_headers, product, order_number):
    add_to_cart(client, user_headers, product, quantity=1)
    second = client.post("/api/orders/", headers=user_headers, json={"shippingAddress": ADDRESS}).json()["data"]
    client.put(f"/api/orders/{second['orderNumber']}/cancel", headers=user_headers)

    data = client.get("/api/analytics/sales", headers=admin_headers).json()["data"]
    assert data["totalOrders"] == 1
    assert data["totalRevenue"] == 1020.0
    assert data["averageOrderValue"] == 1020.0
    assert data["ordersByStatus"]["cancelled"] == 1
    assert data["ordersByStatus"]["pending"] == 1
    assert data["topProducts"][0]["quantity"] == 2


def test_analytics_requires_admin(client, user_headers):
    assert client.get("/api/analytics/dashboard", headers=user_headers).status_code == 403
