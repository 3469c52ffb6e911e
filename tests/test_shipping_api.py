import pytest

from tests.test_orders_api import ADDRESS, add_to_cart


@pytest.fixture
def provider(client, admin_headers):
    response = client.post("/api/shipping/providers", headers=admin_headers, json={
        "name": "BlueDart", "code": "bd", "trackingUrl": "https://track.example/{n}",
        "serviceAreas": [{"name": "South", "pincodes": ["560001", "600001"]}],
    })
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
def rates(client, admin_headers, provider):
    standard = client.post("/api/shipping/rates", headers=admin_headers, json={
        "providerId": provider["id"], "name": "Standard", "rateType": "weight_based",
        "weightRanges": [
            {"minWeight": 0, "maxWeight": 1, "rate": 40},
            {"minWeight": 1.01, "maxWeight": 10, "rate": 90},
        ],
        "zones": [{"name": "Metro", "pincodes": ["560001"], "multiplier": 1.5}],
        "deliveryMin": 3, "deliveryMax": 5,
    }).json()["data"]
    express = client.post("/api/shipping/rates", headers=admin_headers, json={
        "providerId": provider["id"], "name": "Express", "serviceType": "express",
        "baseRate": 150, "freeShippingThreshold": 2000, "deliveryMin": 1, "deliveryMax": 2,
    }).json()["data"]
    return standard, express


def test_provider_code_is_unique(client, admin_headers, provider):
    assert provider["code"] == "BD"
    response = client.post("/api/shipping/providers", headers=admin_headers, json={"name": "Other", "code": "BD"})
    assert response.status_code == 409


def test_quote_orders_free_options_first(client, rates):
    response = client.post("/api/shipping/calculate", json={"weight": 0.5, "value": 2500, "toPincode": "560001"})
    assert response.status_code == 200
    options = response.json()["data"]["options"]
    assert [(o["serviceName"], o["cost"], o["isFreeShipping"]) for o in options] == [
        ("Express", 0.0, True),
        ("Standard", 60.0, False),
    ]


def test_quote_filters_by_service_and_area(client, rates):
    data = client.post("/api/shipping/calculate",
                       json={"weight": 3, "value": 100, "toPincode": "600001", "serviceType": "standard"}).json()["data"]
    assert data["count"] == 1
    assert data["options"][0]["cost"] == 90.0

    data = client.post("/api/shipping/calculate", json={"weight": 1, "value": 100, "toPincode": "110001"}).json()["data"]
    assert data["count"] == 0


def test_rate_validation(client, admin_headers, provider):
    response = client.post("/api/shipping/rates", headers=admin_headers, json={
        "providerId": provider["id"], "name": "Broken", "rateType": "weight_based",
        "weightRanges": [{"minWeight": 5, "maxWeight": 1, "rate": 10}],
    })
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid weight range: minWeight must be less than maxWeight"


def test_provider_detail_lists_rates(client, admin_headers, provider, rates):
    data = client.get(f"/api/shipping/providers/{provider['id']}", headers=admin_headers).json()["data"]
    assert sorted(r["name"] for r in data["rates"]) == ["Express", "Standard"]


def test_shipment_lifecycle(client, session, user_headers, admin_headers, product, provider, rates):
    add_to_cart(client, user_headers, product)
    number = client.post("/api/orders/", headers=user_headers, json={"shippingAddress": ADDRESS}).json()["data"]["orderNumber"]

    response = client.post("/api/shipping/shipments", headers=admin_headers, json={
        "orderNumber": number, "providerId": provider["id"], "packageDetails": {"weight": 0.8, "value": 1000},
    })
    assert response.status_code == 201
    shipment = response.json()["data"]
    assert shipment["shippingCost"] == 60.0
    assert shipment["trackingNumber"].startswith("BD")
    shipment_id = shipment["shipmentId"]

    tracking = client.get(f"/api/shipping/track/{shipment['trackingNumber']}").json()["data"]
    assert tracking["status"] == "pending"
    assert tracking["providerInfo"]["name"] == "BlueDart"

    client.post(f"/api/shipping/shipments/{shipment_id}/tracking", headers=admin_headers,
                json={"status": "in_transit", "location": "Hub", "description": "Left the hub"})
    order = client.get(f"/api/orders/{number}", headers=user_headers).json()["data"]
    assert order["status"] == "shipped"
    assert order["trackingNumber"] == shipment["trackingNumber"]

    data = client.post(f"/api/shipping/shipments/{shipment_id}/tracking", headers=admin_headers,
                       json={"status": "delivered", "location": "Bengaluru", "description": "Handed over"}).json()["data"]
    assert data["status"] == "delivered"
    assert data["currentLocation"] == "Bengaluru"
    assert client.get(f"/api/orders/{number}", headers=user_headers).json()["data"]["status"] == "delivered"

    listed = client.get(f"/api/shipping/shipments/order/{number}", headers=admin_headers).json()["data"]
    assert [s["shipmentId"] for s in listed] == [shipment_id]

    response = client.delete(f"/api/shipping/providers/{provider['id']}", headers=admin_headers)
    assert response.status_code == 409


def test_unknown_tracking_number(client):
    response = client.get("/api/shipping/track/NOPE")
    assert response.status_code == 404
    assert response.json()["message"] == "Tracking information not found"
