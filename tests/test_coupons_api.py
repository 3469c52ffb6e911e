from datetime import datetime, timedelta, timezone

from sqlmodel import select

from shoppers.models.coupon import Coupon


def _iso(delta: timedelta) -> str:
    return (datetime.now(timezone.utc) + delta).isoformat()


def create_coupon(client, admin_headers, **overrides):
    payload = {
        "code": "save10",
        "description": "10% off",
        "discountType": "percentage",
        "discountValue": 10,
        "usageLimit": 5,
        "validFrom": _iso(-timedelta(days=1)),
        "validUntil": _iso(timedelta(days=30)),
    }
    payload.update(overrides)
    return client.post("/api/coupons/", json=payload, headers=admin_headers)


def fill_cart(client, user_headers, product, quantity=2):
    response = client.post("/api/cart/items", headers=user_headers, json={
        "productId": product.id, "variantId": product.variants[0].id, "quantity": quantity,
    })
    assert response.status_code == 201
    return response.json()["data"]


def test_create_normalizes_code(client, admin_headers):
    response = create_coupon(client, admin_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["code"] == "SAVE10"
    assert data["remainingUses"] == 5
    assert data["isCurrentlyValid"] is True


def test_duplicate_code_conflicts(client, admin_headers):
    create_coupon(client, admin_headers)
    response = create_coupon(client, admin_headers, code="SAVE10")
    assert response.status_code == 409
    assert response.json()["message"] == "Coupon code already exists"


def test_percentage_over_100_rejected(client, admin_headers):
    response = create_coupon(client, admin_headers, discountValue=150)
    assert response.status_code == 400
    assert response.json()["message"] == "Percentage discount cannot exceed 100%"


def test_validate_against_cart(client, admin_headers, user_headers, product):
    create_coupon(client, admin_headers)
    cart = fill_cart(client, user_headers, product)
    assert cart["totalAmount"] == 1000.0

    response = client.get("/api/coupons/validate/SAVE10", headers=user_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Coupon is valid"
    assert body["data"]["valid"] is True
    assert body["data"]["discount"] == 100.0
    assert body["data"]["coupon"]["code"] == "SAVE10"


def test_validate_reports_reason(client, admin_headers, user_headers, product):
    create_coupon(client, admin_headers, minOrderAmount=5000)
    fill_cart(client, user_headers, product)

    data = client.get("/api/coupons/validate/save10", headers=user_headers).json()["data"]
    assert data["valid"] is False
    assert data["discount"] == 0
    assert data["reason"] == "Minimum order amount of 5000 required"

    data = client.get("/api/coupons/validate/NOPE99", headers=user_headers).json()["data"]
    assert data["reason"] == "Invalid coupon code"
    assert data["coupon"] is None


def test_apply_and_remove(client, admin_headers, user_headers, product):
    create_coupon(client, admin_headers)
    fill_cart(client, user_headers, product)

    response = client.post("/api/coupons/apply", json={"code": "save10"}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["data"]["finalAmount"] == 900.0

    cart = client.get("/api/cart/", headers=user_headers).json()["data"]
    assert cart["appliedCoupon"] == "SAVE10"
    assert cart["couponDiscount"] == 100.0

    # shrinking the cart re-prices the coupon
    item_id = cart["items"][0]["id"]
    cart = client.put(f"/api/cart/items/{item_id}", json={"quantity": 1}, headers=user_headers).json()["data"]
    assert cart["couponDiscount"] == 50.0

    assert client.delete("/api/coupons/remove", headers=user_headers).status_code == 200
    cart = client.get("/api/cart/", headers=user_headers).json()["data"]
    assert cart["appliedCoupon"] is None
    assert cart["finalAmount"] == 500.0


def test_apply_rejects_empty_cart(client, admin_headers, user_headers):
    create_coupon(client, admin_headers)
    response = client.post("/api/coupons/apply", json={"code": "SAVE10"}, headers=user_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Cart is empty"


def test_public_listing_hides_unusable(client, admin_headers):
    create_coupon(client, admin_headers)
    create_coupon(client, admin_headers, code="LATER1", validFrom=_iso(timedelta(days=3)))
    create_coupon(client, admin_headers, code="OFF100", isActive=False)

    data = client.get("/api/coupons/public").json()["data"]
    assert data["count"] == 1
    assert data["coupons"][0]["code"] == "SAVE10"


def test_bulk_create_reports_each_item(client, admin_headers, session):
    create_coupon(client, admin_headers, code="TAKEN1")
    response = client.post("/api/coupons/bulk", headers=admin_headers, json={"coupons": [
        {"code": "BULK01", "discountType": "fixed", "discountValue": 50, "validUntil": _iso(timedelta(days=5))},
        {"code": "TAKEN1", "discountType": "fixed", "discountValue": 50, "validUntil": _iso(timedelta(days=5))},
        {"code": "BAD", "discountType": "percentage", "discountValue": 10},
        {"code": "BULK02", "discountType": "percentage", "discountValue": 20, "validUntil": _iso(timedelta(days=5))},
    ]})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["successful"] == 2
    assert data["total"] == 4
    assert data["successRate"] == "50.0%"
    assert [f["code"] for f in data["failed"]] == ["TAKEN1", "BAD"]
    assert data["failed"][0]["error"] == "Coupon code already exists"

    codes = set(session.exec(select(Coupon.code)).all())
    assert {"BULK01", "BULK02", "TAKEN1"} <= codes


def test_fixed_coupon_drops_cap(client, admin_headers):
    response = create_coupon(client, admin_headers, discountType="fixed", discountValue=75, maxDiscountAmount=10)
    assert response.json()["data"]["maxDiscountAmount"] is None


def test_toggle_update_delete(client, admin_headers):
    coupon_id = create_coupon(client, admin_headers).json()["data"]["id"]

    data = client.patch(f"/api/coupons/{coupon_id}/toggle", headers=admin_headers).json()["data"]
    assert data["isActive"] is False

    response = client.put(f"/api/coupons/{coupon_id}", headers=admin_headers, json={"usageLimit": 9})
    assert response.json()["data"]["usageLimit"] == 9

    assert client.delete(f"/api/coupons/{coupon_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/coupons/{coupon_id}", headers=admin_headers).status_code == 404


def test_generate_codes(client, admin_headers):
    response = client.post("/api/coupons/generate-codes", headers=admin_headers,
                           json={"count": 3, "prefix": "FEST", "length": 8})
    data = response.json()["data"]
    assert data["count"] == 3
    assert all(code.startswith("FEST") for code in data["codes"])


def test_admin_listing_and_analytics(client, admin_headers):
    create_coupon(client, admin_headers)
    create_coupon(client, admin_headers, code="FLAT50", discountType="fixed", discountValue=50)

    data = client.get("/api/coupons/?discountType=fixed", headers=admin_headers).json()["data"]
    assert [c["code"] for c in data["coupons"]] == ["FLAT50"]
    assert data["pagination"]["total"] == 1

    stats = client.get("/api/coupons/analytics", headers=admin_headers).json()["data"]
    assert stats["totalCoupons"] == 2
    assert stats["activeCoupons"] == 2
