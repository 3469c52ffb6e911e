ADDRESS = {
    "name": "Asha Rao",
    "phone": "9876543210",
    "addressLine1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


def test_update_profile(client, user_headers):
    data = client.put("/api/users/me", json={"name": "Asha", "phone": "9876543210"}, headers=user_headers).json()["data"]
    assert data["name"] == "Asha"
    assert data["phone"] == "9876543210"

    response = client.put("/api/users/me", json={"phone": "123"}, headers=user_headers)
    assert response.status_code == 400


def test_address_book_keeps_one_default(client, user_headers):
    addresses = client.post("/api/users/me/addresses", json=ADDRESS, headers=user_headers).json()["data"]
    assert addresses[0]["is_default"] is True
    home = addresses[0]["id"]

    addresses = client.post("/api/users/me/addresses", json={**ADDRESS, "city": "Chennai", "isDefault": True},
                            headers=user_headers).json()["data"]
    work = addresses[1]["id"]
    assert [a["is_default"] for a in addresses] == [False, True]

    addresses = client.put(f"/api/users/me/addresses/{home}", json={"isDefault": True, "landmark": "Metro"},
                           headers=user_headers).json()["data"]
    assert [a["is_default"] for a in addresses] == [True, False]
    assert addresses[0]["landmark"] == "Metro"

    addresses = client.delete(f"/api/users/me/addresses/{home}", headers=user_headers).json()["data"]
    assert [(a["id"], a["is_default"]) for a in addresses] == [(work, True)]

    assert client.delete("/api/users/me/addresses/missing", headers=user_headers).status_code == 404
    assert len(client.get("/api/users/me/addresses", headers=user_headers).json()["data"]) == 1


def test_wishlist_round_trip(client, user_headers, product):
    assert client.post("/api/wishlist/", json={"productId": product.id}, headers=user_headers).status_code == 201
    client.post("/api/wishlist/", json={"productId": product.id}, headers=user_headers)

    data = client.get("/api/wishlist/", headers=user_headers).json()["data"]
    assert data["count"] == 1
    assert data["items"][0]["product"]["name"] == "Classic Tee"

    assert client.delete(f"/api/wishlist/{product.id}", headers=user_headers).status_code == 200
    assert client.delete(f"/api/wishlist/{product.id}", headers=user_headers).status_code == 404


def test_move_cart_item_to_wishlist(client, user_headers, product):
    cart = client.post("/api/cart/items", headers=user_headers, json={
        "productId": product.id, "variantId": product.variants[0].id,
    }).json()["data"]
    item_id = cart["items"][0]["id"]

    cart = client.post(f"/api/cart/items/{item_id}/move-to-wishlist", headers=user_headers).json()["data"]
    assert cart["items"] == []
    assert client.get("/api/wishlist/", headers=user_headers).json()["data"]["count"] == 1

    client.delete("/api/wishlist/", headers=user_headers)
    assert client.get("/api/wishlist/", headers=user_headers).json()["data"]["count"] == 0


def test_cart_quantity_rules(client, session, user_headers, product):
    variant_id = product.variants[0].id
    response = client.post("/api/cart/items", headers=user_headers,
                           json={"productId": product.id, "variantId": variant_id, "quantity": 11})
    assert response.status_code == 400
    assert response.json()["message"] == "Maximum quantity per item is 10"

    cart = client.post("/api/cart/items", headers=user_headers,
                       json={"productId": product.id, "variantId": variant_id, "quantity": 4}).json()["data"]
    cart = client.post("/api/cart/items", headers=user_headers,
                       json={"productId": product.id, "variantId": variant_id, "quantity": 3}).json()["data"]
    assert len(cart["items"]) == 1
    assert cart["itemCount"] == 7
    assert cart["subtotal"] == 5600.0
    assert cart["totalDiscount"] == 2100.0

    item_id = cart["items"][0]["id"]
    cart = client.put(f"/api/cart/items/{item_id}", json={"isSelected": False}, headers=user_headers).json()["data"]
    assert cart["selectedCount"] == 0
    assert cart["totalAmount"] == 0

    cart = client.put(f"/api/cart/items/{item_id}", json={"quantity": 0}, headers=user_headers).json()["data"]
    assert cart["items"] == []


def test_repeat_adds_share_one_quantity_cap(client, user_headers, product):
    line = {"productId": product.id, "variantId": product.variants[0].id, "quantity": 8}
    assert client.post("/api/cart/items", headers=user_headers, json=line).status_code == 201

    response = client.post("/api/cart/items", headers=user_headers, json=line)
    assert response.status_code == 400
    assert response.json()["message"] == "Maximum quantity per item is 10"

    cart = client.get("/api/cart/", headers=user_headers).json()["data"]
    assert [(i["size"], i["quantity"]) for i in cart["items"]] == [("M", 8)]
