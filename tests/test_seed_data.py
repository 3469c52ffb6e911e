from seed_data import seed


def test_seed_populates_catalog_once(client, session):
    assert seed(session) is True
    assert seed(session) is False

    tree = client.get("/api/categories/tree").json()["data"]
    assert [c["name"] for c in tree] == ["Men", "Women"]

    men = tree[0]["id"]
    listing = client.get(f"/api/products/?category={men}&limit=50").json()["data"]
    assert listing["pagination"]["total"] == 3

    assert client.get("/api/coupons/public").json()["data"]["count"] == 2

    login = client.post("/api/auth/login", json={"email": "admin@shoppers.local", "password": "admin123"})
    assert login.json()["data"]["user"]["role"] == "super_admin"
