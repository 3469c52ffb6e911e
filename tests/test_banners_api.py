from datetime import datetime, timedelta, timezone


def create_banner(client, headers, **overrides):
    payload = {"title": "Summer Sale", "image": "https://cdn.example/summer.jpg"}
    payload.update(overrides)
    return client.post("/api/banners/", json=payload, headers=headers)


def test_active_banners_respect_window_and_type(client, admin_headers, categories):
    create_banner(client, admin_headers, title="Carousel", order=2)
    create_banner(client, admin_headers, title="Card", displayType="category-card",
                  categoryId=categories["men"].id, order=1)
    create_banner(client, admin_headers, title="Everywhere", displayType="both",
                  categoryId=categories["women"].id, order=3)
    create_banner(client, admin_headers, title="Expired",
                  startDate=(datetime.now(timezone.utc) - timedelta(days=10)).isoformat(),
                  endDate=(datetime.now(timezone.utc) - timedelta(days=1)).isoformat())
    create_banner(client, admin_headers, title="Hidden", isActive=False)

    titles = [b["title"] for b in client.get("/api/banners/active").json()["data"]]
    assert titles == ["Card", "Carousel", "Everywhere"]

    titles = [b["title"] for b in client.get("/api/banners/active?displayType=carousel").json()["data"]]
    assert titles == ["Carousel", "Everywhere"]


def test_category_card_needs_category(client, admin_headers):
    response = create_banner(client, admin_headers, displayType="category-card")
    assert response.status_code == 400
    assert response.json()["message"] == "Category ID is required for category-card banners"


def test_end_date_after_start(client, admin_headers):
    now = datetime.now(timezone.utc)
    response = create_banner(client, admin_headers, startDate=now.isoformat(),
                             endDate=(now - timedelta(hours=1)).isoformat())
    assert response.status_code == 400
    assert response.json()["message"] == "End date must be after start date"


def test_reorder_toggle_delete(client, admin_headers):
    first = create_banner(client, admin_headers, title="First").json()["data"]["id"]
    second = create_banner(client, admin_headers, title="Second").json()["data"]["id"]

    data = client.put("/api/banners/reorder", json={"bannerIds": [second, first]}, headers=admin_headers).json()["data"]
    assert [(b["id"], b["order"]) for b in data] == [(second, 1), (first, 2)]

    response = client.put("/api/banners/reorder", json={"bannerIds": [first, 999]}, headers=admin_headers)
    assert response.status_code == 404

    toggled = client.patch(f"/api/banners/{first}/toggle", headers=admin_headers).json()
    assert toggled["message"] == "Banner deactivated successfully"
    assert [b["id"] for b in client.get("/api/banners/active").json()["data"]] == [second]

    assert client.delete(f"/api/banners/{first}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/banners/{first}", headers=admin_headers).status_code == 404


def test_banner_admin_requires_admin(client, user_headers):
    assert create_banner(client, user_headers).status_code == 403
