import pytest

from tests.conftest import auth_headers, make_user

TICKET = {
    "subject": "Parcel never arrived",
    "description": "Tracking says delivered but nothing came.",
    "category": "delivery_issue",
    "priority": "high",
}


@pytest.fixture
def ticket_id(client, user_headers):
    response = client.post("/api/support/tickets", json=TICKET, headers=user_headers)
    assert response.status_code == 201
    return response.json()["data"]["ticketId"]


def test_categories_are_public(client):
    data = client.get("/api/support/categories/list").json()["data"]
    assert {"value": "return_refund", "label": "Return Refund"} in data
    assert len(data) == 7


def test_new_ticket_starts_open_with_first_message(client, user_headers, ticket_id):
    data = client.get(f"/api/support/tickets/{ticket_id}", headers=user_headers).json()["data"]
    assert ticket_id.startswith("TKT")
    assert data["status"] == "open"
    assert data["categoryLabel"] == "Delivery Issue"
    assert [m["senderType"] for m in data["messages"]] == ["user"]
    assert data["messages"][0]["message"] == TICKET["description"]


def test_ticket_validation(client, user_headers):
    response = client.post("/api/support/tickets", json={**TICKET, "subject": "Hi"}, headers=user_headers)
    assert response.status_code == 400
    response = client.post("/api/support/tickets", json={**TICKET, "orderNumber": "ORD123"}, headers=user_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Order not found or does not belong to you"


def test_conversation_moves_status(client, user_headers, admin, admin_headers, ticket_id):
    url = f"/api/support/admin/tickets/{ticket_id}"
    data = client.put(url, json={"assignedTo": admin.id}, headers=admin_headers).json()["data"]
    assert data["status"] == "in_progress"
    assert data["assignedTo"] == admin.id

    data = client.post(f"/api/support/tickets/{ticket_id}/messages", json={"message": "Any update?"},
                       headers=user_headers).json()["data"]
    assert data["status"] == "waiting_for_customer"

    data = client.post(f"{url}/messages", json={"message": "Refund issued."}, headers=admin_headers).json()["data"]
    assert data["status"] == "in_progress"
    assert [m["senderType"] for m in data["messages"]] == ["user", "user", "agent"]


def test_assignment_needs_admin(client, user, admin_headers, ticket_id):
    response = client.put(f"/api/support/admin/tickets/{ticket_id}", json={"assignedTo": user.id},
                          headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Tickets can only be assigned to admin users"


def test_close_and_reopen(client, user_headers, ticket_id):
    base = f"/api/support/tickets/{ticket_id}"
    data = client.put(f"{base}/close", headers=user_headers).json()["data"]
    assert data["status"] == "closed"
    assert data["closedAt"] is not None

    response = client.post(f"{base}/messages", json={"message": "hello?"}, headers=user_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot add message to closed ticket"
    assert client.put(f"{base}/close", headers=user_headers).status_code == 400

    data = client.put(f"{base}/reopen", headers=user_headers).json()["data"]
    assert data["status"] == "open"
    assert data["closedAt"] is None
    assert client.put(f"{base}/reopen", headers=user_headers).status_code == 400


def test_resolve_sets_timestamp(client, admin_headers, ticket_id):
    data = client.put(f"/api/support/admin/tickets/{ticket_id}", json={"status": "resolved"},
                      headers=admin_headers).json()["data"]
    assert data["status"] == "resolved"
    assert data["resolvedAt"] is not None


def test_tickets_are_private(client, session, ticket_id):
    other = auth_headers(session, make_user(session, "other@example.com"))
    assert client.get(f"/api/support/tickets/{ticket_id}", headers=other).status_code == 404
    assert client.get("/api/support/tickets", headers=other).json()["data"]["pagination"]["total"] == 0


def test_admin_listing_with_stats(client, admin_headers, ticket_id):
    data = client.get("/api/support/admin/tickets?priority=high", headers=admin_headers).json()["data"]
    assert [t["ticketId"] for t in data["tickets"]] == [ticket_id]
    assert "messages" not in data["tickets"][0]
    assert data["stats"]["open"] == 1
    assert data["stats"]["closed"] == 0
