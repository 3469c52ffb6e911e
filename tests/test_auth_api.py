from sqlmodel import select

from shoppers.models.user import User
from tests.conftest import auth_headers, make_user


def test_register_login_and_me(client):
    response = client.post("/api/auth/register", json={
        "email": "new@example.com", "password": "hunter22", "name": "New Shopper",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "new@example.com"
    assert body["data"]["user"]["isVerified"] is False
    assert body["data"]["tokenType"] == "bearer"

    response = client.post("/api/auth/login", json={"email": "new@example.com", "password": "hunter22"})
    assert response.status_code == 200
    token = response.json()["data"]["accessToken"]

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "New Shopper"


def test_duplicate_registration(client, user):
    response = client.post("/api/auth/register", json={"email": user.email, "password": "hunter22"})
    assert response.status_code == 400
    assert response.json() == {
        "success": False, "message": "Email already registered", "error": "Email already registered",
    }


def test_register_validates_payload(client):
    response = client.post("/api/auth/register", json={"email": "not-an-email", "password": "123"})
    assert response.status_code == 400
    assert response.json()["message"] == "Validation Error"


def test_login_wrong_password(client, user):
    response = client.post("/api/auth/login", json={"email": user.email, "password": "nope"})
    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect password. Please try again."


def test_token_endpoint_uses_form_login(client, user):
    response = client.post("/api/auth/token", data={"username": user.email, "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"


def test_me_requires_valid_token(client):
    assert client.get("/api/auth/me").status_code == 401
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json()["message"] == "Could not validate credentials"


def test_deactivated_user_is_rejected(client, session):
    user = make_user(session, "gone@example.com")
    headers = auth_headers(session, user)
    user.is_active = False
    session.add(user)
    session.commit()
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_otp_verifies_account(client, session):
    client.post("/api/auth/register", json={"email": "otp@example.com", "password": "hunter22"})
    assert client.post("/api/auth/otp/generate", json={"email": "otp@example.com"}).status_code == 200

    user = session.exec(select(User).where(User.email == "otp@example.com")).one()
    code = user.otp_code
    wrong = "111111" if code == "000000" else "000000"

    response = client.post("/api/auth/otp/verify", json={"email": "otp@example.com", "code": wrong})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired OTP"

    response = client.post("/api/auth/otp/verify", json={"email": "otp@example.com", "code": code})
    assert response.status_code == 200
    assert response.json()["data"]["user"]["isVerified"] is True


def test_unverified_user_cannot_use_coupons(client, session):
    user = make_user(session, "fresh@example.com", verified=False)
    response = client.get("/api/coupons/available", headers=auth_headers(session, user))
    assert response.status_code == 403
    assert response.json()["message"] == "Please verify your account first"


def test_admin_routes_require_admin(client, user_headers, admin_headers):
    response = client.get("/api/admin/users", headers=user_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Admin access required"
    assert client.get("/api/admin/users", headers=admin_headers).status_code == 200
