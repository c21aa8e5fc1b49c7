"""
Tests for authentication endpoints and token handling
"""
from conftest import TEST_PASSWORD


def test_signup_returns_token_and_user(client):
    response = client.post("/api/auth/signup", json={
        "full_name": "Ivy Investor",
        "email": "ivy@fund.example",
        "password": "secret1",
        "role": "Investment",
        "organization_name": "Ivy Fund",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Account created successfully"
    assert body["data"]["token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['data']['token']}"})
    assert me.json()["data"]["organizationName"] == "Ivy Fund"
    assert me.json()["data"]["role"] == "ADMIN"


def test_signup_validation_envelope(client):
    response = client.post("/api/auth/signup", json={"email": "x@example.com"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "validation_error"


def test_login_and_bare_token(client, customer_user):
    response = client.post("/api/auth/login", json={"email": "customer@example.com", "password": TEST_PASSWORD})
    assert response.status_code == 200
    token = response.json()["data"]["token"]

    me = client.get("/api/auth/me", headers={"Authorization": token})
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "customer@example.com"


def test_login_failure(client, customer_user):
    response = client.post("/api/auth/login", json={"email": "customer@example.com", "password": "wrong"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Invalid email or password", "code": "invalid_credentials"}


def test_missing_and_garbage_tokens(client):
    missing = client.get("/api/auth/me")
    assert missing.status_code == 401
    assert missing.json()["error"] == "No authorization token provided"

    garbage = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401
    assert garbage.json()["code"] == "invalid_token"


def test_logout_revokes_token(client, customer_user, auth_headers):
    headers = auth_headers(customer_user)

    assert client.post("/api/auth/logout", headers=headers).status_code == 200

    after = client.get("/api/auth/me", headers=headers)
    assert after.status_code == 401
    assert after.json()["code"] == "token_revoked"


def test_password_change_issues_working_token(client, customer_user, auth_headers):
    headers = auth_headers(customer_user)
    response = client.post("/api/user/change-password", headers=headers, json={
        "currentPassword": TEST_PASSWORD,
        "newPassword": "brand-new-pass",
    })

    assert response.status_code == 200
    fresh = response.json()["data"]["token"]
    assert client.get("/api/auth/me", headers=headers).status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {fresh}"}).status_code == 200


def test_deactivated_user_is_rejected(client, db_session, customer_user, auth_headers):
    headers = auth_headers(customer_user)
    customer_user.is_active = False
    db_session.commit()

    assert client.get("/api/auth/me", headers=headers).json()["code"] == "token_revoked"


def test_unknown_route_uses_envelope(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json()["success"] is False
    assert response.json()["code"] == "not_found"


def test_health(client):
    assert client.get("/health").text == "ok"
