"""Integration tests for registration, login, logout and password reset."""

from conftest import TEST_PASSWORD

REGISTRATION = {
    "username": "Nina",
    "email": "nina@example.com",
    "password": "longenough",
    "first_name": "Nina",
    "last_name": "Simone",
}


def test_register_login_me_logout(client) -> None:
    response = client.post("/api/auth/register", json=REGISTRATION)
    assert response.status_code == 201, response.text
    assert response.json()["username"] == "nina"
    assert response.json()["role"] == "CUSTOMER"
    assert "password_hash" not in response.json()

    login = client.post(
        "/api/auth/login",
        json={"username_or_email": "NINA@example.com", "password": "longenough"},
    )
    assert login.status_code == 200
    body = login.json()
    assert body["token_type"] == "bearer"
    headers = {"Authorization": f"Bearer {body['session_token']}"}

    assert client.get("/api/auth/me", headers=headers).json()["email"] == "nina@example.com"
    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_duplicate_registration_is_409(client) -> None:
    assert client.post("/api/auth/register", json=REGISTRATION).status_code == 201
    again = client.post(
        "/api/auth/register", json={**REGISTRATION, "email": "other@example.com"}
    )
    assert again.status_code == 409


def test_invalid_registration_payload_is_422(client) -> None:
    response = client.post(
        "/api/auth/register", json={**REGISTRATION, "email": "not-an-email"}
    )
    assert response.status_code == 422


def test_short_password_is_400(client) -> None:
    response = client.post("/api/auth/register", json={**REGISTRATION, "password": "abc"})
    assert response.status_code == 400


def test_wrong_password_is_401(client, seed_user) -> None:
    seed_user("ana")
    response = client.post(
        "/api/auth/login", json={"username_or_email": "ana", "password": "nope"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid username/email or password"


def test_register_provider(client) -> None:
    response = client.post(
        "/api/auth/register-provider",
        json={
            **REGISTRATION,
            "username": "shop",
            "email": "shop@example.com",
            "business_name": "Discos Shop",
            "city": "Cali",
        },
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["user"]["role"] == "PROVIDER"
    assert body["provider"]["verification_status"] == "PENDING"
    assert body["provider"]["city"] == "Cali"


def test_logout_all(client, seed_user, login) -> None:
    seed_user("ana")
    first = login("ana")
    second = login("ana")

    response = client.post("/api/auth/logout-all", headers=first)
    assert response.json() == {"sessions_ended": 2}
    assert client.get("/api/auth/me", headers=second).status_code == 401


def test_change_password(client, seed_user, login) -> None:
    seed_user("ana")
    headers = login("ana")

    response = client.post(
        "/api/auth/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "another-one"},
        headers=headers,
    )
    assert response.status_code == 200
    assert login("ana", "another-one")


def test_forgot_and_reset_password(client, seed_user, login) -> None:
    seed_user("ana")
    old_headers = login("ana")

    forgot = client.post("/api/auth/forgot-password", json={"email": "ana@example.com"})
    assert forgot.status_code == 200
    token = forgot.json()["reset_token"]
    assert token

    reset = client.post(
        "/api/auth/reset-password", json={"token": token, "new_password": "reset-pass"}
    )
    assert reset.status_code == 200
    assert client.get("/api/auth/me", headers=old_headers).status_code == 401
    assert login("ana", "reset-pass")

    reused = client.post(
        "/api/auth/reset-password", json={"token": token, "new_password": "third-pass"}
    )
    assert reused.status_code == 400


def test_forgot_password_for_unknown_email_looks_the_same(client) -> None:
    response = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
    assert response.status_code == 200
    assert response.json()["message"] == "If the email exists, a reset token has been issued"
    assert response.json()["reset_token"] is None
