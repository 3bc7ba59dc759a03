from datetime import timedelta

from fastapi import status

from app.services import auth as auth_service

TEST_PASSWORD = "Password123!"


def _login(client, email, password=TEST_PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def test_login_success(client, admin_user):
    """Test successful login with valid credentials."""
    response = _login(client, admin_user.email)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert "access_token" in data
    assert "refresh_token" in data
    assert data["token_type"] == "bearer"
    assert data["user"]["roles"] == ["Admin"]


def test_login_invalid_credentials(client):
    """Test login failure with wrong password."""
    response = _login(client, "nonexistent@company.com", "wrong")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["success"] is False


def test_login_inactive_user(client, make_user):
    user = make_user("gone@company.com", ["Employee"], is_active=False)
    response = _login(client, user.email)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_me_returns_current_user(client, employee_user, auth_headers):
    response = client.get("/api/auth/me", headers=auth_headers(employee_user))
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == employee_user.email
    assert data["roles"] == ["Developer", "Employee"]


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_expired_token_reports_token_expired(client, employee_user):
    token = auth_service.create_access_token({"sub": employee_user.email}, expires_delta=timedelta(seconds=-5))
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["errors"][0]["msg"] == "TOKEN_EXPIRED"


def test_refresh_token_cannot_authenticate_requests(client, employee_user):
    token = auth_service.create_refresh_token({"sub": employee_user.email})
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_refresh_rotates_session(client, admin_user):
    tokens = _login(client, admin_user.email).json()

    response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200
    rotated = response.json()
    assert rotated["refresh_token"] != tokens["refresh_token"]

    # The old refresh token was revoked by the rotation
    again = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert again.status_code == status.HTTP_401_UNAUTHORIZED


def test_logout_revokes_refresh_token(client, admin_user):
    tokens = _login(client, admin_user.email).json()

    response = client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200

    again = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert again.status_code == status.HTTP_401_UNAUTHORIZED


def test_change_password(client, employee_user, auth_headers):
    response = client.post(
        "/api/auth/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "BrandNew456!"},
        headers=auth_headers(employee_user),
    )
    assert response.status_code == 200
    assert _login(client, employee_user.email, "BrandNew456!").status_code == 200
    assert _login(client, employee_user.email).status_code == status.HTTP_401_UNAUTHORIZED


def test_role_guard_blocks_non_admin(client, employee_user, auth_headers):
    response = client.post(
        "/api/departments/",
        json={"name": "Finance"},
        headers=auth_headers(employee_user),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
