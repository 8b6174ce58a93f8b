from aula.utils.auth import hash_reset_token

from conftest import register


def test_register_returns_tokens(client):
    tokens = register(client)

    assert tokens["token_type"] == "bearer"
    assert tokens["access_token"]
    assert tokens["refresh_token"]
    assert tokens["expires_in"] == 60 * 60


def test_register_creates_default_periods(client, auth_headers):
    response = client.get("/api/grades/periods", headers=auth_headers)

    assert response.status_code == 200
    assert [p["name"] for p in response.json()] == ["Periodo 1", "Periodo 2", "Periodo 3", "Periodo 4"]


def test_register_duplicate_email(client):
    register(client)
    response = client.post("/api/auth/register", json={
        "email": "DOCENTE@colegio.edu.co",
        "password": "otraclave",
        "first_name": "Otra",
        "last_name": "Persona",
    })

    assert response.status_code == 400
    assert response.json()["detail"] == "Email already registered"


def test_register_rejects_short_password(client):
    response = client.post("/api/auth/register", json={
        "email": "corto@colegio.edu.co",
        "password": "123",
        "first_name": "Laura",
        "last_name": "Gómez",
    })
    assert response.status_code == 422


def test_login(client):
    register(client)

    response = client.post("/api/auth/login", json={"email": "docente@colegio.edu.co", "password": "secreto123"})
    assert response.status_code == 200
    assert response.json()["access_token"]


def test_login_with_wrong_password(client):
    register(client)

    response = client.post("/api/auth/login", json={"email": "docente@colegio.edu.co", "password": "incorrecta"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect email or password"


def test_login_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "nadie@colegio.edu.co", "password": "secreto123"})
    assert response.status_code == 401


def test_refresh(client):
    tokens = register(client)

    response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200
    new_access = response.json()["access_token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {new_access}"})
    assert me.status_code == 200


def test_refresh_rejects_access_token(client):
    tokens = register(client)

    response = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert response.status_code == 401


def test_me(client, auth_headers):
    response = client.get("/api/auth/me", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["email"] == "docente@colegio.edu.co"
    assert data["full_name"] == "Laura Gómez"
    assert data["profile"]["first_name"] == "Laura"


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code in (401, 403)
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_update_profile(client, auth_headers):
    response = client.patch(
        "/api/auth/profile",
        json={"institution": "Colegio Distrital La Candelaria", "last_name": "Gómez Ruiz"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["full_name"] == "Laura Gómez Ruiz"
    assert data["profile"]["institution"] == "Colegio Distrital La Candelaria"


def test_change_password(client, auth_headers):
    response = client.post(
        "/api/auth/change-password",
        json={"current_password": "secreto123", "new_password": "nuevaclave"},
        headers=auth_headers,
    )
    assert response.status_code == 200

    old = client.post("/api/auth/login", json={"email": "docente@colegio.edu.co", "password": "secreto123"})
    new = client.post("/api/auth/login", json={"email": "docente@colegio.edu.co", "password": "nuevaclave"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_change_password_with_wrong_current_password(client, auth_headers):
    response = client.post(
        "/api/auth/change-password",
        json={"current_password": "equivocada", "new_password": "nuevaclave"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Current password is incorrect"


def test_forgot_password_does_not_reveal_unknown_emails(client):
    register(client)

    known = client.post("/api/auth/forgot-password", json={"email": "docente@colegio.edu.co"})
    unknown = client.post("/api/auth/forgot-password", json={"email": "nadie@colegio.edu.co"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()


def test_reset_password(client, monkeypatch):
    register(client)
    monkeypatch.setattr(
        "aula.routes.auth.new_reset_token",
        lambda: ("known-token", hash_reset_token("known-token")),
    )
    client.post("/api/auth/forgot-password", json={"email": "docente@colegio.edu.co"})

    response = client.post("/api/auth/reset-password", json={"token": "known-token", "new_password": "restablecida"})
    assert response.status_code == 200

    login = client.post("/api/auth/login", json={"email": "docente@colegio.edu.co", "password": "restablecida"})
    assert login.status_code == 200

    # single use
    again = client.post("/api/auth/reset-password", json={"token": "known-token", "new_password": "otravez123"})
    assert again.status_code == 400


def test_reset_password_with_unknown_token(client):
    response = client.post("/api/auth/reset-password", json={"token": "inventado", "new_password": "restablecida"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid or expired reset token"


def test_logout(client, auth_headers):
    response = client.post("/api/auth/logout", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Successfully logged out"
