from aula.models.all_models import UserSettings


def test_settings_are_seeded_on_register(client, auth_headers):
    response = client.get("/api/settings", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["full_name"] == "Laura Gómez"
    assert data["email"] == "docente@colegio.edu.co"
    assert data["notify_low_performance"] is True
    assert data["notify_email_summaries"] is False
    assert data["theme"] == "system"
    assert data["language"] == "es"


def test_settings_row_is_created_when_missing(client, auth_headers, db_session):
    db_session.query(UserSettings).delete()
    db_session.commit()

    response = client.get("/api/settings", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["full_name"] == "Laura Gómez"
    assert db_session.query(UserSettings).count() == 1


def test_update_settings(client, auth_headers):
    response = client.patch(
        "/api/settings",
        json={"theme": "dark", "language": "en", "notify_email_summaries": True, "institution": "IED San José"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["theme"] == "dark"
    assert data["language"] == "en"
    assert data["notify_email_summaries"] is True
    assert data["institution"] == "IED San José"

    assert client.get("/api/settings", headers=auth_headers).json()["theme"] == "dark"


def test_null_does_not_clear_required_settings(client, auth_headers):
    response = client.patch("/api/settings", json={"theme": None, "phone": None}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["theme"] == "system"
    assert response.json()["phone"] is None


def test_settings_are_per_user(client, auth_headers, other_headers):
    client.patch("/api/settings", json={"theme": "dark"}, headers=auth_headers)
    assert client.get("/api/settings", headers=other_headers).json()["theme"] == "system"
