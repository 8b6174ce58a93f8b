import pytest


def planning_payload(course_id, **overrides):
    payload = {
        "course_id": course_id,
        "week_number": 3,
        "start_date": "2026-01-26",
        "end_date": "2026-01-30",
        "unit": "Fracciones",
        "competence": "Resuelve problemas con números racionales",
        "standard": "Pensamiento numérico",
        "indicators": ["Simplifica fracciones", "Suma fracciones heterogéneas"],
        "activities": [{"day": "Lunes", "activity": "Explicación"}, {"day": "Miércoles", "activity": "Taller"}],
        "resources": ["Guía 3"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def planning(client, auth_headers, course):
    response = client.post("/api/planning", json=planning_payload(course["id"]), headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_planning(planning):
    assert planning["status"] == "draft"
    assert planning["course_name"] == "Matemáticas 10-1"
    assert planning["date_range"] == "26 - 30 Enero 2026"
    assert planning["activities"][1] == {"day": "Miércoles", "activity": "Taller"}


def test_planning_dates_must_be_ordered(client, auth_headers, course):
    response = client.post(
        "/api/planning",
        json=planning_payload(course["id"], start_date="2026-02-06", end_date="2026-02-02"),
        headers=auth_headers,
    )
    assert response.status_code == 422


def test_duplicate_planning(client, auth_headers, planning):
    response = client.post(
        f"/api/planning/{planning['id']}/duplicate",
        json={"start_date": "2026-02-02", "end_date": "2026-02-06"},
        headers=auth_headers,
    )

    assert response.status_code == 201
    copy = response.json()
    assert copy["id"] != planning["id"]
    assert copy["week_number"] == 4
    assert copy["status"] == "draft"
    assert copy["unit"] == planning["unit"]
    assert copy["indicators"] == planning["indicators"]
    assert copy["date_range"] == "2 - 6 Febrero 2026"


def test_only_one_current_planning_per_course(client, auth_headers, course, planning):
    second = client.post(
        "/api/planning",
        json=planning_payload(course["id"], week_number=4, start_date="2026-02-02", end_date="2026-02-06"),
        headers=auth_headers,
    ).json()

    client.post(f"/api/planning/{planning['id']}/set-current", headers=auth_headers)
    response = client.post(f"/api/planning/{second['id']}/set-current", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "current"

    statuses = {p["id"]: p["status"] for p in client.get("/api/planning", headers=auth_headers).json()}
    assert statuses == {planning["id"]: "completed", second["id"]: "current"}

    current = client.get(f"/api/planning/current/{course['id']}", headers=auth_headers).json()
    assert current["id"] == second["id"]


def test_no_current_planning(client, auth_headers, course, planning):
    response = client.get(f"/api/planning/current/{course['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() is None


def test_update_planning(client, auth_headers, planning):
    response = client.put(
        f"/api/planning/{planning['id']}",
        json={"unit": "Decimales", "resources": ["Guía 4", "Video"]},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["unit"] == "Decimales"
    assert response.json()["resources"] == ["Guía 4", "Video"]

    bad = client.put(f"/api/planning/{planning['id']}", json={"end_date": "2026-01-01"}, headers=auth_headers)
    assert bad.status_code == 400


def test_planning_of_other_teacher(client, other_headers, planning):
    assert client.delete(f"/api/planning/{planning['id']}", headers=other_headers).status_code == 404
