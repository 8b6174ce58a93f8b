from conftest import create_student


def create_entry(client, headers, course_id, date, topic, activities="Lectura y taller", **extra):
    response = client.post(
        "/api/diary",
        json={"course_id": course_id, "date": date, "topic": topic, "activities": activities, **extra},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def create_event(client, headers, date, title="Reunión de área", **extra):
    response = client.post("/api/agenda", json={"title": title, "date": date, **extra}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# Diary
def test_diary_entries_newest_first(client, auth_headers, course):
    create_entry(client, auth_headers, course["id"], "2026-02-02", "Fracciones")
    create_entry(client, auth_headers, course["id"], "2026-02-09", "Decimales")

    entries = client.get("/api/diary", headers=auth_headers).json()
    assert [e["topic"] for e in entries] == ["Decimales", "Fracciones"]
    assert entries[0]["course_name"] == "Matemáticas 10-1"


def test_diary_filters(client, auth_headers, course):
    create_entry(client, auth_headers, course["id"], "2026-02-02", "Fracciones")
    create_entry(client, auth_headers, course["id"], "2026-02-09", "Decimales", observations="Grupo muy participativo")
    create_entry(client, auth_headers, course["id"], "2026-03-02", "Porcentajes", activities="Quiz de repaso")

    def topics(**params):
        return [e["topic"] for e in client.get("/api/diary", params=params, headers=auth_headers).json()]

    assert topics(start_date="2026-02-05", end_date="2026-02-28") == ["Decimales"]
    assert topics(search="participativo") == ["Decimales"]
    assert topics(search="quiz") == ["Porcentajes"]
    assert topics(search="fracc") == ["Fracciones"]
    assert topics(course_id=course["id"], search="nada") == []


def test_diary_entry_needs_own_course(client, other_headers, course):
    response = client.post(
        "/api/diary",
        json={"course_id": course["id"], "date": "2026-02-02", "topic": "Tema", "activities": "Clase"},
        headers=other_headers,
    )
    assert response.status_code == 404


def test_update_and_delete_diary_entry(client, auth_headers, course):
    entry = create_entry(client, auth_headers, course["id"], "2026-02-02", "Fracciones")

    response = client.put(f"/api/diary/{entry['id']}", json={"notes": "Repasar la próxima clase"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["notes"] == "Repasar la próxima clase"
    assert response.json()["topic"] == "Fracciones"

    assert client.delete(f"/api/diary/{entry['id']}", headers=auth_headers).status_code == 204
    assert client.get("/api/diary", headers=auth_headers).json() == []


# Observations
def test_observations(client, auth_headers, course):
    ana = create_student(client, auth_headers, course["id"])
    luis = create_student(client, auth_headers, None, first_name="Luis", last_name="Mora")

    def observe(student_id, type, date):
        response = client.post(
            "/api/observations",
            json={"student_id": student_id, "type": type, "description": "Observación", "date": date},
            headers=auth_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    first = observe(ana["id"], "academic", "2026-02-02")
    observe(ana["id"], "positive", "2026-02-10")
    observe(luis["id"], "attendance", "2026-02-05")

    assert first["student_name"] == "Ana Pérez"
    assert first["course_name"] == "Matemáticas 10-1"
    assert first["severity"] == "low"

    everything = client.get("/api/observations", headers=auth_headers).json()
    assert [o["date"] for o in everything] == ["2026-02-10", "2026-02-05", "2026-02-02"]

    in_course = client.get("/api/observations", params={"course_id": course["id"]}, headers=auth_headers).json()
    assert {o["student_id"] for o in in_course} == {ana["id"]}

    by_type = client.get("/api/observations", params={"type": "attendance"}, headers=auth_headers).json()
    assert [o["student_name"] for o in by_type] == ["Luis Mora"]

    by_student = client.get("/api/observations", params={"student_id": ana["id"]}, headers=auth_headers).json()
    assert len(by_student) == 2


def test_observation_of_foreign_student(client, auth_headers, other_headers):
    stranger = create_student(client, other_headers, first_name="Otro", last_name="Alumno")

    response = client.post(
        "/api/observations",
        json={"student_id": stranger["id"], "type": "behavioral", "description": "x", "date": "2026-02-02"},
        headers=auth_headers,
    )
    assert response.status_code == 404


# Agenda
def test_events_by_month(client, auth_headers, course):
    create_event(client, auth_headers, "2026-02-27", title="Entrega de notas", type="deadline")
    create_event(client, auth_headers, "2026-03-02", title="Evaluación", type="exam", course_id=course["id"], time="07:00:00")
    create_event(client, auth_headers, "2026-03-15")

    march = client.get("/api/agenda", params={"year": 2026, "month": 3}, headers=auth_headers).json()
    assert [e["title"] for e in march] == ["Evaluación", "Reunión de área"]
    assert march[0]["course_name"] == "Matemáticas 10-1"

    assert len(client.get("/api/agenda", headers=auth_headers).json()) == 3


def test_events_in_december(client, auth_headers):
    create_event(client, auth_headers, "2026-12-31")
    create_event(client, auth_headers, "2027-01-01")

    december = client.get("/api/agenda", params={"year": 2026, "month": 12}, headers=auth_headers).json()
    assert [e["date"] for e in december] == ["2026-12-31"]


def test_event_counts_include_every_type(client, auth_headers):
    create_event(client, auth_headers, "2026-03-02", type="exam")
    create_event(client, auth_headers, "2026-03-03", type="exam")
    create_event(client, auth_headers, "2026-03-04", type="meeting")

    counts = client.get("/api/agenda/counts", headers=auth_headers).json()
    assert counts == {"deadline": 0, "meeting": 1, "exam": 2, "planning": 0, "other": 0, "total": 3}


def test_update_and_delete_event(client, auth_headers, other_headers):
    event = create_event(client, auth_headers, "2026-03-02")

    response = client.put(f"/api/agenda/{event['id']}", json={"type": "meeting", "title": None}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["type"] == "meeting"
    assert response.json()["title"] == "Reunión de área"

    assert client.delete(f"/api/agenda/{event['id']}", headers=other_headers).status_code == 404
    assert client.delete(f"/api/agenda/{event['id']}", headers=auth_headers).status_code == 204
