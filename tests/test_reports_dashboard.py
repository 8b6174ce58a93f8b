import io

import pandas as pd
import pytest

from conftest import create_student, grade_activity


@pytest.fixture
def gradebook(client, auth_headers, course):
    """Three students in Matemáticas 10-1: one excellent, one at risk, one without grades."""
    ana = create_student(client, auth_headers, course["id"], document_number="1011")
    luis = create_student(client, auth_headers, course["id"], first_name="Luis", last_name="Mora", document_number="1012")
    create_student(client, auth_headers, course["id"], first_name="Sin", last_name="Notas")
    grade_activity(client, auth_headers, course["id"], "Periodo 1", "Taller 1", {ana["id"]: 4.5, luis["id"]: 2.0})
    grade_activity(client, auth_headers, course["id"], "Periodo 2", "Quiz", {ana["id"]: 5.0, luis["id"]: 3.0})
    return {"ana": ana, "luis": luis}


def test_dashboard_without_data(client, auth_headers):
    response = client.get("/api/dashboard/summary", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total_students"] == 0
    assert data["courses_count"] == 0
    assert data["general_average"] is None
    assert data["students_at_risk"] == []
    assert data["course_performance"] == []
    assert data["recent_activity"] == []


def test_dashboard_summary(client, auth_headers, course, gradebook):
    client.post(
        "/api/diary",
        json={"course_id": course["id"], "date": "2026-02-02", "topic": "Fracciones", "activities": "Taller"},
        headers=auth_headers,
    )
    client.post(
        "/api/observations",
        json={"student_id": gradebook["luis"]["id"], "type": "academic", "description": "Bajo rendimiento", "date": "2026-02-03"},
        headers=auth_headers,
    )

    data = client.get("/api/dashboard/summary", headers=auth_headers).json()

    assert data["total_students"] == 3
    assert data["active_students"] == 3
    assert data["courses_count"] == 1
    # Ana 4.75, Luis 2.5
    assert data["general_average"] == 3.62
    assert data["at_risk_count"] == 1
    assert data["students_at_risk"][0]["full_name"] == "Luis Mora"
    assert data["students_at_risk"][0]["tier"] == "at_risk"
    assert data["course_performance"][0]["name"] == "Matemáticas 10-1"
    assert data["course_performance"][0]["students"] == 3
    assert {a["message"] for a in data["recent_activity"]} == {"Nuevo registro: Fracciones", "Observación a Luis Mora"}


def test_dashboard_is_scoped_to_the_teacher(client, other_headers, gradebook):
    data = client.get("/api/dashboard/summary", headers=other_headers).json()
    assert data["total_students"] == 0


def test_reports_summary(client, auth_headers, course, gradebook):
    response = client.get("/api/reports/summary", params={"course_id": course["id"]}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["course_name"] == "Matemáticas 10-1"
    assert data["total_students"] == 3
    assert data["graded_students"] == 2
    assert data["needs_support"] == 1
    assert data["excellent"] == 1
    assert [s["full_name"] for s in data["top_students"]] == ["Ana Pérez", "Luis Mora"]
    assert [(p["period"], p["average"]) for p in data["trend"]] == [("P1", 3.25), ("P2", 4.0)]
    assert sum(b["value"] for b in data["distribution"]) == 2
    assert len(data["rows"]) == 2


def test_reports_summary_without_data(client, auth_headers):
    data = client.get("/api/reports/summary", headers=auth_headers).json()

    assert data["general_average"] is None
    assert data["trend"] == []
    assert data["rows"] == []
    assert [b["value"] for b in data["distribution"]] == [0, 0, 0, 0]


def test_reports_summary_for_foreign_course(client, other_headers, course):
    response = client.get("/api/reports/summary", params={"course_id": course["id"]}, headers=other_headers)
    assert response.status_code == 404


def test_export_excel(client, auth_headers, course, gradebook):
    response = client.get("/api/reports/export/excel", params={"course_id": course["id"]}, headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="Calificaciones_Matematicas_10-1_')
    assert disposition.endswith('.xlsx"')

    df = pd.read_excel(io.BytesIO(response.content), sheet_name="Calificaciones", dtype=str)
    assert list(df["Estudiante"]) == ["Luis Mora", "Ana Pérez"]
    ana = df[df["Estudiante"] == "Ana Pérez"].iloc[0]
    assert ana["Documento"] == "1011"
    assert ana["P1"] == "4.50"
    assert ana["P3"] == "—"
    assert ana["Promedio"] == "4.75"


def test_export_print(client, auth_headers, gradebook):
    response = client.get("/api/reports/export/print", headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Reporte de Calificaciones" in response.text
    assert "Ana Pérez" in response.text
    assert "Sin Notas" not in response.text
    assert "window.print" in response.text


def test_export_requires_authentication(client):
    assert client.get("/api/reports/export/excel").status_code in (401, 403)
