import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from aula.database import engine, get_db
from aula.models.all_models import Base
from main import app

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def register(client, email="docente@colegio.edu.co", password="secreto123", **extra):
    payload = {
        "email": email,
        "password": password,
        "first_name": "Laura",
        "last_name": "Gómez",
        **extra,
    }
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def auth_headers(client):
    tokens = register(client)
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest.fixture
def other_headers(client):
    tokens = register(client, email="otro@colegio.edu.co")
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest.fixture
def course(client, auth_headers):
    response = client.post(
        "/api/courses",
        json={"subject": "Matemáticas", "grade": 10, "group_number": 1, "schedule": "Lunes 7:00"},
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def create_student(client, headers, course_id=None, first_name="Ana", last_name="Pérez", **extra):
    payload = {
        "first_name": first_name,
        "last_name": last_name,
        "gender": "femenino",
        "document_number": extra.pop("document_number", f"100{first_name}{last_name}"),
        "course_id": course_id,
        **extra,
    }
    response = client.post("/api/students", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def period_id(client, headers, name="Periodo 1"):
    periods = client.get("/api/grades/periods", headers=headers).json()
    return next(p["id"] for p in periods if p["name"] == name)


def grade_activity(client, headers, course_id, period_name, title, grades):
    """Create an activity in a period and save ``grades`` ({student_id: value}) for it."""
    response = client.post(
        "/api/grades/activities",
        json={"course_id": course_id, "period_id": period_id(client, headers, period_name), "title": title},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    activity = response.json()
    response = client.post(
        f"/api/grades/activities/{activity['id']}/grades",
        json={"grades": [{"student_id": sid, "value": value} for sid, value in grades.items()]},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return activity
