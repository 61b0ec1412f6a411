"""
Shared test fixtures.

PostgreSQL is replaced by a temporary SQLite file and MongoDB by mongomock,
so the suite runs without any database server:
    pytest
"""
import os
import tempfile
from datetime import datetime, timedelta

_TMP = tempfile.mkdtemp(prefix="nas_test_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'nas_test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["MAX_UPLOAD_SIZE_MB"] = "1"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

import mongomock
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.core.config import get_settings
from app.db.mongodb import set_mongo_client
from app.db.postgres import engine, metadata

settings = get_settings()


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client():
    """Fresh databases for every test; startup re-creates tables and seeds."""
    set_mongo_client(mongomock.MongoClient())
    metadata.drop_all(engine)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_token(client):
    response = client.post("/api/auth/login", json={
        "identifier": settings.admin_id_number,
        "password": settings.admin_password
    })
    assert response.status_code == 200
    return response.json()["access_token"]


@pytest.fixture
def make_applicant(client):
    """Factory: register an applicant and return {"token", "user_id"}."""
    counter = {"n": 0}

    def _make(name: str = "Juan Dela Cruz") -> dict:
        counter["n"] += 1
        n = counter["n"]
        response = client.post("/api/auth/register", json={
            "name": name,
            "id_number": f"2024-{n:05d}",
            "email": f"applicant{n}@example.com",
            "password": "password123"
        })
        assert response.status_code == 201, response.text
        body = response.json()
        return {"token": body["access_token"], "user_id": body["user_id"]}

    return _make


@pytest.fixture
def make_staff(client, admin_token):
    """Factory: create a staff account with a role and return {"token", "user_id"}."""
    counter = {"n": 0}

    def _make(role: str, name: str = "Staff Member") -> dict:
        counter["n"] += 1
        n = counter["n"]
        id_number = f"STAFF-{role}-{n}"
        response = client.post("/api/auth/register/staff", headers=auth(admin_token), json={
            "name": name,
            "id_number": id_number,
            "email": f"{role}{n}@example.com",
            "password": "password123",
            "role": role
        })
        assert response.status_code == 201, response.text
        login = client.post("/api/auth/login", json={"identifier": id_number, "password": "password123"})
        return {"token": login.json()["access_token"], "user_id": response.json()["user_id"]}

    return _make


@pytest.fixture
def applicant(make_applicant):
    return make_applicant()


@pytest.fixture
def oas_staff(make_staff):
    return make_staff("oas_staff", "Olivia Staff")


def application_payload(**overrides) -> dict:
    parent = {
        "first_name": "Pedro", "last_name": "Dela Cruz", "age": 50,
        "occupation": "Farmer", "gross_annual_income": "120000", "contact_number": "09170000001"
    }
    payload = {
        "first_name": "Juan",
        "last_name": "Dela Cruz",
        "email_address": "juan@example.com",
        "type_of_scholarship": "NAS",
        "name_of_scholarship_sponsor": "University",
        "program_of_study_and_year": "BSIT 2",
        "remaining_units_including_this_term": 90,
        "remaining_terms_to_graduate": 5,
        "citizenship": "Filipino",
        "civil_status": "Single",
        "annual_family_income": "240000",
        "residing_at": "Boarding House",
        "permanent_residential_address": "Cebu City",
        "contact_number": "09170000000",
        "family_background": {
            "father": parent,
            "mother": {**parent, "first_name": "Maria", "occupation": "Vendor"},
            "siblings": [{"name": "Ana", "age": 12}]
        },
        "education": {
            "elementary": {"name_and_address_of_school": "Cebu Elementary", "general_average": 90},
            "secondary": {"name_and_address_of_school": "Cebu High", "general_average": 91.5},
            "college_level": [{
                "year_level": 1,
                "first_semester_average_final_grade": 88,
                "second_semester_average_final_grade": 89
            }]
        },
        "current_membership_in_organizations": [{"name_of_organization": "IT Society", "position": "Member"}],
        "references": [{"name": "Prof. Reyes", "relationship_to_the_applicant": "Adviser",
                        "contact_number": "09170000002"}]
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def submitted(client, applicant):
    """An applicant with a submitted application: {"token", "user_id", "application_id"}."""
    response = client.post("/api/application", headers=auth(applicant["token"]), json=application_payload())
    assert response.status_code == 201, response.text
    return {**applicant, "application_id": response.json()["id"]}


def move_status(client, token: str, application_id: str, *statuses):
    for status in statuses:
        response = client.put("/api/application/status", headers=auth(token),
                              json={"application_id": application_id, "status": status})
        assert response.status_code == 200, response.text


def past_window(hours_ago: int = 2) -> dict:
    start = datetime.utcnow() - timedelta(hours=hours_ago)
    return {"start_time": start.isoformat(), "end_time": (start + timedelta(hours=1)).isoformat()}


def future_window(days_ahead: int = 3) -> dict:
    start = datetime.utcnow() + timedelta(days=days_ahead)
    return {"start_time": start.isoformat(), "end_time": (start + timedelta(hours=1)).isoformat()}
