import uuid
from datetime import timedelta
from types import SimpleNamespace

import pytest

from app.studylinker import auth, create_app
from app.studylinker.db import session_scope
from app.studylinker.models import Base
from app.studylinker.modules.users.models import UserProfile
from app.studylinker.utils import utcnow

PASSWORD = "password123"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("CSRF_ENABLED", "0")
    monkeypatch.setenv("EMAIL_PROVIDER", "log")
    for k in (
        "S3_ENDPOINT",
        "S3_REGION",
        "S3_BUCKET",
        "S3_ACCESS_KEY_ID",
        "S3_SECRET_ACCESS_KEY",
        "STORAGE_PUBLIC_BASE_URL",
        "GOOGLE_SERVICE_ACCOUNT_EMAIL",
        "GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY",
        "GOOGLE_PROJECT_ID",
        "GEMINI_API_KEY",
        "GEMINI_MODEL",
        "REALTIME_MAX_SUBSCRIBERS",
    ):
        monkeypatch.delenv(k, raising=False)
    # local storage writes under ./storage
    monkeypatch.chdir(tmp_path)
    auth._login_attempts.clear()

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _signup(app, role: str, first_name: str):
    c = app.test_client()
    email = f"{role.lower()}-{uuid.uuid4().hex[:8]}@example.com"
    r = c.post("/auth/signup", json={"email": email, "password": PASSWORD})
    assert r.status_code == 201, r.json
    auth_id = r.json["data"]["auth_id"]

    if role in ("PARENT", "TEACHER"):
        r = c.post("/api/onboarding", json={"role": role, "first_name": first_name, "last_name": "Tester"})
        assert r.status_code == 201, r.json
        return SimpleNamespace(
            client=c,
            email=email,
            auth_id=auth_id,
            user=r.json["data"]["user"],
            profile=r.json["data"]["profile"],
        )

    with session_scope(app) as s:
        staff = UserProfile(auth_id=auth_id, email=email, first_name=first_name, role=role)
        s.add(staff)
        s.flush()
        user = staff.to_dict()
    return SimpleNamespace(client=c, email=email, auth_id=auth_id, user=user, profile=None)


@pytest.fixture()
def make_user(app):
    def _make(role: str = "PARENT", first_name: str = "Pat"):
        return _signup(app, role, first_name)

    return _make


@pytest.fixture()
def parent(make_user):
    return make_user("PARENT", "Paula")


@pytest.fixture()
def teacher(make_user):
    return make_user("TEACHER", "Terry")


@pytest.fixture()
def admin(make_user):
    return make_user("ADMIN", "Ada")


@pytest.fixture()
def student(parent):
    r = parent.client.post(
        "/api/students",
        json={"parent_id": parent.profile["id"], "first_name": "Sam", "age": 10, "grade": "5"},
    )
    assert r.status_code == 201, r.json
    return r.json["data"]


def job_payload(parent_id: str, **overrides) -> dict:
    payload = {
        "parent_id": parent_id,
        "title": "Maths tutor needed",
        "subject": "Mathematics",
        "level": "Primary",
        "hours_per_week": "3",
        "budget": "$30/hr",
        "description": "Looking for a patient maths tutor for weekly sessions.",
        "requirements": ["Patient", "Experienced"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def job(parent):
    r = parent.client.post("/api/jobs", json=job_payload(parent.profile["id"]))
    assert r.status_code == 201, r.json
    return r.json["data"]


@pytest.fixture()
def contract(parent, teacher, student, job):
    r = parent.client.post(
        "/api/contracts",
        json={
            "parent_id": parent.profile["id"],
            "teacher_id": teacher.profile["id"],
            "student_id": student["id"],
            "job_id": job["id"],
            "subject": "Mathematics",
            "level": "Primary",
            "rate": 30,
            "hours_per_week": "3",
            "start_date": "2026-01-05T00:00:00Z",
        },
    )
    assert r.status_code == 201, r.json
    return r.json["data"]


def future(days: int = 2) -> str:
    return (utcnow() + timedelta(days=days)).replace(microsecond=0).isoformat()
