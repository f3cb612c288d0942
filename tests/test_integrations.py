from datetime import datetime
from types import SimpleNamespace

import requests

from app.studylinker import mailer


class _FakePost:
    def __init__(self, ok=True, text=""):
        self.calls = []
        self.ok = ok
        self.text = text

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return SimpleNamespace(ok=self.ok, text=self.text)


def test_resend_provider(monkeypatch):
    fake = _FakePost()
    monkeypatch.setattr(mailer.requests, "post", fake)
    ok, error = mailer.send_email(
        {"EMAIL_PROVIDER": "resend", "RESEND_API_KEY": "re_123"},
        to="teacher@example.com",
        subject="Hi",
        html="<p>Hi</p>",
    )
    assert (ok, error) == (True, None)
    url, kwargs = fake.calls[0]
    assert url == mailer.RESEND_URL
    assert kwargs["headers"]["Authorization"] == "Bearer re_123"
    assert kwargs["json"]["from"] == mailer.DEFAULT_FROM


def test_sendgrid_provider_error(monkeypatch):
    monkeypatch.setattr(mailer.requests, "post", _FakePost(ok=False, text="bad key"))
    ok, error = mailer.send_email(
        {"EMAIL_PROVIDER": "sendgrid", "SENDGRID_API_KEY": "sg"},
        to="teacher@example.com",
        subject="Hi",
        html="<p>Hi</p>",
    )
    assert ok is False
    assert error == "SendGrid API error: bad key"


def test_missing_api_key_and_network_errors(monkeypatch):
    ok, error = mailer.send_email({"EMAIL_PROVIDER": "resend"}, to="a@example.com", subject="s", html="h")
    assert ok is False
    assert error == "RESEND_API_KEY is not configured"

    def boom(url, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(mailer.requests, "post", boom)
    ok, error = mailer.send_email(
        {"EMAIL_PROVIDER": "resend", "RESEND_API_KEY": "k"}, to="a@example.com", subject="s", html="h"
    )
    assert ok is False
    assert "offline" in error


def test_log_provider_only_logs(monkeypatch):
    monkeypatch.setattr(mailer.requests, "post", _FakePost())
    assert mailer.send_email({"EMAIL_PROVIDER": "log"}, to="a@example.com", subject="s", html="h") == (True, None)


def test_interview_invitation_template(app):
    with app.app_context():
        html = mailer.render_interview_invitation(
            "Terry Tester", datetime(2026, 11, 2, 15, 0), "https://meet.google.com/aaa-bbbb-ccc", "Bring a lesson plan"
        )
    assert "Terry Tester" in html
    assert "Monday, November 02, 2026 at 03:00 PM UTC" in html
    assert "https://meet.google.com/aaa-bbbb-ccc" in html
    assert "Bring a lesson plan" in html


def test_admin_status_and_audit(admin, parent):
    assert parent.client.get("/api/admin/").status_code == 403

    r = admin.client.get("/api/admin/")
    assert r.status_code == 200
    data = r.json["data"]
    assert data["db_connected"] is True
    assert data["storage_backend"] == "local"
    assert data["meet_configured"] is False
    assert data["ai_configured"] is False
    assert data["realtime_subscribers"] == 0
    assert data["queues"] == {"pending_teacher_applications": 0, "new_contacts": 0}

    r = admin.client.get("/api/admin/audit?action=onboard")
    assert r.status_code == 200
    assert r.json["data"]
    assert all(e["action"] == "user.onboard" for e in r.json["data"])

    r = admin.client.get("/api/admin/audit?date_from=yesterday")
    assert r.status_code == 400
    assert r.json["error"] == "date_from must be YYYY-MM-DD"
