from app.studylinker import mailer, meet
from app.studylinker.db import session_scope
from app.studylinker.modules.teacher_applications.models import TeacherApplication

COVER_LETTER = "I have taught secondary mathematics for eight years and love helping students."


def _apply(user, **overrides):
    payload = {
        "user_id": user.user["id"],
        "subjects": ["Mathematics"],
        "levels": ["Secondary"],
        "experience": "8 years",
        "cover_letter": COVER_LETTER,
    }
    payload.update(overrides)
    return user.client.post("/api/teacher-applications", json=payload)


def test_apply_and_read_back(teacher):
    r = teacher.client.get("/api/teacher-applications/me")
    assert r.status_code == 200
    assert r.json["data"] is None

    r = _apply(teacher)
    assert r.status_code == 201, r.json
    application = r.json["data"]
    assert application["status"] == "PENDING"
    assert application["applicant"]["first_name"] == "Terry"

    r = teacher.client.get("/api/teacher-applications/me")
    assert r.json["data"]["id"] == application["id"]

    r = teacher.client.get("/api/teachers/verification")
    assert r.json["data"] == {
        "is_verified": False,
        "has_application": True,
        "application_status": "PENDING",
        "application_id": application["id"],
    }


def test_apply_validation(teacher):
    r = _apply(teacher, cover_letter="Too short", subjects=[])
    assert r.status_code == 400
    assert "Cover letter must be at least 50 characters" in r.json["error"]
    assert "At least 1 subjects required." in r.json["error"]


def test_cannot_apply_twice_or_for_others(teacher, make_user):
    assert _apply(teacher).status_code == 201
    r = _apply(teacher)
    assert r.status_code == 400
    assert r.json["error"] == "You already have a pending application"

    other = make_user("TEACHER", "Olive")
    r = _apply(other, user_id=teacher.user["id"])
    assert r.status_code == 403


def test_applications_private_to_owner_and_staff(teacher, admin, make_user):
    application = _apply(teacher).json["data"]
    other = make_user("TEACHER", "Olive")
    assert other.client.get(f"/api/teacher-applications/{application['id']}").status_code == 403
    assert admin.client.get(f"/api/teacher-applications/{application['id']}").status_code == 200


def test_review_queue_requires_staff(teacher):
    r = teacher.client.get("/api/admin/teacher-applications")
    assert r.status_code == 403
    assert r.json["code"] == "FORBIDDEN"


def test_approve_verifies_teacher(teacher, admin, client):
    application = _apply(teacher).json["data"]

    r = admin.client.get("/api/admin/teacher-applications?status=pending")
    assert r.status_code == 200
    assert [a["id"] for a in r.json["data"]] == [application["id"]]
    assert r.json["pagination"]["total"] == 1

    r = admin.client.post(
        f"/api/admin/teacher-applications/{application['id']}/status",
        json={"status": "APPROVED", "admin_notes": "Strong candidate"},
    )
    assert r.status_code == 200, r.json
    assert r.json["data"]["status"] == "APPROVED"
    assert r.json["data"]["reviewer"]["first_name"] == "Ada"

    r = client.get(f"/api/teachers/{teacher.profile['id']}")
    assert r.json["data"]["verified"] is True

    r = teacher.client.get("/api/teachers/verification")
    assert r.json["data"]["is_verified"] is True

    r = _apply(teacher)
    assert r.json["error"] == "You are already approved as a teacher"


def test_schedule_interview_sends_invitation(teacher, admin, monkeypatch):
    application = _apply(teacher).json["data"]
    sent = []

    def fake_send_email(config, *, to, subject, html, sender=None):
        sent.append((to, subject, html))
        return True, None

    monkeypatch.setattr(mailer, "send_email", fake_send_email)
    monkeypatch.setattr(
        meet,
        "create_meeting",
        lambda config, title=None: {"meeting_uri": "https://meet.google.com/aaa-bbbb-ccc", "meeting_code": "aaa-bbbb-ccc", "meeting_id": "spaces/x"},
    )

    r = admin.client.post(
        f"/api/admin/teacher-applications/{application['id']}/interview",
        json={"interview_scheduled_at": "2026-11-02T15:00:00Z", "create_meeting": True, "interview_notes": "Bring a lesson plan"},
    )
    assert r.status_code == 200, r.json
    data = r.json["data"]
    assert data["status"] == "INTERVIEW_SCHEDULED"
    assert data["interview_link"] == "https://meet.google.com/aaa-bbbb-ccc"

    assert len(sent) == 1
    to, subject, html = sent[0]
    assert to == teacher.email
    assert subject == "Interview Invitation - StudyLinker Academy"
    assert "https://meet.google.com/aaa-bbbb-ccc" in html


def test_schedule_interview_needs_link(teacher, admin):
    application = _apply(teacher).json["data"]
    r = admin.client.post(
        f"/api/admin/teacher-applications/{application['id']}/interview",
        json={"interview_scheduled_at": "2026-11-02T15:00:00Z"},
    )
    assert r.status_code == 400
    assert r.json["error"] == "Interview link is required"


def test_score_interview(teacher, admin):
    application = _apply(teacher).json["data"]
    r = admin.client.post(
        f"/api/admin/teacher-applications/{application['id']}/score",
        json={"interview_score": 150},
    )
    assert r.status_code == 400

    r = admin.client.post(
        f"/api/admin/teacher-applications/{application['id']}/score",
        json={"interview_score": 82.5},
    )
    assert r.status_code == 200
    assert r.json["data"]["status"] == "INTERVIEW_COMPLETED"
    assert r.json["data"]["interview_score"] == 82.5
    assert r.json["data"]["max_interview_score"] == 100


def test_under_review_blocks_reapply(teacher, admin):
    application = _apply(teacher).json["data"]
    r = admin.client.post(
        f"/api/admin/teacher-applications/{application['id']}/status",
        json={"status": "UNDER_REVIEW"},
    )
    assert r.status_code == 200

    r = _apply(teacher)
    assert r.status_code == 400
    assert r.json["error"] == "You already have a pending application"


def test_rejection_reason_only_kept_for_rejected(teacher, admin):
    application = _apply(teacher).json["data"]
    url = f"/api/admin/teacher-applications/{application['id']}/status"

    r = admin.client.post(url, json={"status": "UNDER_REVIEW", "rejection_reason": "Not yet"})
    assert r.status_code == 200
    assert r.json["data"]["rejection_reason"] is None

    r = admin.client.post(url, json={"status": "REJECTED", "rejection_reason": "Insufficient experience"})
    assert r.json["data"]["status"] == "REJECTED"
    assert r.json["data"]["rejection_reason"] == "Insufficient experience"

    # a rejected applicant may apply again
    assert _apply(teacher).status_code == 201


def test_invitation_sent_after_schedule_is_committed(app, teacher, admin, monkeypatch):
    application = _apply(teacher).json["data"]
    seen_status = []

    def fake_send_email(config, *, to, subject, html, sender=None):
        with session_scope(app) as s:
            seen_status.append(s.get(TeacherApplication, application["id"]).status)
        return False, "mailbox unavailable"

    monkeypatch.setattr(mailer, "send_email", fake_send_email)
    r = admin.client.post(
        f"/api/admin/teacher-applications/{application['id']}/interview",
        json={"interview_scheduled_at": "2026-11-02T15:00:00Z", "interview_link": "https://meet.example.com/abc"},
    )
    assert r.status_code == 200, r.json
    assert seen_status == ["INTERVIEW_SCHEDULED"]

    r = admin.client.get(f"/api/admin/audit?entity_id={application['id']}&action=invitation_sent")
    events = r.json["data"]
    assert len(events) == 1
    assert events[0]["reason"] == "mailbox unavailable"
