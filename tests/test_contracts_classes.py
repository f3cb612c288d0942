from app.studylinker import meet
from conftest import future


def _class_payload(contract, **extra):
    payload = {
        "contract_id": contract["id"],
        "teacher_id": contract["teacher_id"],
        "student_id": contract["student_id"],
        "title": "Fractions",
        "scheduled_at": future(2),
        "duration": 60,
    }
    payload.update(extra)
    return payload


def test_contract_created_active(contract, parent, teacher):
    assert contract["status"] == "ACTIVE"
    assert contract["currency"] == "USD"
    assert contract["rate"] == 30
    assert contract["start_date"] == "2026-01-05T00:00:00"

    r = teacher.client.get(f"/api/contracts/{contract['id']}")
    assert r.status_code == 200
    assert r.json["data"]["student"]["first_name"] == "Sam"
    assert r.json["data"]["teacher"]["id"] == teacher.profile["id"]


def test_contract_rejects_foreign_student(parent, teacher, make_user):
    other = make_user("PARENT", "Otto")
    r = other.client.post(
        "/api/students", json={"parent_id": other.profile["id"], "first_name": "Olly"}
    )
    foreign_student = r.json["data"]
    r = parent.client.post(
        "/api/contracts",
        json={
            "parent_id": parent.profile["id"],
            "teacher_id": teacher.profile["id"],
            "student_id": foreign_student["id"],
            "subject": "Maths",
            "level": "Primary",
            "rate": 20,
            "hours_per_week": "2",
            "start_date": "2026-02-01",
        },
    )
    assert r.status_code == 400
    assert r.json["error"] == "Student does not belong to this parent"


def test_contract_end_before_start(parent, contract):
    r = parent.client.patch(f"/api/contracts/{contract['id']}", json={"end_date": "2025-01-01"})
    assert r.status_code == 400
    assert r.json["error"] == "End date must be after start date."


def test_contract_reads_limited_to_parties(contract, make_user):
    outsider = make_user("TEACHER", "Olive")
    r = outsider.client.get(f"/api/contracts/{contract['id']}")
    assert r.status_code == 403
    r = outsider.client.get("/api/contracts/missing")
    assert r.status_code == 404


def test_contract_lists(parent, teacher, contract):
    r = parent.client.get(f"/api/parents/{parent.profile['id']}/contracts")
    assert [c["id"] for c in r.json["data"]] == [contract["id"]]
    r = teacher.client.get(f"/api/teachers/{teacher.profile['id']}/contracts")
    assert [c["id"] for c in r.json["data"]] == [contract["id"]]
    r = teacher.client.get(f"/api/parents/{parent.profile['id']}/contracts")
    assert r.status_code == 403


def test_update_contract_status(teacher, contract):
    r = teacher.client.patch(f"/api/contracts/{contract['id']}", json={"status": "paused"})
    assert r.status_code == 200
    assert r.json["data"]["status"] == "PAUSED"


def test_create_class_and_list(teacher, parent, contract):
    r = teacher.client.post("/api/classes", json=_class_payload(contract, meeting_link="https://meet.example.com/x"))
    assert r.status_code == 201, r.json
    klass = r.json["data"]
    assert klass["status"] == "SCHEDULED"
    assert klass["meeting_link"] == "https://meet.example.com/x"

    r = parent.client.get(f"/api/contracts/{contract['id']}/classes")
    assert [c["id"] for c in r.json["data"]] == [klass["id"]]


def test_create_class_with_generated_meeting(teacher, contract, monkeypatch):
    calls = []

    def fake_create_meeting(config, title=None):
        calls.append(title)
        return {"meeting_uri": "https://meet.google.com/abc-defg-hij", "meeting_code": "abc-defg-hij", "meeting_id": "spaces/1"}

    monkeypatch.setattr(meet, "create_meeting", fake_create_meeting)
    r = teacher.client.post("/api/classes", json=_class_payload(contract, create_meeting=True))
    assert r.status_code == 201
    assert r.json["data"]["meeting_link"] == "https://meet.google.com/abc-defg-hij"
    assert calls == ["Fractions"]


def test_create_class_mismatched_student(teacher, contract):
    r = teacher.client.post("/api/classes", json=_class_payload(contract, student_id="other"))
    assert r.status_code == 400
    assert r.json["error"] == "Student does not match the contract"


def test_class_requires_fields(teacher, contract):
    r = teacher.client.post("/api/classes", json={"contract_id": contract["id"]})
    assert r.status_code == 400
    assert r.json["code"] == "VALIDATION_ERROR"
    assert "Duration is required." in r.json["error"]


def test_upcoming_classes(teacher, parent, contract):
    soon = teacher.client.post("/api/classes", json=_class_payload(contract, title="Soon", scheduled_at=future(1))).json["data"]
    later = teacher.client.post("/api/classes", json=_class_payload(contract, title="Later", scheduled_at=future(5))).json["data"]
    past = teacher.client.post("/api/classes", json=_class_payload(contract, title="Past", scheduled_at=future(-3))).json["data"]
    cancelled = teacher.client.post("/api/classes", json=_class_payload(contract, title="Off", scheduled_at=future(3))).json["data"]
    r = teacher.client.patch(f"/api/classes/{cancelled['id']}", json={"status": "CANCELLED"})
    assert r.status_code == 200

    r = teacher.client.get(f"/api/teachers/{teacher.profile['id']}/classes/upcoming")
    assert r.status_code == 200
    assert [c["id"] for c in r.json["data"]] == [soon["id"], later["id"]]
    assert past["id"] not in [c["id"] for c in r.json["data"]]

    r = parent.client.get(f"/api/teachers/{teacher.profile['id']}/classes/upcoming")
    assert r.status_code == 403
