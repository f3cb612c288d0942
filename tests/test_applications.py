def _apply(teacher, job, **extra):
    payload = {"job_id": job["id"], "teacher_id": teacher.profile["id"], "proposed_rate": 28, "cover_letter": "Hi"}
    payload.update(extra)
    return teacher.client.post("/api/applications", json=payload)


def test_teacher_applies_once(teacher, job):
    r = _apply(teacher, job)
    assert r.status_code == 201, r.json
    assert r.json["data"]["status"] == "PENDING"

    r = _apply(teacher, job)
    assert r.status_code == 400
    assert r.json["error"] == "Application already exists"


def test_apply_to_closed_job(teacher, parent, job):
    parent.client.patch(f"/api/jobs/{job['id']}", json={"status": "CLOSED"})
    r = _apply(teacher, job)
    assert r.status_code == 400
    assert r.json["error"] == "Job posting is not open for applications"


def test_apply_to_missing_job(teacher):
    r = _apply(teacher, {"id": "missing"})
    assert r.status_code == 404
    assert r.json["error"] == "Job posting not found"


def test_apply_as_someone_else_forbidden(teacher, job, make_user):
    other = make_user("TEACHER", "Olive")
    r = other.client.post(
        "/api/applications",
        json={"job_id": job["id"], "teacher_id": teacher.profile["id"]},
    )
    assert r.status_code == 403


def test_parent_accepts_teacher_withdraws(parent, teacher, job):
    application = _apply(teacher, job).json["data"]

    r = parent.client.patch(f"/api/applications/{application['id']}", json={"proposed_rate": 10})
    assert r.status_code == 403

    r = teacher.client.patch(f"/api/applications/{application['id']}", json={"status": "ACCEPTED"})
    assert r.status_code == 403

    r = parent.client.patch(f"/api/applications/{application['id']}", json={"status": "ACCEPTED"})
    assert r.status_code == 200
    assert r.json["data"]["status"] == "ACCEPTED"

    r = teacher.client.patch(f"/api/applications/{application['id']}", json={"status": "WITHDRAWN", "proposed_rate": 32})
    assert r.status_code == 200
    assert r.json["data"]["status"] == "WITHDRAWN"
    assert r.json["data"]["proposed_rate"] == 32


def test_list_applications_by_job_and_teacher(parent, teacher, job, make_user):
    _apply(teacher, job)
    other = make_user("TEACHER", "Olive")
    _apply(other, job)

    r = parent.client.get(f"/api/jobs/{job['id']}/applications")
    assert r.status_code == 200
    assert len(r.json["data"]) == 2
    assert {a["teacher"]["id"] for a in r.json["data"]} == {teacher.profile["id"], other.profile["id"]}

    r = teacher.client.get(f"/api/jobs/{job['id']}/applications")
    assert r.status_code == 403

    r = teacher.client.get(f"/api/teachers/{teacher.profile['id']}/applications")
    assert [a["job"]["id"] for a in r.json["data"]] == [job["id"]]

    r = other.client.get(f"/api/teachers/{teacher.profile['id']}/applications")
    assert r.status_code == 403
