from conftest import job_payload


def test_create_and_list_students(parent, student):
    assert student["first_name"] == "Sam"
    assert student["age"] == 10
    r = parent.client.get(f"/api/parents/{parent.profile['id']}/students")
    assert [s["id"] for s in r.json["data"]] == [student["id"]]


def test_student_validation(parent):
    r = parent.client.post("/api/students", json={"parent_id": parent.profile["id"], "age": 2})
    assert r.status_code == 400
    assert "First name is required." in r.json["error"]
    assert "Age must be at least 3." in r.json["error"]


def test_student_for_other_parent_forbidden(parent, make_user):
    other = make_user("PARENT", "Otto")
    r = other.client.post("/api/students", json={"parent_id": parent.profile["id"], "first_name": "Eve"})
    assert r.status_code == 403


def test_update_and_delete_student(parent, student, teacher):
    r = teacher.client.patch(f"/api/students/{student['id']}", json={"grade": "6"})
    assert r.status_code == 403

    r = parent.client.patch(f"/api/students/{student['id']}", json={"grade": "6"})
    assert r.status_code == 200
    assert r.json["data"]["grade"] == "6"

    r = parent.client.delete(f"/api/students/{student['id']}")
    assert r.status_code == 200
    r = parent.client.get(f"/api/students/{student['id']}")
    assert r.status_code == 404
    assert r.json["error"] == "Student not found"


def test_create_job_defaults(job, parent):
    assert job["status"] == "OPEN"
    assert job["application_mode"] == "OPEN"
    assert job["curriculum"] is False
    assert job["parent_id"] == parent.profile["id"]
    assert job["requirements"] == ["Patient", "Experienced"]


def test_create_job_requires_fields(parent):
    r = parent.client.post("/api/jobs", json={"parent_id": parent.profile["id"], "title": "Tutor"})
    assert r.status_code == 400
    assert "Subject is required." in r.json["error"]


def test_teacher_cannot_post_job_for_parent(teacher, parent):
    r = teacher.client.post("/api/jobs", json=job_payload(parent.profile["id"]))
    assert r.status_code == 403


def test_get_job_embeds_parent(client, job):
    r = client.get(f"/api/jobs/{job['id']}")
    assert r.status_code == 200
    assert r.json["data"]["parent"]["user"]["first_name"] == "Paula"

    r = client.get("/api/jobs/missing")
    assert r.status_code == 404
    assert r.json["error"] == "Job posting not found"


def test_search_jobs_filters_and_paginates(client, parent):
    pid = parent.profile["id"]
    parent.client.post("/api/jobs", json=job_payload(pid, title="Maths 1"))
    parent.client.post("/api/jobs", json=job_payload(pid, title="Physics", subject="Physics"))
    parent.client.post("/api/jobs", json=job_payload(pid, title="Maths 2"))

    r = client.get("/api/jobs?subject=Mathematics")
    assert [j["title"] for j in r.json["data"]] == ["Maths 2", "Maths 1"]
    assert r.json["pagination"]["total"] == 2

    r = client.get("/api/jobs?limit=1&page=2")
    assert len(r.json["data"]) == 1
    assert r.json["pagination"] == {"page": 2, "limit": 1, "total": 3, "total_pages": 3}

    r = client.get("/api/jobs?status=bogus")
    assert r.status_code == 400


def test_update_and_delete_job(parent, job, make_user):
    other = make_user("PARENT", "Otto")
    r = other.client.patch(f"/api/jobs/{job['id']}", json={"status": "CLOSED"})
    assert r.status_code == 403

    r = parent.client.patch(f"/api/jobs/{job['id']}", json={"status": "closed", "budget": "$35/hr"})
    assert r.status_code == 200
    assert r.json["data"]["status"] == "CLOSED"
    assert r.json["data"]["budget"] == "$35/hr"

    r = parent.client.delete(f"/api/jobs/{job['id']}")
    assert r.status_code == 200
    r = parent.client.get(f"/api/parents/{parent.profile['id']}/jobs")
    assert r.json["data"] == []


def test_staff_can_moderate_job_status(job, admin, make_user, client):
    manager = make_user("MANAGER", "Mona")
    r = manager.client.patch(f"/api/jobs/{job['id']}", json={"status": "cancelled"})
    assert r.status_code == 200, r.json
    assert r.json["data"]["status"] == "CANCELLED"
    assert client.get(f"/api/jobs/{job['id']}").json["data"]["status"] == "CANCELLED"

    r = admin.client.patch(f"/api/jobs/{job['id']}", json={"status": "OPEN", "title": "Rewritten"})
    assert r.status_code == 403
    assert r.json["error"] == "Staff can only change the status of a job posting"

    r = admin.client.get(f"/api/admin/audit?action=job.moderate&entity_id={job['id']}")
    assert [e["actor_email"] for e in r.json["data"]] == [manager.email]
