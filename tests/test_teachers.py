def _add_subject(teacher, subject, experience=None):
    r = teacher.client.post(
        f"/api/teachers/{teacher.profile['id']}/subjects",
        json={"subject": subject, "experience": experience},
    )
    assert r.status_code == 201, r.json
    return r.json["data"]


def test_get_teacher_is_public(client, teacher):
    r = client.get(f"/api/teachers/{teacher.profile['id']}")
    assert r.status_code == 200
    assert r.json["data"]["user"]["first_name"] == "Terry"


def test_get_missing_teacher(client):
    r = client.get("/api/teachers/missing")
    assert r.status_code == 404
    assert r.json["error"] == "Teacher not found"


def test_update_own_teacher_profile(teacher):
    r = teacher.client.patch(
        f"/api/teachers/{teacher.profile['id']}",
        json={"bio": "Ten years of maths", "location": "London", "hourly_rate": 45, "languages": ["English"]},
    )
    assert r.status_code == 200
    data = r.json["data"]
    assert data["bio"] == "Ten years of maths"
    assert data["hourly_rate"] == 45
    assert data["languages"] == ["English"]


def test_update_other_teacher_profile_forbidden(teacher, make_user):
    other = make_user("TEACHER", "Olive")
    r = other.client.patch(f"/api/teachers/{teacher.profile['id']}", json={"bio": "mine now"})
    assert r.status_code == 403


def test_search_filters_by_subject_location_and_rate(client, teacher, make_user):
    other = make_user("TEACHER", "Olive")
    _add_subject(teacher, "Mathematics", 5)
    _add_subject(other, "Physics")
    teacher.client.patch(f"/api/teachers/{teacher.profile['id']}", json={"location": "London", "hourly_rate": 40})
    other.client.patch(f"/api/teachers/{other.profile['id']}", json={"location": "Leeds", "hourly_rate": 80})

    r = client.get("/api/teachers?subject=mathematics")
    assert r.status_code == 200
    assert [t["id"] for t in r.json["data"]] == [teacher.profile["id"]]
    assert r.json["pagination"] == {"page": 1, "limit": 20, "total": 1, "total_pages": 1}

    r = client.get("/api/teachers?location=lee")
    assert [t["id"] for t in r.json["data"]] == [other.profile["id"]]

    r = client.get("/api/teachers?max_rate=50")
    assert [t["id"] for t in r.json["data"]] == [teacher.profile["id"]]

    r = client.get("/api/teachers?verified=true")
    assert r.json["data"] == []


def test_search_rejects_bad_pagination(client):
    r = client.get("/api/teachers?page=0")
    assert r.status_code == 400
    assert r.json["code"] == "VALIDATION_ERROR"


def test_qualifications_crud(client, teacher):
    tid = teacher.profile["id"]
    r = teacher.client.post(f"/api/teachers/{tid}/qualifications", json={"title": "BSc Maths", "year": 2010})
    assert r.status_code == 201
    older = r.json["data"]
    teacher.client.post(f"/api/teachers/{tid}/qualifications", json={"title": "MSc Maths", "year": 2014})
    teacher.client.post(f"/api/teachers/{tid}/qualifications", json={"title": "First aid"})

    r = client.get(f"/api/teachers/{tid}/qualifications")
    assert [q["title"] for q in r.json["data"]] == ["MSc Maths", "BSc Maths", "First aid"]

    r = teacher.client.patch(f"/api/qualifications/{older['id']}", json={"institution": "UCL"})
    assert r.status_code == 200
    assert r.json["data"]["institution"] == "UCL"

    r = teacher.client.delete(f"/api/qualifications/{older['id']}")
    assert r.status_code == 200
    r = client.get(f"/api/teachers/{tid}/qualifications")
    assert len(r.json["data"]) == 2


def test_qualification_validation(teacher):
    r = teacher.client.post(f"/api/teachers/{teacher.profile['id']}/qualifications", json={"year": 1800})
    assert r.status_code == 400
    assert "Title is required." in r.json["error"]


def test_subjects_and_levels(client, teacher, parent):
    tid = teacher.profile["id"]
    row = _add_subject(teacher, "Chemistry", 3)
    _add_subject(teacher, "Biology")
    r = client.get(f"/api/teachers/{tid}/subjects")
    assert [x["subject"] for x in r.json["data"]] == ["Biology", "Chemistry"]

    r = parent.client.delete(f"/api/subjects/{row['id']}")
    assert r.status_code == 403
    r = teacher.client.delete(f"/api/subjects/{row['id']}")
    assert r.status_code == 200
    r = teacher.client.delete(f"/api/subjects/{row['id']}")
    assert r.status_code == 404
    assert r.json["error"] == "Subject not found"

    r = teacher.client.post(f"/api/teachers/{tid}/levels", json={"level": "GCSE"})
    assert r.status_code == 201
    r = client.get(f"/api/teachers/{tid}/levels")
    assert [x["level"] for x in r.json["data"]] == ["GCSE"]


def test_verification_status(teacher, parent):
    r = teacher.client.get("/api/teachers/verification")
    assert r.status_code == 200
    assert r.json["data"] == {
        "is_verified": False,
        "has_application": False,
        "application_status": None,
        "application_id": None,
    }

    r = parent.client.get("/api/teachers/verification")
    assert r.status_code == 403
    assert r.json["error"] == "User is not a teacher"
