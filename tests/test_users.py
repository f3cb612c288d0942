def test_onboarding_parent_creates_profiles(parent):
    assert parent.user["role"] == "PARENT"
    assert parent.user["email"] == parent.email
    assert parent.profile["user_id"] == parent.user["id"]

    r = parent.client.get("/api/users/me")
    assert r.status_code == 200
    assert r.json["data"]["id"] == parent.user["id"]

    r = parent.client.get("/api/parents/me")
    assert r.status_code == 200
    assert r.json["data"]["id"] == parent.profile["id"]
    assert r.json["data"]["user"]["first_name"] == "Paula"


def test_onboarding_teacher_creates_unverified_profile(teacher):
    assert teacher.user["role"] == "TEACHER"
    assert teacher.profile["verified"] is False
    assert teacher.profile["currency"] == "USD"


def test_onboarding_rejects_invalid_role(app):
    c = app.test_client()
    c.post("/auth/signup", json={"email": "who@example.com", "password": "password123"})
    r = c.post("/api/onboarding", json={"role": "ADMIN"})
    assert r.status_code == 400
    assert r.json["error"] == "Invalid role. Must be PARENT or TEACHER"


def test_onboarding_twice_is_rejected(parent):
    r = parent.client.post("/api/onboarding", json={"role": "PARENT"})
    assert r.status_code == 400
    assert r.json["error"] == "A user profile already exists for this account"


def test_onboarding_requires_login(client):
    r = client.post("/api/onboarding", json={"role": "PARENT"})
    assert r.status_code == 401
    assert r.json["code"] == "UNAUTHORIZED"


def test_update_own_profile(parent):
    r = parent.client.patch(f"/api/users/{parent.user['id']}", json={"first_name": "Paulina"})
    assert r.status_code == 200
    assert r.json["data"]["first_name"] == "Paulina"


def test_cannot_update_someone_elses_profile(parent, teacher):
    r = teacher.client.patch(f"/api/users/{parent.user['id']}", json={"first_name": "Hacked"})
    assert r.status_code == 403
    assert r.json["code"] == "FORBIDDEN"


def test_get_user_by_auth_id_and_missing(parent):
    r = parent.client.get(f"/api/users/by-auth/{parent.auth_id}")
    assert r.status_code == 200
    assert r.json["data"]["id"] == parent.user["id"]

    r = parent.client.get("/api/users/does-not-exist")
    assert r.status_code == 404
    assert r.json == {"success": False, "error": "User not found", "code": "NOT_FOUND"}


def test_parent_profile_creation_is_idempotent(parent):
    r = parent.client.post("/api/parents", json={"user_id": parent.user["id"]})
    assert r.status_code == 201
    assert r.json["data"]["id"] == parent.profile["id"]


def test_delete_own_profile(parent):
    r = parent.client.delete(f"/api/users/{parent.user['id']}")
    assert r.status_code == 200
    r = parent.client.get("/api/users/me")
    assert r.status_code == 404
