def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_ok(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_unknown_route_is_tagged_json(client):
    r = client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert r.json["success"] is False
    assert r.json["code"] == "NOT_FOUND"


def test_signup_me_logout(client):
    r = client.post("/auth/signup", json={"email": "New@Example.com", "password": "password123"})
    assert r.status_code == 201
    assert r.json["data"]["email"] == "new@example.com"
    assert r.json["data"]["csrf_token"]

    r = client.get("/auth/me")
    assert r.status_code == 200
    assert r.json["data"]["profile"] is None

    r = client.post("/auth/logout")
    assert r.json["success"] is True

    r = client.get("/auth/me")
    assert r.status_code == 401
    assert r.json == {"success": False, "error": "Unauthorized", "code": "UNAUTHORIZED"}


def test_signup_validation(client):
    r = client.post("/auth/signup", json={"email": "not-an-email", "password": "short"})
    assert r.status_code == 400
    assert r.json["code"] == "VALIDATION_ERROR"
    assert "Invalid email address" in r.json["error"]

    client.post("/auth/signup", json={"email": "dup@example.com", "password": "password123"})
    r = client.post("/auth/signup", json={"email": "dup@example.com", "password": "password123"})
    assert r.status_code == 400
    assert r.json["error"] == "An account with this email already exists"


def test_login_wrong_password_then_ok(app):
    c = app.test_client()
    c.post("/auth/signup", json={"email": "login@example.com", "password": "password123"})
    c.post("/auth/logout")

    r = c.post("/auth/login", json={"email": "login@example.com", "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json["error"] == "Invalid credentials"

    r = c.post("/auth/login", json={"email": "login@example.com", "password": "password123"})
    assert r.status_code == 200
    assert r.json["data"]["email"] == "login@example.com"


def test_login_rate_limited(client):
    for _ in range(5):
        client.post("/auth/login", json={"email": "nobody@example.com", "password": "x"})
    r = client.post("/auth/login", json={"email": "nobody@example.com", "password": "x"})
    assert r.status_code == 429
    assert r.json["code"] == "RATE_LIMITED"


def test_csrf_required_for_mutations_when_enabled(app):
    app.config["CSRF_ENABLED"] = True
    c = app.test_client()
    payload = {
        "name": "Visitor",
        "email": "visitor@example.com",
        "subject": "Hello",
        "message": "I have a question about lessons.",
    }
    r = c.post("/api/contacts", json=payload)
    assert r.status_code == 400
    assert r.json["code"] == "CSRF_FAILED"

    token = c.get("/auth/csrf").json["data"]["csrf_token"]
    r = c.post("/api/contacts", json=payload, headers={"X-CSRF-Token": token})
    assert r.status_code == 201


def test_meetings_require_login(client):
    r = client.post("/api/meetings", json={"title": "Lesson"})
    assert r.status_code == 401


def test_meetings_not_configured(parent):
    r = parent.client.post("/api/meetings", json={"title": "Lesson"})
    assert r.status_code == 500
    assert r.json["code"] == "MEETING_NOT_CONFIGURED"
    assert "GOOGLE_SERVICE_ACCOUNT_EMAIL" in r.json["error"]
