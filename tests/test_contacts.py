CONTACT = {
    "name": "Jamie Doe",
    "email": "Jamie@Example.com",
    "subject": "Pricing",
    "message": "How much does a weekly maths lesson cost?",
}


def test_anonymous_contact_submission(client):
    r = client.post("/api/contacts", json=CONTACT)
    assert r.status_code == 201, r.json
    data = r.json["data"]
    assert data["status"] == "NEW"
    assert data["email"] == "jamie@example.com"
    assert data["user_id"] is None


def test_signed_in_contact_links_profile(parent):
    r = parent.client.post("/api/contacts", json=CONTACT)
    assert r.status_code == 201
    assert r.json["data"]["user_id"] == parent.user["id"]


def test_contact_validation(client):
    r = client.post("/api/contacts", json={**CONTACT, "email": "nope", "message": "short"})
    assert r.status_code == 400
    assert "Invalid email address" in r.json["error"]
    assert "Message must be at least 10 characters." in r.json["error"]


def test_staff_manage_contacts(client, admin, parent):
    contact = client.post("/api/contacts", json=CONTACT).json["data"]
    client.post("/api/contacts", json={**CONTACT, "subject": "Second"})

    assert parent.client.get("/api/admin/contacts").status_code == 403
    assert client.get("/api/admin/contacts").status_code == 401

    r = admin.client.get("/api/admin/contacts?limit=1")
    assert r.status_code == 200
    assert len(r.json["data"]) == 1
    assert r.json["pagination"]["total"] == 2

    r = admin.client.patch(f"/api/admin/contacts/{contact['id']}", json={"status": "resolved"})
    assert r.status_code == 200, r.json
    assert r.json["data"]["status"] == "RESOLVED"

    r = admin.client.get("/api/admin/contacts?status=RESOLVED")
    assert [c["id"] for c in r.json["data"]] == [contact["id"]]

    assert admin.client.get("/api/admin/contacts/missing").status_code == 404
