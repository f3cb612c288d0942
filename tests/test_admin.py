def test_user_directory_filters(parent, teacher, admin):
    r = admin.client.get("/api/admin/users")
    assert r.status_code == 200
    assert r.json["pagination"]["total"] == 3

    r = admin.client.get("/api/admin/users?role=teacher")
    assert [u["id"] for u in r.json["data"]] == [teacher.user["id"]]

    r = admin.client.get("/api/admin/users?search=PAULA")
    assert [u["email"] for u in r.json["data"]] == [parent.email]

    r = admin.client.get("/api/admin/users?limit=2&page=2")
    assert len(r.json["data"]) == 1
    assert r.json["pagination"] == {"page": 2, "limit": 2, "total": 3, "total_pages": 2}

    r = admin.client.get("/api/admin/users?role=owner")
    assert r.status_code == 400


def test_user_directory_is_staff_only(parent, make_user):
    assert parent.client.get("/api/admin/users").status_code == 403
    manager = make_user("MANAGER", "Mona")
    assert manager.client.get("/api/admin/users").status_code == 200


def test_admin_changes_role_and_name(parent, admin):
    r = admin.client.patch(
        f"/api/admin/users/{parent.user['id']}",
        json={"role": "manager", "first_name": "Paulina"},
    )
    assert r.status_code == 200, r.json
    assert r.json["data"]["role"] == "MANAGER"
    assert r.json["data"]["first_name"] == "Paulina"

    # the new role takes effect on the next request
    assert parent.client.get("/api/admin/users").status_code == 200

    r = admin.client.get(f"/api/admin/audit?action=user_profile.admin_edit&entity_id={parent.user['id']}")
    assert len(r.json["data"]) == 1


def test_role_changes_are_admin_only(parent, admin, make_user):
    manager = make_user("MANAGER", "Mona")
    r = manager.client.patch(f"/api/admin/users/{manager.user['id']}", json={"role": "ADMIN"})
    assert r.status_code == 403

    r = admin.client.patch(f"/api/admin/users/{admin.user['id']}", json={"role": "PARENT"})
    assert r.status_code == 403
    assert r.json["error"] == "You cannot change your own role"

    r = admin.client.patch(f"/api/admin/users/{parent.user['id']}", json={"role": "OWNER"})
    assert r.status_code == 400

    assert admin.client.patch("/api/admin/users/missing", json={"first_name": "X"}).status_code == 404
