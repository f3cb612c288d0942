import io

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _upload(user, data=PNG, filename="avatar.png", content_type="image/png", **form):
    body = {"file": (io.BytesIO(data), filename, content_type)}
    body.update(form)
    return user.client.post("/api/files", data=body, content_type="multipart/form-data")


def test_upload_and_fetch_image(teacher, client):
    r = _upload(teacher, folder="avatars")
    assert r.status_code == 201, r.json
    path = r.json["data"]["path"]
    url = r.json["data"]["url"]
    assert path.startswith(f"avatars/{teacher.auth_id}/")
    assert path.endswith(".png")
    assert url == f"/api/files/raw/teacher-photos/{path}"

    r = client.get(url)
    assert r.status_code == 200
    assert r.data == PNG
    assert r.mimetype == "image/png"
    r.close()


def test_upload_document(teacher):
    r = _upload(
        teacher,
        data=b"%PDF-1.4 resume",
        filename="resume.pdf",
        content_type="application/pdf",
        bucket="resumes",
        is_document="true",
    )
    assert r.status_code == 201, r.json
    assert r.json["data"]["url"].startswith("/api/files/raw/resumes/")


def test_upload_rejects_wrong_type(teacher):
    r = _upload(teacher, data=b"%PDF", filename="resume.pdf", content_type="application/pdf")
    assert r.status_code == 400
    assert r.json["error"] == "Invalid file type. Only JPEG, PNG and WebP images are allowed."


def test_upload_rejects_large_image(teacher):
    r = _upload(teacher, data=b"\x00" * (5 * 1024 * 1024 + 1))
    assert r.status_code == 400
    assert r.json["error"] == "File size must be less than 5MB"


def test_upload_requires_file_and_login(teacher, client):
    r = teacher.client.post("/api/files", data={}, content_type="multipart/form-data")
    assert r.status_code == 400
    assert r.json["error"] == "No file provided"

    r = client.post(
        "/api/files",
        data={"file": (io.BytesIO(PNG), "a.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 401


def test_upload_rejects_bad_bucket(teacher):
    r = _upload(teacher, bucket="../etc")
    assert r.status_code == 400
    assert r.json["error"] == "Invalid bucket"


def test_delete_own_file_only(teacher, parent, client):
    path = _upload(teacher).json["data"]["path"]

    r = parent.client.delete("/api/files", json={"path": path})
    assert r.status_code == 403
    assert r.json["error"] == "You can only delete your own files"

    r = teacher.client.delete("/api/files", json={"path": path})
    assert r.status_code == 200
    assert r.json == {"success": True, "data": None}

    r = client.get(f"/api/files/raw/teacher-photos/{path}")
    assert r.status_code == 404


def test_raw_missing_file(client):
    assert client.get("/api/files/raw/teacher-photos/nobody/none.png").status_code == 404
