def _new_contract(parent, teacher, student):
    r = parent.client.post(
        "/api/contracts",
        json={
            "parent_id": parent.profile["id"],
            "teacher_id": teacher.profile["id"],
            "student_id": student["id"],
            "subject": "Physics",
            "level": "Secondary",
            "rate": 40,
            "hours_per_week": "1",
            "start_date": "2026-03-01",
        },
    )
    assert r.status_code == 201, r.json
    return r.json["data"]


def _review(parent, contract, rating, **extra):
    payload = {
        "contract_id": contract["id"],
        "parent_id": parent.profile["id"],
        "teacher_id": contract["teacher_id"],
        "rating": rating,
    }
    payload.update(extra)
    return parent.client.post("/api/reviews", json=payload)


def test_reviews_update_teacher_rating(parent, teacher, student, contract, client):
    second = _new_contract(parent, teacher, student)
    third = _new_contract(parent, teacher, student)
    for c, rating in ((contract, 5), (second, 5), (third, 4)):
        r = _review(parent, c, rating, comment="Great lessons")
        assert r.status_code == 201, r.json

    r = client.get(f"/api/teachers/{teacher.profile['id']}")
    assert r.json["data"]["rating"] == 4.67
    assert r.json["data"]["total_reviews"] == 3

    r = client.get(f"/api/teachers/{teacher.profile['id']}/reviews")
    assert len(r.json["data"]) == 3
    assert r.json["data"][0]["parent"]["user"]["first_name"] == "Paula"


def test_duplicate_review_rejected(parent, contract):
    assert _review(parent, contract, 4).status_code == 201
    r = _review(parent, contract, 5)
    assert r.status_code == 400
    assert r.json["error"] == "Review already exists for this contract"


def test_review_rating_bounds(parent, contract):
    r = _review(parent, contract, 6)
    assert r.status_code == 400
    assert "Rating must be between 1 and 5" in r.json["error"]


def test_anonymous_review_hides_parent(parent, contract, client):
    assert _review(parent, contract, 3, anonymous=True).status_code == 201
    r = client.get(f"/api/contracts/{contract['id']}/reviews")
    review = r.json["data"][0]
    assert review["anonymous"] is True
    assert review["parent_id"] is None
    assert review["parent"] is None


def test_only_contract_parent_can_review(teacher, contract):
    r = teacher.client.post(
        "/api/reviews",
        json={
            "contract_id": contract["id"],
            "parent_id": contract["parent_id"],
            "teacher_id": contract["teacher_id"],
            "rating": 5,
        },
    )
    assert r.status_code == 403


def test_payment_lifecycle(parent, teacher, contract):
    r = parent.client.post(
        "/api/payments",
        json={"contract_id": contract["id"], "amount": 120, "payment_method": "card"},
    )
    assert r.status_code == 201, r.json
    payment = r.json["data"]
    assert payment["status"] == "PENDING"
    assert payment["currency"] == "USD"
    assert payment["paid_at"] is None

    r = parent.client.patch(f"/api/payments/{payment['id']}", json={"status": "completed", "transaction_id": "tx-1"})
    assert r.status_code == 200
    assert r.json["data"]["status"] == "COMPLETED"
    paid_at = r.json["data"]["paid_at"]
    assert paid_at

    r = parent.client.patch(f"/api/payments/{payment['id']}", json={"status": "COMPLETED"})
    assert r.json["data"]["paid_at"] == paid_at

    r = teacher.client.get(f"/api/contracts/{contract['id']}/payments")
    assert [p["id"] for p in r.json["data"]] == [payment["id"]]
    assert r.json["data"][0]["contract"]["subject"] == "Mathematics"

    r = parent.client.get(f"/api/parents/{parent.profile['id']}/payments")
    assert [p["id"] for p in r.json["data"]] == [payment["id"]]


def test_payments_managed_by_parent_only(teacher, contract):
    r = teacher.client.post("/api/payments", json={"contract_id": contract["id"], "amount": 50})
    assert r.status_code == 403
    assert r.json["error"] == "Only the contract's parent can manage payments"


def test_payment_amount_must_be_positive(parent, contract):
    r = parent.client.post("/api/payments", json={"contract_id": contract["id"], "amount": 0})
    assert r.status_code == 400
    assert r.json["code"] == "VALIDATION_ERROR"


def test_messages_conversation_and_unread(parent, teacher):
    p_id, t_id = parent.user["id"], teacher.user["id"]
    for text in ("Hello there", "Are you free Monday?"):
        r = parent.client.post("/api/messages", json={"sender_id": p_id, "receiver_id": t_id, "content": text})
        assert r.status_code == 201, r.json
    latest = r.json["data"]
    assert latest["read"] is False

    r = teacher.client.get(f"/api/users/{t_id}/messages/unread-count")
    assert r.json == {"success": True, "count": 2}

    r = teacher.client.get(f"/api/messages/conversation/{p_id}/{t_id}")
    assert len(r.json["data"]) == 2
    assert "pagination" not in r.json

    r = teacher.client.get(f"/api/messages/conversation/{p_id}/{t_id}?page=1&limit=1")
    assert len(r.json["data"]) == 1
    assert r.json["pagination"] == {"page": 1, "limit": 1, "total": 2, "total_pages": 2}

    r = parent.client.post(f"/api/messages/{latest['id']}/read")
    assert r.status_code == 403
    r = teacher.client.post(f"/api/messages/{latest['id']}/read")
    assert r.status_code == 200
    assert r.json["data"]["read"] is True
    assert r.json["data"]["read_at"]

    r = teacher.client.get(f"/api/users/{t_id}/messages/unread-count")
    assert r.json["count"] == 1


def test_cannot_send_as_someone_else(parent, teacher):
    r = parent.client.post(
        "/api/messages",
        json={"sender_id": teacher.user["id"], "receiver_id": parent.user["id"], "content": "Hi"},
    )
    assert r.status_code == 403


def test_conversation_private(parent, teacher, make_user):
    outsider = make_user("PARENT", "Otto")
    r = outsider.client.get(f"/api/messages/conversation/{parent.user['id']}/{teacher.user['id']}")
    assert r.status_code == 403


def test_mark_read_is_audited_once(parent, teacher, admin):
    p_id, t_id = parent.user["id"], teacher.user["id"]
    message = parent.client.post("/api/messages", json={"sender_id": p_id, "receiver_id": t_id, "content": "Hi"}).json["data"]

    for _ in range(2):
        assert teacher.client.post(f"/api/messages/{message['id']}/read").status_code == 200

    r = admin.client.get(f"/api/admin/audit?action=message.read&entity_id={message['id']}")
    events = r.json["data"]
    assert len(events) == 1
    assert events[0]["entity_type"] == "Message"
    assert events[0]["actor_email"] == teacher.email
