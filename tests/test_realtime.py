import queue

import pytest

from app.studylinker.db import session_scope
from app.studylinker.errors import ValidationError
from app.studylinker.modules.messages.models import Message
from app.studylinker.realtime import RealtimeBusyError, Subscription, parse_filter
from conftest import job_payload
from test_contacts import CONTACT


def _drain(sub):
    changes = []
    while True:
        try:
            changes.append(sub.queue.get_nowait())
        except queue.Empty:
            return changes


def test_committed_insert_is_published(app, parent):
    broker = app.extensions["realtime_broker"]
    sub = broker.subscribe("job_postings")
    try:
        r = parent.client.post("/api/jobs", json=job_payload(parent.profile["id"]))
        assert r.status_code == 201
        changes = _drain(sub)
    finally:
        broker.unsubscribe(sub)

    assert len(changes) == 1
    change = changes[0]
    assert change["event_type"] == "INSERT"
    assert change["table"] == "job_postings"
    assert change["new"]["id"] == r.json["data"]["id"]
    assert change["old"] is None
    assert change["commit_timestamp"]


def test_filtered_subscription(app, parent, teacher):
    broker = app.extensions["realtime_broker"]
    mine = broker.subscribe("messages", "receiver_id", teacher.user["id"])
    other = broker.subscribe("messages", "receiver_id", parent.user["id"])
    try:
        r = parent.client.post(
            "/api/messages",
            json={"sender_id": parent.user["id"], "receiver_id": teacher.user["id"], "content": "Hello"},
        )
        assert r.status_code == 201
        assert [c["new"]["content"] for c in _drain(mine)] == ["Hello"]
        assert _drain(other) == []
    finally:
        broker.unsubscribe(mine)
        broker.unsubscribe(other)


def test_rollback_publishes_nothing(app, parent, teacher):
    broker = app.extensions["realtime_broker"]
    sub = broker.subscribe("messages")
    try:
        with pytest.raises(RuntimeError):
            with session_scope(app) as s:
                s.add(Message(sender_id=parent.user["id"], receiver_id=teacher.user["id"], content="draft", read=False))
                s.flush()
                raise RuntimeError("abort")
        assert _drain(sub) == []
    finally:
        broker.unsubscribe(sub)


def test_stream_endpoint_errors(client, parent):
    assert client.get("/realtime/messages").status_code == 401
    assert parent.client.get("/realtime/accounts").status_code == 404
    r = parent.client.get("/realtime/messages?filter=receiver_id")
    assert r.status_code == 400
    assert r.json["error"] == "Invalid filter. Expected <column>=eq.<value>"


def test_parse_filter():
    assert parse_filter(None) == (None, None)
    assert parse_filter("contract_id=eq.abc") == ("contract_id", "abc")
    with pytest.raises(ValidationError):
        parse_filter("contract_id=gt.3")


def _open(user, url):
    """Open a stream without consuming it; the caller closes the response."""
    r = user.client.get(url)
    assert r.status_code == 200, r.json
    assert r.mimetype == "text/event-stream"
    return r


def test_private_tables_need_an_authorized_filter(parent, teacher, make_user):
    eve = make_user("PARENT", "Eve")
    for url in (
        "/realtime/messages",
        f"/realtime/messages?filter=receiver_id=eq.{teacher.user['id']}",
        f"/realtime/messages?filter=sender_id=eq.{parent.user['id']}",
        f"/realtime/messages?filter=content=eq.{eve.user['id']}",
        "/realtime/payments",
        "/realtime/contracts",
        "/realtime/classes",
        "/realtime/applications",
        "/realtime/teacher_applications",
        "/realtime/contacts",
    ):
        r = eve.client.get(url)
        assert r.status_code == 403, url
        assert r.json["code"] == "FORBIDDEN"


def test_own_message_stream_sees_only_own_rows(app, parent, teacher, make_user):
    eve = make_user("PARENT", "Eve")
    broker = app.extensions["realtime_broker"]
    r = _open(eve, f"/realtime/messages?filter=receiver_id=eq.{eve.user['id']}")
    try:
        [sub] = broker.subscriptions("messages")
        p_id = parent.user["id"]
        parent.client.post("/api/messages", json={"sender_id": p_id, "receiver_id": teacher.user["id"], "content": "private secret"})
        parent.client.post("/api/messages", json={"sender_id": p_id, "receiver_id": eve.user["id"], "content": "Hi Eve"})
        assert [c["new"]["content"] for c in _drain(sub)] == ["Hi Eve"]
    finally:
        r.close()
    assert broker.subscriptions("messages") == []


def test_contract_streams_limited_to_parties(contract, parent, teacher, make_user):
    eve = make_user("PARENT", "Eve")
    for url in (
        f"/realtime/payments?filter=contract_id=eq.{contract['id']}",
        f"/realtime/classes?filter=contract_id=eq.{contract['id']}",
        f"/realtime/contracts?filter=id=eq.{contract['id']}",
    ):
        _open(parent, url).close()
        _open(teacher, url).close()
        assert eve.client.get(url).status_code == 403, url

    _open(teacher, f"/realtime/classes?filter=teacher_id=eq.{teacher.profile['id']}").close()
    assert eve.client.get(f"/realtime/classes?filter=teacher_id=eq.{teacher.profile['id']}").status_code == 403
    _open(parent, f"/realtime/contracts?filter=parent_id=eq.{parent.profile['id']}").close()
    _open(parent, f"/realtime/applications?filter=job_id=eq.{contract['job_id']}").close()
    assert teacher.client.get(f"/realtime/applications?filter=job_id=eq.{contract['job_id']}").status_code == 403
    assert parent.client.get("/realtime/payments?filter=contract_id=eq.missing").status_code == 404


def test_teacher_application_stream(teacher, admin):
    assert teacher.client.get("/realtime/teacher_applications").status_code == 403
    _open(teacher, f"/realtime/teacher_applications?filter=user_id=eq.{teacher.user['id']}").close()
    _open(admin, "/realtime/teacher_applications").close()


def test_staff_contact_stream(app, admin, parent, client):
    broker = app.extensions["realtime_broker"]
    assert parent.client.get("/realtime/contacts").status_code == 403

    r = _open(admin, "/realtime/contacts")
    try:
        [sub] = broker.subscriptions("contacts")
        assert client.post("/api/contacts", json=CONTACT).status_code == 201
        changes = _drain(sub)
    finally:
        r.close()
    assert [(c["event_type"], c["new"]["subject"]) for c in changes] == [("INSERT", "Pricing")]


def test_public_tables_open_to_signed_in_callers(teacher):
    _open(teacher, "/realtime/job_postings").close()
    _open(teacher, "/realtime/reviews?filter=teacher_id=eq.anything").close()


def test_subscriber_cap(app, parent):
    broker = app.extensions["realtime_broker"]
    broker.max_subscribers = 1
    held = broker.subscribe("job_postings")
    try:
        with pytest.raises(RealtimeBusyError):
            broker.subscribe("reviews")
        r = parent.client.get("/realtime/job_postings")
        assert r.status_code == 503
        assert r.json["code"] == "REALTIME_BUSY"
    finally:
        broker.unsubscribe(held)
    assert broker.subscriber_count == 0


def test_filter_never_matches_rows_without_the_column():
    sub = Subscription(table="messages", column="receiver_id", value="None")
    assert not sub.matches({"table": "messages", "new": {"receiver_id": None}, "old": None})
    assert not sub.matches({"table": "messages", "new": {"sender_id": "x"}, "old": None})
    assert sub.matches({"table": "messages", "new": {"receiver_id": "None"}, "old": None})
