"""
In-process change feed for subscribable tables.

Row changes captured during a flush are held on the session and handed to
the broker only after the transaction commits; a rollback discards them.
Subscribers receive them over Server-Sent Events.

Every stream is authorized against its table and filter before the
subscription is registered. Private tables require a filter naming a row
the caller may read (their own messages, a contract they are party to...);
the broker then delivers only changes whose row matches that filter.
"""
from __future__ import annotations

import json
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from flask import Blueprint, Response, current_app, request, stream_with_context
from sqlalchemy import event
from sqlalchemy.orm import Session, sessionmaker

from app.studylinker.constants import (
    PERM_CONTACTS_MANAGE,
    PERM_TEACHER_APPLICATIONS_REVIEW,
    PUBLIC_REALTIME_TABLES,
    REALTIME_TABLES,
)
from app.studylinker.db import db_session
from app.studylinker.errors import AppError, ForbiddenError, NotFoundError, ValidationError
from app.studylinker.rbac import require_login, user_has_permission
from app.studylinker.utils import current_auth_id, utcnow

if TYPE_CHECKING:
    from app.studylinker.modules.users.models import UserProfile

logger = logging.getLogger(__name__)

bp = Blueprint("realtime", __name__)

_PENDING_KEY = "realtime_pending"


class RealtimeBusyError(AppError):
    code = "REALTIME_BUSY"
    status_code = 503

    def __init__(self, message: str = "Too many realtime subscribers. Try again later."):
        super().__init__(message)


@dataclass(eq=False)
class Subscription:
    table: str
    column: str | None = None
    value: str | None = None
    queue: "queue.Queue[dict[str, Any]]" = field(default_factory=lambda: queue.Queue(maxsize=100))

    def matches(self, change: dict[str, Any]) -> bool:
        if change["table"] != self.table:
            return False
        if self.column is None:
            return True
        record = change.get("new") or change.get("old") or {}
        if self.column not in record or record[self.column] is None:
            return False
        return str(record[self.column]) == self.value


class RealtimeBroker:
    def __init__(self, max_queue_size: int = 100, max_subscribers: int | None = None) -> None:
        self.max_queue_size = max_queue_size
        self.max_subscribers = max_subscribers
        self._lock = threading.Lock()
        self._subscriptions: set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscriptions(self, table: str | None = None) -> list[Subscription]:
        with self._lock:
            return [sub for sub in self._subscriptions if table is None or sub.table == table]

    def subscribe(self, table: str, column: str | None = None, value: str | None = None) -> Subscription:
        sub = Subscription(table=table, column=column, value=value, queue=queue.Queue(maxsize=self.max_queue_size))
        with self._lock:
            if self.max_subscribers is not None and len(self._subscriptions) >= self.max_subscribers:
                raise RealtimeBusyError()
            self._subscriptions.add(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            self._subscriptions.discard(sub)

    def publish(self, change: dict[str, Any]) -> int:
        """Deliver a change to every matching subscriber. Returns the delivery count."""
        with self._lock:
            targets = [sub for sub in self._subscriptions if sub.matches(change)]
        delivered = 0
        for sub in targets:
            try:
                sub.queue.put_nowait(change)
                delivered += 1
            except queue.Full:
                logger.warning("Realtime subscriber queue full; dropping %s on %s", change["event_type"], change["table"])
        return delivered


def _snapshot(obj: Any) -> dict[str, Any]:
    return obj.to_dict()


def _collect_changes(session: Session, flush_context: Any) -> None:
    pending = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        table = getattr(obj, "__tablename__", None)
        if table in REALTIME_TABLES:
            pending.append({"event_type": "INSERT", "table": table, "new": _snapshot(obj), "old": None})
    for obj in session.dirty:
        table = getattr(obj, "__tablename__", None)
        if table in REALTIME_TABLES and session.is_modified(obj, include_collections=False):
            pending.append({"event_type": "UPDATE", "table": table, "new": _snapshot(obj), "old": None})
    for obj in session.deleted:
        table = getattr(obj, "__tablename__", None)
        if table in REALTIME_TABLES:
            pending.append({"event_type": "DELETE", "table": table, "new": None, "old": _snapshot(obj)})


def install_change_capture(session_factory: sessionmaker, broker: RealtimeBroker) -> None:
    """Attach flush/commit/rollback listeners to every session the factory creates."""

    @event.listens_for(session_factory, "after_flush")
    def _after_flush(session, flush_context):  # type: ignore[no-redef]
        _collect_changes(session, flush_context)

    @event.listens_for(session_factory, "after_commit")
    def _after_commit(session):  # type: ignore[no-redef]
        changes = session.info.pop(_PENDING_KEY, [])
        if not changes:
            return
        committed_at = utcnow().isoformat()
        for change in changes:
            change["commit_timestamp"] = committed_at
            broker.publish(change)

    @event.listens_for(session_factory, "after_rollback")
    def _after_rollback(session):  # type: ignore[no-redef]
        session.info.pop(_PENDING_KEY, None)


def parse_filter(raw: str | None) -> tuple[str | None, str | None]:
    """Parse ``column=eq.value``."""
    if not raw:
        return None, None
    column, sep, rest = raw.partition("=")
    if not sep or not column or not rest.startswith("eq."):
        raise ValidationError("Invalid filter. Expected <column>=eq.<value>")
    return column.strip(), rest[3:]


def _owns_job(s: Session, caller: "UserProfile", job_id: str) -> None:
    from app.studylinker.modules.jobs.service import get_job_posting

    if get_job_posting(s, job_id).parent.user_id != caller.id:
        raise ForbiddenError("You can only follow applications to your own job postings")


def authorize_subscription(
    s: Session, auth_id: str | None, table: str, column: str | None, value: str | None
) -> "UserProfile":
    """
    Raise unless the caller may read every row the (table, filter) pair selects.

    - job_postings, reviews: public, any filter
    - messages: sender_id/receiver_id equal to the caller
    - contracts: id (party), parent_id or teacher_id (owner)
    - classes: contract_id (party) or teacher_id (owner)
    - payments: contract_id (party)
    - applications: job_id (job owner) or teacher_id (owner)
    - teacher_applications: reviewers, or user_id equal to the caller
    - contacts: staff with contacts.manage only
    """
    from app.studylinker.modules.contracts.service import require_contract_party
    from app.studylinker.modules.teachers.service import require_teacher_caller
    from app.studylinker.modules.users.service import require_caller, require_parent_caller

    caller = require_caller(s, auth_id)
    if table in PUBLIC_REALTIME_TABLES:
        return caller
    if table == "contacts":
        if user_has_permission(caller, PERM_CONTACTS_MANAGE):
            return caller
        raise ForbiddenError("You do not have permission to follow contact submissions")
    if table == "teacher_applications":
        if user_has_permission(caller, PERM_TEACHER_APPLICATIONS_REVIEW):
            return caller
        if column == "user_id" and value == caller.id:
            return caller
        raise ForbiddenError("You can only follow your own teacher application")

    if column is None or not value:
        raise ForbiddenError(f"A filter is required to follow {table}")

    if table == "messages" and column in ("sender_id", "receiver_id"):
        if value != caller.id:
            raise ForbiddenError("You can only follow your own messages")
        return caller
    if (column == "contract_id" and table in ("classes", "payments")) or (table == "contracts" and column == "id"):
        require_contract_party(s, value, auth_id)
        return caller
    if column == "teacher_id" and table in ("contracts", "classes", "applications"):
        require_teacher_caller(s, auth_id, value)
        return caller
    if table == "contracts" and column == "parent_id":
        require_parent_caller(s, auth_id, value)
        return caller
    if table == "applications" and column == "job_id":
        _owns_job(s, caller, value)
        return caller
    raise ForbiddenError(f"Filtering {table} by {column} is not allowed")


def _sse(change: dict[str, Any]) -> str:
    return f"event: {change['event_type']}\ndata: {json.dumps(change, default=str)}\n\n"


@bp.get("/realtime/<table>")
@require_login
def stream(table: str):
    if table not in REALTIME_TABLES:
        raise NotFoundError("Realtime table")
    column, value = parse_filter(request.args.get("filter"))
    s = db_session()
    authorize_subscription(s, current_auth_id(), table, column, value)
    # release the connection before the stream starts
    s.rollback()

    broker: RealtimeBroker = current_app.extensions["realtime_broker"]
    keepalive = current_app.config.get("REALTIME_KEEPALIVE_SECONDS", 30)
    sub = broker.subscribe(table, column, value)

    def generate():
        try:
            yield ": connected\n\n"
            while True:
                try:
                    change = sub.queue.get(timeout=keepalive)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                yield _sse(change)
        finally:
            broker.unsubscribe(sub)

    response = Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
    response.call_on_close(lambda: broker.unsubscribe(sub))
    return response
