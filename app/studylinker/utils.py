from __future__ import annotations

import uuid
from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp (all DateTime columns are timezone-naive)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def isoformat(value: datetime | date | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def request_payload() -> dict:
    """JSON body (or form fields) of the current request as a plain dict."""
    from flask import request

    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return payload
    return request.form.to_dict()


def query_args() -> dict:
    from flask import request

    return request.args.to_dict()


def current_auth_id() -> str | None:
    from flask import g

    return getattr(g, "auth_id", None)
