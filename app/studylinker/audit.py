"""
Append-only audit trail.

Every mutating server action adds one AuditEvent to the session that carries
the change, so it commits or rolls back together with it.
"""
from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.studylinker.models import AuditEvent

if TYPE_CHECKING:
    from app.studylinker.modules.users.models import UserProfile


def _metadata_json(metadata: dict[str, Any] | None) -> str | None:
    if not metadata:
        return None
    # datetimes and Decimals in change sets are stored as their str()
    return json.dumps(metadata, sort_keys=True, default=str)


def _request_fields(request_id: str | None) -> tuple[str | None, str | None]:
    if not has_request_context():
        return request_id, None
    return request_id or g.get("request_id"), request.remote_addr


def record_event(
    s: Session,
    *,
    actor: "UserProfile | None",
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    rid, client_ip = _request_fields(request_id)
    ev = AuditEvent(
        request_id=rid,
        actor_profile_id=actor.id if actor is not None else None,
        actor_email=actor.email if actor is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=_metadata_json(metadata),
        client_ip=client_ip,
    )
    s.add(ev)
    return ev
