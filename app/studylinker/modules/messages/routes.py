from __future__ import annotations

from flask import Blueprint

from app.studylinker.db import db_session
from app.studylinker.errors import success
from app.studylinker.modules.messages import service
from app.studylinker.rbac import require_login
from app.studylinker.utils import current_auth_id, query_args, request_payload

bp = Blueprint("messages", __name__)


@bp.post("/messages")
@require_login
def messages_send():
    s = db_session()
    message = service.send_message(s, request_payload(), current_auth_id())
    s.commit()
    return success(message.to_dict()), 201


@bp.get("/messages/conversation/<user_a>/<user_b>")
@require_login
def messages_between(user_a: str, user_b: str):
    s = db_session()
    messages, pagination = service.get_messages_between_users(s, user_a, user_b, current_auth_id(), query_args())
    data = [m.to_dict() for m in messages]
    if pagination is None:
        return success(data)
    return success(data, pagination=pagination)


@bp.post("/messages/<message_id>/read")
@require_login
def messages_mark_read(message_id: str):
    s = db_session()
    message = service.mark_message_as_read(s, message_id, current_auth_id())
    s.commit()
    return success(message.to_dict())


@bp.get("/users/<user_id>/messages/unread-count")
@require_login
def messages_unread_count(user_id: str):
    s = db_session()
    count = service.get_unread_message_count(s, user_id, current_auth_id())
    return {"success": True, "count": count}
