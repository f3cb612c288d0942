from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import and_, func, or_, select

from app.studylinker import validation as v
from app.studylinker.audit import record_event
from app.studylinker.constants import DEFAULT_MESSAGE_PAGE_LIMIT
from app.studylinker.errors import ForbiddenError, NotFoundError
from app.studylinker.modules.contracts.models import Contract
from app.studylinker.modules.messages.models import Message
from app.studylinker.modules.users.models import UserProfile
from app.studylinker.modules.users.service import require_caller
from app.studylinker.utils import utcnow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def send_message(s: "Session", payload: dict, auth_id: str | None) -> Message:
    errors: list[str] = []
    sender_id = v.text(payload, "sender_id", "Sender ID", errors, required=True)
    receiver_id = v.text(payload, "receiver_id", "Receiver ID", errors, required=True)
    contract_id = v.text(payload, "contract_id", "Contract ID", errors)
    content = v.text(payload, "content", "Message content", errors, required=True, max_len=10000)
    v.raise_for(errors)

    caller = require_caller(s, auth_id)
    if caller.id != sender_id:
        raise ForbiddenError("You can only send messages as yourself")
    if s.get(UserProfile, receiver_id) is None:
        raise NotFoundError("Receiver")
    if contract_id and s.get(Contract, contract_id) is None:
        raise NotFoundError("Contract")

    message = Message(
        sender_id=sender_id,
        receiver_id=receiver_id,
        contract_id=contract_id,
        content=content,
        read=False,
    )
    s.add(message)
    s.flush()
    record_event(
        s,
        actor=caller,
        action="message.send",
        entity_type="Message",
        entity_id=message.id,
        metadata={"receiver_id": receiver_id, "contract_id": contract_id},
    )
    return message


def get_messages_between_users(
    s: "Session", user_a: str, user_b: str, auth_id: str | None, filters: dict | None = None
) -> tuple[list[Message], dict[str, int] | None]:
    """
    Conversation between two profiles, newest first. Paginated only when
    ``page`` or ``limit`` is supplied.
    """
    caller = require_caller(s, auth_id)
    if caller.id not in (user_a, user_b):
        raise ForbiddenError("You can only read your own conversations")

    stmt = select(Message).where(
        or_(
            and_(Message.sender_id == user_a, Message.receiver_id == user_b),
            and_(Message.sender_id == user_b, Message.receiver_id == user_a),
        )
    )
    filters = filters or {}
    paginate = v.has(filters, "page") or v.has(filters, "limit")
    if not paginate:
        return list(s.execute(stmt.order_by(Message.created_at.desc())).scalars().all()), None

    page, limit = v.pagination(filters, default_limit=DEFAULT_MESSAGE_PAGE_LIMIT)
    total = s.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    messages = (
        s.execute(stmt.order_by(Message.created_at.desc()).offset((page - 1) * limit).limit(limit)).scalars().all()
    )
    return list(messages), v.pagination_meta(page, limit, total)


def mark_message_as_read(s: "Session", message_id: str, auth_id: str | None) -> Message:
    caller = require_caller(s, auth_id)
    message = s.get(Message, message_id)
    if message is None:
        raise NotFoundError("Message")
    if message.receiver_id != caller.id:
        raise ForbiddenError("Only the receiver can mark a message as read")
    if not message.read:
        message.read = True
        message.read_at = utcnow()
        record_event(
            s,
            actor=caller,
            action="message.read",
            entity_type="Message",
            entity_id=message.id,
            metadata={"sender_id": message.sender_id},
        )
    return message


def get_unread_message_count(s: "Session", user_id: str, auth_id: str | None) -> int:
    caller = require_caller(s, auth_id)
    if caller.id != user_id:
        raise ForbiddenError("You can only count your own messages")
    stmt = select(func.count(Message.id)).where(Message.receiver_id == user_id, Message.read.is_(False))
    return int(s.execute(stmt).scalar_one())
