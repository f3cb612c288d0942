from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from app.studylinker import validation as v
from app.studylinker.audit import record_event
from app.studylinker.constants import CONTACT_STATUSES, PERM_CONTACTS_MANAGE
from app.studylinker.errors import NotFoundError
from app.studylinker.modules.contacts.models import Contact
from app.studylinker.modules.users.models import UserProfile
from app.studylinker.modules.users.service import find_profile_by_auth_id, require_caller
from app.studylinker.rbac import ensure_permission

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def validate_contact_payload(payload: dict) -> list[str]:
    errors: list[str] = []
    v.text(payload, "name", "Name", errors, required=True, max_len=255)
    v.email(payload, "email", "Email", errors)
    v.text(payload, "subject", "Subject", errors, required=True, max_len=255)
    v.text(payload, "message", "Message", errors, required=True, min_len=10, max_len=5000)
    v.text(payload, "phone", "Phone", errors, max_len=64)
    return errors


def create_contact_submission(s: "Session", payload: dict, auth_id: str | None) -> Contact:
    """Anonymous submissions are allowed; a signed-in sender is linked by profile."""
    v.raise_for(validate_contact_payload(payload))
    sender = find_profile_by_auth_id(s, auth_id) if auth_id else None

    contact = Contact(
        name=v.clean_text(payload.get("name")),
        email=v.clean_text(payload.get("email")).lower(),  # type: ignore[union-attr]
        subject=v.clean_text(payload.get("subject")),
        message=v.clean_text(payload.get("message")),
        phone=v.clean_text(payload.get("phone")),
        user_id=sender.id if sender else None,
        status="NEW",
    )
    s.add(contact)
    s.flush()
    record_event(
        s,
        actor=sender,
        action="contact.create",
        entity_type="Contact",
        entity_id=contact.id,
        metadata={"email": contact.email, "subject": contact.subject},
    )
    return contact


def _require_manager(s: "Session", auth_id: str | None) -> UserProfile:
    caller = require_caller(s, auth_id)
    ensure_permission(caller, PERM_CONTACTS_MANAGE)
    return caller


def get_contact_submission(s: "Session", contact_id: str, auth_id: str | None) -> Contact:
    _require_manager(s, auth_id)
    contact = s.get(Contact, contact_id)
    if contact is None:
        raise NotFoundError("Contact submission")
    return contact


def get_all_contact_submissions(
    s: "Session", filters: dict, auth_id: str | None
) -> tuple[list[Contact], dict[str, int]]:
    _require_manager(s, auth_id)
    errors: list[str] = []
    status = v.choice(filters, "status", "Status", CONTACT_STATUSES, errors)
    v.raise_for(errors)
    page, limit = v.pagination(filters)

    stmt = select(Contact)
    if status:
        stmt = stmt.where(Contact.status == status)
    total = s.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    rows = s.execute(stmt.order_by(Contact.created_at.desc()).offset((page - 1) * limit).limit(limit)).scalars().all()
    return list(rows), v.pagination_meta(page, limit, total)


def update_contact_status(s: "Session", contact_id: str, payload: dict, auth_id: str | None) -> Contact:
    errors: list[str] = []
    status = v.choice(payload, "status", "Status", CONTACT_STATUSES, errors, required=True)
    v.raise_for(errors)

    caller = _require_manager(s, auth_id)
    contact = s.get(Contact, contact_id)
    if contact is None:
        raise NotFoundError("Contact submission")
    old_status = contact.status
    contact.status = status  # type: ignore[assignment]
    record_event(
        s,
        actor=caller,
        action="contact.status_change",
        entity_type="Contact",
        entity_id=contact.id,
        metadata={"old_status": old_status, "new_status": status},
    )
    return contact
