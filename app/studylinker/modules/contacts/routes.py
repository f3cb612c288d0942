from __future__ import annotations

from flask import Blueprint

from app.studylinker.constants import PERM_CONTACTS_MANAGE
from app.studylinker.db import db_session
from app.studylinker.errors import success
from app.studylinker.modules.contacts import service
from app.studylinker.rbac import require_permission
from app.studylinker.utils import current_auth_id, query_args, request_payload

bp = Blueprint("contacts", __name__)


@bp.post("/contacts")
def contacts_create():
    s = db_session()
    contact = service.create_contact_submission(s, request_payload(), current_auth_id())
    s.commit()
    return success(contact.to_dict()), 201


# ---------- Staff ----------
@bp.get("/admin/contacts")
@require_permission(PERM_CONTACTS_MANAGE)
def contacts_list():
    s = db_session()
    contacts, pagination = service.get_all_contact_submissions(s, query_args(), current_auth_id())
    return success([c.to_dict() for c in contacts], pagination=pagination)


@bp.get("/admin/contacts/<contact_id>")
@require_permission(PERM_CONTACTS_MANAGE)
def contacts_get(contact_id: str):
    s = db_session()
    return success(service.get_contact_submission(s, contact_id, current_auth_id()).to_dict())


@bp.patch("/admin/contacts/<contact_id>")
@require_permission(PERM_CONTACTS_MANAGE)
def contacts_update_status(contact_id: str):
    s = db_session()
    contact = service.update_contact_status(s, contact_id, request_payload(), current_auth_id())
    s.commit()
    return success(contact.to_dict())
