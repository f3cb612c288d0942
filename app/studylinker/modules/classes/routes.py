from __future__ import annotations

from flask import Blueprint

from app.studylinker.db import db_session
from app.studylinker.errors import success
from app.studylinker.modules.classes import service
from app.studylinker.modules.contracts.service import require_contract_party
from app.studylinker.rbac import require_login
from app.studylinker.utils import current_auth_id, request_payload

bp = Blueprint("classes", __name__)


@bp.post("/classes")
@require_login
def classes_create():
    s = db_session()
    klass = service.create_class(s, request_payload(), current_auth_id())
    s.commit()
    return success(klass.to_dict()), 201


@bp.get("/classes/<class_id>")
@require_login
def classes_get(class_id: str):
    s = db_session()
    klass = service.get_class(s, class_id)
    require_contract_party(s, klass.contract_id, current_auth_id())
    return success(service.class_to_dict(klass))


@bp.patch("/classes/<class_id>")
@require_login
def classes_update(class_id: str):
    s = db_session()
    klass = service.update_class(s, class_id, request_payload(), current_auth_id())
    s.commit()
    return success(klass.to_dict())


@bp.get("/contracts/<contract_id>/classes")
@require_login
def classes_by_contract(contract_id: str):
    s = db_session()
    return success([service.class_to_dict(c) for c in service.get_classes_by_contract(s, contract_id, current_auth_id())])


@bp.get("/teachers/<teacher_id>/classes/upcoming")
@require_login
def classes_upcoming(teacher_id: str):
    s = db_session()
    classes = service.get_upcoming_classes_for_teacher(s, teacher_id, current_auth_id())
    return success([service.class_to_dict(c) for c in classes])
