from __future__ import annotations

from flask import Blueprint

from app.studylinker.db import db_session
from app.studylinker.errors import success
from app.studylinker.modules.teacher_applications import service
from app.studylinker.rbac import require_login
from app.studylinker.utils import current_auth_id, request_payload

bp = Blueprint("teacher_applications", __name__)


@bp.post("/teacher-applications")
@require_login
def teacher_applications_create():
    s = db_session()
    application = service.create_teacher_application(s, request_payload(), current_auth_id())
    s.commit()
    return success(service.teacher_application_to_dict(application)), 201


@bp.get("/teacher-applications/me")
@require_login
def teacher_applications_me():
    s = db_session()
    application = service.get_current_teacher_application(s, current_auth_id())
    return success(service.teacher_application_to_dict(application) if application else None)


@bp.get("/teacher-applications/<application_id>")
@require_login
def teacher_applications_get(application_id: str):
    s = db_session()
    application = service.get_teacher_application(s, application_id, current_auth_id())
    return success(service.teacher_application_to_dict(application))
