from __future__ import annotations

from flask import Blueprint

from app.studylinker.db import db_session
from app.studylinker.errors import success
from app.studylinker.modules.applications import service
from app.studylinker.rbac import require_login
from app.studylinker.utils import current_auth_id, request_payload

bp = Blueprint("applications", __name__)


@bp.post("/applications")
@require_login
def applications_create():
    s = db_session()
    application = service.create_application(s, request_payload(), current_auth_id())
    s.commit()
    return success(application.to_dict()), 201


@bp.get("/applications/<application_id>")
@require_login
def applications_get(application_id: str):
    s = db_session()
    return success(service.application_to_dict(service.get_application(s, application_id)))


@bp.patch("/applications/<application_id>")
@require_login
def applications_update(application_id: str):
    s = db_session()
    application = service.update_application(s, application_id, request_payload(), current_auth_id())
    s.commit()
    return success(application.to_dict())


@bp.get("/jobs/<job_id>/applications")
@require_login
def applications_by_job(job_id: str):
    s = db_session()
    applications = service.get_applications_by_job(s, job_id, current_auth_id())
    return success([service.application_to_dict(a) for a in applications])


@bp.get("/teachers/<teacher_id>/applications")
@require_login
def applications_by_teacher(teacher_id: str):
    s = db_session()
    applications = service.get_applications_by_teacher(s, teacher_id, current_auth_id())
    return success([service.application_to_dict(a) for a in applications])
