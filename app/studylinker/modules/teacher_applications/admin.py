"""
Staff review of teacher applications (ADMIN and MANAGER roles).
"""
from __future__ import annotations

from flask import Blueprint, g

from app.studylinker.constants import PERM_TEACHER_APPLICATIONS_REVIEW
from app.studylinker.db import db_session
from app.studylinker.errors import success
from app.studylinker.modules.teacher_applications import service
from app.studylinker.rbac import require_permission
from app.studylinker.utils import current_auth_id, query_args, request_payload

bp = Blueprint("teacher_applications_admin", __name__)


@bp.get("/teacher-applications")
@require_permission(PERM_TEACHER_APPLICATIONS_REVIEW)
def review_list():
    s = db_session()
    applications, pagination = service.get_all_teacher_applications(s, query_args(), current_auth_id())
    return success([service.teacher_application_to_dict(a) for a in applications], pagination=pagination)


@bp.post("/teacher-applications/<application_id>/status")
@require_permission(PERM_TEACHER_APPLICATIONS_REVIEW)
def review_status(application_id: str):
    s = db_session()
    application = service.update_application_status(s, application_id, request_payload(), current_auth_id())
    s.commit()
    return success(service.teacher_application_to_dict(application))


@bp.post("/teacher-applications/<application_id>/interview")
@require_permission(PERM_TEACHER_APPLICATIONS_REVIEW)
def review_schedule_interview(application_id: str):
    s = db_session()
    application = service.schedule_interview(s, application_id, request_payload(), current_auth_id())
    s.commit()
    service.send_interview_invitation(s, application, g.current_profile)
    s.commit()
    return success(service.teacher_application_to_dict(application))


@bp.post("/teacher-applications/<application_id>/score")
@require_permission(PERM_TEACHER_APPLICATIONS_REVIEW)
def review_score_interview(application_id: str):
    s = db_session()
    application = service.score_interview(s, application_id, request_payload(), current_auth_id())
    s.commit()
    return success(service.teacher_application_to_dict(application))
