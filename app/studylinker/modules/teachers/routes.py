from __future__ import annotations

from flask import Blueprint

from app.studylinker.db import db_session
from app.studylinker.errors import success
from app.studylinker.modules.teachers import service
from app.studylinker.rbac import require_login
from app.studylinker.utils import current_auth_id, query_args, request_payload

bp = Blueprint("teachers", __name__)


# ---------- Profiles ----------
@bp.post("/teachers")
@require_login
def teachers_create():
    s = db_session()
    teacher = service.create_teacher_profile(s, request_payload(), current_auth_id())
    s.commit()
    return success(service.teacher_to_dict(teacher)), 201


@bp.get("/teachers")
def teachers_search():
    s = db_session()
    teachers, pagination = service.search_teachers(s, query_args())
    return success([service.teacher_to_dict(t) for t in teachers], pagination=pagination)


@bp.get("/teachers/me")
@require_login
def teachers_me():
    s = db_session()
    return success(service.teacher_to_dict(service.get_current_teacher_profile(s, current_auth_id())))


@bp.get("/teachers/verification")
@require_login
def teachers_verification():
    s = db_session()
    return success(service.check_teacher_verification(s, current_auth_id()))


@bp.get("/teachers/<teacher_id>")
def teachers_get(teacher_id: str):
    s = db_session()
    return success(service.teacher_to_dict(service.get_teacher_profile(s, teacher_id)))


@bp.patch("/teachers/<teacher_id>")
@require_login
def teachers_update(teacher_id: str):
    s = db_session()
    teacher = service.update_teacher_profile(s, teacher_id, request_payload(), current_auth_id())
    s.commit()
    return success(service.teacher_to_dict(teacher))


# ---------- Qualifications ----------
@bp.get("/teachers/<teacher_id>/qualifications")
def qualifications_list(teacher_id: str):
    s = db_session()
    return success([q.to_dict() for q in service.get_qualifications(s, teacher_id)])


@bp.post("/teachers/<teacher_id>/qualifications")
@require_login
def qualifications_create(teacher_id: str):
    s = db_session()
    payload = request_payload()
    payload["teacher_id"] = teacher_id
    q = service.create_qualification(s, payload, current_auth_id())
    s.commit()
    return success(q.to_dict()), 201


@bp.patch("/qualifications/<qualification_id>")
@require_login
def qualifications_update(qualification_id: str):
    s = db_session()
    q = service.update_qualification(s, qualification_id, request_payload(), current_auth_id())
    s.commit()
    return success(q.to_dict())


@bp.delete("/qualifications/<qualification_id>")
@require_login
def qualifications_delete(qualification_id: str):
    s = db_session()
    service.delete_qualification(s, qualification_id, current_auth_id())
    s.commit()
    return success()


# ---------- Subjects & levels ----------
@bp.get("/teachers/<teacher_id>/subjects")
def subjects_list(teacher_id: str):
    s = db_session()
    return success([row.to_dict() for row in service.get_teacher_subjects(s, teacher_id)])


@bp.post("/teachers/<teacher_id>/subjects")
@require_login
def subjects_add(teacher_id: str):
    s = db_session()
    payload = request_payload()
    payload["teacher_id"] = teacher_id
    row = service.add_teacher_subject(s, payload, current_auth_id())
    s.commit()
    return success(row.to_dict()), 201


@bp.delete("/subjects/<subject_id>")
@require_login
def subjects_remove(subject_id: str):
    s = db_session()
    service.remove_teacher_subject(s, subject_id, current_auth_id())
    s.commit()
    return success()


@bp.get("/teachers/<teacher_id>/levels")
def levels_list(teacher_id: str):
    s = db_session()
    return success([row.to_dict() for row in service.get_teacher_levels(s, teacher_id)])


@bp.post("/teachers/<teacher_id>/levels")
@require_login
def levels_add(teacher_id: str):
    s = db_session()
    payload = request_payload()
    payload["teacher_id"] = teacher_id
    row = service.add_teacher_level(s, payload, current_auth_id())
    s.commit()
    return success(row.to_dict()), 201
