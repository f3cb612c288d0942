from __future__ import annotations

from flask import Blueprint

from app.studylinker.db import db_session
from app.studylinker.errors import success
from app.studylinker.modules.students import service
from app.studylinker.rbac import require_login
from app.studylinker.utils import current_auth_id, request_payload

bp = Blueprint("students", __name__)


@bp.post("/students")
@require_login
def students_create():
    s = db_session()
    student = service.create_student(s, request_payload(), current_auth_id())
    s.commit()
    return success(student.to_dict()), 201


@bp.get("/students/<student_id>")
@require_login
def students_get(student_id: str):
    s = db_session()
    return success(service.student_to_dict(service.get_student(s, student_id)))


@bp.patch("/students/<student_id>")
@require_login
def students_update(student_id: str):
    s = db_session()
    student = service.update_student(s, student_id, request_payload(), current_auth_id())
    s.commit()
    return success(student.to_dict())


@bp.delete("/students/<student_id>")
@require_login
def students_delete(student_id: str):
    s = db_session()
    service.delete_student(s, student_id, current_auth_id())
    s.commit()
    return success()


@bp.get("/parents/<parent_id>/students")
@require_login
def students_by_parent(parent_id: str):
    s = db_session()
    return success([st.to_dict() for st in service.get_students_by_parent(s, parent_id)])
