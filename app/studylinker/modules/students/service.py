from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from app.studylinker import validation as v
from app.studylinker.audit import record_event
from app.studylinker.errors import ForbiddenError, NotFoundError
from app.studylinker.modules.students.models import Student
from app.studylinker.modules.users.models import UserProfile
from app.studylinker.modules.users.service import parent_to_dict, require_caller, require_parent_caller

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def student_summary(student: Student | None) -> dict[str, Any] | None:
    if student is None:
        return None
    return {
        "id": student.id,
        "first_name": student.first_name,
        "last_name": student.last_name,
        "age": student.age,
        "grade": student.grade,
    }


def student_to_dict(student: Student) -> dict[str, Any]:
    data = student.to_dict()
    data["parent"] = parent_to_dict(student.parent)
    return data


def validate_student_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors: list[str] = []
    if not partial or "first_name" in payload:
        v.text(payload, "first_name", "First name", errors, required=True, max_len=128)
    v.text(payload, "last_name", "Last name", errors, max_len=128)
    v.number(payload, "age", "Age", errors, integer=True, minimum=3, maximum=25)
    v.text(payload, "grade", "Grade", errors, max_len=64)
    v.url(payload, "avatar", "Avatar", errors)
    return errors


def _clean(payload: dict, key: str) -> Any:
    if key == "age":
        return v.number(payload, key, "Age", [], integer=True)
    return v.clean_text(payload.get(key))


def create_student(s: "Session", payload: dict, auth_id: str | None) -> Student:
    v.raise_for(validate_student_payload(payload))
    caller, parent = require_parent_caller(s, auth_id, str(payload.get("parent_id") or ""))
    student = Student(
        parent_id=parent.id,
        first_name=_clean(payload, "first_name"),
        last_name=_clean(payload, "last_name"),
        age=_clean(payload, "age"),
        grade=_clean(payload, "grade"),
        avatar=_clean(payload, "avatar"),
    )
    s.add(student)
    s.flush()
    record_event(
        s,
        actor=caller,
        action="student.create",
        entity_type="Student",
        entity_id=student.id,
        metadata={"parent_id": parent.id},
    )
    return student


def get_student(s: "Session", student_id: str) -> Student:
    student = s.get(Student, student_id)
    if student is None:
        raise NotFoundError("Student")
    return student


def _owned_student(s: "Session", student_id: str, auth_id: str | None) -> tuple[UserProfile, Student]:
    caller = require_caller(s, auth_id)
    student = get_student(s, student_id)
    if student.parent.user_id != caller.id:
        raise ForbiddenError("You can only manage your own students")
    return caller, student


def update_student(s: "Session", student_id: str, payload: dict, auth_id: str | None) -> Student:
    v.raise_for(validate_student_payload(payload, partial=True))
    caller, student = _owned_student(s, student_id, auth_id)
    changes: dict[str, Any] = {}
    for key in ("first_name", "last_name", "age", "grade", "avatar"):
        if key not in payload:
            continue
        new = _clean(payload, key)
        if new != getattr(student, key):
            changes[key] = {"old": getattr(student, key), "new": new}
            setattr(student, key, new)
    record_event(
        s,
        actor=caller,
        action="student.edit",
        entity_type="Student",
        entity_id=student.id,
        metadata={"changes": changes},
    )
    return student


def delete_student(s: "Session", student_id: str, auth_id: str | None) -> None:
    caller, student = _owned_student(s, student_id, auth_id)
    record_event(s, actor=caller, action="student.delete", entity_type="Student", entity_id=student.id)
    s.delete(student)
    s.flush()


def get_students_by_parent(s: "Session", parent_id: str) -> list[Student]:
    stmt = select(Student).where(Student.parent_id == parent_id).order_by(Student.created_at.desc())
    return list(s.execute(stmt).scalars().all())
