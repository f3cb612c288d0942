from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import exists, func, select

from app.studylinker import validation as v
from app.studylinker.audit import record_event
from app.studylinker.constants import DEFAULT_CURRENCY, ROLE_TEACHER
from app.studylinker.errors import ForbiddenError, NotFoundError, ValidationError
from app.studylinker.modules.teachers.models import Qualification, TeacherLevel, TeacherProfile, TeacherSubject
from app.studylinker.modules.users.models import UserProfile
from app.studylinker.modules.users.service import require_caller, user_summary

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


PROFILE_FIELDS = ("bio", "location", "timezone", "languages", "hourly_rate", "currency", "availability")


def teacher_to_dict(teacher: TeacherProfile) -> dict[str, Any]:
    data = teacher.to_dict()
    data["user"] = user_summary(teacher.user)
    return data


def require_teacher_caller(s: "Session", auth_id: str | None, teacher_id: str) -> tuple[UserProfile, TeacherProfile]:
    """Caller plus the TeacherProfile ``teacher_id``, which the caller must own."""
    caller = require_caller(s, auth_id)
    teacher = s.get(TeacherProfile, teacher_id)
    if teacher is None:
        raise NotFoundError("Teacher")
    if teacher.user_id != caller.id:
        raise ForbiddenError("You can only act on your own teacher profile")
    return caller, teacher


def validate_teacher_payload(payload: dict) -> list[str]:
    errors: list[str] = []
    v.text(payload, "bio", "Bio", errors, max_len=5000)
    v.text(payload, "location", "Location", errors, max_len=255)
    v.text(payload, "timezone", "Timezone", errors, max_len=64)
    v.string_list(payload, "languages", "Languages", errors)
    v.number(payload, "hourly_rate", "Hourly rate", errors, positive=True)
    v.text(payload, "currency", "Currency", errors, max_len=8)
    v.mapping(payload, "availability", "Availability", errors)
    return errors


def _clean_profile_value(payload: dict, key: str) -> Any:
    if key == "hourly_rate":
        return v.number(payload, key, "Hourly rate", [])
    if key == "currency":
        return (v.clean_text(payload.get(key)) or DEFAULT_CURRENCY).upper()
    if key in ("languages", "availability"):
        return payload.get(key)
    return v.clean_text(payload.get(key))


def create_teacher_profile(s: "Session", payload: dict, auth_id: str | None) -> TeacherProfile:
    errors = validate_teacher_payload(payload)
    v.text(payload, "user_id", "User ID", errors, required=True)
    v.raise_for(errors)
    caller = require_caller(s, auth_id)
    user_id = v.clean_text(payload.get("user_id"))
    if caller.id != user_id:
        raise ForbiddenError("You can only create a teacher profile for yourself")
    if s.execute(select(TeacherProfile.id).where(TeacherProfile.user_id == user_id)).first():
        raise ValidationError("Teacher profile already exists")

    teacher = TeacherProfile(
        user_id=user_id,
        **{key: _clean_profile_value(payload, key) for key in PROFILE_FIELDS},
        rating=0,
        total_reviews=0,
        total_students=0,
        verified=False,
    )
    s.add(teacher)
    s.flush()
    record_event(s, actor=caller, action="teacher_profile.create", entity_type="TeacherProfile", entity_id=teacher.id)
    return teacher


def get_teacher_profile(s: "Session", teacher_id: str) -> TeacherProfile:
    teacher = s.get(TeacherProfile, teacher_id)
    if teacher is None:
        raise NotFoundError("Teacher")
    return teacher


def find_teacher_for_user(s: "Session", user_id: str) -> TeacherProfile | None:
    return s.execute(select(TeacherProfile).where(TeacherProfile.user_id == user_id)).scalar_one_or_none()


def get_current_teacher_profile(s: "Session", auth_id: str | None) -> TeacherProfile:
    caller = require_caller(s, auth_id)
    teacher = find_teacher_for_user(s, caller.id)
    if teacher is None:
        raise NotFoundError("Teacher profile")
    return teacher


def update_teacher_profile(s: "Session", teacher_id: str, payload: dict, auth_id: str | None) -> TeacherProfile:
    v.raise_for(validate_teacher_payload(payload))
    caller, teacher = require_teacher_caller(s, auth_id, teacher_id)

    changes: dict[str, Any] = {}
    for key in PROFILE_FIELDS:
        if key not in payload:
            continue
        new = _clean_profile_value(payload, key)
        old = getattr(teacher, key)
        if new != old:
            changes[key] = {"old": old, "new": new}
            setattr(teacher, key, new)

    record_event(
        s,
        actor=caller,
        action="teacher_profile.edit",
        entity_type="TeacherProfile",
        entity_id=teacher.id,
        metadata={"changes": changes},
    )
    return teacher


def search_teachers(s: "Session", filters: dict) -> tuple[list[TeacherProfile], dict[str, int]]:
    errors: list[str] = []
    subject = v.text(filters, "subject", "Subject", errors)
    level = v.text(filters, "level", "Level", errors)
    location = v.text(filters, "location", "Location", errors)
    min_rating = v.number(filters, "min_rating", "Minimum rating", errors, minimum=0, maximum=5)
    max_rate = v.number(filters, "max_rate", "Maximum rate", errors, positive=True)
    v.raise_for(errors)
    page, limit = v.pagination(filters)

    stmt = select(TeacherProfile)
    if subject:
        stmt = stmt.where(
            exists().where(
                TeacherSubject.teacher_id == TeacherProfile.id,
                func.lower(TeacherSubject.subject) == subject.lower(),
            )
        )
    if level:
        stmt = stmt.where(
            exists().where(
                TeacherLevel.teacher_id == TeacherProfile.id,
                func.lower(TeacherLevel.level) == level.lower(),
            )
        )
    if min_rating is not None:
        stmt = stmt.where(TeacherProfile.rating >= min_rating)
    if v.has(filters, "verified"):
        stmt = stmt.where(TeacherProfile.verified.is_(v.boolean(filters, "verified")))
    if location:
        stmt = stmt.where(TeacherProfile.location.ilike(f"%{location}%"))
    if max_rate is not None:
        stmt = stmt.where(TeacherProfile.hourly_rate <= max_rate)

    total = s.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    teachers = (
        s.execute(
            stmt.order_by(TeacherProfile.rating.desc(), TeacherProfile.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        .scalars()
        .all()
    )
    return list(teachers), v.pagination_meta(page, limit, total)


# ---------- Qualifications ----------


def validate_qualification_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors: list[str] = []
    if not partial or "title" in payload:
        v.text(payload, "title", "Title", errors, required=True, max_len=255)
    v.text(payload, "institution", "Institution", errors, max_len=255)
    v.number(payload, "year", "Year", errors, integer=True, minimum=1900, maximum=2100)
    v.text(payload, "certificate", "Certificate", errors, max_len=1024)
    return errors


def create_qualification(s: "Session", payload: dict, auth_id: str | None) -> Qualification:
    v.raise_for(validate_qualification_payload(payload))
    caller, teacher = require_teacher_caller(s, auth_id, str(payload.get("teacher_id") or ""))
    q = Qualification(
        teacher_id=teacher.id,
        title=v.clean_text(payload.get("title")),
        institution=v.clean_text(payload.get("institution")),
        year=v.number(payload, "year", "Year", [], integer=True),
        certificate=v.clean_text(payload.get("certificate")),
    )
    s.add(q)
    s.flush()
    record_event(
        s,
        actor=caller,
        action="qualification.create",
        entity_type="Qualification",
        entity_id=q.id,
        metadata={"teacher_id": teacher.id, "title": q.title},
    )
    return q


def get_qualifications(s: "Session", teacher_id: str) -> list[Qualification]:
    stmt = (
        select(Qualification)
        .where(Qualification.teacher_id == teacher_id)
        .order_by(Qualification.year.is_(None), Qualification.year.desc())
    )
    return list(s.execute(stmt).scalars().all())


def _owned_qualification(s: "Session", qualification_id: str, auth_id: str | None) -> tuple[UserProfile, Qualification]:
    caller = require_caller(s, auth_id)
    q = s.get(Qualification, qualification_id)
    if q is None:
        raise NotFoundError("Qualification")
    if q.teacher.user_id != caller.id:
        raise ForbiddenError("You can only modify your own qualifications")
    return caller, q


def update_qualification(s: "Session", qualification_id: str, payload: dict, auth_id: str | None) -> Qualification:
    v.raise_for(validate_qualification_payload(payload, partial=True))
    caller, q = _owned_qualification(s, qualification_id, auth_id)
    changes: dict[str, Any] = {}
    for key in ("title", "institution", "certificate", "year"):
        if key not in payload:
            continue
        new = v.number(payload, key, "Year", [], integer=True) if key == "year" else v.clean_text(payload.get(key))
        if new != getattr(q, key):
            changes[key] = {"old": getattr(q, key), "new": new}
            setattr(q, key, new)
    record_event(
        s,
        actor=caller,
        action="qualification.edit",
        entity_type="Qualification",
        entity_id=q.id,
        metadata={"changes": changes},
    )
    return q


def delete_qualification(s: "Session", qualification_id: str, auth_id: str | None) -> None:
    caller, q = _owned_qualification(s, qualification_id, auth_id)
    record_event(s, actor=caller, action="qualification.delete", entity_type="Qualification", entity_id=q.id)
    s.delete(q)
    s.flush()


# ---------- Subjects & levels ----------


def add_teacher_subject(s: "Session", payload: dict, auth_id: str | None) -> TeacherSubject:
    errors: list[str] = []
    subject = v.text(payload, "subject", "Subject", errors, required=True, max_len=128)
    experience = v.number(payload, "experience", "Experience", errors, integer=True, minimum=0)
    v.raise_for(errors)
    caller, teacher = require_teacher_caller(s, auth_id, str(payload.get("teacher_id") or ""))
    row = TeacherSubject(teacher_id=teacher.id, subject=subject, experience=experience)
    s.add(row)
    s.flush()
    record_event(
        s,
        actor=caller,
        action="teacher_subject.add",
        entity_type="TeacherSubject",
        entity_id=row.id,
        metadata={"teacher_id": teacher.id, "subject": subject},
    )
    return row


def remove_teacher_subject(s: "Session", subject_id: str, auth_id: str | None) -> None:
    caller = require_caller(s, auth_id)
    row = s.get(TeacherSubject, subject_id)
    if row is None:
        raise NotFoundError("Subject")
    if row.teacher.user_id != caller.id:
        raise ForbiddenError("You can only modify your own subjects")
    record_event(
        s,
        actor=caller,
        action="teacher_subject.remove",
        entity_type="TeacherSubject",
        entity_id=row.id,
        metadata={"teacher_id": row.teacher_id, "subject": row.subject},
    )
    s.delete(row)
    s.flush()


def get_teacher_subjects(s: "Session", teacher_id: str) -> list[TeacherSubject]:
    stmt = select(TeacherSubject).where(TeacherSubject.teacher_id == teacher_id).order_by(TeacherSubject.subject)
    return list(s.execute(stmt).scalars().all())


def add_teacher_level(s: "Session", payload: dict, auth_id: str | None) -> TeacherLevel:
    errors: list[str] = []
    level = v.text(payload, "level", "Level", errors, required=True, max_len=128)
    v.raise_for(errors)
    caller, teacher = require_teacher_caller(s, auth_id, str(payload.get("teacher_id") or ""))
    row = TeacherLevel(teacher_id=teacher.id, level=level)
    s.add(row)
    s.flush()
    record_event(
        s,
        actor=caller,
        action="teacher_level.add",
        entity_type="TeacherLevel",
        entity_id=row.id,
        metadata={"teacher_id": teacher.id, "level": level},
    )
    return row


def get_teacher_levels(s: "Session", teacher_id: str) -> list[TeacherLevel]:
    stmt = select(TeacherLevel).where(TeacherLevel.teacher_id == teacher_id).order_by(TeacherLevel.level)
    return list(s.execute(stmt).scalars().all())


# ---------- Verification ----------


def check_teacher_verification(s: "Session", auth_id: str | None) -> dict[str, Any]:
    from app.studylinker.modules.teacher_applications.service import latest_application_for_user

    caller = require_caller(s, auth_id)
    if caller.role != ROLE_TEACHER:
        raise ForbiddenError("User is not a teacher")

    teacher = find_teacher_for_user(s, caller.id)
    if teacher is not None and teacher.verified:
        return {"is_verified": True, "has_application": True, "application_status": "APPROVED", "application_id": None}

    application = latest_application_for_user(s, caller.id)
    return {
        "is_verified": False,
        "has_application": application is not None,
        "application_status": application.status if application else None,
        "application_id": application.id if application else None,
    }
