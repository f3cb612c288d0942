from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flask import current_app
from sqlalchemy import select

from app.studylinker import meet
from app.studylinker import validation as v
from app.studylinker.audit import record_event
from app.studylinker.constants import CLASS_STATUSES
from app.studylinker.errors import NotFoundError, ValidationError
from app.studylinker.modules.classes.models import Class
from app.studylinker.modules.contracts.service import require_contract_party
from app.studylinker.modules.students.service import student_summary
from app.studylinker.modules.teachers.service import require_teacher_caller, teacher_to_dict
from app.studylinker.utils import utcnow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

UPCOMING_LIMIT = 10


def class_to_dict(klass: Class) -> dict[str, Any]:
    data = klass.to_dict()
    data["teacher"] = teacher_to_dict(klass.teacher)
    data["student"] = student_summary(klass.student)
    return data


def validate_class_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors: list[str] = []
    if not partial:
        for key, label in (("contract_id", "Contract ID"), ("teacher_id", "Teacher ID"), ("student_id", "Student ID")):
            v.text(payload, key, label, errors, required=True)
    if not partial or "title" in payload:
        v.text(payload, "title", "Title", errors, required=True, max_len=255)
    v.text(payload, "description", "Description", errors)
    v.timestamp(payload, "scheduled_at", "Scheduled date", errors, required=not partial)
    if not partial or "duration" in payload:
        v.number(payload, "duration", "Duration", errors, required=True, integer=True, positive=True)
    v.url(payload, "meeting_link", "Meeting link", errors)
    v.text(payload, "notes", "Notes", errors)
    if partial:
        v.choice(payload, "status", "Status", CLASS_STATUSES, errors)
    return errors


def create_class(s: "Session", payload: dict, auth_id: str | None) -> Class:
    v.raise_for(validate_class_payload(payload))
    caller, contract = require_contract_party(s, v.clean_text(payload.get("contract_id")), auth_id)  # type: ignore[arg-type]
    if contract.teacher_id != v.clean_text(payload.get("teacher_id")):
        raise ValidationError("Teacher does not match the contract")
    if contract.student_id != v.clean_text(payload.get("student_id")):
        raise ValidationError("Student does not match the contract")

    title = v.clean_text(payload.get("title"))
    meeting_link = v.clean_text(payload.get("meeting_link"))
    if not meeting_link and v.boolean(payload, "create_meeting"):
        meeting_link = meet.create_meeting(current_app.config, title)["meeting_uri"]

    klass = Class(
        contract_id=contract.id,
        teacher_id=contract.teacher_id,
        student_id=contract.student_id,
        title=title,
        description=v.clean_text(payload.get("description")),
        scheduled_at=v.parse_datetime(payload.get("scheduled_at")),
        duration=v.number(payload, "duration", "Duration", [], integer=True),
        status="SCHEDULED",
        meeting_link=meeting_link,
        notes=v.clean_text(payload.get("notes")),
    )
    s.add(klass)
    s.flush()

    record_event(
        s,
        actor=caller,
        action="class.create",
        entity_type="Class",
        entity_id=klass.id,
        metadata={"contract_id": contract.id, "scheduled_at": klass.scheduled_at.isoformat()},
    )
    return klass


def get_class(s: "Session", class_id: str) -> Class:
    klass = s.get(Class, class_id)
    if klass is None:
        raise NotFoundError("Class")
    return klass


def update_class(s: "Session", class_id: str, payload: dict, auth_id: str | None) -> Class:
    v.raise_for(validate_class_payload(payload, partial=True))
    klass = get_class(s, class_id)
    caller, _ = require_contract_party(s, klass.contract_id, auth_id)

    changes: dict[str, Any] = {}

    def _apply(key: str, new: Any) -> None:
        old = getattr(klass, key)
        if new != old:
            changes[key] = {"old": old, "new": new}
            setattr(klass, key, new)

    for key in ("title", "description", "meeting_link", "notes"):
        if key in payload:
            _apply(key, v.clean_text(payload.get(key)))
    if v.has(payload, "scheduled_at"):
        _apply("scheduled_at", v.parse_datetime(payload.get("scheduled_at")))
    if v.has(payload, "duration"):
        _apply("duration", v.number(payload, "duration", "Duration", [], integer=True))
    if v.has(payload, "status"):
        _apply("status", v.choice(payload, "status", "Status", CLASS_STATUSES, []))

    record_event(
        s,
        actor=caller,
        action="class.edit",
        entity_type="Class",
        entity_id=klass.id,
        metadata={"changes": changes},
    )
    return klass


def get_classes_by_contract(s: "Session", contract_id: str, auth_id: str | None) -> list[Class]:
    require_contract_party(s, contract_id, auth_id)
    stmt = select(Class).where(Class.contract_id == contract_id).order_by(Class.scheduled_at.desc())
    return list(s.execute(stmt).scalars().all())


def get_upcoming_classes_for_teacher(s: "Session", teacher_id: str, auth_id: str | None) -> list[Class]:
    require_teacher_caller(s, auth_id, teacher_id)
    stmt = (
        select(Class)
        .where(
            Class.teacher_id == teacher_id,
            Class.scheduled_at >= utcnow(),
            Class.status.in_(("SCHEDULED", "IN_PROGRESS")),
        )
        .order_by(Class.scheduled_at.asc())
        .limit(UPCOMING_LIMIT)
    )
    return list(s.execute(stmt).scalars().all())
