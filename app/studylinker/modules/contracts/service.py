from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from app.studylinker import validation as v
from app.studylinker.audit import record_event
from app.studylinker.constants import CONTRACT_STATUSES, DEFAULT_CURRENCY
from app.studylinker.errors import ForbiddenError, NotFoundError, ValidationError
from app.studylinker.modules.contracts.models import Contract
from app.studylinker.modules.jobs.models import JobPosting
from app.studylinker.modules.students.models import Student
from app.studylinker.modules.students.service import student_summary
from app.studylinker.modules.teachers.models import TeacherProfile
from app.studylinker.modules.teachers.service import require_teacher_caller, teacher_to_dict
from app.studylinker.modules.users.models import UserProfile
from app.studylinker.modules.users.service import parent_to_dict, require_caller, require_parent_caller

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def contract_to_dict(contract: Contract) -> dict[str, Any]:
    data = contract.to_dict()
    data["parent"] = parent_to_dict(contract.parent)
    data["teacher"] = teacher_to_dict(contract.teacher)
    data["student"] = student_summary(contract.student)
    return data


def is_party(contract: Contract, profile: UserProfile) -> bool:
    return profile.id in (contract.parent.user_id, contract.teacher.user_id)


def require_contract_party(s: "Session", contract_id: str, auth_id: str | None) -> tuple[UserProfile, Contract]:
    caller = require_caller(s, auth_id)
    contract = s.get(Contract, contract_id)
    if contract is None:
        raise NotFoundError("Contract")
    if not is_party(contract, caller):
        raise ForbiddenError("You are not a party to this contract")
    return caller, contract


def validate_contract_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors: list[str] = []
    if not partial:
        for key, label in (("parent_id", "Parent ID"), ("teacher_id", "Teacher ID"), ("student_id", "Student ID")):
            v.text(payload, key, label, errors, required=True)
        v.text(payload, "job_id", "Job ID", errors)
    for key, label in (("subject", "Subject"), ("level", "Level"), ("hours_per_week", "Hours per week")):
        if not partial or key in payload:
            v.text(payload, key, label, errors, required=True, max_len=128)
    if not partial or "rate" in payload:
        v.number(payload, "rate", "Rate", errors, required=True, positive=True)
    v.text(payload, "currency", "Currency", errors, max_len=8)
    v.mapping(payload, "schedule", "Schedule", errors)
    start = v.timestamp(payload, "start_date", "Start date", errors, required=not partial)
    end = v.timestamp(payload, "end_date", "End date", errors)
    if start and end and end < start:
        errors.append("End date must be after start date.")
    if partial:
        v.choice(payload, "status", "Status", CONTRACT_STATUSES, errors)
    return errors


def create_contract(s: "Session", payload: dict, auth_id: str | None) -> Contract:
    v.raise_for(validate_contract_payload(payload))
    caller, parent = require_parent_caller(s, auth_id, v.clean_text(payload.get("parent_id")))  # type: ignore[arg-type]

    teacher = s.get(TeacherProfile, v.clean_text(payload.get("teacher_id")))
    if teacher is None:
        raise NotFoundError("Teacher")
    student = s.get(Student, v.clean_text(payload.get("student_id")))
    if student is None:
        raise NotFoundError("Student")
    if student.parent_id != parent.id:
        raise ValidationError("Student does not belong to this parent")
    job_id = v.clean_text(payload.get("job_id"))
    if job_id:
        job = s.get(JobPosting, job_id)
        if job is None:
            raise NotFoundError("Job posting")
        if job.parent_id != parent.id:
            raise ValidationError("Job posting does not belong to this parent")

    contract = Contract(
        parent_id=parent.id,
        teacher_id=teacher.id,
        student_id=student.id,
        job_id=job_id,
        subject=v.clean_text(payload.get("subject")),
        level=v.clean_text(payload.get("level")),
        rate=v.number(payload, "rate", "Rate", []),
        currency=(v.clean_text(payload.get("currency")) or DEFAULT_CURRENCY).upper(),
        hours_per_week=v.clean_text(payload.get("hours_per_week")),
        schedule=payload.get("schedule"),
        curriculum=v.boolean(payload, "curriculum"),
        status="ACTIVE",
        start_date=v.parse_datetime(payload.get("start_date")),
        end_date=v.parse_datetime(payload.get("end_date")),
    )
    s.add(contract)
    s.flush()

    record_event(
        s,
        actor=caller,
        action="contract.create",
        entity_type="Contract",
        entity_id=contract.id,
        metadata={"teacher_id": teacher.id, "student_id": student.id, "rate": contract.rate},
    )
    return contract


def get_contract(s: "Session", contract_id: str) -> Contract:
    contract = s.get(Contract, contract_id)
    if contract is None:
        raise NotFoundError("Contract")
    return contract


def update_contract(s: "Session", contract_id: str, payload: dict, auth_id: str | None) -> Contract:
    v.raise_for(validate_contract_payload(payload, partial=True))
    caller, contract = require_contract_party(s, contract_id, auth_id)

    changes: dict[str, Any] = {}

    def _apply(key: str, new: Any) -> None:
        old = getattr(contract, key)
        if new != old:
            changes[key] = {"old": old, "new": new}
            setattr(contract, key, new)

    for key in ("subject", "level", "hours_per_week"):
        if key in payload:
            _apply(key, v.clean_text(payload.get(key)))
    if "rate" in payload:
        _apply("rate", v.number(payload, "rate", "Rate", []))
    if v.has(payload, "currency"):
        _apply("currency", v.clean_text(payload.get("currency")).upper())  # type: ignore[union-attr]
    if "schedule" in payload:
        _apply("schedule", payload.get("schedule"))
    if v.has(payload, "curriculum"):
        _apply("curriculum", v.boolean(payload, "curriculum"))
    if v.has(payload, "status"):
        _apply("status", v.choice(payload, "status", "Status", CONTRACT_STATUSES, []))
    if v.has(payload, "start_date"):
        _apply("start_date", v.parse_datetime(payload.get("start_date")))
    if "end_date" in payload:
        _apply("end_date", v.parse_datetime(payload.get("end_date")))
    if contract.end_date and contract.end_date < contract.start_date:
        raise ValidationError("End date must be after start date.")

    record_event(
        s,
        actor=caller,
        action="contract.edit",
        entity_type="Contract",
        entity_id=contract.id,
        metadata={"changes": changes},
    )
    return contract


def get_contracts_by_parent(s: "Session", parent_id: str, auth_id: str | None) -> list[Contract]:
    require_parent_caller(s, auth_id, parent_id)
    stmt = select(Contract).where(Contract.parent_id == parent_id).order_by(Contract.created_at.desc())
    return list(s.execute(stmt).scalars().all())


def get_contracts_by_teacher(s: "Session", teacher_id: str, auth_id: str | None) -> list[Contract]:
    require_teacher_caller(s, auth_id, teacher_id)
    stmt = select(Contract).where(Contract.teacher_id == teacher_id).order_by(Contract.created_at.desc())
    return list(s.execute(stmt).scalars().all())
