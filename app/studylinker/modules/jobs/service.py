from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from app.studylinker import validation as v
from app.studylinker.audit import record_event
from app.studylinker.constants import APPLICATION_MODES, JOB_STATUSES, PERM_JOBS_MODERATE
from app.studylinker.errors import ForbiddenError, NotFoundError
from app.studylinker.modules.jobs.models import JobPosting
from app.studylinker.modules.users.models import UserProfile
from app.studylinker.modules.users.service import parent_to_dict, require_caller, require_parent_caller
from app.studylinker.rbac import user_has_permission

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


TEXT_FIELDS = ("title", "subject", "level", "hours_per_week", "budget", "description")


def job_to_dict(job: JobPosting) -> dict[str, Any]:
    data = job.to_dict()
    data["parent"] = parent_to_dict(job.parent)
    return data


def validate_job_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors: list[str] = []
    labels = {
        "title": "Title",
        "subject": "Subject",
        "level": "Level",
        "hours_per_week": "Hours per week",
        "budget": "Budget",
        "description": "Description",
    }
    for key, label in labels.items():
        if not partial or key in payload:
            v.text(payload, key, label, errors, required=True, max_len=None if key == "description" else 255)
    v.number(payload, "student_age", "Student age", errors, integer=True, minimum=3, maximum=25)
    v.string_list(payload, "requirements", "Requirements", errors)
    v.choice(payload, "application_mode", "Application mode", APPLICATION_MODES, errors)
    if partial:
        v.choice(payload, "status", "Status", JOB_STATUSES, errors)
    return errors


def create_job_posting(s: "Session", payload: dict, auth_id: str | None) -> JobPosting:
    v.raise_for(validate_job_payload(payload))
    caller, parent = require_parent_caller(s, auth_id, str(payload.get("parent_id") or ""))

    job = JobPosting(
        parent_id=parent.id,
        **{key: v.clean_text(payload.get(key)) for key in TEXT_FIELDS},
        student_age=v.number(payload, "student_age", "Student age", [], integer=True),
        requirements=v.string_list(payload, "requirements", "Requirements", []),
        curriculum=v.boolean(payload, "curriculum"),
        application_mode=v.choice(payload, "application_mode", "Application mode", APPLICATION_MODES, [], default="OPEN"),
        status="OPEN",
    )
    s.add(job)
    s.flush()

    record_event(
        s,
        actor=caller,
        action="job.create",
        entity_type="JobPosting",
        entity_id=job.id,
        metadata={"title": job.title, "subject": job.subject, "level": job.level},
    )
    return job


def get_job_posting(s: "Session", job_id: str) -> JobPosting:
    job = s.get(JobPosting, job_id)
    if job is None:
        raise NotFoundError("Job posting")
    return job


def _owned_job(s: "Session", job_id: str, auth_id: str | None) -> tuple[UserProfile, JobPosting]:
    caller = require_caller(s, auth_id)
    job = get_job_posting(s, job_id)
    if job.parent.user_id != caller.id:
        raise ForbiddenError("You can only manage your own job postings")
    return caller, job


def _editable_job(s: "Session", job_id: str, payload: dict, auth_id: str | None) -> tuple[UserProfile, JobPosting, bool]:
    """
    The owning parent may edit anything; staff with jobs.moderate may change
    only the status of someone else's posting. Returns (caller, job, moderated).
    """
    caller = require_caller(s, auth_id)
    job = get_job_posting(s, job_id)
    if job.parent.user_id == caller.id:
        return caller, job, False
    if not user_has_permission(caller, PERM_JOBS_MODERATE):
        raise ForbiddenError("You can only manage your own job postings")
    if set(payload) - {"status"}:
        raise ForbiddenError("Staff can only change the status of a job posting")
    return caller, job, True


def update_job_posting(s: "Session", job_id: str, payload: dict, auth_id: str | None) -> JobPosting:
    v.raise_for(validate_job_payload(payload, partial=True))
    caller, job, moderated = _editable_job(s, job_id, payload, auth_id)

    changes: dict[str, Any] = {}

    def _apply(key: str, new: Any) -> None:
        old = getattr(job, key)
        if new != old:
            changes[key] = {"old": old, "new": new}
            setattr(job, key, new)

    for key in TEXT_FIELDS:
        if key in payload:
            _apply(key, v.clean_text(payload.get(key)))
    if "student_age" in payload:
        _apply("student_age", v.number(payload, "student_age", "Student age", [], integer=True))
    if "requirements" in payload:
        _apply("requirements", v.string_list(payload, "requirements", "Requirements", []))
    if v.has(payload, "curriculum"):
        _apply("curriculum", v.boolean(payload, "curriculum"))
    if v.has(payload, "application_mode"):
        _apply("application_mode", v.choice(payload, "application_mode", "Application mode", APPLICATION_MODES, []))
    if v.has(payload, "status"):
        _apply("status", v.choice(payload, "status", "Status", JOB_STATUSES, []))

    record_event(
        s,
        actor=caller,
        action="job.moderate" if moderated else "job.edit",
        entity_type="JobPosting",
        entity_id=job.id,
        metadata={"title": job.title, "changes": changes},
    )
    return job


def delete_job_posting(s: "Session", job_id: str, auth_id: str | None) -> None:
    caller, job = _owned_job(s, job_id, auth_id)
    record_event(
        s,
        actor=caller,
        action="job.delete",
        entity_type="JobPosting",
        entity_id=job.id,
        metadata={"title": job.title},
    )
    s.delete(job)
    s.flush()


def search_job_postings(s: "Session", filters: dict) -> tuple[list[JobPosting], dict[str, int]]:
    errors: list[str] = []
    subject = v.text(filters, "subject", "Subject", errors)
    level = v.text(filters, "level", "Level", errors)
    status = v.choice(filters, "status", "Status", JOB_STATUSES, errors)
    parent_id = v.text(filters, "parent_id", "Parent ID", errors)
    v.raise_for(errors)
    page, limit = v.pagination(filters)

    stmt = select(JobPosting)
    if subject:
        stmt = stmt.where(JobPosting.subject == subject)
    if level:
        stmt = stmt.where(JobPosting.level == level)
    if status:
        stmt = stmt.where(JobPosting.status == status)
    if parent_id:
        stmt = stmt.where(JobPosting.parent_id == parent_id)

    total = s.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    jobs = (
        s.execute(stmt.order_by(JobPosting.created_at.desc()).offset((page - 1) * limit).limit(limit))
        .scalars()
        .all()
    )
    return list(jobs), v.pagination_meta(page, limit, total)


def get_job_postings_by_parent(s: "Session", parent_id: str) -> list[JobPosting]:
    stmt = select(JobPosting).where(JobPosting.parent_id == parent_id).order_by(JobPosting.created_at.desc())
    return list(s.execute(stmt).scalars().all())
