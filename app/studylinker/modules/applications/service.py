from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from app.studylinker import validation as v
from app.studylinker.audit import record_event
from app.studylinker.constants import APPLICATION_STATUSES
from app.studylinker.errors import ForbiddenError, NotFoundError, ValidationError
from app.studylinker.modules.applications.models import Application
from app.studylinker.modules.jobs.models import JobPosting
from app.studylinker.modules.jobs.service import job_to_dict
from app.studylinker.modules.teachers.service import require_teacher_caller, teacher_to_dict
from app.studylinker.modules.users.service import require_caller, require_parent_caller

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

# Which party may move an application into each status
TEACHER_STATUSES = ("PENDING", "WITHDRAWN")
PARENT_STATUSES = ("ACCEPTED", "REJECTED")


def application_to_dict(application: Application) -> dict[str, Any]:
    data = application.to_dict()
    data["job"] = job_to_dict(application.job)
    data["teacher"] = teacher_to_dict(application.teacher)
    return data


def validate_application_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors: list[str] = []
    if not partial:
        v.text(payload, "job_id", "Job ID", errors, required=True)
        v.text(payload, "teacher_id", "Teacher ID", errors, required=True)
    v.number(payload, "proposed_rate", "Proposed rate", errors, positive=True)
    v.text(payload, "cover_letter", "Cover letter", errors, max_len=10000)
    if partial:
        v.choice(payload, "status", "Status", APPLICATION_STATUSES, errors)
    return errors


def create_application(s: "Session", payload: dict, auth_id: str | None) -> Application:
    v.raise_for(validate_application_payload(payload))
    job_id = v.clean_text(payload.get("job_id"))
    caller, teacher = require_teacher_caller(s, auth_id, v.clean_text(payload.get("teacher_id")))  # type: ignore[arg-type]

    existing = s.execute(
        select(Application.id).where(Application.job_id == job_id, Application.teacher_id == teacher.id)
    ).first()
    if existing:
        raise ValidationError("Application already exists")

    job = s.get(JobPosting, job_id)
    if job is None:
        raise NotFoundError("Job posting")
    if job.status != "OPEN":
        raise ValidationError("Job posting is not open for applications")

    application = Application(
        job_id=job.id,
        teacher_id=teacher.id,
        proposed_rate=v.number(payload, "proposed_rate", "Proposed rate", []),
        cover_letter=v.clean_text(payload.get("cover_letter")),
        status="PENDING",
    )
    s.add(application)
    s.flush()

    record_event(
        s,
        actor=caller,
        action="application.create",
        entity_type="Application",
        entity_id=application.id,
        metadata={"job_id": job.id, "teacher_id": teacher.id},
    )
    return application


def get_application(s: "Session", application_id: str) -> Application:
    application = s.get(Application, application_id)
    if application is None:
        raise NotFoundError("Application")
    return application


def update_application(s: "Session", application_id: str, payload: dict, auth_id: str | None) -> Application:
    """
    The applying teacher may edit rate/cover letter and withdraw; the job's
    parent may accept or reject.
    """
    v.raise_for(validate_application_payload(payload, partial=True))
    caller = require_caller(s, auth_id)
    application = get_application(s, application_id)

    is_teacher = application.teacher.user_id == caller.id
    is_parent = application.job.parent.user_id == caller.id
    if not (is_teacher or is_parent):
        raise ForbiddenError("You can only update applications for your own jobs or profile")

    changes: dict[str, Any] = {}
    if "proposed_rate" in payload or "cover_letter" in payload:
        if not is_teacher:
            raise ForbiddenError("Only the applying teacher can edit the application")
        if "proposed_rate" in payload:
            new_rate = v.number(payload, "proposed_rate", "Proposed rate", [])
            if new_rate != application.proposed_rate:
                changes["proposed_rate"] = {"old": application.proposed_rate, "new": new_rate}
                application.proposed_rate = new_rate
        if "cover_letter" in payload:
            new_letter = v.clean_text(payload.get("cover_letter"))
            if new_letter != application.cover_letter:
                changes["cover_letter"] = {"old": application.cover_letter, "new": new_letter}
                application.cover_letter = new_letter

    new_status = v.choice(payload, "status", "Status", APPLICATION_STATUSES, [])
    if new_status and new_status != application.status:
        allowed = (TEACHER_STATUSES if is_teacher else ()) + (PARENT_STATUSES if is_parent else ())
        if new_status not in allowed:
            raise ForbiddenError(f"You cannot set this application to {new_status}")
        changes["status"] = {"old": application.status, "new": new_status}
        application.status = new_status

    record_event(
        s,
        actor=caller,
        action="application.edit",
        entity_type="Application",
        entity_id=application.id,
        metadata={"changes": changes},
    )
    return application


def get_applications_by_job(s: "Session", job_id: str, auth_id: str | None) -> list[Application]:
    job = s.get(JobPosting, job_id)
    if job is None:
        raise NotFoundError("Job posting")
    require_parent_caller(s, auth_id, job.parent_id)
    stmt = select(Application).where(Application.job_id == job_id).order_by(Application.created_at.desc())
    return list(s.execute(stmt).scalars().all())


def get_applications_by_teacher(s: "Session", teacher_id: str, auth_id: str | None) -> list[Application]:
    require_teacher_caller(s, auth_id, teacher_id)
    stmt = select(Application).where(Application.teacher_id == teacher_id).order_by(Application.created_at.desc())
    return list(s.execute(stmt).scalars().all())
