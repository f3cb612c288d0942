from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from flask import current_app
from sqlalchemy import func, select

from app.studylinker import mailer, meet
from app.studylinker import validation as v
from app.studylinker.audit import record_event
from app.studylinker.constants import (
    DEFAULT_CURRENCY,
    PERM_TEACHER_APPLICATIONS_REVIEW,
    TEACHER_APPLICATION_STATUSES,
)
from app.studylinker.errors import ForbiddenError, NotFoundError, ValidationError
from app.studylinker.modules.teacher_applications.models import TeacherApplication
from app.studylinker.modules.teachers.models import TeacherProfile
from app.studylinker.modules.users.models import UserProfile
from app.studylinker.modules.users.service import require_caller, user_summary
from app.studylinker.rbac import ensure_permission, user_has_permission
from app.studylinker.utils import utcnow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

MIN_COVER_LETTER_LENGTH = 50


def teacher_application_to_dict(application: TeacherApplication) -> dict[str, Any]:
    data = application.to_dict()
    data["applicant"] = user_summary(application.applicant)
    data["reviewer"] = user_summary(application.reviewer)
    return data


def latest_application_for_user(s: "Session", user_id: str) -> TeacherApplication | None:
    stmt = (
        select(TeacherApplication)
        .where(TeacherApplication.user_id == user_id)
        .order_by(TeacherApplication.created_at.desc())
        .limit(1)
    )
    return s.execute(stmt).scalar_one_or_none()


def require_reviewer(s: "Session", auth_id: str | None) -> UserProfile:
    caller = require_caller(s, auth_id)
    ensure_permission(caller, PERM_TEACHER_APPLICATIONS_REVIEW)
    return caller


def validate_teacher_application_payload(payload: dict) -> list[str]:
    errors: list[str] = []
    v.text(payload, "user_id", "User ID", errors, required=True)
    v.string_list(payload, "subjects", "Subjects", errors, min_items=1)
    v.string_list(payload, "levels", "Levels", errors, min_items=1)
    v.mapping(payload, "qualifications", "Qualifications", errors)
    v.text(payload, "experience", "Experience", errors)
    v.url(payload, "resume", "Resume", errors)
    v.string_list(payload, "certificates", "Certificates", errors, urls=True)
    letter = v.clean_text(payload.get("cover_letter")) or ""
    if len(letter) < MIN_COVER_LETTER_LENGTH:
        errors.append(f"Cover letter must be at least {MIN_COVER_LETTER_LENGTH} characters")
    return errors


def create_teacher_application(s: "Session", payload: dict, auth_id: str | None) -> TeacherApplication:
    v.raise_for(validate_teacher_application_payload(payload))
    caller = require_caller(s, auth_id)
    if caller.id != v.clean_text(payload.get("user_id")):
        raise ForbiddenError("You can only apply for yourself")

    latest = latest_application_for_user(s, caller.id)
    if latest is not None:
        if latest.status == "APPROVED":
            raise ValidationError("You are already approved as a teacher")
        if latest.status in ("PENDING", "UNDER_REVIEW"):
            raise ValidationError("You already have a pending application")

    application = TeacherApplication(
        user_id=caller.id,
        subjects=v.string_list(payload, "subjects", "Subjects", []),
        levels=v.string_list(payload, "levels", "Levels", []),
        qualifications=payload.get("qualifications"),
        experience=v.clean_text(payload.get("experience")),
        resume=v.clean_text(payload.get("resume")),
        certificates=v.string_list(payload, "certificates", "Certificates", []),
        cover_letter=v.clean_text(payload.get("cover_letter")),
        status="PENDING",
    )
    s.add(application)
    s.flush()
    record_event(
        s,
        actor=caller,
        action="teacher_application.create",
        entity_type="TeacherApplication",
        entity_id=application.id,
        metadata={"subjects": application.subjects, "levels": application.levels},
    )
    return application


def get_teacher_application(s: "Session", application_id: str, auth_id: str | None) -> TeacherApplication:
    caller = require_caller(s, auth_id)
    application = s.get(TeacherApplication, application_id)
    if application is None:
        raise NotFoundError("Teacher application")
    if application.user_id != caller.id and not user_has_permission(caller, PERM_TEACHER_APPLICATIONS_REVIEW):
        raise ForbiddenError("You can only view your own application")
    return application


def get_current_teacher_application(s: "Session", auth_id: str | None) -> TeacherApplication | None:
    caller = require_caller(s, auth_id)
    return latest_application_for_user(s, caller.id)


def get_all_teacher_applications(
    s: "Session", filters: dict, auth_id: str | None
) -> tuple[list[TeacherApplication], dict[str, int]]:
    require_reviewer(s, auth_id)
    errors: list[str] = []
    status = v.choice(filters, "status", "Status", TEACHER_APPLICATION_STATUSES, errors)
    v.raise_for(errors)
    page, limit = v.pagination(filters)

    stmt = select(TeacherApplication)
    if status:
        stmt = stmt.where(TeacherApplication.status == status)
    total = s.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    rows = (
        s.execute(stmt.order_by(TeacherApplication.created_at.desc()).offset((page - 1) * limit).limit(limit))
        .scalars()
        .all()
    )
    return list(rows), v.pagination_meta(page, limit, total)


def _get_for_review(s: "Session", application_id: str) -> TeacherApplication:
    application = s.get(TeacherApplication, application_id)
    if application is None:
        raise NotFoundError("Teacher application")
    return application


def _verify_teacher(s: "Session", user_id: str) -> TeacherProfile:
    teacher = s.execute(select(TeacherProfile).where(TeacherProfile.user_id == user_id)).scalar_one_or_none()
    if teacher is None:
        teacher = TeacherProfile(user_id=user_id, currency=DEFAULT_CURRENCY, verified=True)
        s.add(teacher)
        s.flush()
    else:
        teacher.verified = True
    return teacher


def update_application_status(s: "Session", application_id: str, payload: dict, auth_id: str | None) -> TeacherApplication:
    errors: list[str] = []
    status = v.choice(payload, "status", "Status", TEACHER_APPLICATION_STATUSES, errors, required=True)
    admin_notes = v.text(payload, "admin_notes", "Admin notes", errors)
    rejection_reason = v.text(payload, "rejection_reason", "Rejection reason", errors)
    v.raise_for(errors)

    reviewer = require_reviewer(s, auth_id)
    application = _get_for_review(s, application_id)
    old_status = application.status

    application.status = status  # type: ignore[assignment]
    application.reviewed_by = reviewer.id
    application.reviewed_at = utcnow()
    if admin_notes:
        application.admin_notes = admin_notes
    if status == "REJECTED" and rejection_reason:
        application.rejection_reason = rejection_reason

    metadata: dict[str, Any] = {"old_status": old_status, "new_status": status}
    if status == "APPROVED":
        teacher = _verify_teacher(s, application.user_id)
        metadata["teacher_profile_id"] = teacher.id

    record_event(
        s,
        actor=reviewer,
        action="teacher_application.status_change",
        entity_type="TeacherApplication",
        entity_id=application.id,
        reason=rejection_reason if status == "REJECTED" else None,
        metadata=metadata,
    )
    return application


def send_interview_invitation(s: "Session", application: TeacherApplication, reviewer: UserProfile) -> bool:
    """
    Email the applicant their interview details and audit the outcome. Call
    after the schedule is committed; a failed send is logged, not raised.
    """
    applicant = application.applicant
    html = mailer.render_interview_invitation(
        applicant.display_name,
        application.interview_scheduled_at,  # type: ignore[arg-type]
        application.interview_link,
        application.interview_notes,
    )
    ok, error = mailer.send_email(
        current_app.config,
        to=applicant.email,
        subject="Interview Invitation - StudyLinker Academy",
        html=html,
    )
    if not ok:
        logger.warning("Interview invitation email failed (application_id=%s): %s", application.id, error)
    record_event(
        s,
        actor=reviewer,
        action="teacher_application.invitation_sent",
        entity_type="TeacherApplication",
        entity_id=application.id,
        reason=None if ok else error,
        metadata={"email_sent": ok, "to": applicant.email},
    )
    return ok


def schedule_interview(s: "Session", application_id: str, payload: dict, auth_id: str | None) -> TeacherApplication:
    errors: list[str] = []
    scheduled_at = v.timestamp(payload, "interview_scheduled_at", "Interview date", errors, required=True)
    link = v.url(payload, "interview_link", "Interview link", errors)
    notes = v.text(payload, "interview_notes", "Interview notes", errors)
    v.raise_for(errors)

    reviewer = require_reviewer(s, auth_id)
    application = _get_for_review(s, application_id)

    if not link and v.boolean(payload, "create_meeting"):
        title = f"StudyLinker interview: {application.applicant.display_name}"
        link = meet.create_meeting(current_app.config, title)["meeting_uri"]
    if not link:
        raise ValidationError("Interview link is required")

    application.status = "INTERVIEW_SCHEDULED"
    application.interview_scheduled_at = scheduled_at
    application.interview_link = link
    application.interview_notes = notes
    application.reviewed_by = reviewer.id
    application.reviewed_at = utcnow()

    record_event(
        s,
        actor=reviewer,
        action="teacher_application.interview_scheduled",
        entity_type="TeacherApplication",
        entity_id=application.id,
        metadata={"interview_scheduled_at": scheduled_at, "interview_link": link},
    )
    return application


def score_interview(s: "Session", application_id: str, payload: dict, auth_id: str | None) -> TeacherApplication:
    errors: list[str] = []
    score = v.number(payload, "interview_score", "Interview score", errors, required=True, minimum=0, maximum=100)
    max_score = v.number(payload, "max_interview_score", "Max interview score", errors, positive=True)
    notes = v.text(payload, "interview_notes", "Interview notes", errors)
    v.raise_for(errors)

    reviewer = require_reviewer(s, auth_id)
    application = _get_for_review(s, application_id)

    application.status = "INTERVIEW_COMPLETED"
    application.interview_score = score
    application.max_interview_score = max_score if max_score is not None else 100
    if notes:
        application.interview_notes = notes
    application.reviewed_by = reviewer.id
    application.reviewed_at = utcnow()

    record_event(
        s,
        actor=reviewer,
        action="teacher_application.interview_scored",
        entity_type="TeacherApplication",
        entity_id=application.id,
        metadata={"interview_score": score, "max_interview_score": application.max_interview_score},
    )
    return application
