from datetime import date, datetime, time, timedelta

from flask import Blueprint, current_app, g
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError

from app.studylinker.constants import PERM_ADMIN_VIEW, PERM_USERS_MANAGE
from app.studylinker.db import db_session
from app.studylinker.errors import ValidationError, success
from app.studylinker.models import AuditEvent
from app.studylinker.modules.users import service as users_service
from app.studylinker.rbac import require_permission
from app.studylinker.utils import query_args, request_payload

bp = Blueprint("admin", __name__)

_S3_KEYS = ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
_MEET_KEYS = ("GOOGLE_SERVICE_ACCOUNT_EMAIL", "GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY")


def _parse_date(raw: str | None, label: str) -> date | None:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as e:
        raise ValidationError(f"{label} must be YYYY-MM-DD") from e


@bp.get("/")
@require_permission(PERM_ADMIN_VIEW)
def index():
    """System status plus the staff work queues."""
    from app.studylinker.modules.contacts.models import Contact
    from app.studylinker.modules.teacher_applications.models import TeacherApplication

    s = db_session()
    config = current_app.config
    status = {
        "env": (config.get("ENV") or "development").strip().lower(),
        "db_connected": False,
        "db_error": None,
        "storage_backend": (config.get("STORAGE_BACKEND") or "local").strip().lower(),
        "storage_configured": True,
        "storage_error": None,
        "email_provider": (config.get("EMAIL_PROVIDER") or "").strip().lower() or None,
        "meet_configured": all(config.get(k) for k in _MEET_KEYS),
        "ai_configured": bool(config.get("GEMINI_API_KEY")),
        "realtime_subscribers": current_app.extensions["realtime_broker"].subscriber_count,
        "queues": {},
    }

    if status["storage_backend"] == "s3":
        missing = [k for k in _S3_KEYS if not config.get(k)]
        status["storage_configured"] = not missing
        if missing:
            status["storage_error"] = f"Missing: {', '.join(missing)}"

    try:
        s.execute(text("SELECT 1"))
        status["db_connected"] = True
    except SQLAlchemyError as e:
        s.rollback()
        status["db_error"] = str(e)

    if status["db_connected"]:
        status["queues"] = {
            "pending_teacher_applications": s.execute(
                select(func.count(TeacherApplication.id)).where(
                    TeacherApplication.status.in_(("PENDING", "UNDER_REVIEW"))
                )
            ).scalar_one(),
            "new_contacts": s.execute(select(func.count(Contact.id)).where(Contact.status == "NEW")).scalar_one(),
        }

    return success(status)


@bp.get("/audit")
@require_permission(PERM_ADMIN_VIEW)
def audit_list():
    """
    Audit trail (last 200 events) with simple filters:
    - action (contains)
    - actor_email (contains)
    - entity_type / entity_id (exact)
    - date range (YYYY-MM-DD)
    """
    s = db_session()
    args = query_args()
    action = (args.get("action") or "").strip()
    actor_email = (args.get("actor_email") or "").strip()
    entity_type = (args.get("entity_type") or "").strip()
    entity_id = (args.get("entity_id") or "").strip()
    date_from = _parse_date(args.get("date_from"), "date_from")
    date_to = _parse_date(args.get("date_to"), "date_to")

    stmt = select(AuditEvent)
    if action:
        stmt = stmt.where(AuditEvent.action.like(f"%{action}%"))
    if actor_email:
        stmt = stmt.where(AuditEvent.actor_email.like(f"%{actor_email.lower()}%"))
    if entity_type:
        stmt = stmt.where(AuditEvent.entity_type == entity_type)
    if entity_id:
        stmt = stmt.where(AuditEvent.entity_id == entity_id)
    if date_from:
        stmt = stmt.where(AuditEvent.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        # inclusive end-date (treat as whole day)
        stmt = stmt.where(AuditEvent.created_at < datetime.combine(date_to + timedelta(days=1), time.min))

    events = s.execute(stmt.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(200)).scalars().all()
    return success([e.to_dict() for e in events])


@bp.get("/users")
@require_permission(PERM_ADMIN_VIEW)
def users_list():
    s = db_session()
    users, pagination = users_service.list_users(s, query_args())
    return success([u.to_dict() for u in users], pagination=pagination)


@bp.patch("/users/<user_id>")
@require_permission(PERM_USERS_MANAGE)
def users_update(user_id: str):
    s = db_session()
    profile = users_service.update_user_as_staff(s, user_id, request_payload(), g.current_profile)
    s.commit()
    return success(profile.to_dict())
