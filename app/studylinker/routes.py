from flask import Blueprint, current_app

from app.studylinker import ai, meet
from app.studylinker.errors import success
from app.studylinker.rbac import require_login
from app.studylinker.utils import request_payload
from app.studylinker.validation import clean_text

bp = Blueprint("routes", __name__)


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for k8s/DO probes. No DB access, minimal overhead.
    """
    return "ok", 200


@bp.post("/api/meetings")
@require_login
def meetings_create():
    """Create a meeting space for a class or an interview."""
    title = clean_text(request_payload().get("title"))
    return success(meet.create_meeting(current_app.config, title)), 201


@bp.post("/api/generate-job-description")
@require_login
def generate_job_description():
    description = ai.generate_job_description(current_app.config, request_payload())
    return success({"description": description})


@bp.post("/api/generate-meeting-description")
@require_login
def generate_meeting_description():
    description = ai.generate_meeting_description(current_app.config, request_payload())
    return success({"description": description})
