from __future__ import annotations

from flask import Blueprint

from app.studylinker.db import db_session
from app.studylinker.errors import success
from app.studylinker.modules.jobs import service
from app.studylinker.rbac import require_login
from app.studylinker.utils import current_auth_id, query_args, request_payload

bp = Blueprint("jobs", __name__)


@bp.post("/jobs")
@require_login
def jobs_create():
    s = db_session()
    job = service.create_job_posting(s, request_payload(), current_auth_id())
    s.commit()
    return success(job.to_dict()), 201


@bp.get("/jobs")
def jobs_search():
    s = db_session()
    jobs, pagination = service.search_job_postings(s, query_args())
    return success([service.job_to_dict(job) for job in jobs], pagination=pagination)


@bp.get("/jobs/<job_id>")
def jobs_get(job_id: str):
    s = db_session()
    return success(service.job_to_dict(service.get_job_posting(s, job_id)))


@bp.patch("/jobs/<job_id>")
@require_login
def jobs_update(job_id: str):
    s = db_session()
    job = service.update_job_posting(s, job_id, request_payload(), current_auth_id())
    s.commit()
    return success(job.to_dict())


@bp.delete("/jobs/<job_id>")
@require_login
def jobs_delete(job_id: str):
    s = db_session()
    service.delete_job_posting(s, job_id, current_auth_id())
    s.commit()
    return success()


@bp.get("/parents/<parent_id>/jobs")
def jobs_by_parent(parent_id: str):
    s = db_session()
    return success([job.to_dict() for job in service.get_job_postings_by_parent(s, parent_id)])
