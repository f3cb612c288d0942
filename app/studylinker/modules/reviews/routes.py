from __future__ import annotations

from flask import Blueprint

from app.studylinker.db import db_session
from app.studylinker.errors import success
from app.studylinker.modules.reviews import service
from app.studylinker.rbac import require_login
from app.studylinker.utils import current_auth_id, request_payload

bp = Blueprint("reviews", __name__)


@bp.post("/reviews")
@require_login
def reviews_create():
    s = db_session()
    review = service.create_review(s, request_payload(), current_auth_id())
    s.commit()
    return success(service.review_to_dict(review)), 201


@bp.get("/teachers/<teacher_id>/reviews")
def reviews_by_teacher(teacher_id: str):
    s = db_session()
    return success([service.review_to_dict(r) for r in service.get_reviews_by_teacher(s, teacher_id)])


@bp.get("/contracts/<contract_id>/reviews")
def reviews_by_contract(contract_id: str):
    s = db_session()
    return success([service.review_to_dict(r) for r in service.get_reviews_by_contract(s, contract_id)])
