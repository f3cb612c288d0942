from __future__ import annotations

from flask import Blueprint

from app.studylinker.db import db_session
from app.studylinker.errors import success
from app.studylinker.modules.contracts.service import require_contract_party
from app.studylinker.modules.payments import service
from app.studylinker.rbac import require_login
from app.studylinker.utils import current_auth_id, request_payload

bp = Blueprint("payments", __name__)


@bp.post("/payments")
@require_login
def payments_create():
    s = db_session()
    payment = service.create_payment(s, request_payload(), current_auth_id())
    s.commit()
    return success(payment.to_dict()), 201


@bp.get("/payments/<payment_id>")
@require_login
def payments_get(payment_id: str):
    s = db_session()
    payment = service.get_payment(s, payment_id)
    require_contract_party(s, payment.contract_id, current_auth_id())
    return success(service.payment_to_dict(payment))


@bp.patch("/payments/<payment_id>")
@require_login
def payments_update(payment_id: str):
    s = db_session()
    payment = service.update_payment(s, payment_id, request_payload(), current_auth_id())
    s.commit()
    return success(payment.to_dict())


@bp.get("/contracts/<contract_id>/payments")
@require_login
def payments_by_contract(contract_id: str):
    s = db_session()
    return success([service.payment_to_dict(p) for p in service.get_payments_by_contract(s, contract_id, current_auth_id())])


@bp.get("/parents/<parent_id>/payments")
@require_login
def payments_by_parent(parent_id: str):
    s = db_session()
    return success([service.payment_to_dict(p) for p in service.get_payments_by_parent(s, parent_id, current_auth_id())])
