from __future__ import annotations

from flask import Blueprint

from app.studylinker.db import db_session
from app.studylinker.errors import success
from app.studylinker.modules.contracts import service
from app.studylinker.rbac import require_login
from app.studylinker.utils import current_auth_id, request_payload

bp = Blueprint("contracts", __name__)


@bp.post("/contracts")
@require_login
def contracts_create():
    s = db_session()
    contract = service.create_contract(s, request_payload(), current_auth_id())
    s.commit()
    return success(contract.to_dict()), 201


@bp.get("/contracts/<contract_id>")
@require_login
def contracts_get(contract_id: str):
    s = db_session()
    _, contract = service.require_contract_party(s, contract_id, current_auth_id())
    return success(service.contract_to_dict(contract))


@bp.patch("/contracts/<contract_id>")
@require_login
def contracts_update(contract_id: str):
    s = db_session()
    contract = service.update_contract(s, contract_id, request_payload(), current_auth_id())
    s.commit()
    return success(contract.to_dict())


@bp.get("/parents/<parent_id>/contracts")
@require_login
def contracts_by_parent(parent_id: str):
    s = db_session()
    return success([service.contract_to_dict(c) for c in service.get_contracts_by_parent(s, parent_id, current_auth_id())])


@bp.get("/teachers/<teacher_id>/contracts")
@require_login
def contracts_by_teacher(teacher_id: str):
    s = db_session()
    return success([service.contract_to_dict(c) for c in service.get_contracts_by_teacher(s, teacher_id, current_auth_id())])
