from __future__ import annotations

from flask import Blueprint, g

from app.studylinker.db import db_session
from app.studylinker.errors import ForbiddenError, success
from app.studylinker.modules.users import service
from app.studylinker.rbac import require_login
from app.studylinker.utils import current_auth_id, request_payload

bp = Blueprint("users", __name__)


# ---------- User profiles ----------
@bp.post("/users")
@require_login
def users_create():
    s = db_session()
    payload = request_payload()
    payload.setdefault("auth_id", current_auth_id())
    if payload["auth_id"] != current_auth_id():
        raise ForbiddenError("You can only create a profile for your own account")
    profile = service.create_user_profile(s, payload)
    s.commit()
    return success(profile.to_dict()), 201


@bp.get("/users/me")
@require_login
def users_me():
    s = db_session()
    return success(service.get_current_user_profile(s, current_auth_id()).to_dict())


@bp.get("/users/<profile_id>")
@require_login
def users_get(profile_id: str):
    s = db_session()
    return success(service.get_user_profile(s, profile_id).to_dict())


@bp.get("/users/by-auth/<auth_id>")
@require_login
def users_get_by_auth(auth_id: str):
    s = db_session()
    return success(service.get_user_profile_by_auth_id(s, auth_id).to_dict())


@bp.patch("/users/<profile_id>")
@require_login
def users_update(profile_id: str):
    s = db_session()
    profile = service.update_user_profile(s, profile_id, request_payload(), current_auth_id())
    s.commit()
    return success(profile.to_dict())


@bp.delete("/users/<profile_id>")
@require_login
def users_delete(profile_id: str):
    s = db_session()
    service.delete_user_profile(s, profile_id, current_auth_id())
    s.commit()
    return success()


@bp.post("/onboarding")
@require_login
def onboarding():
    s = db_session()
    account = getattr(g, "current_account", None)
    result = service.onboard(s, request_payload(), current_auth_id(), default_email=account.email if account else None)
    s.commit()
    return success(
        {"user": result["user"].to_dict(), "profile": result["profile"].to_dict()},
        role=result["role"],
        message=f"{result['role']} profile created successfully",
    ), 201


# ---------- Parent profiles ----------
@bp.post("/parents")
@require_login
def parents_create():
    s = db_session()
    payload = request_payload()
    parent = service.create_parent_profile(s, str(payload.get("user_id") or ""), current_auth_id())
    s.commit()
    return success(service.parent_to_dict(parent)), 201


@bp.get("/parents/me")
@require_login
def parents_me():
    s = db_session()
    return success(service.parent_to_dict(service.get_current_parent_profile(s, current_auth_id())))


@bp.get("/parents/by-user/<user_id>")
@require_login
def parents_by_user(user_id: str):
    s = db_session()
    return success(service.parent_to_dict(service.get_parent_profile_by_user_id(s, user_id)))
