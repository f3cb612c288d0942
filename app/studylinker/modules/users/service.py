from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_, select

from app.studylinker import validation as v
from app.studylinker.audit import record_event
from app.studylinker.constants import DEFAULT_CURRENCY, ROLE_PARENT, ROLE_TEACHER, SELF_SERVICE_ROLES, USER_ROLES
from app.studylinker.errors import ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from app.studylinker.modules.users.models import ParentProfile, UserProfile

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def user_summary(profile: UserProfile | None) -> dict[str, Any] | None:
    if profile is None:
        return None
    return {
        "id": profile.id,
        "first_name": profile.first_name,
        "last_name": profile.last_name,
        "email": profile.email,
        "avatar": profile.avatar,
    }


def find_profile_by_auth_id(s: "Session", auth_id: str) -> UserProfile | None:
    return s.execute(select(UserProfile).where(UserProfile.auth_id == auth_id)).scalar_one_or_none()


def require_caller(s: "Session", auth_id: str | None) -> UserProfile:
    """UserProfile of the signed-in identity; UNAUTHORIZED when signed out."""
    if not auth_id:
        raise UnauthorizedError()
    profile = find_profile_by_auth_id(s, auth_id)
    if profile is None:
        raise NotFoundError("User")
    return profile


def require_parent_caller(s: "Session", auth_id: str | None, parent_id: str) -> tuple[UserProfile, ParentProfile]:
    """Caller plus the ParentProfile ``parent_id``, which the caller must own."""
    caller = require_caller(s, auth_id)
    parent = s.get(ParentProfile, parent_id)
    if parent is None:
        raise NotFoundError("Parent profile")
    if parent.user_id != caller.id:
        raise ForbiddenError("You can only act on your own parent profile")
    return caller, parent


def validate_user_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors: list[str] = []
    if not partial:
        v.text(payload, "auth_id", "Auth ID", errors, required=True)
        v.email(payload, "email", "Email", errors)
    v.text(payload, "first_name", "First name", errors, max_len=128)
    v.text(payload, "last_name", "Last name", errors, max_len=128)
    v.url(payload, "avatar", "Avatar", errors)
    v.choice(payload, "role", "Role", SELF_SERVICE_ROLES, errors)
    return errors


def create_user_profile(s: "Session", payload: dict) -> UserProfile:
    v.raise_for(validate_user_payload(payload))
    auth_id = v.clean_text(payload.get("auth_id"))
    if find_profile_by_auth_id(s, auth_id):  # type: ignore[arg-type]
        raise ValidationError("A user profile already exists for this account")

    profile = UserProfile(
        auth_id=auth_id,
        email=v.clean_text(payload.get("email")).lower(),  # type: ignore[union-attr]
        first_name=v.clean_text(payload.get("first_name")),
        last_name=v.clean_text(payload.get("last_name")),
        avatar=v.clean_text(payload.get("avatar")),
        role=(v.clean_text(payload.get("role")) or ROLE_PARENT).upper(),
    )
    s.add(profile)
    s.flush()

    record_event(
        s,
        actor=profile,
        action="user_profile.create",
        entity_type="UserProfile",
        entity_id=profile.id,
        metadata={"role": profile.role},
    )
    return profile


def get_user_profile(s: "Session", profile_id: str) -> UserProfile:
    profile = s.get(UserProfile, profile_id)
    if profile is None:
        raise NotFoundError("User")
    return profile


def get_user_profile_by_auth_id(s: "Session", auth_id: str) -> UserProfile:
    profile = find_profile_by_auth_id(s, auth_id)
    if profile is None:
        raise NotFoundError("User")
    return profile


def get_current_user_profile(s: "Session", auth_id: str | None) -> UserProfile:
    return require_caller(s, auth_id)


def _require_own_profile(s: "Session", auth_id: str | None, profile_id: str) -> UserProfile:
    caller = require_caller(s, auth_id)
    profile = get_user_profile(s, profile_id)
    if profile.id != caller.id:
        raise ForbiddenError("You can only modify your own profile")
    return profile


def update_user_profile(s: "Session", profile_id: str, payload: dict, auth_id: str | None) -> UserProfile:
    v.raise_for(validate_user_payload(payload, partial=True))
    profile = _require_own_profile(s, auth_id, profile_id)

    changes: dict[str, Any] = {}
    for key in ("first_name", "last_name", "avatar"):
        if key in payload:
            new = v.clean_text(payload.get(key))
            if new != getattr(profile, key):
                changes[key] = {"old": getattr(profile, key), "new": new}
                setattr(profile, key, new)
    if v.has(payload, "role"):
        new_role = v.clean_text(payload.get("role")).upper()  # type: ignore[union-attr]
        if new_role != profile.role:
            changes["role"] = {"old": profile.role, "new": new_role}
            profile.role = new_role

    record_event(
        s,
        actor=profile,
        action="user_profile.edit",
        entity_type="UserProfile",
        entity_id=profile.id,
        metadata={"changes": changes},
    )
    return profile


def delete_user_profile(s: "Session", profile_id: str, auth_id: str | None) -> None:
    profile = _require_own_profile(s, auth_id, profile_id)
    record_event(s, actor=profile, action="user_profile.delete", entity_type="UserProfile", entity_id=profile.id)
    s.delete(profile)
    s.flush()


def onboard(s: "Session", payload: dict, auth_id: str | None, default_email: str | None = None) -> dict[str, Any]:
    """
    Create the caller's UserProfile and the ParentProfile or TeacherProfile for the chosen role.
    """
    from app.studylinker.modules.teachers.models import TeacherProfile

    if not auth_id:
        raise UnauthorizedError()
    role = (v.clean_text(payload.get("role")) or "").upper()
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError("Invalid role. Must be PARENT or TEACHER")

    profile = create_user_profile(
        s,
        {
            "auth_id": auth_id,
            "email": v.clean_text(payload.get("email")) or default_email,
            "first_name": payload.get("first_name"),
            "last_name": payload.get("last_name"),
            "avatar": payload.get("avatar"),
            "role": role,
        },
    )
    if role == ROLE_PARENT:
        role_profile: Any = ParentProfile(user_id=profile.id)
    else:
        role_profile = TeacherProfile(user_id=profile.id, currency=DEFAULT_CURRENCY)
    s.add(role_profile)
    s.flush()

    record_event(
        s,
        actor=profile,
        action="user.onboard",
        entity_type=type(role_profile).__name__,
        entity_id=role_profile.id,
        metadata={"role": role},
    )
    return {"role": role, "user": profile, "profile": role_profile}


# ---------- Parent profiles ----------


def create_parent_profile(s: "Session", user_id: str, auth_id: str | None) -> ParentProfile:
    caller = require_caller(s, auth_id)
    if caller.id != user_id:
        raise ForbiddenError("You can only create a parent profile for yourself")
    existing = s.execute(select(ParentProfile).where(ParentProfile.user_id == user_id)).scalar_one_or_none()
    if existing is not None:
        return existing
    parent = ParentProfile(user_id=user_id)
    s.add(parent)
    s.flush()
    record_event(s, actor=caller, action="parent_profile.create", entity_type="ParentProfile", entity_id=parent.id)
    return parent


def get_parent_profile_by_user_id(s: "Session", user_id: str) -> ParentProfile:
    parent = s.execute(select(ParentProfile).where(ParentProfile.user_id == user_id)).scalar_one_or_none()
    if parent is None:
        raise NotFoundError("Parent profile")
    return parent


def get_current_parent_profile(s: "Session", auth_id: str | None) -> ParentProfile:
    caller = require_caller(s, auth_id)
    return get_parent_profile_by_user_id(s, caller.id)


def parent_to_dict(parent: ParentProfile) -> dict[str, Any]:
    data = parent.to_dict()
    data["user"] = user_summary(parent.user)
    return data


def list_users(s: "Session", filters: dict) -> tuple[list[UserProfile], dict[str, int]]:
    """Staff user directory: optional ``role`` and ``search`` (email or name, contains)."""
    errors: list[str] = []
    role = v.choice(filters, "role", "Role", USER_ROLES, errors)
    search = v.text(filters, "search", "Search", errors, max_len=255)
    v.raise_for(errors)
    page, limit = v.pagination(filters)

    stmt = select(UserProfile)
    if role:
        stmt = stmt.where(UserProfile.role == role)
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(UserProfile.email).like(pattern),
                func.lower(UserProfile.first_name).like(pattern),
                func.lower(UserProfile.last_name).like(pattern),
            )
        )
    total = s.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    rows = s.execute(stmt.order_by(UserProfile.created_at.desc()).offset((page - 1) * limit).limit(limit)).scalars().all()
    return list(rows), v.pagination_meta(page, limit, total)


def update_user_as_staff(s: "Session", profile_id: str, payload: dict, actor: UserProfile) -> UserProfile:
    errors: list[str] = []
    v.text(payload, "first_name", "First name", errors, max_len=128)
    v.text(payload, "last_name", "Last name", errors, max_len=128)
    role = v.choice(payload, "role", "Role", USER_ROLES, errors)
    v.raise_for(errors)

    profile = get_user_profile(s, profile_id)
    if role and role != profile.role and profile.id == actor.id:
        raise ForbiddenError("You cannot change your own role")

    changes: dict[str, Any] = {}
    for key in ("first_name", "last_name"):
        if key in payload:
            new = v.clean_text(payload.get(key))
            if new != getattr(profile, key):
                changes[key] = {"old": getattr(profile, key), "new": new}
                setattr(profile, key, new)
    if role and role != profile.role:
        changes["role"] = {"old": profile.role, "new": role}
        profile.role = role

    record_event(
        s,
        actor=actor,
        action="user_profile.admin_edit",
        entity_type="UserProfile",
        entity_id=profile.id,
        metadata={"email": profile.email, "changes": changes},
    )
    return profile
