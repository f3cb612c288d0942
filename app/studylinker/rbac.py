from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import TYPE_CHECKING, Any

from flask import g

from app.studylinker.constants import ROLE_PERMISSIONS
from app.studylinker.errors import ForbiddenError, UnauthorizedError

if TYPE_CHECKING:
    from app.studylinker.modules.users.models import UserProfile


def user_has_permission(profile: "UserProfile | None", permission_key: str) -> bool:
    if profile is None:
        return False
    return permission_key in ROLE_PERMISSIONS.get(profile.role, frozenset())


def ensure_permission(profile: "UserProfile | None", permission_key: str) -> None:
    """Raise ForbiddenError unless the profile's role grants the permission."""
    if not user_has_permission(profile, permission_key):
        g.missing_permission = permission_key
        raise ForbiddenError("You do not have permission to perform this action")


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if not getattr(g, "auth_id", None):
            raise UnauthorizedError()
        return fn(*args, **kwargs)

    return wrapped


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            # Unauthenticated -> 401, authenticated but unauthorized -> 403
            if not getattr(g, "auth_id", None):
                raise UnauthorizedError()
            ensure_permission(getattr(g, "current_profile", None), permission_key)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
