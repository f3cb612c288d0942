"""
Local sign-in for the identity that every server action is scoped to.

The session cookie stores the Account id (the identity subject). The
caller's UserProfile is resolved by ``UserProfile.auth_id``.
"""
from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, request, session
from sqlalchemy import select

from app.studylinker.audit import record_event
from app.studylinker.db import db_session
from app.studylinker.errors import AppError, UnauthorizedError, ValidationError, success
from app.studylinker.models import Account
from app.studylinker.security import ensure_csrf_token, hash_password, password_errors, verify_password
from app.studylinker.utils import utcnow
from app.studylinker.validation import is_email

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(utcnow())


def _identity_payload(account: Account) -> dict:
    return {"auth_id": account.id, "email": account.email, "csrf_token": ensure_csrf_token()}


def load_current_user() -> None:
    """
    Loads g.auth_id / g.current_account / g.current_profile from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    from app.studylinker.modules.users.models import UserProfile

    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.auth_id = None
    g.current_account = None
    g.current_profile = None

    auth_id = session.get("auth_id")
    if not auth_id:
        return

    s = db_session()
    account = s.get(Account, str(auth_id))
    if not account or not account.is_active:
        session.pop("auth_id", None)
        return
    g.auth_id = account.id
    g.current_account = account
    g.current_profile = s.execute(select(UserProfile).where(UserProfile.auth_id == account.id)).scalar_one_or_none()


@bp.get("/csrf")
def csrf_token():
    return success({"csrf_token": ensure_csrf_token()})


@bp.get("/me")
def me():
    account = getattr(g, "current_account", None)
    if account is None:
        raise UnauthorizedError()
    profile = getattr(g, "current_profile", None)
    data = _identity_payload(account)
    data["profile"] = profile.to_dict() if profile else None
    return success(data)


@bp.post("/signup")
def signup():
    payload = request.get_json(silent=True) or request.form.to_dict()
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    errors = []
    if not is_email(email):
        errors.append("Invalid email address")
    errors.extend(password_errors(password))
    if errors:
        raise ValidationError(errors)

    s = db_session()
    if s.execute(select(Account.id).where(Account.email == email)).first():
        raise ValidationError("An account with this email already exists")

    account = Account(email=email, password_hash=hash_password(password))
    s.add(account)
    s.flush()
    record_event(s, actor=None, action="auth.signup", entity_type="Account", entity_id=account.id, metadata={"email": email})
    s.commit()

    session["auth_id"] = account.id
    current_app.logger.info("Account created (auth_id=%s)", account.id)
    return success(_identity_payload(account)), 201


@bp.post("/login")
def login_post():
    payload = request.get_json(silent=True) or request.form.to_dict()
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        raise AppError("Too many login attempts. Please wait 5 minutes.", code="RATE_LIMITED", status_code=429)

    _record_attempt(ip)

    s = db_session()
    account = s.execute(select(Account).where(Account.email == email)).scalar_one_or_none()
    if not account or not account.is_active or not verify_password(account.password_hash, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="Account",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        s.commit()
        raise UnauthorizedError("Invalid credentials")

    from app.studylinker.modules.users.models import UserProfile

    profile = s.execute(select(UserProfile).where(UserProfile.auth_id == account.id)).scalar_one_or_none()
    session["auth_id"] = account.id
    _login_attempts[ip].clear()
    record_event(s, actor=profile, action="auth.login", entity_type="Account", entity_id=account.id)
    s.commit()
    return success(_identity_payload(account))


@bp.post("/logout")
def logout():
    s = db_session()
    auth_id = getattr(g, "auth_id", None)
    if auth_id:
        record_event(s, actor=g.get("current_profile"), action="auth.logout", entity_type="Account", entity_id=auth_id)
        s.commit()
    session.pop("auth_id", None)
    return success()
