"""
Credential hashing and the session-bound CSRF token.
"""
from __future__ import annotations

import secrets

from flask import Request, session
from werkzeug.security import check_password_hash, generate_password_hash

MIN_PASSWORD_LENGTH = 8
CSRF_SESSION_KEY = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"


def password_errors(password: str) -> list[str]:
    if len(password) < MIN_PASSWORD_LENGTH:
        return [f"Password must be at least {MIN_PASSWORD_LENGTH} characters."]
    return []


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str | None, password: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def ensure_csrf_token() -> str:
    """Token stored in the signed session; issued on first use."""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


def _submitted_csrf_token(req: Request) -> str | None:
    token = req.headers.get(CSRF_HEADER) or req.form.get(CSRF_SESSION_KEY)
    if token or not req.is_json:
        return token
    body = req.get_json(silent=True)
    return body.get(CSRF_SESSION_KEY) if isinstance(body, dict) else None


def validate_csrf(req: Request) -> bool:
    submitted = _submitted_csrf_token(req)
    expected = session.get(CSRF_SESSION_KEY)
    if not submitted or not expected:
        return False
    return secrets.compare_digest(str(submitted), str(expected))
