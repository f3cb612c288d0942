"""
Payload validation helpers.

Each helper reads one key from a JSON payload, appends human-readable
messages to ``errors`` and returns the cleaned value (or ``None``).
Service modules collect the messages and call ``raise_for(errors)``.
"""
from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from typing import Any
from urllib.parse import urlparse

from app.studylinker.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from app.studylinker.errors import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def raise_for(errors: list[str]) -> None:
    if errors:
        raise ValidationError(errors)


def has(payload: dict, key: str) -> bool:
    return key in payload and payload[key] is not None


def clean_text(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def is_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value))


def is_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def text(
    payload: dict,
    key: str,
    label: str,
    errors: list[str],
    *,
    required: bool = False,
    min_len: int | None = None,
    max_len: int | None = None,
) -> str | None:
    value = clean_text(payload.get(key))
    if value is None:
        if required:
            errors.append(f"{label} is required.")
        return None
    if min_len is not None and len(value) < min_len:
        errors.append(f"{label} must be at least {min_len} characters.")
    if max_len is not None and len(value) > max_len:
        errors.append(f"{label} must be at most {max_len} characters.")
    return value


def email(payload: dict, key: str, label: str, errors: list[str], *, required: bool = True) -> str | None:
    value = clean_text(payload.get(key))
    if value is None:
        if required:
            errors.append(f"{label} is required.")
        return None
    if not is_email(value):
        errors.append("Invalid email address")
        return None
    return value.lower()


def url(payload: dict, key: str, label: str, errors: list[str], *, required: bool = False) -> str | None:
    value = clean_text(payload.get(key))
    if value is None:
        if required:
            errors.append(f"{label} is required.")
        return None
    if not is_url(value):
        errors.append(f"{label} must be a valid URL.")
        return None
    return value


def number(
    payload: dict,
    key: str,
    label: str,
    errors: list[str],
    *,
    required: bool = False,
    integer: bool = False,
    positive: bool = False,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float | int | None:
    raw = payload.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        if required:
            errors.append(f"{label} is required.")
        return None
    if isinstance(raw, bool):
        errors.append(f"{label} must be a number.")
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        errors.append(f"{label} must be a number.")
        return None
    if math.isnan(value) or math.isinf(value):
        errors.append(f"{label} must be a number.")
        return None
    if integer:
        if not value.is_integer():
            errors.append(f"{label} must be a whole number.")
            return None
        value = int(value)
    if positive and value <= 0:
        errors.append(f"{label} must be positive.")
        return None
    if minimum is not None and value < minimum:
        errors.append(f"{label} must be at least {minimum:g}.")
        return None
    if maximum is not None and value > maximum:
        errors.append(f"{label} must be at most {maximum:g}.")
        return None
    return value


def boolean(payload: dict, key: str, default: bool = False) -> bool:
    raw = payload.get(key)
    if raw is None:
        return default
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    return bool(raw)


def choice(
    payload: dict,
    key: str,
    label: str,
    allowed: tuple[str, ...],
    errors: list[str],
    *,
    required: bool = False,
    default: str | None = None,
) -> str | None:
    value = clean_text(payload.get(key))
    if value is None:
        if required:
            errors.append(f"{label} is required.")
        return default
    value = value.upper()
    if value not in allowed:
        errors.append(f"Invalid {label.lower()}. Must be one of: {', '.join(allowed)}")
        return None
    return value


def string_list(
    payload: dict,
    key: str,
    label: str,
    errors: list[str],
    *,
    min_items: int = 0,
    urls: bool = False,
) -> list[str] | None:
    raw = payload.get(key)
    if raw is None:
        if min_items:
            errors.append(f"At least {min_items} {label.lower()} required.")
        return None
    if not isinstance(raw, list):
        errors.append(f"{label} must be a list.")
        return None
    items = [clean_text(v) for v in raw]
    if any(v is None for v in items):
        errors.append(f"{label} must not contain empty values.")
        return None
    if len(items) < min_items:
        errors.append(f"At least {min_items} {label.lower()} required.")
        return None
    if urls and not all(is_url(v) for v in items):  # type: ignore[arg-type]
        errors.append(f"{label} must be valid URLs.")
        return None
    return items  # type: ignore[return-value]


def mapping(payload: dict, key: str, label: str, errors: list[str]) -> dict | None:
    raw = payload.get(key)
    if raw is None:
        return None
    if not isinstance(raw, dict):
        errors.append(f"{label} must be an object.")
        return None
    return raw


def parse_datetime(value: Any) -> datetime | None:
    """
    Parse an ISO-8601 timestamp into naive UTC.
    Accepts a trailing ``Z`` and plain dates (midnight).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        raw = str(value).strip()
        if not raw:
            return None
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        dt = datetime.fromisoformat(raw)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def timestamp(payload: dict, key: str, label: str, errors: list[str], *, required: bool = False) -> datetime | None:
    raw = payload.get(key)
    try:
        value = parse_datetime(raw)
    except (TypeError, ValueError):
        errors.append(f"{label} must be a valid date/time.")
        return None
    if value is None and required:
        errors.append(f"{label} is required.")
    return value


def pagination(payload: dict, default_limit: int = DEFAULT_PAGE_LIMIT) -> tuple[int, int]:
    errors: list[str] = []
    page = number(payload, "page", "Page", errors, integer=True, positive=True)
    limit = number(payload, "limit", "Limit", errors, integer=True, positive=True, maximum=MAX_PAGE_LIMIT)
    raise_for(errors)
    return int(page or 1), int(limit or default_limit)


def pagination_meta(page: int, limit: int, total: int) -> dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }
