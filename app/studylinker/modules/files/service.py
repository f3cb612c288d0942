"""
Uploads for avatars, teacher photos, resumes and certificates.

Objects live under ``<bucket>/`` in the configured storage backend. The key
inside the bucket is ``[folder/]<auth_id>/<millis>-<random>.<ext>`` so
ownership can be checked from the key alone.
"""
from __future__ import annotations

import logging
import re
import secrets
import time
from typing import TYPE_CHECKING, Any

from app.studylinker.audit import record_event
from app.studylinker.constants import (
    DEFAULT_UPLOAD_BUCKET,
    DOCUMENT_CONTENT_TYPES,
    DOCUMENT_EXTENSIONS,
    IMAGE_CONTENT_TYPES,
    IMAGE_EXTENSIONS,
    MAX_DOCUMENT_BYTES,
    MAX_IMAGE_BYTES,
)
from app.studylinker.errors import ForbiddenError, UnauthorizedError, ValidationError
from app.studylinker.modules.users.service import find_profile_by_auth_id
from app.studylinker.storage import Storage, object_key

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def _check_segments(value: str, label: str) -> str:
    value = value.strip().strip("/")
    if not value or not all(_SEGMENT_RE.match(part) for part in value.split("/")):
        raise ValidationError(f"Invalid {label}")
    return value


def _extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def validate_upload(filename: str, content_type: str | None, size: int, *, is_document: bool) -> str:
    """Return the lower-cased extension or raise ValidationError."""
    ext = _extension(filename or "")
    content_type = (content_type or "").split(";")[0].strip().lower()
    if is_document:
        if ext not in DOCUMENT_EXTENSIONS or (content_type and content_type not in DOCUMENT_CONTENT_TYPES):
            raise ValidationError("Invalid file type. Only PDF, DOC, DOCX and TXT files are allowed.")
        if size > MAX_DOCUMENT_BYTES:
            raise ValidationError("File size must be less than 10MB")
    else:
        if ext not in IMAGE_EXTENSIONS or (content_type and content_type not in IMAGE_CONTENT_TYPES):
            raise ValidationError("Invalid file type. Only JPEG, PNG and WebP images are allowed.")
        if size > MAX_IMAGE_BYTES:
            raise ValidationError("File size must be less than 5MB")
    if size == 0:
        raise ValidationError("File is empty")
    return ext


def build_object_path(auth_id: str, ext: str, folder: str | None = None) -> str:
    name = f"{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"
    parts = [folder] if folder else []
    parts += [auth_id, name]
    return "/".join(parts)


def is_owned_path(path: str, auth_id: str) -> bool:
    parts = path.split("/")
    if len(parts) == 2:
        return parts[0] == auth_id
    # folder may itself be nested; the owner is the segment before the file name
    return len(parts) > 2 and parts[-2] == auth_id


def upload_file(
    s: "Session",
    storage: Storage,
    *,
    data: bytes,
    filename: str,
    content_type: str | None,
    auth_id: str | None,
    bucket: str | None = None,
    folder: str | None = None,
    is_document: bool = False,
) -> dict[str, Any]:
    if not auth_id:
        raise UnauthorizedError()
    bucket = _check_segments(bucket or DEFAULT_UPLOAD_BUCKET, "bucket")
    folder = _check_segments(folder, "folder") if folder else None
    ext = validate_upload(filename, content_type, len(data), is_document=is_document)

    path = build_object_path(auth_id, ext, folder)
    key = object_key(bucket, path)
    storage.put_bytes(key, data, content_type=content_type)
    logger.info("Uploaded %s (%d bytes)", key, len(data))

    record_event(
        s,
        actor=find_profile_by_auth_id(s, auth_id),
        action="file.upload",
        entity_type="File",
        entity_id=key,
        metadata={"bucket": bucket, "size": len(data), "content_type": content_type},
    )
    return {"url": storage.public_url(key), "path": path}


def delete_file(s: "Session", storage: Storage, *, path: str, auth_id: str | None, bucket: str | None = None) -> None:
    if not auth_id:
        raise UnauthorizedError()
    bucket = _check_segments(bucket or DEFAULT_UPLOAD_BUCKET, "bucket")
    path = (path or "").strip().lstrip("/")
    if not path:
        raise ValidationError("Path is required")
    if ".." in path.split("/") or not is_owned_path(path, auth_id):
        raise ForbiddenError("You can only delete your own files")

    key = object_key(bucket, path)
    storage.delete(key)
    record_event(
        s,
        actor=find_profile_by_auth_id(s, auth_id),
        action="file.delete",
        entity_type="File",
        entity_id=key,
    )
