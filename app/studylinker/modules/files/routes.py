from __future__ import annotations

import mimetypes

from flask import Blueprint, current_app, request, send_file

from app.studylinker.db import db_session
from app.studylinker.errors import NotFoundError, ValidationError, success
from app.studylinker.modules.files import service
from app.studylinker.rbac import require_login
from app.studylinker.storage import StorageError, storage_from_config
from app.studylinker.utils import current_auth_id, request_payload
from app.studylinker.validation import boolean

bp = Blueprint("files", __name__)


@bp.post("/files")
@require_login
def files_upload():
    f = request.files.get("file")
    if not f or not f.filename:
        raise ValidationError("No file provided")
    s = db_session()
    result = service.upload_file(
        s,
        storage_from_config(current_app.config),
        data=f.read(),
        filename=f.filename,
        content_type=f.mimetype,
        auth_id=current_auth_id(),
        bucket=request.form.get("bucket"),
        folder=request.form.get("folder"),
        is_document=boolean(request.form, "is_document"),
    )
    s.commit()
    return success(result), 201


@bp.delete("/files")
@require_login
def files_delete():
    payload = request_payload()
    s = db_session()
    service.delete_file(
        s,
        storage_from_config(current_app.config),
        path=payload.get("path") or "",
        auth_id=current_auth_id(),
        bucket=payload.get("bucket"),
    )
    s.commit()
    return success()


@bp.get("/files/raw/<path:key>")
def files_raw(key: str):
    """Serve objects from local storage (S3 objects are served by the bucket)."""
    storage = storage_from_config(current_app.config)
    try:
        if not storage.exists(key):
            raise NotFoundError("File")
    except StorageError as e:
        raise NotFoundError("File") from e
    mimetype = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return send_file(storage.open(key), mimetype=mimetype, max_age=0)
