"""
Error taxonomy for server actions.

Service functions raise these; the handlers registered in ``create_app`` turn
them into the tagged result ``{"success": False, "error": ..., "code": ...}``.
"""
from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


class AppError(Exception):
    code = "APP_ERROR"
    status_code = 400

    def __init__(self, message: str, code: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str | list[str]):
        if isinstance(message, list):
            self.errors = list(message)
            message = "; ".join(message)
        else:
            self.errors = [message]
        super().__init__(message)


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class UnauthorizedError(AppError):
    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(AppError):
    code = "FORBIDDEN"
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class DatabaseError(AppError):
    code = "DATABASE_ERROR"
    status_code = 500


def handle_error(error: BaseException) -> dict[str, str]:
    if isinstance(error, AppError):
        return {"error": error.message, "code": error.code}
    logger.error("Unexpected error: %s", error)
    return {"error": str(error) or "An unexpected error occurred", "code": "UNKNOWN_ERROR"}


def failure(error: BaseException) -> dict[str, Any]:
    return {"success": False, **handle_error(error)}


def success(data: Any = None, **extra: Any) -> dict[str, Any]:
    result: dict[str, Any] = {"success": True}
    if data is not None or not extra:
        result["data"] = data
    result.update(extra)
    return result
