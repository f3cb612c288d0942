import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, request, session
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from app.studylinker import models  # noqa: F401  (registers every mapped table)
from app.studylinker.config import load_config
from app.studylinker.db import init_db, teardown_db_session
from app.studylinker.errors import AppError, failure
from app.studylinker.realtime import RealtimeBroker, install_change_capture
from app.studylinker.routes import bp as routes_bp
from app.studylinker.auth import bp as auth_bp, load_current_user
from app.studylinker.admin import bp as admin_bp
from app.studylinker.realtime import bp as realtime_bp
from app.studylinker.modules.users.routes import bp as users_bp
from app.studylinker.modules.teachers.routes import bp as teachers_bp
from app.studylinker.modules.students.routes import bp as students_bp
from app.studylinker.modules.jobs.routes import bp as jobs_bp
from app.studylinker.modules.applications.routes import bp as applications_bp
from app.studylinker.modules.contracts.routes import bp as contracts_bp
from app.studylinker.modules.classes.routes import bp as classes_bp
from app.studylinker.modules.reviews.routes import bp as reviews_bp
from app.studylinker.modules.messages.routes import bp as messages_bp
from app.studylinker.modules.payments.routes import bp as payments_bp
from app.studylinker.modules.teacher_applications.routes import bp as teacher_applications_bp
from app.studylinker.modules.teacher_applications.admin import bp as teacher_applications_admin_bp
from app.studylinker.modules.contacts.routes import bp as contacts_bp
from app.studylinker.modules.files.routes import bp as files_bp

_UNGUARDED_PREFIXES = ("/health", "/healthz")


def create_app(overrides: dict | None = None) -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates")
    app.config.from_mapping(load_config())
    if overrides:
        app.config.update(overrides)
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    # CSRF protection (minimal)
    from app.studylinker.security import ensure_csrf_token, validate_csrf

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if not app.config.get("CSRF_ENABLED", True):
            return None
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # signup/login/logout issue the token themselves
            if (request.endpoint or "").startswith("auth."):
                return None
            if not validate_csrf(request):
                return failure(AppError("CSRF token missing or invalid.", code="CSRF_FAILED")), 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    session_factory = init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    broker = RealtimeBroker(max_subscribers=app.config.get("REALTIME_MAX_SUBSCRIBERS") or None)
    app.extensions["realtime_broker"] = broker
    install_change_capture(session_factory, broker)

    # Storage health check (fail loudly on misconfiguration)
    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))
        else:
            from botocore.exceptions import BotoCoreError, ClientError

            from app.studylinker.storage import S3Storage, storage_from_config

            storage = storage_from_config(app.config)
            try:
                if isinstance(storage, S3Storage):
                    storage.check_bucket()
                    app.logger.info("Storage health check PASSED: S3 bucket '%s' accessible", storage.bucket)
            except (BotoCoreError, ClientError) as e:
                app.logger.error("STORAGE CONFIG ERROR: Cannot access S3 bucket: %s", e)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(realtime_bp)
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(teacher_applications_admin_bp, url_prefix="/api/admin")
    for feature_bp in (
        users_bp,
        teachers_bp,
        students_bp,
        jobs_bp,
        applications_bp,
        contracts_bp,
        classes_bp,
        reviews_bp,
        messages_bp,
        payments_bp,
        teacher_applications_bp,
        contacts_bp,
        files_bp,
    ):
        app.register_blueprint(feature_bp, url_prefix="/api")

    def _load_user_wrapper():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            g.auth_id = None
            return None
        return load_current_user()

    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(AppError)
    def _err_app(e: AppError):  # type: ignore[no-redef]
        if e.status_code == 403:
            missing = getattr(g, "missing_permission", None)
            if missing:
                app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        return failure(e), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def _err_db(e: SQLAlchemyError):  # type: ignore[no-redef]
        s = g.pop("db_session", None)
        if s is not None:
            s.rollback()
            s.close()
        app.logger.exception("Database error (request_id=%s)", getattr(g, "request_id", None))
        return {"success": False, "error": "A database error occurred", "code": "DATABASE_ERROR"}, 500

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        code = (e.name or "HTTP_ERROR").upper().replace(" ", "_")
        return {"success": False, "error": e.description or e.name, "code": code}, e.code or 500

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        # Ensure stack trace shows in logs.
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return {"success": False, "error": "An unexpected error occurred", "code": "UNKNOWN_ERROR"}, 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
