import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    storage_backend: str
    storage_public_base_url: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    email_provider: str
    email_from: str
    resend_api_key: str
    sendgrid_api_key: str
    smtp_server: str
    smtp_port: str
    smtp_username: str
    smtp_password: str

    google_service_account_email: str
    google_service_account_private_key: str
    google_project_id: str

    gemini_api_key: str
    gemini_model: str

    realtime_keepalive_seconds: int
    realtime_max_subscribers: int
    csrf_enabled: bool


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///studylinker.db"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        storage_public_base_url=_getenv("STORAGE_PUBLIC_BASE_URL", ""),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        email_provider=_getenv("EMAIL_PROVIDER", "resend").lower(),
        email_from=_getenv("EMAIL_FROM", "StudyLinker <noreply@studylinker.academy>"),
        resend_api_key=_getenv("RESEND_API_KEY", ""),
        sendgrid_api_key=_getenv("SENDGRID_API_KEY", ""),
        smtp_server=_getenv("SMTP_SERVER", ""),
        smtp_port=_getenv("SMTP_PORT", "587"),
        smtp_username=_getenv("SMTP_USERNAME", ""),
        smtp_password=_getenv("SMTP_PASSWORD", ""),
        google_service_account_email=_getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL", ""),
        # Keys pasted into env files usually carry literal "\n" sequences.
        google_service_account_private_key=_getenv("GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY", "").replace("\\n", "\n"),
        google_project_id=_getenv("GOOGLE_PROJECT_ID", ""),
        gemini_api_key=_getenv("GEMINI_API_KEY", ""),
        gemini_model=_getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        realtime_keepalive_seconds=_getenv_int("REALTIME_KEEPALIVE_SECONDS", 30),
        realtime_max_subscribers=_getenv_int("REALTIME_MAX_SUBSCRIBERS", 24),
        csrf_enabled=_getenv("CSRF_ENABLED", "1") not in ("0", "false", "no"),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "STORAGE_PUBLIC_BASE_URL": s.storage_public_base_url,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "EMAIL_PROVIDER": s.email_provider,
        "EMAIL_FROM": s.email_from,
        "RESEND_API_KEY": s.resend_api_key,
        "SENDGRID_API_KEY": s.sendgrid_api_key,
        "SMTP_SERVER": s.smtp_server,
        "SMTP_PORT": s.smtp_port,
        "SMTP_USERNAME": s.smtp_username,
        "SMTP_PASSWORD": s.smtp_password,
        "GOOGLE_SERVICE_ACCOUNT_EMAIL": s.google_service_account_email,
        "GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY": s.google_service_account_private_key,
        "GOOGLE_PROJECT_ID": s.google_project_id,
        "GEMINI_API_KEY": s.gemini_api_key,
        "GEMINI_MODEL": s.gemini_model,
        "REALTIME_KEEPALIVE_SECONDS": s.realtime_keepalive_seconds,
        "REALTIME_MAX_SUBSCRIBERS": s.realtime_max_subscribers,
        "CSRF_ENABLED": s.csrf_enabled,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # uploads are capped per file type in the files module (10MB max)
        "MAX_CONTENT_LENGTH": 12 * 1024 * 1024,
    }
