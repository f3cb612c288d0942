from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.studylinker.utils import new_id, utcnow

# JSONB on Postgres, plain JSON elsewhere (tests run on SQLite).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    def to_dict(self, exclude: tuple[str, ...] = ()) -> dict[str, Any]:
        """Column values keyed by attribute name; dates become ISO strings."""
        out: dict[str, Any] = {}
        for col in self.__table__.columns:
            if col.key in exclude:
                continue
            value = getattr(self, col.key)
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            out[col.key] = value
        return out


class Account(Base):
    """
    Local sign-in identity. ``id`` is the identity subject stored on
    UserProfile.auth_id.
    """

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)


class AuditEvent(Base):
    """
    Append-only audit trail event.
    Keep this table intentionally generic; module tables are referenced by entity_type/entity_id.
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # No FK: audit rows outlive deleted profiles.
    actor_profile_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    actor_email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "job.create"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "JobPosting"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.studylinker.modules.users.models import ParentProfile, UserProfile  # noqa: E402,F401
from app.studylinker.modules.teachers.models import (  # noqa: E402,F401
    Qualification,
    TeacherLevel,
    TeacherProfile,
    TeacherSubject,
)
from app.studylinker.modules.students.models import Student  # noqa: E402,F401
from app.studylinker.modules.jobs.models import JobPosting  # noqa: E402,F401
from app.studylinker.modules.applications.models import Application  # noqa: E402,F401
from app.studylinker.modules.contracts.models import Contract  # noqa: E402,F401
from app.studylinker.modules.classes.models import Class  # noqa: E402,F401
from app.studylinker.modules.reviews.models import Review  # noqa: E402,F401
from app.studylinker.modules.messages.models import Message  # noqa: E402,F401
from app.studylinker.modules.payments.models import Payment  # noqa: E402,F401
from app.studylinker.modules.teacher_applications.models import TeacherApplication  # noqa: E402,F401
from app.studylinker.modules.contacts.models import Contact  # noqa: E402,F401
