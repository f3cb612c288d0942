from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.studylinker.models import Base, JSONType
from app.studylinker.modules.users.models import UserProfile
from app.studylinker.utils import new_id, utcnow


class TeacherApplication(Base):
    """
    Application to teach on the platform, reviewed by ADMIN/MANAGER staff.
    Status: PENDING -> UNDER_REVIEW -> INTERVIEW_SCHEDULED -> INTERVIEW_COMPLETED -> APPROVED/REJECTED
    """

    __tablename__ = "teacher_applications"
    __table_args__ = (
        Index("idx_teacher_applications_status", "status"),
        Index("idx_teacher_applications_user_created", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False)

    subjects: Mapped[list] = mapped_column(JSONType, nullable=False)
    levels: Mapped[list] = mapped_column(JSONType, nullable=False)
    qualifications: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    experience: Mapped[str | None] = mapped_column(Text, nullable=True)
    resume: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    certificates: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    cover_letter: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="PENDING")
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    interview_scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    interview_link: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    interview_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    interview_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_interview_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow)

    applicant: Mapped[UserProfile] = relationship(foreign_keys=[user_id], lazy="selectin")
    reviewer: Mapped[UserProfile | None] = relationship(foreign_keys=[reviewed_by], lazy="selectin")
