from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.studylinker.models import Base
from app.studylinker.modules.jobs.models import JobPosting
from app.studylinker.modules.teachers.models import TeacherProfile
from app.studylinker.utils import new_id, utcnow


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("job_id", "teacher_id", name="uq_applications_job_teacher"),
        Index("idx_applications_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    job_id: Mapped[str] = mapped_column(ForeignKey("job_postings.id", ondelete="CASCADE"), nullable=False, index=True)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teacher_profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    proposed_rate: Mapped[float | None] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=True)
    cover_letter: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")  # PENDING, ACCEPTED, REJECTED, WITHDRAWN

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow)

    job: Mapped[JobPosting] = relationship(lazy="selectin")
    teacher: Mapped[TeacherProfile] = relationship(lazy="selectin")
