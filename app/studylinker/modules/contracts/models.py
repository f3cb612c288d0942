from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.studylinker.models import Base, JSONType
from app.studylinker.modules.jobs.models import JobPosting
from app.studylinker.modules.students.models import Student
from app.studylinker.modules.teachers.models import TeacherProfile
from app.studylinker.modules.users.models import ParentProfile
from app.studylinker.utils import new_id, utcnow


class Contract(Base):
    __tablename__ = "contracts"
    __table_args__ = (
        Index("idx_contracts_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    parent_id: Mapped[str] = mapped_column(ForeignKey("parent_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teacher_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    job_id: Mapped[str | None] = mapped_column(ForeignKey("job_postings.id", ondelete="SET NULL"), nullable=True)

    subject: Mapped[str] = mapped_column(String(128), nullable=False)
    level: Mapped[str] = mapped_column(String(128), nullable=False)
    rate: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    hours_per_week: Mapped[str] = mapped_column(String(64), nullable=False)
    schedule: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    curriculum: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="ACTIVE")  # ACTIVE, PAUSED, COMPLETED, CANCELLED
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow)

    parent: Mapped[ParentProfile] = relationship(lazy="selectin")
    teacher: Mapped[TeacherProfile] = relationship(lazy="selectin")
    student: Mapped[Student] = relationship(lazy="selectin")
    job: Mapped[JobPosting | None] = relationship(lazy="select")
