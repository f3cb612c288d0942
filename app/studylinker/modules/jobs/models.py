from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.studylinker.models import Base, JSONType
from app.studylinker.modules.users.models import ParentProfile
from app.studylinker.utils import new_id, utcnow


class JobPosting(Base):
    __tablename__ = "job_postings"
    __table_args__ = (
        Index("idx_job_postings_status", "status"),
        Index("idx_job_postings_subject_level", "subject", "level"),
        Index("idx_job_postings_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    parent_id: Mapped[str] = mapped_column(ForeignKey("parent_profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(128), nullable=False)
    level: Mapped[str] = mapped_column(String(128), nullable=False)
    student_age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_per_week: Mapped[str] = mapped_column(String(64), nullable=False)  # free text, e.g. "3-4"
    budget: Mapped[str] = mapped_column(String(128), nullable=False)  # free text, e.g. "$30/hr"
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    curriculum: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    application_mode: Mapped[str] = mapped_column(String(16), nullable=False, default="OPEN")  # OPEN, CURATED
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="OPEN")  # OPEN, CLOSED, FILLED, CANCELLED

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow)

    parent: Mapped[ParentProfile] = relationship(lazy="selectin")
