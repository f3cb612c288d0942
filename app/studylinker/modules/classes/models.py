from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.studylinker.models import Base
from app.studylinker.modules.contracts.models import Contract
from app.studylinker.modules.students.models import Student
from app.studylinker.modules.teachers.models import TeacherProfile
from app.studylinker.utils import new_id, utcnow


class Class(Base):
    __tablename__ = "classes"
    __table_args__ = (
        Index("idx_classes_teacher_scheduled", "teacher_id", "scheduled_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    contract_id: Mapped[str] = mapped_column(ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teacher_profiles.id", ondelete="CASCADE"), nullable=False)
    student_id: Mapped[str] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="SCHEDULED")
    meeting_link: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow)

    contract: Mapped[Contract] = relationship(lazy="selectin")
    teacher: Mapped[TeacherProfile] = relationship(lazy="selectin")
    student: Mapped[Student] = relationship(lazy="selectin")
