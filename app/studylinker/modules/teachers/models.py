from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.studylinker.models import Base, JSONType
from app.studylinker.modules.users.models import UserProfile
from app.studylinker.utils import new_id, utcnow


class TeacherProfile(Base):
    __tablename__ = "teacher_profiles"
    __table_args__ = (
        Index("idx_teacher_profiles_rating", "rating"),
        Index("idx_teacher_profiles_verified", "verified"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, unique=True)

    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    languages: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    hourly_rate: Mapped[float | None] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=True)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")

    # Derived from reviews; see reviews.service.recompute_teacher_rating
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_students: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    badge: Mapped[str | None] = mapped_column(String(64), nullable=True)
    availability: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow)

    user: Mapped[UserProfile] = relationship(back_populates="teacher_profile", lazy="selectin")
    qualifications: Mapped[list["Qualification"]] = relationship(
        back_populates="teacher",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )
    subjects: Mapped[list["TeacherSubject"]] = relationship(
        back_populates="teacher",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )
    levels: Mapped[list["TeacherLevel"]] = relationship(
        back_populates="teacher",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )


class Qualification(Base):
    __tablename__ = "qualifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teacher_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    institution: Mapped[str | None] = mapped_column(String(255), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    certificate: Mapped[str | None] = mapped_column(String(1024), nullable=True)  # URL or storage path

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow)

    teacher: Mapped[TeacherProfile] = relationship(back_populates="qualifications", lazy="selectin")


class TeacherSubject(Base):
    __tablename__ = "teacher_subjects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teacher_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    subject: Mapped[str] = mapped_column(String(128), nullable=False)
    experience: Mapped[int | None] = mapped_column(Integer, nullable=True)  # years

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow)

    teacher: Mapped[TeacherProfile] = relationship(back_populates="subjects", lazy="selectin")


class TeacherLevel(Base):
    __tablename__ = "teacher_levels"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teacher_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    level: Mapped[str] = mapped_column(String(128), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow)

    teacher: Mapped[TeacherProfile] = relationship(back_populates="levels", lazy="selectin")
