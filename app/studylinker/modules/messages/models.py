from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.studylinker.models import Base
from app.studylinker.modules.users.models import UserProfile
from app.studylinker.utils import new_id, utcnow


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        Index("idx_messages_sender_receiver", "sender_id", "receiver_id"),
        Index("idx_messages_receiver_read", "receiver_id", "read"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    sender_id: Mapped[str] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False)
    receiver_id: Mapped[str] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False)
    contract_id: Mapped[str | None] = mapped_column(ForeignKey("contracts.id", ondelete="SET NULL"), nullable=True)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow)

    sender: Mapped[UserProfile] = relationship(foreign_keys=[sender_id], lazy="selectin")
    receiver: Mapped[UserProfile] = relationship(foreign_keys=[receiver_id], lazy="selectin")
