"""
BrixMessage — coaching messages sent to a user.

Append-only: rows are never updated. The composer's daily cap is counted
per (user_id, context_trigger, calendar day of sent_at).
"""
from datetime import datetime
from sqlalchemy import Integer, String, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.db.base import Base
from app.models.behavior_profile import tone_enum


class MessageType(str, enum.Enum):
    motivation = "motivation"
    check_in = "check_in"
    celebration = "celebration"
    tip = "tip"


class BrixMessage(Base):
    __tablename__ = "brix_messages"
    __table_args__ = (
        Index("ix_brix_message_user_trigger_sent", "user_id", "context_trigger", "sent_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_profiles.id"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(String(500), nullable=False)
    message_type: Mapped[str] = mapped_column(
        Enum(MessageType, name="message_type_enum"), nullable=False
    )
    tone: Mapped[str] = mapped_column(tone_enum, nullable=False)
    context_trigger: Mapped[str] = mapped_column(String(100), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
