from datetime import datetime, date
from sqlalchemy import Integer, Text, DateTime, Date, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.db.base import Base


class Mood(str, enum.Enum):
    great = "great"
    good = "good"
    okay = "okay"
    low = "low"
    stressed = "stressed"


class DailyCheckIn(Base):
    """User's self-reported energy / stress / sleep / mood for one day (1–5 scales)."""

    __tablename__ = "daily_checkins"
    __table_args__ = (
        UniqueConstraint("user_id", "day", name="uq_checkin_user_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_profiles.id"), nullable=False, index=True
    )
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    energy_level: Mapped[int] = mapped_column(Integer, nullable=False)
    stress_level: Mapped[int] = mapped_column(Integer, nullable=False)
    sleep_quality: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mood: Mapped[str] = mapped_column(Enum(Mood, name="mood_enum"), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
