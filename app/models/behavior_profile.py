"""
BehaviorProfile — one row per user holding the derived engagement signals
and the current coaching tone.

Signal columns are written only by the behavior scorer; `current_tone` and
`last_tone_change` only by the tone selector.
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Float, DateTime, Date, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.db.base import Base


class Tone(str, enum.Enum):
    neutral = "neutral"
    encouraging = "encouraging"
    challenging = "challenging"
    empathetic = "empathetic"
    celebratory = "celebratory"


class MomentumTrend(str, enum.Enum):
    improving = "improving"
    stable = "stable"
    declining = "declining"


class TimeOfDay(str, enum.Enum):
    morning = "morning"
    afternoon = "afternoon"
    evening = "evening"


tone_enum = Enum(Tone, name="tone_enum")
time_of_day_enum = Enum(TimeOfDay, name="time_of_day_enum")


class BehaviorProfile(Base):
    __tablename__ = "behavior_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_profiles.id"), nullable=False, unique=True, index=True
    )

    # --- tone (tone selector) ---
    current_tone: Mapped[str] = mapped_column(
        tone_enum, nullable=False, default=Tone.neutral
    )
    last_tone_change: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # --- streak counters (brick ledger output, written with the signals) ---
    consecutive_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_bricks_laid: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_workout_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # --- signals (behavior scorer), all in [0, 1] ---
    consistency_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    momentum_trend: Mapped[str] = mapped_column(
        Enum(MomentumTrend, name="momentum_trend_enum"),
        nullable=False,
        default=MomentumTrend.stable,
    )
    fatigue_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    recent_energy_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.5)

    # --- preferences ---
    preferred_workout_time: Mapped[str | None] = mapped_column(
        time_of_day_enum, nullable=True
    )
    preferred_workout_types: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avg_workout_time_of_day: Mapped[str | None] = mapped_column(
        time_of_day_enum, nullable=True
    )
    avg_session_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
