from datetime import datetime
from sqlalchemy import (
    Integer, String, Boolean, DateTime, Enum, ForeignKey, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.db.base import Base


class MilestoneType(str, enum.Enum):
    workout_count = "workout_count"      # 10, 50, 100 ... total bricks laid
    streak = "streak"                    # 7-day, 30-day ... consecutive days
    consistency = "consistency"          # consistency score as a percentage
    goal_achieved = "goal_achieved"      # user's personal goal met
    personal_record = "personal_record"  # new PR


class Milestone(Base):
    __tablename__ = "milestones"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "milestone_type", "target_value", name="uq_milestone_user_type_target"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_profiles.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    milestone_type: Mapped[str] = mapped_column(
        Enum(MilestoneType, name="milestone_type_enum"), nullable=False, index=True
    )
    target_value: Mapped[int] = mapped_column(Integer, nullable=False)
    # Always within [0, target_value].
    current_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_achieved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Set once, on the first crossing of target_value.
    achieved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
