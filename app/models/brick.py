"""
Brick — one row per (user, calendar day) in the brick wall.

Immutable once written. `color`, `streak_day` and `is_first_of_month` are
derived from the ledger as it stood when the brick was laid and are never
recomputed afterwards.
"""
from datetime import datetime, date
from sqlalchemy import (
    Integer, String, Boolean, DateTime, Date, Enum, ForeignKey, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.db.base import Base


class BrickStatus(str, enum.Enum):
    laid = "laid"        # workout completed
    missed = "missed"    # no workout, unplanned
    rest = "rest"        # planned rest day


class Brick(Base):
    __tablename__ = "bricks"
    __table_args__ = (
        UniqueConstraint("user_id", "day", name="uq_brick_user_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_profiles.id"), nullable=False, index=True
    )
    session_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        Enum(BrickStatus, name="brick_status_enum"), nullable=False
    )
    color: Mapped[str] = mapped_column(String(7), nullable=False)
    streak_day: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_first_of_month: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
