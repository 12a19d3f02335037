"""
Brick ledger schemas.

POST /users/{id}/bricks/complete|miss|rest → BrickRecordRequest → BrickRecordResponse
GET  /users/{id}/bricks                    → BrickCalendarResponse
GET  /users/{id}/bricks/history            → BrickHistoryResponse
GET  /users/{id}/bricks/stats              → BrickStatsResponse
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.behavior import ToneDecisionOut
from app.schemas.messages import ComposeResponse
from app.schemas.milestones import MilestoneResponse


class BrickRecordRequest(BaseModel):
    day: Optional[date] = Field(
        default=None,
        description="Calendar day to record. Defaults to today (UTC). Future days are rejected.",
        examples=["2026-03-14"],
    )


class BrickResponse(BaseModel):
    id: int
    day: str
    status: str = Field(description='"laid" | "missed" | "rest"')
    color: str = Field(description="Hex color fixed when the brick was written.")
    streak_day: int
    is_first_of_month: bool
    session_id: Optional[int] = None
    created_at: Optional[str] = None


class StreakOut(BaseModel):
    current_streak: int
    longest_streak: int
    total_bricks_laid: int
    streak_broken: bool = Field(description="A run of at least STREAK_BREAK_MIN_DAYS just ended.")
    streak_milestone: Optional[int] = Field(
        default=None, description="Streak length celebrated by this write, e.g. 7."
    )


class BrickRecordResponse(BaseModel):
    """
    `created=false` means the same brick already existed: nothing was
    recomputed and the remaining fields describe the stored state.
    """
    created: bool
    brick: BrickResponse
    streak: StreakOut
    milestones_achieved: list[MilestoneResponse] = []
    tone: Optional[ToneDecisionOut] = None
    message: Optional[ComposeResponse] = None


class BrickCalendarResponse(BaseModel):
    year: int
    month: int
    items: list[BrickResponse]


class BrickHistoryResponse(BaseModel):
    total: int
    items: list[BrickResponse]


class BrickStatsResponse(BaseModel):
    total_bricks: int
    current_streak: int
    longest_streak: int
    bricks_this_month: int
    bricks_last_7_days: int
    bricks_this_week: int
    has_brick_today: bool
