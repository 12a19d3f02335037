"""
Behavior profile schemas.

GET   /users/{id}/behavior              → BehaviorProfileResponse
POST  /users/{id}/behavior/recompute    → RecomputeResponse
PATCH /users/{id}/behavior/preferences  → PreferencesUpdateRequest → BehaviorProfileResponse
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.models.behavior_profile import TimeOfDay
from app.schemas.messages import ComposeResponse


class BehaviorProfileResponse(BaseModel):
    user_id: int
    current_tone: str
    last_tone_change: Optional[str] = None
    consecutive_days: int
    longest_streak: int
    total_bricks_laid: int
    last_workout_date: Optional[str] = None
    consistency_score: float = Field(ge=0, le=1)
    momentum_trend: str = Field(description='"improving" | "stable" | "declining"')
    fatigue_score: float = Field(ge=0, le=1)
    recent_energy_score: float = Field(ge=0, le=1)
    motivation_state: str = Field(description='"motivated" | "neutral" | "struggling"')
    preferred_workout_time: Optional[str] = None
    preferred_workout_types: Optional[str] = None
    avg_workout_time_of_day: Optional[str] = None
    avg_session_duration: Optional[int] = None
    updated_at: Optional[str] = None


class ToneDecisionOut(BaseModel):
    previous: str
    tone: str
    candidate: str
    bucket: str
    event: str
    forced: bool
    changed: bool
    suppressed: bool


class RecomputeResponse(BaseModel):
    profile: BehaviorProfileResponse
    streak_broken: bool
    tone: ToneDecisionOut
    message: Optional[ComposeResponse] = None


class PreferencesUpdateRequest(BaseModel):
    preferred_workout_time: Optional[TimeOfDay] = None
    preferred_workout_types: Optional[str] = Field(
        default=None, max_length=255,
        description="Comma-separated, e.g. \"strength,cardio\".",
    )
    goal_days_per_week: Optional[int] = Field(default=None, ge=1, le=7)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if (
            self.preferred_workout_time is None
            and self.preferred_workout_types is None
            and self.goal_days_per_week is None
        ):
            raise ValueError("at least one preference must be provided")
        return self
