"""
Daily check-in schemas.

POST  /users/{id}/checkins          → CheckInRequest       → CheckInResponse
PATCH /users/{id}/checkins/{day}    → CheckInUpdateRequest → CheckInResponse
GET   /users/{id}/checkins/today    → CheckInTodayResponse
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from app.models.daily_checkin import Mood
from app.schemas.behavior import BehaviorProfileResponse, ToneDecisionOut
from app.schemas.messages import ComposeResponse


class CheckInUpdateRequest(BaseModel):
    energy_level: int = Field(ge=1, le=5, description="1 = exhausted, 5 = full of energy.")
    stress_level: int = Field(ge=1, le=5, description="1 = calm, 5 = very stressed.")
    sleep_quality: Optional[int] = Field(default=None, ge=1, le=5)
    mood: Mood
    notes: Optional[str] = Field(default=None, max_length=2000)


class CheckInRequest(CheckInUpdateRequest):
    day: Optional[date] = Field(default=None, description="Defaults to today (UTC).")


class CheckInOut(BaseModel):
    id: int
    day: str
    energy_level: int
    stress_level: int
    sleep_quality: Optional[int] = None
    mood: str
    notes: Optional[str] = None
    needs_recovery: bool = False


class CheckInTodayResponse(BaseModel):
    day: str
    checked_in: bool
    checkin: Optional[CheckInOut] = None


class CheckInResponse(BaseModel):
    checkin: CheckInOut
    profile: BehaviorProfileResponse
    tone: ToneDecisionOut
    messages: list[ComposeResponse] = Field(
        default_factory=list,
        description="A streak break or milestone found by the recompute, then any low-energy tip.",
    )
