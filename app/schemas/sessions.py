"""
Workout session schemas.

POST /users/{id}/sessions                        → SessionStartRequest    → SessionResponse
POST /users/{id}/sessions/{session_id}/complete  → SessionCompleteRequest → SessionCompleteResponse
GET  /users/{id}/sessions                        → SessionHistoryResponse
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.bricks import BrickRecordResponse


class SessionStartRequest(BaseModel):
    started_at: Optional[datetime] = Field(
        default=None, description="Defaults to now (UTC). Naive values are taken as UTC."
    )


class SessionCompleteRequest(BaseModel):
    duration_minutes: Optional[int] = Field(
        default=None, ge=0, le=24 * 60,
        description="Defaults to the time elapsed since started_at.",
    )


class SessionResponse(BaseModel):
    id: int
    status: str
    started_at: str
    completed_at: Optional[str] = None
    day: Optional[str] = None
    duration_minutes: Optional[int] = None


class SessionCompleteResponse(BaseModel):
    session: SessionResponse
    result: BrickRecordResponse


class SessionHistoryResponse(BaseModel):
    total: int
    active: Optional[SessionResponse] = None
    items: list[SessionResponse]
