"""
Message schemas.

POST /users/{id}/messages → ComposeRequest → ComposeResponse
GET  /users/{id}/messages → MessageListResponse
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from app.services.message_composer import ContextTrigger


class ComposeRequest(BaseModel):
    trigger: ContextTrigger = Field(examples=["app_open"])


class MessageResponse(BaseModel):
    id: int
    text: str
    message_type: str = Field(description='"motivation" | "check_in" | "celebration" | "tip"')
    tone: str
    context_trigger: str
    sent_at: str
    time_ago: str = Field(examples=["Just now", "5 minutes ago", "1 day ago"])
    is_sent_today: bool


class ComposeResponse(BaseModel):
    """`sent=false` with `rate_limited=true` when today's cap for the trigger was already reached."""
    sent: bool
    rate_limited: bool
    trigger: str
    tone: str
    message: Optional[MessageResponse] = None


class MessageListResponse(BaseModel):
    total: int
    items: list[MessageResponse]
