"""
Coaching messages router.

POST /users/{user_id}/messages  — compose a message for a trigger
GET  /users/{user_id}/messages  — recent messages (newest first)
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.db.base import get_db
from app.routers.serializers import message_to_response, outcome_to_response
from app.schemas.common import NOT_FOUND, VALIDATION
from app.schemas.messages import ComposeRequest, ComposeResponse, MessageListResponse
from app.services import coaching, message_composer, users
from app.services.message_composer import ContextTrigger

router = APIRouter(prefix="/users/{user_id}/messages", tags=["messages"])


@router.post(
    "",
    response_model=ComposeResponse,
    summary="Compose a coaching message",
    responses={**NOT_FOUND, **VALIDATION},
)
def compose(user_id: int, body: ComposeRequest, db: Session = Depends(get_db)):
    """
    Returns `sent=false, rate_limited=true` (still HTTP 200) when the user
    already got today's message for this trigger.
    """
    outcome = coaching.compose_message(db, user_id, body.trigger)
    return outcome_to_response(outcome)


@router.get(
    "",
    response_model=MessageListResponse,
    summary="Recent messages",
    responses={**NOT_FOUND},
)
def recent(
    user_id: int,
    trigger: Optional[ContextTrigger] = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    users.get_user(db, user_id)
    now = utcnow()
    items = message_composer.get_recent_messages(db, user_id, limit=limit, trigger=trigger)
    return MessageListResponse(
        total=len(items),
        items=[message_to_response(m, now) for m in items],
    )
