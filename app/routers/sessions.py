"""
Workout sessions router.

GET  /users/{user_id}/sessions                        — history, plus the session in progress
POST /users/{user_id}/sessions                        — start a session
POST /users/{user_id}/sessions/{session_id}/complete  — complete it (lays the brick)
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.clock import as_utc
from app.db.base import get_db
from app.routers.serializers import coaching_to_response, session_to_response
from app.schemas.common import INVALID_STATE, NOT_FOUND, VALIDATION
from app.schemas.sessions import (
    SessionCompleteRequest,
    SessionCompleteResponse,
    SessionHistoryResponse,
    SessionResponse,
    SessionStartRequest,
)
from app.services import coaching, sessions, users

router = APIRouter(prefix="/users/{user_id}/sessions", tags=["sessions"])


@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a workout session",
    responses={**NOT_FOUND, **VALIDATION},
)
def start(
    user_id: int,
    body: Optional[SessionStartRequest] = Body(default=None),
    db: Session = Depends(get_db),
):
    started_at = as_utc(body.started_at) if body is not None else None
    session = coaching.start_session(db, user_id, started_at)
    return session_to_response(session)


@router.post(
    "/{session_id}/complete",
    response_model=SessionCompleteResponse,
    summary="Complete a workout session",
    responses={**NOT_FOUND, **INVALID_STATE, **VALIDATION},
)
def complete(
    user_id: int,
    session_id: int,
    body: Optional[SessionCompleteRequest] = Body(default=None),
    db: Session = Depends(get_db),
):
    """Completing an already completed session is a 409 and changes nothing."""
    duration = body.duration_minutes if body is not None else None
    session, result = coaching.complete_session(
        db, user_id, session_id, duration_minutes=duration
    )
    return SessionCompleteResponse(
        session=session_to_response(session),
        result=coaching_to_response(result),
    )


@router.get(
    "",
    response_model=SessionHistoryResponse,
    summary="Workout session history",
    responses={**NOT_FOUND},
)
def history(
    user_id: int,
    limit: int = Query(default=30, ge=1, le=365),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    """Newest first. `active` is the session still in progress, if any."""
    users.get_user(db, user_id)
    total, items = sessions.list_sessions(db, user_id, limit, offset)
    active = sessions.get_active_session(db, user_id)
    return SessionHistoryResponse(
        total=total,
        active=session_to_response(active) if active is not None else None,
        items=[session_to_response(s) for s in items],
    )
