"""
Workout sessions: start and complete. Completing a session is what lays
the day's brick; that part lives in `coaching.complete_session`.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.clock import as_utc
from app.core.errors import (
    FutureDateError,
    SessionAlreadyCompletedError,
    SessionNotFoundError,
    ValidationFailure,
)
from app.models.workout_session import SessionStatus, WorkoutSession

logger = logging.getLogger(__name__)


def start_session(db: Session, user_id: int, started_at: datetime) -> WorkoutSession:
    session = WorkoutSession(
        user_id=user_id,
        status=SessionStatus.in_progress,
        started_at=started_at,
    )
    db.add(session)
    db.flush()
    logger.info("Started workout session %s for user %s", session.id, user_id)
    return session


def get_session(db: Session, user_id: int, session_id: int) -> WorkoutSession:
    session = db.get(WorkoutSession, session_id)
    if session is None or session.user_id != user_id:
        raise SessionNotFoundError(session_id)
    return session


def complete_session(
    db: Session,
    user_id: int,
    session_id: int,
    now: datetime,
    duration_minutes: Optional[int] = None,
) -> WorkoutSession:
    """
    Mark the session completed and file it under the day it was
    completed; `started_at` still feeds the time-of-day preference.
    Raises before writing anything when the session is already completed.
    """
    session = get_session(db, user_id, session_id)
    if SessionStatus(session.status) == SessionStatus.completed:
        raise SessionAlreadyCompletedError(session_id)

    started_at = as_utc(session.started_at)
    if started_at.date() > now.date():
        raise FutureDateError(day=started_at.date(), today=now.date())
    if duration_minutes is None:
        duration_minutes = max(int((now - started_at).total_seconds() // 60), 0)
    elif duration_minutes < 0:
        raise ValidationFailure({"duration_minutes": "must not be negative"})

    session.status = SessionStatus.completed
    session.completed_at = now
    session.day = now.date()
    session.duration_minutes = duration_minutes
    db.flush()
    logger.info(
        "Completed workout session %s for user %s (%s min)", session_id, user_id, duration_minutes
    )
    return session


def completed_sessions_since(db: Session, user_id: int, since: date) -> list[WorkoutSession]:
    return (
        db.query(WorkoutSession)
        .filter(
            WorkoutSession.user_id == user_id,
            WorkoutSession.status == SessionStatus.completed,
            WorkoutSession.day >= since,
        )
        .order_by(WorkoutSession.day.asc())
        .all()
    )


def get_active_session(db: Session, user_id: int) -> Optional[WorkoutSession]:
    """Most recently started session still in progress, if any."""
    return (
        db.query(WorkoutSession)
        .filter(
            WorkoutSession.user_id == user_id,
            WorkoutSession.status == SessionStatus.in_progress,
        )
        .order_by(WorkoutSession.started_at.desc(), WorkoutSession.id.desc())
        .first()
    )


def list_sessions(
    db: Session, user_id: int, limit: int = 30, offset: int = 0
) -> tuple[int, list[WorkoutSession]]:
    q = db.query(WorkoutSession).filter(WorkoutSession.user_id == user_id)
    total = q.count()
    items = (
        q.order_by(WorkoutSession.started_at.desc(), WorkoutSession.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items
