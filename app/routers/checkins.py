"""
Daily check-in router.

POST  /users/{user_id}/checkins           — record today's check-in, then recompute behavior
GET   /users/{user_id}/checkins           — check-ins, newest first (optionally a date range)
GET   /users/{user_id}/checkins/today     — whether today's check-in exists, and its readings
GET   /users/{user_id}/checkins/recovery  — days with low energy and high stress
PATCH /users/{user_id}/checkins/{day}     — correct today's check-in, then recompute
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.clock import utc_today
from app.db.base import get_db
from app.routers.serializers import checkin_result_to_response, checkin_to_response
from app.schemas.checkins import (
    CheckInOut,
    CheckInRequest,
    CheckInResponse,
    CheckInTodayResponse,
    CheckInUpdateRequest,
)
from app.schemas.common import INVALID_STATE, NOT_FOUND, VALIDATION
from app.services import checkins, coaching, users

router = APIRouter(prefix="/users/{user_id}/checkins", tags=["checkins"])


@router.post(
    "",
    response_model=CheckInResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a daily check-in",
    responses={**NOT_FOUND, **INVALID_STATE, **VALIDATION},
)
def create_checkin(user_id: int, body: CheckInRequest, db: Session = Depends(get_db)):
    """
    One check-in per day. Signals are recomputed right away, so a streak
    break found here is announced; an energy level at or below
    LOW_ENERGY_LEVEL also composes a `low_energy` tip.
    """
    result = coaching.record_checkin(
        db,
        user_id,
        energy_level=body.energy_level,
        stress_level=body.stress_level,
        mood=body.mood,
        sleep_quality=body.sleep_quality,
        notes=body.notes,
        day=body.day,
    )
    return checkin_result_to_response(result)


@router.get(
    "",
    response_model=list[CheckInOut],
    summary="Check-ins, newest first",
    responses={**NOT_FOUND, **VALIDATION},
)
def list_checkins(
    user_id: int,
    start: Optional[date] = Query(default=None, description="First day of the range (inclusive)."),
    end: Optional[date] = Query(default=None, description="Last day of the range; defaults to today."),
    limit: int = Query(default=30, ge=1, le=365),
    db: Session = Depends(get_db),
):
    """Without `start` or `end` this is the latest `limit` check-ins."""
    users.get_user(db, user_id)
    if start is None and end is None:
        rows = checkins.list_checkins(db, user_id, limit)
    else:
        end = end or utc_today()
        start = start or end - timedelta(days=limit - 1)
        rows = checkins.checkins_between(db, user_id, start, end)
    return [checkin_to_response(c) for c in rows]


@router.get(
    "/today",
    response_model=CheckInTodayResponse,
    summary="Today's check-in",
    responses={**NOT_FOUND},
)
def today_checkin(user_id: int, db: Session = Depends(get_db)):
    users.get_user(db, user_id)
    today = utc_today()
    checkin = checkins.get_checkin(db, user_id, today)
    return CheckInTodayResponse(
        day=str(today),
        checked_in=checkin is not None,
        checkin=checkin_to_response(checkin) if checkin is not None else None,
    )


@router.get(
    "/recovery",
    response_model=list[CheckInOut],
    summary="Days that called for recovery",
    responses={**NOT_FOUND},
)
def recovery_days(
    user_id: int,
    limit: int = Query(default=30, ge=1, le=365),
    db: Session = Depends(get_db),
):
    users.get_user(db, user_id)
    return [checkin_to_response(c) for c in checkins.recovery_days(db, user_id, limit)]


@router.patch(
    "/{day}",
    response_model=CheckInResponse,
    summary="Correct today's check-in",
    responses={**NOT_FOUND, **INVALID_STATE, **VALIDATION},
)
def update_checkin(
    user_id: int, day: date, body: CheckInUpdateRequest, db: Session = Depends(get_db)
):
    """Past check-ins are closed: changing one is a 409."""
    result = coaching.update_checkin(
        db,
        user_id,
        day,
        energy_level=body.energy_level,
        stress_level=body.stress_level,
        mood=body.mood,
        sleep_quality=body.sleep_quality,
        notes=body.notes,
    )
    return checkin_result_to_response(result)
