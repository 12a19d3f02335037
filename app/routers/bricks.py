"""
Brick wall router.

POST /users/{user_id}/bricks/complete  — lay today's (or a past day's) brick
POST /users/{user_id}/bricks/miss      — mark a day missed
POST /users/{user_id}/bricks/rest      — mark a planned rest day
GET  /users/{user_id}/bricks           — month calendar
GET  /users/{user_id}/bricks/history   — newest first
GET  /users/{user_id}/bricks/stats     — aggregate counters
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app.core.clock import utc_today
from app.db.base import get_db
from app.routers.serializers import brick_to_response, coaching_to_response
from app.schemas.bricks import (
    BrickCalendarResponse,
    BrickHistoryResponse,
    BrickRecordRequest,
    BrickRecordResponse,
    BrickStatsResponse,
)
from app.schemas.common import INVALID_STATE, NOT_FOUND, VALIDATION
from app.services import brick_ledger, coaching, users

router = APIRouter(prefix="/users/{user_id}/bricks", tags=["bricks"])

_WRITE_RESPONSES = {**NOT_FOUND, **INVALID_STATE, **VALIDATION}


def _day(body: Optional[BrickRecordRequest]):
    return body.day if body is not None else None


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

@router.post(
    "/complete",
    response_model=BrickRecordResponse,
    summary="Record a completed workout day",
    responses=_WRITE_RESPONSES,
)
def complete(
    user_id: int,
    body: Optional[BrickRecordRequest] = Body(default=None),
    db: Session = Depends(get_db),
):
    """
    Idempotent: recording the same day twice returns `created=false` and
    changes nothing. A day already marked missed or rest is a 409.
    """
    result = coaching.record_completion(db, user_id, _day(body))
    return coaching_to_response(result)


@router.post(
    "/miss",
    response_model=BrickRecordResponse,
    summary="Record a missed day",
    responses=_WRITE_RESPONSES,
)
def miss(
    user_id: int,
    body: Optional[BrickRecordRequest] = Body(default=None),
    db: Session = Depends(get_db),
):
    return coaching_to_response(coaching.record_miss(db, user_id, _day(body)))


@router.post(
    "/rest",
    response_model=BrickRecordResponse,
    summary="Record a planned rest day",
    responses=_WRITE_RESPONSES,
)
def rest(
    user_id: int,
    body: Optional[BrickRecordRequest] = Body(default=None),
    db: Session = Depends(get_db),
):
    """A rest day neither extends nor breaks the current streak."""
    return coaching_to_response(coaching.record_rest(db, user_id, _day(body)))


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=BrickCalendarResponse,
    summary="Bricks for one calendar month",
    responses={**NOT_FOUND},
)
def calendar(
    user_id: int,
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
):
    users.get_user(db, user_id)
    today = utc_today()
    year = year or today.year
    month = month or today.month
    items = brick_ledger.get_calendar(db, user_id, year, month)
    return BrickCalendarResponse(
        year=year, month=month, items=[brick_to_response(b) for b in items]
    )


@router.get(
    "/history",
    response_model=BrickHistoryResponse,
    summary="Brick history (newest first)",
    responses={**NOT_FOUND},
)
def history(
    user_id: int,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    users.get_user(db, user_id)
    total, items = brick_ledger.get_history(db, user_id, limit=limit, offset=offset)
    return BrickHistoryResponse(total=total, items=[brick_to_response(b) for b in items])


@router.get(
    "/stats",
    response_model=BrickStatsResponse,
    summary="Streaks and brick counts",
    responses={**NOT_FOUND},
)
def stats(user_id: int, db: Session = Depends(get_db)):
    """`current_streak` reflects the calendar: a gap since the last brick reads as 0."""
    profile = coaching.get_profile(db, user_id)
    today = utc_today()
    s = brick_ledger.get_stats(db, user_id, coaching.streak_state(profile), today)
    return BrickStatsResponse(
        total_bricks=s.total_bricks,
        current_streak=s.current_streak,
        longest_streak=s.longest_streak,
        bricks_this_month=s.bricks_this_month,
        bricks_last_7_days=s.bricks_last_7_days,
        bricks_this_week=s.bricks_this_week,
        has_brick_today=brick_ledger.has_brick_today(db, user_id, today),
    )
