"""
Behavior profile router.

GET   /users/{user_id}/behavior              — profile projection
POST  /users/{user_id}/behavior/recompute    — routine recompute
PATCH /users/{user_id}/behavior/preferences  — user-set preferences
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.base import get_db
from app.routers.serializers import outcome_to_response, profile_to_response, tone_to_response
from app.schemas.behavior import (
    BehaviorProfileResponse,
    PreferencesUpdateRequest,
    RecomputeResponse,
)
from app.schemas.common import NOT_FOUND, VALIDATION
from app.services import coaching

router = APIRouter(prefix="/users/{user_id}/behavior", tags=["behavior"])


@router.get(
    "",
    response_model=BehaviorProfileResponse,
    summary="Behavior profile",
    responses={**NOT_FOUND},
)
def get_behavior(user_id: int, db: Session = Depends(get_db)):
    return profile_to_response(coaching.get_profile(db, user_id))


@router.post(
    "/recompute",
    response_model=RecomputeResponse,
    summary="Recompute signals and tone",
    responses={**NOT_FOUND},
)
def recompute(user_id: int, db: Session = Depends(get_db)):
    """
    Resyncs the current streak with the calendar (a gap since the last brick
    ends it), rescores the trailing window and re-evaluates the tone.

    ### Tone buckets
    | Bucket | Condition |
    |---|---|
    | `dormant`    | nothing laid yet |
    | `fatigued`   | fatigue ≥ FATIGUE_HIGH |
    | `struggling` | consistency < CONSISTENCY_LOW |
    | `declining`  | momentum declining |
    | `thriving`   | long streak and high consistency |
    | `rising`     | momentum improving |
    | `steady`     | otherwise |
    """
    result = coaching.recompute_behavior(db, user_id)
    return RecomputeResponse(
        profile=profile_to_response(result.profile),
        streak_broken=result.streak.broken_length >= settings.STREAK_BREAK_MIN_DAYS,
        tone=tone_to_response(result.tone),
        message=outcome_to_response(result.message),
    )


@router.patch(
    "/preferences",
    response_model=BehaviorProfileResponse,
    summary="Update preferences",
    responses={**NOT_FOUND, **VALIDATION},
)
def update_preferences(
    user_id: int, body: PreferencesUpdateRequest, db: Session = Depends(get_db)
):
    profile = coaching.update_preferences(
        db,
        user_id,
        preferred_workout_time=body.preferred_workout_time,
        preferred_workout_types=body.preferred_workout_types,
        goal_days_per_week=body.goal_days_per_week,
    )
    return profile_to_response(profile)
