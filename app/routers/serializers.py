"""
ORM / service result → response model helpers shared by the routers.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from app.core.clock import utcnow
from app.core.config import settings
from app.models.behavior_profile import BehaviorProfile
from app.models.brick import Brick
from app.models.brix_message import BrixMessage
from app.models.daily_checkin import DailyCheckIn
from app.models.user import UserProfile
from app.models.workout_session import WorkoutSession
from app.schemas.behavior import BehaviorProfileResponse, ToneDecisionOut
from app.schemas.bricks import BrickRecordResponse, BrickResponse, StreakOut
from app.schemas.checkins import CheckInOut, CheckInResponse
from app.schemas.common import enum_value, iso
from app.schemas.messages import ComposeResponse, MessageResponse
from app.schemas.milestones import MilestoneResponse
from app.schemas.sessions import SessionResponse
from app.schemas.users import UserResponse
from app.services import checkins
from app.services.behavior_scorer import motivation_state
from app.services.coaching import CheckInResult, CoachingResult
from app.services.message_composer import ComposeOutcome, format_time_ago, is_sent_today
from app.services.milestone_tracker import MilestoneProjection, project
from app.services.tone_selector import ToneDecision


def user_to_response(user: UserProfile) -> UserResponse:
    return UserResponse(
        id=user.id,
        display_name=user.display_name,
        goal_days_per_week=user.goal_days_per_week,
        created_at=iso(user.created_at) or "",
    )


def brick_to_response(b: Brick) -> BrickResponse:
    return BrickResponse(
        id=b.id,
        day=str(b.day),
        status=enum_value(b.status),
        color=b.color,
        streak_day=b.streak_day,
        is_first_of_month=b.is_first_of_month,
        session_id=b.session_id,
        created_at=iso(b.created_at),
    )


def milestone_to_response(p: MilestoneProjection) -> MilestoneResponse:
    m = p.milestone
    return MilestoneResponse(
        id=m.id,
        name=m.name,
        description=m.description,
        milestone_type=enum_value(m.milestone_type),
        target_value=m.target_value,
        current_value=m.current_value,
        is_achieved=m.is_achieved,
        achieved_at=iso(m.achieved_at),
        progress_percentage=p.progress_percentage,
        remaining_value=p.remaining_value,
        almost_complete=p.almost_complete,
        in_progress=p.in_progress,
    )


def message_to_response(msg: BrixMessage, now: Optional[datetime] = None) -> MessageResponse:
    now = now or utcnow()
    return MessageResponse(
        id=msg.id,
        text=msg.text,
        message_type=enum_value(msg.message_type),
        tone=enum_value(msg.tone),
        context_trigger=msg.context_trigger,
        sent_at=iso(msg.sent_at),
        time_ago=format_time_ago(msg.sent_at, now),
        is_sent_today=is_sent_today(msg.sent_at, now),
    )


def outcome_to_response(outcome: Optional[ComposeOutcome]) -> Optional[ComposeResponse]:
    if outcome is None:
        return None
    return ComposeResponse(
        sent=outcome.sent,
        rate_limited=outcome.rate_limited,
        trigger=outcome.trigger.value,
        tone=outcome.tone.value,
        message=message_to_response(outcome.message) if outcome.message else None,
    )


def tone_to_response(d: Optional[ToneDecision]) -> Optional[ToneDecisionOut]:
    if d is None:
        return None
    return ToneDecisionOut(
        previous=d.previous.value,
        tone=d.tone.value,
        candidate=d.candidate.value,
        bucket=d.bucket.value,
        event=d.event.value,
        forced=d.forced,
        changed=d.changed,
        suppressed=d.suppressed,
    )


def profile_to_response(p: BehaviorProfile) -> BehaviorProfileResponse:
    return BehaviorProfileResponse(
        user_id=p.user_id,
        current_tone=enum_value(p.current_tone),
        last_tone_change=iso(p.last_tone_change),
        consecutive_days=p.consecutive_days,
        longest_streak=p.longest_streak,
        total_bricks_laid=p.total_bricks_laid,
        last_workout_date=str(p.last_workout_date) if p.last_workout_date else None,
        consistency_score=round(p.consistency_score, 4),
        momentum_trend=enum_value(p.momentum_trend),
        fatigue_score=round(p.fatigue_score, 4),
        recent_energy_score=round(p.recent_energy_score, 4),
        motivation_state=motivation_state(p.consistency_score),
        preferred_workout_time=enum_value(p.preferred_workout_time) if p.preferred_workout_time else None,
        preferred_workout_types=p.preferred_workout_types,
        avg_workout_time_of_day=enum_value(p.avg_workout_time_of_day) if p.avg_workout_time_of_day else None,
        avg_session_duration=p.avg_session_duration,
        updated_at=iso(p.updated_at),
    )


def session_to_response(s: WorkoutSession) -> SessionResponse:
    return SessionResponse(
        id=s.id,
        status=enum_value(s.status),
        started_at=iso(s.started_at) or "",
        completed_at=iso(s.completed_at),
        day=str(s.day) if s.day else None,
        duration_minutes=s.duration_minutes,
    )


def checkin_to_response(c: DailyCheckIn) -> CheckInOut:
    return CheckInOut(
        id=c.id,
        day=str(c.day),
        energy_level=c.energy_level,
        stress_level=c.stress_level,
        sleep_quality=c.sleep_quality,
        mood=enum_value(c.mood),
        notes=c.notes,
        needs_recovery=checkins.needs_recovery(c),
    )


def checkin_result_to_response(result: CheckInResult) -> CheckInResponse:
    return CheckInResponse(
        checkin=checkin_to_response(result.checkin),
        profile=profile_to_response(result.profile),
        tone=tone_to_response(result.tone),
        messages=[outcome_to_response(o) for o in result.messages],
    )


def coaching_to_response(result: CoachingResult) -> BrickRecordResponse:
    p = result.profile
    update = result.streak
    return BrickRecordResponse(
        created=result.created,
        brick=brick_to_response(result.brick),
        streak=StreakOut(
            current_streak=p.consecutive_days,
            longest_streak=p.longest_streak,
            total_bricks_laid=p.total_bricks_laid,
            streak_broken=bool(
                update and update.broken_length >= settings.STREAK_BREAK_MIN_DAYS
            ),
            streak_milestone=update.crossed_celebration if update else None,
        ),
        milestones_achieved=[milestone_to_response(project(m)) for m in result.achieved],
        tone=tone_to_response(result.tone),
        message=outcome_to_response(result.message),
    )
