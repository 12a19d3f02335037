"""
Coaching orchestrator — the mutating entry points.

Every operation for a user runs inside `unit_of_work(db, user_id)`: one
per-user lock, one row lock on the BehaviorProfile, one commit. Any
exception rolls back ledger, profile, milestones and messages together.

Per event
---------
  1. Brick ledger write (returns early when the brick already exists).
  2. Streak counters copied onto the profile.
  3. Behavior signals rescored from the trailing window.
  4. Milestones: WORKOUT_COUNT set to total bricks, STREAK set to current streak.
  5. Event class: milestone_achieved > streak_broken > streak_milestone > routine.
  6. Tone selector applied to the refreshed profile.
  7. Message composed for the resulting trigger (subject to the daily cap).

Check-ins and recompute settle the streak against the calendar instead of
writing a brick, then run steps 2-7; a low-energy check-in adds a tip.

Public API
----------
register_user(db, display_name, goal_days_per_week)            -> UserProfile
record_completion(db, user_id, day, session_id, now)           -> CoachingResult
record_miss(db, user_id, day, now)                             -> CoachingResult
record_rest(db, user_id, day, now)                             -> CoachingResult
start_session / complete_session                               -> WorkoutSession / CoachingResult
record_checkin / update_checkin(db, user_id, ..., now)         -> CheckInResult
recompute_behavior(db, user_id, now)                           -> RecomputeResult
compose_message(db, user_id, trigger, now)                     -> ComposeOutcome
initialize_milestones / create_custom_milestone / update_milestone_progress
update_preferences(db, user_id, ...)                           -> BehaviorProfile
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.clock import as_utc, utcnow
from app.core.concurrency import unit_of_work
from app.core.config import settings
from app.core.errors import NotFoundError, ValidationFailure
from app.models.behavior_profile import BehaviorProfile, MomentumTrend, TimeOfDay, Tone
from app.models.brick import Brick, BrickStatus
from app.models.daily_checkin import DailyCheckIn, Mood
from app.models.milestone import Milestone, MilestoneType
from app.models.user import UserProfile
from app.models.workout_session import WorkoutSession
from app.services import (
    behavior_scorer,
    brick_ledger,
    checkins,
    message_composer,
    milestone_tracker,
    sessions,
    tone_selector,
    users,
)
from app.services.behavior_scorer import CheckInEvent, SessionEvent
from app.services.brick_ledger import StreakState, StreakUpdate
from app.services.message_composer import ComposeOutcome, ContextTrigger, MessageContext
from app.services.milestone_tracker import ProgressMode
from app.services.tone_selector import EventClass, ToneDecision

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class CoachingResult:
    brick: Brick
    created: bool
    profile: BehaviorProfile
    streak: Optional[StreakUpdate] = None
    achieved: list[Milestone] = field(default_factory=list)
    tone: Optional[ToneDecision] = None
    message: Optional[ComposeOutcome] = None


@dataclass
class RecomputeResult:
    profile: BehaviorProfile
    streak: StreakUpdate
    tone: ToneDecision
    message: Optional[ComposeOutcome] = None


@dataclass
class CheckInResult:
    checkin: DailyCheckIn
    profile: BehaviorProfile
    tone: ToneDecision
    messages: list[ComposeOutcome] = field(default_factory=list)


@dataclass
class MilestoneProgressResult:
    achieved: list[Milestone]
    profile: BehaviorProfile
    tone: Optional[ToneDecision] = None
    message: Optional[ComposeOutcome] = None


# ---------------------------------------------------------------------------
# Profile access
# ---------------------------------------------------------------------------

def _new_profile(db: Session, user_id: int) -> BehaviorProfile:
    profile = BehaviorProfile(
        user_id=user_id,
        current_tone=Tone.neutral,
        last_tone_change=None,
        consecutive_days=0,
        longest_streak=0,
        total_bricks_laid=0,
        consistency_score=0.0,
        momentum_trend=MomentumTrend.stable,
        fatigue_score=0.0,
        recent_energy_score=0.5,
    )
    db.add(profile)
    db.flush()
    milestone_tracker.initialize_milestones(db, user_id)
    logger.info("Created behavior profile for user %s", user_id)
    return profile


def load_profile_for_update(db: Session, user_id: int) -> BehaviorProfile:
    """Row-locked profile, created (with default milestones) on first use."""
    profile = (
        db.query(BehaviorProfile)
        .filter(BehaviorProfile.user_id == user_id)
        .with_for_update()
        .first()
    )
    if profile is None:
        profile = _new_profile(db, user_id)
    return profile


def get_profile(db: Session, user_id: int) -> BehaviorProfile:
    users.get_user(db, user_id)
    profile = db.query(BehaviorProfile).filter(BehaviorProfile.user_id == user_id).first()
    if profile is None:
        raise NotFoundError("BehaviorProfile", user_id)
    return profile


def streak_state(profile: BehaviorProfile) -> StreakState:
    return StreakState(
        current=profile.consecutive_days,
        longest=profile.longest_streak,
        total_laid=profile.total_bricks_laid,
        last_laid=profile.last_workout_date,
    )


def _store_streak(profile: BehaviorProfile, state: StreakState) -> None:
    profile.consecutive_days = state.current
    profile.longest_streak = state.longest
    profile.total_bricks_laid = state.total_laid
    profile.last_workout_date = state.last_laid


# ---------------------------------------------------------------------------
# Scoring inputs
# ---------------------------------------------------------------------------

def _first_day(db: Session, user_id: int) -> Optional[date]:
    first_brick = db.query(func.min(Brick.day)).filter(Brick.user_id == user_id).scalar()
    first_checkin = (
        db.query(func.min(DailyCheckIn.day)).filter(DailyCheckIn.user_id == user_id).scalar()
    )
    known = [d for d in (first_brick, first_checkin) if d is not None]
    return min(known) if known else None


def _rescore(db: Session, user: UserProfile, profile: BehaviorProfile, today: date) -> None:
    since = today - timedelta(days=settings.SCORING_WINDOW_DAYS)

    session_events: list[SessionEvent] = []
    covered: set[date] = set()
    for s in sessions.completed_sessions_since(db, user.id, since):
        session_events.append(
            SessionEvent(day=s.day, started_at=as_utc(s.started_at), duration_minutes=s.duration_minutes)
        )
        covered.add(s.day)
    laid_days = (
        db.query(Brick.day)
        .filter(Brick.user_id == user.id, Brick.status == BrickStatus.laid, Brick.day >= since)
        .all()
    )
    # Bricks laid without a tracked session still count as training days.
    session_events.extend(SessionEvent(day=d) for (d,) in laid_days if d not in covered)

    checkin_events = [
        CheckInEvent(day=c.day, energy_level=c.energy_level, stress_level=c.stress_level)
        for c in checkins.checkins_since(db, user.id, since)
    ]

    signals = behavior_scorer.score(
        session_events,
        checkin_events,
        today,
        first_day=_first_day(db, user.id),
        goal_days_per_week=user.goal_days_per_week,
    )
    behavior_scorer.apply_signals(profile, signals)


def _context(user: UserProfile, profile: BehaviorProfile, milestone: str = "") -> MessageContext:
    return MessageContext(
        name=users.first_name(user),
        streak=profile.consecutive_days,
        total=profile.total_bricks_laid,
        longest=profile.longest_streak,
        milestone=milestone,
    )


def _event_class(achieved: list[Milestone], update: Optional[StreakUpdate]) -> EventClass:
    if achieved:
        return EventClass.milestone_achieved
    if update is not None and update.broken_length >= settings.STREAK_BREAK_MIN_DAYS:
        return EventClass.streak_broken
    if update is not None and update.crossed_celebration is not None:
        return EventClass.streak_milestone
    return EventClass.routine


def _sync_milestones(db: Session, profile: BehaviorProfile, now: datetime) -> list[Milestone]:
    achieved = milestone_tracker.update_progress(
        db, profile.user_id, MilestoneType.workout_count,
        profile.total_bricks_laid, ProgressMode.set, now,
    )
    achieved += milestone_tracker.update_progress(
        db, profile.user_id, MilestoneType.streak,
        profile.consecutive_days, ProgressMode.set, now,
    )
    return achieved


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def register_user(db: Session, display_name: str, goal_days_per_week: int = 7) -> UserProfile:
    try:
        user = users.create_user(db, display_name, goal_days_per_week)
        _new_profile(db, user.id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return user


def update_preferences(
    db: Session,
    user_id: int,
    *,
    preferred_workout_time: Optional[TimeOfDay] = None,
    preferred_workout_types: Optional[str] = None,
    goal_days_per_week: Optional[int] = None,
) -> BehaviorProfile:
    with unit_of_work(db, user_id):
        user = users.get_user(db, user_id)
        if goal_days_per_week is not None:
            errors: dict[str, str] = {}
            users.validate_goal_days(goal_days_per_week, errors)
            if errors:
                raise ValidationFailure(errors)
        profile = load_profile_for_update(db, user_id)
        if preferred_workout_time is not None:
            profile.preferred_workout_time = preferred_workout_time
        if preferred_workout_types is not None:
            profile.preferred_workout_types = preferred_workout_types
        if goal_days_per_week is not None:
            user.goal_days_per_week = goal_days_per_week
    db.refresh(profile)
    return profile


# ---------------------------------------------------------------------------
# Brick events
# ---------------------------------------------------------------------------

def _record_brick(
    db: Session,
    user: UserProfile,
    status: BrickStatus,
    day: date,
    now: datetime,
    session_id: Optional[int] = None,
) -> CoachingResult:
    profile = load_profile_for_update(db, user.id)
    today = now.date()
    write = brick_ledger.write_brick(
        db, user.id, day, status,
        state=streak_state(profile), today=today, session_id=session_id,
    )
    if not write.created:
        return CoachingResult(brick=write.brick, created=False, profile=profile)

    update = write.update
    _store_streak(profile, update.state)
    _rescore(db, user, profile, today)
    achieved = _sync_milestones(db, profile, now)

    event = _event_class(achieved, update)
    decision = tone_selector.apply_tone(profile, event, now)

    trigger: Optional[ContextTrigger] = None
    if achieved:
        trigger = ContextTrigger.milestone_achieved
    elif status == BrickStatus.laid:
        if event == EventClass.streak_milestone:
            trigger = ContextTrigger.streak_milestone
        else:
            trigger = ContextTrigger.workout_complete
    elif status == BrickStatus.missed:
        if event == EventClass.streak_broken:
            trigger = ContextTrigger.streak_broken
        else:
            trigger = ContextTrigger.missed_day

    outcome = None
    if trigger is not None:
        outcome = message_composer.compose_and_record(
            db, user.id, Tone(profile.current_tone), trigger,
            _context(user, profile, achieved[-1].name if achieved else ""), now,
        )
    db.flush()
    return CoachingResult(
        brick=write.brick,
        created=True,
        profile=profile,
        streak=update,
        achieved=achieved,
        tone=decision,
        message=outcome,
    )


def record_completion(
    db: Session,
    user_id: int,
    day: Optional[date] = None,
    *,
    session_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> CoachingResult:
    now = now or utcnow()
    with unit_of_work(db, user_id):
        user = users.get_user(db, user_id)
        result = _record_brick(db, user, BrickStatus.laid, day or now.date(), now, session_id)
    return result


def record_miss(
    db: Session, user_id: int, day: Optional[date] = None, *, now: Optional[datetime] = None
) -> CoachingResult:
    now = now or utcnow()
    with unit_of_work(db, user_id):
        user = users.get_user(db, user_id)
        result = _record_brick(db, user, BrickStatus.missed, day or now.date(), now)
    return result


def record_rest(
    db: Session, user_id: int, day: Optional[date] = None, *, now: Optional[datetime] = None
) -> CoachingResult:
    now = now or utcnow()
    with unit_of_work(db, user_id):
        user = users.get_user(db, user_id)
        result = _record_brick(db, user, BrickStatus.rest, day or now.date(), now)
    return result


# ---------------------------------------------------------------------------
# Workout sessions
# ---------------------------------------------------------------------------

def start_session(
    db: Session, user_id: int, started_at: Optional[datetime] = None
) -> WorkoutSession:
    with unit_of_work(db, user_id):
        users.get_user(db, user_id)
        session = sessions.start_session(db, user_id, started_at or utcnow())
    db.refresh(session)
    return session


def complete_session(
    db: Session,
    user_id: int,
    session_id: int,
    *,
    duration_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> tuple[WorkoutSession, CoachingResult]:
    now = now or utcnow()
    with unit_of_work(db, user_id):
        user = users.get_user(db, user_id)
        session = sessions.complete_session(db, user_id, session_id, now, duration_minutes)
        result = _record_brick(db, user, BrickStatus.laid, session.day, now, session.id)
    return session, result


# ---------------------------------------------------------------------------
# Check-ins and routine recompute
# ---------------------------------------------------------------------------

def _refresh(
    db: Session, user: UserProfile, profile: BehaviorProfile, now: datetime
) -> tuple[StreakUpdate, list[Milestone]]:
    """Settle the streak against the calendar, rescore, resync milestone progress."""
    today = now.date()
    update = brick_ledger.settle_streak(
        streak_state(profile), brick_ledger.load_statuses(db, user.id), today,
        brick_ledger.LedgerPolicy.from_settings(),
    )
    _store_streak(profile, update.state)
    _rescore(db, user, profile, today)
    achieved = _sync_milestones(db, profile, now)
    return update, achieved


def _react(
    db: Session,
    user: UserProfile,
    profile: BehaviorProfile,
    achieved: list[Milestone],
    update: StreakUpdate,
    now: datetime,
) -> tuple[ToneDecision, Optional[ComposeOutcome]]:
    """Tone for a refresh, plus the message its event calls for, if any."""
    event = _event_class(achieved, update)
    decision = tone_selector.apply_tone(profile, event, now)

    trigger: Optional[ContextTrigger] = None
    if event == EventClass.milestone_achieved:
        trigger = ContextTrigger.milestone_achieved
    elif event == EventClass.streak_broken:
        trigger = ContextTrigger.streak_broken
    if trigger is None:
        return decision, None
    outcome = message_composer.compose_and_record(
        db, user.id, Tone(profile.current_tone), trigger,
        _context(user, profile, achieved[-1].name if achieved else ""), now,
    )
    return decision, outcome


def _after_checkin(
    db: Session, user: UserProfile, profile: BehaviorProfile, checkin: DailyCheckIn, now: datetime
) -> CheckInResult:
    update, achieved = _refresh(db, user, profile, now)
    decision, outcome = _react(db, user, profile, achieved, update, now)

    messages = [outcome] if outcome is not None else []
    if checkin.energy_level <= settings.LOW_ENERGY_LEVEL:
        messages.append(message_composer.compose_and_record(
            db, user.id, Tone(profile.current_tone), ContextTrigger.low_energy,
            _context(user, profile), now,
        ))
    return CheckInResult(checkin=checkin, profile=profile, tone=decision, messages=messages)


def record_checkin(
    db: Session,
    user_id: int,
    *,
    energy_level: int,
    stress_level: int,
    mood: Mood,
    sleep_quality: Optional[int] = None,
    notes: Optional[str] = None,
    day: Optional[date] = None,
    now: Optional[datetime] = None,
) -> CheckInResult:
    now = now or utcnow()
    today = now.date()
    with unit_of_work(db, user_id):
        user = users.get_user(db, user_id)
        profile = load_profile_for_update(db, user_id)
        checkin = checkins.create_checkin(
            db, user_id, day or today, today,
            energy_level=energy_level, stress_level=stress_level, mood=mood,
            sleep_quality=sleep_quality, notes=notes,
        )
        result = _after_checkin(db, user, profile, checkin, now)
    return result


def update_checkin(
    db: Session,
    user_id: int,
    day: date,
    *,
    energy_level: int,
    stress_level: int,
    mood: Mood,
    sleep_quality: Optional[int] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CheckInResult:
    """Correct today's check-in and rescore with the new readings."""
    now = now or utcnow()
    with unit_of_work(db, user_id):
        user = users.get_user(db, user_id)
        profile = load_profile_for_update(db, user_id)
        checkin = checkins.update_checkin(
            db, user_id, day, now.date(),
            energy_level=energy_level, stress_level=stress_level, mood=mood,
            sleep_quality=sleep_quality, notes=notes,
        )
        result = _after_checkin(db, user, profile, checkin, now)
    return result


def recompute_behavior(
    db: Session, user_id: int, *, now: Optional[datetime] = None
) -> RecomputeResult:
    """Resync the streak with the calendar, rescore, re-evaluate tone."""
    now = now or utcnow()
    with unit_of_work(db, user_id):
        user = users.get_user(db, user_id)
        profile = load_profile_for_update(db, user_id)
        update, achieved = _refresh(db, user, profile, now)
        decision, outcome = _react(db, user, profile, achieved, update, now)
    return RecomputeResult(profile=profile, streak=update, tone=decision, message=outcome)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

def compose_message(
    db: Session, user_id: int, trigger: ContextTrigger, *, now: Optional[datetime] = None
) -> ComposeOutcome:
    now = now or utcnow()
    with unit_of_work(db, user_id):
        user = users.get_user(db, user_id)
        profile = load_profile_for_update(db, user_id)
        outcome = message_composer.compose_and_record(
            db, user_id, Tone(profile.current_tone), trigger, _context(user, profile), now
        )
    return outcome


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------

def initialize_milestones(db: Session, user_id: int) -> list[Milestone]:
    with unit_of_work(db, user_id):
        users.get_user(db, user_id)
        load_profile_for_update(db, user_id)
        created = milestone_tracker.initialize_milestones(db, user_id)
    return created


def create_custom_milestone(
    db: Session,
    user_id: int,
    *,
    name: str,
    milestone_type: MilestoneType,
    target_value: int,
    description: Optional[str] = None,
) -> Milestone:
    with unit_of_work(db, user_id):
        users.get_user(db, user_id)
        milestone = milestone_tracker.create_custom_milestone(
            db, user_id, name, milestone_type, target_value, description
        )
    db.refresh(milestone)
    return milestone


def update_milestone_progress(
    db: Session,
    user_id: int,
    milestone_type: MilestoneType,
    value: int,
    mode: ProgressMode = ProgressMode.increment,
    *,
    now: Optional[datetime] = None,
) -> MilestoneProgressResult:
    now = now or utcnow()
    with unit_of_work(db, user_id):
        user = users.get_user(db, user_id)
        profile = load_profile_for_update(db, user_id)
        achieved = milestone_tracker.update_progress(db, user_id, milestone_type, value, mode, now)
        decision = None
        outcome = None
        if achieved:
            decision = tone_selector.apply_tone(profile, EventClass.milestone_achieved, now)
            outcome = message_composer.compose_and_record(
                db, user_id, Tone(profile.current_tone), ContextTrigger.milestone_achieved,
                _context(user, profile, achieved[-1].name), now,
            )
    return MilestoneProgressResult(achieved=achieved, profile=profile, tone=decision, message=outcome)
