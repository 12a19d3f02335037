"""
Milestone Tracker — per-user progress counters against fixed targets.

Progress rules
--------------
  mode=increment : current += value
  mode=set       : current  = value
  Negative values are rejected (NegativeProgressError). The result is
  clamped to [0, target]. The first time current reaches target the
  milestone flips to achieved and `achieved_at` is stamped. Achieved
  milestones are frozen: later updates are no-ops.

Projection
----------
  progress_percentage = round(current / target * 100), in [0, 100]
  remaining_value     = max(target - current, 0)
  almost_complete     = not achieved and percentage >= 80
  in_progress         = current > 0 and not achieved

Public API
----------
apply_progress(current, target, is_achieved, value, mode) -> ProgressResult  (pure)
project(milestone)                                        -> MilestoneProjection
initialize_milestones(db, user_id, catalog)               -> list[Milestone]  (new rows only)
update_progress(db, user_id, type, value, mode, now)      -> list[Milestone]  (newly achieved)
create_custom_milestone(db, user_id, ...)                 -> Milestone
list_milestones(db, user_id, status, milestone_type)      -> list[MilestoneProjection]
achieved_count(db, user_id)                               -> int

No function here commits; the caller owns the transaction.
"""
from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.errors import InvalidStateError, NegativeProgressError
from app.models.milestone import Milestone, MilestoneType

logger = logging.getLogger(__name__)

_ALMOST_COMPLETE_PERCENT = 80


class ProgressMode(str, enum.Enum):
    increment = "increment"
    set = "set"


class MilestoneStatusFilter(str, enum.Enum):
    all = "all"
    achieved = "achieved"
    in_progress = "in_progress"
    almost_complete = "almost_complete"


# ---------------------------------------------------------------------------
# Default catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CatalogEntry:
    milestone_type: MilestoneType
    target_value: int
    name: str
    description: str


DEFAULT_CATALOG: tuple[CatalogEntry, ...] = (
    # Beginner wins
    CatalogEntry(MilestoneType.workout_count, 1, "First Brick Laid!", "Your first workout is complete!"),
    CatalogEntry(MilestoneType.streak, 3, "3-Day Streak!", "Three days in a row! You're building momentum!"),
    CatalogEntry(MilestoneType.workout_count, 5, "5 Workouts!", "You've completed 5 workouts!"),
    CatalogEntry(MilestoneType.streak, 7, "7-Day Warrior!", "One full week! This is a habit now!"),
    # Building momentum
    CatalogEntry(MilestoneType.workout_count, 10, "First 10!", "10 workouts complete! You're serious about this!"),
    CatalogEntry(MilestoneType.streak, 14, "14-Day Dedication!", "Two weeks strong!"),
    CatalogEntry(MilestoneType.workout_count, 25, "25 Workouts!", "Quarter century of workouts!"),
    CatalogEntry(MilestoneType.streak, 30, "30-Day Champion!", "One full month of consistency!"),
    # Established habit
    CatalogEntry(MilestoneType.workout_count, 50, "50 Workouts!", "Half a hundred! Impressive!"),
    CatalogEntry(MilestoneType.streak, 60, "60-Day Diamond!", "Two months of daily dedication!"),
    CatalogEntry(MilestoneType.workout_count, 100, "Century Club!", "100 workouts completed!"),
    CatalogEntry(MilestoneType.streak, 100, "100-Day Club!", "Triple digits! You're elite!"),
    # Advanced
    CatalogEntry(MilestoneType.workout_count, 200, "200 Workouts!", "Two hundred strong!"),
    CatalogEntry(MilestoneType.streak, 180, "6-Month Streak!", "180 days of consistency!"),
    CatalogEntry(MilestoneType.streak, 365, "365-Day Legend!", "ONE FULL YEAR! Incredible!"),
    CatalogEntry(MilestoneType.workout_count, 500, "500-Workout Hero!", "You're a fitness superhero!"),
)


# ---------------------------------------------------------------------------
# Pure progress math
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProgressResult:
    current_value: int
    is_achieved: bool
    newly_achieved: bool


def apply_progress(
    current: int,
    target: int,
    is_achieved: bool,
    value: int,
    mode: ProgressMode,
) -> ProgressResult:
    if value < 0:
        raise NegativeProgressError(value)
    if is_achieved:
        return ProgressResult(current_value=current, is_achieved=True, newly_achieved=False)

    raw = current + value if ProgressMode(mode) == ProgressMode.increment else value
    clamped = max(0, min(raw, target))
    reached = clamped >= target
    return ProgressResult(current_value=clamped, is_achieved=reached, newly_achieved=reached)


def progress_percentage(current: int, target: int) -> int:
    if target <= 0:
        return 100
    # Half-up rounding; keeps the value monotone in `current`.
    pct = math.floor(current * 100 / target + 0.5)
    return max(0, min(pct, 100))


@dataclass
class MilestoneProjection:
    milestone: Milestone
    progress_percentage: int
    remaining_value: int
    almost_complete: bool
    in_progress: bool


def project(milestone: Milestone) -> MilestoneProjection:
    pct = progress_percentage(milestone.current_value, milestone.target_value)
    achieved = bool(milestone.is_achieved)
    return MilestoneProjection(
        milestone=milestone,
        progress_percentage=pct,
        remaining_value=max(milestone.target_value - milestone.current_value, 0),
        almost_complete=not achieved and pct >= _ALMOST_COMPLETE_PERCENT,
        in_progress=milestone.current_value > 0 and not achieved,
    )


# ---------------------------------------------------------------------------
# Store operations
# ---------------------------------------------------------------------------

def initialize_milestones(
    db: Session,
    user_id: int,
    catalog: Iterable[CatalogEntry] = DEFAULT_CATALOG,
) -> list[Milestone]:
    """Insert the catalog entries the user does not have yet. Safe to repeat."""
    existing = {
        (MilestoneType(t), v)
        for t, v in db.query(Milestone.milestone_type, Milestone.target_value)
        .filter(Milestone.user_id == user_id)
        .all()
    }
    created: list[Milestone] = []
    for entry in catalog:
        key = (entry.milestone_type, entry.target_value)
        if key in existing:
            continue
        existing.add(key)
        milestone = Milestone(
            user_id=user_id,
            name=entry.name,
            description=entry.description,
            milestone_type=entry.milestone_type,
            target_value=entry.target_value,
            current_value=0,
            is_achieved=False,
        )
        db.add(milestone)
        created.append(milestone)
    if created:
        db.flush()
        logger.info("Initialized %d milestones for user %s", len(created), user_id)
    return created


def update_progress(
    db: Session,
    user_id: int,
    milestone_type: MilestoneType,
    value: int,
    mode: ProgressMode = ProgressMode.set,
    now: Optional[datetime] = None,
) -> list[Milestone]:
    """
    Apply `value` to every milestone of `milestone_type` the user has.
    Returns the milestones that were achieved by this update.
    """
    if value < 0:
        raise NegativeProgressError(value)
    now = now or utcnow()

    milestones = (
        db.query(Milestone)
        .filter(
            Milestone.user_id == user_id,
            Milestone.milestone_type == milestone_type,
            Milestone.is_achieved.is_(False),
        )
        .order_by(Milestone.target_value.asc())
        .all()
    )

    newly_achieved: list[Milestone] = []
    for milestone in milestones:
        result = apply_progress(
            milestone.current_value, milestone.target_value, milestone.is_achieved, value, mode
        )
        milestone.current_value = result.current_value
        if result.newly_achieved:
            milestone.is_achieved = True
            milestone.achieved_at = now
            newly_achieved.append(milestone)
            logger.info(
                "Milestone achieved: %r (%s %d) for user %s",
                milestone.name, MilestoneType(milestone.milestone_type).value,
                milestone.target_value, user_id,
            )
    db.flush()
    return newly_achieved


def create_custom_milestone(
    db: Session,
    user_id: int,
    name: str,
    milestone_type: MilestoneType,
    target_value: int,
    description: Optional[str] = None,
) -> Milestone:
    duplicate = (
        db.query(Milestone.id)
        .filter(
            Milestone.user_id == user_id,
            Milestone.milestone_type == milestone_type,
            Milestone.target_value == target_value,
        )
        .first()
    )
    if duplicate is not None:
        raise InvalidStateError(
            message=f"A {MilestoneType(milestone_type).value} milestone with target "
                    f"{target_value} already exists.",
            details={"milestone_type": MilestoneType(milestone_type).value,
                     "target_value": target_value},
        )
    milestone = Milestone(
        user_id=user_id,
        name=name,
        description=description,
        milestone_type=milestone_type,
        target_value=target_value,
        current_value=0,
        is_achieved=False,
    )
    db.add(milestone)
    db.flush()
    logger.info("Created custom milestone %r for user %s", name, user_id)
    return milestone


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------

def list_milestones(
    db: Session,
    user_id: int,
    status: MilestoneStatusFilter = MilestoneStatusFilter.all,
    milestone_type: Optional[MilestoneType] = None,
) -> list[MilestoneProjection]:
    q = db.query(Milestone).filter(Milestone.user_id == user_id)
    if milestone_type is not None:
        q = q.filter(Milestone.milestone_type == milestone_type)
    if status == MilestoneStatusFilter.achieved:
        q = q.filter(Milestone.is_achieved.is_(True))
    elif status in (MilestoneStatusFilter.in_progress, MilestoneStatusFilter.almost_complete):
        q = q.filter(Milestone.is_achieved.is_(False))

    rows = q.order_by(Milestone.milestone_type.asc(), Milestone.target_value.asc()).all()
    projections = [project(m) for m in rows]
    if status == MilestoneStatusFilter.in_progress:
        projections = [p for p in projections if p.in_progress]
    elif status == MilestoneStatusFilter.almost_complete:
        projections = [p for p in projections if p.almost_complete]
    return projections


def achieved_count(db: Session, user_id: int) -> int:
    return (
        db.query(Milestone)
        .filter(Milestone.user_id == user_id, Milestone.is_achieved.is_(True))
        .count()
    )
