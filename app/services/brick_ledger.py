"""
Brick Ledger — per-user, per-day completion record and streak math.

Streak rules
------------
  current streak : consecutive LAID days ending today (or yesterday when
                   today has no brick yet). A MISSED brick or a calendar gap
                   ends the run. A REST brick neither counts nor breaks it
                   (unless REST_PRESERVES_STREAK is off).
  longest streak : maintained incrementally, max(stored, current, run of
                   the day just written). Never rescanned, never lowered.
  backfill       : a brick for a past day never raises the current streak
                   (unless BACKFILL_UPDATES_CURRENT_STREAK is on) but can
                   raise the longest streak.

Idempotency
-----------
One brick per (user, day). Writing the same status again returns
`created=False` and no streak update, so callers skip all downstream
recomputation. A different status for a day already written is rejected.

Public API
----------
current_streak(statuses, today, rest_preserves)              -> int          (pure)
run_length_through(statuses, day, rest_preserves)            -> int          (pure)
advance_streak(previous, statuses, day, status, today, policy) -> StreakUpdate (pure)
settle_streak(previous, statuses, today, policy)             -> StreakUpdate (pure)
write_brick(db, user_id, day, status, state, today, ...)     -> LedgerWrite  (flush only)
get_stats(db, user_id, state, today)                         -> BrickStats
get_calendar / get_history / has_brick_today                 -> read helpers
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Mapping, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import BrickConflictError, FutureDateError
from app.models.brick import Brick, BrickStatus

logger = logging.getLogger(__name__)

_ONE_DAY = timedelta(days=1)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LedgerPolicy:
    rest_preserves_streak: bool = True
    backfill_updates_current: bool = False
    celebration_days: tuple[int, ...] = (7, 30, 100, 365)

    @classmethod
    def from_settings(cls) -> "LedgerPolicy":
        return cls(
            rest_preserves_streak=settings.REST_PRESERVES_STREAK,
            backfill_updates_current=settings.BACKFILL_UPDATES_CURRENT_STREAK,
            celebration_days=tuple(sorted(settings.STREAK_CELEBRATION_DAYS)),
        )


@dataclass(frozen=True)
class StreakState:
    current: int = 0
    longest: int = 0
    total_laid: int = 0
    last_laid: Optional[date] = None


@dataclass(frozen=True)
class StreakUpdate:
    previous: StreakState
    state: StreakState
    broken_length: int = 0               # length of the run that just ended, 0 if none
    crossed_celebration: Optional[int] = None  # streak length just reached, e.g. 7

    @property
    def changed(self) -> bool:
        return self.previous != self.state


@dataclass
class LedgerWrite:
    brick: Brick
    created: bool
    update: Optional[StreakUpdate] = None


@dataclass
class BrickStats:
    total_bricks: int
    current_streak: int
    longest_streak: int
    bricks_this_month: int
    bricks_last_7_days: int
    bricks_this_week: int


# ---------------------------------------------------------------------------
# Pure streak math
# ---------------------------------------------------------------------------

def _walk(
    statuses: Mapping[date, BrickStatus],
    start: date,
    step: timedelta,
    rest_preserves: bool,
) -> int:
    """Count LAID days from `start` in direction `step` until the run ends."""
    count = 0
    day = start
    while True:
        status = statuses.get(day)
        if status is None or status == BrickStatus.missed:
            return count
        if status == BrickStatus.rest and not rest_preserves:
            return count
        if status == BrickStatus.laid:
            count += 1
        day += step


def current_streak(
    statuses: Mapping[date, BrickStatus],
    today: date,
    rest_preserves: bool = True,
) -> int:
    start = today if today in statuses else today - _ONE_DAY
    return _walk(statuses, start, -_ONE_DAY, rest_preserves)


def run_length_through(
    statuses: Mapping[date, BrickStatus],
    day: date,
    rest_preserves: bool = True,
) -> int:
    """Length of the LAID run that contains `day` (both directions)."""
    backward = _walk(statuses, day, -_ONE_DAY, rest_preserves)
    forward = _walk(statuses, day + _ONE_DAY, _ONE_DAY, rest_preserves)
    return backward + forward


def _crossed(previous: int, current: int, thresholds: tuple[int, ...]) -> Optional[int]:
    hit = [t for t in thresholds if previous < t <= current]
    return max(hit) if hit else None


def _diff(previous: StreakState, state: StreakState, policy: LedgerPolicy) -> StreakUpdate:
    broken = previous.current if state.current < previous.current else 0
    return StreakUpdate(
        previous=previous,
        state=state,
        broken_length=broken,
        crossed_celebration=_crossed(previous.current, state.current, policy.celebration_days),
    )


def advance_streak(
    previous: StreakState,
    statuses: Mapping[date, BrickStatus],
    day: date,
    status: BrickStatus,
    today: date,
    policy: LedgerPolicy = LedgerPolicy(),
) -> StreakUpdate:
    """
    New streak state after a brick for `day` was added to `statuses`.
    `statuses` must already contain the new brick.
    """
    live = current_streak(statuses, today, policy.rest_preserves_streak)
    if day >= today or policy.backfill_updates_current:
        current = live
    else:
        # Backfill: the stored streak may only shrink (a gap grew since it was written).
        current = min(previous.current, live)

    laid = status == BrickStatus.laid
    run = run_length_through(statuses, day, policy.rest_preserves_streak) if laid else 0
    last_laid = previous.last_laid
    if laid and (last_laid is None or day > last_laid):
        last_laid = day

    state = StreakState(
        current=current,
        longest=max(previous.longest, current, run),
        total_laid=previous.total_laid + (1 if laid else 0),
        last_laid=last_laid,
    )
    return _diff(previous, state, policy)


def settle_streak(
    previous: StreakState,
    statuses: Mapping[date, BrickStatus],
    today: date,
    policy: LedgerPolicy = LedgerPolicy(),
) -> StreakUpdate:
    """Routine recompute with no new brick: the stored streak can only decay."""
    live = current_streak(statuses, today, policy.rest_preserves_streak)
    state = StreakState(
        current=min(previous.current, live),
        longest=previous.longest,
        total_laid=previous.total_laid,
        last_laid=previous.last_laid,
    )
    return _diff(previous, state, policy)


# ---------------------------------------------------------------------------
# Write-time derived attributes
# ---------------------------------------------------------------------------

_STATUS_COLORS = {
    BrickStatus.laid: "#FF6B35",    # orange
    BrickStatus.missed: "#94A3B8",  # light gray
    BrickStatus.rest: "#3B82F6",    # blue
}

# Highest threshold first.
_STREAK_COLORS = (
    (30, "#F59E0B"),  # gold
    (7, "#DC2626"),   # fire red
)


def brick_color(status: BrickStatus, streak_day: int) -> str:
    if status == BrickStatus.laid:
        for threshold, color in _STREAK_COLORS:
            if streak_day >= threshold:
                return color
    return _STATUS_COLORS[BrickStatus(status)]


def _is_first_of_month(statuses: Mapping[date, BrickStatus], day: date) -> bool:
    """True when no earlier LAID brick exists in the same calendar month."""
    return not any(
        d < day and d.year == day.year and d.month == day.month and s == BrickStatus.laid
        for d, s in statuses.items()
    )


# ---------------------------------------------------------------------------
# Store access
# ---------------------------------------------------------------------------

def _load_bricks(db: Session, user_id: int) -> list[Brick]:
    return db.query(Brick).filter(Brick.user_id == user_id).all()


def load_statuses(db: Session, user_id: int) -> dict[date, BrickStatus]:
    return {b.day: BrickStatus(b.status) for b in _load_bricks(db, user_id)}


def write_brick(
    db: Session,
    user_id: int,
    day: date,
    status: BrickStatus,
    *,
    state: StreakState,
    today: date,
    session_id: Optional[int] = None,
    policy: Optional[LedgerPolicy] = None,
) -> LedgerWrite:
    """
    Lay (or mark) the brick for `day`. Flushes but does NOT commit.
    Raises FutureDateError / BrickConflictError before touching the session.
    """
    policy = policy or LedgerPolicy.from_settings()
    status = BrickStatus(status)
    if day > today:
        raise FutureDateError(day=day, today=today)

    bricks = _load_bricks(db, user_id)
    existing = next((b for b in bricks if b.day == day), None)
    if existing is not None:
        existing_status = BrickStatus(existing.status)
        if existing_status != status:
            raise BrickConflictError(day, existing_status.value, status.value)
        logger.debug("Brick for user %s on %s already %s", user_id, day, status.value)
        return LedgerWrite(brick=existing, created=False)

    statuses = {b.day: BrickStatus(b.status) for b in bricks}
    statuses[day] = status

    laid = status == BrickStatus.laid
    streak_day = _walk(statuses, day, -_ONE_DAY, policy.rest_preserves_streak) if laid else 0
    brick = Brick(
        user_id=user_id,
        session_id=session_id,
        day=day,
        status=status,
        color=brick_color(status, streak_day),
        streak_day=streak_day,
        is_first_of_month=laid and _is_first_of_month(statuses, day),
    )
    db.add(brick)
    db.flush()

    update = advance_streak(state, statuses, day, status, today, policy)
    logger.info(
        "Brick %s for user %s on %s (streak %s -> %s, longest %s)",
        status.value, user_id, day,
        update.previous.current, update.state.current, update.state.longest,
    )
    return LedgerWrite(brick=brick, created=True, update=update)


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------

def get_stats(
    db: Session,
    user_id: int,
    state: StreakState,
    today: date,
    policy: Optional[LedgerPolicy] = None,
) -> BrickStats:
    policy = policy or LedgerPolicy.from_settings()
    statuses = load_statuses(db, user_id)
    laid_days = [d for d, s in statuses.items() if s == BrickStatus.laid]

    week_start = today - timedelta(days=today.weekday())
    live = current_streak(statuses, today, policy.rest_preserves_streak)
    return BrickStats(
        total_bricks=len(laid_days),
        current_streak=min(state.current, live),
        longest_streak=state.longest,
        bricks_this_month=sum(
            1 for d in laid_days if d.year == today.year and d.month == today.month
        ),
        bricks_last_7_days=sum(1 for d in laid_days if today - timedelta(days=6) <= d <= today),
        bricks_this_week=sum(1 for d in laid_days if week_start <= d <= today),
    )


def get_calendar(db: Session, user_id: int, year: int, month: int) -> list[Brick]:
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return (
        db.query(Brick)
        .filter(Brick.user_id == user_id, Brick.day >= start, Brick.day < end)
        .order_by(Brick.day.asc())
        .all()
    )


def get_history(db: Session, user_id: int, limit: int = 100, offset: int = 0) -> tuple[int, list[Brick]]:
    """Return (total, page) of bricks, newest day first."""
    q = db.query(Brick).filter(Brick.user_id == user_id)
    total = q.count()
    items = q.order_by(Brick.day.desc()).offset(offset).limit(limit).all()
    return total, items


def has_brick_today(db: Session, user_id: int, today: date) -> bool:
    return (
        db.query(Brick.id)
        .filter(Brick.user_id == user_id, Brick.day == today)
        .first()
        is not None
    )
