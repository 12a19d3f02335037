"""
Behavior Scorer — engagement signals over a trailing window.

Every signal is a pure, deterministic function of the session days and
check-ins inside the window (SCORING_WINDOW_DAYS, clipped to the user's
first day). Same inputs, same outputs; nothing here touches the database
except `apply_signals`, which copies a result onto a profile row.

Signals
-------
  consistency_score   : sum(w * trained) / (goal_fraction * sum(w)), clamped to [0, 1]
                        w = 0.5 ** (age / CONSISTENCY_HALF_LIFE_DAYS)
                        goal_fraction = goal_days_per_week / 7
  momentum_trend      : consistency(newer half) - consistency(older half)
                        > eps -> improving, < -eps -> declining, else stable
  fatigue_score       : weighted blend over the last FATIGUE_LOOKBACK_DAYS of
                        session frequency, normalized stress and inverse
                        normalized energy. A check-in component with no data
                        takes the neutral 0.5.
  recent_energy_score : decay-weighted mean of normalized energy
                        (ENERGY_HALF_LIFE_DAYS); 0.5 with no check-ins.

Check-in scales are 1..5; normalized as (x - 1) / 4.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from app.core.config import settings
from app.models.behavior_profile import BehaviorProfile, MomentumTrend, TimeOfDay

_NEUTRAL = 0.5


class MotivationState:
    MOTIVATED  = "motivated"
    NEUTRAL    = "neutral"
    STRUGGLING = "struggling"


# ---------------------------------------------------------------------------
# Inputs / outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionEvent:
    day: date
    started_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None


@dataclass(frozen=True)
class CheckInEvent:
    day: date
    energy_level: int
    stress_level: int


@dataclass(frozen=True)
class ScoringConfig:
    window_days: int = 28
    consistency_half_life: float = 7.0
    energy_half_life: float = 3.0
    momentum_epsilon: float = 0.1
    fatigue_lookback_days: int = 3
    weight_frequency: float = 0.4
    weight_stress: float = 0.3
    weight_low_energy: float = 0.3

    @classmethod
    def from_settings(cls) -> "ScoringConfig":
        return cls(
            window_days=settings.SCORING_WINDOW_DAYS,
            consistency_half_life=settings.CONSISTENCY_HALF_LIFE_DAYS,
            energy_half_life=settings.ENERGY_HALF_LIFE_DAYS,
            momentum_epsilon=settings.MOMENTUM_EPSILON,
            fatigue_lookback_days=settings.FATIGUE_LOOKBACK_DAYS,
            weight_frequency=settings.FATIGUE_WEIGHT_FREQUENCY,
            weight_stress=settings.FATIGUE_WEIGHT_STRESS,
            weight_low_energy=settings.FATIGUE_WEIGHT_LOW_ENERGY,
        )


@dataclass(frozen=True)
class BehaviorSignals:
    consistency_score: float
    momentum_trend: MomentumTrend
    fatigue_score: float
    recent_energy_score: float
    avg_session_duration: Optional[int] = None
    avg_workout_time_of_day: Optional[TimeOfDay] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _clamp(value: float) -> float:
    return max(0.0, min(value, 1.0))


def _normalize(level: int) -> float:
    return _clamp((level - 1) / 4)


def _decay(age_days: int, half_life: float) -> float:
    return 0.5 ** (age_days / half_life)


def _window(today: date, first_day: Optional[date], window_days: int) -> list[date]:
    """Days in the window, newest first."""
    start = today - timedelta(days=window_days - 1)
    if first_day is not None and first_day > start:
        start = min(first_day, today)
    span = (today - start).days + 1
    return [today - timedelta(days=i) for i in range(span)]


def time_of_day(moment: datetime) -> TimeOfDay:
    if moment.hour < 12:
        return TimeOfDay.morning
    if moment.hour < 17:
        return TimeOfDay.afternoon
    return TimeOfDay.evening


# ---------------------------------------------------------------------------
# Individual signals
# ---------------------------------------------------------------------------

def consistency(
    days: Sequence[date],
    trained: set[date],
    goal_fraction: float,
    half_life: float,
) -> float:
    """`days` newest first; age is measured from days[0]."""
    if not days or goal_fraction <= 0:
        return 0.0
    newest = days[0]
    done = 0.0
    total = 0.0
    for day in days:
        w = _decay((newest - day).days, half_life)
        total += w
        if day in trained:
            done += w
    return _clamp(done / (goal_fraction * total))


def momentum(
    days: Sequence[date],
    trained: set[date],
    goal_fraction: float,
    half_life: float,
    epsilon: float,
) -> MomentumTrend:
    if len(days) < 2:
        return MomentumTrend.stable
    middle = len(days) // 2
    newer = consistency(days[:middle], trained, goal_fraction, half_life)
    older = consistency(days[middle:], trained, goal_fraction, half_life)
    delta = newer - older
    if delta > epsilon:
        return MomentumTrend.improving
    if delta < -epsilon:
        return MomentumTrend.declining
    return MomentumTrend.stable


def fatigue(
    days: Sequence[date],
    trained: set[date],
    checkins: Sequence[CheckInEvent],
    config: ScoringConfig,
) -> float:
    lookback = list(days[: config.fatigue_lookback_days])
    if not lookback:
        return 0.0
    in_lookback = set(lookback)
    recent = [c for c in checkins if c.day in in_lookback]

    frequency = sum(1 for d in lookback if d in trained) / len(lookback)
    if recent:
        stress = sum(_normalize(c.stress_level) for c in recent) / len(recent)
        low_energy = sum(1 - _normalize(c.energy_level) for c in recent) / len(recent)
    else:
        stress = low_energy = _NEUTRAL

    weights = config.weight_frequency + config.weight_stress + config.weight_low_energy
    if weights <= 0:
        return 0.0
    blended = (
        config.weight_frequency * frequency
        + config.weight_stress * stress
        + config.weight_low_energy * low_energy
    ) / weights
    return _clamp(blended)


def recent_energy(
    today: date,
    checkins: Sequence[CheckInEvent],
    half_life: float,
) -> float:
    if not checkins:
        return _NEUTRAL
    weighted = 0.0
    total = 0.0
    for c in checkins:
        w = _decay((today - c.day).days, half_life)
        weighted += w * _normalize(c.energy_level)
        total += w
    return _clamp(weighted / total) if total else _NEUTRAL


def _preferences(sessions: Sequence[SessionEvent]) -> tuple[Optional[int], Optional[TimeOfDay]]:
    durations = [s.duration_minutes for s in sessions if s.duration_minutes is not None]
    avg_duration = round(sum(durations) / len(durations)) if durations else None

    buckets = Counter(time_of_day(s.started_at) for s in sessions if s.started_at is not None)
    dominant = None
    if buckets:
        # Ties resolve to the earlier part of the day.
        order = list(TimeOfDay)
        dominant = max(buckets, key=lambda b: (buckets[b], -order.index(b)))
    return avg_duration, dominant


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def score(
    sessions: Sequence[SessionEvent],
    checkins: Sequence[CheckInEvent],
    today: date,
    *,
    first_day: Optional[date] = None,
    goal_days_per_week: int = 7,
    config: Optional[ScoringConfig] = None,
) -> BehaviorSignals:
    config = config or ScoringConfig.from_settings()
    days = _window(today, first_day, config.window_days)
    oldest = days[-1]

    in_window = [s for s in sessions if oldest <= s.day <= today]
    trained = {s.day for s in in_window}
    window_checkins = [c for c in checkins if oldest <= c.day <= today]
    goal_fraction = max(0, min(goal_days_per_week, 7)) / 7

    avg_duration, dominant = _preferences(in_window)
    return BehaviorSignals(
        consistency_score=consistency(days, trained, goal_fraction, config.consistency_half_life),
        momentum_trend=momentum(
            days, trained, goal_fraction, config.consistency_half_life, config.momentum_epsilon
        ),
        fatigue_score=fatigue(days, trained, window_checkins, config),
        recent_energy_score=recent_energy(today, window_checkins, config.energy_half_life),
        avg_session_duration=avg_duration,
        avg_workout_time_of_day=dominant,
    )


def apply_signals(profile: BehaviorProfile, signals: BehaviorSignals) -> None:
    """Write all signals together. Derived preferences keep their last value when absent."""
    profile.consistency_score = signals.consistency_score
    profile.momentum_trend = signals.momentum_trend
    profile.fatigue_score = signals.fatigue_score
    profile.recent_energy_score = signals.recent_energy_score
    if signals.avg_session_duration is not None:
        profile.avg_session_duration = signals.avg_session_duration
    if signals.avg_workout_time_of_day is not None:
        profile.avg_workout_time_of_day = signals.avg_workout_time_of_day


def motivation_state(consistency_score: float) -> str:
    if consistency_score >= settings.CONSISTENCY_HIGH:
        return MotivationState.MOTIVATED
    if consistency_score < settings.CONSISTENCY_LOW:
        return MotivationState.STRUGGLING
    return MotivationState.NEUTRAL
