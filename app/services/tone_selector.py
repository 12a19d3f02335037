"""
Tone Selector — coaching tone state machine with hysteresis.

The profile's signals are reduced to one SignalBucket; the triggering event
is one EventClass. `TRANSITIONS[(current_tone, bucket, event)]` gives the
candidate tone and whether the change is forced. The table covers every
combination (see `_build_transitions`).

Buckets (first match wins)
--------------------------
  dormant    : nothing laid yet, or zero consistency in the window
  fatigued   : fatigue_score >= FATIGUE_HIGH
  struggling : consistency_score < CONSISTENCY_LOW
  declining  : momentum_trend == declining
  thriving   : streak >= CHALLENGE_STREAK_DAYS and consistency >= CONSISTENCY_HIGH
  rising     : momentum_trend == improving
  steady     : anything else

Hysteresis
----------
Forced transitions (milestone achieved, streak broken) always apply and
stamp `last_tone_change`, even when the tone itself does not change.
A non-forced change is suppressed while
`now - last_tone_change < TONE_MIN_DWELL_HOURS`.
"""
from __future__ import annotations

import enum
import itertools
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from app.core.clock import as_utc, utcnow
from app.core.config import settings
from app.models.behavior_profile import BehaviorProfile, MomentumTrend, Tone

logger = logging.getLogger(__name__)


class EventClass(str, enum.Enum):
    routine = "routine"
    milestone_achieved = "milestone_achieved"
    streak_broken = "streak_broken"
    streak_milestone = "streak_milestone"


class SignalBucket(str, enum.Enum):
    dormant = "dormant"
    fatigued = "fatigued"
    struggling = "struggling"
    declining = "declining"
    thriving = "thriving"
    rising = "rising"
    steady = "steady"


@dataclass(frozen=True)
class ToneConfig:
    consistency_high: float = 0.7
    consistency_low: float = 0.4
    fatigue_high: float = 0.75
    challenge_streak_days: int = 7
    min_dwell: timedelta = timedelta(hours=24)

    @classmethod
    def from_settings(cls) -> "ToneConfig":
        return cls(
            consistency_high=settings.CONSISTENCY_HIGH,
            consistency_low=settings.CONSISTENCY_LOW,
            fatigue_high=settings.FATIGUE_HIGH,
            challenge_streak_days=settings.CHALLENGE_STREAK_DAYS,
            min_dwell=timedelta(hours=settings.TONE_MIN_DWELL_HOURS),
        )


@dataclass(frozen=True)
class Transition:
    tone: Tone
    forced: bool = False


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------

_ROUTINE_TARGETS: dict[SignalBucket, Tone] = {
    SignalBucket.dormant:    Tone.neutral,
    SignalBucket.fatigued:   Tone.empathetic,
    SignalBucket.struggling: Tone.empathetic,
    SignalBucket.declining:  Tone.encouraging,
    SignalBucket.thriving:   Tone.challenging,
    SignalBucket.rising:     Tone.celebratory,
    SignalBucket.steady:     Tone.encouraging,
}

# (current, bucket) pairs where a routine recompute steps down gently.
_ROUTINE_OVERRIDES: dict[tuple[Tone, SignalBucket], Tone] = {
    (Tone.empathetic, SignalBucket.declining): Tone.empathetic,
    (Tone.empathetic, SignalBucket.rising):    Tone.encouraging,
}


def _transition_for(current: Tone, bucket: SignalBucket, event: EventClass) -> Transition:
    if event == EventClass.milestone_achieved:
        return Transition(Tone.celebratory, forced=True)
    if event == EventClass.streak_broken:
        return Transition(Tone.empathetic, forced=True)
    if event == EventClass.streak_milestone:
        if bucket == SignalBucket.fatigued:
            return Transition(Tone.empathetic)
        return Transition(Tone.celebratory)
    target = _ROUTINE_OVERRIDES.get((current, bucket), _ROUTINE_TARGETS[bucket])
    return Transition(target)


def _build_transitions() -> dict[tuple[Tone, SignalBucket, EventClass], Transition]:
    return {
        (tone, bucket, event): _transition_for(tone, bucket, event)
        for tone, bucket, event in itertools.product(Tone, SignalBucket, EventClass)
    }


TRANSITIONS = _build_transitions()


# ---------------------------------------------------------------------------
# Classification and decision (pure)
# ---------------------------------------------------------------------------

def classify_signals(
    *,
    consecutive_days: int,
    total_bricks_laid: int,
    consistency_score: float,
    momentum_trend: MomentumTrend,
    fatigue_score: float,
    config: ToneConfig = ToneConfig(),
) -> SignalBucket:
    if total_bricks_laid == 0 or consistency_score <= 0:
        return SignalBucket.dormant
    if fatigue_score >= config.fatigue_high:
        return SignalBucket.fatigued
    if consistency_score < config.consistency_low:
        return SignalBucket.struggling
    if momentum_trend == MomentumTrend.declining:
        return SignalBucket.declining
    if (
        consecutive_days >= config.challenge_streak_days
        and consistency_score >= config.consistency_high
    ):
        return SignalBucket.thriving
    if momentum_trend == MomentumTrend.improving:
        return SignalBucket.rising
    return SignalBucket.steady


def classify_profile(profile: BehaviorProfile, config: ToneConfig = ToneConfig()) -> SignalBucket:
    return classify_signals(
        consecutive_days=profile.consecutive_days,
        total_bricks_laid=profile.total_bricks_laid,
        consistency_score=profile.consistency_score,
        momentum_trend=MomentumTrend(profile.momentum_trend),
        fatigue_score=profile.fatigue_score,
        config=config,
    )


@dataclass(frozen=True)
class ToneDecision:
    previous: Tone
    tone: Tone
    candidate: Tone
    bucket: SignalBucket
    event: EventClass
    forced: bool
    stamped: bool       # last_tone_change must be set to now
    suppressed: bool    # candidate differed but dwell blocked it

    @property
    def changed(self) -> bool:
        return self.tone != self.previous


def next_tone(
    current: Tone,
    last_tone_change: Optional[datetime],
    bucket: SignalBucket,
    event: EventClass,
    now: datetime,
    min_dwell: timedelta = timedelta(hours=24),
) -> ToneDecision:
    current = Tone(current)
    transition = TRANSITIONS[(current, bucket, event)]
    decision = dict(previous=current, candidate=transition.tone, bucket=bucket,
                    event=event, forced=transition.forced)

    if transition.forced:
        return ToneDecision(tone=transition.tone, stamped=True, suppressed=False, **decision)
    if transition.tone == current:
        return ToneDecision(tone=current, stamped=False, suppressed=False, **decision)

    last = as_utc(last_tone_change)
    if last is not None and now - last < min_dwell:
        return ToneDecision(tone=current, stamped=False, suppressed=True, **decision)
    return ToneDecision(tone=transition.tone, stamped=True, suppressed=False, **decision)


def apply_tone(
    profile: BehaviorProfile,
    event: EventClass,
    now: Optional[datetime] = None,
    config: Optional[ToneConfig] = None,
) -> ToneDecision:
    """Decide and write `current_tone` / `last_tone_change` on the profile."""
    config = config or ToneConfig.from_settings()
    now = now or utcnow()
    bucket = classify_profile(profile, config)
    decision = next_tone(
        Tone(profile.current_tone), profile.last_tone_change, bucket, event, now, config.min_dwell
    )

    if decision.stamped:
        profile.current_tone = decision.tone
        profile.last_tone_change = now
    if decision.changed:
        logger.info(
            "Tone for user %s: %s -> %s (bucket=%s, event=%s%s)",
            profile.user_id, decision.previous.value, decision.tone.value,
            bucket.value, event.value, ", forced" if decision.forced else "",
        )
    elif decision.suppressed:
        logger.debug(
            "Tone change %s -> %s for user %s suppressed by dwell",
            decision.previous.value, decision.candidate.value, profile.user_id,
        )
    return decision
