"""
Tests for the Tone Selector: bucket classification, the transition table
and dwell-time hysteresis.
"""
from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from app.models.behavior_profile import BehaviorProfile, MomentumTrend, Tone
from app.services.tone_selector import (
    TRANSITIONS,
    EventClass,
    SignalBucket,
    ToneConfig,
    apply_tone,
    classify_signals,
    next_tone,
)

NOW = datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)
DWELL = timedelta(hours=24)


def _bucket(**overrides) -> SignalBucket:
    signals = dict(
        consecutive_days=3,
        total_bricks_laid=10,
        consistency_score=0.6,
        momentum_trend=MomentumTrend.stable,
        fatigue_score=0.2,
    )
    signals.update(overrides)
    return classify_signals(**signals)


class TestClassify:
    def test_dormant(self):
        assert _bucket(total_bricks_laid=0) == SignalBucket.dormant
        assert _bucket(consistency_score=0.0) == SignalBucket.dormant

    def test_fatigued_wins_over_everything_but_dormant(self):
        assert _bucket(fatigue_score=0.9, consistency_score=0.1) == SignalBucket.fatigued

    def test_struggling(self):
        assert _bucket(consistency_score=0.3) == SignalBucket.struggling

    def test_declining(self):
        assert _bucket(momentum_trend=MomentumTrend.declining) == SignalBucket.declining

    def test_thriving(self):
        assert _bucket(consecutive_days=7, consistency_score=0.8) == SignalBucket.thriving

    def test_long_streak_low_consistency_is_not_thriving(self):
        assert _bucket(consecutive_days=10, consistency_score=0.5) == SignalBucket.steady

    def test_rising(self):
        assert _bucket(momentum_trend=MomentumTrend.improving) == SignalBucket.rising

    def test_steady(self):
        assert _bucket() == SignalBucket.steady

    def test_thresholds_come_from_config(self):
        strict = ToneConfig(consistency_low=0.7)
        assert classify_signals(
            consecutive_days=3, total_bricks_laid=10, consistency_score=0.6,
            momentum_trend=MomentumTrend.stable, fatigue_score=0.2, config=strict,
        ) == SignalBucket.struggling


class TestTransitionTable:
    def test_table_is_exhaustive(self):
        combos = set(itertools.product(Tone, SignalBucket, EventClass))
        assert set(TRANSITIONS) == combos
        assert len(TRANSITIONS) == len(Tone) * len(SignalBucket) * len(EventClass)

    @pytest.mark.parametrize("tone, bucket", itertools.product(Tone, SignalBucket))
    def test_milestone_achieved_forces_celebratory(self, tone, bucket):
        t = TRANSITIONS[(tone, bucket, EventClass.milestone_achieved)]
        assert t.tone == Tone.celebratory and t.forced

    @pytest.mark.parametrize("tone, bucket", itertools.product(Tone, SignalBucket))
    def test_streak_broken_forces_empathetic(self, tone, bucket):
        t = TRANSITIONS[(tone, bucket, EventClass.streak_broken)]
        assert t.tone == Tone.empathetic and t.forced

    def test_routine_is_never_forced(self):
        assert not any(
            t.forced for (_, _, event), t in TRANSITIONS.items() if event == EventClass.routine
        )

    def test_every_tone_reachable_from_every_tone(self):
        for current in Tone:
            reachable = {
                t.tone for (tone, _, _), t in TRANSITIONS.items() if tone == current
            }
            assert reachable == set(Tone)

    def test_empathetic_steps_down_gently(self):
        assert TRANSITIONS[(Tone.empathetic, SignalBucket.rising, EventClass.routine)].tone == Tone.encouraging
        assert TRANSITIONS[(Tone.neutral, SignalBucket.rising, EventClass.routine)].tone == Tone.celebratory


class TestHysteresis:
    def test_new_profile_changes_immediately(self):
        d = next_tone(Tone.neutral, None, SignalBucket.steady, EventClass.routine, NOW, DWELL)
        assert d.tone == Tone.encouraging
        assert d.stamped and d.changed and not d.suppressed

    def test_non_forced_within_dwell_suppressed(self):
        last = NOW - timedelta(hours=3)
        d = next_tone(Tone.encouraging, last, SignalBucket.thriving, EventClass.routine, NOW, DWELL)
        assert d.tone == Tone.encouraging
        assert d.candidate == Tone.challenging
        assert d.suppressed and not d.stamped

    def test_non_forced_after_dwell_applies(self):
        last = NOW - timedelta(hours=24)
        d = next_tone(Tone.encouraging, last, SignalBucket.thriving, EventClass.routine, NOW, DWELL)
        assert d.tone == Tone.challenging
        assert d.stamped

    def test_forced_ignores_dwell(self):
        last = NOW - timedelta(minutes=5)
        d = next_tone(Tone.challenging, last, SignalBucket.thriving, EventClass.streak_broken, NOW, DWELL)
        assert d.tone == Tone.empathetic
        assert d.forced and d.stamped

    def test_forced_same_tone_still_stamps(self):
        last = NOW - timedelta(minutes=5)
        d = next_tone(Tone.celebratory, last, SignalBucket.steady, EventClass.milestone_achieved, NOW, DWELL)
        assert not d.changed
        assert d.stamped

    def test_unchanged_candidate_is_noop(self):
        d = next_tone(Tone.encouraging, None, SignalBucket.steady, EventClass.routine, NOW, DWELL)
        assert not d.changed and not d.stamped and not d.suppressed

    def test_naive_last_change_treated_as_utc(self):
        last = (NOW - timedelta(hours=1)).replace(tzinfo=None)
        d = next_tone(Tone.encouraging, last, SignalBucket.thriving, EventClass.routine, NOW, DWELL)
        assert d.suppressed


class TestApplyTone:
    def _profile(self, **kw) -> BehaviorProfile:
        fields = dict(
            user_id=1,
            current_tone=Tone.neutral,
            last_tone_change=None,
            consecutive_days=8,
            total_bricks_laid=20,
            consistency_score=0.9,
            momentum_trend=MomentumTrend.stable,
            fatigue_score=0.3,
        )
        fields.update(kw)
        return BehaviorProfile(**fields)

    def test_writes_tone_and_stamp(self):
        p = self._profile()
        d = apply_tone(p, EventClass.routine, NOW, ToneConfig())
        assert d.bucket == SignalBucket.thriving
        assert p.current_tone == Tone.challenging
        assert p.last_tone_change == NOW

    def test_suppressed_leaves_profile_untouched(self):
        last = NOW - timedelta(hours=2)
        p = self._profile(current_tone=Tone.encouraging, last_tone_change=last)
        apply_tone(p, EventClass.routine, NOW, ToneConfig())
        assert p.current_tone == Tone.encouraging
        assert p.last_tone_change == last

    def test_repeat_with_same_inputs_is_stable(self):
        p = self._profile()
        apply_tone(p, EventClass.routine, NOW, ToneConfig())
        second = apply_tone(p, EventClass.routine, NOW + timedelta(days=2), ToneConfig())
        assert not second.changed
        assert p.last_tone_change == NOW
