"""
End-to-end tests for the coaching orchestrator: ledger, scorer, milestones,
tone and messages moving together inside one unit of work.

Day 1 of the test calendar is 2025-03-01; events happen at 09:00 UTC.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.errors import (
    BrickConflictError,
    CheckInLockedError,
    CheckInNotFoundError,
    SessionAlreadyCompletedError,
    UserNotFoundError,
    ValidationFailure,
)
from app.models.behavior_profile import Tone
from app.models.brick import BrickStatus
from app.models.daily_checkin import Mood
from app.models.milestone import MilestoneType
from app.services import (
    brick_ledger,
    checkins,
    coaching,
    message_composer,
    milestone_tracker,
    sessions,
)
from app.services.message_composer import ContextTrigger
from app.services.milestone_tracker import MilestoneStatusFilter, ProgressMode
from app.services.tone_selector import EventClass

D0 = date(2025, 3, 1)


def _now(n: int, hour: int = 9, minute: int = 0) -> datetime:
    return datetime(2025, 3, n, hour, minute, tzinfo=timezone.utc)


def _d(n: int) -> date:
    return D0 + timedelta(days=n - 1)


def _triggers(db, user_id) -> list[str]:
    return [m.context_trigger for m in reversed(message_composer.get_recent_messages(db, user_id))]


class TestScenario:
    def test_first_week(self, db, make_user):
        user = make_user()

        # Day 1: first brick.
        r1 = coaching.record_completion(db, user.id, now=_now(1))
        assert r1.created
        assert r1.brick.streak_day == 1
        assert [m.name for m in r1.achieved] == ["First Brick Laid!"]
        assert r1.tone.event == EventClass.milestone_achieved
        assert r1.profile.current_tone == Tone.celebratory
        assert r1.message.trigger == ContextTrigger.milestone_achieved
        assert "First Brick Laid!" in r1.message.message.text

        # Days 2 and 3: streak of three.
        coaching.record_completion(db, user.id, now=_now(2))
        r3 = coaching.record_completion(db, user.id, now=_now(3))
        assert r3.profile.consecutive_days == 3
        assert [m.target_value for m in r3.achieved] == [3]
        assert r3.tone.forced
        assert r3.profile.current_tone == Tone.celebratory

        # Day 4: missed. The three-day streak is broken.
        r4 = coaching.record_miss(db, user.id, now=_now(4))
        assert r4.brick.status == BrickStatus.missed
        assert r4.streak.broken_length == 3
        assert r4.profile.consecutive_days == 0
        assert r4.profile.longest_streak == 3
        assert r4.profile.current_tone == Tone.empathetic
        assert r4.message.trigger == ContextTrigger.streak_broken
        assert "3 days" in r4.message.message.text

        # Day 5: back on the wall. Momentum is down, tone stays gentle.
        r5 = coaching.record_completion(db, user.id, now=_now(5))
        assert r5.profile.consecutive_days == 1
        assert r5.profile.longest_streak == 3
        assert r5.profile.total_bricks_laid == 4
        assert r5.achieved == []
        assert r5.profile.current_tone == Tone.empathetic
        assert r5.message.trigger == ContextTrigger.workout_complete

        assert _triggers(db, user.id) == [
            "milestone_achieved", "workout_complete", "milestone_achieved",
            "streak_broken", "workout_complete",
        ]
        workout = milestone_tracker.list_milestones(
            db, user.id, MilestoneStatusFilter.all, MilestoneType.workout_count
        )
        assert workout[1].milestone.current_value == 4

    def test_rest_day_keeps_streak_and_sends_nothing(self, db, make_user):
        user = make_user()
        coaching.record_completion(db, user.id, now=_now(1))
        coaching.record_completion(db, user.id, now=_now(2))
        rest = coaching.record_rest(db, user.id, now=_now(3))
        assert rest.brick.status == BrickStatus.rest
        assert rest.message is None
        after = coaching.record_completion(db, user.id, now=_now(4))
        assert after.profile.consecutive_days == 3


class TestIdempotence:
    def test_same_completion_twice(self, db, make_user):
        user = make_user()
        first = coaching.record_completion(db, user.id, now=_now(1))
        snapshot = (
            first.profile.consecutive_days,
            first.profile.total_bricks_laid,
            first.profile.consistency_score,
            first.profile.current_tone,
        )
        messages = len(message_composer.get_recent_messages(db, user.id))

        again = coaching.record_completion(db, user.id, now=_now(1, hour=18))
        assert again.created is False
        assert again.brick.id == first.brick.id
        assert again.message is None
        profile = coaching.get_profile(db, user.id)
        assert (
            profile.consecutive_days,
            profile.total_bricks_laid,
            profile.consistency_score,
            profile.current_tone,
        ) == snapshot
        assert len(message_composer.get_recent_messages(db, user.id)) == messages

    def test_conflicting_status_writes_nothing(self, db, make_user):
        user = make_user()
        coaching.record_completion(db, user.id, now=_now(1))
        with pytest.raises(BrickConflictError):
            coaching.record_miss(db, user.id, now=_now(1, hour=20))
        profile = coaching.get_profile(db, user.id)
        assert profile.total_bricks_laid == 1
        assert brick_ledger.load_statuses(db, user.id) == {_d(1): BrickStatus.laid}


class TestAtomicity:
    def test_failure_mid_operation_rolls_everything_back(self, db, make_user, monkeypatch):
        user = make_user()

        def boom(*args, **kwargs):
            raise RuntimeError("composer down")

        monkeypatch.setattr(message_composer, "compose_and_record", boom)
        with pytest.raises(RuntimeError):
            coaching.record_completion(db, user.id, now=_now(1))

        assert brick_ledger.load_statuses(db, user.id) == {}
        profile = coaching.get_profile(db, user.id)
        assert profile.total_bricks_laid == 0
        assert profile.current_tone == Tone.neutral
        assert milestone_tracker.achieved_count(db, user.id) == 0

    def test_unknown_user(self, db):
        with pytest.raises(UserNotFoundError):
            coaching.record_completion(db, 999_999, now=_now(1))


class TestSessions:
    def test_completing_session_lays_brick(self, db, make_user):
        user = make_user()
        session = coaching.start_session(db, user.id, started_at=_now(1, hour=7))
        completed, result = coaching.complete_session(
            db, user.id, session.id, now=_now(1, hour=7, minute=45)
        )
        assert completed.duration_minutes == 45
        assert completed.day == _d(1)
        assert result.brick.session_id == session.id
        assert result.brick.status == BrickStatus.laid

        profile = coaching.get_profile(db, user.id)
        assert profile.avg_session_duration == 45

    def test_second_completion_rejected(self, db, make_user):
        user = make_user()
        session = coaching.start_session(db, user.id, started_at=_now(1, hour=7))
        coaching.complete_session(db, user.id, session.id, duration_minutes=30, now=_now(1, hour=8))
        with pytest.raises(SessionAlreadyCompletedError):
            coaching.complete_session(db, user.id, session.id, now=_now(1, hour=9))
        assert coaching.get_profile(db, user.id).total_bricks_laid == 1

    def test_negative_duration_rejected(self, db, make_user):
        user = make_user()
        session = coaching.start_session(db, user.id, started_at=_now(1, hour=7))
        with pytest.raises(ValidationFailure):
            coaching.complete_session(db, user.id, session.id, duration_minutes=-5, now=_now(1, hour=8))
        assert brick_ledger.load_statuses(db, user.id) == {}

    def test_session_crossing_midnight_lands_on_completion_day(self, db, make_user):
        user = make_user()
        started = datetime(2025, 5, 2, 23, 30, tzinfo=timezone.utc)
        finished = datetime(2025, 5, 3, 0, 20, tzinfo=timezone.utc)
        session = coaching.start_session(db, user.id, started_at=started)
        completed, result = coaching.complete_session(db, user.id, session.id, now=finished)
        assert completed.day == date(2025, 5, 3)
        assert completed.duration_minutes == 50
        assert result.brick.day == date(2025, 5, 3)
        assert result.profile.last_workout_date == date(2025, 5, 3)

    def test_active_session_and_history(self, db, make_user):
        user = make_user()
        first = coaching.start_session(db, user.id, started_at=_now(1, hour=7))
        coaching.complete_session(db, user.id, first.id, duration_minutes=30, now=_now(1, hour=8))
        assert sessions.get_active_session(db, user.id) is None

        second = coaching.start_session(db, user.id, started_at=_now(2, hour=7))
        assert sessions.get_active_session(db, user.id).id == second.id
        total, items = sessions.list_sessions(db, user.id)
        assert total == 2
        assert [s.id for s in items] == [second.id, first.id]


class TestCheckIns:
    def test_low_energy_checkin_composes_tip(self, db, make_user):
        user = make_user()
        result = coaching.record_checkin(
            db, user.id, energy_level=2, stress_level=4, mood=Mood.low, now=_now(1)
        )
        assert result.checkin.day == _d(1)
        assert [m.trigger for m in result.messages] == [ContextTrigger.low_energy]
        assert result.profile.recent_energy_score == pytest.approx(0.25)

    def test_good_checkin_sends_nothing(self, db, make_user):
        user = make_user()
        result = coaching.record_checkin(
            db, user.id, energy_level=4, stress_level=2, mood=Mood.good, now=_now(1)
        )
        assert result.messages == []

    def test_checkin_announces_streak_break(self, db, make_user):
        user = make_user()
        for n in (1, 2, 3, 4):
            coaching.record_completion(db, user.id, now=_now(n))

        result = coaching.record_checkin(
            db, user.id, energy_level=3, stress_level=2, mood=Mood.okay, now=_now(8)
        )
        assert result.tone.event == EventClass.streak_broken
        assert result.profile.consecutive_days == 0
        assert result.profile.longest_streak == 4
        assert [m.trigger for m in result.messages] == [ContextTrigger.streak_broken]
        assert result.messages[0].sent
        assert _triggers(db, user.id)[-1] == "streak_broken"

        # The break is already settled, so a later recompute stays quiet.
        again = coaching.recompute_behavior(db, user.id, now=_now(8, hour=12))
        assert again.message is None

    def test_streak_break_and_low_energy_both_sent(self, db, make_user):
        user = make_user()
        for n in (1, 2, 3):
            coaching.record_completion(db, user.id, now=_now(n))
        result = coaching.record_checkin(
            db, user.id, energy_level=1, stress_level=5, mood=Mood.stressed, now=_now(7)
        )
        assert [m.trigger for m in result.messages] == [
            ContextTrigger.streak_broken, ContextTrigger.low_energy,
        ]
        assert all(m.sent for m in result.messages)

    def test_update_todays_checkin_rescores(self, db, make_user):
        user = make_user()
        coaching.record_checkin(
            db, user.id, energy_level=4, stress_level=2, mood=Mood.good, now=_now(1)
        )
        result = coaching.update_checkin(
            db, user.id, _d(1), energy_level=1, stress_level=3, mood=Mood.low,
            notes="slept badly", now=_now(1, hour=20),
        )
        assert result.checkin.energy_level == 1
        assert result.checkin.notes == "slept badly"
        assert result.profile.recent_energy_score == pytest.approx(0.0)
        assert [m.trigger for m in result.messages] == [ContextTrigger.low_energy]
        assert checkins.get_checkin(db, user.id, _d(1)).energy_level == 1

    def test_past_checkin_is_closed(self, db, make_user):
        user = make_user()
        coaching.record_checkin(
            db, user.id, energy_level=4, stress_level=2, mood=Mood.good, now=_now(1)
        )
        with pytest.raises(CheckInLockedError):
            coaching.update_checkin(
                db, user.id, _d(1), energy_level=1, stress_level=1, mood=Mood.low, now=_now(2)
            )
        assert checkins.get_checkin(db, user.id, _d(1)).energy_level == 4

    def test_update_missing_checkin(self, db, make_user):
        user = make_user()
        with pytest.raises(CheckInNotFoundError):
            coaching.update_checkin(
                db, user.id, _d(1), energy_level=3, stress_level=3, mood=Mood.okay, now=_now(1)
            )

    def test_range_and_recovery_reads(self, db, make_user):
        user = make_user()
        readings = {1: (2, 4), 2: (1, 5), 3: (2, 3)}
        for n, (energy, stress) in readings.items():
            coaching.record_checkin(
                db, user.id, energy_level=energy, stress_level=stress, mood=Mood.okay, now=_now(n)
            )

        assert [c.day for c in checkins.recovery_days(db, user.id)] == [_d(2), _d(1)]
        assert [c.day for c in checkins.checkins_between(db, user.id, _d(2), _d(3))] == [_d(3), _d(2)]
        assert not checkins.needs_recovery(checkins.get_checkin(db, user.id, _d(3)))
        with pytest.raises(ValidationFailure):
            checkins.checkins_between(db, user.id, _d(3), _d(1))


class TestRecompute:
    def test_detects_streak_break_once(self, db, make_user):
        user = make_user()
        for n in (1, 2, 3):
            coaching.record_completion(db, user.id, now=_now(n))

        broken = coaching.recompute_behavior(db, user.id, now=_now(6))
        assert broken.streak.broken_length == 3
        assert broken.profile.consecutive_days == 0
        assert broken.profile.longest_streak == 3
        assert broken.profile.current_tone == Tone.empathetic
        assert broken.message.trigger == ContextTrigger.streak_broken

        again = coaching.recompute_behavior(db, user.id, now=_now(6, hour=12))
        assert again.streak.broken_length == 0
        assert again.message is None


class TestMilestoneProgress:
    def test_custom_milestone_achievement_celebrates(self, db, make_user):
        user = make_user()
        coaching.create_custom_milestone(
            db, user.id, name="Two PRs", milestone_type=MilestoneType.personal_record, target_value=2
        )
        first = coaching.update_milestone_progress(
            db, user.id, MilestoneType.personal_record, 1, now=_now(1)
        )
        assert first.achieved == [] and first.tone is None and first.message is None

        second = coaching.update_milestone_progress(
            db, user.id, MilestoneType.personal_record, 1, now=_now(2)
        )
        assert [m.name for m in second.achieved] == ["Two PRs"]
        assert second.tone.forced
        assert second.profile.current_tone == Tone.celebratory
        assert second.message.trigger == ContextTrigger.milestone_achieved

    def test_set_mode(self, db, make_user):
        user = make_user()
        result = coaching.update_milestone_progress(
            db, user.id, MilestoneType.streak, 8, ProgressMode.set, now=_now(1)
        )
        assert {m.target_value for m in result.achieved} == {3, 7}


class TestStreakMilestoneSync:
    def _streak_progress(self, db, user_id) -> set[int]:
        return {
            p.milestone.current_value
            for p in milestone_tracker.list_milestones(
                db, user_id, MilestoneStatusFilter.all, MilestoneType.streak
            )
        }

    def test_miss_resets_streak_progress(self, db, make_user):
        user = make_user()
        coaching.record_completion(db, user.id, now=_now(1))
        coaching.record_completion(db, user.id, now=_now(2))
        assert self._streak_progress(db, user.id) == {2}

        coaching.record_miss(db, user.id, now=_now(3))
        assert self._streak_progress(db, user.id) == {0}

    def test_recompute_decay_resets_streak_progress(self, db, make_user):
        user = make_user()
        coaching.record_completion(db, user.id, now=_now(1))
        coaching.record_completion(db, user.id, now=_now(2))

        coaching.recompute_behavior(db, user.id, now=_now(5))
        assert self._streak_progress(db, user.id) == {0}
        almost = milestone_tracker.list_milestones(
            db, user.id, MilestoneStatusFilter.almost_complete, MilestoneType.streak
        )
        assert almost == []

    def test_achieved_streak_milestone_stays_achieved(self, db, make_user):
        user = make_user()
        for n in (1, 2, 3):
            coaching.record_completion(db, user.id, now=_now(n))
        coaching.record_miss(db, user.id, now=_now(4))
        achieved = milestone_tracker.list_milestones(
            db, user.id, MilestoneStatusFilter.achieved, MilestoneType.streak
        )
        assert [(p.milestone.target_value, p.milestone.current_value) for p in achieved] == [(3, 3)]
