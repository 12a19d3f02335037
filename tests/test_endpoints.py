"""
Integration tests for API endpoints using the file-backed SQLite DB.

Endpoints use the real clock, so every test creates its own user and
works relative to today (UTC).
"""
from datetime import timedelta

import pytest

from app.core.clock import utc_today


def _user(client, name="Jordan Lee", goal=7) -> int:
    r = client.post("/users", json={"display_name": name, "goal_days_per_week": goal})
    assert r.status_code == 201
    return r.json()["id"]


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestUsers:
    def test_create_and_get(self, client):
        r = client.post("/users", json={"display_name": "  Jordan Lee ", "goal_days_per_week": 4})
        assert r.status_code == 201
        body = r.json()
        assert body["display_name"] == "Jordan Lee"
        assert body["goal_days_per_week"] == 4

        r = client.get(f"/users/{body['id']}")
        assert r.status_code == 200
        assert r.json()["id"] == body["id"]

    def test_new_user_has_neutral_profile_and_catalog(self, client):
        uid = _user(client)
        profile = client.get(f"/users/{uid}/behavior").json()
        assert profile["current_tone"] == "neutral"
        assert profile["total_bricks_laid"] == 0
        assert profile["motivation_state"] == "struggling"

        milestones = client.get(f"/users/{uid}/milestones").json()
        assert milestones["total"] == 16
        assert milestones["achieved_count"] == 0


class TestBricks:
    def test_complete_today(self, client):
        uid = _user(client)
        r = client.post(f"/users/{uid}/bricks/complete")
        assert r.status_code == 200
        body = r.json()
        assert body["created"] is True
        assert body["brick"]["status"] == "laid"
        assert body["brick"]["day"] == str(utc_today())
        assert body["streak"]["current_streak"] == 1
        assert [m["name"] for m in body["milestones_achieved"]] == ["First Brick Laid!"]
        assert body["tone"]["tone"] == "celebratory"
        assert body["message"]["sent"] is True
        assert body["message"]["message"]["time_ago"] == "Just now"

    def test_complete_is_idempotent(self, client):
        uid = _user(client)
        client.post(f"/users/{uid}/bricks/complete")
        r = client.post(f"/users/{uid}/bricks/complete")
        assert r.status_code == 200
        body = r.json()
        assert body["created"] is False
        assert body["streak"]["total_bricks_laid"] == 1
        assert body["message"] is None

    def test_backfill_past_days(self, client):
        uid = _user(client)
        today = utc_today()
        for back in (2, 1, 0):
            r = client.post(
                f"/users/{uid}/bricks/complete", json={"day": str(today - timedelta(days=back))}
            )
            assert r.status_code == 200
        stats = client.get(f"/users/{uid}/bricks/stats").json()
        assert stats["total_bricks"] == 3
        assert stats["current_streak"] == 3
        assert stats["longest_streak"] == 3
        assert stats["has_brick_today"] is True

    def test_rest_and_miss(self, client):
        uid = _user(client)
        today = utc_today()
        r = client.post(f"/users/{uid}/bricks/rest", json={"day": str(today - timedelta(days=1))})
        assert r.status_code == 200
        assert r.json()["brick"]["color"] == "#3B82F6"
        assert r.json()["message"] is None

        r = client.post(f"/users/{uid}/bricks/miss")
        assert r.status_code == 200
        assert r.json()["brick"]["color"] == "#94A3B8"
        assert r.json()["message"]["trigger"] == "missed_day"

    def test_history_and_calendar(self, client):
        uid = _user(client)
        today = utc_today()
        for back in (3, 1):
            client.post(f"/users/{uid}/bricks/complete", json={"day": str(today - timedelta(days=back))})

        history = client.get(f"/users/{uid}/bricks/history", params={"limit": 1}).json()
        assert history["total"] == 2
        assert [b["day"] for b in history["items"]] == [str(today - timedelta(days=1))]

        cal = client.get(
            f"/users/{uid}/bricks", params={"year": today.year, "month": today.month}
        ).json()
        assert cal["year"] == today.year and cal["month"] == today.month
        assert all(b["day"].startswith(f"{today.year:04d}-{today.month:02d}") for b in cal["items"])


class TestSessions:
    def test_start_and_complete(self, client):
        uid = _user(client)
        r = client.post(f"/users/{uid}/sessions")
        assert r.status_code == 201
        sid = r.json()["id"]
        assert r.json()["status"] == "in_progress"

        r = client.post(f"/users/{uid}/sessions/{sid}/complete", json={"duration_minutes": 40})
        assert r.status_code == 200
        body = r.json()
        assert body["session"]["status"] == "completed"
        assert body["session"]["duration_minutes"] == 40
        assert body["result"]["brick"]["session_id"] == sid

        r = client.post(f"/users/{uid}/sessions/{sid}/complete")
        assert r.status_code == 409
        assert r.json()["code"] == "INVALID_STATE"

    def test_history_and_active(self, client):
        uid = _user(client)
        r = client.get(f"/users/{uid}/sessions")
        assert r.status_code == 200
        assert r.json() == {"total": 0, "active": None, "items": []}

        done = client.post(f"/users/{uid}/sessions").json()["id"]
        client.post(f"/users/{uid}/sessions/{done}/complete", json={"duration_minutes": 20})
        open_id = client.post(f"/users/{uid}/sessions").json()["id"]

        body = client.get(f"/users/{uid}/sessions").json()
        assert body["total"] == 2
        assert body["active"]["id"] == open_id
        assert {s["id"] for s in body["items"]} == {done, open_id}
        assert client.get(f"/users/{uid}/sessions", params={"limit": 1}).json()["total"] == 2


class TestCheckIns:
    def test_low_energy_checkin(self, client):
        uid = _user(client)
        r = client.post(
            f"/users/{uid}/checkins",
            json={"energy_level": 1, "stress_level": 5, "mood": "stressed"},
        )
        assert r.status_code == 201
        body = r.json()
        assert body["checkin"]["day"] == str(utc_today())
        assert [m["trigger"] for m in body["messages"]] == ["low_energy"]
        assert body["checkin"]["needs_recovery"] is True
        assert body["profile"]["recent_energy_score"] == 0.0

        listed = client.get(f"/users/{uid}/checkins").json()
        assert len(listed) == 1

    def test_one_checkin_per_day(self, client):
        uid = _user(client)
        payload = {"energy_level": 3, "stress_level": 3, "mood": "okay"}
        assert client.post(f"/users/{uid}/checkins", json=payload).status_code == 201
        r = client.post(f"/users/{uid}/checkins", json=payload)
        assert r.status_code == 409

    def test_today(self, client):
        uid = _user(client)
        r = client.get(f"/users/{uid}/checkins/today")
        assert r.status_code == 200
        assert r.json() == {"day": str(utc_today()), "checked_in": False, "checkin": None}

        client.post(f"/users/{uid}/checkins", json={"energy_level": 4, "stress_level": 2, "mood": "good"})
        body = client.get(f"/users/{uid}/checkins/today").json()
        assert body["checked_in"] is True
        assert body["checkin"]["energy_level"] == 4

    def test_range_and_recovery(self, client):
        uid = _user(client)
        today = utc_today()
        readings = [(3, 1, 5), (2, 2, 4), (1, 3, 5)]
        for back, energy, stress in readings:
            r = client.post(
                f"/users/{uid}/checkins",
                json={
                    "energy_level": energy, "stress_level": stress, "mood": "okay",
                    "day": str(today - timedelta(days=back)),
                },
            )
            assert r.status_code == 201

        ranged = client.get(
            f"/users/{uid}/checkins",
            params={"start": str(today - timedelta(days=2)), "end": str(today - timedelta(days=1))},
        ).json()
        assert [c["day"] for c in ranged] == [
            str(today - timedelta(days=1)), str(today - timedelta(days=2)),
        ]

        recovery = client.get(f"/users/{uid}/checkins/recovery").json()
        assert [c["day"] for c in recovery] == [
            str(today - timedelta(days=2)), str(today - timedelta(days=3)),
        ]
        assert all(c["needs_recovery"] for c in recovery)

    def test_range_start_after_end_rejected(self, client):
        uid = _user(client)
        today = utc_today()
        r = client.get(
            f"/users/{uid}/checkins",
            params={"start": str(today), "end": str(today - timedelta(days=1))},
        )
        assert r.status_code == 422
        assert "start" in r.json()["details"]["fields"]

    def test_update_today(self, client):
        uid = _user(client)
        today = str(utc_today())
        client.post(f"/users/{uid}/checkins", json={"energy_level": 4, "stress_level": 2, "mood": "good"})
        r = client.patch(
            f"/users/{uid}/checkins/{today}",
            json={"energy_level": 2, "stress_level": 2, "mood": "low"},
        )
        assert r.status_code == 200
        body = r.json()
        assert body["checkin"]["energy_level"] == 2
        assert [m["trigger"] for m in body["messages"]] == ["low_energy"]

    def test_update_past_day_rejected(self, client):
        uid = _user(client)
        yesterday = str(utc_today() - timedelta(days=1))
        client.post(
            f"/users/{uid}/checkins",
            json={"energy_level": 4, "stress_level": 2, "mood": "good", "day": yesterday},
        )
        r = client.patch(
            f"/users/{uid}/checkins/{yesterday}",
            json={"energy_level": 1, "stress_level": 1, "mood": "low"},
        )
        assert r.status_code == 409
        assert r.json()["details"]["day"] == yesterday

    def test_update_missing_checkin(self, client):
        uid = _user(client)
        r = client.patch(
            f"/users/{uid}/checkins/{utc_today()}",
            json={"energy_level": 3, "stress_level": 3, "mood": "okay"},
        )
        assert r.status_code == 404
        assert r.json()["details"]["resource"] == "DailyCheckIn"


class TestBehavior:
    def test_recompute(self, client):
        uid = _user(client)
        client.post(f"/users/{uid}/bricks/complete")
        r = client.post(f"/users/{uid}/behavior/recompute")
        assert r.status_code == 200
        body = r.json()
        assert body["streak_broken"] is False
        assert body["profile"]["consistency_score"] == 1.0
        assert body["tone"]["bucket"] in {"steady", "rising", "thriving", "fatigued"}

    def test_update_preferences(self, client):
        uid = _user(client)
        r = client.patch(
            f"/users/{uid}/behavior/preferences",
            json={"preferred_workout_time": "evening", "goal_days_per_week": 3},
        )
        assert r.status_code == 200
        assert r.json()["preferred_workout_time"] == "evening"
        assert client.get(f"/users/{uid}").json()["goal_days_per_week"] == 3

    def test_empty_preferences_rejected(self, client):
        uid = _user(client)
        r = client.patch(f"/users/{uid}/behavior/preferences", json={})
        assert r.status_code == 422


class TestMilestones:
    def test_custom_and_progress(self, client):
        uid = _user(client)
        r = client.post(
            f"/users/{uid}/milestones",
            json={"name": "Ten PRs", "milestone_type": "personal_record", "target_value": 10},
        )
        assert r.status_code == 201
        assert r.json()["progress_percentage"] == 0

        r = client.post(
            f"/users/{uid}/milestones/progress",
            json={"milestone_type": "personal_record", "value": 9},
        )
        assert r.status_code == 200
        body = r.json()
        assert body["achieved"] == []
        assert body["items"][0]["progress_percentage"] == 90
        assert body["items"][0]["almost_complete"] is True

        r = client.post(
            f"/users/{uid}/milestones/progress",
            json={"milestone_type": "personal_record", "value": 1},
        )
        body = r.json()
        assert [m["name"] for m in body["achieved"]] == ["Ten PRs"]
        assert body["message"]["trigger"] == "milestone_achieved"

    def test_filters(self, client):
        uid = _user(client)
        client.post(f"/users/{uid}/bricks/complete")
        achieved = client.get(f"/users/{uid}/milestones", params={"status": "achieved"}).json()
        assert [m["name"] for m in achieved["items"]] == ["First Brick Laid!"]

        streaks = client.get(f"/users/{uid}/milestones", params={"milestone_type": "streak"}).json()
        assert streaks["total"] == 8

    def test_initialize_is_repeatable(self, client):
        uid = _user(client)
        r = client.post(f"/users/{uid}/milestones/initialize")
        assert r.status_code == 200
        assert r.json()["created"] == 0


class TestMessages:
    def test_compose_then_rate_limited(self, client):
        uid = _user(client)
        r = client.post(f"/users/{uid}/messages", json={"trigger": "app_open"})
        assert r.status_code == 200
        first = r.json()
        assert first["sent"] is True
        assert "Jordan" in first["message"]["text"]

        r = client.post(f"/users/{uid}/messages", json={"trigger": "app_open"})
        assert r.status_code == 200
        assert r.json()["sent"] is False
        assert r.json()["rate_limited"] is True

    def test_list_messages(self, client):
        uid = _user(client)
        client.post(f"/users/{uid}/bricks/complete")
        client.post(f"/users/{uid}/messages", json={"trigger": "app_open"})
        r = client.get(f"/users/{uid}/messages")
        assert r.status_code == 200
        body = r.json()
        assert body["total"] == 2
        assert body["items"][0]["context_trigger"] == "app_open"
        assert all(m["is_sent_today"] for m in body["items"])

        only = client.get(f"/users/{uid}/messages", params={"trigger": "app_open"}).json()
        assert only["total"] == 1

    @pytest.mark.parametrize("trigger", ["", "APP_OPEN", "birthday"])
    def test_unknown_trigger_rejected(self, client, trigger):
        uid = _user(client)
        r = client.post(f"/users/{uid}/messages", json={"trigger": trigger})
        assert r.status_code == 422
