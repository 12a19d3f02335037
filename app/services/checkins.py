"""
Daily check-ins: one per user per day, energy / stress / sleep on 1..5.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    CheckInExistsError,
    CheckInLockedError,
    CheckInNotFoundError,
    FutureDateError,
    ValidationFailure,
)
from app.models.daily_checkin import DailyCheckIn, Mood

logger = logging.getLogger(__name__)

_SCALE = range(1, 6)


def _validate(energy_level: int, stress_level: int, sleep_quality: Optional[int]) -> None:
    errors: dict[str, str] = {}
    if energy_level not in _SCALE:
        errors["energy_level"] = "must be between 1 and 5"
    if stress_level not in _SCALE:
        errors["stress_level"] = "must be between 1 and 5"
    if sleep_quality is not None and sleep_quality not in _SCALE:
        errors["sleep_quality"] = "must be between 1 and 5"
    if errors:
        raise ValidationFailure(errors)


def create_checkin(
    db: Session,
    user_id: int,
    day: date,
    today: date,
    *,
    energy_level: int,
    stress_level: int,
    mood: Mood,
    sleep_quality: Optional[int] = None,
    notes: Optional[str] = None,
) -> DailyCheckIn:
    _validate(energy_level, stress_level, sleep_quality)
    if day > today:
        raise FutureDateError(day=day, today=today)
    if get_checkin(db, user_id, day) is not None:
        raise CheckInExistsError(day)

    checkin = DailyCheckIn(
        user_id=user_id,
        day=day,
        energy_level=energy_level,
        stress_level=stress_level,
        sleep_quality=sleep_quality,
        mood=mood,
        notes=notes,
    )
    db.add(checkin)
    db.flush()
    logger.info("Check-in for user %s on %s (energy=%d stress=%d)", user_id, day, energy_level, stress_level)
    return checkin


def get_checkin(db: Session, user_id: int, day: date) -> Optional[DailyCheckIn]:
    return (
        db.query(DailyCheckIn)
        .filter(DailyCheckIn.user_id == user_id, DailyCheckIn.day == day)
        .first()
    )


def checkins_since(db: Session, user_id: int, since: date) -> list[DailyCheckIn]:
    return (
        db.query(DailyCheckIn)
        .filter(DailyCheckIn.user_id == user_id, DailyCheckIn.day >= since)
        .order_by(DailyCheckIn.day.asc())
        .all()
    )


def list_checkins(db: Session, user_id: int, limit: int = 30) -> list[DailyCheckIn]:
    return (
        db.query(DailyCheckIn)
        .filter(DailyCheckIn.user_id == user_id)
        .order_by(DailyCheckIn.day.desc())
        .limit(limit)
        .all()
    )


def update_checkin(
    db: Session,
    user_id: int,
    day: date,
    today: date,
    *,
    energy_level: int,
    stress_level: int,
    mood: Mood,
    sleep_quality: Optional[int] = None,
    notes: Optional[str] = None,
) -> DailyCheckIn:
    """Replace the readings of an existing check-in. Only today's is open."""
    _validate(energy_level, stress_level, sleep_quality)
    checkin = get_checkin(db, user_id, day)
    if checkin is None:
        raise CheckInNotFoundError(day)
    if day != today:
        raise CheckInLockedError(day=day, today=today)

    checkin.energy_level = energy_level
    checkin.stress_level = stress_level
    checkin.sleep_quality = sleep_quality
    checkin.mood = mood
    checkin.notes = notes
    db.flush()
    logger.info("Updated check-in for user %s on %s (energy=%d stress=%d)", user_id, day, energy_level, stress_level)
    return checkin


def checkins_between(db: Session, user_id: int, start: date, end: date) -> list[DailyCheckIn]:
    """Inclusive range, newest first."""
    if start > end:
        raise ValidationFailure({"start": "must not be after end"})
    return (
        db.query(DailyCheckIn)
        .filter(DailyCheckIn.user_id == user_id, DailyCheckIn.day.between(start, end))
        .order_by(DailyCheckIn.day.desc())
        .all()
    )


def needs_recovery(checkin: DailyCheckIn) -> bool:
    return (
        checkin.energy_level <= settings.LOW_ENERGY_LEVEL
        and checkin.stress_level >= settings.HIGH_STRESS_LEVEL
    )


def recovery_days(db: Session, user_id: int, limit: int = 30) -> list[DailyCheckIn]:
    """Check-ins with both low energy and high stress, newest first."""
    return (
        db.query(DailyCheckIn)
        .filter(
            DailyCheckIn.user_id == user_id,
            DailyCheckIn.energy_level <= settings.LOW_ENERGY_LEVEL,
            DailyCheckIn.stress_level >= settings.HIGH_STRESS_LEVEL,
        )
        .order_by(DailyCheckIn.day.desc())
        .limit(limit)
        .all()
    )
