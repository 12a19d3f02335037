"""
User profiles: creation and lookup. Flush only; callers commit.
"""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.core.errors import UserNotFoundError, ValidationFailure
from app.models.user import UserProfile

logger = logging.getLogger(__name__)


def validate_goal_days(goal_days_per_week: int, errors: dict[str, str]) -> None:
    if not 1 <= goal_days_per_week <= 7:
        errors["goal_days_per_week"] = "must be between 1 and 7"


def create_user(db: Session, display_name: str, goal_days_per_week: int = 7) -> UserProfile:
    errors: dict[str, str] = {}
    if not display_name or not display_name.strip():
        errors["display_name"] = "must not be blank"
    validate_goal_days(goal_days_per_week, errors)
    if errors:
        raise ValidationFailure(errors)

    user = UserProfile(display_name=display_name.strip(), goal_days_per_week=goal_days_per_week)
    db.add(user)
    db.flush()
    logger.info("Created user %s", user.id)
    return user


def get_user(db: Session, user_id: int) -> UserProfile:
    user = db.get(UserProfile, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def first_name(user: UserProfile) -> str:
    parts = (user.display_name or "").split()
    return parts[0] if parts else "there"
