"""
UTC clock helpers.

Every service takes an optional `now` / `today` so tests can pin time;
these helpers supply the defaults. SQLite hands back naive datetimes even
for timezone-aware columns, so anything read from the DB goes through
`as_utc` before it is compared with `now`.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def utc_today() -> date:
    return utcnow().date()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
