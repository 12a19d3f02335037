"""
Message Composer — picks a pre-authored coaching message for (tone, trigger)
and appends it to the user's message history.

Selection policy
----------------
  1. Daily cap: if the user already received MESSAGE_DAILY_CAP messages for
     this trigger on the current UTC day, nothing is written and the
     outcome says so (`rate_limited=True`).
  2. Template set: TEMPLATES[(tone, trigger)], falling back to the
     trigger's default set TEMPLATES[(None, trigger)].
  3. Rotation: start at (messages ever sent for this trigger) mod len(set);
     skip a candidate whose rendered text equals the last text sent for
     this trigger when another candidate renders differently.

Messages are append-only. Nothing here commits.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.clock import as_utc, utcnow
from app.core.config import settings
from app.models.behavior_profile import Tone
from app.models.brix_message import BrixMessage, MessageType

logger = logging.getLogger(__name__)


class ContextTrigger(str, enum.Enum):
    app_open = "app_open"
    workout_complete = "workout_complete"
    streak_milestone = "streak_milestone"
    milestone_achieved = "milestone_achieved"
    missed_day = "missed_day"
    streak_broken = "streak_broken"
    low_energy = "low_energy"


MESSAGE_TYPES: dict[ContextTrigger, MessageType] = {
    ContextTrigger.app_open:           MessageType.check_in,
    ContextTrigger.workout_complete:   MessageType.celebration,
    ContextTrigger.streak_milestone:   MessageType.celebration,
    ContextTrigger.milestone_achieved: MessageType.celebration,
    ContextTrigger.missed_day:         MessageType.motivation,
    ContextTrigger.streak_broken:      MessageType.motivation,
    ContextTrigger.low_energy:         MessageType.tip,
}


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------
# Fields: {name} {streak} {total} {longest} {milestone}

TEMPLATES: dict[tuple[Optional[Tone], ContextTrigger], tuple[str, ...]] = {
    # --- app_open ---
    (None, ContextTrigger.app_open): (
        "Good to see you, {name}! Ready to add another brick to your wall today? 🧱",
        "Hey {name}! Ready to build something great today?",
        "Hey {name}! Start your day right with a quick check-in. How are you feeling?",
    ),
    (Tone.challenging, ContextTrigger.app_open): (
        "Welcome back, {name}! Day {streak} of your streak. Let's make today's brick the strongest yet.",
        "{name}, {streak} days straight. Your record is {longest}. Time to push it further?",
    ),
    (Tone.empathetic, ContextTrigger.app_open): (
        "Hey {name}, no pressure today. Even a short session is a brick in the wall. 💙",
        "Glad you're here, {name}. Showing up is the hardest part, and you just did it.",
    ),
    (Tone.celebratory, ContextTrigger.app_open): (
        "Welcome back, {name}! 🔥 Day {streak} of your streak. You're building something incredible!",
    ),

    # --- workout_complete ---
    (None, ContextTrigger.workout_complete): (
        "BRICK LAID! 🧱 Nice work, {name}! That's brick #{total} in your wall. Day {streak} and counting!",
        "Another one in the wall, {name}. Brick #{total} is set.",
    ),
    (Tone.challenging, ContextTrigger.workout_complete): (
        "Brick #{total}, {name}. {streak} days running. Can you make it {longest} and beyond?",
        "Solid work, {name}. Day {streak}. Tomorrow, go a little harder.",
    ),
    (Tone.empathetic, ContextTrigger.workout_complete): (
        "You showed up, {name}, and that's what counts. Brick #{total} is in the wall. 💙",
        "Welcome back to the wall, {name}. Brick #{total}. One day at a time.",
    ),
    (Tone.celebratory, ContextTrigger.workout_complete): (
        "🔥 {name}, you're on FIRE! Day {streak}, brick #{total}. Keep it rolling!",
        "BRICK #{total}! {name}, {streak} days strong. You're unstoppable!",
    ),

    # --- streak_milestone ---
    (None, ContextTrigger.streak_milestone): (
        "🏆 MILESTONE ALERT! {name}, you've hit {streak} consecutive days! Your consistency is building something amazing!",
        "{streak} days in a row, {name}! That's a foundation you can build on.",
    ),
    (Tone.empathetic, ContextTrigger.streak_milestone): (
        "{streak} days straight, {name}. Proud of you. Remember that rest is part of the plan too. 💚",
    ),

    # --- milestone_achieved ---
    (None, ContextTrigger.milestone_achieved): (
        "🎉 {milestone} You did it, {name}! Brick #{total} and a new milestone in the wall.",
        "New milestone unlocked: {milestone} Way to go, {name}!",
    ),

    # --- missed_day ---
    (None, ContextTrigger.missed_day): (
        "Hey {name}, I noticed you took a day off. That's okay! 💙 You've still got {total} bricks in your wall. Ready to add another when you are.",
        "One missed day doesn't undo {total} bricks, {name}. Let's lay the next one.",
    ),
    (Tone.challenging, ContextTrigger.missed_day): (
        "Missed one, {name}. Your record is {longest} days. Come back tomorrow and start the next run.",
    ),

    # --- streak_broken ---
    (None, ContextTrigger.streak_broken): (
        "Streaks end, {name}, but walls stand. Your best is still {longest} days, and all {total} bricks are still there. Let's start the next run. 💙",
        "Every master builder has had to restart, {name}. You've laid {total} bricks. The next one starts a new streak.",
    ),

    # --- low_energy ---
    (None, ContextTrigger.low_energy): (
        "I see your energy is low today, {name}. 💚 That's totally valid. Maybe a gentle stretch or short walk? Taking care of yourself IS building your foundation.",
        "Low energy day, {name}? Try 15 minutes of light movement. Rest is part of the process too.",
    ),
}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MessageContext:
    name: str = "there"
    streak: int = 0
    total: int = 0
    longest: int = 0
    milestone: str = ""


@dataclass
class ComposeOutcome:
    trigger: ContextTrigger
    tone: Tone
    message: Optional[BrixMessage] = None
    rate_limited: bool = False

    @property
    def sent(self) -> bool:
        return self.message is not None


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def templates_for(tone: Optional[Tone], trigger: ContextTrigger) -> tuple[str, ...]:
    return TEMPLATES.get((tone, trigger)) or TEMPLATES[(None, trigger)]


def select_text(
    templates: tuple[str, ...],
    context: MessageContext,
    prior_count: int,
    last_text: Optional[str],
) -> str:
    fields = asdict(context)
    start = prior_count % len(templates)
    rendered = [
        templates[(start + offset) % len(templates)].format(**fields)
        for offset in range(len(templates))
    ]
    for text in rendered:
        if text != last_text:
            return text
    return rendered[0]


def _day_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = datetime.combine(now.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def sent_today_count(db: Session, user_id: int, trigger: ContextTrigger, now: datetime) -> int:
    start, end = _day_bounds(now)
    return (
        db.query(BrixMessage)
        .filter(
            BrixMessage.user_id == user_id,
            BrixMessage.context_trigger == trigger.value,
            BrixMessage.sent_at >= start,
            BrixMessage.sent_at < end,
        )
        .count()
    )


def compose_and_record(
    db: Session,
    user_id: int,
    tone: Tone,
    trigger: ContextTrigger,
    context: MessageContext,
    now: Optional[datetime] = None,
    daily_cap: Optional[int] = None,
) -> ComposeOutcome:
    now = now or utcnow()
    cap = settings.MESSAGE_DAILY_CAP if daily_cap is None else daily_cap
    tone = Tone(tone)
    trigger = ContextTrigger(trigger)

    if sent_today_count(db, user_id, trigger, now) >= cap:
        logger.info("Message cap reached for user %s trigger %s", user_id, trigger.value)
        return ComposeOutcome(trigger=trigger, tone=tone, rate_limited=True)

    history = db.query(BrixMessage).filter(
        BrixMessage.user_id == user_id,
        BrixMessage.context_trigger == trigger.value,
    )
    prior_count = history.count()
    last = history.order_by(BrixMessage.sent_at.desc(), BrixMessage.id.desc()).first()

    text = select_text(
        templates_for(tone, trigger), context, prior_count, last.text if last else None
    )
    message = BrixMessage(
        user_id=user_id,
        text=text,
        message_type=MESSAGE_TYPES[trigger],
        tone=tone,
        context_trigger=trigger.value,
        sent_at=now,
    )
    db.add(message)
    db.flush()
    logger.info("Message %s (%s) recorded for user %s", trigger.value, tone.value, user_id)
    return ComposeOutcome(trigger=trigger, tone=tone, message=message)


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------

def get_recent_messages(
    db: Session,
    user_id: int,
    limit: int = 20,
    trigger: Optional[ContextTrigger] = None,
) -> list[BrixMessage]:
    q = db.query(BrixMessage).filter(BrixMessage.user_id == user_id)
    if trigger is not None:
        q = q.filter(BrixMessage.context_trigger == ContextTrigger(trigger).value)
    return q.order_by(BrixMessage.sent_at.desc(), BrixMessage.id.desc()).limit(limit).all()


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} ago"


def format_time_ago(sent_at: datetime, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    elapsed = now - as_utc(sent_at)
    minutes = int(elapsed.total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return _plural(minutes, "minute")
    hours = minutes // 60
    if hours < 24:
        return _plural(hours, "hour")
    return _plural(elapsed.days, "day")


def is_sent_today(sent_at: datetime, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return as_utc(sent_at).date() == now.astimezone(timezone.utc).date()
