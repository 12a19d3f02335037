from .user import UserProfile
from .brick import Brick, BrickStatus
from .milestone import Milestone, MilestoneType
from .behavior_profile import BehaviorProfile, Tone, MomentumTrend, TimeOfDay
from .brix_message import BrixMessage, MessageType
from .workout_session import WorkoutSession, SessionStatus
from .daily_checkin import DailyCheckIn, Mood

__all__ = [
    "UserProfile",
    "Brick",
    "BrickStatus",
    "Milestone",
    "MilestoneType",
    "BehaviorProfile",
    "Tone",
    "MomentumTrend",
    "TimeOfDay",
    "BrixMessage",
    "MessageType",
    "WorkoutSession",
    "SessionStatus",
    "DailyCheckIn",
    "Mood",
]
