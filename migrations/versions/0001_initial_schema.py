"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_ENUMS = {
    "brick_status_enum": ("laid", "missed", "rest"),
    "milestone_type_enum": (
        "workout_count", "streak", "consistency", "goal_achieved", "personal_record",
    ),
    "tone_enum": ("neutral", "encouraging", "challenging", "empathetic", "celebratory"),
    "momentum_trend_enum": ("improving", "stable", "declining"),
    "time_of_day_enum": ("morning", "afternoon", "evening"),
    "message_type_enum": ("motivation", "check_in", "celebration", "tip"),
    "session_status_enum": ("in_progress", "completed"),
    "mood_enum": ("great", "good", "okay", "low", "stressed"),
}


def _enum(name: str) -> sa.Enum:
    return sa.Enum(*_ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    # --- ENUM types ---
    for name, values in _ENUMS.items():
        sa.Enum(*values, name=name).create(op.get_bind(), checkfirst=True)

    # --- user_profiles ---
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("goal_days_per_week", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_profiles_id", "user_profiles", ["id"])

    # --- bricks ---
    op.create_table(
        "bricks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user_profiles.id"), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=True),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("status", _enum("brick_status_enum"), nullable=False),
        sa.Column("color", sa.String(7), nullable=False),
        sa.Column("streak_day", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_first_of_month", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "day", name="uq_brick_user_day"),
    )
    op.create_index("ix_bricks_id", "bricks", ["id"])
    op.create_index("ix_bricks_user_id", "bricks", ["user_id"])
    op.create_index("ix_bricks_day", "bricks", ["day"])

    # --- milestones ---
    op.create_table(
        "milestones",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user_profiles.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("milestone_type", _enum("milestone_type_enum"), nullable=False),
        sa.Column("target_value", sa.Integer(), nullable=False),
        sa.Column("current_value", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_achieved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("achieved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "milestone_type", "target_value", name="uq_milestone_user_type_target"
        ),
    )
    op.create_index("ix_milestones_id", "milestones", ["id"])
    op.create_index("ix_milestones_user_id", "milestones", ["user_id"])
    op.create_index("ix_milestones_milestone_type", "milestones", ["milestone_type"])

    # --- behavior_profiles ---
    op.create_table(
        "behavior_profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user_profiles.id"), nullable=False),
        sa.Column("current_tone", _enum("tone_enum"), nullable=False, server_default="neutral"),
        sa.Column("last_tone_change", sa.DateTime(timezone=True), nullable=True),
        sa.Column("consecutive_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_bricks_laid", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_workout_date", sa.Date(), nullable=True),
        sa.Column("consistency_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("momentum_trend", _enum("momentum_trend_enum"), nullable=False, server_default="stable"),
        sa.Column("fatigue_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("recent_energy_score", sa.Float(), nullable=False, server_default="0.5"),
        sa.Column("preferred_workout_time", _enum("time_of_day_enum"), nullable=True),
        sa.Column("preferred_workout_types", sa.String(255), nullable=True),
        sa.Column("avg_workout_time_of_day", _enum("time_of_day_enum"), nullable=True),
        sa.Column("avg_session_duration", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_behavior_profiles_id", "behavior_profiles", ["id"])
    op.create_index("ix_behavior_profiles_user_id", "behavior_profiles", ["user_id"], unique=True)

    # --- brix_messages (append-only) ---
    op.create_table(
        "brix_messages",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user_profiles.id"), nullable=False),
        sa.Column("text", sa.String(500), nullable=False),
        sa.Column("message_type", _enum("message_type_enum"), nullable=False),
        sa.Column("tone", _enum("tone_enum"), nullable=False),
        sa.Column("context_trigger", sa.String(100), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_brix_messages_id", "brix_messages", ["id"])
    op.create_index("ix_brix_messages_user_id", "brix_messages", ["user_id"])
    op.create_index(
        "ix_brix_message_user_trigger_sent", "brix_messages",
        ["user_id", "context_trigger", "sent_at"],
    )

    # --- workout_sessions ---
    op.create_table(
        "workout_sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user_profiles.id"), nullable=False),
        sa.Column("status", _enum("session_status_enum"), nullable=False, server_default="in_progress"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("day", sa.Date(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workout_sessions_id", "workout_sessions", ["id"])
    op.create_index("ix_workout_sessions_user_id", "workout_sessions", ["user_id"])
    op.create_index("ix_workout_sessions_day", "workout_sessions", ["day"])

    # --- daily_checkins ---
    op.create_table(
        "daily_checkins",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user_profiles.id"), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("energy_level", sa.Integer(), nullable=False),
        sa.Column("stress_level", sa.Integer(), nullable=False),
        sa.Column("sleep_quality", sa.Integer(), nullable=True),
        sa.Column("mood", _enum("mood_enum"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "day", name="uq_checkin_user_day"),
    )
    op.create_index("ix_daily_checkins_id", "daily_checkins", ["id"])
    op.create_index("ix_daily_checkins_user_id", "daily_checkins", ["user_id"])
    op.create_index("ix_daily_checkins_day", "daily_checkins", ["day"])


def downgrade() -> None:
    op.drop_table("daily_checkins")
    op.drop_table("workout_sessions")
    op.drop_table("brix_messages")
    op.drop_table("behavior_profiles")
    op.drop_table("milestones")
    op.drop_table("bricks")
    op.drop_table("user_profiles")

    for name in reversed(list(_ENUMS)):
        op.execute(f"DROP TYPE IF EXISTS {name}")
