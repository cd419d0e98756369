"""Initial schema: profiles, tasks, habits, mood, rewards, insights, messages

Revision ID: 3f9c1a7d2e01
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f9c1a7d2e01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


INSIGHT_FREQUENCY_VALUES = ("off", "minimal", "normal", "frequent")
SUBSCRIPTION_TIER_VALUES = ("free", "pro")
TASK_CATEGORY_VALUES = ("urgent", "soon", "waiting", "completed")
TASK_SOURCE_VALUES = ("manual", "email", "gmail", "calendar")
TASK_TYPE_VALUES = ("task", "reminder", "habit", "event")
ENERGY_LEVEL_VALUES = ("high", "medium", "low")
HABIT_CATEGORY_VALUES = ("morning", "games", "optional")
INSIGHT_TYPE_VALUES = ("stuck", "vague", "needs_deadline", "pattern")
INSIGHT_OUTCOME_VALUES = ("acted", "dismissed", "ignored", "task_completed")
MESSAGE_ROLE_VALUES = ("user", "assistant")

ENUMS = (
    ("insightfrequency", INSIGHT_FREQUENCY_VALUES),
    ("subscriptiontier", SUBSCRIPTION_TIER_VALUES),
    ("taskcategory", TASK_CATEGORY_VALUES),
    ("tasksource", TASK_SOURCE_VALUES),
    ("tasktype", TASK_TYPE_VALUES),
    ("energylevel", ENERGY_LEVEL_VALUES),
    ("habitcategory", HABIT_CATEGORY_VALUES),
    ("insighttype", INSIGHT_TYPE_VALUES),
    ("insightoutcome", INSIGHT_OUTCOME_VALUES),
    ("messagerole", MESSAGE_ROLE_VALUES),
)


def _enum(name: str) -> postgresql.ENUM:
    """Reference an enum type created at the top of upgrade()."""
    return postgresql.ENUM(name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _user_fk() -> sa.Column:
    return sa.Column(
        "user_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    """Upgrade database schema."""

    # ------------------------------------------------------------------
    # 1. Enum types
    # ------------------------------------------------------------------
    for name, values in ENUMS:
        postgresql.ENUM(*values, name=name).create(op.get_bind(), checkfirst=True)

    # ------------------------------------------------------------------
    # 2. Profiles (id = Supabase auth user id)
    # ------------------------------------------------------------------
    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("morning_checkin_time", sa.Time(), nullable=True),
        sa.Column("evening_checkin_time", sa.Time(), nullable=True),
        sa.Column("insight_frequency", _enum("insightfrequency"), nullable=False, server_default="normal"),
        sa.Column("last_insight_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("subscription_tier", _enum("subscriptiontier"), nullable=False, server_default="free"),
        *_timestamps(),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"])

    # ------------------------------------------------------------------
    # 3. Tasks
    # ------------------------------------------------------------------
    op.create_table(
        "tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", _enum("taskcategory"), nullable=False, server_default="soon"),
        sa.Column("badge", sa.String(100), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("context", postgresql.JSONB(), nullable=True),
        sa.Column("context_text", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("task_category", sa.String(50), nullable=True),
        sa.Column("steps", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("clarifying_answers", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("source", _enum("tasksource"), nullable=False, server_default="manual"),
        sa.Column("snoozed_until", sa.Date(), nullable=True),
        sa.Column("type", _enum("tasktype"), nullable=False, server_default="task"),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("recurrence", postgresql.JSONB(), nullable=True),
        sa.Column("streak", postgresql.JSONB(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("energy", _enum("energylevel"), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_task_user_category", "tasks", ["user_id", "category"])
    op.create_index("idx_task_user_created", "tasks", ["user_id", "created_at"])
    op.create_index("idx_task_user_completed", "tasks", ["user_id", "completed_at"])

    # ------------------------------------------------------------------
    # 4. Habits and logs
    # ------------------------------------------------------------------
    op.create_table(
        "habits",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("link", sa.String(500), nullable=True),
        sa.Column("category", _enum("habitcategory"), nullable=False, server_default="morning"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("idx_habit_user_active", "habits", ["user_id", "active", "sort_order"])

    op.create_table(
        "habit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column(
            "habit_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("habits.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "habit_id", "date", name="uq_habit_log_user_habit_date"),
    )
    op.create_index("idx_habit_log_user_date", "habit_logs", ["user_id", "date"])

    # ------------------------------------------------------------------
    # 5. Mood
    # ------------------------------------------------------------------
    op.create_table(
        "mood_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column("mood", sa.SmallInteger(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("mood >= 1 AND mood <= 5", name="ck_mood_range"),
    )
    op.create_index("idx_mood_user_created", "mood_entries", ["user_id", "created_at"])

    # ------------------------------------------------------------------
    # 6. Rewards
    # ------------------------------------------------------------------
    op.create_table(
        "user_rewards",
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("momentum_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lifetime_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("garden_stage", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("momentum_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_activity_date", sa.Date(), nullable=True),
        sa.Column("pause_streak_until", sa.Date(), nullable=True),
        sa.Column(
            "unlocked_rewards",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[\"celebration-confetti\"]'::jsonb"),
        ),
        *_timestamps(),
    )

    op.create_table(
        "point_transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column(
            "task_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tasks.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_point_tx_user_created", "point_transactions", ["user_id", "created_at"])

    # ------------------------------------------------------------------
    # 7. Task intelligence
    # ------------------------------------------------------------------
    op.create_table(
        "task_insights",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column(
            "task_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("insight_type", _enum("insighttype"), nullable=False),
        sa.Column("observation", sa.Text(), nullable=False),
        sa.Column("suggestion", sa.Text(), nullable=False),
        sa.Column("shown_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("outcome", _enum("insightoutcome"), nullable=True),
        sa.Column("outcome_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("action_delay_hours", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_insight_user_shown", "task_insights", ["user_id", "shown_at"])
    op.create_index("idx_insight_task", "task_insights", ["task_id"])

    op.create_table(
        "task_completions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column(
            "task_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tasks.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("step_id", sa.String(100), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("completion_day_of_week", sa.Integer(), nullable=False),
        sa.Column("completion_hour", sa.Integer(), nullable=False),
    )
    op.create_index("idx_completion_user_completed", "task_completions", ["user_id", "completed_at"])

    # ------------------------------------------------------------------
    # 8. Chat history
    # ------------------------------------------------------------------
    op.create_table(
        "messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column(
            "task_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("role", _enum("messagerole"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_message_user_task_created", "messages", ["user_id", "task_id", "created_at"])


def downgrade() -> None:
    """Downgrade database schema."""
    for table in (
        "messages",
        "task_completions",
        "task_insights",
        "point_transactions",
        "user_rewards",
        "mood_entries",
        "habit_logs",
        "habits",
        "tasks",
        "profiles",
    ):
        op.drop_table(table)

    for name, _ in reversed(ENUMS):
        op.execute(f"DROP TYPE IF EXISTS {name}")
