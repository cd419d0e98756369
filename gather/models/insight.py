"""
Task Intelligence Models
========================

SQLAlchemy models for proactive task insights and the completion log
used to learn when a user tends to get things done.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import (
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from gather.db.base import Base, TimestampMixin


class InsightType(str, Enum):
    """Kind of observation made about a task."""
    STUCK = "stuck"
    VAGUE = "vague"
    NEEDS_DEADLINE = "needs_deadline"
    PATTERN = "pattern"


class InsightOutcome(str, Enum):
    """What the user did after seeing an insight."""
    ACTED = "acted"
    DISMISSED = "dismissed"
    IGNORED = "ignored"
    TASK_COMPLETED = "task_completed"


class TaskInsight(Base, TimestampMixin):
    """An insight shown to the user about one task."""

    __tablename__ = "task_insights"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )

    insight_type: Mapped[InsightType] = mapped_column(
        SQLEnum(InsightType, name="insighttype", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    observation: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    suggestion: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    shown_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    outcome: Mapped[Optional[InsightOutcome]] = mapped_column(
        SQLEnum(InsightOutcome, name="insightoutcome", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=True,
    )
    outcome_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    action_delay_hours: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )

    __table_args__ = (
        Index("idx_insight_user_shown", "user_id", "shown_at"),
        Index("idx_insight_task", "task_id"),
    )

    def __repr__(self) -> str:
        return f"<TaskInsight(task_id={self.task_id}, type={self.insight_type.value})>"

    def to_api_dict(self) -> dict:
        return {
            "id": str(self.id),
            "taskId": str(self.task_id),
            "insightType": self.insight_type.value,
            "observation": self.observation,
            "suggestion": self.suggestion,
            "shownAt": self.shown_at.isoformat() if self.shown_at else None,
            "outcome": self.outcome.value if self.outcome else None,
            "outcomeAt": self.outcome_at.isoformat() if self.outcome_at else None,
            "actionDelayHours": self.action_delay_hours,
        }


class TaskCompletion(Base):
    """
    Completion log entry.

    Day-of-week (0 = Sunday) and hour are computed in the user's timezone
    at write time so pattern queries never need timezone math.
    """

    __tablename__ = "task_completions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    task_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    step_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    completion_day_of_week: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    completion_hour: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __table_args__ = (
        Index("idx_completion_user_completed", "user_id", "completed_at"),
    )

    def __repr__(self) -> str:
        return f"<TaskCompletion(task_id={self.task_id}, step_id={self.step_id})>"
