"""
Task Models
===========

SQLAlchemy model for tasks.

Steps are stored inline as a JSONB list; each element is a dict with at
least ``id``, ``text`` and ``done``.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import (
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from gather.db.base import Base, TimestampMixin


# =============================================================================
# Enums
# =============================================================================

class TaskCategory(str, Enum):
    """Urgency bucket shown on the task list."""
    URGENT = "urgent"
    SOON = "soon"
    WAITING = "waiting"
    COMPLETED = "completed"


class TaskSource(str, Enum):
    """Where the task came from."""
    MANUAL = "manual"
    EMAIL = "email"
    GMAIL = "gmail"
    CALENDAR = "calendar"


class TaskType(str, Enum):
    """Kind of item; habit-type tasks recur and keep a streak."""
    TASK = "task"
    REMINDER = "reminder"
    HABIT = "habit"
    EVENT = "event"


class EnergyLevel(str, Enum):
    """Energy the task is expected to take."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# =============================================================================
# Models
# =============================================================================

class Task(Base, TimestampMixin):
    """
    Task model.

    A captured task with optional AI-generated steps and the clarifying
    answers that shaped them.
    """

    __tablename__ = "tasks"

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Foreign Key
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Task details
    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    category: Mapped[TaskCategory] = mapped_column(
        SQLEnum(TaskCategory, name="taskcategory", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=TaskCategory.SOON,
    )
    badge: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    due_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
    )
    context: Mapped[Optional[dict]] = mapped_column(
        JSONB,
        nullable=True,
    )
    context_text: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    task_category: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    steps: Mapped[list] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )
    clarifying_answers: Mapped[list] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )
    source: Mapped[TaskSource] = mapped_column(
        SQLEnum(TaskSource, name="tasksource", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=TaskSource.MANUAL,
    )
    snoozed_until: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
    )

    # Typed items (reminders, habits, events)
    type: Mapped[TaskType] = mapped_column(
        SQLEnum(TaskType, name="tasktype", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=TaskType.TASK,
    )
    scheduled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    recurrence: Mapped[Optional[dict]] = mapped_column(
        JSONB,
        nullable=True,
    )
    streak: Mapped[Optional[dict]] = mapped_column(
        JSONB,
        nullable=True,
    )
    duration: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    energy: Mapped[Optional[EnergyLevel]] = mapped_column(
        SQLEnum(EnergyLevel, name="energylevel", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=True,
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Indexes
    __table_args__ = (
        Index("idx_task_user_category", "user_id", "category"),
        Index("idx_task_user_created", "user_id", "created_at"),
        Index("idx_task_user_completed", "user_id", "completed_at"),
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, title={self.title[:30]})>"

    @property
    def is_completed(self) -> bool:
        return self.category == TaskCategory.COMPLETED

    def mark_complete(self, now: datetime) -> None:
        """Mark task as completed."""
        self.category = TaskCategory.COMPLETED
        self.completed_at = now

    def to_api_dict(self) -> dict:
        """
        Serialize to the API response format expected by the frontend.

        Field names are camelCased; steps are passed through unchanged.
        """
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "category": self.category.value,
            "badge": self.badge,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "context": self.context,
            "contextText": self.context_text,
            "notes": self.notes,
            "taskCategory": self.task_category,
            "steps": self.steps or [],
            "clarifyingAnswers": self.clarifying_answers or [],
            "source": self.source.value,
            "snoozedUntil": self.snoozed_until.isoformat() if self.snoozed_until else None,
            "type": self.type.value,
            "scheduledAt": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "recurrence": self.recurrence,
            "streak": self.streak,
            "duration": self.duration,
            "energy": self.energy.value if self.energy else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
