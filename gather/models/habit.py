"""
Habit Models
============

SQLAlchemy models for daily habits and their check-off logs.
"""

from datetime import date
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import (
    Boolean,
    Date,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from gather.db.base import Base, TimestampMixin


class HabitCategory(str, Enum):
    """Section a habit is shown in."""
    MORNING = "morning"
    GAMES = "games"
    OPTIONAL = "optional"


class Habit(Base, TimestampMixin):
    """A recurring daily habit."""

    __tablename__ = "habits"

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

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    link: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )
    category: Mapped[HabitCategory] = mapped_column(
        SQLEnum(HabitCategory, name="habitcategory", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=HabitCategory.MORNING,
    )
    sort_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    __table_args__ = (
        Index("idx_habit_user_active", "user_id", "active", "sort_order"),
    )

    def __repr__(self) -> str:
        return f"<Habit(id={self.id}, name={self.name})>"

    def to_api_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "link": self.link,
            "category": self.category.value,
            "sortOrder": self.sort_order,
            "active": self.active,
        }


class HabitLog(Base, TimestampMixin):
    """One check-off of a habit on a given local date."""

    __tablename__ = "habit_logs"

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
    habit_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("habits.id", ondelete="CASCADE"),
        nullable=False,
    )
    log_date: Mapped[date] = mapped_column(
        "date",
        Date,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "habit_id", "date", name="uq_habit_log_user_habit_date"),
        Index("idx_habit_log_user_date", "user_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<HabitLog(habit_id={self.habit_id}, date={self.log_date})>"
