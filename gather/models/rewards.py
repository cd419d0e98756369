"""
Rewards Models
==============

SQLAlchemy models for momentum points, garden levels and the point ledger.
"""

from datetime import date
from typing import Optional
import uuid

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from gather.db.base import Base, TimestampMixin


class UserRewards(Base, TimestampMixin):
    """Per-user rewards state. One row per profile."""

    __tablename__ = "user_rewards"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        primary_key=True,
    )

    momentum_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lifetime_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    garden_stage: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    momentum_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    pause_streak_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    unlocked_rewards: Mapped[list] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )

    def __repr__(self) -> str:
        return f"<UserRewards(user_id={self.user_id}, lifetime={self.lifetime_points})>"


class PointTransaction(Base, TimestampMixin):
    """Ledger row for every point award."""

    __tablename__ = "point_transactions"

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
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    task_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # One award per key, e.g. "habit:{id}:{date}" or "step:{task_id}:{step_id}"
    award_key: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    __table_args__ = (
        Index("idx_point_tx_user_created", "user_id", "created_at"),
        Index("uq_point_tx_user_award_key", "user_id", "award_key", unique=True),
    )

    def __repr__(self) -> str:
        return f"<PointTransaction(action={self.action_type}, points={self.points})>"

    def to_api_dict(self) -> dict:
        return {
            "id": str(self.id),
            "points": self.points,
            "actionType": self.action_type,
            "taskId": str(self.task_id) if self.task_id else None,
            "description": self.description,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
