"""
Reflection and Memory Models
============================

SQLAlchemy models for weekly reflections and the long-term coaching
memory distilled from chat conversations.
"""

from datetime import date
import uuid

from sqlalchemy import Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from gather.db.base import Base, TimestampMixin


class WeeklyReflection(Base, TimestampMixin):
    """
    A look back at one week (Sunday to Saturday in the user's timezone).

    ``content`` holds wins, patterns, suggestions, encouragement and stats.
    """

    __tablename__ = "reflections"

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
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    content: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("user_id", "week_start", name="uq_reflection_user_week"),
    )

    def __repr__(self) -> str:
        return f"<WeeklyReflection(user_id={self.user_id}, week_start={self.week_start})>"

    def to_api_dict(self) -> dict:
        return {
            "id": str(self.id),
            "weekStart": self.week_start.isoformat(),
            "content": self.content,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class MemoryEntryType:
    CONVERSATION_SUMMARY = "conversation_summary"


class CoachingMemoryEntry(Base, TimestampMixin):
    """One remembered thing about the user, e.g. a conversation summary."""

    __tablename__ = "user_memory"

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
    entry_type: Mapped[str] = mapped_column(String(50), nullable=False)
    content: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    __table_args__ = (
        Index("idx_user_memory_user_type", "user_id", "entry_type"),
        Index("idx_user_memory_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<CoachingMemoryEntry(type={self.entry_type})>"

    def to_api_dict(self) -> dict:
        return {
            "id": str(self.id),
            "entryType": self.entry_type,
            "content": self.content,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
