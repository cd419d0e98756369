"""
Mood Model
==========

SQLAlchemy model for quick 1-5 mood check-ins.
"""

from typing import Optional
import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Index, SmallInteger, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from gather.db.base import Base, TimestampMixin


MOOD_LABELS = {
    1: "terrible",
    2: "not great",
    3: "okay",
    4: "good",
    5: "great",
}


class MoodEntry(Base, TimestampMixin):
    """A single mood rating with optional note."""

    __tablename__ = "mood_entries"

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
    mood: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
    )
    note: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint("mood >= 1 AND mood <= 5", name="ck_mood_range"),
        Index("idx_mood_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<MoodEntry(user_id={self.user_id}, mood={self.mood})>"

    def to_api_dict(self) -> dict:
        return {
            "id": str(self.id),
            "mood": self.mood,
            "label": MOOD_LABELS.get(self.mood),
            "note": self.note,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
