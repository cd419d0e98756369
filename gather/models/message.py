"""
Chat Message Model
==================

SQLAlchemy model for persisted AI chat history.
"""

from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import Enum as SQLEnum, ForeignKey, Index, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from gather.db.base import Base, TimestampMixin


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(Base, TimestampMixin):
    """One turn of a chat conversation, optionally scoped to a task."""

    __tablename__ = "messages"

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
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=True,
    )
    role: Mapped[MessageRole] = mapped_column(
        SQLEnum(MessageRole, name="messagerole", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_message_user_task_created", "user_id", "task_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ChatMessage(role={self.role.value}, task_id={self.task_id})>"

    def to_api_dict(self) -> dict:
        return {
            "id": str(self.id),
            "taskId": str(self.task_id) if self.task_id else None,
            "role": self.role.value,
            "content": self.content,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
