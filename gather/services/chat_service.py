"""
Chat Service
============

Persists task chat history for signed-in users.
"""

from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gather.models.message import ChatMessage, MessageRole

HISTORY_LIMIT = 50


class ChatService:
    """Service for stored chat messages."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save_exchange(
        self,
        user_id: uuid.UUID,
        question: str,
        answer: str,
        task_id: Optional[uuid.UUID] = None,
    ) -> list[ChatMessage]:
        """Store one question and its answer."""
        messages = [
            ChatMessage(user_id=user_id, task_id=task_id, role=MessageRole.USER, content=question),
            ChatMessage(user_id=user_id, task_id=task_id, role=MessageRole.ASSISTANT, content=answer),
        ]
        self.db.add_all(messages)
        await self.db.flush()
        return messages

    async def history(
        self,
        user_id: uuid.UUID,
        task_id: Optional[uuid.UUID] = None,
        limit: int = HISTORY_LIMIT,
    ) -> list[ChatMessage]:
        """Most recent messages for a task (or general chat), oldest first."""
        stmt = select(ChatMessage).where(ChatMessage.user_id == user_id)
        if task_id is None:
            stmt = stmt.where(ChatMessage.task_id.is_(None))
        else:
            stmt = stmt.where(ChatMessage.task_id == task_id)
        stmt = stmt.order_by(ChatMessage.created_at.desc()).limit(limit)

        result = await self.db.execute(stmt)
        return list(reversed(result.scalars().all()))
