"""
Coaching Memory Service
=======================

Long-term memory distilled from chat conversations. Summaries are stored
per user and fed back into intent analysis as a short coaching note.
"""

import logging
from typing import Optional, Sequence
import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from gather.models.reflection import CoachingMemoryEntry, MemoryEntryType
from gather.services.anthropic_llm import AnthropicLLMService
from gather.utils.coaching import build_coaching_context

logger = logging.getLogger(__name__)

# Summaries considered when building the coaching note
CONTEXT_SUMMARY_LIMIT = 5


class CoachingMemoryService:
    """Service for stored coaching memory."""

    def __init__(self, db: AsyncSession, llm: Optional[AnthropicLLMService] = None):
        self.db = db
        self.llm = llm

    async def summarize(
        self,
        user_id: Optional[uuid.UUID],
        messages: Sequence[dict],
        task_context: Optional[dict] = None,
    ) -> dict:
        """
        Summarize a conversation and, for signed-in users, remember it.

        Args:
            user_id: Profile ID, or None for demo visitors (nothing is stored)
            messages: ``{role, content}`` turns, at least two
            task_context: The task the conversation was about, if any
        """
        summary = await self.llm.summarize_conversation(messages, task_context)

        if user_id is not None:
            self.db.add(
                CoachingMemoryEntry(
                    user_id=user_id,
                    entry_type=MemoryEntryType.CONVERSATION_SUMMARY,
                    content=summary,
                )
            )
            await self.db.flush()
            logger.info("Stored conversation summary for %s", user_id)

        return summary

    async def recent(self, user_id: uuid.UUID, limit: int = 20) -> list[CoachingMemoryEntry]:
        """Newest entries first."""
        stmt = (
            select(CoachingMemoryEntry)
            .where(CoachingMemoryEntry.user_id == user_id)
            .order_by(CoachingMemoryEntry.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def context_for(self, user_id: uuid.UUID) -> str:
        """Coaching note for the intent prompt; empty when nothing is remembered."""
        stmt = (
            select(CoachingMemoryEntry)
            .where(
                CoachingMemoryEntry.user_id == user_id,
                CoachingMemoryEntry.entry_type == MemoryEntryType.CONVERSATION_SUMMARY,
            )
            .order_by(CoachingMemoryEntry.created_at.desc())
            .limit(CONTEXT_SUMMARY_LIMIT)
        )
        result = await self.db.execute(stmt)
        summaries = [entry.content for entry in result.scalars().all() if isinstance(entry.content, dict)]
        return build_coaching_context(summaries)

    async def forget(self, user_id: uuid.UUID) -> None:
        """Delete everything remembered about the user."""
        await self.db.execute(delete(CoachingMemoryEntry).where(CoachingMemoryEntry.user_id == user_id))
        await self.db.flush()
