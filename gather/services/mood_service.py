"""
Mood Service
============

Mood check-ins on a 1-5 scale.
"""

from datetime import datetime, timedelta
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gather.models.mood import MOOD_LABELS, MoodEntry
from gather.utils.helpers import utc_now


class MoodService:
    """Service for mood entries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(self, user_id: uuid.UUID, mood: int, note: Optional[str] = None) -> MoodEntry:
        if mood not in MOOD_LABELS:
            raise ValueError("Mood must be between 1 and 5")

        entry = MoodEntry(user_id=user_id, mood=mood, note=(note or "").strip() or None)
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def recent(
        self,
        user_id: uuid.UUID,
        days: int = 7,
        now: Optional[datetime] = None,
    ) -> list[MoodEntry]:
        """Entries from the last ``days`` days, newest first."""
        since = (now or utc_now()) - timedelta(days=days)
        stmt = (
            select(MoodEntry)
            .where(MoodEntry.user_id == user_id, MoodEntry.created_at >= since)
            .order_by(MoodEntry.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def summary(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> dict:
        entries = await self.recent(user_id, days=7, now=now)
        return summarize_moods(entries)


def summarize_moods(entries: list[MoodEntry]) -> dict:
    """
    Average, latest and trend over a newest-first list of entries.

    The trend compares the older half of the window with the newer half;
    a change under half a point is "steady".
    """
    if not entries:
        return {"average": None, "latest": None, "count": 0, "trend": "unknown"}

    moods = [e.mood for e in entries]
    average = round(sum(moods) / len(moods), 1)
    latest = entries[0]

    trend = "unknown"
    if len(moods) >= 2:
        half = len(moods) // 2
        newer = moods[:half]
        older = moods[half:]
        diff = sum(newer) / len(newer) - sum(older) / len(older)
        if diff >= 0.5:
            trend = "improving"
        elif diff <= -0.5:
            trend = "declining"
        else:
            trend = "steady"

    return {
        "average": average,
        "latest": latest.to_api_dict(),
        "count": len(moods),
        "trend": trend,
    }
