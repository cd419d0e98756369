"""
Weekly Reflection Service
=========================

A gentle look back at the last finished week (Sunday to Saturday in the
user's timezone): wins, patterns, suggestions and a few numbers. One
reflection per user per week.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gather.models.insight import TaskCompletion
from gather.models.profile import Profile
from gather.models.reflection import WeeklyReflection
from gather.models.task import Task
from gather.services.anthropic_llm import AnthropicLLMService
from gather.services.rewards_service import RewardsService
from gather.utils.helpers import get_zone, js_weekday, local_today, utc_now
from gather.utils.patterns import fallback_reflection, week_stats

logger = logging.getLogger(__name__)

RECENT_WEEKS = 4


def previous_week_start(today: date) -> date:
    """Sunday that opened the last finished week."""
    return today - timedelta(days=js_weekday(today) + 7)


class ReflectionService:
    """Service for weekly reflections."""

    def __init__(self, db: AsyncSession, llm: Optional[AnthropicLLMService] = None):
        self.db = db
        self.llm = llm

    async def get_for_week(self, user_id: uuid.UUID, week_start: date) -> Optional[WeeklyReflection]:
        stmt = select(WeeklyReflection).where(
            WeeklyReflection.user_id == user_id,
            WeeklyReflection.week_start == week_start,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_recent(self, user_id: uuid.UUID, today: date) -> list[WeeklyReflection]:
        """Reflections from the last four weeks, newest first."""
        stmt = (
            select(WeeklyReflection)
            .where(
                WeeklyReflection.user_id == user_id,
                WeeklyReflection.week_start >= today - timedelta(weeks=RECENT_WEEKS),
            )
            .order_by(WeeklyReflection.week_start.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def completions_between(
        self,
        user_id: uuid.UUID,
        start: datetime,
        end: datetime,
        tz_name: Optional[str],
    ) -> list[dict]:
        """Task-level completions in ``[start, end)`` with their task's title and due date."""
        stmt = (
            select(TaskCompletion, Task.title, Task.due_date)
            .outerjoin(Task, Task.id == TaskCompletion.task_id)
            .where(
                TaskCompletion.user_id == user_id,
                TaskCompletion.step_id.is_(None),
                TaskCompletion.completed_at >= start,
                TaskCompletion.completed_at < end,
            )
            .order_by(TaskCompletion.completed_at)
        )
        result = await self.db.execute(stmt)

        zone = get_zone(tz_name)
        return [
            {
                "title": title,
                "due_date": due_date,
                "completed_on": completion.completed_at.astimezone(zone).date(),
                "completion_day_of_week": completion.completion_day_of_week,
                "completion_hour": completion.completion_hour,
            }
            for completion, title, due_date in result.all()
        ]

    async def _previous_patterns(self, user_id: uuid.UUID, before: date) -> list[str]:
        stmt = (
            select(WeeklyReflection)
            .where(WeeklyReflection.user_id == user_id, WeeklyReflection.week_start < before)
            .order_by(WeeklyReflection.week_start.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        previous = result.scalar_one_or_none()
        if previous is None:
            return []
        return list((previous.content or {}).get("patterns") or [])

    async def this_week(self, profile: Profile, now: Optional[datetime] = None) -> dict:
        """Completion counts for the last seven days."""
        now = now or utc_now()
        rows = await self.completions_between(profile.id, now - timedelta(days=7), now, profile.timezone)
        stats = week_stats(rows)
        return {
            "tasksCompleted": stats["tasksCompleted"],
            "onTime": stats["onTimeCompletions"],
            "completions": [
                {"title": r["title"], "completedOn": r["completed_on"].isoformat()}
                for r in rows
            ],
        }

    async def generate_weekly(
        self,
        profile: Profile,
        now: Optional[datetime] = None,
    ) -> tuple[WeeklyReflection, bool]:
        """
        Reflection for the last finished week, created on first request.

        The model writes the wins, patterns and suggestions; without it (or
        when it fails) a plain fallback is stored instead.

        Returns:
            ``(reflection, created)``
        """
        today = local_today(profile.timezone, now)
        week_start = previous_week_start(today)

        existing = await self.get_for_week(profile.id, week_start)
        if existing is not None:
            return existing, False

        zone = get_zone(profile.timezone)
        start = datetime.combine(week_start, time.min, tzinfo=zone)
        end = datetime.combine(week_start + timedelta(days=7), time.min, tzinfo=zone)
        rows = await self.completions_between(profile.id, start, end, profile.timezone)

        rewards = await RewardsService(self.db).get_or_create(profile.id)
        stats = week_stats(rows, momentum_days=rewards.momentum_days)

        generated = None
        if self.llm is not None and self.llm.is_configured:
            titles = [r["title"] for r in rows if r["title"]]
            previous = await self._previous_patterns(profile.id, week_start)
            generated = await self.llm.generate_weekly_reflection(titles, stats, previous)

        content = {**(generated or fallback_reflection(stats)), "stats": stats}
        reflection = WeeklyReflection(user_id=profile.id, week_start=week_start, content=content)
        self.db.add(reflection)
        await self.db.flush()

        logger.info("Weekly reflection for %s, week of %s", profile.id, week_start)
        return reflection, True
