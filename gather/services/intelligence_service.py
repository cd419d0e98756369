"""
Task Intelligence Service
=========================

Proactive observations about stuck, vague or floating tasks, paced by the
user's insight-frequency preference and tuned by how they responded to
earlier insights.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gather.models.insight import InsightOutcome, InsightType, TaskInsight
from gather.models.profile import InsightFrequency, Profile
from gather.services.anthropic_llm import AnthropicLLMService
from gather.services.cache import CacheKeys, CacheManager
from gather.services.task_service import TaskService
from gather.utils.helpers import utc_now
from gather.utils.patterns import (
    INSIGHT_FREQUENCY_HOURS,
    analyze_insight_history,
    analyze_user_patterns,
    calculate_avg_completion_days,
    transform_task,
)

logger = logging.getLogger(__name__)

COMPLETION_WINDOW_DAYS = 30
AVG_COMPLETION_WINDOW_DAYS = 90
INSIGHT_HISTORY_LIMIT = 50
DEDUPE_WINDOW_DAYS = 7


class IntelligenceService:
    """Service for task insights."""

    def __init__(self, db: AsyncSession, llm: AnthropicLLMService):
        self.db = db
        self.llm = llm
        self.tasks = TaskService(db)

    # =========================================================================
    # Patterns
    # =========================================================================

    async def get_patterns(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> dict:
        """Completion patterns, cached for 15 minutes."""
        cache_key = CacheKeys.patterns(str(user_id))
        cached = await CacheManager.get(cache_key)
        if cached is not None:
            return cached

        now = now or utc_now()
        completions = await self.tasks.get_completions_since(
            user_id, now - timedelta(days=COMPLETION_WINDOW_DAYS)
        )
        completed = await self.tasks.get_recently_completed(user_id, AVG_COMPLETION_WINDOW_DAYS, now)
        patterns = analyze_user_patterns(completions, calculate_avg_completion_days(completed))

        await CacheManager.set(cache_key, patterns, ttl=CacheManager.TTL_MEDIUM)
        return patterns

    async def _history(self, user_id: uuid.UUID) -> list[TaskInsight]:
        stmt = (
            select(TaskInsight)
            .where(TaskInsight.user_id == user_id)
            .order_by(TaskInsight.shown_at.desc())
            .limit(INSIGHT_HISTORY_LIMIT)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # =========================================================================
    # Analysis
    # =========================================================================

    @staticmethod
    def is_due(profile: Profile, now: datetime) -> bool:
        """Whether the frequency preference allows a new insight now."""
        if profile.insight_frequency == InsightFrequency.OFF:
            return False
        if profile.last_insight_at is None:
            return True
        hours = INSIGHT_FREQUENCY_HOURS[profile.insight_frequency.value]
        return now - profile.last_insight_at >= timedelta(hours=hours)

    async def analyze(
        self,
        profile: Profile,
        force: bool = False,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Find the single most important observation across open tasks.

        Args:
            profile: The user's profile (for frequency preference)
            force: Skip the frequency interval (still honours "off")
            now: Current time, for tests

        Returns:
            ``{"insight": {...} | None, "reason": str | None}``
        """
        now = now or utc_now()

        if profile.insight_frequency == InsightFrequency.OFF:
            return {"insight": None, "reason": "disabled"}
        if not force and not self.is_due(profile, now):
            return {"insight": None, "reason": "too_soon"}

        open_tasks = await self.tasks.list_open_tasks(profile.id)
        if not open_tasks:
            return {"insight": None, "reason": "no_open_tasks"}

        task_rows = [transform_task(t) for t in open_tasks]
        patterns = await self.get_patterns(profile.id, now)
        history = analyze_insight_history(await self._history(profile.id), now)

        observations = await self.llm.generate_task_insights(task_rows, patterns, history, now)
        if not observations:
            return {"insight": None, "reason": "nothing_to_flag"}

        top = sorted(observations, key=lambda o: o["priority"])[0]
        titles = {row["id"]: row["title"] for row in task_rows}
        logger.info("Insight for user %s on task %s: %s", profile.id, top["taskId"], top["type"])
        return {"insight": {**top, "taskTitle": titles.get(top["taskId"])}, "reason": None}

    # =========================================================================
    # Recording
    # =========================================================================

    async def record(
        self,
        profile: Profile,
        task_id: uuid.UUID,
        insight_type: InsightType,
        observation: str,
        suggestion: str,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Record that an insight was shown.

        Returns:
            ``{"duplicate": True}`` if the task already had one in the last
            week, otherwise ``{"id": ...}``
        """
        now = now or utc_now()
        await self.tasks.get_task_or_raise(task_id, profile.id)

        stmt = select(TaskInsight.id).where(
            TaskInsight.user_id == profile.id,
            TaskInsight.task_id == task_id,
            TaskInsight.shown_at >= now - timedelta(days=DEDUPE_WINDOW_DAYS),
        ).limit(1)
        result = await self.db.execute(stmt)
        if result.first() is not None:
            return {"duplicate": True}

        insight = TaskInsight(
            user_id=profile.id,
            task_id=task_id,
            insight_type=insight_type,
            observation=observation,
            suggestion=suggestion,
            shown_at=now,
        )
        self.db.add(insight)
        profile.last_insight_at = now
        await self.db.flush()
        return {"id": str(insight.id)}

    async def record_outcome(
        self,
        user_id: uuid.UUID,
        insight_id: uuid.UUID,
        outcome: InsightOutcome,
        now: Optional[datetime] = None,
    ) -> TaskInsight:
        """Store what the user did; the delay is whole hours since shown."""
        now = now or utc_now()
        stmt = select(TaskInsight).where(
            TaskInsight.id == insight_id,
            TaskInsight.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        insight = result.scalar_one_or_none()
        if insight is None:
            raise InsightNotFoundError(str(insight_id))

        insight.outcome = outcome
        insight.outcome_at = now
        insight.action_delay_hours = math.floor((now - insight.shown_at).total_seconds() / 3600)
        await self.db.flush()
        return insight


class InsightNotFoundError(Exception):
    """Raised when an insight ID is not found for the given user."""

    def __init__(self, insight_id: str):
        self.insight_id = insight_id
        super().__init__(f"Insight {insight_id} not found")
