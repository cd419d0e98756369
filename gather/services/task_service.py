"""
Task Service
============

Business logic for tasks, their inline steps, and completion tracking.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Sequence
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gather.models.insight import InsightOutcome, TaskCompletion, TaskInsight
from gather.models.task import EnergyLevel, Task, TaskCategory, TaskType
from gather.schemas.task import TaskCreate, TaskUpdate
from gather.utils.helpers import js_weekday, local_now, utc_now
from gather.utils.streaks import calculate_new_streak
from gather.utils.task_text import parse_type_prefix, quick_analyze, suggest_energy_level


class TaskService:
    """Service for task operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Core CRUD
    # =========================================================================

    async def get_task_by_id(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Optional[Task]:
        """Get task by ID ensuring it belongs to user."""
        stmt = select(Task).where(
            Task.id == task_id,
            Task.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_task_or_raise(self, task_id: uuid.UUID, user_id: uuid.UUID) -> Task:
        task = await self.get_task_by_id(task_id, user_id)
        if task is None:
            raise TaskNotFoundError(str(task_id))
        return task

    async def list_tasks(
        self,
        user_id: uuid.UUID,
        include_completed: bool = False,
        today: Optional[date] = None,
    ) -> list[Task]:
        """
        List a user's tasks, newest first.

        Snoozed tasks stay hidden until their snooze date; completed tasks
        only show when asked for.
        """
        stmt = select(Task).where(Task.user_id == user_id)
        if not include_completed:
            stmt = stmt.where(Task.category != TaskCategory.COMPLETED)
        if today is not None:
            stmt = stmt.where((Task.snoozed_until.is_(None)) | (Task.snoozed_until <= today))
        stmt = stmt.order_by(Task.created_at.desc())

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_open_tasks(self, user_id: uuid.UUID) -> list[Task]:
        return await self.list_tasks(user_id, include_completed=False)

    async def create_task(
        self,
        user_id: uuid.UUID,
        task_data: TaskCreate,
    ) -> Task:
        """
        Create a task.

        A quick-add prefix sets the type; category, badge and energy are
        suggested from the title when not given.
        """
        prefix_type, title = parse_type_prefix(task_data.title.strip())
        title = title or task_data.title.strip()
        suggestion = quick_analyze(title)

        energy = task_data.energy
        if energy is None:
            suggested = suggest_energy_level(title)
            energy = EnergyLevel(suggested) if suggested else None

        task = Task(
            user_id=user_id,
            title=title,
            description=task_data.description,
            category=task_data.category or TaskCategory(suggestion["suggestedCategory"]),
            badge=task_data.badge or suggestion["suggestedBadge"],
            due_date=task_data.due_date,
            context=task_data.context,
            context_text=task_data.context_text,
            notes=task_data.notes,
            task_category=task_data.task_category,
            steps=[s.model_dump(exclude_none=True) for s in task_data.steps or []],
            clarifying_answers=[a.model_dump() for a in task_data.clarifying_answers or []],
            source=task_data.source,
            type=task_data.type or TaskType(prefix_type),
            scheduled_at=task_data.scheduled_at,
            recurrence=task_data.recurrence.model_dump(exclude_none=True) if task_data.recurrence else None,
            duration=task_data.duration,
            energy=energy,
        )
        self.db.add(task)
        await self.db.flush()
        return task

    async def create_from_capture(
        self,
        user_id: uuid.UUID,
        title: str,
        steps: list[dict],
        clarifying_answers: Optional[list[dict]] = None,
        context_text: Optional[str] = None,
        due_date: Optional[date] = None,
        task_category: Optional[str] = None,
    ) -> Task:
        """Persist the task produced by a finished capture flow."""
        suggestion = quick_analyze(title)
        suggested_energy = suggest_energy_level(title)

        task = Task(
            user_id=user_id,
            title=title[:500],
            category=TaskCategory(suggestion["suggestedCategory"]),
            badge=suggestion["suggestedBadge"],
            due_date=due_date,
            context_text=context_text,
            task_category=task_category,
            steps=steps,
            clarifying_answers=clarifying_answers or [],
            energy=EnergyLevel(suggested_energy) if suggested_energy else None,
        )
        self.db.add(task)
        await self.db.flush()
        return task

    async def update_task(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID,
        task_data: TaskUpdate,
    ) -> Task:
        """
        Apply the fields present in the request.

        Tasks are completed through complete_task only. Moving a completed
        task back to an open category reopens it and clears ``completed_at``.
        """
        task = await self.get_task_or_raise(task_id, user_id)
        was_completed = task.is_completed

        changes = task_data.model_dump(exclude_unset=True)
        if changes.get("category") is None:
            changes.pop("category", None)

        for field, value in changes.items():
            if field == "clarifying_answers":
                value = value or []
            setattr(task, field, value)

        if was_completed and not task.is_completed:
            task.completed_at = None

        await self.db.flush()
        return task

    async def delete_task(self, task_id: uuid.UUID, user_id: uuid.UUID) -> None:
        task = await self.get_task_or_raise(task_id, user_id)
        await self.db.delete(task)
        await self.db.flush()

    async def snooze_task(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID,
        until: date,
    ) -> Task:
        task = await self.get_task_or_raise(task_id, user_id)
        task.snoozed_until = until
        await self.db.flush()
        return task

    # =========================================================================
    # Steps
    # =========================================================================

    async def replace_steps(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID,
        steps: Sequence[dict],
    ) -> Task:
        task = await self.get_task_or_raise(task_id, user_id)
        task.steps = list(steps)
        await self.db.flush()
        return task

    async def toggle_step(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID,
        step_id: str,
        tz_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> tuple[Task, bool]:
        """
        Flip a step's ``done`` flag.

        Checking a step off records a completion for pattern analysis.

        Returns:
            ``(task, now_done)``
        """
        task = await self.get_task_or_raise(task_id, user_id)

        steps = [dict(s) for s in task.steps or []]
        target = next((s for s in steps if s.get("id") == step_id), None)
        if target is None:
            raise StepNotFoundError(step_id)

        target["done"] = not target.get("done", False)
        # Reassign so SQLAlchemy sees the JSONB change
        task.steps = steps

        if target["done"]:
            self._record_completion(task, user_id, tz_name, now or utc_now(), step_id=step_id)

        await self.db.flush()
        return task, target["done"]

    # =========================================================================
    # Completion
    # =========================================================================

    async def complete_task(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID,
        tz_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> tuple[Task, bool]:
        """
        Complete a task.

        Recurring habit-type tasks stay open and extend their streak
        instead. Any open insights on the task are closed as
        ``task_completed``.

        Returns:
            ``(task, counted)``; counted is False for a repeat same-day
            habit completion, which earns nothing
        """
        task = await self.get_task_or_raise(task_id, user_id)
        now = now or utc_now()
        today = local_now(tz_name, now).date()

        if task.type == TaskType.HABIT and task.recurrence:
            streak = dict(task.streak or {})
            last = streak.get("lastCompleted")
            last_date = date.fromisoformat(last) if last else None
            current, incremented = calculate_new_streak(streak.get("current", 0), last_date, today)
            if not incremented:
                return task, False
            task.streak = {
                "current": current,
                "best": max(current, streak.get("best", 0)),
                "lastCompleted": today.isoformat(),
            }
        else:
            if task.is_completed:
                return task, False
            task.mark_complete(now)

        self._record_completion(task, user_id, tz_name, now)
        await self._close_insights(task.id, user_id, now)
        await self.db.flush()
        return task, True

    def _record_completion(
        self,
        task: Task,
        user_id: uuid.UUID,
        tz_name: Optional[str],
        now: datetime,
        step_id: Optional[str] = None,
    ) -> None:
        local = local_now(tz_name, now)
        self.db.add(
            TaskCompletion(
                user_id=user_id,
                task_id=task.id,
                step_id=step_id,
                completed_at=now,
                completion_day_of_week=js_weekday(local),
                completion_hour=local.hour,
            )
        )

    async def _close_insights(self, task_id: uuid.UUID, user_id: uuid.UUID, now: datetime) -> None:
        stmt = (
            update(TaskInsight)
            .where(
                TaskInsight.task_id == task_id,
                TaskInsight.user_id == user_id,
                TaskInsight.outcome.is_(None),
            )
            .values(outcome=InsightOutcome.TASK_COMPLETED, outcome_at=now)
        )
        await self.db.execute(stmt)

    # =========================================================================
    # Pattern data
    # =========================================================================

    async def get_completions_since(self, user_id: uuid.UUID, since: datetime) -> list[TaskCompletion]:
        stmt = select(TaskCompletion).where(
            TaskCompletion.user_id == user_id,
            TaskCompletion.completed_at >= since,
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_recently_completed(
        self,
        user_id: uuid.UUID,
        days: int = 30,
        now: Optional[datetime] = None,
    ) -> list[Task]:
        since = (now or utc_now()) - timedelta(days=days)
        stmt = select(Task).where(
            Task.user_id == user_id,
            Task.category == TaskCategory.COMPLETED,
            Task.completed_at >= since,
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


# =============================================================================
# Exceptions
# =============================================================================

class TaskNotFoundError(Exception):
    """Raised when a task ID is not found for the given user."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class StepNotFoundError(Exception):
    """Raised when a step ID is not on the task."""

    def __init__(self, step_id: str):
        self.step_id = step_id
        super().__init__(f"Step {step_id} not found")

