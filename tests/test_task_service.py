"""
Task Service Tests
==================

Task creation, step toggling and completion with the database session
mocked out.
"""

import uuid
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError

from gather.models.insight import TaskCompletion
from gather.models.task import EnergyLevel, Task, TaskCategory, TaskSource, TaskType
from gather.schemas.task import TaskCreate, TaskUpdate
from gather.services.task_service import StepNotFoundError, TaskNotFoundError, TaskService

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
TASK_ID = uuid.UUID("00000000-0000-0000-0000-0000000000aa")
# Sunday 18 Oct 2026, 14:30 UTC
NOW = datetime(2026, 10, 18, 14, 30, tzinfo=timezone.utc)


def _task(**overrides) -> Task:
    values = {
        "id": TASK_ID,
        "user_id": USER_ID,
        "title": "Renew passport",
        "category": TaskCategory.SOON,
        "source": TaskSource.MANUAL,
        "type": TaskType.TASK,
        "steps": [
            {"id": "s1", "text": "Find form DS-82", "done": False},
            {"id": "s2", "text": "Get photo", "done": True},
        ],
        "clarifying_answers": [],
    }
    values.update(overrides)
    return Task(**values)


def _service_with(db_session, task):
    service = TaskService(db_session)
    patcher = patch.object(service, "get_task_by_id", AsyncMock(return_value=task))
    patcher.start()
    return service, patcher


def _completions(db_session) -> list[TaskCompletion]:
    return [c.args[0] for c in db_session.add.call_args_list if isinstance(c.args[0], TaskCompletion)]


class TestCreateTask:

    @pytest.mark.asyncio
    async def test_suggestions_fill_missing_fields(self, db_session):
        task = await TaskService(db_session).create_task(USER_ID, TaskCreate(title="Write report due friday"))

        assert task.title == "Write report due friday"
        assert task.category == TaskCategory.SOON
        assert task.badge == "Due friday"
        assert task.energy == EnergyLevel.HIGH
        assert task.type == TaskType.TASK
        db_session.add.assert_called_once_with(task)
        db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_prefix_sets_type(self, db_session):
        task = await TaskService(db_session).create_task(USER_ID, TaskCreate(title="/h Drink water"))

        assert task.title == "Drink water"
        assert task.type == TaskType.HABIT

    @pytest.mark.asyncio
    async def test_explicit_values_win(self, db_session):
        data = TaskCreate(title="Call the bank ASAP", category=TaskCategory.WAITING, energy=EnergyLevel.LOW)

        task = await TaskService(db_session).create_task(USER_ID, data)

        assert task.category == TaskCategory.WAITING
        assert task.energy == EnergyLevel.LOW

    @pytest.mark.asyncio
    async def test_from_capture(self, db_session):
        steps = [{"id": "a", "text": "Book DMV visit", "done": False}]

        task = await TaskService(db_session).create_from_capture(
            USER_ID,
            "Renew driver's license",
            steps,
            clarifying_answers=[{"question": "Which state?", "answer": "CA"}],
            due_date=date(2026, 11, 1),
        )

        assert task.steps == steps
        assert task.clarifying_answers == [{"question": "Which state?", "answer": "CA"}]
        assert task.due_date == date(2026, 11, 1)
        assert task.energy == EnergyLevel.LOW


class TestToggleStep:

    @pytest.mark.asyncio
    async def test_check_records_completion(self, db_session):
        service, patcher = _service_with(db_session, _task())
        try:
            task, done = await service.toggle_step(TASK_ID, USER_ID, "s1", "UTC", now=NOW)
        finally:
            patcher.stop()

        assert done is True
        assert task.steps[0]["done"] is True
        [completion] = _completions(db_session)
        assert completion.step_id == "s1"
        assert completion.completion_day_of_week == 0
        assert completion.completion_hour == 14

    @pytest.mark.asyncio
    async def test_completion_hour_uses_local_time(self, db_session):
        service, patcher = _service_with(db_session, _task())
        try:
            await service.toggle_step(TASK_ID, USER_ID, "s1", "America/Los_Angeles", now=NOW)
        finally:
            patcher.stop()

        assert _completions(db_session)[0].completion_hour == 7

    @pytest.mark.asyncio
    async def test_uncheck(self, db_session):
        service, patcher = _service_with(db_session, _task())
        try:
            task, done = await service.toggle_step(TASK_ID, USER_ID, "s2", now=NOW)
        finally:
            patcher.stop()

        assert done is False
        assert task.steps[1]["done"] is False
        assert _completions(db_session) == []

    @pytest.mark.asyncio
    async def test_unknown_step(self, db_session):
        service, patcher = _service_with(db_session, _task())
        try:
            with pytest.raises(StepNotFoundError):
                await service.toggle_step(TASK_ID, USER_ID, "s9")
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_unknown_task(self, db_session):
        service, patcher = _service_with(db_session, None)
        try:
            with pytest.raises(TaskNotFoundError):
                await service.toggle_step(TASK_ID, USER_ID, "s1")
        finally:
            patcher.stop()


class TestCompleteTask:

    @pytest.mark.asyncio
    async def test_completes_and_closes_insights(self, db_session):
        service, patcher = _service_with(db_session, _task())
        try:
            task, counted = await service.complete_task(TASK_ID, USER_ID, "UTC", now=NOW)
        finally:
            patcher.stop()

        assert counted is True
        assert task.category == TaskCategory.COMPLETED
        assert task.completed_at == NOW
        assert len(_completions(db_session)) == 1
        db_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_already_completed(self, db_session):
        service, patcher = _service_with(db_session, _task(category=TaskCategory.COMPLETED))
        try:
            _, counted = await service.complete_task(TASK_ID, USER_ID, now=NOW)
        finally:
            patcher.stop()

        assert counted is False
        assert _completions(db_session) == []

    @pytest.mark.asyncio
    async def test_habit_extends_streak(self, db_session):
        habit = _task(
            type=TaskType.HABIT,
            recurrence={"frequency": "daily"},
            streak={"current": 4, "best": 6, "lastCompleted": "2026-10-17"},
        )
        service, patcher = _service_with(db_session, habit)
        try:
            task, counted = await service.complete_task(TASK_ID, USER_ID, "UTC", now=NOW)
        finally:
            patcher.stop()

        assert counted is True
        assert task.category == TaskCategory.SOON
        assert task.streak == {"current": 5, "best": 6, "lastCompleted": "2026-10-18"}

    @pytest.mark.asyncio
    async def test_habit_twice_in_a_day(self, db_session):
        habit = _task(
            type=TaskType.HABIT,
            recurrence={"frequency": "daily"},
            streak={"current": 5, "best": 6, "lastCompleted": "2026-10-18"},
        )
        service, patcher = _service_with(db_session, habit)
        try:
            task, counted = await service.complete_task(TASK_ID, USER_ID, "UTC", now=NOW)
        finally:
            patcher.stop()

        assert counted is False
        assert task.streak["current"] == 5
        db_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_broken_streak_restarts(self, db_session):
        habit = _task(
            type=TaskType.HABIT,
            recurrence={"frequency": "daily"},
            streak={"current": 9, "best": 9, "lastCompleted": "2026-10-10"},
        )
        service, patcher = _service_with(db_session, habit)
        try:
            task, _ = await service.complete_task(TASK_ID, USER_ID, "UTC", now=NOW)
        finally:
            patcher.stop()

        assert task.streak == {"current": 1, "best": 9, "lastCompleted": "2026-10-18"}


class TestUpdateTask:

    def test_completed_category_is_rejected(self):
        with pytest.raises(ValidationError):
            TaskUpdate(category=TaskCategory.COMPLETED)

    @pytest.mark.asyncio
    async def test_reopen_clears_completed_at(self, db_session):
        done = _task(category=TaskCategory.COMPLETED, completed_at=NOW)
        service, patcher = _service_with(db_session, done)
        try:
            task = await service.update_task(TASK_ID, USER_ID, TaskUpdate(category=TaskCategory.SOON))
        finally:
            patcher.stop()

        assert task.category == TaskCategory.SOON
        assert task.completed_at is None
        assert _completions(db_session) == []

    @pytest.mark.asyncio
    async def test_reopened_task_completes_again(self, db_session):
        done = _task(category=TaskCategory.COMPLETED, completed_at=NOW)
        service, patcher = _service_with(db_session, done)
        try:
            await service.update_task(TASK_ID, USER_ID, TaskUpdate(category=TaskCategory.URGENT))
            task, counted = await service.complete_task(TASK_ID, USER_ID, "UTC", now=NOW)
        finally:
            patcher.stop()

        assert counted is True
        assert task.category == TaskCategory.COMPLETED
        assert len(_completions(db_session)) == 1

    @pytest.mark.asyncio
    async def test_null_category_is_ignored(self, db_session):
        service, patcher = _service_with(db_session, _task())
        try:
            task = await service.update_task(TASK_ID, USER_ID, TaskUpdate(category=None, notes="Bring old passport"))
        finally:
            patcher.stop()

        assert task.category == TaskCategory.SOON
        assert task.notes == "Bring old passport"
