"""
Tasks API Tests
===============

Endpoints under /api/v1/tasks with TaskService and RewardsService mocked.
"""

import uuid
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gather.models.task import Task, TaskCategory, TaskSource, TaskType
from gather.services.cache import CacheKeys
from gather.services.rewards_service import RewardsService
from gather.services.task_service import StepNotFoundError, TaskNotFoundError

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
TASK_ID = uuid.UUID("00000000-0000-0000-0000-0000000000aa")
TODAY = date(2026, 10, 18)
LIST_KEY = CacheKeys.tasks(str(USER_ID), TODAY.isoformat())


def _task(**overrides) -> Task:
    values = {
        "id": TASK_ID,
        "user_id": USER_ID,
        "title": "Renew passport",
        "category": TaskCategory.SOON,
        "source": TaskSource.MANUAL,
        "type": TaskType.TASK,
        "steps": [{"id": "s1", "text": "Find form DS-82", "done": False}],
        "clarifying_answers": [],
        "created_at": datetime(2026, 10, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 10, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return Task(**values)


REWARD = {"pointsEarned": 35, "levelUp": None, "summary": {"level": 1}}


class TestHeuristics:

    @pytest.mark.asyncio
    async def test_quick_analyze(self, client):
        response = await client.post("/api/v1/tasks/quick-analyze", json={"title": "Write report due friday"})

        assert response.status_code == 200
        assert response.json()["data"] == {
            "suggestedCategory": "soon",
            "suggestedBadge": "Due friday",
            "suggestedEnergy": "high",
        }

    @pytest.mark.asyncio
    async def test_duplicate_check(self, client):
        with patch("gather.api.v1.tasks.TaskService") as service_cls:
            service_cls.return_value.list_open_tasks = AsyncMock(return_value=[_task()])
            response = await client.post("/api/v1/tasks/duplicate-check", json={"text": "renew my passport"})

        data = response.json()["data"]
        assert data["isDuplicate"] is True
        assert data["task"]["id"] == str(TASK_ID)

    @pytest.mark.asyncio
    async def test_no_duplicate(self, client):
        with patch("gather.api.v1.tasks.TaskService") as service_cls:
            service_cls.return_value.list_open_tasks = AsyncMock(return_value=[_task()])
            response = await client.post("/api/v1/tasks/duplicate-check", json={"text": "Buy stamps"})

        assert response.json()["data"] == {"isDuplicate": False, "task": None}


class TestCrud:

    @pytest.mark.asyncio
    async def test_list_is_cached(self, client, fake_redis):
        with patch("gather.api.v1.tasks.TaskService") as service_cls, \
                patch("gather.api.v1.tasks.local_today", return_value=TODAY):
            service_cls.return_value.list_tasks = AsyncMock(return_value=[_task()])
            first = await client.get("/api/v1/tasks")
            second = await client.get("/api/v1/tasks")

        assert first.json()["data"] == second.json()["data"]
        assert first.json()["data"][0]["title"] == "Renew passport"
        service_cls.return_value.list_tasks.assert_awaited_once()
        assert LIST_KEY in fake_redis.store

    @pytest.mark.asyncio
    async def test_list_cache_rolls_over_at_local_midnight(self, client):
        snoozed = _task(snoozed_until=date(2026, 10, 19))

        with patch("gather.api.v1.tasks.TaskService") as service_cls:
            service_cls.return_value.list_tasks = AsyncMock(side_effect=[[], [snoozed]])
            with patch("gather.api.v1.tasks.local_today", return_value=TODAY):
                before = await client.get("/api/v1/tasks")
            with patch("gather.api.v1.tasks.local_today", return_value=date(2026, 10, 19)):
                after = await client.get("/api/v1/tasks")

        assert before.json()["data"] == []
        assert after.json()["data"][0]["id"] == str(TASK_ID)
        assert service_cls.return_value.list_tasks.await_count == 2

    @pytest.mark.asyncio
    async def test_create_clears_list_cache(self, client, fake_redis):
        fake_redis.store[LIST_KEY] = "[]"

        with patch("gather.api.v1.tasks.TaskService") as service_cls:
            service_cls.return_value.create_task = AsyncMock(return_value=_task())
            response = await client.post("/api/v1/tasks", json={"title": "Renew passport"})

        assert response.status_code == 201
        assert response.json()["data"]["id"] == str(TASK_ID)
        assert LIST_KEY not in fake_redis.store
        task_data = service_cls.return_value.create_task.call_args.args[1]
        assert task_data.title == "Renew passport"

    @pytest.mark.asyncio
    async def test_create_rejects_empty_title(self, client):
        response = await client.post("/api/v1/tasks", json={"title": ""})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_get_missing_task(self, client):
        with patch("gather.api.v1.tasks.TaskService") as service_cls:
            service_cls.return_value.get_task_by_id = AsyncMock(return_value=None)
            response = await client.get(f"/api/v1/tasks/{TASK_ID}")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": {"code": "TASK_001", "message": "Task not found", "taskId": str(TASK_ID)},
        }

    @pytest.mark.asyncio
    async def test_update_missing_task(self, client):
        with patch("gather.api.v1.tasks.TaskService") as service_cls:
            service_cls.return_value.update_task = AsyncMock(side_effect=TaskNotFoundError(TASK_ID))
            response = await client.patch(f"/api/v1/tasks/{TASK_ID}", json={"notes": "Photo booth on Main St"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TASK_001"

    @pytest.mark.asyncio
    async def test_update_cannot_complete(self, client):
        with patch("gather.api.v1.tasks.TaskService") as service_cls:
            response = await client.patch(f"/api/v1/tasks/{TASK_ID}", json={"category": "completed"})

        assert response.status_code == 422
        assert response.json()["error"]["field"] == "body.category"
        service_cls.return_value.update_task.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_can_reopen(self, client):
        with patch("gather.api.v1.tasks.TaskService") as service_cls:
            service_cls.return_value.update_task = AsyncMock(return_value=_task(category=TaskCategory.URGENT))
            response = await client.patch(f"/api/v1/tasks/{TASK_ID}", json={"category": "urgent"})

        assert response.status_code == 200
        update = service_cls.return_value.update_task.call_args.args[2]
        assert update.category == TaskCategory.URGENT

    @pytest.mark.asyncio
    async def test_delete(self, client):
        with patch("gather.api.v1.tasks.TaskService") as service_cls:
            service_cls.return_value.delete_task = AsyncMock(return_value=None)
            response = await client.delete(f"/api/v1/tasks/{TASK_ID}")

        assert response.status_code == 200
        service_cls.return_value.delete_task.assert_awaited_once_with(TASK_ID, USER_ID)


class TestCompletion:

    @pytest.mark.asyncio
    async def test_complete_awards_task_points(self, client):
        task = _task(category=TaskCategory.COMPLETED)

        with patch("gather.api.v1.tasks.TaskService") as service_cls, \
                patch("gather.api.v1.tasks.RewardsService") as rewards_cls:
            service_cls.return_value.complete_task = AsyncMock(return_value=(task, True))
            rewards_cls.return_value.earn = AsyncMock(return_value=REWARD)
            response = await client.post(f"/api/v1/tasks/{TASK_ID}/complete")

        data = response.json()["data"]
        assert data["counted"] is True
        assert data["reward"] == REWARD
        assert data["task"]["category"] == "completed"
        assert rewards_cls.return_value.earn.call_args.args[1] == "task"
        assert rewards_cls.return_value.earn.call_args.kwargs["award_key"] == f"task:{TASK_ID}"

    @pytest.mark.asyncio
    async def test_habit_task_earns_habit_points(self, client):
        task = _task(type=TaskType.HABIT, recurrence={"frequency": "daily"})

        with patch("gather.api.v1.tasks.TaskService") as service_cls, \
                patch("gather.api.v1.tasks.RewardsService") as rewards_cls:
            service_cls.return_value.complete_task = AsyncMock(return_value=(task, True))
            rewards_cls.return_value.earn = AsyncMock(return_value=REWARD)
            with patch("gather.api.v1.tasks.local_today", return_value=TODAY):
                await client.post(f"/api/v1/tasks/{TASK_ID}/complete")

        assert rewards_cls.return_value.earn.call_args.args[1] == "habit"
        assert rewards_cls.return_value.earn.call_args.kwargs["award_key"] == f"task:{TASK_ID}:2026-10-18"

    @pytest.mark.asyncio
    async def test_repeat_completion_earns_nothing(self, client):
        with patch("gather.api.v1.tasks.TaskService") as service_cls, \
                patch("gather.api.v1.tasks.RewardsService") as rewards_cls:
            service_cls.return_value.complete_task = AsyncMock(return_value=(_task(type=TaskType.HABIT), False))
            response = await client.post(f"/api/v1/tasks/{TASK_ID}/complete")

        assert response.json()["data"]["reward"] is None
        rewards_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_completing_again_after_reopen_pays_nothing(self, client, db_session):
        paid = MagicMock()
        paid.first.return_value = (uuid.uuid4(),)
        db_session.execute = AsyncMock(return_value=paid)

        with patch("gather.api.v1.tasks.TaskService") as service_cls, \
                patch.object(RewardsService, "get_or_create") as get_or_create:
            service_cls.return_value.complete_task = AsyncMock(
                return_value=(_task(category=TaskCategory.COMPLETED), True)
            )
            response = await client.post(f"/api/v1/tasks/{TASK_ID}/complete")

        data = response.json()["data"]
        assert data["counted"] is True
        assert data["reward"] is None
        get_or_create.assert_not_called()
        db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_checking_a_step_awards_points(self, client):
        with patch("gather.api.v1.tasks.TaskService") as service_cls, \
                patch("gather.api.v1.tasks.RewardsService") as rewards_cls:
            service_cls.return_value.toggle_step = AsyncMock(return_value=(_task(), True))
            rewards_cls.return_value.earn = AsyncMock(return_value=REWARD)
            response = await client.post(f"/api/v1/tasks/{TASK_ID}/steps/s1/toggle")

        assert response.json()["data"]["done"] is True
        assert rewards_cls.return_value.earn.call_args.args[1] == "step"
        assert rewards_cls.return_value.earn.call_args.kwargs["award_key"] == f"step:{TASK_ID}:s1"

    @pytest.mark.asyncio
    async def test_unchecking_a_step_earns_nothing(self, client):
        with patch("gather.api.v1.tasks.TaskService") as service_cls, \
                patch("gather.api.v1.tasks.RewardsService") as rewards_cls:
            service_cls.return_value.toggle_step = AsyncMock(return_value=(_task(), False))
            response = await client.post(f"/api/v1/tasks/{TASK_ID}/steps/s1/toggle")

        assert response.json()["data"]["reward"] is None
        rewards_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_step(self, client):
        with patch("gather.api.v1.tasks.TaskService") as service_cls:
            service_cls.return_value.toggle_step = AsyncMock(side_effect=StepNotFoundError("s9"))
            response = await client.post(f"/api/v1/tasks/{TASK_ID}/steps/s9/toggle")

        assert response.status_code == 404
        assert response.json()["error"] == {"code": "TASK_002", "message": "Step not found", "stepId": "s9"}

    @pytest.mark.asyncio
    async def test_snooze(self, client):
        with patch("gather.api.v1.tasks.TaskService") as service_cls:
            service_cls.return_value.snooze_task = AsyncMock(return_value=_task())
            response = await client.post(f"/api/v1/tasks/{TASK_ID}/snooze", json={"until": "2026-10-25"})

        assert response.status_code == 200
        until = service_cls.return_value.snooze_task.call_args.args[2]
        assert until.isoformat() == "2026-10-25"


@pytest.mark.asyncio
async def test_demo_visitors_cannot_list_tasks(demo_client):
    response = await demo_client.get("/api/v1/tasks")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_002"
