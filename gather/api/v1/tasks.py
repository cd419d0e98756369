"""
Tasks API Endpoints
===================

Handles task CRUD, inline steps, completion and snoozing.

Checking off a step or completing a task awards points; the response
carries the points earned and any level-up.
"""

import logging
from typing import Optional
import uuid

from fastapi import APIRouter, Depends, Query, status

from gather.core.errors import ErrorCodes, NotFoundError
from gather.core.rate_limit import create_rate_limit_dependency
from gather.dependencies import CurrentProfile, DBSession
from gather.models.task import TaskType
from gather.schemas.task import (
    DuplicateCheckRequest,
    QuickAnalyzeRequest,
    ReplaceStepsRequest,
    SnoozeRequest,
    TaskCreate,
    TaskUpdate,
)
from gather.services.cache import CacheInvalidator, CacheKeys, CacheManager
from gather.services.rewards_service import RewardsService
from gather.services.task_service import StepNotFoundError, TaskNotFoundError, TaskService
from gather.utils.helpers import local_today
from gather.utils.points import step_award_key, task_award_key
from gather.utils.task_text import find_duplicate_task, quick_analyze, suggest_energy_level

logger = logging.getLogger(__name__)

router = APIRouter()


def _task_not_found(task_id: uuid.UUID) -> NotFoundError:
    return NotFoundError(code=ErrorCodes.TASK_NOT_FOUND, message="Task not found", taskId=str(task_id))


# =============================================================================
# Heuristics (no AI)
# =============================================================================

@router.post("/quick-analyze")
async def quick_analyze_task(request: QuickAnalyzeRequest, current_profile: CurrentProfile):
    """Instant category, badge and energy suggestion for a title."""
    result = quick_analyze(request.title)
    result["suggestedEnergy"] = suggest_energy_level(request.title)
    return {"success": True, "data": result}


@router.post("/duplicate-check")
async def duplicate_check(
    request: DuplicateCheckRequest,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """Return the open task that ``text`` duplicates, if any."""
    tasks = await TaskService(db).list_open_tasks(current_profile.id)
    duplicate = find_duplicate_task(request.text, tasks)
    return {
        "success": True,
        "data": {
            "isDuplicate": duplicate is not None,
            "task": duplicate.to_api_dict() if duplicate else None,
        },
    }


# =============================================================================
# CRUD
# =============================================================================

@router.get("")
async def list_tasks(
    current_profile: CurrentProfile,
    db: DBSession,
    include_completed: bool = Query(default=False),
):
    """
    List tasks, newest first.

    Snoozed tasks are hidden until their snooze date in the user's timezone.
    """
    today = local_today(current_profile.timezone)
    cache_key = CacheKeys.tasks(str(current_profile.id), today.isoformat())

    if not include_completed:
        cached = await CacheManager.get(cache_key)
        if cached is not None:
            return {"success": True, "data": cached}

    tasks = await TaskService(db).list_tasks(
        current_profile.id,
        include_completed=include_completed,
        today=today,
    )
    data = [t.to_api_dict() for t in tasks]

    if not include_completed:
        await CacheManager.set(cache_key, data, ttl=CacheManager.TTL_SHORT)

    return {"success": True, "data": data}


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(create_rate_limit_dependency("create"))],
)
async def create_task(
    task_data: TaskCreate,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """Create a task."""
    task = await TaskService(db).create_task(current_profile.id, task_data)

    await CacheInvalidator.on_task_change(str(current_profile.id))

    return {
        "success": True,
        "data": task.to_api_dict(),
        "message": "Task created successfully",
    }


@router.get("/{task_id}")
async def get_task(
    task_id: uuid.UUID,
    current_profile: CurrentProfile,
    db: DBSession,
):
    task = await TaskService(db).get_task_by_id(task_id, current_profile.id)
    if task is None:
        raise _task_not_found(task_id)

    return {"success": True, "data": task.to_api_dict()}


@router.patch("/{task_id}")
async def update_task(
    task_id: uuid.UUID,
    task_data: TaskUpdate,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """
    Update the fields sent in the request.

    ``category: completed`` is rejected; completion goes through
    ``POST /tasks/{id}/complete``. Moving a completed task to another
    category reopens it.
    """
    try:
        task = await TaskService(db).update_task(task_id, current_profile.id, task_data)
    except TaskNotFoundError:
        raise _task_not_found(task_id)

    await CacheInvalidator.on_task_change(str(current_profile.id))

    return {
        "success": True,
        "data": task.to_api_dict(),
        "message": "Task updated successfully",
    }


@router.delete("/{task_id}")
async def delete_task(
    task_id: uuid.UUID,
    current_profile: CurrentProfile,
    db: DBSession,
):
    try:
        await TaskService(db).delete_task(task_id, current_profile.id)
    except TaskNotFoundError:
        raise _task_not_found(task_id)

    await CacheInvalidator.on_task_change(str(current_profile.id))

    return {"success": True, "message": "Task deleted successfully"}


# =============================================================================
# Completion and steps
# =============================================================================

@router.post("/{task_id}/complete")
async def complete_task(
    task_id: uuid.UUID,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """
    Complete a task and award points.

    Recurring habit-type tasks extend their streak instead of closing; a
    second completion on the same day earns nothing. A task that was
    reopened and completed again is not paid twice.
    """
    tz_name = current_profile.timezone
    try:
        task, counted = await TaskService(db).complete_task(task_id, current_profile.id, tz_name)
    except TaskNotFoundError:
        raise _task_not_found(task_id)

    reward: Optional[dict] = None
    if counted:
        today = local_today(tz_name)
        is_habit = task.type == TaskType.HABIT
        reward = await RewardsService(db).earn(
            current_profile.id,
            "habit" if is_habit else "task",
            today,
            task_id=task.id,
            award_key=task_award_key(task.id, today if is_habit else None),
        )

    await CacheInvalidator.on_task_complete(str(current_profile.id))
    logger.info("Task %s completed by %s (counted=%s)", task_id, current_profile.id, counted)

    return {
        "success": True,
        "data": {
            "task": task.to_api_dict(),
            "counted": counted,
            "reward": reward,
        },
    }


@router.post("/{task_id}/steps/{step_id}/toggle")
async def toggle_step(
    task_id: uuid.UUID,
    step_id: str,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """Check or uncheck a step; the first check of each step awards step points."""
    tz_name = current_profile.timezone
    try:
        task, done = await TaskService(db).toggle_step(task_id, current_profile.id, step_id, tz_name)
    except TaskNotFoundError:
        raise _task_not_found(task_id)
    except StepNotFoundError:
        raise NotFoundError(
            code=ErrorCodes.TASK_STEP_NOT_FOUND,
            message="Step not found",
            stepId=step_id,
        )

    reward: Optional[dict] = None
    if done:
        reward = await RewardsService(db).earn(
            current_profile.id,
            "step",
            local_today(tz_name),
            task_id=task.id,
            award_key=step_award_key(task.id, step_id),
        )
        await CacheInvalidator.on_task_complete(str(current_profile.id))
    else:
        await CacheInvalidator.on_task_change(str(current_profile.id))

    return {
        "success": True,
        "data": {
            "task": task.to_api_dict(),
            "done": done,
            "reward": reward,
        },
    }


@router.put("/{task_id}/steps")
async def replace_steps(
    task_id: uuid.UUID,
    request: ReplaceStepsRequest,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """Replace the task's steps, e.g. after regenerating them."""
    steps = [s.model_dump(exclude_none=True) for s in request.steps]
    try:
        task = await TaskService(db).replace_steps(task_id, current_profile.id, steps)
    except TaskNotFoundError:
        raise _task_not_found(task_id)

    await CacheInvalidator.on_task_change(str(current_profile.id))

    return {"success": True, "data": task.to_api_dict()}


@router.post("/{task_id}/snooze")
async def snooze_task(
    task_id: uuid.UUID,
    request: SnoozeRequest,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """Hide the task from the list until a date."""
    try:
        task = await TaskService(db).snooze_task(task_id, current_profile.id, request.until)
    except TaskNotFoundError:
        raise _task_not_found(task_id)

    await CacheInvalidator.on_task_change(str(current_profile.id))

    return {"success": True, "data": task.to_api_dict()}
