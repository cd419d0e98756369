"""
Habits API Endpoints
====================

Daily habits with streaks. Dates follow the user's timezone.
"""

import uuid

from fastapi import APIRouter, status

from gather.core.errors import ErrorCodes, NotFoundError
from gather.dependencies import CurrentProfile, DBSession
from gather.schemas.habit import HabitCreate
from gather.services.cache import CacheInvalidator, CacheKeys, CacheManager
from gather.services.habit_service import HabitNotFoundError, HabitService
from gather.services.rewards_service import RewardsService
from gather.utils.helpers import local_today
from gather.utils.points import habit_award_key

router = APIRouter()


def _habit_not_found(habit_id: uuid.UUID) -> NotFoundError:
    return NotFoundError(code=ErrorCodes.HABIT_NOT_FOUND, message="Habit not found", habitId=str(habit_id))


@router.get("")
async def list_habits(current_profile: CurrentProfile, db: DBSession):
    """
    Today's habits with done state, current streak and best streak.

    First-time users get a starter set.
    """
    today = local_today(current_profile.timezone)
    cache_key = CacheKeys.habits_today(str(current_profile.id), today.isoformat())

    cached = await CacheManager.get(cache_key)
    if cached is not None:
        return {"success": True, "data": cached}

    habits = await HabitService(db).list_for_day(current_profile.id, today)
    await CacheManager.set(cache_key, habits, ttl=CacheManager.TTL_SHORT)

    return {"success": True, "data": habits}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_habit(
    habit_data: HabitCreate,
    current_profile: CurrentProfile,
    db: DBSession,
):
    habit = await HabitService(db).create_habit(current_profile.id, habit_data)

    await CacheInvalidator.on_habit_change(str(current_profile.id))

    return {
        "success": True,
        "data": habit.to_api_dict(),
        "message": "Habit created successfully",
    }


@router.post("/{habit_id}/toggle")
async def toggle_habit(
    habit_id: uuid.UUID,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """
    Check or uncheck today's log.

    The first check of a habit on a given day awards habit points; checking
    it again after an uncheck earns nothing.
    """
    today = local_today(current_profile.timezone)
    try:
        done = await HabitService(db).toggle_today(habit_id, current_profile.id, today)
    except HabitNotFoundError:
        raise _habit_not_found(habit_id)

    reward = None
    if done:
        reward = await RewardsService(db).earn(
            current_profile.id,
            "habit",
            today,
            award_key=habit_award_key(habit_id, today),
        )

    await CacheInvalidator.on_habit_change(str(current_profile.id))

    return {
        "success": True,
        "data": {"habitId": str(habit_id), "done": done, "reward": reward},
    }


@router.delete("/{habit_id}")
async def delete_habit(
    habit_id: uuid.UUID,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """Remove a habit from the list; its history is kept."""
    try:
        await HabitService(db).delete_habit(habit_id, current_profile.id)
    except HabitNotFoundError:
        raise _habit_not_found(habit_id)

    await CacheInvalidator.on_habit_change(str(current_profile.id))

    return {"success": True, "message": "Habit deleted successfully"}
