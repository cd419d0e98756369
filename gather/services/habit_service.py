"""
Habit Service
=============

Daily habits, their check-offs and streaks.
"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gather.models.habit import Habit, HabitCategory, HabitLog
from gather.schemas.habit import HabitCreate
from gather.utils.streaks import best_streak, current_streak

# Seeded the first time a user lists habits
STARTER_HABITS = [
    {"name": "Make bed", "category": HabitCategory.MORNING},
    {"name": "Drink water", "category": HabitCategory.MORNING},
    {"name": "Wordle", "category": HabitCategory.GAMES, "link": "https://www.nytimes.com/games/wordle"},
    {"name": "Read for 10 min", "category": HabitCategory.OPTIONAL},
]

# How far back streaks look
STREAK_LOOKBACK_DAYS = 400


class HabitService:
    """Service for habit operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_habit(self, habit_id: uuid.UUID, user_id: uuid.UUID) -> Habit:
        stmt = select(Habit).where(
            Habit.id == habit_id,
            Habit.user_id == user_id,
            Habit.active.is_(True),
        )
        result = await self.db.execute(stmt)
        habit = result.scalar_one_or_none()
        if habit is None:
            raise HabitNotFoundError(str(habit_id))
        return habit

    async def _active_habits(self, user_id: uuid.UUID) -> list[Habit]:
        stmt = (
            select(Habit)
            .where(Habit.user_id == user_id, Habit.active.is_(True))
            .order_by(Habit.sort_order, Habit.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _has_any_habit(self, user_id: uuid.UUID) -> bool:
        result = await self.db.execute(select(Habit.id).where(Habit.user_id == user_id).limit(1))
        return result.first() is not None

    async def seed_starter_habits(self, user_id: uuid.UUID) -> list[Habit]:
        habits = [
            Habit(
                user_id=user_id,
                name=h["name"],
                category=h["category"],
                link=h.get("link"),
                sort_order=i,
            )
            for i, h in enumerate(STARTER_HABITS)
        ]
        self.db.add_all(habits)
        await self.db.flush()
        return habits

    async def list_for_day(self, user_id: uuid.UUID, today: date) -> list[dict]:
        """
        Active habits with today's state and streaks.

        New users get the starter habits on first call.
        """
        habits = await self._active_habits(user_id)
        if not habits and not await self._has_any_habit(user_id):
            habits = await self.seed_starter_habits(user_id)

        logs_by_habit = await self._log_dates(user_id, today)

        items = []
        for habit in habits:
            dates = logs_by_habit.get(habit.id, set())
            item = habit.to_api_dict()
            item["done"] = today in dates
            item["streak"] = current_streak(dates, today)
            item["bestStreak"] = best_streak(dates)
            items.append(item)
        return items

    async def _log_dates(self, user_id: uuid.UUID, today: date) -> dict[uuid.UUID, set[date]]:
        since = today - timedelta(days=STREAK_LOOKBACK_DAYS)
        stmt = select(HabitLog.habit_id, HabitLog.log_date).where(
            HabitLog.user_id == user_id,
            HabitLog.log_date >= since,
        )
        result = await self.db.execute(stmt)

        dates: dict[uuid.UUID, set[date]] = defaultdict(set)
        for habit_id, log_date in result.all():
            dates[habit_id].add(log_date)
        return dates

    async def create_habit(self, user_id: uuid.UUID, data: HabitCreate) -> Habit:
        habits = await self._active_habits(user_id)
        habit = Habit(
            user_id=user_id,
            name=data.name.strip(),
            description=data.description,
            link=data.link,
            category=data.category,
            sort_order=max((h.sort_order for h in habits), default=-1) + 1,
        )
        self.db.add(habit)
        await self.db.flush()
        return habit

    async def toggle_today(self, habit_id: uuid.UUID, user_id: uuid.UUID, today: date) -> bool:
        """
        Check or uncheck a habit for today.

        Returns:
            True if the habit is now done for today
        """
        await self.get_habit(habit_id, user_id)

        stmt = select(HabitLog).where(
            HabitLog.user_id == user_id,
            HabitLog.habit_id == habit_id,
            HabitLog.log_date == today,
        )
        result = await self.db.execute(stmt)
        existing: Optional[HabitLog] = result.scalar_one_or_none()

        if existing is not None:
            await self.db.delete(existing)
            await self.db.flush()
            return False

        self.db.add(HabitLog(user_id=user_id, habit_id=habit_id, log_date=today))
        await self.db.flush()
        return True

    async def delete_habit(self, habit_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Deactivate a habit; its logs are kept."""
        habit = await self.get_habit(habit_id, user_id)
        habit.active = False
        await self.db.flush()


class HabitNotFoundError(Exception):
    """Raised when a habit ID is not found for the given user."""

    def __init__(self, habit_id: str):
        self.habit_id = habit_id
        super().__init__(f"Habit {habit_id} not found")
