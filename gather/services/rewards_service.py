"""
Rewards Service
===============

Points, levels, momentum and unlockable rewards.

Points are only ever added. Missing a day pauses momentum; nothing is taken
away.
"""

import logging
from datetime import date
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gather.models.rewards import PointTransaction, UserRewards
from gather.utils.points import (
    POINT_VALUES,
    calculate_level,
    calculate_momentum_bonus,
    format_points,
    get_garden_stage,
    get_level_progress,
    get_level_up_message,
    is_first_activity_today,
    update_momentum_days,
    would_level_up,
)

logger = logging.getLogger(__name__)

DEFAULT_UNLOCKED = ["celebration-confetti"]

# Unlocks are gated by lifetime points
REWARD_CATALOG = [
    {"id": "accent-sage", "name": "Sage Accent", "description": "A calming green accent color", "type": "accent_color", "pointsRequired": 100, "preview": {"accent": "#6B9080"}},
    {"id": "accent-lavender", "name": "Lavender Accent", "description": "A gentle purple accent", "type": "accent_color", "pointsRequired": 200, "preview": {"accent": "#9B8BB4"}},
    {"id": "accent-ocean", "name": "Ocean Accent", "description": "A deep blue accent", "type": "accent_color", "pointsRequired": 300, "preview": {"accent": "#5B8FAF"}},
    {"id": "accent-gold", "name": "Gold Accent", "description": "A warm golden accent", "type": "accent_color", "pointsRequired": 400, "preview": {"accent": "#D4A84B"}},
    {"id": "theme-forest", "name": "Forest Theme", "description": "Deep greens and natural browns", "type": "theme", "pointsRequired": 500, "preview": {"accent": "#7CB37C"}},
    {"id": "theme-midnight", "name": "Midnight Theme", "description": "Deep blues with starlight accents", "type": "theme", "pointsRequired": 750, "preview": {"accent": "#8BB4E8"}},
    {"id": "theme-sunrise", "name": "Sunrise Theme", "description": "Warm oranges and soft yellows", "type": "theme", "pointsRequired": 1000, "preview": {"accent": "#E8A990"}},
    {"id": "celebration-confetti", "name": "Classic Confetti", "description": "The default colorful celebration", "type": "celebration", "pointsRequired": 0, "preview": {"type": "confetti"}},
    {"id": "celebration-sparkle", "name": "Sparkle Burst", "description": "Elegant sparkle animation", "type": "celebration", "pointsRequired": 250, "preview": {"type": "sparkle"}},
    {"id": "celebration-fireworks", "name": "Mini Fireworks", "description": "Tiny firework bursts", "type": "celebration", "pointsRequired": 500, "preview": {"type": "fireworks"}},
    {"id": "celebration-garden", "name": "Garden Bloom", "description": "Flowers bloom around completed items", "type": "celebration", "pointsRequired": 750, "preview": {"type": "garden_bloom"}},
    {"id": "feature-sounds", "name": "Completion Sounds", "description": "Optional soft sounds on task completion", "type": "feature", "pointsRequired": 150, "preview": {"feature": "completion_sounds"}},
    {"id": "feature-quotes", "name": "Daily Quotes", "description": "Inspiring quotes in the home view", "type": "feature", "pointsRequired": 300, "preview": {"feature": "daily_quotes"}},
]

_CATALOG_BY_ID = {item["id"]: item for item in REWARD_CATALOG}

ACTION_DESCRIPTIONS = {
    "step": "Completed a step",
    "task": "Completed a task",
    "habit": "Checked off a habit",
    "weekly_reflection": "Weekly reflection",
}


class RewardsService:
    """Service for points and rewards."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_create(self, user_id: uuid.UUID) -> UserRewards:
        stmt = select(UserRewards).where(UserRewards.user_id == user_id)
        result = await self.db.execute(stmt)
        rewards = result.scalar_one_or_none()

        if rewards is None:
            rewards = UserRewards(
                user_id=user_id,
                momentum_points=0,
                lifetime_points=0,
                current_level=1,
                garden_stage=1,
                momentum_days=0,
                unlocked_rewards=list(DEFAULT_UNLOCKED),
            )
            self.db.add(rewards)
            await self.db.flush()

        return rewards

    async def earn(
        self,
        user_id: uuid.UUID,
        action_type: str,
        today: date,
        task_id: Optional[uuid.UUID] = None,
        award_key: Optional[str] = None,
    ) -> Optional[dict]:
        """
        Award points for an action.

        Adds the first-activity-today bonus, the momentum bonus when the
        momentum day count moved, and the level-up bonus when the new total
        crosses a level threshold.

        Args:
            user_id: Profile ID
            action_type: Key of POINT_VALUES (step, task, habit, ...)
            today: The user's local date
            task_id: Related task, if any
            award_key: Identifies the thing being rewarded; each key pays
                out once per user

        Returns:
            ``{"pointsEarned", "summary", "levelUp"}``; levelUp is
            ``{"newLevel", "message"}`` or None. None when ``award_key``
            was already paid.
        """
        if action_type not in POINT_VALUES:
            raise ValueError(f"Unknown action type: {action_type}")

        if award_key is not None and await self.already_awarded(user_id, award_key):
            logger.info("Skipping repeat award %s for %s", award_key, user_id)
            return None

        rewards = await self.get_or_create(user_id)

        total = POINT_VALUES[action_type]
        notes = [ACTION_DESCRIPTIONS.get(action_type, action_type)]

        if is_first_activity_today(rewards.last_activity_date, today):
            total += POINT_VALUES["first_task_today"]
            notes.append(f"+{POINT_VALUES['first_task_today']} first today bonus")

        new_days = update_momentum_days(
            rewards.last_activity_date,
            rewards.momentum_days,
            rewards.pause_streak_until,
            today,
        )
        momentum_bonus = calculate_momentum_bonus(new_days)
        if momentum_bonus > 0 and new_days != rewards.momentum_days:
            total += momentum_bonus
            notes.append(f"+{momentum_bonus} momentum bonus")

        level_up = None
        if would_level_up(rewards.lifetime_points, total):
            total += POINT_VALUES["level_up"]
            notes.append(f"+{POINT_VALUES['level_up']} level up")

        new_lifetime = rewards.lifetime_points + total
        new_level = calculate_level(new_lifetime)
        if new_level > rewards.current_level:
            level_up = {"newLevel": new_level, "message": get_level_up_message(new_level)}

        rewards.momentum_points += total
        rewards.lifetime_points = new_lifetime
        rewards.current_level = new_level
        rewards.garden_stage = new_level
        rewards.momentum_days = new_days
        rewards.last_activity_date = today

        self.db.add(
            PointTransaction(
                user_id=user_id,
                points=total,
                action_type=action_type,
                task_id=task_id,
                description=notes[0] if len(notes) == 1 else f"{notes[0]} ({', '.join(notes[1:])})",
                award_key=award_key,
            )
        )
        await self.db.flush()

        if level_up:
            logger.info("User %s reached level %s", user_id, new_level)

        return {
            "pointsEarned": total,
            "summary": self.summarize(rewards),
            "levelUp": level_up,
        }

    async def already_awarded(self, user_id: uuid.UUID, award_key: str) -> bool:
        stmt = (
            select(PointTransaction.id)
            .where(
                PointTransaction.user_id == user_id,
                PointTransaction.award_key == award_key,
            )
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def pause_momentum(self, user_id: uuid.UUID, until: Optional[date]) -> UserRewards:
        """Hold momentum until a date; None resumes immediately."""
        rewards = await self.get_or_create(user_id)
        rewards.pause_streak_until = until
        await self.db.flush()
        return rewards

    async def unlock(self, user_id: uuid.UUID, reward_id: str) -> UserRewards:
        """
        Unlock a catalog reward.

        Raises:
            RewardNotFoundError: Unknown reward ID
            RewardLockedError: Not enough lifetime points yet
        """
        item = _CATALOG_BY_ID.get(reward_id)
        if item is None:
            raise RewardNotFoundError(reward_id)

        rewards = await self.get_or_create(user_id)
        unlocked = list(rewards.unlocked_rewards or [])
        if reward_id in unlocked:
            return rewards

        if rewards.lifetime_points < item["pointsRequired"]:
            raise RewardLockedError(reward_id, item["pointsRequired"])

        unlocked.append(reward_id)
        rewards.unlocked_rewards = unlocked
        await self.db.flush()
        return rewards

    async def list_transactions(self, user_id: uuid.UUID, limit: int = 50) -> list[PointTransaction]:
        stmt = (
            select(PointTransaction)
            .where(PointTransaction.user_id == user_id)
            .order_by(PointTransaction.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    def summarize(rewards: UserRewards) -> dict:
        return {
            "points": rewards.momentum_points,
            "formattedPoints": format_points(rewards.momentum_points),
            "lifetimePoints": rewards.lifetime_points,
            "level": rewards.current_level,
            "gardenStage": get_garden_stage(rewards.current_level),
            "levelProgress": get_level_progress(rewards.lifetime_points),
            "momentumDays": rewards.momentum_days,
            "lastActivityDate": rewards.last_activity_date.isoformat() if rewards.last_activity_date else None,
            "pauseUntil": rewards.pause_streak_until.isoformat() if rewards.pause_streak_until else None,
            "unlockedRewards": list(rewards.unlocked_rewards or []),
        }


def catalog_for(lifetime_points: int, unlocked: list[str]) -> list[dict]:
    """Catalog entries annotated with availability for one user."""
    return [
        {
            **item,
            "unlocked": item["id"] in unlocked,
            "available": lifetime_points >= item["pointsRequired"],
        }
        for item in REWARD_CATALOG
    ]


class RewardNotFoundError(Exception):
    """Raised for an unknown reward ID."""

    def __init__(self, reward_id: str):
        self.reward_id = reward_id
        super().__init__(f"Reward {reward_id} not found")


class RewardLockedError(Exception):
    """Raised when unlocking a reward the user hasn't earned yet."""

    def __init__(self, reward_id: str, points_required: int):
        self.reward_id = reward_id
        self.points_required = points_required
        super().__init__(f"Reward {reward_id} needs {points_required} lifetime points")
