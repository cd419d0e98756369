"""
Database Models
===============

SQLAlchemy ORM models for all database entities.

All models are imported here to ensure they are registered
with SQLAlchemy's metadata for migrations and relationships.
"""

from gather.models.profile import Profile, InsightFrequency, SubscriptionTier
from gather.models.task import (
    Task,
    TaskCategory,
    TaskSource,
    TaskType,
    EnergyLevel,
)
from gather.models.habit import Habit, HabitLog, HabitCategory
from gather.models.mood import MoodEntry, MOOD_LABELS
from gather.models.insight import (
    TaskInsight,
    TaskCompletion,
    InsightType,
    InsightOutcome,
)
from gather.models.rewards import UserRewards, PointTransaction
from gather.models.message import ChatMessage, MessageRole
from gather.models.reflection import CoachingMemoryEntry, MemoryEntryType, WeeklyReflection

__all__ = [
    # Profile
    "Profile",
    "InsightFrequency",
    "SubscriptionTier",
    # Task
    "Task",
    "TaskCategory",
    "TaskSource",
    "TaskType",
    "EnergyLevel",
    # Habit
    "Habit",
    "HabitLog",
    "HabitCategory",
    # Mood
    "MoodEntry",
    "MOOD_LABELS",
    # Insight
    "TaskInsight",
    "TaskCompletion",
    "InsightType",
    "InsightOutcome",
    # Rewards
    "UserRewards",
    "PointTransaction",
    # Chat
    "ChatMessage",
    "MessageRole",
    # Reflection and memory
    "WeeklyReflection",
    "CoachingMemoryEntry",
    "MemoryEntryType",
]
