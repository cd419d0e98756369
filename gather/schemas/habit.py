"""
Habit and Mood Schemas
======================

Pydantic schemas for habit and mood endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field

from gather.models.habit import HabitCategory


class HabitCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    link: Optional[str] = Field(None, max_length=500)
    category: HabitCategory = HabitCategory.OPTIONAL


class MoodCreate(BaseModel):
    mood: int = Field(ge=1, le=5, description="1 = terrible ... 5 = great")
    note: Optional[str] = Field(None, max_length=1000)
