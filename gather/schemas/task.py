"""
Task Schemas
============

Pydantic schemas for task endpoints.
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gather.models.task import EnergyLevel, TaskCategory, TaskSource, TaskType


# =============================================================================
# Shared
# =============================================================================

class StepSource(BaseModel):
    name: str
    url: Optional[str] = None


class StepAction(BaseModel):
    text: str
    url: Optional[str] = None


class Step(BaseModel):
    """A single step of a task, stored inline on the task."""

    model_config = ConfigDict(extra="ignore")

    id: str
    text: str = Field(min_length=1)
    done: bool = False
    summary: Optional[str] = None
    detail: Optional[str] = None
    alternatives: Optional[list[str]] = None
    examples: Optional[list[str]] = None
    checklist: Optional[list[str]] = None
    time: Optional[str] = None
    source: Optional[StepSource] = None
    action: Optional[StepAction] = None


class Recurrence(BaseModel):
    frequency: str = Field(pattern=r"^(daily|weekly|monthly)$")
    days: Optional[list[int]] = None


class ClarifyingAnswer(BaseModel):
    question: str
    answer: str


# =============================================================================
# Request Schemas
# =============================================================================

class TaskCreate(BaseModel):
    """
    Request schema for creating a task.

    A quick-add prefix on the title (``/r``, ``!``, ``/h``, ``/e``) sets
    the type when ``type`` is omitted.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = None
    category: Optional[TaskCategory] = None
    badge: Optional[str] = Field(None, max_length=100)
    due_date: Optional[date] = Field(None, alias="dueDate")
    context: Optional[dict[str, Any]] = None
    context_text: Optional[str] = Field(None, alias="contextText")
    notes: Optional[str] = None
    task_category: Optional[str] = Field(None, alias="taskCategory", max_length=50)
    steps: Optional[list[Step]] = None
    clarifying_answers: Optional[list[ClarifyingAnswer]] = Field(None, alias="clarifyingAnswers")
    source: TaskSource = TaskSource.MANUAL
    type: Optional[TaskType] = None
    scheduled_at: Optional[datetime] = Field(None, alias="scheduledAt")
    recurrence: Optional[Recurrence] = None
    duration: Optional[int] = Field(None, ge=1, le=1440)
    energy: Optional[EnergyLevel] = None


class TaskUpdate(BaseModel):
    """Request schema for updating a task. Only fields sent are changed."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    category: Optional[TaskCategory] = None
    badge: Optional[str] = Field(None, max_length=100)
    due_date: Optional[date] = Field(None, alias="dueDate")
    context: Optional[dict[str, Any]] = None
    context_text: Optional[str] = Field(None, alias="contextText")
    notes: Optional[str] = None
    task_category: Optional[str] = Field(None, alias="taskCategory", max_length=50)
    clarifying_answers: Optional[list[ClarifyingAnswer]] = Field(None, alias="clarifyingAnswers")
    type: Optional[TaskType] = None
    scheduled_at: Optional[datetime] = Field(None, alias="scheduledAt")
    recurrence: Optional[Recurrence] = None
    duration: Optional[int] = Field(None, ge=1, le=1440)
    energy: Optional[EnergyLevel] = None

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: Optional[TaskCategory]) -> Optional[TaskCategory]:
        """Completion runs through POST /tasks/{id}/complete, which awards points."""
        if v == TaskCategory.COMPLETED:
            raise ValueError("Use the complete endpoint to complete a task")
        return v


class ReplaceStepsRequest(BaseModel):
    steps: list[Step]


class SnoozeRequest(BaseModel):
    """Snooze until a date (YYYY-MM-DD)."""

    until: date


class QuickAnalyzeRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)


class DuplicateCheckRequest(BaseModel):
    text: str = Field(min_length=1, max_length=500)
