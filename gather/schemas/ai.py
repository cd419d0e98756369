"""
AI Schemas
==========

Request schemas for AI, capture and task intelligence endpoints.

Chat payloads are validated by hand (see ``gather.utils.validators``) so
their error messages match what the frontend shows.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from gather.models.insight import InsightType
from gather.schemas.task import ClarifyingAnswer


class MemoryTurn(BaseModel):
    role: str
    content: str


class AnalyzeIntentRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)
    memory: list[MemoryTurn] = Field(default_factory=list, max_length=50)


class AnalyzeTaskRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)


class SuggestSubtasksRequest(BaseModel):
    """Generate steps for a task."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = None
    notes: Optional[str] = None
    existing_subtasks: list[str] = Field(default_factory=list, alias="existingSubtasks")
    clarifying_answers: list[ClarifyingAnswer] = Field(default_factory=list, alias="clarifyingAnswers")


class BrainDumpRequest(BaseModel):
    text: Optional[str] = None


class ChatRequest(BaseModel):
    """Chat payload; ``taskId`` links persisted history to a task."""

    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    context: Optional[Union[str, dict[str, Any]]] = None
    history: Optional[list[dict[str, Any]]] = None
    task_id: Optional[str] = Field(None, alias="taskId")


class RichTextRequest(BaseModel):
    text: str = Field(max_length=20000)


class SummarizeConversationRequest(BaseModel):
    """Conversation to distil into coaching memory."""

    model_config = ConfigDict(populate_by_name=True)

    messages: list[MemoryTurn] = Field(min_length=2, max_length=50)
    task_context: Optional[dict[str, Any]] = Field(None, alias="taskContext")


# =============================================================================
# Capture
# =============================================================================

class CaptureStartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1, max_length=2000)
    allow_duplicate: bool = Field(False, alias="allowDuplicate")


class CaptureAnswerRequest(BaseModel):
    answer: str = Field(max_length=2000)


# =============================================================================
# Task intelligence
# =============================================================================

class InsightRecordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(alias="taskId")
    type: InsightType
    observation: str = Field(min_length=1, max_length=1000)
    suggestion: str = Field(min_length=1, max_length=1000)


class InsightOutcomeRequest(BaseModel):
    outcome: str = Field(pattern=r"^(acted|dismissed|ignored)$")
