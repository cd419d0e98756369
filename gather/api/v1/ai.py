"""
AI API Endpoints
================

Claude-backed helpers for capture, step breakdown, brain dumps and task
chat. Open to signed-in users and demo visitors; every model call counts
against the caller's tier budget.

Endpoints:
    POST   /ai/analyze-intent    Clarifying questions or steps for a new task
    POST   /ai/analyze-task      Quick task classification
    POST   /ai/suggest-subtasks  Researched steps for a task
    POST   /ai/brain-dump        Extract tasks from freeform text
    POST   /ai/chat              Task chat (JSON)
    POST   /ai/chat/stream       Task chat (server-sent events)
    GET    /ai/chat/history      Stored chat for a task (signed-in only)
    POST   /ai/coaching-memory/summarize
                               Distil a chat into coaching memory
    GET    /ai/coaching-memory   Remembered summaries (signed-in only)
    DELETE /ai/coaching-memory   Forget everything remembered (signed-in only)
    POST   /ai/rich-text         Split text into text and labelled link parts
"""

import json
import logging
from typing import Optional
import uuid

from fastapi import APIRouter, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sse_starlette.sse import EventSourceResponse

from gather.core.errors import ErrorCodes, ServiceUnavailableError
from gather.core.rate_limit import enforce_tier_limit
from gather.db.session import get_session_factory
from gather.dependencies import CurrentPrincipal, CurrentProfile, DBSession, Principal
from gather.schemas.ai import (
    AnalyzeIntentRequest,
    AnalyzeTaskRequest,
    BrainDumpRequest,
    ChatRequest,
    RichTextRequest,
    SuggestSubtasksRequest,
    SummarizeConversationRequest,
)
from gather.services.anthropic_llm import (
    LLMNotConfiguredError,
    LLMOverloadedError,
    LLMRequestFailedError,
    get_llm_service,
)
from gather.services.chat_service import ChatService
from gather.services.coaching_memory_service import CoachingMemoryService
from gather.services.task_service import TaskService
from gather.utils.links import split_rich_text
from gather.utils.steps import steps_from_ai
from gather.utils.validators import validate_brain_dump, validate_chat_input

logger = logging.getLogger(__name__)

router = APIRouter()


def ai_not_configured() -> ServiceUnavailableError:
    return ServiceUnavailableError(
        code=ErrorCodes.AI_NOT_CONFIGURED,
        message="AI features are not configured",
    )


def _require_llm():
    llm = get_llm_service()
    if not llm.is_configured:
        raise ai_not_configured()
    return llm


async def _chat_task_id(principal: Principal, task_id: Optional[str], db: AsyncSession) -> Optional[uuid.UUID]:
    """Task to file chat history under; None for demo visitors or unknown tasks."""
    if principal.is_demo or not task_id:
        return None
    try:
        parsed = uuid.UUID(task_id)
    except ValueError:
        return None
    task = await TaskService(db).get_task_by_id(parsed, principal.profile.id)
    return task.id if task else None


# =============================================================================
# Capture helpers
# =============================================================================

@router.post("/analyze-intent")
async def analyze_intent(request: AnalyzeIntentRequest, principal: CurrentPrincipal, db: DBSession):
    """
    Decide whether a new task needs clarifying questions.

    Signed-in users get what is remembered from earlier conversations
    folded into the prompt.
    """
    llm = _require_llm()
    await enforce_tier_limit(principal.tier, "ai_chat", principal.identifier)

    coaching_context = None
    if principal.profile is not None:
        coaching_context = await CoachingMemoryService(db).context_for(principal.profile.id) or None

    try:
        result = await llm.analyze_intent(
            request.message,
            memory=[m.model_dump() for m in request.memory],
            coaching_context=coaching_context,
        )
    except LLMNotConfiguredError:
        raise ai_not_configured()

    return {"success": True, "data": result}


@router.post("/analyze-task")
async def analyze_task(request: AnalyzeTaskRequest, principal: CurrentPrincipal):
    llm = _require_llm()
    await enforce_tier_limit(principal.tier, "ai_chat", principal.identifier)

    try:
        result = await llm.analyze_task(request.title)
    except LLMNotConfiguredError:
        raise ai_not_configured()

    return {"success": True, "data": result}


@router.post("/suggest-subtasks")
async def suggest_subtasks(request: SuggestSubtasksRequest, principal: CurrentPrincipal):
    """
    Generate researched steps for a task.

    Steps come back with IDs and ``done: false``, ready to store.
    """
    llm = _require_llm()
    await enforce_tier_limit(principal.tier, "ai_breakdown", principal.identifier)

    try:
        raw_steps = await llm.generate_steps(
            request.title,
            description=request.description,
            notes=request.notes,
            existing_steps=request.existing_subtasks,
            clarifying_answers=[a.model_dump() for a in request.clarifying_answers],
        )
    except LLMNotConfiguredError:
        raise ai_not_configured()

    return {"success": True, "data": {"steps": steps_from_ai(raw_steps)}}


@router.post("/brain-dump")
async def brain_dump(request: BrainDumpRequest, principal: CurrentPrincipal):
    """Pull tasks out of freeform text (up to 10,000 characters)."""
    text = validate_brain_dump(request.text)
    llm = _require_llm()
    await enforce_tier_limit(principal.tier, "ai_breakdown", principal.identifier)

    try:
        result = await llm.extract_brain_dump(text)
    except LLMNotConfiguredError:
        raise ai_not_configured()

    return {"success": True, "data": result}


# =============================================================================
# Chat
# =============================================================================

@router.post("/chat")
async def chat(request: ChatRequest, principal: CurrentPrincipal, db: DBSession):
    """Answer a question about a task, with web sources when searched."""
    message = validate_chat_input(request.message, request.context, request.history)
    llm = _require_llm()
    await enforce_tier_limit(principal.tier, "ai_chat", principal.identifier)

    try:
        result = await llm.chat(message, context=request.context, history=request.history)
    except LLMNotConfiguredError:
        raise ai_not_configured()

    if principal.profile is not None:
        await ChatService(db).save_exchange(
            principal.profile.id,
            message,
            result["message"],
            task_id=await _chat_task_id(principal, request.task_id, db),
        )

    return {"success": True, "data": result}


@router.post("/chat/stream")
async def chat_stream(request: ChatRequest, principal: CurrentPrincipal, db: DBSession):
    """
    Stream a chat answer via SSE.

    Events: ``token`` (message text as it arrives), ``sources``, ``done``
    (full response with actions) and ``error``.
    """
    message = validate_chat_input(request.message, request.context, request.history)
    llm = _require_llm()
    await enforce_tier_limit(principal.tier, "ai_chat", principal.identifier)

    task_id = await _chat_task_id(principal, request.task_id, db)
    profile_id = principal.profile.id if principal.profile is not None else None

    async def event_generator():
        async for event in llm.stream_chat(message, context=request.context, history=request.history):
            yield {"event": event["event"], "data": json.dumps(event["data"])}

            if event["event"] == "done" and profile_id is not None:
                # The request session is gone by now; use a fresh one
                async with get_session_factory()() as session:
                    await ChatService(session).save_exchange(
                        profile_id,
                        message,
                        event["data"]["response"],
                        task_id=task_id,
                    )
                    await session.commit()

    return EventSourceResponse(event_generator())


@router.get("/chat/history")
async def chat_history(
    current_profile: CurrentProfile,
    db: DBSession,
    task_id: Optional[uuid.UUID] = Query(default=None, alias="taskId"),
    limit: int = Query(default=50, ge=1, le=200),
):
    """Stored chat for a task, oldest first; omit taskId for general chat."""
    messages = await ChatService(db).history(current_profile.id, task_id=task_id, limit=limit)
    return {"success": True, "data": [m.to_api_dict() for m in messages]}


# =============================================================================
# Coaching memory
# =============================================================================

@router.post("/coaching-memory/summarize")
async def summarize_conversation(
    request: SummarizeConversationRequest,
    principal: CurrentPrincipal,
    db: DBSession,
):
    """
    Distil a finished chat into coaching memory.

    Demo visitors get the summary back but nothing is stored.
    """
    llm = _require_llm()
    await enforce_tier_limit(principal.tier, "ai_chat", principal.identifier)

    user_id = principal.profile.id if principal.profile is not None else None
    try:
        summary = await CoachingMemoryService(db, llm).summarize(
            user_id,
            [m.model_dump() for m in request.messages],
            task_context=request.task_context,
        )
    except LLMNotConfiguredError:
        raise ai_not_configured()
    except LLMOverloadedError:
        raise ServiceUnavailableError(
            code=ErrorCodes.AI_OVERLOADED,
            message="The assistant is busy right now. Please try again in a moment.",
        )
    except LLMRequestFailedError:
        raise ServiceUnavailableError(
            code=ErrorCodes.AI_REQUEST_FAILED,
            message="Could not summarize the conversation",
        )

    return {"success": True, "data": {"summary": summary, "stored": user_id is not None}}


@router.get("/coaching-memory")
async def list_coaching_memory(
    current_profile: CurrentProfile,
    db: DBSession,
    limit: int = Query(default=20, ge=1, le=100),
):
    entries = await CoachingMemoryService(db).recent(current_profile.id, limit=limit)
    return {"success": True, "data": [e.to_api_dict() for e in entries]}


@router.delete("/coaching-memory")
async def forget_coaching_memory(current_profile: CurrentProfile, db: DBSession):
    """Forget everything remembered about the user."""
    await CoachingMemoryService(db).forget(current_profile.id)
    return {"success": True, "message": "Coaching memory cleared"}


# =============================================================================
# Rich text
# =============================================================================

@router.post("/rich-text")
async def rich_text(request: RichTextRequest, principal: CurrentPrincipal):
    """Split text into plain and link parts with friendly labels."""
    return {"success": True, "data": {"parts": split_rich_text(request.text)}}
