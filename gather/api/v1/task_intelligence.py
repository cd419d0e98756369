"""
Task Intelligence API Endpoints
===============================

Proactive observations about stuck, vague or floating tasks, and the
record of how the user responded to them.
"""

import logging
import uuid

from fastapi import APIRouter, Query, status

from gather.core.errors import ErrorCodes, NotFoundError
from gather.dependencies import CurrentProfile, DBSession
from gather.models.insight import InsightOutcome
from gather.schemas.ai import InsightOutcomeRequest, InsightRecordRequest
from gather.services.anthropic_llm import get_llm_service
from gather.services.cache import CacheInvalidator
from gather.services.intelligence_service import InsightNotFoundError, IntelligenceService
from gather.services.profile_service import ProfileService
from gather.services.task_service import TaskNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_insight(
    current_profile: CurrentProfile,
    db: DBSession,
    force: bool = Query(default=False),
):
    """
    The single most useful observation right now, or null.

    ``reason`` explains a null insight (disabled, too_soon, no_open_tasks,
    nothing_to_flag, ai_not_configured).
    """
    llm = get_llm_service()
    if not llm.is_configured:
        return {"success": True, "data": {"insight": None, "reason": "ai_not_configured"}}

    result = await IntelligenceService(db, llm).analyze(current_profile, force=force)
    return {"success": True, "data": result}


@router.post("/record", status_code=status.HTTP_201_CREATED)
async def record_insight(
    request: InsightRecordRequest,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """Record that an insight was shown; repeats within a week are skipped."""
    try:
        task_id = uuid.UUID(request.task_id)
    except ValueError:
        raise NotFoundError(code=ErrorCodes.TASK_NOT_FOUND, message="Task not found")

    profile = await ProfileService(db).get_or_raise(current_profile.id)
    try:
        result = await IntelligenceService(db, get_llm_service()).record(
            profile,
            task_id,
            request.type,
            request.observation,
            request.suggestion,
        )
    except TaskNotFoundError:
        raise NotFoundError(code=ErrorCodes.TASK_NOT_FOUND, message="Task not found")

    if not result.get("duplicate"):
        await CacheInvalidator.on_profile_update(str(profile.id))

    return {"success": True, "data": result}


@router.patch("/record/{insight_id}")
async def record_outcome(
    insight_id: uuid.UUID,
    request: InsightOutcomeRequest,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """Store whether the user acted on, dismissed or ignored an insight."""
    try:
        insight = await IntelligenceService(db, get_llm_service()).record_outcome(
            current_profile.id,
            insight_id,
            InsightOutcome(request.outcome),
        )
    except InsightNotFoundError:
        raise NotFoundError(code=ErrorCodes.INSIGHT_NOT_FOUND, message="Insight not found")

    return {"success": True, "data": insight.to_api_dict()}


@router.get("/patterns")
async def get_patterns(current_profile: CurrentProfile, db: DBSession):
    """Productive days and hours from the last 30 days of completions."""
    patterns = await IntelligenceService(db, get_llm_service()).get_patterns(current_profile.id)
    return {"success": True, "data": patterns}
