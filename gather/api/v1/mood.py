"""
Mood API Endpoints
==================

Mood check-ins and a weekly summary.
"""

from fastapi import APIRouter, Query, status

from gather.dependencies import CurrentProfile, DBSession
from gather.schemas.habit import MoodCreate
from gather.services.mood_service import MoodService

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def record_mood(
    mood_data: MoodCreate,
    current_profile: CurrentProfile,
    db: DBSession,
):
    entry = await MoodService(db).record(current_profile.id, mood_data.mood, mood_data.note)
    return {"success": True, "data": entry.to_api_dict()}


@router.get("")
async def list_moods(
    current_profile: CurrentProfile,
    db: DBSession,
    days: int = Query(default=7, ge=1, le=90),
):
    """Entries from the last ``days`` days, newest first."""
    entries = await MoodService(db).recent(current_profile.id, days=days)
    return {"success": True, "data": [e.to_api_dict() for e in entries]}


@router.get("/summary")
async def mood_summary(current_profile: CurrentProfile, db: DBSession):
    """Average, latest entry and trend over the last week."""
    summary = await MoodService(db).summary(current_profile.id)
    return {"success": True, "data": summary}
