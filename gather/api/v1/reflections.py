"""
Reflections API Endpoints
=========================

Weekly look-backs. Weeks run Sunday to Saturday in the user's timezone.
"""

from fastapi import APIRouter

from gather.dependencies import CurrentProfile, DBSession
from gather.services.anthropic_llm import get_llm_service
from gather.services.cache import CacheKeys, CacheManager
from gather.services.reflection_service import ReflectionService
from gather.services.rewards_service import RewardsService
from gather.utils.helpers import local_today
from gather.utils.points import reflection_award_key

router = APIRouter()


@router.get("")
async def list_reflections(current_profile: CurrentProfile, db: DBSession):
    """Reflections from the last four weeks plus the running seven-day tally."""
    service = ReflectionService(db)
    today = local_today(current_profile.timezone)

    reflections = await service.list_recent(current_profile.id, today)
    this_week = await service.this_week(current_profile)

    return {
        "success": True,
        "data": {
            "reflections": [r.to_api_dict() for r in reflections],
            "thisWeek": this_week,
        },
    }


@router.post("/weekly")
async def generate_weekly_reflection(current_profile: CurrentProfile, db: DBSession):
    """
    Reflection for the last finished week.

    Generated on the first request of the week and stored; later requests
    return the stored one. A new reflection earns weekly_reflection points.
    """
    today = local_today(current_profile.timezone)
    reflection, created = await ReflectionService(db, get_llm_service()).generate_weekly(current_profile)

    reward = None
    if created:
        reward = await RewardsService(db).earn(
            current_profile.id,
            "weekly_reflection",
            today,
            award_key=reflection_award_key(reflection.week_start),
        )
        await CacheManager.delete(CacheKeys.rewards(str(current_profile.id)))

    return {
        "success": True,
        "data": {
            "reflection": reflection.to_api_dict(),
            "created": created,
            "reward": reward,
        },
    }
