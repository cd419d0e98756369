"""
Rewards API Endpoints
=====================

Points summary, history, momentum pause and reward unlocks.
"""

from fastapi import APIRouter, Query

from gather.core.errors import ConflictError, ErrorCodes, NotFoundError
from gather.dependencies import CurrentProfile, DBSession
from gather.schemas.rewards import PauseMomentumRequest
from gather.services.cache import CacheKeys, CacheManager
from gather.services.rewards_service import (
    RewardLockedError,
    RewardNotFoundError,
    RewardsService,
    catalog_for,
)

router = APIRouter()


@router.get("")
async def get_rewards(current_profile: CurrentProfile, db: DBSession):
    """Points, level, garden stage and momentum."""
    cache_key = CacheKeys.rewards(str(current_profile.id))
    cached = await CacheManager.get(cache_key)
    if cached is not None:
        return {"success": True, "data": cached}

    rewards = await RewardsService(db).get_or_create(current_profile.id)
    summary = RewardsService.summarize(rewards)
    await CacheManager.set(cache_key, summary, ttl=CacheManager.TTL_SHORT)

    return {"success": True, "data": summary}


@router.get("/transactions")
async def list_transactions(
    current_profile: CurrentProfile,
    db: DBSession,
    limit: int = Query(default=50, ge=1, le=200),
):
    transactions = await RewardsService(db).list_transactions(current_profile.id, limit=limit)
    return {"success": True, "data": [t.to_api_dict() for t in transactions]}


@router.post("/pause")
async def pause_momentum(
    request: PauseMomentumRequest,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """Hold momentum days (e.g. while sick or travelling)."""
    rewards = await RewardsService(db).pause_momentum(current_profile.id, request.until)

    await CacheManager.delete(CacheKeys.rewards(str(current_profile.id)))

    return {"success": True, "data": RewardsService.summarize(rewards)}


@router.get("/catalog")
async def get_catalog(current_profile: CurrentProfile, db: DBSession):
    """All rewards with unlocked/available flags for this user."""
    rewards = await RewardsService(db).get_or_create(current_profile.id)
    return {
        "success": True,
        "data": catalog_for(rewards.lifetime_points, list(rewards.unlocked_rewards or [])),
    }


@router.post("/unlock/{reward_id}")
async def unlock_reward(
    reward_id: str,
    current_profile: CurrentProfile,
    db: DBSession,
):
    try:
        rewards = await RewardsService(db).unlock(current_profile.id, reward_id)
    except RewardNotFoundError:
        raise NotFoundError(code=ErrorCodes.REWARD_NOT_FOUND, message="Reward not found")
    except RewardLockedError as e:
        raise ConflictError(
            code=ErrorCodes.REWARD_LOCKED,
            message=f"You need {e.points_required} lifetime points to unlock this",
            pointsRequired=e.points_required,
        )

    await CacheManager.delete(CacheKeys.rewards(str(current_profile.id)))

    return {"success": True, "data": RewardsService.summarize(rewards)}
