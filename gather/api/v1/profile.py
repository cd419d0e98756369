"""
Profile API Endpoints
=====================

Handles profile retrieval, updates and insight-frequency preference.
"""

from fastapi import APIRouter

from gather.dependencies import CurrentProfile, DBSession
from gather.schemas.profile import InsightFrequencyUpdate, ProfileUpdate
from gather.services.cache import CacheInvalidator
from gather.services.profile_service import ProfileService

router = APIRouter()


@router.get("")
async def get_profile(current_profile: CurrentProfile):
    """Get the signed-in user's profile."""
    return {"success": True, "data": current_profile.to_api_dict()}


@router.patch("")
async def update_profile(
    profile_data: ProfileUpdate,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """
    Update the profile.

    Allows updating display name, timezone and check-in times.
    """
    profile = await ProfileService(db).update(current_profile.id, profile_data)

    await CacheInvalidator.on_profile_update(str(profile.id))

    return {
        "success": True,
        "data": profile.to_api_dict(),
        "message": "Profile updated successfully",
    }


@router.get("/insight-frequency")
async def get_insight_frequency(current_profile: CurrentProfile):
    return {
        "success": True,
        "data": {"frequency": current_profile.insight_frequency.value},
    }


@router.put("/insight-frequency")
async def set_insight_frequency(
    request: InsightFrequencyUpdate,
    current_profile: CurrentProfile,
    db: DBSession,
):
    """Set how often proactive insights may appear (off disables them)."""
    profile = await ProfileService(db).set_insight_frequency(current_profile.id, request.frequency)

    await CacheInvalidator.on_profile_update(str(profile.id))

    return {
        "success": True,
        "data": {"frequency": profile.insight_frequency.value},
    }
