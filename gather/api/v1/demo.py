"""
Demo API Endpoints
==================

Sample data for visitors trying the app without an account.
"""

from fastapi import APIRouter

from gather.dependencies import CurrentPrincipal
from gather.services.demo_data import demo_snapshot

router = APIRouter()


@router.get("/snapshot")
async def get_demo_snapshot(principal: CurrentPrincipal):
    """Habits, tasks, emails and calendar events; event times are relative to now."""
    return {"success": True, "data": demo_snapshot()}
