"""
Helper Functions
================

Common utility functions used across the application.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def generate_step_id() -> str:
    """Generate a new step identifier."""
    return f"step-{uuid.uuid4().hex[:12]}"


def utc_now() -> datetime:
    """Get current UTC datetime with timezone info."""
    return datetime.now(timezone.utc)


def get_zone(tz_name: Optional[str]) -> ZoneInfo:
    """Resolve an IANA zone name, falling back to UTC for unknown names."""
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def local_now(tz_name: Optional[str], now: Optional[datetime] = None) -> datetime:
    """Current time in the user's timezone."""
    return (now or utc_now()).astimezone(get_zone(tz_name))


def local_today(tz_name: Optional[str], now: Optional[datetime] = None) -> date:
    """Today's date in the user's timezone."""
    return local_now(tz_name, now).date()


def js_weekday(dt: datetime | date) -> int:
    """Day of week with 0 = Sunday, 6 = Saturday."""
    return (dt.weekday() + 1) % 7


def parse_date(date_str: str) -> datetime:
    """Parse ISO 8601 date string to datetime."""
    return datetime.fromisoformat(date_str.replace("Z", "+00:00"))
