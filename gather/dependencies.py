"""
Common Dependencies
===================

Shared dependencies used across the application.

Two kinds of caller reach the API:
- Signed-in users, identified by a Supabase access token.
- Demo visitors (``X-Demo-Mode: true`` with no token), who may only use
  the AI, capture and demo endpoints.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Annotated, Optional
import uuid

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from gather.config import settings
from gather.core.errors import AuthenticationError, ErrorCodes, ForbiddenError
from gather.core.rate_limit import client_ip
from gather.core.security import decode_token, user_id_from_payload
from gather.db.session import get_db
from gather.models.profile import InsightFrequency, Profile, SubscriptionTier
from gather.services.cache import CacheKeys, get_redis
from gather.services.demo_data import DEMO_USER_ID
from gather.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]

# Security scheme for JWT authentication
security = HTTPBearer(auto_error=False)

# Development test profile ID (consistent UUID for testing)
DEV_PROFILE_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
DEV_PROFILE_EMAIL = "dev@test.local"

DEMO_HEADER = "x-demo-mode"

# Redis cache TTL for authenticated profile lookup (seconds)
_PROFILE_AUTH_CACHE_TTL = 300  # 5 minutes


# =============================================================================
# Profile Auth Cache Helpers
# =============================================================================

def _serialize_profile_for_cache(profile: Profile) -> dict:
    """Serialize a Profile to a JSON-safe dict."""
    return {
        "id": str(profile.id),
        "email": profile.email,
        "display_name": profile.display_name,
        "timezone": profile.timezone,
        "morning_checkin_time": profile.morning_checkin_time.isoformat() if profile.morning_checkin_time else None,
        "evening_checkin_time": profile.evening_checkin_time.isoformat() if profile.evening_checkin_time else None,
        "insight_frequency": profile.insight_frequency.value,
        "last_insight_at": profile.last_insight_at.isoformat() if profile.last_insight_at else None,
        "subscription_tier": profile.subscription_tier.value,
        "created_at": profile.created_at.isoformat() if getattr(profile, "created_at", None) else None,
        "updated_at": profile.updated_at.isoformat() if getattr(profile, "updated_at", None) else None,
    }


def _parse_dt(value: str | None) -> datetime | None:
    """Parse an ISO datetime string, returning None on missing input."""
    if not value:
        return None
    return datetime.fromisoformat(value)


def _parse_time(value: str | None) -> time | None:
    if not value:
        return None
    return time.fromisoformat(value)


def _build_profile_from_cache(data: dict) -> Profile:
    """
    Reconstruct a *transient* (session-free) Profile from a cached dict.

    Endpoints that change the profile load an attached copy through
    ``ProfileService``.
    """
    return Profile(
        id=uuid.UUID(data["id"]),
        email=data.get("email"),
        display_name=data.get("display_name"),
        timezone=data.get("timezone") or "UTC",
        morning_checkin_time=_parse_time(data.get("morning_checkin_time")),
        evening_checkin_time=_parse_time(data.get("evening_checkin_time")),
        insight_frequency=InsightFrequency(data["insight_frequency"]),
        last_insight_at=_parse_dt(data.get("last_insight_at")),
        subscription_tier=SubscriptionTier(data["subscription_tier"]),
        created_at=_parse_dt(data.get("created_at")) or datetime.now(timezone.utc),
        updated_at=_parse_dt(data.get("updated_at")) or datetime.now(timezone.utc),
    )


async def _get_cached_profile(profile_id: uuid.UUID) -> Profile | None:
    """Return the cached Profile, or ``None`` on miss / Redis failure."""
    try:
        client = await get_redis()
        raw = await client.get(CacheKeys.profile_auth(str(profile_id)))
        if raw is None:
            return None
        return _build_profile_from_cache(json.loads(raw))
    except Exception as e:
        logger.warning("Profile cache read failed: %s", e)
        return None


async def _cache_profile(profile: Profile) -> None:
    """Best-effort cache of a DB-loaded Profile into Redis."""
    try:
        client = await get_redis()
        await client.setex(
            CacheKeys.profile_auth(str(profile.id)),
            _PROFILE_AUTH_CACHE_TTL,
            json.dumps(_serialize_profile_for_cache(profile), default=str),
        )
    except Exception as e:
        logger.warning("Profile cache write failed: %s", e)


# =============================================================================
# Profile resolution
# =============================================================================

async def get_or_create_dev_profile(db: AsyncSession) -> Profile:
    """
    Get or create the development profile.
    Only used when DEV_AUTH_DISABLED is True.
    """
    cached = await _get_cached_profile(DEV_PROFILE_ID)
    if cached is not None:
        return cached

    profile = await ProfileService(db).get_or_create(
        DEV_PROFILE_ID,
        email=DEV_PROFILE_EMAIL,
        display_name="Development User",
    )
    await db.commit()

    await _cache_profile(profile)
    return profile


async def _resolve_profile_from_token(
    credentials: HTTPAuthorizationCredentials,
    db: AsyncSession,
) -> Profile | None:
    """
    Decode the Supabase JWT, then return the Profile from Redis or the DB.

    Profiles are created on first sight; Supabase owns the auth user.
    """
    payload = decode_token(credentials.credentials)
    if payload is None:
        return None

    profile_id = user_id_from_payload(payload)
    if profile_id is None:
        return None

    cached = await _get_cached_profile(profile_id)
    if cached is not None:
        return cached

    profile = await ProfileService(db).get_or_create(profile_id, email=payload.get("email"))
    await _cache_profile(profile)
    return profile


async def get_current_profile(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: DBSession,
) -> Profile:
    """
    Get the signed-in user's profile.

    Raises 401 if not authenticated or the token is invalid.
    In development with DEV_AUTH_DISABLED=True, returns the dev profile.
    """
    if settings.auth_disabled:
        profile = await get_or_create_dev_profile(db)
    else:
        if credentials is None:
            raise AuthenticationError(
                code=ErrorCodes.AUTH_NOT_AUTHENTICATED,
                message="Not authenticated",
            )

        profile = await _resolve_profile_from_token(credentials, db)
        if profile is None:
            raise AuthenticationError(
                code=ErrorCodes.AUTH_INVALID_TOKEN,
                message="Invalid or expired token",
            )

    request.state.user_id = str(profile.id)
    return profile


# Type alias for authenticated profile dependency
CurrentProfile = Annotated[Profile, Depends(get_current_profile)]


# =============================================================================
# Principal (signed-in user or demo visitor)
# =============================================================================

@dataclass
class Principal:
    """Who is calling, for endpoints open to demo visitors."""

    user_id: str
    tier: str
    identifier: str
    profile: Optional[Profile] = None

    @property
    def is_demo(self) -> bool:
        return self.profile is None

    @property
    def timezone(self) -> str:
        return self.profile.timezone if self.profile else "UTC"


def _wants_demo(request: Request) -> bool:
    return request.headers.get(DEMO_HEADER, "").lower() == "true"


async def get_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: DBSession,
) -> Principal:
    """
    Resolve the caller for AI, capture and demo endpoints.

    A demo header without a bearer token yields a demo principal, rate
    limited by client IP.
    """
    if credentials is None and not settings.auth_disabled and _wants_demo(request):
        if not settings.DEMO_MODE_ENABLED:
            raise ForbiddenError(
                code=ErrorCodes.AUTH_DEMO_NOT_ALLOWED,
                message="Demo mode is not available",
            )
        ip = client_ip(request)
        request.state.user_id = DEMO_USER_ID
        return Principal(user_id=DEMO_USER_ID, tier="demo", identifier=f"demo:{ip}")

    profile = await get_current_profile(request, credentials, db)
    return Principal(
        user_id=str(profile.id),
        tier=profile.subscription_tier.value,
        identifier=str(profile.id),
        profile=profile,
    )


CurrentPrincipal = Annotated[Principal, Depends(get_principal)]
