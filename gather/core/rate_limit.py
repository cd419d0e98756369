"""
Rate Limiting
=============

Redis-based fixed-window rate limiting for API endpoints.

General actions are limited per user (or per IP when anonymous).  AI
actions are limited per subscription tier, with demo visitors keyed by
IP so one browser cannot drain the shared demo budget.
"""

import logging
from typing import Optional

from fastapi import Request

from gather.core.errors import RateLimitError
from gather.services.cache import get_redis

logger = logging.getLogger(__name__)


# Per-tier AI budgets: (max_requests, window_seconds)
TIER_LIMITS = {
    "demo": {
        "ai_chat": {"max_requests": 10, "window_seconds": 3600},
        "ai_breakdown": {"max_requests": 5, "window_seconds": 3600},
    },
    "free": {
        "ai_chat": {"max_requests": 5, "window_seconds": 86400},
        "ai_breakdown": {"max_requests": 3, "window_seconds": 86400},
    },
    "pro": {
        "ai_chat": {"max_requests": 100, "window_seconds": 3600},
        "ai_breakdown": {"max_requests": 50, "window_seconds": 3600},
    },
}


class RateLimiter:
    """
    Fixed window rate limiter using Redis.

    Default limits:
        - Creation endpoints: 30 requests/minute
        - Read endpoints: 100 requests/minute
    """

    LIMITS = {
        "create": {"max_requests": 30, "window_seconds": 60},
        "read": {"max_requests": 100, "window_seconds": 60},
    }

    @staticmethod
    def _get_key(identifier: str, action: str) -> str:
        """Generate rate limit key."""
        return f"ratelimit:{action}:{identifier}"

    @staticmethod
    async def check_rate_limit(
        identifier: str,
        action: str,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ) -> dict:
        """
        Check if request is within rate limit.

        Args:
            identifier: User ID or IP address
            action: Action type (create, read, or a tier-scoped AI action)
            max_requests: Override max requests (optional)
            window_seconds: Override window size (optional)

        Returns:
            Dict with 'allowed', 'remaining', 'reset_in' and 'limit' keys
        """
        limits = RateLimiter.LIMITS.get(action, RateLimiter.LIMITS["read"])
        max_req = max_requests or limits["max_requests"]
        window = window_seconds or limits["window_seconds"]

        key = RateLimiter._get_key(identifier, action)

        try:
            client = await get_redis()

            current = await client.get(key)

            if current is None:
                await client.setex(key, window, 1)
                return {
                    "allowed": True,
                    "remaining": max_req - 1,
                    "reset_in": window,
                    "limit": max_req,
                }

            current_count = int(current)

            if current_count >= max_req:
                ttl = await client.ttl(key)
                return {
                    "allowed": False,
                    "remaining": 0,
                    "reset_in": ttl if ttl > 0 else window,
                    "limit": max_req,
                }

            await client.incr(key)
            ttl = await client.ttl(key)

            return {
                "allowed": True,
                "remaining": max_req - current_count - 1,
                "reset_in": ttl if ttl > 0 else window,
                "limit": max_req,
            }

        except Exception as e:
            logger.warning("Rate limit check error: %s", e)
            # Fail open
            return {
                "allowed": True,
                "remaining": max_req,
                "reset_in": window,
                "limit": max_req,
            }


def client_ip(request: Request) -> str:
    """Best-effort client IP, honouring proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


async def enforce_tier_limit(
    tier: str,
    operation: str,
    identifier: str,
) -> dict:
    """
    Apply the per-tier AI budget for ``operation`` (ai_chat / ai_breakdown).

    Raises:
        RateLimitError: When the budget is exhausted.  Free-tier callers get
            ``upgradeRequired`` so the client can offer an upgrade.
    """
    limits = TIER_LIMITS.get(tier, TIER_LIMITS["free"])[operation]
    result = await RateLimiter.check_rate_limit(
        identifier,
        f"{tier}:{operation}",
        max_requests=limits["max_requests"],
        window_seconds=limits["window_seconds"],
    )

    if not result["allowed"]:
        if tier == "free":
            raise RateLimitError(
                reset_in=result["reset_in"],
                limit=result["limit"],
                message="Daily limit reached. Upgrade to Pro for unlimited AI features.",
                upgradeRequired=True,
            )
        raise RateLimitError(reset_in=result["reset_in"], limit=result["limit"])

    return result


def create_rate_limit_dependency(action: str = "read"):
    """
    Factory for general-purpose rate limit dependencies.

    Usage:
        @router.post("", dependencies=[Depends(create_rate_limit_dependency("create"))])
        async def endpoint():
            ...
    """
    async def dependency(request: Request) -> None:
        identifier = getattr(request.state, "user_id", None) or client_ip(request)
        result = await RateLimiter.check_rate_limit(str(identifier), action)
        if not result["allowed"]:
            raise RateLimitError(reset_in=result["reset_in"], limit=result["limit"])

    return dependency
