"""
Security Module
===============

Supabase access-token handling:
- Decoding and validating Supabase-issued JWTs
- Minting equivalent tokens for local development and tests
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import logging
import uuid

from jose import ExpiredSignatureError, JWTError, jwt

from gather.config import settings

logger = logging.getLogger(__name__)


def create_access_token(
    user_id: uuid.UUID,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a token shaped like a Supabase access token.

    Supabase issues the real ones; this is used by local tooling and tests
    that need a valid bearer token.

    Args:
        user_id: Profile ID placed in ``sub``
        email: Optional email claim
        expires_delta: Custom expiration time (optional, default 1 hour)

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=1))

    payload: dict[str, Any] = {
        "sub": str(user_id),
        "aud": settings.JWT_AUDIENCE,
        "role": "authenticated",
        "iat": now,
        "exp": expire,
    }
    if email:
        payload["email"] = email

    return jwt.encode(
        payload,
        settings.SUPABASE_JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """
    Decode and validate a Supabase access token.

    Args:
        token: JWT token string

    Returns:
        Decoded payload if valid, None otherwise
    """
    if not settings.SUPABASE_JWT_SECRET:
        logger.warning("SUPABASE_JWT_SECRET is not configured; rejecting token")
        return None

    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except ExpiredSignatureError:
        logger.info("Rejected expired access token")
        return None
    except JWTError as e:
        logger.info("Rejected invalid access token: %s", e)
        return None


def user_id_from_payload(payload: dict[str, Any]) -> Optional[uuid.UUID]:
    """Extract the profile UUID from a decoded token's ``sub`` claim."""
    sub = payload.get("sub")
    if not sub:
        return None
    try:
        return uuid.UUID(sub)
    except ValueError:
        return None
