"""
Profile Service
===============

Profile lookup, lazy creation and preference updates.
"""

from datetime import datetime, timezone
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gather.models.profile import InsightFrequency, Profile, SubscriptionTier
from gather.schemas.profile import ProfileUpdate


class ProfileService:
    """Service for profile operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, profile_id: uuid.UUID) -> Optional[Profile]:
        """Get profile by ID."""
        stmt = select(Profile).where(Profile.id == profile_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_raise(self, profile_id: uuid.UUID) -> Profile:
        profile = await self.get_by_id(profile_id)
        if profile is None:
            raise ProfileNotFoundError(str(profile_id))
        return profile

    async def get_or_create(
        self,
        profile_id: uuid.UUID,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> Profile:
        """
        Return the profile for a Supabase user, creating it on first sight.

        Args:
            profile_id: Supabase auth user ID
            email: Email claim from the access token, if any
            display_name: Name for newly created profiles

        Returns:
            The existing or newly created profile
        """
        profile = await self.get_by_id(profile_id)
        if profile is not None:
            return profile

        now = datetime.now(timezone.utc)
        profile = Profile(
            id=profile_id,
            email=email,
            display_name=display_name,
            timezone="UTC",
            insight_frequency=InsightFrequency.NORMAL,
            subscription_tier=SubscriptionTier.FREE,
            created_at=now,
            updated_at=now,
        )
        self.db.add(profile)
        await self.db.flush()
        return profile

    async def update(self, profile_id: uuid.UUID, data: ProfileUpdate) -> Profile:
        """Apply the fields present in the request."""
        profile = await self.get_or_raise(profile_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(profile, field, value)
        await self.db.flush()
        return profile

    async def set_insight_frequency(
        self,
        profile_id: uuid.UUID,
        frequency: InsightFrequency,
    ) -> Profile:
        profile = await self.get_or_raise(profile_id)
        profile.insight_frequency = frequency
        await self.db.flush()
        return profile


class ProfileNotFoundError(Exception):
    """Raised when a profile ID has no row."""

    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Profile {profile_id} not found")
