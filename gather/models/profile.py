"""
Profile Model
=============

SQLAlchemy model for user profiles.

Authentication is owned by Supabase; a profile row shares its primary key
with the Supabase auth user and is created lazily on first request.
"""

from datetime import datetime, time
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import DateTime, Enum as SQLEnum, String, Time
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from gather.db.base import Base, TimestampMixin


class InsightFrequency(str, Enum):
    """How often proactive task insights may be shown."""
    OFF = "off"
    MINIMAL = "minimal"
    NORMAL = "normal"
    FREQUENT = "frequent"


class SubscriptionTier(str, Enum):
    """Subscription tier, drives AI rate limits."""
    FREE = "free"
    PRO = "pro"


class Profile(Base, TimestampMixin):
    """
    User profile model.

    Stores display preferences, check-in times and insight settings.
    """

    __tablename__ = "profiles"

    # Primary Key (Supabase auth user id)
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    display_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    # Preferences
    timezone: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="UTC",
    )
    morning_checkin_time: Mapped[Optional[time]] = mapped_column(
        Time,
        nullable=True,
    )
    evening_checkin_time: Mapped[Optional[time]] = mapped_column(
        Time,
        nullable=True,
    )

    # Task intelligence
    insight_frequency: Mapped[InsightFrequency] = mapped_column(
        SQLEnum(InsightFrequency, name="insightfrequency", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=InsightFrequency.NORMAL,
    )
    last_insight_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    subscription_tier: Mapped[SubscriptionTier] = mapped_column(
        SQLEnum(SubscriptionTier, name="subscriptiontier", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=SubscriptionTier.FREE,
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email={self.email})>"

    def to_api_dict(self) -> dict:
        """Serialize to the camelCase API format."""
        return {
            "id": str(self.id),
            "email": self.email,
            "displayName": self.display_name,
            "timezone": self.timezone,
            "morningCheckinTime": self.morning_checkin_time.strftime("%H:%M") if self.morning_checkin_time else None,
            "eveningCheckinTime": self.evening_checkin_time.strftime("%H:%M") if self.evening_checkin_time else None,
            "insightFrequency": self.insight_frequency.value,
            "lastInsightAt": self.last_insight_at.isoformat() if self.last_insight_at else None,
            "subscriptionTier": self.subscription_tier.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
