"""
Profile Schemas
===============

Pydantic schemas for profile endpoints.
"""

from datetime import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gather.models.profile import InsightFrequency
from gather.utils.helpers import get_zone


class ProfileUpdate(BaseModel):
    """Request schema for updating the profile."""

    model_config = ConfigDict(populate_by_name=True)

    display_name: Optional[str] = Field(None, alias="displayName", max_length=100)
    timezone: Optional[str] = Field(None, max_length=64)
    morning_checkin_time: Optional[time] = Field(None, alias="morningCheckinTime")
    evening_checkin_time: Optional[time] = Field(None, alias="eveningCheckinTime")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Reject names that don't resolve to an IANA zone."""
        if v is not None and get_zone(v).key != v:
            raise ValueError(f"Unknown timezone: {v}")
        return v


class InsightFrequencyUpdate(BaseModel):
    frequency: InsightFrequency
