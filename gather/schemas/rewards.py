"""
Rewards Schemas
===============

Pydantic schemas for rewards endpoints.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class PauseMomentumRequest(BaseModel):
    """Pause momentum until a date; null resumes it."""

    until: Optional[date] = Field(None, description="YYYY-MM-DD, or null to resume")
