"""
Dashboard statistics models for JobTracker
Computed view-models, never persisted
"""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MonthlyMode(str, Enum):
    """How monthly buckets attribute a job to a status column"""
    CURRENT = "current"  # applied_date month, current status column
    EVENTS = "events"    # each lifecycle date in its own month


class MonthlyBucket(BaseModel):
    month: str = Field(..., description="Short month name, e.g. 'Oct'")
    year: int
    applied: int = 0
    interview: int = 0
    offer: int = 0
    rejected: int = 0


class DashboardStats(BaseModel):
    """Derived statistics over all of a user's jobs"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total: int = 0
    saved: int = 0
    applied: int = 0
    interview: int = 0
    offer: int = 0
    rejected: int = 0
    response_rate: int = Field(0, ge=0, le=100)
    interview_rate: int = Field(0, ge=0, le=100)
    offer_rate: int = Field(0, ge=0, le=100)
    average_response_time: float = Field(0.0, ge=0)
    application_rate: float = Field(0.0, ge=0)
    monthly_data: list[MonthlyBucket] = Field(default_factory=list)
