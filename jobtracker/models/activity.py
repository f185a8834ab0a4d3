"""
Activity models for JobTracker
Append-only audit trail written alongside job mutations
"""

from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ActivityType(str, Enum):
    """Kinds of mutating actions recorded in the activity log"""
    JOB_CREATED = "job_created"
    JOB_UPDATED = "job_updated"
    STATUS_CHANGED = "status_changed"
    NOTE_ADDED = "note_added"
    JOB_DELETED = "job_deleted"


class ActivityCreate(BaseModel):
    """Row written to the activities table"""
    user_id: str
    activity_type: ActivityType
    description: str
    job_id: Optional[str] = Field(None, description="Affected job, if it still exists")


class ActivityJobSummary(BaseModel):
    id: str
    company: str
    position: str


class Activity(BaseModel):
    """Activity entry as returned by GET /activities"""
    id: str
    user_id: str
    activity_type: ActivityType
    description: str
    job_id: Optional[str] = None
    created_at: Optional[datetime] = None
    job: Optional[ActivityJobSummary] = None
