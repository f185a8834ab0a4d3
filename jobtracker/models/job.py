"""
Job models for JobTracker
Defines data structures for job application management
"""

import re
from enum import Enum
from typing import Optional
from urllib.parse import urlparse
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[0-9\s\-\(\)\+]+$")


class JobStatus(str, Enum):
    """Job application statuses"""
    SAVED = "saved"
    APPLIED = "applied"
    INTERVIEW = "interview"
    OFFER = "offer"
    REJECTED = "rejected"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def description(self) -> str:
        return STATUS_DESCRIPTIONS[self]

    @property
    def date_field(self) -> Optional[str]:
        """Lifecycle date column stamped the first time a job enters this status."""
        return STATUS_DATE_FIELDS.get(self)


STATUS_LABELS = {
    JobStatus.SAVED: "Saved",
    JobStatus.APPLIED: "Applied",
    JobStatus.INTERVIEW: "Interview",
    JobStatus.OFFER: "Offer",
    JobStatus.REJECTED: "Rejected",
}

STATUS_DESCRIPTIONS = {
    JobStatus.SAVED: "Job saved for later application",
    JobStatus.APPLIED: "Application submitted",
    JobStatus.INTERVIEW: "Interview scheduled or completed",
    JobStatus.OFFER: "Received job offer",
    JobStatus.REJECTED: "Application rejected",
}

STATUS_DATE_FIELDS = {
    JobStatus.APPLIED: "applied_date",
    JobStatus.INTERVIEW: "interview_date",
    JobStatus.OFFER: "offer_date",
    JobStatus.REJECTED: "rejected_date",
}

# Statuses that count as "entered the pipeline" for rate denominators
PIPELINE_STATUSES = (JobStatus.APPLIED, JobStatus.INTERVIEW, JobStatus.OFFER, JobStatus.REJECTED)


def get_status_label(status: str) -> str:
    """Display label for a status value; unknown values are returned as-is."""
    try:
        return JobStatus(status).label
    except ValueError:
        return status


class SortField(str, Enum):
    """Columns a job listing may be ordered by"""
    UPDATED_AT = "updated_at"
    CREATED_AT = "created_at"
    COMPANY = "company"
    POSITION = "position"
    APPLIED_DATE = "applied_date"
    STATUS = "status"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class JobFields(BaseModel):
    """Optional descriptive fields shared by create and update payloads"""
    location: Optional[str] = Field(None, description="Job location, including remote")
    url: Optional[str] = Field(None, description="URL to job posting")
    description: Optional[str] = Field(None, description="Job description")
    salary: Optional[str] = Field(None, description="Free-text salary information")
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    notes: Optional[str] = None
    applied_date: Optional[datetime] = None
    interview_date: Optional[datetime] = None
    offer_date: Optional[datetime] = None
    rejected_date: Optional[datetime] = None

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: Optional[str]) -> Optional[str]:
        if value:
            parsed = urlparse(value)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValueError("Please enter a valid URL starting with http:// or https://")
        return value

    @field_validator("contact_email")
    @classmethod
    def _check_email(cls, value: Optional[str]) -> Optional[str]:
        if value and not EMAIL_PATTERN.match(value):
            raise ValueError("Please enter a valid email address")
        return value

    @field_validator("contact_phone")
    @classmethod
    def _check_phone(cls, value: Optional[str]) -> Optional[str]:
        if value and not PHONE_PATTERN.match(value):
            raise ValueError("Please enter a valid phone number")
        return value


class JobCreate(JobFields):
    """Model for creating a new job"""
    company: Optional[str] = Field(None, description="Company name", validate_default=True)
    position: Optional[str] = Field(None, description="Position title", validate_default=True)
    status: JobStatus = Field(JobStatus.SAVED, description="Initial pipeline status")

    @field_validator("company", "position")
    @classmethod
    def _required_text(cls, value: Optional[str]) -> str:
        if value is None or not value.strip():
            raise ValueError("Company and position are required")
        return value.strip()


class JobUpdate(JobFields):
    """Model for updating job information; only fields that are sent are written"""
    company: Optional[str] = None
    position: Optional[str] = None
    status: Optional[JobStatus] = None

    @field_validator("company", "position")
    @classmethod
    def _not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            value = value.strip()
            if not value:
                raise ValueError("Company and position cannot be empty")
        return value


class StatusUpdate(BaseModel):
    """Body of PUT /jobs/{id}/status; validated by the lifecycle handler"""
    status: Optional[str] = None


class NoteCreate(BaseModel):
    """Body of POST /jobs/{id}/notes"""
    note: Optional[str] = None


class JobFilterParams(BaseModel):
    """Listing filters for a user's jobs"""
    status: Optional[JobStatus] = None
    search: Optional[str] = None
    sort_by: SortField = SortField.UPDATED_AT
    sort_direction: SortDirection = SortDirection.DESC

