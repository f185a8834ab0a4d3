"""
Persistence interface for JobTracker
Concrete stores are chosen at startup and injected; nothing here is global
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from jobtracker.models.activity import ActivityCreate
from jobtracker.models.job import JobFilterParams

# Columns clients may write on a job row
JOB_COLUMNS = (
    "company", "position", "location", "url", "description", "salary",
    "contact_name", "contact_email", "contact_phone", "notes", "status",
    "applied_date", "interview_date", "offer_date", "rejected_date",
)


class JobStore(ABC):
    """Repository for jobs and the activity log, always scoped to one user"""

    @abstractmethod
    async def find_by_id(self, job_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """Return the job row, or None when missing or owned by someone else."""

    @abstractmethod
    async def find_all_by_user(self, user_id: str, filters: Optional[JobFilterParams] = None) -> List[Dict[str, Any]]:
        """List a user's jobs, filtered and sorted."""

    @abstractmethod
    async def insert(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a job row and return it with id and timestamps."""

    @abstractmethod
    async def update(
        self,
        job_id: str,
        user_id: str,
        updates: Dict[str, Any],
        expected_updated_at: Optional[Any] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Apply `updates` and return the new row, or None if the job is not found.

        When `expected_updated_at` is given the write only happens if the row's
        updated_at still equals it; otherwise Conflict is raised.
        """

    @abstractmethod
    async def delete(self, job_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """Delete a job and return the deleted row, or None if not found."""

    @abstractmethod
    async def insert_activity(self, activity: ActivityCreate) -> Dict[str, Any]:
        """Append an activity log entry."""

    @abstractmethod
    async def list_activities(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Newest activities first, each with a `jobs` summary dict when the job exists."""
