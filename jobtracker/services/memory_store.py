"""
In-memory job store for JobTracker
Used by the test suite and for local development without Supabase
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from jobtracker.errors import Conflict
from jobtracker.models.activity import ActivityCreate
from jobtracker.models.job import JobFilterParams, SortDirection
from jobtracker.services.store import JobStore, JOB_COLUMNS

logger = logging.getLogger(__name__)


class InMemoryStore(JobStore):
    """Dictionary-backed store with the same semantics as the Supabase tables"""

    def __init__(self):
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.activities: List[Dict[str, Any]] = []
        self._last_write: Optional[datetime] = None

    def _now(self) -> str:
        now = datetime.now(timezone.utc)
        # updated_at is the concurrency token, so every write must get a distinct, later value
        if self._last_write is not None and now <= self._last_write:
            now = self._last_write + timedelta(microseconds=1)
        self._last_write = now
        return now.isoformat()

    async def find_by_id(self, job_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        job = self.jobs.get(job_id)
        if job is None or job["user_id"] != user_id:
            return None
        return dict(job)

    async def find_all_by_user(self, user_id: str, filters: Optional[JobFilterParams] = None) -> List[Dict[str, Any]]:
        filters = filters or JobFilterParams()
        user_jobs = [dict(job) for job in self.jobs.values() if job["user_id"] == user_id]

        if filters.status:
            user_jobs = [job for job in user_jobs if job.get("status") == filters.status.value]

        if filters.search:
            term = filters.search.lower()
            user_jobs = [
                job for job in user_jobs
                if any(term in (job.get(field) or "").lower() for field in ("company", "position", "location"))
            ]

        # jobs without a value for the sort column go last
        column = filters.sort_by.value
        present = [job for job in user_jobs if job.get(column) is not None]
        missing = [job for job in user_jobs if job.get(column) is None]
        present.sort(
            key=lambda job: str(job[column]).lower(),
            reverse=filters.sort_direction == SortDirection.DESC,
        )
        return present + missing

    async def insert(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        now = self._now()
        job = {column: None for column in JOB_COLUMNS}
        job.update(data)
        job.update({"id": str(uuid.uuid4()), "user_id": user_id, "created_at": now, "updated_at": now})
        self.jobs[job["id"]] = job
        logger.info(f"Created job: {job.get('position')} at {job.get('company')}")
        return dict(job)

    async def update(
        self,
        job_id: str,
        user_id: str,
        updates: Dict[str, Any],
        expected_updated_at: Optional[Any] = None,
    ) -> Optional[Dict[str, Any]]:
        job = self.jobs.get(job_id)
        if job is None or job["user_id"] != user_id:
            return None
        if expected_updated_at is not None and job["updated_at"] != expected_updated_at:
            raise Conflict()

        job.update(updates)
        job["updated_at"] = self._now()
        return dict(job)

    async def delete(self, job_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        job = self.jobs.get(job_id)
        if job is None or job["user_id"] != user_id:
            return None
        del self.jobs[job_id]
        return job

    async def insert_activity(self, activity: ActivityCreate) -> Dict[str, Any]:
        row = activity.model_dump(mode="json")
        row.update({"id": str(uuid.uuid4()), "created_at": self._now()})
        self.activities.append(row)
        return dict(row)

    async def list_activities(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        # appended in time order, so newest-first is the reversed list
        rows = [row for row in reversed(self.activities) if row["user_id"] == user_id][:limit]
        result = []
        for row in rows:
            job = self.jobs.get(row.get("job_id")) if row.get("job_id") else None
            summary = {key: job[key] for key in ("id", "company", "position", "status")} if job else None
            result.append({**row, "jobs": summary})
        return result
