"""
Job service for JobTracker
Handles job-related business logic on top of an injected JobStore
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from jobtracker.errors import InvalidInput, InvalidStatus, NotFound
from jobtracker.models.activity import Activity, ActivityCreate, ActivityJobSummary, ActivityType
from jobtracker.models.job import JobCreate, JobFilterParams, JobStatus, JobUpdate, SortDirection, SortField
from jobtracker.models.stats import DashboardStats, MonthlyMode
from jobtracker.services.analytics import compute_dashboard_stats
from jobtracker.services.lifecycle import (
    append_note,
    backfill_status_date,
    describe_status_change,
    plan_status_change,
    validate_status,
)
from jobtracker.services.store import JobStore

logger = logging.getLogger(__name__)

MAX_ACTIVITY_LIMIT = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobService:
    """Service for job-related operations"""

    def __init__(self, store: JobStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.clock = clock or _utcnow

    async def _log_activity(
        self,
        user_id: str,
        activity_type: ActivityType,
        description: str,
        job_id: Optional[str] = None,
    ) -> None:
        """Record an activity; the mutation already succeeded, so failures are only logged."""
        try:
            await self.store.insert_activity(
                ActivityCreate(user_id=user_id, activity_type=activity_type, description=description, job_id=job_id)
            )
        except Exception as e:
            logger.warning(f"Failed to log {activity_type.value} activity for job {job_id}: {str(e)}")

    # =====================
    # Queries
    # =====================
    async def list_jobs(
        self,
        user_id: str,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_direction: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Get a user's jobs.

        `status` of None, "" or "all" means every status. Sort columns are
        limited to SortField; anything else is rejected rather than passed on.
        """
        filters = JobFilterParams()
        if status and status != "all":
            filters.status = validate_status(status)
        if search and search.strip():
            filters.search = search.strip()
        if sort_by:
            try:
                filters.sort_by = SortField(sort_by)
            except ValueError:
                raise InvalidInput("Invalid sort field") from None
        if sort_direction:
            try:
                filters.sort_direction = SortDirection(sort_direction.lower())
            except ValueError:
                raise InvalidInput("Invalid sort direction") from None

        return await self.store.find_all_by_user(user_id, filters)

    async def get_job(self, user_id: str, job_id: str) -> Dict[str, Any]:
        job = await self.store.find_by_id(job_id, user_id)
        if job is None:
            raise NotFound()
        return job

    # =====================
    # Mutations
    # =====================
    async def create_job(self, user_id: str, job: JobCreate) -> Dict[str, Any]:
        """Create a job; a dated initial status gets its date stamped."""
        data = job.model_dump(mode="json", exclude_none=True)
        data.update(backfill_status_date(data, job.status, self.clock()))

        created = await self.store.insert(user_id, data)
        await self._log_activity(
            user_id,
            ActivityType.JOB_CREATED,
            f"Created {created['position']} position at {created['company']}",
            created["id"],
        )
        return created

    async def update_job(self, user_id: str, job_id: str, update: JobUpdate) -> Dict[str, Any]:
        """Apply a partial update; only the fields present in the request are written."""
        changes = update.model_dump(mode="json", exclude_unset=True)
        if changes.get("status", "") is None:
            raise InvalidStatus()
        for field in ("company", "position"):
            if field in changes and changes[field] is None:
                raise InvalidInput("Company and position cannot be empty")

        current = await self.get_job(user_id, job_id)
        if "status" in changes:
            # an explicitly supplied date wins over the automatic one
            merged = {**current, **changes}
            changes.update(backfill_status_date(merged, JobStatus(changes["status"]), self.clock()))

        updated = await self.store.update(job_id, user_id, changes, expected_updated_at=current["updated_at"])
        if updated is None:
            raise NotFound()

        old_status = current.get("status")
        if "status" in changes and changes["status"] != old_status:
            await self._log_activity(
                user_id, ActivityType.STATUS_CHANGED, describe_status_change(old_status, changes["status"]), job_id
            )
        else:
            await self._log_activity(
                user_id,
                ActivityType.JOB_UPDATED,
                f"Updated {updated['position']} at {updated['company']}",
                job_id,
            )
        logger.info(f"Updated job {job_id} for user {user_id}")
        return updated

    async def delete_job(self, user_id: str, job_id: str) -> Dict[str, Any]:
        deleted = await self.store.delete(job_id, user_id)
        if deleted is None:
            raise NotFound()

        # the row is gone, so the entry carries no job reference
        await self._log_activity(
            user_id,
            ActivityType.JOB_DELETED,
            f"Deleted {deleted.get('position')} at {deleted.get('company')}",
        )
        logger.info(f"Deleted job {job_id} for user {user_id}")
        return deleted

    async def update_status(self, user_id: str, job_id: str, status: Any) -> Dict[str, Any]:
        """Move a job to `status`, stamping the lifecycle date the first time."""
        new_status = validate_status(status)
        current = await self.get_job(user_id, job_id)
        updates = plan_status_change(current, new_status, self.clock())

        updated = await self.store.update(job_id, user_id, updates, expected_updated_at=current["updated_at"])
        if updated is None:
            raise NotFound()

        old_status = current.get("status")
        if old_status != new_status.value:
            await self._log_activity(
                user_id, ActivityType.STATUS_CHANGED, describe_status_change(old_status, new_status.value), job_id
            )
        return updated

    async def add_note(self, user_id: str, job_id: str, note: Any) -> Dict[str, Any]:
        """Append a timestamped note; existing notes are never rewritten."""
        current = await self.get_job(user_id, job_id)
        notes = append_note(current.get("notes"), note, self.clock())

        updated = await self.store.update(
            job_id, user_id, {"notes": notes}, expected_updated_at=current["updated_at"]
        )
        if updated is None:
            raise NotFound()

        await self._log_activity(
            user_id,
            ActivityType.NOTE_ADDED,
            f"Added note for {updated['position']} at {updated['company']}",
            job_id,
        )
        return updated

    # =====================
    # Dashboard
    # =====================
    async def dashboard_stats(self, user_id: str, monthly: Optional[str] = None) -> DashboardStats:
        try:
            mode = MonthlyMode(monthly) if monthly else MonthlyMode.CURRENT
        except ValueError:
            raise InvalidInput("Invalid monthly mode") from None

        jobs = await self.store.find_all_by_user(user_id)
        return compute_dashboard_stats(jobs, now=self.clock(), monthly_mode=mode)

    async def recent_activities(self, user_id: str, limit: int = 10) -> List[Activity]:
        if limit < 1 or limit > MAX_ACTIVITY_LIMIT:
            raise InvalidInput(f"limit must be between 1 and {MAX_ACTIVITY_LIMIT}")

        activities = []
        for row in await self.store.list_activities(user_id, limit):
            row = dict(row)
            job = row.pop("jobs", None)
            activities.append(
                Activity(
                    id=str(row["id"]),
                    user_id=str(row["user_id"]),
                    activity_type=row["activity_type"],
                    description=row["description"],
                    job_id=str(row["job_id"]) if row.get("job_id") else None,
                    created_at=row.get("created_at"),
                    job=ActivityJobSummary(
                        id=str(job["id"]), company=job["company"], position=job["position"]
                    ) if job else None,
                )
            )
        return activities
