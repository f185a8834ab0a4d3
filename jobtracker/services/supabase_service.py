"""
Supabase service for JobTracker
Handles database operations and connection management
"""

import os
import uuid
import logging
from contextlib import contextmanager
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
from supabase import create_client, Client
import psycopg2
from psycopg2.extras import RealDictCursor

from jobtracker.errors import Conflict, JobTrackerError, UpstreamFailure
from jobtracker.models.activity import ActivityCreate
from jobtracker.models.job import JobFilterParams, SortDirection
from jobtracker.services.store import JobStore, JOB_COLUMNS

logger = logging.getLogger(__name__)

JOB_SELECT = "id, user_id, " + ", ".join(JOB_COLUMNS) + ", created_at, updated_at"


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
        return True
    except ValueError:
        return False


def _job_columns(data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only writable job columns; anything else never reaches SQL."""
    return {key: value for key, value in data.items() if key in JOB_COLUMNS}


def _like_pattern(search: str) -> str:
    """ILIKE pattern matching search as a literal substring."""
    escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _quoted(value: str) -> str:
    """Double-quote a value for a PostgREST logic filter so , . : ( ) stay literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class SupabaseService(JobStore):
    """Job store backed by Supabase, with a direct PostgreSQL fallback"""

    def __init__(self, supabase_url: Optional[str] = None, supabase_key: Optional[str] = None, database_url: Optional[str] = None):
        self.supabase_url = supabase_url or os.getenv("SUPABASE_URL")
        # service role key bypasses RLS; queries below always filter by user_id
        self.supabase_key = supabase_key or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")
        self.database_url = database_url or os.getenv("DATABASE_URL")

        # Try Supabase client first, fallback to direct PostgreSQL
        if self.supabase_url and self.supabase_key:
            try:
                self.client: Client = create_client(self.supabase_url, self.supabase_key)
                logger.info("Supabase client initialized successfully")
                self.use_direct_connection = False
            except Exception as e:
                logger.warning(f"Supabase client failed, falling back to direct connection: {e}")
                self.use_direct_connection = True
        else:
            self.use_direct_connection = True

        if self.use_direct_connection and not self.database_url:
            raise ValueError("Either SUPABASE_URL/SUPABASE_ANON_KEY or DATABASE_URL must be set in environment variables")

        if self.use_direct_connection:
            logger.info("Using direct PostgreSQL connection")
        else:
            logger.info("Using Supabase client")

    @contextmanager
    def _cursor(self):
        conn = psycopg2.connect(self.database_url)
        try:
            with conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    yield cur
        finally:
            conn.close()

    # =====================
    # Jobs
    # =====================
    async def find_by_id(self, job_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """Get a specific job by ID"""
        if not _is_uuid(job_id):
            return None
        try:
            if not self.use_direct_connection:
                result = self.client.table("jobs").select("*").eq("id", job_id).eq("user_id", user_id).execute()
                return result.data[0] if result.data else None
            else:
                with self._cursor() as cur:
                    cur.execute(
                        f"SELECT {JOB_SELECT} FROM jobs WHERE id = %s::uuid AND user_id = %s::uuid",
                        (job_id, user_id)
                    )
                    row = cur.fetchone()
                    return dict(row) if row else None
        except Exception as e:
            logger.error(f"Error retrieving job {job_id}: {str(e)}")
            raise UpstreamFailure("Failed to fetch job") from e

    async def find_all_by_user(self, user_id: str, filters: Optional[JobFilterParams] = None) -> List[Dict[str, Any]]:
        """Get jobs for a user, optionally filtered by status and search text."""
        filters = filters or JobFilterParams()
        descending = filters.sort_direction == SortDirection.DESC
        try:
            if not self.use_direct_connection:
                query = self.client.table("jobs").select("*").eq("user_id", user_id)
                if filters.status:
                    query = query.eq("status", filters.status.value)
                if filters.search:
                    term = _quoted(_like_pattern(filters.search))
                    query = query.or_(f"company.ilike.{term},position.ilike.{term},location.ilike.{term}")
                result = query.order(filters.sort_by.value, desc=descending).execute()
                logger.info(f"Retrieved {len(result.data or [])} jobs for user {user_id}")
                return result.data or []
            else:
                with self._cursor() as cur:
                    params: List[Any] = [user_id]
                    where_clauses = ["user_id = %s::uuid"]
                    if filters.status:
                        where_clauses.append("status = %s")
                        params.append(filters.status.value)
                    if filters.search:
                        where_clauses.append("(company ILIKE %s OR position ILIKE %s OR location ILIKE %s)")
                        params.extend([_like_pattern(filters.search)] * 3)
                    # sort_by is a SortField member, never raw client text
                    sql = (
                        f"SELECT {JOB_SELECT} FROM jobs WHERE " + " AND ".join(where_clauses)
                        + f" ORDER BY {filters.sort_by.value} {'DESC' if descending else 'ASC'} NULLS LAST"
                    )
                    cur.execute(sql, tuple(params))
                    data = [dict(r) for r in cur.fetchall()]
                    logger.info(f"Retrieved {len(data)} jobs for user {user_id} (direct DB)")
                    return data
        except Exception as e:
            logger.error(f"Error retrieving jobs: {str(e)}")
            raise UpstreamFailure("Failed to fetch jobs") from e

    async def insert(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new job entry"""
        payload = _job_columns(data)
        try:
            if not self.use_direct_connection:
                result = self.client.table("jobs").insert({**payload, "user_id": user_id}).execute()
                if not result.data:
                    raise UpstreamFailure("Failed to create job")
                job = result.data[0]
            else:
                columns = list(payload)
                with self._cursor() as cur:
                    cur.execute(
                        f"INSERT INTO jobs (user_id{''.join(', ' + c for c in columns)}) "
                        f"VALUES (%s::uuid{', %s' * len(columns)}) RETURNING {JOB_SELECT}",
                        (user_id, *payload.values())
                    )
                    job = dict(cur.fetchone())
            logger.info(f"Created job: {job.get('position')} at {job.get('company')}")
            return job
        except JobTrackerError:
            raise
        except Exception as e:
            logger.error(f"Error creating job: {str(e)}")
            raise UpstreamFailure("Failed to create job") from e

    async def update(
        self,
        job_id: str,
        user_id: str,
        updates: Dict[str, Any],
        expected_updated_at: Optional[Any] = None,
    ) -> Optional[Dict[str, Any]]:
        """Update a job; with expected_updated_at this is a compare-and-swap."""
        if not _is_uuid(job_id):
            return None
        payload = _job_columns(updates)
        payload["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            if not self.use_direct_connection:
                query = self.client.table("jobs").update(payload).eq("id", job_id).eq("user_id", user_id)
                if expected_updated_at is not None:
                    query = query.eq("updated_at", str(expected_updated_at))
                result = query.execute()
                row = result.data[0] if result.data else None
            else:
                assignments = ", ".join(f"{column} = %s" for column in payload)
                sql = f"UPDATE jobs SET {assignments} WHERE id = %s::uuid AND user_id = %s::uuid"
                params: List[Any] = [*payload.values(), job_id, user_id]
                if expected_updated_at is not None:
                    sql += " AND updated_at = %s"
                    params.append(expected_updated_at)
                with self._cursor() as cur:
                    cur.execute(sql + f" RETURNING {JOB_SELECT}", tuple(params))
                    found = cur.fetchone()
                    row = dict(found) if found else None
        except Exception as e:
            logger.error(f"Error updating job {job_id}: {str(e)}")
            raise UpstreamFailure("Failed to update job") from e

        if row:
            logger.info(f"Updated job {job_id}: {sorted(_job_columns(updates))}")
            return row
        if expected_updated_at is not None and await self.find_by_id(job_id, user_id):
            logger.warning(f"Concurrent modification of job {job_id}, rejecting stale write")
            raise Conflict()
        return None

    async def delete(self, job_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """Delete a specific job by ID"""
        if not _is_uuid(job_id):
            return None
        try:
            if not self.use_direct_connection:
                result = self.client.table("jobs").delete().eq("id", job_id).eq("user_id", user_id).execute()
                row = result.data[0] if result.data else None
            else:
                with self._cursor() as cur:
                    cur.execute(
                        f"DELETE FROM jobs WHERE id = %s::uuid AND user_id = %s::uuid RETURNING {JOB_SELECT}",
                        (job_id, user_id)
                    )
                    found = cur.fetchone()
                    row = dict(found) if found else None
        except Exception as e:
            logger.error(f"Error deleting job {job_id}: {str(e)}")
            raise UpstreamFailure("Failed to delete job") from e

        if row:
            logger.info(f"Deleted job {job_id}")
        return row

    # =====================
    # Activities
    # =====================
    async def insert_activity(self, activity: ActivityCreate) -> Dict[str, Any]:
        """Append an activity log row"""
        row = activity.model_dump(mode="json")
        try:
            if not self.use_direct_connection:
                result = self.client.table("activities").insert(row).execute()
                return result.data[0] if result.data else row
            else:
                with self._cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO activities (user_id, job_id, activity_type, description)
                        VALUES (%s::uuid, %s::uuid, %s, %s)
                        RETURNING id, user_id, job_id, activity_type, description, created_at
                        """,
                        (row["user_id"], row["job_id"], row["activity_type"], row["description"])
                    )
                    return dict(cur.fetchone())
        except Exception as e:
            logger.error(f"Error logging activity: {str(e)}")
            raise UpstreamFailure("Failed to log activity") from e

    async def list_activities(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Fetch recent activities with a summary of the job they refer to"""
        try:
            if not self.use_direct_connection:
                result = (
                    self.client
                    .table("activities")
                    .select("*, jobs:job_id (id, company, position, status)")
                    .eq("user_id", user_id)
                    .order("created_at", desc=True)
                    .limit(limit)
                    .execute()
                )
                return result.data or []
            else:
                with self._cursor() as cur:
                    cur.execute(
                        """
                        SELECT a.id, a.user_id, a.job_id, a.activity_type, a.description, a.created_at,
                               j.id AS job_ref, j.company, j.position, j.status
                        FROM activities a
                        LEFT JOIN jobs j ON j.id = a.job_id
                        WHERE a.user_id = %s::uuid
                        ORDER BY a.created_at DESC
                        LIMIT %s
                        """,
                        (user_id, limit)
                    )
                    rows = []
                    for r in cur.fetchall():
                        r = dict(r)
                        job_ref = r.pop("job_ref")
                        summary = {"id": job_ref, "company": r.pop("company"), "position": r.pop("position"), "status": r.pop("status")}
                        rows.append({**r, "jobs": summary if job_ref else None})
                    return rows
        except Exception as e:
            logger.error(f"Error fetching activities: {str(e)}")
            raise UpstreamFailure("Failed to fetch activities") from e
