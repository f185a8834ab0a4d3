"""
Dashboard analytics for JobTracker
Pure computation of DashboardStats from a user's job records
"""

import logging
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from jobtracker.models.job import JobStatus, PIPELINE_STATUSES
from jobtracker.models.stats import DashboardStats, MonthlyBucket, MonthlyMode

logger = logging.getLogger(__name__)

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
MONTHS_OF_HISTORY = 6
ONE_DAY = timedelta(days=1)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored date into an aware datetime, None if absent or malformed."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage rounded half up; 0 for an empty denominator."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def round_one_decimal(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def average_response_days(jobs: Iterable[Mapping[str, Any]]) -> float:
    """Mean whole days from applied_date to first response (interview preferred)."""
    durations: List[int] = []
    for job in jobs:
        applied_raw = job.get("applied_date")
        response_raw = job.get("interview_date") or job.get("rejected_date")
        if not applied_raw or not response_raw:
            continue

        applied_at = parse_timestamp(applied_raw)
        responded_at = parse_timestamp(response_raw)
        if applied_at is None or responded_at is None:
            continue

        days = (responded_at - applied_at) // ONE_DAY
        if days < 0:
            continue
        durations.append(days)

    if not durations:
        return 0.0
    return round_one_decimal(sum(durations) / len(durations))


def applications_per_week(jobs: List[Mapping[str, Any]], pipeline_count: int, now: datetime) -> float:
    """Pipeline jobs per week since the earliest applied_date (at least one week)."""
    applied_dates = [d for d in (parse_timestamp(job.get("applied_date")) for job in jobs) if d]
    if not applied_dates:
        return 0.0

    elapsed_days = (now - min(applied_dates)) / ONE_DAY
    weeks = max(1.0, elapsed_days / 7)
    return round_one_decimal(pipeline_count / weeks)


def trailing_months(now: datetime, count: int = MONTHS_OF_HISTORY) -> List[Tuple[int, int]]:
    """(year, zero-based month) pairs for the last `count` calendar months, oldest first."""
    current = now.year * 12 + now.month - 1
    return [divmod(index, 12) for index in range(current - count + 1, current + 1)]


def monthly_buckets(
    jobs: Iterable[Mapping[str, Any]],
    now: datetime,
    mode: MonthlyMode = MonthlyMode.CURRENT,
) -> List[MonthlyBucket]:
    """
    Six month slots ending at `now`.

    CURRENT counts each job in the month of its applied_date under its
    present status, so a job that moved to offer later shows as an offer in
    the month it was applied. EVENTS counts every lifecycle date in the month
    it happened.
    """
    slots = {}
    buckets = []
    for year, month_index in trailing_months(now):
        bucket = MonthlyBucket(month=MONTH_NAMES[month_index], year=year)
        slots[(year, month_index + 1)] = bucket
        buckets.append(bucket)

    def slot_for(value: Any) -> Optional[MonthlyBucket]:
        moment = parse_timestamp(value)
        if moment is None:
            return None
        moment = moment.astimezone(now.tzinfo)
        return slots.get((moment.year, moment.month))

    columns = {status.value for status in PIPELINE_STATUSES}
    for job in jobs:
        if mode == MonthlyMode.EVENTS:
            for status in PIPELINE_STATUSES:
                bucket = slot_for(job.get(status.date_field))
                if bucket is not None:
                    setattr(bucket, status.value, getattr(bucket, status.value) + 1)
            continue

        status = job.get("status")
        if not isinstance(status, str) or status not in columns:
            continue
        bucket = slot_for(job.get("applied_date"))
        if bucket is not None:
            setattr(bucket, status, getattr(bucket, status) + 1)

    return buckets


def compute_dashboard_stats(
    jobs: Iterable[Mapping[str, Any]],
    now: Optional[datetime] = None,
    monthly_mode: MonthlyMode = MonthlyMode.CURRENT,
) -> DashboardStats:
    """Derive dashboard statistics; malformed records only ever count toward total."""
    jobs = list(jobs)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    counts = Counter(job.get("status") for job in jobs if isinstance(job.get("status"), str))
    saved = counts[JobStatus.SAVED.value]
    applied = counts[JobStatus.APPLIED.value]
    interview = counts[JobStatus.INTERVIEW.value]
    offer = counts[JobStatus.OFFER.value]
    rejected = counts[JobStatus.REJECTED.value]

    # saved jobs never entered the pipeline
    pipeline = applied + interview + offer + rejected

    stats = DashboardStats(
        total=len(jobs),
        saved=saved,
        applied=applied,
        interview=interview,
        offer=offer,
        rejected=rejected,
        response_rate=percentage(interview + offer + rejected, pipeline),
        interview_rate=percentage(interview + offer, pipeline),
        offer_rate=percentage(offer, pipeline),
        average_response_time=average_response_days(jobs),
        application_rate=applications_per_week(jobs, pipeline, now),
        monthly_data=monthly_buckets(jobs, now, monthly_mode),
    )
    logger.debug(f"Computed stats over {stats.total} jobs")
    return stats
