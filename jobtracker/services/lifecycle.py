"""
Job lifecycle rules for JobTracker
Status transitions with first-occurrence date bookkeeping, and append-only notes
"""

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from jobtracker.errors import EmptyNote, InvalidStatus
from jobtracker.models.job import JobStatus


def validate_status(value: Any) -> JobStatus:
    """Coerce a requested status into JobStatus or raise InvalidStatus."""
    if isinstance(value, JobStatus):
        return value
    if not value or not isinstance(value, str):
        raise InvalidStatus()
    try:
        return JobStatus(value)
    except ValueError:
        raise InvalidStatus() from None


def backfill_status_date(current: Mapping[str, Any], status: JobStatus, now: datetime) -> Dict[str, str]:
    """Date update for entering `status`, empty if the date was already set."""
    field = status.date_field
    if field and not current.get(field):
        return {field: now.isoformat()}
    return {}


def plan_status_change(current: Mapping[str, Any], new_status: Any, now: datetime) -> Dict[str, Any]:
    """
    Build the partial update for moving a job to `new_status`.

    Status may move in any direction. The matching lifecycle date is stamped
    only the first time; dates are never cleared on regression.
    """
    status = validate_status(new_status)
    updates: Dict[str, Any] = {"status": status.value}
    updates.update(backfill_status_date(current, status, now))
    return updates


def describe_status_change(old_status: Optional[str], new_status: str) -> str:
    return f"Changed status from {old_status} to {new_status}"


def format_note_timestamp(moment: datetime) -> str:
    """Render in server local time, e.g. '10/19/2026, 3:04:05 PM'."""
    local = moment.astimezone()
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{local.month}/{local.day}/{local.year}, {hour}:{local.minute:02d}:{local.second:02d} {meridiem}"


def append_note(existing: Optional[str], note: Any, now: datetime) -> str:
    """Return the new notes blob with a timestamped entry appended."""
    if not isinstance(note, str) or not note.strip():
        raise EmptyNote()

    entry = f"{format_note_timestamp(now)}: {note.strip()}"
    if existing:
        return f"{existing}\n\n{entry}"
    return entry
