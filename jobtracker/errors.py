"""
Error types for JobTracker
Every error carries the HTTP status and the short message shown to the user
"""


class JobTrackerError(Exception):
    """Base class for errors surfaced to API callers"""
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(JobTrackerError):
    status_code = 400
    default_message = "Invalid input"


class InvalidStatus(InvalidInput):
    default_message = "Invalid status"


class EmptyNote(InvalidInput):
    default_message = "Note cannot be empty"


class Unauthorized(JobTrackerError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(JobTrackerError):
    """Job is missing or belongs to another user; the two are never distinguished"""
    status_code = 404
    default_message = "Job not found"


class Conflict(JobTrackerError):
    status_code = 409
    default_message = "Job was modified by another request, please retry"


class UpstreamFailure(JobTrackerError):
    """Persistence, AI or page-fetch collaborator failed"""
    status_code = 500
    default_message = "Upstream service failure"
