"""
Business logic services for JobTracker
"""

from jobtracker.services.job_service import JobService
from jobtracker.services.memory_store import InMemoryStore
from jobtracker.services.store import JobStore

__all__ = [
    "JobService",
    "JobStore",
    "InMemoryStore",
]
