"""
Snapshot stores of the queue engine.
"""

from .job_store import JobStore, JsonFileJobStore, MemoryJobStore, Snapshot
from .db_job_store import PostgresJobStore

__all__ = [
    "JobStore",
    "JsonFileJobStore",
    "MemoryJobStore",
    "PostgresJobStore",
    "Snapshot",
]
