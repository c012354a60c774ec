"""
Queue model: the pending jobs, the in-flight job and the counters of one named queue.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .job import Job, JobStatus


@dataclass
class QueueStats:
    """Cumulative counters of a queue."""

    total: int = 0
    completed: int = 0
    failed: int = 0
    retries: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def merge(self, data: Mapping[str, Any]) -> None:
        """Overwrite the counters present in data, keep the others."""
        for key in ("total", "completed", "failed", "retries"):
            if key in data and data[key] is not None:
                setattr(self, key, int(data[key]))


@dataclass
class Queue:
    """
    Queue keeps its pending jobs in dispatch order: higher priority first,
    enqueue order among equal priorities.
    """

    name: str
    jobs: List[Job] = field(default_factory=list)
    processing: bool = False
    current: Optional[Job] = None
    history: List[Job] = field(default_factory=list)
    stats: QueueStats = field(default_factory=QueueStats)

    def insert(self, job: Job) -> int:
        """
        Insert a job before the first job with a strictly lower priority.

        :return: Index the job was inserted at.
        """
        for index, queued in enumerate(self.jobs):
            if queued.priority < job.priority:
                self.jobs.insert(index, job)
                return index
        self.jobs.append(job)
        return len(self.jobs) - 1

    def append(self, job: Job) -> None:
        """Put a job at the tail regardless of its priority (retries)."""
        self.jobs.append(job)

    def record_finished(self, job: Job, limit: int) -> None:
        """Keep a finished job for inspection, dropping the oldest beyond limit."""
        if limit <= 0:
            return
        self.history.append(job)
        if len(self.history) > limit:
            del self.history[: len(self.history) - limit]

    def find(self, job_id: str) -> Optional[Job]:
        if self.current is not None and self.current.id == job_id:
            return self.current
        for job in self.jobs:
            if job.id == job_id:
                return job
        for job in self.history:
            if job.id == job_id:
                return job
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Persisted form of the queue. The in-flight job is not part of it."""
        return {
            "jobs": [job.to_dict() for job in self.jobs],
            "stats": self.stats.to_dict(),
            "history": [job.to_dict() for job in self.history],
        }

    def restore(self, data: Mapping[str, Any]) -> None:
        """
        Merge persisted data into the queue.
        Jobs and history replace the in-memory lists, stats are merged key by key.
        """
        if "jobs" in data and data["jobs"] is not None:
            self.jobs = [Job.from_dict(job) for job in data["jobs"]]
            # Persisted pending jobs are dispatched from scratch
            for job in self.jobs:
                job.status = JobStatus.PENDING
        if "history" in data and data["history"] is not None:
            self.history = [Job.from_dict(job) for job in data["history"]]
        if data.get("stats"):
            self.stats.merge(data["stats"])
