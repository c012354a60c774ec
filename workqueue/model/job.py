"""
Job model for the workqueue engine.
"""

import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..helper.error import InvalidJobError, InvalidTransitionError
from .options import JobOptions

_ID_ALPHABET = string.digits + string.ascii_lowercase


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"


# Forward transitions only, anything else is a programmer error.
_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {
        JobStatus.COMPLETED,
        JobStatus.RETRYING,
        JobStatus.FAILED,
    },
    JobStatus.RETRYING: {JobStatus.PENDING},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


def utc_now() -> datetime:
    """Default clock of the engine."""
    return datetime.now(timezone.utc)


def generate_job_id(now: Optional[datetime] = None) -> str:
    """
    Generate a job id from the epoch milliseconds and a random base36 suffix.
    """
    millis = int(now.timestamp() * 1000) if now else int(time.time() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"job_{millis}_{suffix}"


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Job:
    """
    Job represents a unit of work in one named queue.

    attempts counts the failed dispatches so far. delay_ms is measured from
    created_at, or from retried_at once the job was scheduled for a retry.
    """

    id: str
    queue_name: str
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    priority: int = 0
    attempts: int = 0
    max_attempts: int = 3
    delay_ms: int = 0
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    retried_at: Optional[datetime] = None
    last_error: Optional[str] = None

    def transition(self, status: JobStatus) -> None:
        """
        Move the job to a new status.

        :raises InvalidTransitionError: If the change is not a forward transition.
        """
        status = JobStatus(status)
        if status not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Job {self.id} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status

    def eligible_at(self) -> datetime:
        """Point in time from which the job may be dispatched."""
        reference = self.retried_at or self.created_at
        return reference + timedelta(milliseconds=self.delay_ms)

    def is_eligible(self, now: datetime) -> bool:
        if self.delay_ms <= 0:
            return True
        return now >= self.eligible_at()

    def to_dict(self) -> Dict[str, Any]:
        """Convert job to a JSON-compatible dictionary."""
        return {
            "id": self.id,
            "queue_name": self.queue_name,
            "type": self.type,
            "payload": self.payload,
            "priority": self.priority,
            "attempts": self.attempts,
            "max_attempts": self.max_attempts,
            "delay_ms": self.delay_ms,
            "status": self.status.value,
            "created_at": _format_datetime(self.created_at),
            "started_at": _format_datetime(self.started_at),
            "completed_at": _format_datetime(self.completed_at),
            "failed_at": _format_datetime(self.failed_at),
            "retried_at": _format_datetime(self.retried_at),
            "last_error": self.last_error,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Job":
        """Create job from a dictionary written by to_dict."""
        return cls(
            id=data["id"],
            queue_name=data.get("queue_name", ""),
            type=data.get("type", ""),
            payload=data.get("payload") or {},
            priority=data.get("priority", 0),
            attempts=data.get("attempts", 0),
            max_attempts=data.get("max_attempts", 3),
            delay_ms=data.get("delay_ms", 0),
            status=JobStatus(data.get("status", JobStatus.PENDING)),
            created_at=_parse_datetime(data.get("created_at")) or utc_now(),
            started_at=_parse_datetime(data.get("started_at")),
            completed_at=_parse_datetime(data.get("completed_at")),
            failed_at=_parse_datetime(data.get("failed_at")),
            retried_at=_parse_datetime(data.get("retried_at")),
            last_error=data.get("last_error"),
        )


def new_job(
    queue_name: str,
    job_data: Mapping[str, Any],
    options: Optional[JobOptions] = None,
    default_max_attempts: int = 3,
    now: Optional[datetime] = None,
) -> Job:
    """
    Create a new pending job from an enqueue request.

    Args:
        queue_name: Name of the queue that owns the job
        job_data: Mapping with a string "type" and an optional "data" payload mapping
        options: Per-job options, defaults apply when None
        default_max_attempts: Attempts used when options.max_retries is not set
        now: Creation time, defaults to the current UTC time

    Returns:
        Job: New job in status pending

    Raises:
        InvalidJobError: If job_data is malformed
    """
    if not isinstance(job_data, Mapping):
        raise InvalidJobError(
            f"job data must be a mapping, got {type(job_data).__name__}"
        )
    job_type = job_data.get("type")
    if not isinstance(job_type, str) or not job_type:
        raise InvalidJobError("job data needs a non-empty string 'type'")
    payload = job_data.get("data")
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise InvalidJobError(
            f"job payload must be a mapping, got {type(payload).__name__}"
        )

    options = options or JobOptions()
    created_at = now or utc_now()

    return Job(
        id=generate_job_id(created_at),
        queue_name=queue_name,
        type=job_type,
        payload=dict(payload),
        priority=options.priority,
        max_attempts=options.max_retries or default_max_attempts,
        delay_ms=options.delay_ms,
        created_at=created_at,
    )
