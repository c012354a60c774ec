"""
Error types for the workqueue package.

Programmer errors (unknown queue, invalid worker, malformed job data) are raised
synchronously at the call site. Operational errors are wrapped in WorkQueueError
so the trace of where they passed through is kept.
"""

import inspect
from types import FrameType
from typing import Optional


class WorkQueueError(Exception):
    """
    Error wrapper with trace information.
    Every layer that re-wraps the error appends its own trace entry.
    """

    def __init__(self, trace: str, original: Exception):
        """Initialize WorkQueueError with original error and trace."""
        trace_with_function = trace
        current_frame = inspect.currentframe()

        frame: Optional[FrameType] = None
        if current_frame is not None:
            frame = current_frame.f_back

        if frame:
            trace_with_function = f"{frame.f_code.co_name} - {trace}"

        if isinstance(original, WorkQueueError):
            self.original = original.original
            self.trace = original.trace + [trace_with_function]
        else:
            self.original = original
            self.trace = [trace_with_function]

        super().__init__(str(self.original))

    def __str__(self) -> str:
        """Return formatted error message with trace."""
        return f"{str(self.original)} | Trace: {', '.join(self.trace)}"


class UnknownQueueError(LookupError):
    """Raised when a queue name does not reference an existing queue."""

    def __init__(self, queue_name: str):
        self.queue_name = queue_name
        super().__init__(f"Queue '{queue_name}' does not exist")


class InvalidWorkerError(TypeError):
    """Raised when a worker is not callable."""


class DuplicateWorkerError(ValueError):
    """Raised when a queue already has a worker and replacement was not requested."""

    def __init__(self, queue_name: str):
        self.queue_name = queue_name
        super().__init__(
            f"Queue '{queue_name}' already has a worker, pass replace=True to override it"
        )


class InvalidJobError(ValueError):
    """Raised for malformed job data or job options."""


class InvalidTransitionError(RuntimeError):
    """Raised when a job status change is not a forward transition."""


class JobTimeoutError(TimeoutError):
    """Raised when a worker exceeds the per-job timeout."""

    def __init__(self, job_id: str, timeout: float):
        self.job_id = job_id
        self.timeout = timeout
        super().__init__(f"Job {job_id} timed out after {timeout:g} seconds")


class DuplicateTaskError(ValueError):
    """Raised when a scheduled task name is defined twice."""


class UnknownTaskError(LookupError):
    """Raised when a scheduled task name is not defined."""

    def __init__(self, task_name: str):
        self.task_name = task_name
        super().__init__(f"Task '{task_name}' not found")


class InvalidScheduleError(ValueError):
    """Raised for an invalid cron expression or timezone."""
