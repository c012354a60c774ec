"""
Model package for workqueue.

Contains the data models of the queue engine and the scheduler.
"""

from .job import Job, JobStatus, new_job, generate_job_id
from .queue import Queue, QueueStats
from .worker import Worker, new_worker
from .task import ScheduledTask, new_scheduled_task
from .options import JobOptions, new_job_options
from .options_on_error import OnError, RetryBackoff

__all__ = [
    # Job related
    "Job",
    "JobStatus",
    "new_job",
    "generate_job_id",
    # Queue related
    "Queue",
    "QueueStats",
    # Worker related
    "Worker",
    "new_worker",
    # Scheduled task related
    "ScheduledTask",
    "new_scheduled_task",
    # Options
    "JobOptions",
    "new_job_options",
    "OnError",
    "RetryBackoff",
]
