"""
workqueue - an in-process background job queue

A job queuing and scheduling system running on one asyncio event loop that provides:
- Named queues ordered by priority, FIFO among equal priorities
- Retries with configurable backoff and a per-job timeout
- A persisted snapshot in a JSON file or PostgreSQL
- Cron scheduled tasks in their own timezone
- A workflow orchestrator binding business services as workers
- Event-driven notifications about job state changes
"""

from ._version import __version__

# Core exports
from .queue_engine import (
    QueueEngine,
    new_queue_engine,
)

from .scheduler import (
    TaskScheduler,
)

from .workflows import (
    AutomatedWorkflows,
    WorkflowServices,
)

from .helper.config import (
    DEFAULT_QUEUES,
    EngineConfiguration,
)

from .helper.database import (
    DatabaseConfiguration,
)

from .model.job import (
    Job,
    JobStatus,
)

from .model.options import (
    JobOptions,
)

from .model.options_on_error import (
    OnError,
    RetryBackoff,
)

from .model.task import (
    ScheduledTask,
)

from .store.job_store import (
    JobStore,
    JsonFileJobStore,
    MemoryJobStore,
)

from .store.db_job_store import (
    PostgresJobStore,
)

from .core.broadcaster import (
    JobEvent,
)

from .helper.error import (
    WorkQueueError,
    UnknownQueueError,
    InvalidWorkerError,
    DuplicateWorkerError,
    InvalidJobError,
    JobTimeoutError,
    DuplicateTaskError,
    UnknownTaskError,
    InvalidScheduleError,
)

# Import submodules for direct access
from . import core
from . import helper
from . import model
from . import store

__all__ = [
    # Core classes
    "QueueEngine",
    "new_queue_engine",
    "TaskScheduler",
    "AutomatedWorkflows",
    "WorkflowServices",
    # Configuration
    "DEFAULT_QUEUES",
    "EngineConfiguration",
    "DatabaseConfiguration",
    # Models
    "Job",
    "JobStatus",
    "JobOptions",
    "OnError",
    "RetryBackoff",
    "ScheduledTask",
    "JobEvent",
    # Stores
    "JobStore",
    "JsonFileJobStore",
    "MemoryJobStore",
    "PostgresJobStore",
    # Exceptions
    "WorkQueueError",
    "UnknownQueueError",
    "InvalidWorkerError",
    "DuplicateWorkerError",
    "InvalidJobError",
    "JobTimeoutError",
    "DuplicateTaskError",
    "UnknownTaskError",
    "InvalidScheduleError",
    # Submodules
    "core",
    "helper",
    "model",
    "store",
    # Version info
    "__version__",
]
