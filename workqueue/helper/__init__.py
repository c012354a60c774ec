"""
Helper package for workqueue.
Errors, logging, configuration, callable validation and database utilities.
"""

from .error import (
    WorkQueueError,
    UnknownQueueError,
    InvalidWorkerError,
    DuplicateWorkerError,
    InvalidJobError,
    InvalidTransitionError,
    JobTimeoutError,
    DuplicateTaskError,
    UnknownTaskError,
    InvalidScheduleError,
)

from .task import (
    check_valid_task,
    check_valid_task_with_parameters,
    get_task_name,
    is_async_task,
)

from .logging import (
    WorkQueueLogger,
    ColorFormatter,
    get_logger,
    setup_logging,
)

from .database import (
    Database,
    DatabaseConfiguration,
    new_database,
    new_database_from_env,
)

from .config import (
    DEFAULT_QUEUES,
    DEFAULT_TIMEZONE,
    EngineConfiguration,
)

__all__ = [
    # Error handling
    "WorkQueueError",
    "UnknownQueueError",
    "InvalidWorkerError",
    "DuplicateWorkerError",
    "InvalidJobError",
    "InvalidTransitionError",
    "JobTimeoutError",
    "DuplicateTaskError",
    "UnknownTaskError",
    "InvalidScheduleError",
    # Task utilities
    "check_valid_task",
    "check_valid_task_with_parameters",
    "get_task_name",
    "is_async_task",
    # Logging utilities
    "WorkQueueLogger",
    "ColorFormatter",
    "get_logger",
    "setup_logging",
    # Database utilities
    "Database",
    "DatabaseConfiguration",
    "new_database",
    "new_database_from_env",
    # Configuration
    "DEFAULT_QUEUES",
    "DEFAULT_TIMEZONE",
    "EngineConfiguration",
]
