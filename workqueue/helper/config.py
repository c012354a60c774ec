"""
Engine configuration loaded from environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from ..model.options_on_error import OnError, RetryBackoff

DEFAULT_QUEUES: Tuple[str, ...] = (
    "email",
    "pdf-processing",
    "notifications",
    "reports",
    "cleanup",
    "backup",
    "seo",
)

DEFAULT_TIMEZONE = "Asia/Jakarta"

STORE_BACKENDS: Tuple[str, ...] = ("file", "postgres", "memory")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{value}'")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{value}'")


@dataclass
class EngineConfiguration:
    """
    Configuration for the queue engine, the scheduler and the orchestrator.
    """

    data_dir: str = "data"
    queue_file: str = "queue.json"
    store_backend: str = "file"
    queue_names: Tuple[str, ...] = field(default_factory=lambda: DEFAULT_QUEUES)
    max_retries: int = 3
    retry_delay: float = 5.0
    retry_backoff: str = RetryBackoff.LINEAR
    job_timeout: float = 300.0
    poll_interval: float = 1.0
    history_limit: int = 1000
    timezone: str = DEFAULT_TIMEZONE
    memory_alert_mb: int = 500
    admin_email: str = ""
    shutdown_timeout: float = 30.0
    log_level: str = "INFO"

    def __post_init__(self):
        if self.store_backend not in STORE_BACKENDS:
            raise ValueError(
                f"store backend must be one of {', '.join(STORE_BACKENDS)}, "
                f"got '{self.store_backend}'"
            )
        if self.poll_interval <= 0:
            raise ValueError("poll interval must be positive")
        if self.history_limit < 0:
            raise ValueError("history limit cannot be negative")
        if self.shutdown_timeout < 0:
            raise ValueError("shutdown timeout cannot be negative")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"invalid log level '{self.log_level}'")

    @classmethod
    def from_env(cls) -> "EngineConfiguration":
        """Create configuration from WORKQUEUE_* environment variables."""
        return cls(
            data_dir=os.getenv("WORKQUEUE_DATA_DIR", "data"),
            queue_file=os.getenv("WORKQUEUE_QUEUE_FILE", "queue.json"),
            store_backend=os.getenv("WORKQUEUE_STORE", "file").strip().lower(),
            max_retries=_env_int("WORKQUEUE_MAX_RETRIES", 3),
            retry_delay=_env_float("WORKQUEUE_RETRY_DELAY", 5.0),
            retry_backoff=os.getenv("WORKQUEUE_RETRY_BACKOFF", RetryBackoff.LINEAR)
            .strip()
            .lower(),
            job_timeout=_env_float("WORKQUEUE_JOB_TIMEOUT", 300.0),
            poll_interval=_env_float("WORKQUEUE_POLL_INTERVAL", 1.0),
            history_limit=_env_int("WORKQUEUE_HISTORY_LIMIT", 1000),
            timezone=os.getenv("WORKQUEUE_TIMEZONE", DEFAULT_TIMEZONE),
            memory_alert_mb=_env_int("WORKQUEUE_MEMORY_ALERT_MB", 500),
            admin_email=os.getenv("WORKQUEUE_ADMIN_EMAIL", ""),
            shutdown_timeout=_env_float("WORKQUEUE_SHUTDOWN_TIMEOUT", 30.0),
            log_level=os.getenv("WORKQUEUE_LOG_LEVEL", "INFO"),
        )

    @property
    def queue_path(self) -> Path:
        """Path of the JSON snapshot used by the file store."""
        return Path(self.data_dir) / self.queue_file

    @property
    def level(self) -> int:
        """Numeric logging level."""
        return logging.getLevelName(self.log_level.upper())

    def on_error(self) -> OnError:
        """Engine-wide retry and timeout policy."""
        return OnError(
            timeout=self.job_timeout,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            retry_backoff=self.retry_backoff,
        )
