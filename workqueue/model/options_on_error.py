"""
Engine-wide error handling policy: retry limit, retry backoff and job timeout.
"""

from enum import Enum
from typing import Any, Dict


class RetryBackoff(str, Enum):
    """Retry backoff strategies."""

    NONE = "none"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


class OnError:
    """Options for handling errors during job execution."""

    def __init__(
        self,
        timeout: float = 300.0,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        retry_backoff: str = RetryBackoff.LINEAR,
        timeout_retryable: bool = True,
    ):
        """Initialize OnError options.

        Args:
            timeout: Maximum time in seconds a worker may run, 0 disables the timeout
            max_retries: Default number of attempts a job gets before it fails permanently
            retry_delay: Base delay in seconds before a failed job is retried
            retry_backoff: Backoff strategy (none, linear, exponential)
            timeout_retryable: Whether a timed out job goes through the retry path
        """
        if timeout < 0:
            raise ValueError("timeout cannot be negative")
        if max_retries < 1:
            raise ValueError("max retries must be at least 1")
        if retry_delay < 0:
            raise ValueError("retry delay cannot be negative")
        if retry_backoff not in [
            RetryBackoff.NONE,
            RetryBackoff.LINEAR,
            RetryBackoff.EXPONENTIAL,
        ]:
            raise ValueError(f"invalid retry backoff '{retry_backoff}'")

        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.retry_backoff = RetryBackoff(retry_backoff)
        self.timeout_retryable = timeout_retryable

    def backoff_delay(self, attempt: int) -> float:
        """
        Delay in seconds before retrying a job that has failed `attempt` times.

        - NONE: retry_delay every time.
        - LINEAR: retry_delay * attempt.
        - EXPONENTIAL: retry_delay doubled after each failure.
        """
        if attempt < 1:
            return 0.0
        if self.retry_backoff == RetryBackoff.LINEAR:
            return self.retry_delay * attempt
        if self.retry_backoff == RetryBackoff.EXPONENTIAL:
            return self.retry_delay * 2 ** (attempt - 1)
        return self.retry_delay

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "retry_delay": self.retry_delay,
            "retry_backoff": self.retry_backoff.value,
            "timeout_retryable": self.timeout_retryable,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OnError":
        """Create OnError from dictionary."""
        return cls(
            timeout=data.get("timeout", 300.0),
            max_retries=data.get("max_retries", 3),
            retry_delay=data.get("retry_delay", 5.0),
            retry_backoff=data.get("retry_backoff", RetryBackoff.LINEAR),
            timeout_retryable=data.get("timeout_retryable", True),
        )
