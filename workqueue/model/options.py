"""
Per-job options given to enqueue.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from ..helper.error import InvalidJobError

# Accepted keys, including the camelCase and short spellings used by callers.
_OPTION_KEYS = {
    "priority": "priority",
    "delay_ms": "delay_ms",
    "delay": "delay_ms",
    "max_retries": "max_retries",
    "maxRetries": "max_retries",
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class JobOptions:
    """
    Options for a single job.

    priority: higher is served first within a queue.
    delay_ms: minimum age in milliseconds before the job may be dispatched.
    max_retries: attempts before the job fails permanently, None for the engine default.
    """

    priority: int = 0
    delay_ms: int = 0
    max_retries: Optional[int] = None

    def __post_init__(self):
        if not _is_int(self.priority):
            raise InvalidJobError(
                f"priority must be an integer, got {type(self.priority).__name__}"
            )
        if not _is_int(self.delay_ms) or self.delay_ms < 0:
            raise InvalidJobError(
                f"delay_ms must be a non-negative integer, got {self.delay_ms!r}"
            )
        if self.max_retries is not None and (
            not _is_int(self.max_retries) or self.max_retries < 1
        ):
            raise InvalidJobError(
                f"max_retries must be a positive integer, got {self.max_retries!r}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priority": self.priority,
            "delay_ms": self.delay_ms,
            "max_retries": self.max_retries,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JobOptions":
        """
        Create options from a mapping.

        :param data: Mapping with priority, delay_ms (or delay) and max_retries (or maxRetries).
        :return: JobOptions instance.
        :raises InvalidJobError: For unknown keys or invalid values.
        """
        unknown = [key for key in data if key not in _OPTION_KEYS]
        if unknown:
            raise InvalidJobError(f"unknown job options: {', '.join(sorted(unknown))}")

        values: Dict[str, Any] = {}
        for key, value in data.items():
            if value is not None:
                values[_OPTION_KEYS[key]] = value
        return cls(**values)


def new_job_options(
    options: Union["JobOptions", Mapping[str, Any], None] = None,
) -> JobOptions:
    """
    Normalize the options argument of enqueue.

    :param options: None, a JobOptions instance or a mapping.
    :return: JobOptions instance.
    :raises InvalidJobError: If the options are malformed.
    """
    if options is None:
        return JobOptions()
    if isinstance(options, JobOptions):
        return options
    if isinstance(options, Mapping):
        return JobOptions.from_dict(options)
    raise InvalidJobError(
        f"job options must be a mapping or JobOptions, got {type(options).__name__}"
    )
