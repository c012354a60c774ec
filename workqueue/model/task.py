"""
Scheduled task model: a named recurring action bound to a cron expression.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ..helper.error import InvalidScheduleError, InvalidWorkerError
from ..helper.task import check_valid_task_with_parameters, is_async_task


@dataclass
class ScheduledTask:
    """
    ScheduledTask keeps the definition of a recurring task and the bookkeeping
    of its firings. The definition outlives start/stop of the scheduler.
    """

    name: str
    cron_expression: str
    timezone: str
    action: Callable[[], Any]
    is_async: bool = False
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    run_count: int = 0
    failure_count: int = 0
    last_error: Optional[str] = None

    def record_run(self, started_at: datetime, error: Optional[BaseException] = None):
        self.last_run = started_at
        self.run_count += 1
        if error is not None:
            self.failure_count += 1
            self.last_error = str(error) or type(error).__name__
        else:
            self.last_error = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "cron": self.cron_expression,
            "timezone": self.timezone,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "run_count": self.run_count,
            "failure_count": self.failure_count,
            "last_error": self.last_error,
        }


def new_scheduled_task(
    name: str, cron_expression: str, timezone: str, action: Callable[[], Any]
) -> ScheduledTask:
    """
    Create a new scheduled task.
    The cron expression itself is validated by the ticker that arms the task.

    :raises InvalidScheduleError: If the name is empty or the action is not a callable without arguments.
    """
    if not isinstance(name, str) or not name or len(name) > 100:
        raise InvalidScheduleError("task name must have a length between 1 and 100")

    try:
        check_valid_task_with_parameters(action, 0)
    except InvalidWorkerError as e:
        raise InvalidScheduleError(f"action of task '{name}' is invalid: {e}") from e

    return ScheduledTask(
        name=name,
        cron_expression=cron_expression,
        timezone=timezone,
        action=action,
        is_async=is_async_task(action),
    )
