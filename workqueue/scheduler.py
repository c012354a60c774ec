"""
TaskScheduler: named recurring actions on cron schedules, one Ticker per task.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, Optional, TypeVar

from .core.ticker import Ticker
from .helper.config import DEFAULT_TIMEZONE
from .helper.error import DuplicateTaskError, UnknownTaskError
from .helper.logging import get_logger
from .model.task import ScheduledTask, new_scheduled_task

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class TaskScheduler:
    """
    Fires named actions on cron schedules in their timezone.

    Actions are either inline work or a thin wrapper that enqueues a job.
    A failing firing is logged and counted; the task stays armed.
    Definitions survive stop, a later start arms the same set again.
    """

    def __init__(
        self,
        timezone: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        :param timezone: Default IANA timezone of tasks defined without one.
        :param clock: Returns the current aware datetime, used by the tickers.
        """
        self.timezone = timezone or DEFAULT_TIMEZONE
        self._clock = clock
        self.tasks: Dict[str, ScheduledTask] = {}
        self._tickers: Dict[str, Ticker] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def define_task(
        self,
        name: str,
        cron_expression: str,
        action: Callable[[], Any],
        timezone: Optional[str] = None,
    ) -> ScheduledTask:
        """
        Define a recurring task. Its timer starts with the scheduler, or right
        away if the scheduler is already running.

        :param name: Unique task name.
        :param cron_expression: 5-field crontab expression, or 6 fields with leading seconds.
        :param action: Sync or async callable without arguments.
        :param timezone: IANA timezone, defaults to the scheduler's.
        :raises InvalidScheduleError: For an invalid name, action, expression or timezone.
        :raises DuplicateTaskError: If a task with the name exists.
        """
        if name in self.tasks:
            raise DuplicateTaskError(f"Task '{name}' is already defined")

        task = new_scheduled_task(
            name, cron_expression, timezone or self.timezone, action
        )
        ticker = Ticker(
            task.cron_expression,
            task.timezone,
            task.action,
            name=task.name,
            clock=self._clock,
            on_run=task.record_run,
        )

        self.tasks[name] = task
        self._tickers[name] = ticker
        logger.info(
            f"Scheduled task '{name}' defined",
            cron=cron_expression,
            timezone=task.timezone,
        )

        if self._running:
            ticker.go()
        return task

    def task(
        self, name: str, cron_expression: str, timezone: Optional[str] = None
    ) -> Callable[[F], F]:
        """
        Decorator to define a function as a recurring task.

        Usage:
            @scheduler.task("file-cleanup", "0 1 * * *")
            async def cleanup():
                ...
        """

        def decorator(action: F) -> F:
            self.define_task(name, cron_expression, action, timezone=timezone)
            return action

        return decorator

    def start(self) -> None:
        """
        Arm every defined task on the running event loop.

        :raises RuntimeError: If called without a running event loop.
        """
        asyncio.get_running_loop()
        if self._running:
            logger.warning("Scheduler is already running")
            return

        for ticker in self._tickers.values():
            ticker.go()
        self._running = True
        logger.info("Scheduler started", tasks=len(self._tickers))

    def stop(self) -> None:
        """Disarm every task. Safe to call when not started."""
        if not self._running:
            return

        for ticker in self._tickers.values():
            ticker.stop()
        self._running = False
        logger.info("Scheduler stopped", tasks=len(self._tickers))

    async def run_task(self, name: str) -> bool:
        """
        Fire a task now, outside its schedule.

        :returns: True if the action succeeded.
        :raises UnknownTaskError: If no task has the name.
        """
        ticker = self._tickers.get(name)
        if ticker is None:
            raise UnknownTaskError(name)

        logger.info(f"Running scheduled task '{name}' manually")
        return await ticker.fire()

    def get_status(self) -> Dict[str, Dict[str, Any]]:
        """State of every task keyed by name."""
        status: Dict[str, Dict[str, Any]] = {}
        for name, task in self.tasks.items():
            ticker = self._tickers[name]
            running = ticker.is_running()
            task.next_run = (ticker.next_run or ticker.next_fire_time()) if running else None

            entry = task.to_dict()
            del entry["name"]
            entry["running"] = running
            entry["scheduled"] = running and task.next_run is not None
            status[name] = entry
        return status
