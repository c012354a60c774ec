"""
Cron Ticker - fires an action on every fire time of a cron expression.

Fire times come from APScheduler's CronTrigger evaluated in an IANA timezone.
The ticker only uses the trigger for date arithmetic, the waiting happens in an
asyncio task on the running event loop.
"""

import asyncio
import inspect
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Any, Callable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.triggers.cron import CronTrigger

from ..helper.error import InvalidScheduleError
from ..helper.logging import get_logger
from ..helper.task import check_valid_task, get_task_name

logger = get_logger(__name__)

# Crontab numbering: 0 and 7 are Sunday.
_DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


def _parse_day(value: str) -> int:
    value = value.strip().lower()
    if value.isdigit():
        day = int(value)
        if day > 7:
            raise InvalidScheduleError(f"day of week out of range: {value}")
        return day % 7
    if value[:3] in _DAY_NAMES:
        return _DAY_NAMES.index(value[:3])
    raise InvalidScheduleError(f"invalid day of week: {value}")


def translate_day_of_week(field: str) -> str:
    """
    Translate a crontab day-of-week field to APScheduler's weekday names.

    APScheduler counts weekdays from Monday = 0, crontab from Sunday = 0, so
    numeric values, ranges and steps are expanded to explicit names.
    """
    result: List[str] = []
    for part in field.split(","):
        expr, _, step_text = part.partition("/")
        if step_text and not step_text.isdigit():
            raise InvalidScheduleError(f"invalid step in day of week: {part}")
        step = int(step_text) if step_text else 1
        if step < 1:
            raise InvalidScheduleError(f"invalid step in day of week: {part}")

        if expr == "*":
            if not step_text:
                return "*"
            days = list(range(0, 7, step))
        elif "-" in expr:
            start_text, end_text = expr.split("-", 1)
            start, end = _parse_day(start_text), _parse_day(end_text)
            if end_text.strip() == "7":
                end = 7
            if start > end:
                raise InvalidScheduleError(f"invalid day of week range: {expr}")
            days = [day % 7 for day in range(start, end + 1, step)]
        else:
            start = _parse_day(expr)
            days = list(range(start, 7, step)) if step_text else [start]

        for day in days:
            name = _DAY_NAMES[day]
            if name not in result:
                result.append(name)

    return ",".join(result)


def build_trigger(cron_expression: str, timezone: str) -> CronTrigger:
    """
    Build a CronTrigger from a crontab expression.

    :param cron_expression: 5 fields (minute hour day month day-of-week) or
        6 fields with a leading seconds field.
    :param timezone: IANA timezone name the expression is evaluated in.
    :raises InvalidScheduleError: If the expression or the timezone is invalid.
    """
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
        raise InvalidScheduleError(f"unknown timezone '{timezone}'") from e

    if not isinstance(cron_expression, str):
        raise InvalidScheduleError("cron expression must be a string")
    fields = cron_expression.split()
    if len(fields) == 5:
        fields = ["0"] + fields
    elif len(fields) != 6:
        raise InvalidScheduleError(
            f"cron expression must have 5 or 6 fields, got {len(fields)}: '{cron_expression}'"
        )

    second, minute, hour, day, month, day_of_week = fields
    try:
        return CronTrigger(
            second=second,
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=translate_day_of_week(day_of_week),
            timezone=timezone,
        )
    except ValueError as e:
        raise InvalidScheduleError(
            f"invalid cron expression '{cron_expression}': {e}"
        ) from e


def _utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


class Ticker:
    """
    Runs an action at every fire time of a cron expression.
    A failing action is logged and the ticker stays armed.
    """

    def __init__(
        self,
        cron_expression: str,
        timezone: str,
        action: Callable[[], Any],
        name: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
        on_run: Optional[Callable[[datetime, Optional[BaseException]], Any]] = None,
    ):
        """
        Initializes the Ticker.

        :param cron_expression: Crontab expression, see build_trigger.
        :param timezone: IANA timezone name.
        :param action: Sync or async callable without arguments. Sync actions
            run on the event loop and must return quickly.
        :param name: Name used in logs, defaults to the action name.
        :param clock: Returns the current aware datetime, defaults to UTC now.
        :param on_run: Called after every firing with the start time and the
            exception raised by the action (None on success).
        """
        check_valid_task(action)
        self.cron_expression = cron_expression
        self.timezone = timezone
        self.trigger = build_trigger(cron_expression, timezone)
        self.action = action
        self.name = name or get_task_name(action)
        self.next_run: Optional[datetime] = None
        self._clock = clock or _utc_now
        self._on_run = on_run
        self._last_fire: Optional[datetime] = None
        self._stop_event = asyncio.Event()
        self._task: Optional["asyncio.Task[None]"] = None

    def next_fire_time(self, after: Optional[datetime] = None) -> Optional[datetime]:
        """
        First fire time at or after the given time.

        :param after: Aware datetime, defaults to now.
        :returns: Aware datetime in the ticker's timezone, None if the schedule is exhausted.
        """
        after = after or self._clock()
        return self.trigger.get_next_fire_time(None, after)

    async def fire(self) -> bool:
        """
        Invoke the action once.

        :returns: True if the action succeeded, False if it raised.
        """
        started_at = self._clock()
        error: Optional[BaseException] = None
        try:
            result = self.action()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            error = e
            logger.error("Scheduled task failed", e, task=self.name)

        if self._on_run is not None:
            self._on_run(started_at, error)
        return error is None

    async def _ticker_function(self, stop_event: asyncio.Event) -> None:
        logger.debug(
            "Ticker started", task=self.name, cron=self.cron_expression, timezone=self.timezone
        )

        while not stop_event.is_set():
            now = self._clock()
            after = now
            if self._last_fire is not None and self._last_fire >= now:
                after = self._last_fire + timedelta(microseconds=1)

            next_fire = self.next_fire_time(after)
            self.next_run = next_fire
            if next_fire is None:
                logger.info("Ticker has no further fire times", task=self.name)
                break

            delay = max((next_fire - now).total_seconds(), 0.0)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass

            self._last_fire = next_fire
            await self.fire()

        # A restarted ticker owns next_run once this run has been stopped.
        if stop_event is self._stop_event:
            self.next_run = None

    def go(self) -> None:
        """
        Arms the ticker on the running event loop.

        :raises RuntimeError: If called without a running event loop.
        """
        if self.is_running():
            return

        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._task = loop.create_task(
            self._ticker_function(self._stop_event), name=f"ticker-{self.name}"
        )

    def stop(self) -> None:
        """
        Disarms the ticker. A firing that is in progress completes.
        """
        if self._task is None:
            return

        self._stop_event.set()
        self._task = None
        self.next_run = None
        logger.debug("Ticker stopped", task=self.name)

    def is_running(self) -> bool:
        """
        Checks if the ticker is armed.
        """
        return (
            self._task is not None
            and not self._task.done()
            and not self._stop_event.is_set()
        )
