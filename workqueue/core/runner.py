"""
Runner - executes one worker or action invocation on the event loop.

Coroutine functions are awaited on the loop, synchronous functions run in a
worker thread via asyncio.to_thread so they do not block it. A timed out
synchronous function cannot be interrupted: its thread keeps running in the
background while the runner reports the timeout.
"""

import asyncio
import inspect
from typing import Any, Callable, Optional

from ..helper.error import JobTimeoutError
from ..helper.logging import get_logger
from ..helper.task import check_valid_task, get_task_name, is_async_task

logger = get_logger(__name__)


class Runner:
    """
    Manages the execution of a single task as an asyncio task and retrieves its result.

    :param task: The synchronous or asynchronous function to execute.
    :param args: Arguments to pass to the task function.
    :param name: Name reported in logs and timeout errors, defaults to the task name.
    """

    def __init__(
        self,
        task: Callable[..., Any],
        *args: Any,
        name: Optional[str] = None,
    ):
        check_valid_task(task)
        self.task = task
        self.args = args
        self.name = name or get_task_name(task)
        self.is_async = is_async_task(task)
        self._future: Optional["asyncio.Task[Any]"] = None

    async def _invoke(self) -> Any:
        if self.is_async:
            result = self.task(*self.args)
        else:
            result = await asyncio.to_thread(self.task, *self.args)

        # Sync callables returning an awaitable (e.g. mocks, partials of coroutines)
        if inspect.isawaitable(result):
            result = await result
        return result

    def go(self) -> None:
        """
        Starts the task in the background.

        :raises RuntimeError: If called without a running event loop.
        """
        if self._future is not None:
            return
        loop = asyncio.get_running_loop()
        self._future = loop.create_task(self._invoke(), name=f"runner-{self.name}")

    async def get_results(self, timeout: Optional[float] = None) -> Any:
        """
        Waits for the task to complete and returns the result.

        :param timeout: Time in seconds to wait for the result. None or 0 waits indefinitely.
        :returns: The result returned by the executed task function.
        :raises JobTimeoutError: If the task did not finish within the timeout.
        :raises Exception: Whatever the task raised.
        """
        self.go()
        assert self._future is not None

        done, _ = await asyncio.wait({self._future}, timeout=timeout or None)
        if not done:
            logger.warning(
                "Runner timed out, cancelling", runner=self.name, timeout=timeout
            )
            self.cancel()
            raise JobTimeoutError(self.name, timeout or 0)

        return self._future.result()

    def cancel(self) -> bool:
        """
        Attempts to cancel the running task.

        :returns: True if the task was finished or cancellation was requested.
        """
        if self._future is None or self._future.done():
            return True
        return self._future.cancel()

    def is_alive(self) -> bool:
        return self._future is not None and not self._future.done()


def go_func(task: Callable[..., Any], *args: Any, name: Optional[str] = None) -> Runner:
    """
    Start a runner for the task and return it.

    :param task: The function to execute.
    :param args: Positional arguments for the function.
    :param name: Optional runner name.
    :returns: A running Runner instance.
    """
    runner = Runner(task, *args, name=name)
    runner.go()
    return runner


async def run_task(
    task: Callable[..., Any],
    *args: Any,
    timeout: Optional[float] = None,
    name: Optional[str] = None,
) -> Any:
    """
    Run the task to completion and return its result.

    :raises JobTimeoutError: If the task exceeded the timeout.
    """
    return await go_func(task, *args, name=name).get_results(timeout)
