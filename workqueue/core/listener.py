"""
Listener consuming a broadcaster on the event loop and handing every message
to a notify function.
"""

import asyncio
import inspect
from typing import Any, Callable, Generic, Optional, TypeVar

from .broadcaster import Broadcaster, BroadcasterQueue
from ..helper.logging import get_logger
from ..helper.task import check_valid_task_with_parameters, get_task_name

T = TypeVar("T")

logger = get_logger(__name__)


class Listener(Generic[T]):
    """A listener that receives broadcasts and calls a notify function."""

    def __init__(self, broadcaster: Broadcaster[T]):
        """Initialize listener."""
        self.broadcaster: Broadcaster[T] = broadcaster
        self._queue: Optional[BroadcasterQueue[T]] = None
        self._task: Optional["asyncio.Task[None]"] = None

    def listen(self, notify_function: Callable[[T], Any]) -> "asyncio.Task[None]":
        """
        Start listening for broadcasts.

        The subscription happens before this method returns, so no message
        broadcast afterwards is missed. The notify function may be sync or
        async; its exceptions are logged and do not stop the listener.

        :param notify_function: Called with every broadcast message.
        :returns: The asyncio task consuming the broadcaster.
        :raises RuntimeError: If called without a running event loop.
        """
        check_valid_task_with_parameters(notify_function, 1)
        loop = asyncio.get_running_loop()

        if self.is_listening():
            raise RuntimeError("listener is already listening")

        self._queue = self.broadcaster.subscribe()
        self._task = loop.create_task(
            self._listen(self._queue, notify_function),
            name=f"listener-{get_task_name(notify_function)}",
        )
        return self._task

    async def _listen(
        self, queue: BroadcasterQueue[T], notify_function: Callable[[T], Any]
    ) -> None:
        try:
            while True:
                message = await queue.get()
                try:
                    result = notify_function(message)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(
                        "Listener notify function failed",
                        e,
                        function=get_task_name(notify_function),
                    )
                finally:
                    queue.task_done()
        finally:
            self.broadcaster.unsubscribe(queue)

    async def wait_for_notifications_processed(self, timeout: float = 5.0) -> bool:
        """Wait until every received message has been handled."""
        if self._queue is None:
            return True
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def stop(self) -> None:
        """Stop listening and unsubscribe from the broadcaster."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._queue is not None:
            self.broadcaster.unsubscribe(self._queue)
            self._queue = None

    def is_listening(self) -> bool:
        """Check if currently listening."""
        return self._task is not None and not self._task.done()
