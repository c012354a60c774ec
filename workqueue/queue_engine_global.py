import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .core.broadcaster import JobEvent, new_broadcaster
from .core.listener import Listener
from .helper.logging import get_logger
from .model.job import utc_now
from .model.options_on_error import OnError
from .model.queue import Queue
from .model.worker import Worker
from .store.job_store import JobStore, MemoryJobStore

logger = get_logger(__name__)


class QueueEngineGlobalMixin:
    def __init__(self):
        self.running: bool = False

        # Queues and the worker bound to each of them
        self.queues: Dict[str, Queue] = {}
        self.workers: Dict[str, Worker] = {}

        # Persisted queue data of queues that are not created (yet)
        self._snapshot_queues: Dict[str, Any] = {}

        # Job lifecycle events
        self.events = new_broadcaster("workqueue.jobs")
        self.listeners: List[Listener[JobEvent]] = []

        # Processing loop state, bound to the loop that runs start_processing
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_task: Optional["asyncio.Task[None]"] = None
        self._drains: Dict[str, "asyncio.Task[int]"] = {}
        self._wake_event: asyncio.Event = asyncio.Event()
        self._stop_requested: bool = False

        self.store: JobStore
        self.on_error: OnError
        self.history_limit: int = 1000
        self.poll_interval: float = 1.0
        self.auto_start: bool = True
        self._clock: Callable[[], datetime] = utc_now

    def initialise(
        self,
        store: Optional[JobStore] = None,
        on_error: Optional[OnError] = None,
        clock: Optional[Callable[[], datetime]] = None,
        history_limit: int = 1000,
        poll_interval: float = 1.0,
        auto_start: bool = True,
    ):
        self.store = store if store is not None else MemoryJobStore()
        self.on_error = on_error or OnError()
        self._clock = clock or utc_now
        self.history_limit = history_limit
        self.poll_interval = poll_interval
        self.auto_start = auto_start

    def _in_loop_thread(self) -> bool:
        """True when called from the thread running the engine's event loop."""
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _foreign_thread_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        """The engine loop if it runs and the caller is on another thread, else None."""
        loop = self._loop
        if loop is None or loop.is_closed() or not loop.is_running():
            return None
        if self._in_loop_thread():
            return None
        return loop

    def _wake(self) -> None:
        """Wake the processing loop."""
        loop = self._foreign_thread_loop()
        if loop is not None:
            loop.call_soon_threadsafe(self._wake_event.set)
        else:
            self._wake_event.set()

    @property
    def is_processing(self) -> bool:
        """True while the processing loop task is alive."""
        return (
            self.running
            and self._loop_task is not None
            and not self._loop_task.done()
        )
