"""
Job-related methods of the queue engine: enqueue, lookup, stats and persistence.
"""

import asyncio
import copy
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .core.broadcaster import JOB_ADDED, JobEvent
from .core.listener import Listener
from .helper.error import UnknownQueueError
from .helper.logging import get_logger
from .model.job import Job, new_job
from .model.options import JobOptions, new_job_options
from .model.queue import Queue
from .queue_engine_global import QueueEngineGlobalMixin

logger = get_logger(__name__)


class QueueEngineJobMixin(QueueEngineGlobalMixin):
    """
    Mixin class containing the job-related methods of the QueueEngine.
    """

    def __init__(self):
        super().__init__()

    def create_queue(self, name: str) -> Queue:
        """
        Create a named queue. Creating an existing queue returns it unchanged.
        Persisted data held for the name is merged into the new queue.
        """
        queue = self.queues.get(name)
        if queue is not None:
            return queue

        queue = Queue(name=name)
        persisted = self._snapshot_queues.pop(name, None)
        if persisted:
            queue.restore(persisted)
        self.queues[name] = queue

        logger.debug("Queue created", queue=name, pending=len(queue.jobs))
        return queue

    def _require_queue(self, queue_name: str) -> Queue:
        queue = self.queues.get(queue_name)
        if queue is None:
            raise UnknownQueueError(queue_name)
        return queue

    def enqueue(
        self,
        queue_name: str,
        job_data: Mapping[str, Any],
        options: Union[JobOptions, Mapping[str, Any], None] = None,
    ) -> str:
        """
        Add a job to a named queue.

        The job is inserted before the first job with a strictly lower
        priority, the snapshot is saved and the processing loop is woken up.
        Called from a thread other than the engine loop's, the call is handed
        over to the loop and blocks until the job is queued.

        :param queue_name: Name of an existing queue.
        :param job_data: Mapping with a string "type" and an optional "data" payload.
        :param options: JobOptions or a mapping with priority, delay and maxRetries.
        :returns: The id of the new job.
        :raises UnknownQueueError: If the queue does not exist.
        :raises InvalidJobError: If job data or options are malformed.
        """
        loop = self._foreign_thread_loop()
        if loop is not None:
            future = asyncio.run_coroutine_threadsafe(
                self._enqueue_async(queue_name, job_data, options), loop
            )
            return future.result()
        return self._enqueue(queue_name, job_data, options)

    async def _enqueue_async(
        self,
        queue_name: str,
        job_data: Mapping[str, Any],
        options: Union[JobOptions, Mapping[str, Any], None],
    ) -> str:
        return self._enqueue(queue_name, job_data, options)

    def _enqueue(
        self,
        queue_name: str,
        job_data: Mapping[str, Any],
        options: Union[JobOptions, Mapping[str, Any], None],
    ) -> str:
        queue = self._require_queue(queue_name)
        job_options = new_job_options(options)
        job = new_job(
            queue_name,
            job_data,
            job_options,
            default_max_attempts=self.on_error.max_retries,
            now=self._clock(),
        )

        position = queue.insert(job)
        queue.stats.total += 1
        self.save_state()

        logger.info(
            f"Job {job.id} added to queue '{queue_name}'",
            type=job.type,
            priority=job.priority,
            position=position,
        )
        self._broadcast(JOB_ADDED, job)

        self._wake()
        self._auto_start()
        return job.id

    def _auto_start(self) -> None:
        """Start the processing loop if enabled and an event loop is running here."""
        if not self.auto_start or self.is_processing:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self.start_processing()

    def get_job(self, job_id: str) -> Optional[Job]:
        """Find a job by id among pending, in-flight and finished jobs."""
        for queue in self.queues.values():
            job = queue.find(job_id)
            if job is not None:
                return job
        return None

    def get_queue_stats(
        self, queue_name: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Counters of one queue, or of every queue keyed by name.

        :returns: None if a named queue does not exist.
        """
        if queue_name is None:
            return {
                name: self._queue_stats(queue) for name, queue in self.queues.items()
            }

        queue = self.queues.get(queue_name)
        if queue is None:
            return None
        return self._queue_stats(queue)

    def _queue_stats(self, queue: Queue) -> Dict[str, Any]:
        return {
            "name": queue.name,
            "pending": len(queue.jobs),
            "processing": queue.processing,
            "history": len(queue.history),
            **queue.stats.to_dict(),
        }

    def clear_queue(self, queue_name: str) -> int:
        """
        Drop the pending jobs and the history of a queue.
        The in-flight job and the counters are kept.

        :returns: Number of pending jobs removed.
        :raises UnknownQueueError: If the queue does not exist.
        """
        queue = self._require_queue(queue_name)
        removed = len(queue.jobs)
        queue.jobs.clear()
        queue.history.clear()
        self.save_state()

        logger.info(f"Queue '{queue_name}' cleared", removed=removed)
        return removed

    def snapshot(self) -> Dict[str, Any]:
        """Persisted document of all queues."""
        queues: Dict[str, Any] = copy.deepcopy(self._snapshot_queues)
        for name, queue in self.queues.items():
            queues[name] = queue.to_dict()
        return {"timestamp": self._clock().isoformat(), "queues": queues}

    def save_state(self) -> bool:
        """Write the snapshot to the store. Failures are logged, never raised."""
        try:
            return self.store.save(self.snapshot())
        except Exception as e:
            logger.error("Failed to save queue state", e)
            return False

    def load_state(self) -> bool:
        """
        Merge the stored snapshot into the queues.
        Data of queues that do not exist yet is held until they are created.

        :returns: True if a snapshot was loaded.
        """
        try:
            snapshot = self.store.load()
        except Exception as e:
            logger.error("Failed to load queue state", e)
            return False
        if not snapshot:
            return False

        restored = 0
        for name, data in (snapshot.get("queues") or {}).items():
            queue = self.queues.get(name)
            if queue is None:
                self._snapshot_queues[name] = data
                continue
            try:
                queue.restore(data)
                restored += 1
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Failed to restore queue '{name}'", e)

        logger.info(
            "Queue state loaded",
            timestamp=snapshot.get("timestamp"),
            queues=restored,
            held=len(self._snapshot_queues),
        )
        return True

    def _broadcast(self, name: str, job: Job) -> None:
        # Listeners run later, they get the job as it is now
        self.events.broadcast(JobEvent(name, job.queue_name, copy.copy(job)))

    def add_listener(self, notify_function: Callable[[JobEvent], Any]) -> Listener:
        """
        Call notify_function with every job event of this engine.
        Needs a running event loop.
        """
        listener: Listener[JobEvent] = Listener(self.events)
        listener.listen(notify_function)
        self.listeners.append(listener)
        return listener

