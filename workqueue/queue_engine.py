"""
Main QueueEngine class: named priority queues drained by their worker functions
on the asyncio event loop, with retries and a persisted snapshot.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from .core.broadcaster import JOB_COMPLETED, JOB_FAILED, JOB_RETRY
from .core.runner import go_func
from .helper.config import DEFAULT_QUEUES, EngineConfiguration
from .helper.database import DatabaseConfiguration, new_database_from_env
from .helper.error import JobTimeoutError
from .helper.logging import get_logger
from .model.job import Job, JobStatus
from .model.options_on_error import OnError
from .model.queue import Queue
from .model.worker import Worker
from .queue_engine_job import QueueEngineJobMixin
from .queue_engine_worker import QueueEngineWorkerMixin
from .store.db_job_store import PostgresJobStore
from .store.job_store import JobStore, JsonFileJobStore, MemoryJobStore

logger = get_logger(__name__)


def new_queue_engine(
    config: Optional[EngineConfiguration] = None, **kwargs: Any
) -> "QueueEngine":
    """
    Create a QueueEngine from an EngineConfiguration.
    If config is None, the configuration is read from the WORKQUEUE_* environment variables.

    The store follows config.store_backend unless a store is passed:
    "file" writes the snapshot to config.queue_path, "postgres" connects with
    the WORKQUEUE_DB_* variables, "memory" keeps it in the process.
    """
    config = config or EngineConfiguration.from_env()

    if "store" not in kwargs:
        if config.store_backend == "postgres":
            db_config = DatabaseConfiguration.from_env()
            kwargs["store"] = PostgresJobStore(
                new_database_from_env("workqueue", logger=logger),
                with_table_drop=db_config.with_table_drop,
            )
        elif config.store_backend == "memory":
            kwargs["store"] = MemoryJobStore()
        else:
            kwargs["store"] = JsonFileJobStore(config.queue_path)

    kwargs.setdefault("queue_names", config.queue_names)
    return QueueEngine(config=config, **kwargs)


class QueueEngine(QueueEngineJobMixin, QueueEngineWorkerMixin):
    """
    In-process job queue with several named queues.

    Jobs of one queue are dispatched one at a time, in priority order and
    FIFO among equal priorities. Different queues are drained concurrently.
    Failed jobs are retried with a backoff delay until they run out of attempts.
    """

    def __init__(
        self,
        queue_names: Optional[Iterable[str]] = None,
        store: Optional[JobStore] = None,
        options: Optional[OnError] = None,
        config: Optional[EngineConfiguration] = None,
        clock: Optional[Callable[[], datetime]] = None,
        auto_start: bool = True,
    ):
        """
        :param queue_names: Queues to create, defaults to DEFAULT_QUEUES.
        :param store: Snapshot store, defaults to an in-memory store.
        :param options: Retry and timeout policy, defaults to the configuration's.
        :param config: Engine configuration for poll interval and history limit.
        :param clock: Returns the current aware datetime, for delays and timestamps.
        :param auto_start: Start the processing loop on enqueue when an event loop runs.
        """
        super().__init__()

        config = config or EngineConfiguration()
        self.config = config
        self.initialise(
            store=store,
            on_error=options or config.on_error(),
            clock=clock,
            history_limit=config.history_limit,
            poll_interval=config.poll_interval,
            auto_start=auto_start,
        )

        # Snapshot first so that create_queue merges it
        self.load_state()
        for name in queue_names if queue_names is not None else DEFAULT_QUEUES:
            self.create_queue(name)

        logger.info(
            "Queue engine created",
            queues=len(self.queues),
            store=type(self.store).__name__,
        )

    def start_processing(self) -> None:
        """
        Start the processing loop on the running event loop.
        Does nothing if the loop is already running.

        :raises RuntimeError: If called without a running event loop.
        """
        loop = asyncio.get_running_loop()
        if self.is_processing:
            return

        if (
            self._loop is loop
            and self._loop_task is not None
            and not self._loop_task.done()
        ):
            # The stopped loop has not exited yet, so it picks up the flag again.
            self._stop_requested = False
            self.running = True
            self._wake_event.set()
            logger.info("Queue processing resumed")
            return

        self._loop = loop
        self._wake_event = asyncio.Event()
        self._stop_requested = False
        self.running = True
        self._loop_task = loop.create_task(
            self._processing_loop(), name="workqueue-processing"
        )
        logger.info("Queue processing started")

    def stop_processing(self) -> None:
        """
        Stop dispatching new jobs. In-flight jobs finish, use join to wait for them.
        """
        if not self.running:
            return
        self.running = False
        self._stop_requested = True
        self._wake()
        logger.info("Queue processing stopping")

    def ensure_processing(self) -> bool:
        """
        Restart the processing loop if it is not running.

        :returns: True if the loop had to be started.
        """
        if self.is_processing:
            return False
        logger.warning("Queue processing was not running, restarting it")
        self.start_processing()
        return True

    async def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the processing loop and the running drains to finish.

        :returns: False if they were still running after timeout seconds.
        """
        tasks = [
            task
            for task in [self._loop_task, *self._drains.values()]
            if task is not None and not task.done()
        ]
        if not tasks:
            return True
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        return not pending

    async def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Stop processing and wait up to timeout seconds for in-flight jobs.
        Drains still running after the timeout are cancelled and their job
        is put back at the head of its queue.

        :returns: True if everything finished within the timeout.
        """
        self.stop_processing()
        finished = await self.join(timeout)
        if not finished:
            running = [task for task in self._drains.values() if not task.done()]
            logger.warning(
                "In-flight jobs did not finish in time, cancelling",
                drains=len(running),
                timeout=timeout,
            )
            for task in running:
                task.cancel()
            await asyncio.gather(*running, return_exceptions=True)

        return finished

    def close(self) -> None:
        """Close the store. The engine must be stopped."""
        self.store.close()

    def _drain_active(self, queue_name: str) -> bool:
        task = self._drains.get(queue_name)
        return task is not None and not task.done()

    def _should_drain(self, queue: Queue) -> bool:
        return (
            bool(queue.jobs)
            and queue.name in self.workers
            and not queue.processing
            and not self._drain_active(queue.name)
            and queue.jobs[0].is_eligible(self._clock())
        )

    def _next_wait_timeout(self) -> float:
        """Seconds until the earliest blocked head job becomes eligible, capped by poll_interval."""
        timeout = self.poll_interval
        now = self._clock()
        for queue in self.queues.values():
            if not queue.jobs or queue.name not in self.workers:
                continue
            if queue.processing or self._drain_active(queue.name):
                continue
            wait = (queue.jobs[0].eligible_at() - now).total_seconds()
            timeout = min(timeout, max(wait, 0.0))
        return timeout

    async def _processing_loop(self) -> None:
        try:
            while self.running:
                self._wake_event.clear()

                for queue in list(self.queues.values()):
                    if self._should_drain(queue):
                        task = asyncio.create_task(
                            self.process_queue(queue.name),
                            name=f"workqueue-drain-{queue.name}",
                        )
                        self._drains[queue.name] = task
                        task.add_done_callback(self._on_drain_done)

                try:
                    await asyncio.wait_for(
                        self._wake_event.wait(), timeout=self._next_wait_timeout()
                    )
                except asyncio.TimeoutError:
                    pass
        except Exception as e:
            logger.error("Queue processing loop failed", e)
            self.running = False
        finally:
            logger.info("Queue processing stopped")

    def _on_drain_done(self, task: "asyncio.Task[int]") -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("Queue drain failed", task.exception(), task=task.get_name())
        self._wake()

    async def process_queue(self, queue_name: str) -> int:
        """
        Drain a queue: dispatch its jobs one at a time until it is empty,
        its head job is not yet eligible, or processing is stopped.
        A job that is delayed blocks the jobs queued behind it.

        :returns: Number of jobs dispatched, 0 if the queue is already being
            drained, has no worker or is empty.
        :raises UnknownQueueError: If the queue does not exist.
        """
        queue = self._require_queue(queue_name)
        if queue.processing or not queue.jobs or queue_name not in self.workers:
            return 0

        queue.processing = True
        dispatched = 0
        try:
            while queue.jobs and not self._stop_requested:
                worker = self.workers.get(queue_name)
                if worker is None:
                    break

                job = queue.jobs.pop(0)
                if not job.is_eligible(self._clock()):
                    queue.jobs.insert(0, job)
                    break

                await self._dispatch(queue, worker, job)
                dispatched += 1
        finally:
            queue.processing = False
            queue.current = None
        return dispatched

    async def _dispatch(self, queue: Queue, worker: Worker, job: Job) -> None:
        job.transition(JobStatus.PROCESSING)
        job.started_at = self._clock()
        queue.current = job
        logger.info(
            f"Processing job {job.id} in queue '{queue.name}'",
            type=job.type,
            attempt=job.attempts + 1,
        )

        runner = go_func(worker.function, job.payload, name=job.id)
        try:
            await runner.get_results(self.on_error.timeout)
        except asyncio.CancelledError:
            runner.cancel()
            # Back to the head so it runs again after a restart
            job.status = JobStatus.PENDING
            job.started_at = None
            queue.jobs.insert(0, job)
            raise
        except Exception as e:
            self._handle_failure(queue, job, e)
        else:
            self._handle_success(queue, job)
        finally:
            queue.current = None
            self.save_state()

    def _handle_success(self, queue: Queue, job: Job) -> None:
        job.transition(JobStatus.COMPLETED)
        job.completed_at = self._clock()
        queue.stats.completed += 1
        queue.record_finished(job, self.history_limit)

        duration = (job.completed_at - job.started_at).total_seconds()
        logger.info(
            f"Job {job.id} completed in queue '{queue.name}'",
            duration=f"{duration:.3f}s",
        )
        self._broadcast(JOB_COMPLETED, job)

    def _handle_failure(self, queue: Queue, job: Job, error: Exception) -> None:
        job.attempts += 1
        job.last_error = str(error) or type(error).__name__

        retryable = self.on_error.timeout_retryable or not isinstance(
            error, JobTimeoutError
        )
        if retryable and job.attempts < job.max_attempts:
            job.transition(JobStatus.RETRYING)
            job.retried_at = self._clock()
            job.delay_ms = int(self.on_error.backoff_delay(job.attempts) * 1000)
            queue.stats.retries += 1
            logger.warning(
                f"Job {job.id} failed, retrying",
                queue=queue.name,
                attempt=f"{job.attempts}/{job.max_attempts}",
                delay_ms=job.delay_ms,
                error=job.last_error,
            )
            self._broadcast(JOB_RETRY, job)

            job.transition(JobStatus.PENDING)
            queue.append(job)
            return

        job.transition(JobStatus.FAILED)
        job.failed_at = self._clock()
        queue.stats.failed += 1
        queue.record_finished(job, self.history_limit)
        logger.error(
            f"Job {job.id} failed permanently in queue '{queue.name}'",
            error,
            attempts=job.attempts,
        )
        self._broadcast(JOB_FAILED, job)
