"""
Worker registry of the queue engine: one worker function per named queue.
"""

from typing import Any, Callable, Optional, TypeVar

from .helper.error import DuplicateWorkerError
from .helper.logging import get_logger
from .model.worker import Worker, new_worker
from .queue_engine_global import QueueEngineGlobalMixin

logger = get_logger(__name__)

# TypeVar for maintaining function type through decorator
F = TypeVar("F", bound=Callable[..., Any])


class QueueEngineWorkerMixin(QueueEngineGlobalMixin):
    """
    Mixin class containing the worker registry of the QueueEngine.
    """

    def __init__(self):
        super().__init__()

    def register_worker(
        self, queue_name: str, function: Callable[..., Any], replace: bool = False
    ) -> Worker:
        """
        Bind the function that processes the jobs of a queue.
        The function is called with the job payload and may be sync or async.

        :param queue_name: Name of an existing queue.
        :param function: Worker function taking the payload dict.
        :param replace: Replace an already registered worker.
        :return: The registered worker.
        :raises InvalidWorkerError: If function is not callable with one argument.
        :raises UnknownQueueError: If the queue does not exist.
        :raises DuplicateWorkerError: If the queue has a worker and replace is False.
        """
        worker = new_worker(queue_name, function)
        self._require_queue(queue_name)

        previous = self.workers.get(queue_name)
        if previous is not None and not replace:
            raise DuplicateWorkerError(queue_name)

        self.workers[queue_name] = worker
        if previous is not None:
            logger.info(
                f"Worker for queue '{queue_name}' replaced",
                previous=previous.name,
                worker=worker.name,
            )
        else:
            logger.info(f"Worker registered for queue '{queue_name}'", worker=worker.name)

        # Jobs may already wait for this worker
        self._wake()
        return worker

    def worker(self, queue_name: str, replace: bool = False) -> Callable[[F], F]:
        """
        Decorator to register a function as the worker of a queue.

        Usage:
            @engine.worker("email")
            async def send_email(payload):
                ...

        :param queue_name: Name of an existing queue.
        :param replace: Replace an already registered worker.
        :return: Decorator function that returns the original function.
        """

        def decorator(function: F) -> F:
            self.register_worker(queue_name, function, replace=replace)
            return function

        return decorator

    def unregister_worker(self, queue_name: str) -> Optional[Worker]:
        """
        Remove the worker of a queue. Its pending jobs stay queued.

        :return: The removed worker, None if the queue had none.
        """
        worker = self.workers.pop(queue_name, None)
        if worker is not None:
            logger.info(f"Worker unregistered from queue '{queue_name}'", worker=worker.name)
        return worker

    def get_worker(self, queue_name: str) -> Optional[Worker]:
        return self.workers.get(queue_name)
