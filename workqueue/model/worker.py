"""
Worker model: the function bound to a named queue.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from ..helper.task import check_valid_task_with_parameters, get_task_name, is_async_task


@dataclass
class Worker:
    """
    Worker binds one function to one queue.
    The function is called with the job payload only.
    """

    queue_name: str
    function: Callable[..., Any]
    name: str = ""
    is_async: bool = False
    registered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Describe the worker, the function itself is not serializable."""
        return {
            "queue_name": self.queue_name,
            "name": self.name,
            "is_async": self.is_async,
            "registered_at": self.registered_at.isoformat(),
        }


def new_worker(queue_name: str, function: Callable[..., Any]) -> Worker:
    """
    Create a new worker for a queue.

    :param queue_name: Name of the queue the worker drains.
    :param function: Sync or async callable taking the job payload.
    :raises InvalidWorkerError: If function is not callable or cannot take one argument.
    """
    check_valid_task_with_parameters(function, 1)

    return Worker(
        queue_name=queue_name,
        function=function,
        name=get_task_name(function),
        is_async=is_async_task(function),
    )
