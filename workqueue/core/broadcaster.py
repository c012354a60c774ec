"""
Broadcaster using asyncio queues for job lifecycle notifications.

Every engine owns its broadcaster, there is no process-wide registry. Messages
are delivered with put_nowait so publishing never blocks the caller, which lets
synchronous code such as enqueue publish events.
"""

import asyncio
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Generic, TypeVar

from ..helper.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)

JOB_ADDED = "job_added"
JOB_COMPLETED = "job_completed"
JOB_RETRY = "job_retry"
JOB_FAILED = "job_failed"


@dataclass(frozen=True)
class JobEvent:
    """Notification about a job changing state in a queue."""

    name: str
    queue_name: str
    job: Any


class BroadcasterQueue(asyncio.Queue[T]):
    """An asyncio.Queue with a broadcaster ID for tracking."""

    def __init__(self, maxsize: int = 0):
        super().__init__(maxsize)
        self.broadcaster_id: str = ""


class Broadcaster(Generic[T]):
    """A broadcaster that fans messages out to its subscribed queues."""

    def __init__(self, name: str, maxsize: int = 0):
        """
        :param name: Name used in log messages.
        :param maxsize: Bound of every subscriber queue, 0 for unbounded.
            Messages for a full subscriber queue are dropped.
        """
        self.name = name
        self.maxsize = maxsize
        self.listeners: Dict[str, BroadcasterQueue[T]] = {}

    def subscribe(self) -> BroadcasterQueue[T]:
        """Subscribe to broadcasts and return a queue for receiving messages."""
        queue: BroadcasterQueue[T] = BroadcasterQueue(self.maxsize)
        queue.broadcaster_id = str(uuid.uuid4())
        self.listeners[queue.broadcaster_id] = queue
        return queue

    def unsubscribe(self, queue: BroadcasterQueue[T]) -> None:
        """Unsubscribe a queue from broadcasts."""
        self.listeners.pop(queue.broadcaster_id, None)

    def broadcast(self, message: T) -> int:
        """
        Broadcast a message to all subscribers.

        :returns: Number of subscribers the message was delivered to.
        """
        delivered = 0
        for queue in list(self.listeners.values()):
            try:
                queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "Dropping message for full subscriber",
                    broadcaster=self.name,
                    subscriber=queue.broadcaster_id,
                )
        return delivered

    def subscriber_count(self) -> int:
        return len(self.listeners)


def new_broadcaster(name: str, maxsize: int = 0) -> Broadcaster[Any]:
    """Create a broadcaster with the given name."""
    return Broadcaster(name, maxsize)
