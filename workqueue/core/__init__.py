"""
Core components running on the asyncio event loop.
"""

from .broadcaster import Broadcaster, BroadcasterQueue, JobEvent, new_broadcaster
from .listener import Listener
from .runner import Runner, go_func, run_task
from .ticker import Ticker, build_trigger

__all__ = [
    "Broadcaster",
    "BroadcasterQueue",
    "JobEvent",
    "new_broadcaster",
    "Listener",
    "Runner",
    "go_func",
    "run_task",
    "Ticker",
    "build_trigger",
]
