"""
Callable helpers shared by worker registration and scheduled tasks.
"""

import functools
import inspect
from typing import Any, Callable

from .error import InvalidWorkerError


def check_valid_task(task: Any) -> None:
    """
    Check if the provided task is a callable.

    :param task: The worker function or scheduled action to validate.
    :raises InvalidWorkerError: If the task is None or not callable.
    """
    if task is None:
        raise InvalidWorkerError("task must not be None")

    if not callable(task):
        raise InvalidWorkerError(
            f"task must be a function, got {type(task).__name__}"
        )


def check_valid_task_with_parameters(task: Callable[..., Any], count: int) -> None:
    """
    Check that the task can be called with the given number of positional arguments.
    Callables without an inspectable signature (some builtins) are accepted as is.

    :param task: The task function to validate.
    :param count: Number of positional arguments the task will receive.
    :raises InvalidWorkerError: If the task is invalid or cannot take the arguments.
    """
    check_valid_task(task)

    try:
        sig = inspect.signature(task)
    except (TypeError, ValueError):
        return

    try:
        sig.bind(*([None] * count))
    except TypeError:
        raise InvalidWorkerError(
            f"task {get_task_name(task)} must accept {count} positional "
            f"argument{'' if count == 1 else 's'}"
        )


def get_task_name(task: Any) -> str:
    """
    Get a readable name for the task.
    Handles plain functions, functools.partial objects and callable instances.

    :param task: The task, either as a string or a callable.
    :returns: The name of the task as a string.
    """
    if isinstance(task, str):
        return task

    if isinstance(task, functools.partial):
        return get_task_name(task.func)

    if hasattr(task, "__name__"):
        return task.__name__
    elif hasattr(task, "__class__"):
        return task.__class__.__name__
    else:
        return str(task)


def is_async_task(task: Callable[..., Any]) -> bool:
    """
    Check whether calling the task returns a coroutine.

    :param task: The task to inspect.
    :returns: True for coroutine functions, partials of them and objects with an async __call__.
    """
    while isinstance(task, functools.partial):
        task = task.func

    if inspect.iscoroutinefunction(task):
        return True

    call = getattr(task, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)
