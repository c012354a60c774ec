"""
Logging utilities for the workqueue package.

Module loggers are children of the package logger "workqueue" and propagate to it;
setup_logging installs one coloured console handler on the package logger.
"""

import logging
import sys
from typing import Any, Dict, Optional, TextIO

PACKAGE_LOGGER = "workqueue"


class ColorFormatter(logging.Formatter):
    """
    Colored log formatter for console output.
    Only the level part is colored, and only when writing to a terminal.
    """

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[95m",  # Magenta
        "INFO": "\033[94m",  # Blue
        "WARNING": "\033[93m",  # Yellow
        "ERROR": "\033[91m",  # Red
        "CRITICAL": "\033[95m",  # Magenta
        "RESET": "\033[0m",  # Reset
    }

    def __init__(self, use_colors: bool = True, include_timestamp: bool = True):
        """
        Initialize the color formatter.

        :param use_colors: Whether to use colors in the output.
        :param include_timestamp: Whether to include timestamps in log messages.
        """
        self.use_colors = use_colors and sys.stdout.isatty()
        self.include_timestamp = include_timestamp

        if include_timestamp:
            fmt = "%(asctime)s %(levelname)s [%(name)s]: %(message)s"
        else:
            fmt = "%(levelname)s [%(name)s]: %(message)s"

        super().__init__(fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.use_colors and record.levelname in self.COLORS:
            color = self.COLORS[record.levelname]
            reset = self.COLORS["RESET"]
            parts = formatted.split(": ", 1)
            if len(parts) == 2:
                level_part, message_part = parts
                formatted = f"{color}{level_part}: {reset}{message_part}"

        return formatted


class WorkQueueLogger:
    """
    Thin wrapper around a standard logger.
    Keyword arguments passed to the log methods are appended as "| key=value" context.
    """

    def __init__(self, name: str = PACKAGE_LOGGER):
        self.logger = logging.getLogger(name)

    @property
    def name(self) -> str:
        return self.logger.name

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log_with_context(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log_with_context(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log_with_context(logging.WARNING, message, **kwargs)

    def error(
        self, message: str, error: Optional[BaseException] = None, **kwargs: Any
    ) -> None:
        """
        Log error message with optional exception and context.

        :param message: The log message.
        :param error: Optional exception whose text is appended to the message.
        :param kwargs: Additional context to include in the log.
        """
        if error is not None:
            message = f"{message}: {error}"
        self.log_with_context(logging.ERROR, message, **kwargs)

    def critical(
        self, message: str, error: Optional[BaseException] = None, **kwargs: Any
    ) -> None:
        if error is not None:
            message = f"{message}: {error}"
        self.log_with_context(logging.CRITICAL, message, **kwargs)

    def log_with_context(self, level: int, message: str, **kwargs: Any) -> None:
        """
        Log message with additional context information.

        :param level: Logging level.
        :param message: The log message.
        :param kwargs: Additional context to include in the log.
        """
        if kwargs:
            context_parts = [f"{k}={v}" for k, v in kwargs.items()]
            message += " | " + " ".join(context_parts)

        self.logger.log(level, message)

    def set_level(self, level: int) -> None:
        """Set the logging level."""
        self.logger.setLevel(level)


_loggers: Dict[str, WorkQueueLogger] = {}


def get_logger(name: str = PACKAGE_LOGGER) -> WorkQueueLogger:
    """
    Get or create the logger wrapper for the given name.

    :param name: Logger name, usually the module's __name__.
    :returns: WorkQueueLogger instance, the same one for the same name.
    """
    if name not in _loggers:
        _loggers[name] = WorkQueueLogger(name)
    return _loggers[name]


def setup_logging(
    level: int = logging.INFO,
    use_colors: bool = True,
    stream: Optional[TextIO] = None,
    name: str = PACKAGE_LOGGER,
) -> WorkQueueLogger:
    """
    Install the console handler on the package logger.
    Calling it again replaces the handler instead of adding a second one.

    :param level: Logging level.
    :param use_colors: Whether to use colors in logs.
    :param stream: Output stream (defaults to sys.stdout).
    :param name: Logger name the handler is attached to.
    :returns: Configured WorkQueueLogger instance.
    """
    base = logging.getLogger(name)
    for handler in base.handlers[:]:
        if getattr(handler, "_workqueue_handler", False):
            base.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(ColorFormatter(use_colors=use_colors))
    setattr(handler, "_workqueue_handler", True)

    base.addHandler(handler)
    base.setLevel(level)
    base.propagate = False

    return get_logger(name)
