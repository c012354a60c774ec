"""
Job stores persisting the queue engine snapshot.

The snapshot document has the shape

    {"timestamp": "<iso>", "queues": {"<name>": {"jobs": [...], "stats": {...}, "history": [...]}}}

Stores never raise on persistence failures: errors are logged and save returns
False, so the in-memory state of the engine stays authoritative.
"""

import copy
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..helper.error import WorkQueueError
from ..helper.logging import get_logger

logger = get_logger(__name__)

Snapshot = Dict[str, Any]


class JobStore(ABC):
    """Base class of the snapshot stores."""

    @abstractmethod
    def save(self, snapshot: Snapshot) -> bool:
        """
        Persist the snapshot.

        :returns: True if the snapshot was written, False if writing failed.
        """

    @abstractmethod
    def load(self) -> Optional[Snapshot]:
        """
        Read the last persisted snapshot.

        :returns: The snapshot, or None if there is none or it is unreadable.
        """

    def health(self) -> Dict[str, str]:
        """Backend name and status of the store."""
        return {"backend": type(self).__name__, "status": "up"}

    def close(self) -> None:
        """Release resources held by the store."""


class JsonFileJobStore(JobStore):
    """
    Stores the snapshot as one JSON document.
    Writes go to a temporary file next to the target which then replaces it,
    so a crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def save(self, snapshot: Snapshot) -> bool:
        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            content = json.dumps(snapshot, indent=2)

            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(
                "Failed to save queue snapshot",
                WorkQueueError(f"writing {self.path}", e),
            )
            if tmp_name is not None and os.path.exists(tmp_name):
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("Could not remove temporary snapshot", path=tmp_name)
            return False

    def load(self) -> Optional[Snapshot]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.error(
                "Failed to load queue snapshot",
                WorkQueueError(f"reading {self.path}", e),
            )
            return None

        if not isinstance(data, dict):
            logger.error(
                "Ignoring queue snapshot that is not a JSON object", path=str(self.path)
            )
            return None
        return data


class MemoryJobStore(JobStore):
    """Keeps a deep copy of the last snapshot in memory."""

    def __init__(self, snapshot: Optional[Snapshot] = None):
        self.snapshot: Optional[Snapshot] = copy.deepcopy(snapshot)
        self.save_count = 0

    def save(self, snapshot: Snapshot) -> bool:
        self.snapshot = copy.deepcopy(snapshot)
        self.save_count += 1
        return True

    def load(self) -> Optional[Snapshot]:
        return copy.deepcopy(self.snapshot)
