from __future__ import annotations

import logging
import threading
from typing import Generic, TypeVar

"""Run-id based result publishing.

Each pipeline run asks for a run id before it starts fetching. A finished
run publishes its result under that id; the result is accepted only when no
run that started later has already published. Superseded runs still run to
completion, their results are just dropped.
"""

__all__ = [
    "ResultPublisher",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResultPublisher(Generic[T]):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._next_id = 0
        self._published_id = 0
        self._latest: T | None = None

    def begin_run(self) -> int:
        """Hand out the next run id (1, 2, 3, ...)."""
        with self._lock:
            self._next_id += 1
            return self._next_id

    def publish(self, run_id: int, result: T) -> bool:
        """Publish a run's result unless a newer run already published.

        Returns:
            True when the result became the latest one.
        """
        with self._lock:
            if run_id <= self._published_id:
                logger.debug("discarding stale result run_id=%d (published=%d)", run_id, self._published_id)
                return False
            self._published_id = run_id
            self._latest = result
            return True

    @property
    def latest(self) -> T | None:
        with self._lock:
            return self._latest

    @property
    def latest_run_id(self) -> int:
        """Run id of the published result (0 before the first publish)."""
        with self._lock:
            return self._published_id
