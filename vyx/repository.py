"""Thread-safe in-memory store of workers."""

from __future__ import annotations

import copy
import threading
from typing import Any


class MemoryWorkerRepository:
    """Keeps workers by their ``id`` attribute.

    Workers are stored and handed out as shallow copies, so changing an
    object after saving it, or one returned by a lookup, does not alter the
    stored record.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._workers: dict[str, Any] = {}

    def save(self, worker: Any) -> None:
        """Store a copy of ``worker``, replacing any worker with the same id."""
        with self._lock:
            self._workers[worker.id] = copy.copy(worker)

    def find_by_id(self, worker_id: str) -> Any | None:
        """Return a copy of the worker with ``worker_id``, or None if absent."""
        with self._lock:
            worker = self._workers.get(worker_id)
            return None if worker is None else copy.copy(worker)

    def find_all(self) -> list[Any]:
        """Return copies of all stored workers."""
        with self._lock:
            return [copy.copy(worker) for worker in self._workers.values()]

    def delete(self, worker_id: str) -> None:
        """Remove the worker with ``worker_id``; unknown ids are ignored."""
        with self._lock:
            self._workers.pop(worker_id, None)

    def live_worker_ids(self) -> list[str]:
        """Return the ids of all stored workers."""
        with self._lock:
            return list(self._workers)