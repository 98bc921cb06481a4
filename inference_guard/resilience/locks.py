"""
Per-key locking for the resilience registry.

Each model id gets its own re-entrant lock so that calls for different models
never contend, while all mutations for one model id share one critical
section. Critical sections never await, so threading locks are safe from
both worker threads and the event loop.
"""

import threading
from contextlib import contextmanager
from typing import Generator


class KeyedLock:
    """
    Hands out one RLock per key, creating it on first use.

    Locks are never evicted, so the map grows with the number of distinct
    model ids seen by the process. Clearing or resetting a model's state
    keeps its lock, so one model id maps to one lock for the process lifetime.
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def get(self, key: str) -> threading.RLock:
        """Return the lock for key, creating it if needed."""
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str) -> Generator[None, None, None]:
        """
        Hold the lock for key for the duration of the block.

        Example:
            >>> with locks.hold("confidence_score"):
            ...     ...
        """
        lock = self.get(key)
        with lock:
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
