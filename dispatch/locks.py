"""
Purpose: Per-key mutual exclusion for order and withdrawal mutations.
What it does:
`lock_manager.lock("order_<id>")` is the race resolver: two riders accepting,
or a retry firing while the vendor responds, are serialized per key.

InMemoryLockManager is process-local; the Django one (logistics.adapters)
holds a row lock inside a database transaction.
"""

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, Iterator, Protocol


class LockManager(Protocol):
    def lock(self, key: str):
        ...


class InMemoryLockManager:
    def __init__(self):
        self._locks: Dict[str, threading.RLock] = defaultdict(threading.RLock)
        self._guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            return self._locks[key]

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        key_lock = self._lock_for(key)
        with key_lock:
            yield
