"""
Purpose: Durable delayed retries for vendor and rider assignment.
What it does:
Replaces fire-and-forget timers with explicit tasks. A worker calls
claim_due(now) and hands each task back to the Dispatcher.

Rule: at most one outstanding task per order. Scheduling again replaces it.
The Dispatcher re-checks `expected_status` before acting, so a stale task
is a no-op rather than an error.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Protocol

from orders.models import OrderStatus


class RetryKind(str, Enum):
    VENDOR_ASSIGNMENT = "vendor_assignment"
    RIDER_ASSIGNMENT = "rider_assignment"


@dataclass(frozen=True)
class RetryTask:
    order_id: str
    kind: RetryKind
    due_at: datetime
    attempt: int
    max_attempts: int
    expected_status: OrderStatus

    @property
    def is_last_attempt(self) -> bool:
        return self.attempt >= self.max_attempts


class RetryScheduler(Protocol):
    def schedule(self, task: RetryTask) -> None:
        ...

    def cancel(self, order_id: str) -> None:
        ...

    def claim_due(self, now: datetime, limit: int = 100) -> List[RetryTask]:
        ...

    def pending(self, order_id: str) -> Optional[RetryTask]:
        ...


class InMemoryRetryScheduler:
    def __init__(self):
        self._tasks: Dict[str, RetryTask] = {}
        self._guard = threading.Lock()

    def schedule(self, task: RetryTask) -> None:
        with self._guard:
            self._tasks[task.order_id] = task

    def cancel(self, order_id: str) -> None:
        with self._guard:
            self._tasks.pop(order_id, None)

    def claim_due(self, now: datetime, limit: int = 100) -> List[RetryTask]:
        """
        Removes and returns due tasks, oldest first. A claimed task is owned
        by the caller; nobody else will see it.
        """
        with self._guard:
            due = sorted(
                (t for t in self._tasks.values() if t.due_at <= now),
                key=lambda t: (t.due_at, t.order_id),
            )[:limit]
            for task in due:
                del self._tasks[task.order_id]
        return due

    def pending(self, order_id: str) -> Optional[RetryTask]:
        with self._guard:
            return self._tasks.get(order_id)

    def all(self) -> List[RetryTask]:
        with self._guard:
            return sorted(self._tasks.values(), key=lambda t: (t.due_at, t.order_id))
