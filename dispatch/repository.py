"""
Purpose: Order persistence boundary.
What it does:
- OrderRepository protocol (add, get, save with compare-and-swap on version)
- InMemoryOrderRepository for tests and the simulation script

save(order) succeeds only if the stored version still equals order.version;
it then bumps the version. A stale writer gets ConcurrentModification.
"""

import copy
import logging
import threading
from typing import Dict, List, Optional, Protocol

from orders.exceptions import ConcurrentModification, NotFound
from orders.models import Order, OrderStatus

logger = logging.getLogger(__name__)


class OrderRepository(Protocol):
    def add(self, order: Order) -> Order:
        ...

    def get(self, order_id: str) -> Order:
        ...

    def save(self, order: Order) -> Order:
        ...


class InMemoryOrderRepository:
    def __init__(self):
        self._orders: Dict[str, Order] = {}
        self._guard = threading.Lock()

    def add(self, order: Order) -> Order:
        with self._guard:
            if order.id in self._orders:
                raise ConcurrentModification(f"Order {order.id} already exists")
            order.version = 1
            self._orders[order.id] = copy.deepcopy(order)
        return order

    def get(self, order_id: str) -> Order:
        with self._guard:
            order = self._orders.get(order_id)
            if order is None:
                raise NotFound(f"Order {order_id} not found")
            return copy.deepcopy(order)

    def save(self, order: Order) -> Order:
        with self._guard:
            stored = self._orders.get(order.id)
            if stored is None:
                raise NotFound(f"Order {order.id} not found")
            if stored.version != order.version:
                logger.warning(
                    "Stale write on order %s: have version %s, stored %s",
                    order.id, order.version, stored.version,
                )
                raise ConcurrentModification(
                    f"Order {order.id} was modified concurrently (version {order.version} != {stored.version})"
                )
            order.version += 1
            self._orders[order.id] = copy.deepcopy(order)
        return order

    def list(self, status: Optional[OrderStatus] = None) -> List[Order]:
        with self._guard:
            orders = [copy.deepcopy(o) for o in self._orders.values()]
        if status is not None:
            orders = [o for o in orders if o.status == status]
        return sorted(orders, key=lambda o: o.created_at)
