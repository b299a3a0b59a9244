"""In-memory order store with asyncio concurrency control.

This module provides an in-memory implementation of the OrderStore protocol.
It stands in for the host commerce database in the sandbox checkout and in
tests.

Thread Safety:
    - A single asyncio.Lock protects id allocation and publication
    - A new order is pending while its listeners run: update_meta() can
      reach it, but get(), find_ids_by_meta() and count() cannot
    - Listeners are awaited outside the lock, one at a time, in
      registration order
    - If a listener raises, the pending order is discarded and its id is
      not reused
    - Returned orders are deep copies; callers cannot mutate stored state

Count Cache:
    count() is served from an OrderCountCache. Publishing a created order
    flushes it, delete() does not, so a caller that deletes orders in bulk
    must flush it itself.

Examples:
    Basic usage::

        from concurrent_checkout_tester.storage.memory import MemoryOrderStore

        store = MemoryOrderStore()
        order = await store.create(session="abc", items=("hoodie",))
        assert order.id == 101
"""

import asyncio
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from concurrent_checkout_tester.exceptions import StorageError
from concurrent_checkout_tester.models import Order
from concurrent_checkout_tester.storage.base import OrderStore, ResourceCreatedListener


class OrderCountCache:
    """Cached total order count, flushed explicitly."""

    def __init__(self) -> None:
        self._value: int | None = None

    def get(self) -> int | None:
        return self._value

    def set(self, value: int) -> None:
        self._value = value

    def flush(self) -> None:
        self._value = None


class MemoryOrderStore(OrderStore):
    """In-memory order store.

    Attributes:
        count_cache: Cache backing count().
        _orders: Dictionary mapping order ids to Order objects.
        _pending: Created orders whose listeners have not finished.
        _listeners: Registered creation listeners.
        _lock: Lock protecting id allocation and insertion.
    """

    def __init__(self, first_id: int = 101) -> None:
        """Initialize an empty store.

        Args:
            first_id: Id assigned to the first created order.
        """
        self.count_cache = OrderCountCache()
        self._orders: dict[int, Order] = {}
        self._pending: dict[int, Order] = {}
        self._listeners: list[ResourceCreatedListener] = []
        self._next_id = first_id
        self._lock = asyncio.Lock()

    def add_listener(self, listener: ResourceCreatedListener) -> None:
        self._listeners.append(listener)

    async def create(self, session: str, items: Sequence[str]) -> Order:
        """Create an order and notify listeners inline.

        Args:
            session: Session placing the order.
            items: Cart contents.

        Returns:
            The stored order after all listeners have run.

        Raises:
            Exception: Whatever a listener raised. The order is not stored.
        """
        async with self._lock:
            order_id = self._next_id
            self._next_id += 1
            order = Order(
                id=order_id,
                session=session,
                items=tuple(items),
                created_at=datetime.now(UTC),
            )
            self._pending[order_id] = order

        try:
            for listener in self._listeners:
                await listener.on_resource_created(order.model_copy(deep=True))
        except BaseException:
            self._pending.pop(order_id, None)
            raise

        async with self._lock:
            self._orders[order_id] = self._pending.pop(order_id)
            self.count_cache.flush()

        return order.model_copy(deep=True)

    async def get(self, order_id: int) -> Order | None:
        order = self._orders.get(order_id)
        if order is None:
            return None
        return order.model_copy(deep=True)

    async def update_meta(self, order_id: int, meta: dict[str, Any]) -> Order:
        """Merge metadata into an order in a single write.

        Pending orders are included so creation listeners can tag them.

        Raises:
            StorageError: If the order does not exist.
        """
        order = self._orders.get(order_id) or self._pending.get(order_id)
        if order is None:
            raise StorageError(f"Order {order_id} does not exist")
        order.meta.update(meta)
        return order.model_copy(deep=True)

    async def find_ids_by_meta(self, key: str) -> list[int]:
        return sorted(order_id for order_id, order in self._orders.items() if key in order.meta)

    async def delete(self, order_id: int) -> bool:
        """Permanently delete an order.

        The count cache is left untouched.

        Returns:
            True if the order was deleted, False if it did not exist.
        """
        return self._orders.pop(order_id, None) is not None

    async def count(self) -> int:
        cached = self.count_cache.get()
        if cached is not None:
            return cached
        value = len(self._orders)
        self.count_cache.set(value)
        return value
