"""Host order store protocol for the concurrent checkout tester.

The host commerce system owns orders. This module defines the narrow boundary
the tester needs from it:

- an order store that can create, look up, annotate, find and delete orders,
- a creation hook, through which the store notifies listeners of every new
  order inline, before the creating call returns,
- an aggregate count cache that bulk deletion must flush.

The tester never assumes that deleting an order cascades to related host
records (line items, payments). Whatever OrderStore.delete removes is the
host's contract.

Examples:
    Registering a creation listener::

        class PrintingListener:
            async def on_resource_created(self, order: Order) -> None:
                print(f"created order #{order.id}")

        store.add_listener(PrintingListener())
        order = await store.create(session="abc", items=("hoodie",))

Atomicity Requirements:
    Implementations MUST guarantee:

    1. **Unique ids**: concurrent create() calls never hand out the same id.

    2. **Inline notification**: every listener is awaited exactly once per
       created order, inside create(), so no caller can observe the order
       before listeners have run.

    3. **Independent deletes**: delete() of one order never affects another.
       Deleting a missing order returns False rather than raising.
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from concurrent_checkout_tester.models import Order


@runtime_checkable
class ResourceCreatedListener(Protocol):
    """Receiver of the host's order creation hook."""

    async def on_resource_created(self, order: Order) -> None:
        """Handle a newly created order.

        Called exactly once per order, inline in the creating operation.

        Args:
            order: The order that was just created.
        """
        ...


@runtime_checkable
class CountCache(Protocol):
    """A cached aggregate order count held on behalf of callers."""

    def flush(self) -> None:
        """Discard the cached value so the next read recomputes it."""
        ...


@runtime_checkable
class OrderStore(Protocol):
    """Protocol defining the host order store used by the tester.

    Error Handling:
        Methods should raise StorageError for backend failures.
        Implementations should NOT raise backend-specific exceptions directly.
    """

    def add_listener(self, listener: ResourceCreatedListener) -> None:
        """Register a listener for the order creation hook."""
        ...

    async def create(self, session: str, items: Sequence[str]) -> Order:
        """Create an order and notify listeners inline.

        Args:
            session: Session placing the order.
            items: Cart contents.

        Returns:
            The created order, including any metadata listeners wrote.
        """
        ...

    async def get(self, order_id: int) -> Order | None:
        """Retrieve an order by id, None if it does not exist."""
        ...

    async def update_meta(self, order_id: int, meta: dict[str, Any]) -> Order:
        """Merge metadata into an order in a single write.

        Raises:
            StorageError: If the order does not exist.
        """
        ...

    async def find_ids_by_meta(self, key: str) -> list[int]:
        """Return ids of all orders carrying the metadata key, ascending."""
        ...

    async def delete(self, order_id: int) -> bool:
        """Permanently delete an order.

        Returns:
            True if the order was deleted, False if it did not exist.
        """
        ...

    async def count(self) -> int:
        """Return the number of orders, possibly from a cache."""
        ...
