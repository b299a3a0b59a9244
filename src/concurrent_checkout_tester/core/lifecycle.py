"""Test order lifecycle: tagging at creation, listing and bulk deletion.

Every order created while testing is enabled is tagged inline by the host's
creation hook, so it can be found and removed later:

    Created (unmarked) --tag_on_create--> Tagged --delete_all--> Deleted

Only Tagged orders are visible to this module. Deleted is terminal.

Tagging writes two metadata keys in one store write:
- _cct_test_order: tag time in whole epoch seconds (the marker)
- _cct_timestamp: tag time in fractional epoch seconds, which keeps orders
  born in the same race window distinguishable

Listing and deletion are administrative: the caller must be an operator, and
the check happens before the store is touched.

Ordering hazard:
    delete_all() running while a concurrent test run is still creating orders
    may miss orders tagged after its listing step. Nothing here prevents that.
    Callers sequence test runs and cleanup.

Examples:
    Wiring the manager into a host store::

        store = MemoryOrderStore()
        manager = TestOrderManager(store, settings, caches=[store.count_cache])
        manager.attach()

        # ... run a concurrent checkout test ...

        ids = await manager.list_tagged(Principal.operator())
        deleted = await manager.delete_all(Principal.operator())
"""

import time
from collections.abc import Callable, Sequence
from typing import ClassVar

from concurrent_checkout_tester.config import TesterConfig
from concurrent_checkout_tester.exceptions import (
    PartialDeletionError,
    PermissionDeniedError,
    StorageError,
)
from concurrent_checkout_tester.models import Order, Principal, TestOrder
from concurrent_checkout_tester.observability.logging import get_logger
from concurrent_checkout_tester.observability.metrics import record_cleanup, record_tagged
from concurrent_checkout_tester.storage.base import CountCache, OrderStore

logger = get_logger(__name__)

TEST_ORDER_META = "_cct_test_order"
TEST_TIMESTAMP_META = "_cct_timestamp"


class TestOrderManager:
    """Tags orders created during testing and removes them in bulk.

    Implements the ResourceCreatedListener protocol.

    Attributes:
        store: Host order store
        settings: Tester configuration (enabled switch)
        caches: Aggregate count caches flushed after bulk deletion
    """

    __test__: ClassVar[bool] = False

    def __init__(
        self,
        store: OrderStore,
        settings: TesterConfig,
        caches: Sequence[CountCache] = (),
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the manager.

        Args:
            store: Host order store
            settings: Tester configuration
            caches: Count caches to flush after delete_all()
            clock: Source of epoch time in seconds
        """
        self.store = store
        self.settings = settings
        self.caches = list(caches)
        self._clock = clock

    def attach(self) -> bool:
        """Register with the store's creation hook if testing is enabled.

        Returns:
            True if the manager was registered
        """
        if not self.settings.enabled:
            logger.debug("lifecycle.not_attached", reason="testing disabled")
            return False
        self.store.add_listener(self)
        return True

    async def on_resource_created(self, order: Order) -> None:
        await self.tag_on_create(order)

    async def tag_on_create(self, order: Order) -> TestOrder:
        """Mark an order as a test order.

        Args:
            order: The order just created by the host

        Returns:
            The tagged order record
        """
        now = self._clock()
        tagged = TestOrder(id=order.id, created_at=int(now), created_at_precise=now)

        await self.store.update_meta(
            order.id,
            {
                TEST_ORDER_META: tagged.created_at,
                TEST_TIMESTAMP_META: tagged.created_at_precise,
            },
        )

        record_tagged()
        logger.info("order.tagged", order_id=order.id, timestamp=tagged.created_at_precise)
        return tagged

    async def list_tagged(self, caller: Principal) -> list[int]:
        """Return the ids of all tagged orders, ascending.

        Raises:
            PermissionDeniedError: If the caller is not an operator
        """
        self._authorize(caller, "list_tagged")
        return await self.store.find_ids_by_meta(TEST_ORDER_META)

    async def tagged_orders(self, caller: Principal) -> list[TestOrder]:
        """Return the full tag records of all tagged orders.

        Raises:
            PermissionDeniedError: If the caller is not an operator
        """
        self._authorize(caller, "tagged_orders")

        records: list[TestOrder] = []
        for order_id in await self.store.find_ids_by_meta(TEST_ORDER_META):
            order = await self.store.get(order_id)
            if order is None:
                continue
            records.append(
                TestOrder(
                    id=order.id,
                    created_at=int(order.meta[TEST_ORDER_META]),
                    created_at_precise=float(order.meta.get(TEST_TIMESTAMP_META, 0.0)),
                )
            )
        return records

    async def delete_all(self, caller: Principal) -> int:
        """Permanently delete every tagged order.

        Each order is deleted independently. An order that is already gone
        or fails to delete is logged and skipped. Count caches are flushed
        once the batch is done.

        Args:
            caller: The administrative caller

        Returns:
            Number of orders actually deleted

        Raises:
            PermissionDeniedError: If the caller is not an operator
        """
        self._authorize(caller, "delete_all")

        order_ids = await self.store.find_ids_by_meta(TEST_ORDER_META)
        logger.info("cleanup.started", tagged=len(order_ids))

        deleted = 0
        failed = 0
        try:
            for order_id in order_ids:
                try:
                    await self._delete_one(order_id)
                except PartialDeletionError as e:
                    failed += 1
                    logger.warning(
                        "cleanup.partial_failure",
                        order_id=e.order_id,
                        error=e.message,
                    )
                    continue
                deleted += 1
        finally:
            # Orders deleted before an unexpected error are already gone
            for cache in self.caches:
                cache.flush()

        record_cleanup(deleted=deleted, failed=failed)
        logger.info("cleanup.completed", deleted=deleted, failed=failed)
        return deleted

    async def _delete_one(self, order_id: int) -> None:
        """Delete one order.

        Raises:
            PartialDeletionError: If the order is missing or the store fails
        """
        try:
            removed = await self.store.delete(order_id)
        except StorageError as e:
            raise PartialDeletionError(
                f"Failed to delete order {order_id}: {e.message}", order_id=order_id
            ) from e

        if not removed:
            raise PartialDeletionError(f"Order {order_id} no longer exists", order_id=order_id)

    def _authorize(self, caller: Principal, action: str) -> None:
        if not caller.is_operator:
            logger.warning("admin.permission_denied", user_id=caller.user_id, action=action)
            raise PermissionDeniedError("Permission denied.", user_id=caller.user_id)
