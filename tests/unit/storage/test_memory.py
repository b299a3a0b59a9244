"""Unit tests for MemoryOrderStore.

This test suite covers:
    - Basic operations (create, get, update_meta, find_ids_by_meta, delete)
    - Concurrent create (unique ids)
    - Inline listener notification, pending visibility and listener failure
    - Count cache behavior
    - Edge cases and error conditions
"""

import asyncio

import pytest

from concurrent_checkout_tester.exceptions import StorageError
from concurrent_checkout_tester.models import Order
from concurrent_checkout_tester.storage.base import CountCache, OrderStore, ResourceCreatedListener
from concurrent_checkout_tester.storage.memory import MemoryOrderStore, OrderCountCache


class RecordingListener:
    """Listener that records the orders it was notified about."""

    def __init__(self) -> None:
        self.seen: list[Order] = []

    async def on_resource_created(self, order: Order) -> None:
        self.seen.append(order)


# ============================================================================
# Basic Operations
# ============================================================================


def test_store_satisfies_protocols(store):
    assert isinstance(store, OrderStore)
    assert isinstance(store.count_cache, CountCache)
    assert isinstance(RecordingListener(), ResourceCreatedListener)


@pytest.mark.asyncio
async def test_create_assigns_sequential_ids(store):
    first = await store.create(session="abc", items=["hoodie"])
    second = await store.create(session="abc", items=["cap"])

    assert first.id == 101
    assert second.id == 102
    assert first.items == ("hoodie",)
    assert first.session == "abc"


@pytest.mark.asyncio
async def test_custom_first_id():
    store = MemoryOrderStore(first_id=5000)

    order = await store.create(session="s", items=[])

    assert order.id == 5000


@pytest.mark.asyncio
async def test_get_nonexistent_order(store):
    assert await store.get(999) is None


@pytest.mark.asyncio
async def test_get_returns_copy(store):
    order = await store.create(session="abc", items=["hoodie"])
    order.meta["tampered"] = True

    stored = await store.get(order.id)

    assert stored is not None
    assert "tampered" not in stored.meta


@pytest.mark.asyncio
async def test_update_meta_merges(store):
    order = await store.create(session="abc", items=[])

    await store.update_meta(order.id, {"a": 1})
    updated = await store.update_meta(order.id, {"b": 2})

    assert updated.meta == {"a": 1, "b": 2}


@pytest.mark.asyncio
async def test_update_meta_missing_order(store):
    with pytest.raises(StorageError) as exc_info:
        await store.update_meta(404, {"a": 1})

    assert "404" in exc_info.value.message


@pytest.mark.asyncio
async def test_find_ids_by_meta_ascending(store):
    orders = [await store.create(session="s", items=[]) for _ in range(4)]
    for order in reversed(orders[1:]):
        await store.update_meta(order.id, {"marker": 1})

    assert await store.find_ids_by_meta("marker") == [102, 103, 104]
    assert await store.find_ids_by_meta("other") == []


@pytest.mark.asyncio
async def test_delete(store):
    order = await store.create(session="s", items=[])

    assert await store.delete(order.id) is True
    assert await store.get(order.id) is None
    assert await store.delete(order.id) is False


@pytest.mark.asyncio
async def test_delete_is_independent(store):
    keep = await store.create(session="s", items=[])
    drop = await store.create(session="s", items=[])

    await store.delete(drop.id)

    assert await store.get(keep.id) is not None


# ============================================================================
# Concurrency
# ============================================================================


@pytest.mark.asyncio
async def test_concurrent_creates_get_unique_ids(store):
    orders = await asyncio.gather(*[store.create(session="s", items=[]) for _ in range(50)])

    ids = [order.id for order in orders]
    assert len(set(ids)) == 50
    assert sorted(ids) == list(range(101, 151))


@pytest.mark.asyncio
async def test_listeners_notified_inline(store):
    listener = RecordingListener()
    store.add_listener(listener)

    order = await store.create(session="s", items=["hoodie"])

    assert [seen.id for seen in listener.seen] == [order.id]


@pytest.mark.asyncio
async def test_listener_writes_visible_in_returned_order(store):
    class Tagger:
        async def on_resource_created(self, order: Order) -> None:
            await store.update_meta(order.id, {"tag": "x"})

    store.add_listener(Tagger())

    order = await store.create(session="s", items=[])

    assert order.meta == {"tag": "x"}


@pytest.mark.asyncio
async def test_listeners_run_in_registration_order(store):
    calls: list[str] = []

    class Named:
        def __init__(self, name: str) -> None:
            self.name = name

        async def on_resource_created(self, order: Order) -> None:
            calls.append(self.name)

    store.add_listener(Named("first"))
    store.add_listener(Named("second"))

    await store.create(session="s", items=[])

    assert calls == ["first", "second"]


@pytest.mark.asyncio
async def test_order_hidden_until_listeners_finish(store):
    """Callers racing a slow listener see no order or the tagged one, never an untagged one."""

    class SlowAudit:
        async def on_resource_created(self, order: Order) -> None:
            await asyncio.sleep(0.01)

    class Tagger:
        async def on_resource_created(self, order: Order) -> None:
            await asyncio.sleep(0)
            await store.update_meta(order.id, {"tag": "x"})

    store.add_listener(SlowAudit())
    store.add_listener(Tagger())
    observed: list[dict] = []
    created = asyncio.Event()

    async def observe() -> None:
        while not created.is_set():
            order = await store.get(101)
            if order is not None:
                observed.append(order.meta)
            assert await store.find_ids_by_meta("tag") in ([], [101])
            assert await store.count() in (0, 1)
            await asyncio.sleep(0)

    watcher = asyncio.create_task(observe())
    await asyncio.sleep(0)
    order = await store.create(session="s", items=[])
    created.set()
    await watcher

    assert order.meta == {"tag": "x"}
    assert all(meta == {"tag": "x"} for meta in observed)
    stored = await store.get(101)
    assert stored is not None
    assert stored.meta == {"tag": "x"}
    assert await store.count() == 1


@pytest.mark.asyncio
async def test_failing_listener_discards_order(store):
    class Exploding:
        async def on_resource_created(self, order: Order) -> None:
            await asyncio.sleep(0)
            raise RuntimeError("listener failed")

    assert await store.count() == 0
    store.add_listener(Exploding())

    with pytest.raises(RuntimeError, match="listener failed"):
        await store.create(session="s", items=["hoodie"])

    assert await store.get(101) is None
    assert await store.count() == 0
    with pytest.raises(StorageError):
        await store.update_meta(101, {"tag": "x"})


@pytest.mark.asyncio
async def test_id_of_discarded_order_not_reused(store):
    calls = 0

    class FailsOnce:
        async def on_resource_created(self, order: Order) -> None:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("listener failed")

    store.add_listener(FailsOnce())

    with pytest.raises(RuntimeError):
        await store.create(session="s", items=[])
    order = await store.create(session="s", items=[])

    assert order.id == 102
    assert await store.get(101) is None


# ============================================================================
# Count Cache
# ============================================================================


@pytest.mark.asyncio
async def test_count_is_cached(store):
    await store.create(session="s", items=[])
    assert await store.count() == 1
    assert store.count_cache.get() == 1


@pytest.mark.asyncio
async def test_create_flushes_count_cache(store):
    await store.count()
    await store.create(session="s", items=[])

    assert await store.count() == 1


@pytest.mark.asyncio
async def test_delete_leaves_count_cache_stale(store):
    order = await store.create(session="s", items=[])
    assert await store.count() == 1

    await store.delete(order.id)

    assert await store.count() == 1
    store.count_cache.flush()
    assert await store.count() == 0


def test_count_cache_flush():
    cache = OrderCountCache()
    cache.set(3)
    cache.flush()

    assert cache.get() is None
