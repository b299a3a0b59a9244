"""Host order store boundary for the concurrent checkout tester.

All stores implement the OrderStore protocol defined in base.py.

Available Stores:
    - MemoryOrderStore: In-memory store used by the sandbox checkout and tests
"""

from concurrent_checkout_tester.storage.base import (
    CountCache,
    OrderStore,
    ResourceCreatedListener,
)
from concurrent_checkout_tester.storage.memory import MemoryOrderStore, OrderCountCache

__all__ = [
    "CountCache",
    "OrderStore",
    "ResourceCreatedListener",
    "MemoryOrderStore",
    "OrderCountCache",
]
