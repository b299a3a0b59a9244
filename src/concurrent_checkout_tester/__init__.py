"""
Concurrent checkout tester.

Fires N identical checkout submissions at once to expose duplicate-order race
conditions, classifies the outcome by the number of distinct orders created,
and tags test orders so they can be removed in bulk.
"""

__version__ = "0.1.0"

from concurrent_checkout_tester.config import TesterConfig
from concurrent_checkout_tester.core.aggregator import classify
from concurrent_checkout_tester.core.lifecycle import TestOrderManager
from concurrent_checkout_tester.core.orchestrator import CheckoutOrchestrator
from concurrent_checkout_tester.models import Classification, TestRunConfig, TestRunResult

__all__ = [
    "__version__",
    "CheckoutOrchestrator",
    "Classification",
    "TestOrderManager",
    "TestRunConfig",
    "TestRunResult",
    "TesterConfig",
    "classify",
]
