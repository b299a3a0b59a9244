"""Core logic of the concurrent checkout tester.

- Parser: extracts a created order id from one checkout response
- Orchestrator: fires N identical checkout requests at once and joins them
- Aggregator: deduplicates order ids and classifies the run
- Lifecycle: tags test orders at creation, lists and bulk-deletes them
- Admin: operator-only operations returning structured results
"""

from concurrent_checkout_tester.core.aggregator import classify, render_report, summarize
from concurrent_checkout_tester.core.lifecycle import TestOrderManager
from concurrent_checkout_tester.core.orchestrator import CheckoutOrchestrator, checkout_ajax_url
from concurrent_checkout_tester.core.parser import parse_httpx_response, parse_response

__all__ = [
    "CheckoutOrchestrator",
    "TestOrderManager",
    "checkout_ajax_url",
    "classify",
    "parse_httpx_response",
    "parse_response",
    "render_report",
    "summarize",
]
