"""Observability utilities for the concurrent checkout tester.

This package provides:
- Prometheus metrics for request outcomes, run verdicts and cleanup
- Structured logging with contextual information
"""

from concurrent_checkout_tester.observability.logging import (
    configure_logging,
    get_logger,
    run_context,
)
from concurrent_checkout_tester.observability.metrics import (
    record_cleanup,
    record_request,
    record_run,
    record_tagged,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "run_context",
    "record_request",
    "record_run",
    "record_tagged",
    "record_cleanup",
]
