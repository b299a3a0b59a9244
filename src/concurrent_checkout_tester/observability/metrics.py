"""Prometheus metrics for the concurrent checkout tester.

Metrics include:

- Request counters by result (order, failed, timeout, network_error, error)
- Request latency histogram
- Run counters by classification
- Test order tagging and deletion counters

Examples:
    Recording a request that created an order::

        from concurrent_checkout_tester.observability.metrics import record_request

        record_request(result="order", latency_ms=84.2)

    Recording a classified run::

        record_run(classification="DUPLICATES_DETECTED")
"""

from prometheus_client import Counter, Histogram

# Labels: result (order, failed, timeout, network_error, error)
requests_total = Counter(
    "checkout_test_requests_total",
    "Total number of concurrent checkout requests dispatched",
    ["result"],
)

request_latency_seconds = Histogram(
    "checkout_test_request_latency_seconds",
    "Latency of concurrent checkout requests in seconds",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)

# Labels: classification (NO_ORDERS, FIX_WORKING, DUPLICATES_DETECTED)
runs_total = Counter(
    "checkout_test_runs_total",
    "Total number of concurrent checkout runs by classification",
    ["classification"],
)

orders_tagged_total = Counter(
    "checkout_test_orders_tagged_total",
    "Total number of orders tagged as test orders",
)

orders_deleted_total = Counter(
    "checkout_test_orders_deleted_total",
    "Total number of test orders deleted by cleanup",
)

deletion_failures_total = Counter(
    "checkout_test_deletion_failures_total",
    "Total number of test orders that failed to delete",
)


def record_request(result: str, latency_ms: float) -> None:
    """Record one dispatched request.

    Args:
        result: The result type (order, failed, timeout, network_error, error)
        latency_ms: Request latency in milliseconds

    Examples:
        >>> record_request("order", 84.2)
        >>> record_request("timeout", 30000.0)
    """
    requests_total.labels(result=result).inc()
    request_latency_seconds.observe(latency_ms / 1000.0)


def record_run(classification: str) -> None:
    """Record a classified run."""
    runs_total.labels(classification=classification).inc()


def record_tagged() -> None:
    orders_tagged_total.inc()


def record_cleanup(deleted: int, failed: int) -> None:
    """Record a bulk delete of test orders.

    Args:
        deleted: Number of orders deleted
        failed: Number of orders that failed to delete

    Examples:
        >>> record_cleanup(deleted=12, failed=1)
    """
    orders_deleted_total.inc(deleted)
    deletion_failures_total.inc(failed)
