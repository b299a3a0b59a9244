"""Administrative operations over test orders and concurrent runs.

These functions are the transport-independent admin surface. Each one turns a
PermissionDeniedError (or a disabled tester) into a structured AdminFailure
instead of raising, so a rejected call never disturbs in-flight or later runs.
adapters/asgi.py exposes them over HTTP.
"""

from concurrent_checkout_tester.config import TesterConfig
from concurrent_checkout_tester.core.aggregator import render_report
from concurrent_checkout_tester.core.lifecycle import TestOrderManager
from concurrent_checkout_tester.core.orchestrator import CheckoutOrchestrator
from concurrent_checkout_tester.exceptions import PermissionDeniedError
from concurrent_checkout_tester.models import (
    AdminFailure,
    DeleteSuccess,
    Principal,
    RunReport,
    TaggedOrderListing,
    TestRunConfig,
)
from concurrent_checkout_tester.observability.logging import get_logger

logger = get_logger(__name__)

# Number of ids returned by a listing
LISTING_LIMIT = 20

DISABLED_MESSAGE = "Concurrent checkout testing is disabled."


async def list_tagged_resources(
    manager: TestOrderManager,
    caller: Principal,
) -> TaggedOrderListing | AdminFailure:
    """List tagged test orders, returning at most the first 20 ids."""
    try:
        ids = await manager.list_tagged(caller)
    except PermissionDeniedError as e:
        return AdminFailure(error=e.message)

    return TaggedOrderListing(
        count=len(ids),
        ids=ids[:LISTING_LIMIT],
        truncated=len(ids) > LISTING_LIMIT,
    )


async def delete_all_tagged_resources(
    manager: TestOrderManager,
    caller: Principal,
) -> DeleteSuccess | AdminFailure:
    """Delete every tagged test order."""
    try:
        deleted = await manager.delete_all(caller)
    except PermissionDeniedError as e:
        return AdminFailure(error=e.message)

    return DeleteSuccess(deleted=deleted, message=f"Deleted {deleted} test orders.")


async def run_concurrent_test(
    orchestrator: CheckoutOrchestrator,
    settings: TesterConfig,
    caller: Principal,
    config: TestRunConfig,
) -> RunReport | AdminFailure:
    """Run a concurrent checkout test on behalf of an operator.

    Args:
        orchestrator: Orchestrator that fires the requests
        settings: Tester configuration (enabled switch, fix status)
        caller: The administrative caller
        config: Run configuration carrying the captured payload

    Returns:
        RunReport, or AdminFailure if the caller is not an operator or
        testing is disabled
    """
    if not caller.is_operator:
        logger.warning("admin.permission_denied", user_id=caller.user_id, action="run")
        return AdminFailure(error="Permission denied.")
    if not settings.enabled:
        return AdminFailure(error=DISABLED_MESSAGE, reason="disabled")

    result = await orchestrator.run(config)
    return RunReport(
        classification=result.classification,
        order_ids=result.order_ids,
        lines=render_report(result),
        fix_enabled=settings.fix_enabled,
        result=result,
    )
