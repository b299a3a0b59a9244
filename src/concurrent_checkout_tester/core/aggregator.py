"""Outcome aggregation and verdict reporting.

classify() reduces the per-request outcomes of a run to a TestRunResult. The
verdict depends only on how many distinct order ids the run produced:

    0 unique orders  -> NO_ORDERS
    1 unique order   -> FIX_WORKING
    2+ unique orders -> DUPLICATES_DETECTED

classify is pure: permuting the outcomes never changes the unique id set or
the classification, although the outcomes are kept in the order supplied so
reports can list them by dispatch index.

Examples:
    >>> outcomes = [
    ...     RequestOutcome(index=1, success=True, order_id="101"),
    ...     RequestOutcome(index=2, success=False, error="Your cart is empty."),
    ... ]
    >>> result = classify(outcomes)
    >>> result.classification
    <Classification.FIX_WORKING: 'FIX_WORKING'>
    >>> summarize(result)
    'FIX WORKING - only 1 order: #101'
"""

from collections.abc import Iterable

from concurrent_checkout_tester.models import (
    Classification,
    RequestOutcome,
    TestRunResult,
)


def classification_for(unique_count: int) -> Classification:
    """Map a unique order count to its classification.

    Raises:
        ValueError: If unique_count is negative.
    """
    if unique_count < 0:
        raise ValueError(f"unique_count must be >= 0, got {unique_count}")
    if unique_count == 0:
        return Classification.NO_ORDERS
    if unique_count == 1:
        return Classification.FIX_WORKING
    return Classification.DUPLICATES_DETECTED


def classify(outcomes: Iterable[RequestOutcome]) -> TestRunResult:
    """Deduplicate order ids across outcomes and classify the run.

    Args:
        outcomes: Per-request outcomes, normally in dispatch order.

    Returns:
        TestRunResult holding the outcomes as supplied, the unique order ids
        and the classification.
    """
    ordered = tuple(outcomes)
    unique = frozenset(outcome.order_id for outcome in ordered if outcome.order_id)
    return TestRunResult(
        outcomes=ordered,
        unique_order_ids=unique,
        classification=classification_for(len(unique)),
    )


def format_outcome(outcome: RequestOutcome) -> str:
    """Render one request's outcome as a report line.

    Examples:
        >>> format_outcome(RequestOutcome(index=3, success=True, order_id="103"))
        '[3] Order #103'
        >>> format_outcome(RequestOutcome(index=4, success=False, error="Network error"))
        '[4] Failed: Network error'
    """
    if outcome.success:
        return f"[{outcome.index}] Order #{outcome.order_id}"
    return f"[{outcome.index}] Failed: {outcome.error or 'Failed'}"


def summarize(result: TestRunResult) -> str:
    """Render the verdict line of a run."""
    ids = result.order_ids
    if result.classification is Classification.NO_ORDERS:
        return "No orders created"
    if result.classification is Classification.FIX_WORKING:
        return f"FIX WORKING - only 1 order: #{ids[0]}"
    return f"DUPLICATES DETECTED - {len(ids)} orders: " + ", ".join(f"#{i}" for i in ids)


def render_report(result: TestRunResult) -> list[str]:
    """Render every outcome line followed by the verdict."""
    lines = [format_outcome(outcome) for outcome in result.outcomes]
    lines.append(summarize(result))
    return lines
