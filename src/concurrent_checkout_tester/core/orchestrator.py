"""Concurrent checkout orchestration.

CheckoutOrchestrator fires N identical checkout submissions at once and
collects one RequestOutcome per submission. It is a fan-out/fan-in:

1. Build all N requests up front from one captured payload and one set of
   session headers
2. Start N tasks that wait on a shared start gate, then release the gate so
   every send begins in the same event-loop iteration
3. Give each request its own deadline; a timeout, connection failure or
   unrecognized response becomes that request's failed outcome
4. Join on all N tasks (asyncio.gather with return_exceptions=True), so a
   crash in one task never cancels or delays its siblings
5. Classify the outcomes

The orchestrator takes no locks and never retries. Its whole purpose is to
land several submissions inside the target's window between "cart is valid"
and "order created".

Examples:
    Running a test against a live checkout::

        from concurrent_checkout_tester.config import TesterConfig
        from concurrent_checkout_tester.core.orchestrator import (
            CheckoutOrchestrator,
            checkout_ajax_url,
        )
        from concurrent_checkout_tester.models import TestRunConfig

        settings = TesterConfig(enabled=True, request_count=5)
        orchestrator = CheckoutOrchestrator(settings)

        config = TestRunConfig.from_settings(
            settings,
            endpoint=checkout_ajax_url("https://shop.example/checkout/"),
            payload=captured_form_body,
            headers={"cookie": session_cookie},
        )
        result = await orchestrator.run(config)
        print(result.classification)
"""

import asyncio
import time
import uuid
from collections.abc import Sequence

import httpx

from concurrent_checkout_tester.config import TesterConfig
from concurrent_checkout_tester.core.aggregator import classify
from concurrent_checkout_tester.core.parser import (
    diagnostic_of,
    order_id_of,
    parse_httpx_response,
)
from concurrent_checkout_tester.exceptions import (
    CheckoutTesterError,
    NetworkError,
    RequestTimeoutError,
)
from concurrent_checkout_tester.models import RequestOutcome, TestRunConfig, TestRunResult
from concurrent_checkout_tester.observability.logging import get_logger, run_context
from concurrent_checkout_tester.observability.metrics import record_request, record_run

logger = get_logger(__name__)


def checkout_ajax_url(checkout_url: str) -> str:
    """Return the AJAX checkout submission URL for a checkout page URL.

    Examples:
        >>> checkout_ajax_url("https://shop.example/checkout/")
        'https://shop.example/checkout/?wc-ajax=checkout'
    """
    return str(httpx.URL(checkout_url).copy_merge_params({"wc-ajax": "checkout"}))


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000.0, 3)


class CheckoutOrchestrator:
    """Fires identical checkout submissions concurrently and classifies them.

    Attributes:
        settings: Tester configuration (concurrency cap)
        transport: Optional httpx transport, used to target in-process apps
            or mock endpoints instead of the network
    """

    def __init__(
        self,
        settings: TesterConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            settings: Tester configuration
            transport: Optional httpx transport for all requests of a run
        """
        self.settings = settings
        self.transport = transport

    async def run(self, config: TestRunConfig) -> TestRunResult:
        """Fire config.concurrency identical requests and classify the outcomes.

        Returns only after every request has succeeded, failed or timed out.
        Never raises for per-request failures.

        Args:
            config: Run configuration

        Returns:
            TestRunResult with outcomes in dispatch order
        """
        config = self._bounded(config)

        with run_context(run_id=uuid.uuid4().hex[:12], endpoint=config.endpoint):
            logger.info(
                "run.started",
                concurrency=config.concurrency,
                timeout_seconds=config.timeout_seconds,
            )

            async with self._client(config) as client:
                requests = [self._build_request(client, config) for _ in range(config.concurrency)]

                start_gate = asyncio.Event()
                tasks = [
                    asyncio.create_task(
                        self._send(client, request, index, config.timeout_seconds, start_gate)
                    )
                    for index, request in enumerate(requests, start=1)
                ]
                start_gate.set()

                results = await asyncio.gather(*tasks, return_exceptions=True)

            result = classify(self._collect(results))
            record_run(result.classification.value)

            logger.info(
                "run.completed",
                classification=result.classification.value,
                unique_orders=len(result.unique_order_ids),
                order_ids=result.order_ids,
                succeeded=result.success_count,
                failed=result.failure_count,
            )

        return result

    def _bounded(self, config: TestRunConfig) -> TestRunConfig:
        """Cap the run's concurrency at the configured maximum."""
        limit = self.settings.max_request_count
        if config.concurrency <= limit:
            return config

        logger.warning(
            "run.concurrency_capped",
            requested=config.concurrency,
            limit=limit,
        )
        return config.model_copy(update={"concurrency": limit})

    def _client(self, config: TestRunConfig) -> httpx.AsyncClient:
        # Pool sized so no request queues behind another
        return httpx.AsyncClient(
            transport=self.transport,
            timeout=config.timeout_seconds,
            follow_redirects=False,
            limits=httpx.Limits(
                max_connections=config.concurrency,
                max_keepalive_connections=config.concurrency,
            ),
        )

    def _build_request(self, client: httpx.AsyncClient, config: TestRunConfig) -> httpx.Request:
        headers = {"content-type": config.content_type}
        headers.update(config.headers)
        return client.build_request(
            "POST",
            config.endpoint,
            content=config.payload,
            headers=headers,
        )

    async def _send(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        index: int,
        timeout_seconds: float,
        start_gate: asyncio.Event,
    ) -> RequestOutcome:
        """Send one request and record its outcome.

        Transport failures and timeouts are captured, not raised.
        """
        await start_gate.wait()
        started = time.perf_counter()

        try:
            response = await self._dispatch(client, request, timeout_seconds)
        except CheckoutTesterError as e:
            latency_ms = _elapsed_ms(started)
            result = "timeout" if isinstance(e, RequestTimeoutError) else "network_error"
            record_request(result, latency_ms)
            logger.warning(
                "request.failed",
                index=index,
                error=e.message,
                error_type=type(e).__name__,
                latency_ms=latency_ms,
            )
            return RequestOutcome(index=index, success=False, error=e.message, latency_ms=latency_ms)

        latency_ms = _elapsed_ms(started)
        parsed = parse_httpx_response(response)
        order_id = order_id_of(parsed)

        if order_id is None:
            error = diagnostic_of(parsed)
            record_request("failed", latency_ms)
            logger.info(
                "request.failed",
                index=index,
                status_code=response.status_code,
                error=error,
                latency_ms=latency_ms,
            )
            return RequestOutcome(
                index=index,
                success=False,
                error=error,
                latency_ms=latency_ms,
                status_code=response.status_code,
            )

        record_request("order", latency_ms)
        logger.info(
            "request.completed",
            index=index,
            status_code=response.status_code,
            order_id=order_id,
            latency_ms=latency_ms,
        )
        return RequestOutcome(
            index=index,
            success=True,
            order_id=order_id,
            latency_ms=latency_ms,
            status_code=response.status_code,
        )

    async def _dispatch(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        timeout_seconds: float,
    ) -> httpx.Response:
        """Send a request under its own deadline.

        Raises:
            RequestTimeoutError: If the deadline expires
            NetworkError: If the transport fails
        """
        try:
            return await asyncio.wait_for(client.send(request), timeout=timeout_seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise RequestTimeoutError(
                f"Timed out after {timeout_seconds:g}s",
                timeout_seconds=timeout_seconds,
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Network error: {type(e).__name__}", cause=e) from e

    def _collect(self, results: Sequence[RequestOutcome | BaseException]) -> list[RequestOutcome]:
        """Turn gathered task results into outcomes, in dispatch order."""
        outcomes: list[RequestOutcome] = []

        for index, result in enumerate(results, start=1):
            if isinstance(result, RequestOutcome):
                outcomes.append(result)
                continue

            logger.error(
                "request.crashed",
                index=index,
                error=str(result),
                error_type=type(result).__name__,
            )
            record_request("error", 0.0)
            outcomes.append(
                RequestOutcome(
                    index=index,
                    success=False,
                    error=f"Unexpected error: {type(result).__name__}",
                )
            )

        return outcomes
