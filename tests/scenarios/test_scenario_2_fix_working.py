"""Scenario 2: Duplicate-Order Fix Enabled

This module runs the tester against the sandbox shop with per-session
checkout serialization turned on:
- Five simultaneous submissions for one session
- The first creates the order and empties the cart
- The other four fail naturally with the empty-cart notice
- The run is classified FIX_WORKING
- Different sessions are not serialized against each other
"""

import asyncio

import httpx
import pytest

from concurrent_checkout_tester.core.aggregator import summarize
from concurrent_checkout_tester.core.orchestrator import CheckoutOrchestrator
from concurrent_checkout_tester.models import Classification, TestRunConfig
from concurrent_checkout_tester.sandbox import (
    EMPTY_CART_MESSAGE,
    SESSION_COOKIE,
    SandboxShop,
    create_checkout_app,
)


@pytest.fixture
def fixed_shop(store):
    shop = SandboxShop(store, fix_enabled=True, race_window_seconds=0.05)
    shop.add_to_cart("abc", "hoodie")
    shop.add_to_cart("xyz", "cap")
    return shop


def config_for(session: str, payload: bytes) -> TestRunConfig:
    return TestRunConfig(
        concurrency=5,
        endpoint="http://shop.test/checkout/?wc-ajax=checkout",
        payload=payload,
        headers={"cookie": f"{SESSION_COOKIE}={session}"},
        timeout_seconds=5.0,
    )


@pytest.mark.asyncio
async def test_fix_yields_single_order(fixed_shop, store, settings, checkout_payload):
    orchestrator = CheckoutOrchestrator(
        settings, transport=httpx.ASGITransport(app=create_checkout_app(fixed_shop))
    )

    result = await orchestrator.run(config_for("abc", checkout_payload))

    assert result.classification is Classification.FIX_WORKING
    assert result.order_ids == ["101"]
    assert summarize(result) == "FIX WORKING - only 1 order: #101"
    failures = [o for o in result.outcomes if not o.success]
    assert len(failures) == 4
    assert {o.error for o in failures} == {EMPTY_CART_MESSAGE}
    assert await store.count() == 1


@pytest.mark.asyncio
async def test_sessions_are_independent(fixed_shop, settings, checkout_payload):
    orchestrator = CheckoutOrchestrator(
        settings, transport=httpx.ASGITransport(app=create_checkout_app(fixed_shop))
    )

    first, second = await asyncio.gather(
        orchestrator.run(config_for("abc", checkout_payload)),
        orchestrator.run(config_for("xyz", checkout_payload)),
    )

    assert first.classification is Classification.FIX_WORKING
    assert second.classification is Classification.FIX_WORKING
    assert set(first.order_ids) | set(second.order_ids) == {"101", "102"}


@pytest.mark.asyncio
async def test_empty_cart_run(store, settings, checkout_payload):
    shop = SandboxShop(store, fix_enabled=True)
    orchestrator = CheckoutOrchestrator(
        settings, transport=httpx.ASGITransport(app=create_checkout_app(shop))
    )

    result = await orchestrator.run(config_for("nobody", checkout_payload))

    assert result.classification is Classification.NO_ORDERS
    assert summarize(result) == "No orders created"
