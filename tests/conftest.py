"""
Pytest configuration and shared fixtures for concurrent_checkout_tester tests.
"""


import pytest

from concurrent_checkout_tester.config import TesterConfig
from concurrent_checkout_tester.models import Principal, TestRunConfig
from concurrent_checkout_tester.storage.memory import MemoryOrderStore


@pytest.fixture
def endpoint() -> str:
    """Provide the sandbox AJAX checkout endpoint."""
    return "http://shop.test/checkout/?wc-ajax=checkout"


@pytest.fixture
def settings() -> TesterConfig:
    """Provide an enabled tester configuration with short timeouts."""
    return TesterConfig(enabled=True, request_count=5, request_timeout_seconds=2.0)


@pytest.fixture
def checkout_payload() -> bytes:
    """Provide a captured checkout form body."""
    return b"billing_email=buyer%40example.com&payment_method=cod&terms=on"


@pytest.fixture
def run_config(endpoint: str, checkout_payload: bytes) -> TestRunConfig:
    """Provide a five-request run configuration."""
    return TestRunConfig(
        concurrency=5,
        endpoint=endpoint,
        payload=checkout_payload,
        headers={"cookie": "wp_woocommerce_session=abc"},
        timeout_seconds=2.0,
    )


@pytest.fixture
def store() -> MemoryOrderStore:
    """Provide an empty in-memory order store."""
    return MemoryOrderStore()


@pytest.fixture
def operator() -> Principal:
    return Principal.operator()


@pytest.fixture
def anonymous() -> Principal:
    return Principal.anonymous()
