"""Core type definitions and models for the concurrent checkout tester.

This module provides the data structures that flow through a concurrent
checkout run (run configuration, per-request outcomes, the classified result),
the parsed response variants, and the records used by test-order cleanup and
the admin surface.

Examples:
    Building a run configuration::

        from concurrent_checkout_tester.models import TestRunConfig

        config = TestRunConfig(
            concurrency=5,
            endpoint="https://shop.example/checkout/?wc-ajax=checkout",
            payload=b"billing_email=a%40b.c&payment_method=cod",
            headers={"cookie": "wp_woocommerce_session=abc"},
        )

    Recording an outcome::

        outcome = RequestOutcome(index=1, success=True, order_id="101", latency_ms=84.2)
"""

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Literal

import httpx
from pydantic import BaseModel, Field, field_validator, model_validator

from concurrent_checkout_tester.config import TesterConfig

# Maximum length of a diagnostic message kept on an outcome
MAX_ERROR_LENGTH = 80

# Capability an administrative caller must hold
OPERATOR_CAPABILITY = "manage_checkout_tests"


def validate_endpoint_url(value: str) -> str:
    """Check that a checkout endpoint is an absolute http(s) URL.

    Returns:
        The endpoint unchanged.

    Raises:
        ValueError: If the URL cannot be parsed, has another scheme or has no host.
    """
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as e:
        raise ValueError(f"endpoint is not a valid URL: {e}") from e
    if url.scheme not in ("http", "https"):
        raise ValueError("endpoint must use http or https")
    if not url.host:
        raise ValueError("endpoint must include a host")
    return value


def order_sort_key(order_id: str) -> tuple[int, int, str]:
    """Sort key placing numeric order ids in numeric order before other ids.

    Examples:
        >>> sorted(["102", "9", "abc"], key=order_sort_key)
        ['9', '102', 'abc']
    """
    if order_id.isdigit():
        return (0, int(order_id), "")
    return (1, 0, order_id)


class Classification(str, Enum):
    """Outcome of a concurrent checkout run.

    Determined purely by the number of unique order ids produced.

    Attributes:
        NO_ORDERS: No request created an order.
        FIX_WORKING: Exactly one order was created.
        DUPLICATES_DETECTED: More than one distinct order was created.
    """

    NO_ORDERS = "NO_ORDERS"
    FIX_WORKING = "FIX_WORKING"
    DUPLICATES_DETECTED = "DUPLICATES_DETECTED"


class TestRunConfig(BaseModel):
    """Parameters for a single concurrent checkout run.

    The same payload and headers are sent byte-for-byte on every request so
    that all N submissions look like they come from one client session.

    Attributes:
        concurrency: Number of identical requests to fire (>= 1).
        endpoint: URL of the checkout submission endpoint.
        payload: Captured request body, reused unchanged for every request.
        content_type: Content type of the payload.
        headers: Extra request headers (session cookies, nonces) shared by all
            requests.
        timeout_seconds: Independent deadline for each request.
    """

    __test__: ClassVar[bool] = False

    concurrency: int = Field(
        ...,
        description="Number of identical requests to fire",
        ge=1,
        examples=[5, 10],
    )
    endpoint: str = Field(
        ...,
        description="Checkout submission endpoint URL",
        min_length=1,
        examples=["https://shop.example/checkout/?wc-ajax=checkout"],
    )
    payload: bytes = Field(
        default=b"",
        description="Captured request body sent on every request",
    )
    content_type: str = Field(
        default="application/x-www-form-urlencoded",
        description="Content type of the payload",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Request headers shared by all requests",
    )
    timeout_seconds: float = Field(
        default=30.0,
        description="Per-request deadline in seconds",
        gt=0,
    )

    model_config = {"frozen": True}

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        return validate_endpoint_url(v)

    @classmethod
    def from_settings(
        cls,
        settings: TesterConfig,
        endpoint: str,
        payload: bytes,
        content_type: str = "application/x-www-form-urlencoded",
        headers: dict[str, str] | None = None,
    ) -> "TestRunConfig":
        """Build a run configuration from the tester's configured defaults.

        Args:
            settings: Tester configuration providing request count and timeout.
            endpoint: Checkout submission endpoint URL.
            payload: Captured request body.
            content_type: Content type of the payload.
            headers: Session headers shared by all requests.

        Returns:
            A new TestRunConfig.
        """
        return cls(
            concurrency=settings.request_count,
            endpoint=endpoint,
            payload=payload,
            content_type=content_type,
            headers=dict(headers or {}),
            timeout_seconds=settings.request_timeout_seconds,
        )


class RequestOutcome(BaseModel):
    """Result of one dispatched checkout request.

    Attributes:
        index: Dispatch position, 1..N.
        success: True when the response identified a created order.
        order_id: Identifier of the created order, None on failure.
        error: Bounded diagnostic message on failure.
        latency_ms: Time from send to response (or failure) in milliseconds.
        status_code: HTTP status code, None if no response was received.
    """

    success: bool = Field(..., description="Whether an order was created")
    index: int = Field(..., description="Dispatch position (1-based)", ge=1)
    order_id: str | None = Field(default=None, description="Created order id")
    error: str | None = Field(default=None, description="Diagnostic message on failure")
    latency_ms: float = Field(default=0.0, description="Request latency in ms", ge=0)
    status_code: int | None = Field(default=None, description="HTTP status code")

    model_config = {"frozen": True}

    @field_validator("order_id", mode="before")
    @classmethod
    def normalize_order_id(cls, v: Any) -> str | None:
        """Normalize order ids to strings, treating empty values as absent."""
        if v is None or v == "":
            return None
        return str(v)

    @model_validator(mode="after")
    def validate_order_id_with_success(self) -> "RequestOutcome":
        """Validate that order_id is present if and only if success is True.

        Raises:
            ValueError: If success/order_id consistency is violated.
        """
        if self.success and self.order_id is None:
            raise ValueError("order_id must be provided when success is True")
        if not self.success and self.order_id is not None:
            raise ValueError("order_id must be None when success is False")
        return self

    @field_validator("error")
    @classmethod
    def truncate_error(cls, v: str | None) -> str | None:
        """Cap diagnostic messages for display."""
        if v is None:
            return None
        return v[:MAX_ERROR_LENGTH]


class TestRunResult(BaseModel):
    """Classified result of a concurrent checkout run.

    Attributes:
        outcomes: Per-request outcomes in the order they were supplied
            (dispatch order when produced by the orchestrator).
        unique_order_ids: Distinct order ids across all outcomes.
        classification: Verdict derived from the number of unique ids.
    """

    __test__: ClassVar[bool] = False

    outcomes: tuple[RequestOutcome, ...] = Field(default=())
    unique_order_ids: frozenset[str] = Field(default=frozenset())
    classification: Classification

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_classification(self) -> "TestRunResult":
        """Validate that the classification matches the unique id count.

        Raises:
            ValueError: If the classification contradicts unique_order_ids.
        """
        count = len(self.unique_order_ids)
        if count == 0:
            expected = Classification.NO_ORDERS
        elif count == 1:
            expected = Classification.FIX_WORKING
        else:
            expected = Classification.DUPLICATES_DETECTED
        if self.classification != expected:
            raise ValueError(
                f"classification {self.classification.value} does not match "
                f"{count} unique order(s)"
            )
        return self

    @property
    def order_ids(self) -> list[str]:
        """Unique order ids, numeric ids in numeric order."""
        return sorted(self.unique_order_ids, key=order_sort_key)

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failure_count(self) -> int:
        return len(self.outcomes) - self.success_count


class StructuredSuccess(BaseModel):
    """Response body carried an explicit order id field."""

    kind: Literal["structured"] = "structured"
    order_id: str = Field(..., min_length=1)

    model_config = {"frozen": True}


class RedirectSuccess(BaseModel):
    """Response pointed at an order-received URL carrying the order id."""

    kind: Literal["redirect"] = "redirect"
    url: str
    order_id: str = Field(..., min_length=1)

    model_config = {"frozen": True}


class Failure(BaseModel):
    """Response did not identify a created order."""

    kind: Literal["failure"] = "failure"
    message: str = Field(default="Failed", max_length=MAX_ERROR_LENGTH)

    model_config = {"frozen": True}


ParsedResponse = StructuredSuccess | RedirectSuccess | Failure


class Order(BaseModel):
    """An order as persisted by the host commerce store.

    Attributes:
        id: Store-assigned order id.
        session: Session that placed the order.
        items: Cart contents at checkout.
        created_at: Creation time (UTC).
        meta: Free-form metadata written by plugins such as the test tagger.
    """

    id: int = Field(..., ge=1)
    session: str = Field(default="")
    items: tuple[str, ...] = Field(default=())
    created_at: datetime
    meta: dict[str, Any] = Field(default_factory=dict)


class TestOrder(BaseModel):
    """A host order tagged as created during concurrent testing.

    Attributes:
        id: Host order id.
        created_at: Tag time in whole epoch seconds.
        created_at_precise: Tag time in fractional epoch seconds, to tell apart
            duplicates born in the same race window.
        is_test: Test marker flag.
    """

    __test__: ClassVar[bool] = False

    id: int = Field(..., ge=1)
    created_at: int = Field(..., ge=0)
    created_at_precise: float = Field(..., ge=0)
    is_test: bool = True

    model_config = {"frozen": True}


class Principal(BaseModel):
    """The caller of an administrative operation.

    Attributes:
        user_id: Caller identifier.
        capabilities: Capabilities granted to the caller.
    """

    user_id: str = Field(default="anonymous")
    capabilities: frozenset[str] = Field(default=frozenset())

    model_config = {"frozen": True}

    @property
    def is_operator(self) -> bool:
        return OPERATOR_CAPABILITY in self.capabilities

    @classmethod
    def operator(cls, user_id: str = "operator") -> "Principal":
        return cls(user_id=user_id, capabilities=frozenset({OPERATOR_CAPABILITY}))

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls()


class TaggedOrderListing(BaseModel):
    """Admin listing of tagged test orders.

    Attributes:
        count: Total number of tagged orders.
        ids: Up to the first 20 tagged order ids.
        truncated: True when more ids exist than were returned.
    """

    count: int = Field(..., ge=0)
    ids: list[int] = Field(default_factory=list)
    truncated: bool = False


class DeleteSuccess(BaseModel):
    """Admin response for a completed bulk delete."""

    success: Literal[True] = True
    deleted: int = Field(..., ge=0)
    message: str


class AdminFailure(BaseModel):
    """Admin response for a rejected administrative call.

    Attributes:
        error: Human-readable reason.
        reason: Machine-readable reason ("permission_denied" or "disabled").
    """

    success: Literal[False] = False
    error: str
    reason: Literal["permission_denied", "disabled"] = "permission_denied"


class RunReport(BaseModel):
    """Admin response for a completed concurrent checkout run.

    Attributes:
        classification: Verdict of the run.
        order_ids: Unique order ids, numeric ids in numeric order.
        lines: One report line per request followed by the verdict line.
        fix_enabled: Whether the external fix was reported active.
        result: The full classified result.
    """

    success: Literal[True] = True
    classification: Classification
    order_ids: list[str]
    lines: list[str]
    fix_enabled: bool
    result: TestRunResult
