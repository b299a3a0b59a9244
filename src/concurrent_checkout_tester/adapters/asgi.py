"""FastAPI adapter exposing the admin surface over HTTP.

Routes (relative to the router prefix):

    GET  /status              Tester configuration card
    GET  /test-orders         {count, ids[:20], truncated}
    POST /test-orders/delete  {success: true, deleted, message}
    POST /concurrent-test     Run a concurrent checkout test with a captured
                              payload and return the report

Rejected calls return {success: false, error, reason} with status 403
(permission denied) or 404 (testing disabled).

Authentication is the host's business. The router takes a resolve_caller
callable that maps a request to a Principal; token_caller_resolver is a
minimal shared-secret implementation.

Examples:
    FastAPI integration::

        from fastapi import FastAPI

        app = FastAPI()
        app.include_router(
            create_admin_router(
                settings=settings,
                manager=manager,
                orchestrator=CheckoutOrchestrator(settings),
                resolve_caller=token_caller_resolver(settings.operator_token),
            ),
            prefix="/admin/concurrent-checkout",
        )
"""

import secrets
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from concurrent_checkout_tester.config import TesterConfig
from concurrent_checkout_tester.core.admin import (
    delete_all_tagged_resources,
    list_tagged_resources,
    run_concurrent_test,
)
from concurrent_checkout_tester.core.lifecycle import TEST_ORDER_META, TestOrderManager
from concurrent_checkout_tester.core.orchestrator import CheckoutOrchestrator
from concurrent_checkout_tester.models import (
    AdminFailure,
    Principal,
    TestRunConfig,
    validate_endpoint_url,
)

CallerResolver = Callable[[Request], Principal]

OPERATOR_TOKEN_HEADER = "x-operator-token"

DEFAULT_PREFIX = "/admin/concurrent-checkout"


class RunRequest(BaseModel):
    """Body of POST /concurrent-test.

    Attributes:
        endpoint: Checkout submission endpoint URL
        payload: Captured checkout form body, sent unchanged on every request
        content_type: Content type of the payload
        headers: Session headers (cookies) shared by all requests
        concurrency: Number of requests; defaults to the configured count
    """

    endpoint: str = Field(..., min_length=1)
    payload: str = ""
    content_type: str = "application/x-www-form-urlencoded"
    headers: dict[str, str] = Field(default_factory=dict)
    concurrency: int | None = Field(default=None, ge=1)

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        return validate_endpoint_url(v)


def token_caller_resolver(
    token: str | None,
    header: str = OPERATOR_TOKEN_HEADER,
) -> CallerResolver:
    """Build a resolver granting operator rights to holders of a shared token.

    Args:
        token: The operator token; None rejects every caller
        header: Request header carrying the token

    Returns:
        A callable mapping a request to a Principal
    """

    def resolve(request: Request) -> Principal:
        supplied = request.headers.get(header)
        if token and supplied and secrets.compare_digest(supplied, token):
            return Principal.operator()
        return Principal.anonymous()

    return resolve


def _respond(result: BaseModel) -> JSONResponse:
    if isinstance(result, AdminFailure):
        status_code = 404 if result.reason == "disabled" else 403
        return JSONResponse(result.model_dump(mode="json"), status_code=status_code)
    return JSONResponse(result.model_dump(mode="json"))


def create_admin_router(
    settings: TesterConfig,
    manager: TestOrderManager,
    orchestrator: CheckoutOrchestrator,
    resolve_caller: CallerResolver,
) -> APIRouter:
    """Create the admin router.

    Args:
        settings: Tester configuration
        manager: Test order manager
        orchestrator: Orchestrator used by the concurrent test trigger
        resolve_caller: Maps a request to the calling Principal

    Returns:
        An APIRouter to include in the host application
    """
    router = APIRouter()

    @router.get("/status")
    async def status() -> dict[str, Any]:
        return {
            "enabled": settings.enabled,
            "fix_enabled": settings.fix_enabled,
            "request_count": settings.request_count,
            "max_request_count": settings.max_request_count,
            "marker": TEST_ORDER_META,
        }

    @router.get("/test-orders")
    async def list_test_orders(request: Request) -> JSONResponse:
        return _respond(await list_tagged_resources(manager, resolve_caller(request)))

    @router.post("/test-orders/delete")
    async def delete_test_orders(request: Request) -> JSONResponse:
        return _respond(await delete_all_tagged_resources(manager, resolve_caller(request)))

    @router.post("/concurrent-test")
    async def concurrent_test(request: Request, body: RunRequest) -> JSONResponse:
        config = TestRunConfig(
            concurrency=body.concurrency or settings.request_count,
            endpoint=body.endpoint,
            payload=body.payload.encode("utf-8"),
            content_type=body.content_type,
            headers=body.headers,
            timeout_seconds=settings.request_timeout_seconds,
        )
        return _respond(
            await run_concurrent_test(orchestrator, settings, resolve_caller(request), config)
        )

    return router


def create_admin_app(
    settings: TesterConfig,
    manager: TestOrderManager,
    orchestrator: CheckoutOrchestrator,
    resolve_caller: CallerResolver | None = None,
    prefix: str = DEFAULT_PREFIX,
) -> FastAPI:
    """Create a standalone FastAPI app serving only the admin router."""
    app = FastAPI(title="Concurrent Checkout Tester")
    app.include_router(
        create_admin_router(
            settings=settings,
            manager=manager,
            orchestrator=orchestrator,
            resolve_caller=resolve_caller or token_caller_resolver(settings.operator_token),
        ),
        prefix=prefix,
    )
    return app
