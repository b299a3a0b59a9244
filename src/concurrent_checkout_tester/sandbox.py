"""Sandbox checkout for exercising the concurrent checkout tester.

SandboxShop simulates a host checkout with the classic check-then-act race:

    Request 1 -> cart valid -> (race window) -> create order #101
    Request 2 -> cart valid -> (race window) -> create order #102  (duplicate)

With fix_enabled, checkouts of one session are serialized through a
per-session asyncio.Lock. The first request creates the order and empties
the cart; the others then fail naturally with an empty-cart notice.

Responses follow the WooCommerce AJAX checkout shapes:

    {"result": "success", "order_id": 101,
     "redirect": "http://shop.test/checkout/order-received/101/?key=wc_order_..."}
    {"result": "failure", "messages": "<ul class=\\"woocommerce-error\\" ...>...</ul>"}

Examples:
    Serving the sandbox::

        store = MemoryOrderStore()
        shop = SandboxShop(store, fix_enabled=False)
        shop.add_to_cart("abc", "hoodie")
        app = create_checkout_app(shop)
"""

import asyncio
import json
import uuid
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from concurrent_checkout_tester.models import Order
from concurrent_checkout_tester.observability.logging import get_logger
from concurrent_checkout_tester.storage.base import OrderStore

logger = get_logger(__name__)

SESSION_COOKIE = "wp_woocommerce_session"

EMPTY_CART_MESSAGE = "Your cart is currently empty."
MISSING_EMAIL_MESSAGE = "Billing Email address is a required field."


def _error_notice(message: str) -> str:
    return f'<ul class="woocommerce-error" role="alert">\n\t\t\t<li>\n\t\t\t{message}\t\t</li>\n\t</ul>\n'


class SandboxShop:
    """A checkout with a deliberate race window and an optional lock fix.

    Attributes:
        store: Order store receiving created orders
        fix_enabled: Serialize checkouts per session when True
        race_window_seconds: Delay between the cart check and order creation
        include_order_id: Include "order_id" in success bodies; when False
            only the redirect URL identifies the order
        base_url: Base URL used to build order-received redirects
    """

    def __init__(
        self,
        store: OrderStore,
        fix_enabled: bool = False,
        race_window_seconds: float = 0.05,
        include_order_id: bool = True,
        base_url: str = "http://shop.test",
    ) -> None:
        self.store = store
        self.fix_enabled = fix_enabled
        self.race_window_seconds = race_window_seconds
        self.include_order_id = include_order_id
        self.base_url = base_url.rstrip("/")
        self._carts: dict[str, list[str]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._global_lock = asyncio.Lock()

    def add_to_cart(self, session: str, item: str) -> None:
        self._carts.setdefault(session, []).append(item)

    def cart(self, session: str) -> list[str]:
        return list(self._carts.get(session, []))

    async def checkout(self, session: str, form: Mapping[str, str]) -> dict[str, Any]:
        """Place an order from the session's cart.

        Args:
            session: Session identifier from the session cookie
            form: Submitted checkout fields

        Returns:
            WooCommerce-style JSON body
        """
        if not self.fix_enabled:
            return await self._place_order(session, form)

        lock = await self._session_lock(session)
        async with lock:
            return await self._place_order(session, form)

    async def _session_lock(self, session: str) -> asyncio.Lock:
        # Ensure lock exists for this session (protected by global lock)
        async with self._global_lock:
            if session not in self._locks:
                self._locks[session] = asyncio.Lock()
            return self._locks[session]

    async def _place_order(self, session: str, form: Mapping[str, str]) -> dict[str, Any]:
        items = self.cart(session)
        if not items:
            return self._failure(EMPTY_CART_MESSAGE)
        if not form.get("billing_email"):
            return self._failure(MISSING_EMAIL_MESSAGE)

        # The race window: the cart was valid a moment ago
        await asyncio.sleep(self.race_window_seconds)

        order = await self.store.create(session=session, items=items)
        self._carts[session] = []

        logger.debug("sandbox.order_created", order_id=order.id, session=session)
        return self._success(order)

    def _success(self, order: Order) -> dict[str, Any]:
        redirect = (
            f"{self.base_url}/checkout/order-received/{order.id}/"
            f"?key=wc_order_{uuid.uuid4().hex[:13]}"
        )
        body: dict[str, Any] = {"result": "success", "redirect": redirect}
        if self.include_order_id:
            body["order_id"] = order.id
        return body

    def _failure(self, message: str) -> dict[str, Any]:
        return {
            "result": "failure",
            "messages": _error_notice(message),
            "refresh": False,
            "reload": False,
        }


def create_checkout_app(shop: SandboxShop) -> FastAPI:
    """Create a FastAPI app serving the sandbox checkout.

    Routes:
        POST /checkout/  (query ?wc-ajax=checkout accepted and ignored)
        POST /cart/add   (form field "product")
    """
    app = FastAPI(title="Sandbox Checkout")

    @app.post("/checkout/")
    async def checkout(request: Request) -> JSONResponse:
        session = request.cookies.get(SESSION_COOKIE, "")
        form = await _read_form(request)
        return JSONResponse(await shop.checkout(session, form))

    @app.post("/cart/add")
    async def add_to_cart(request: Request) -> JSONResponse:
        session = request.cookies.get(SESSION_COOKIE, "")
        form = await _read_form(request)
        product = form.get("product", "")
        if not session or not product:
            return JSONResponse(
                {"success": False, "error": "A session cookie and a product are required."},
                status_code=400,
            )
        shop.add_to_cart(session, product)
        return JSONResponse({"success": True, "cart": shop.cart(session)})

    return app


async def _read_form(request: Request) -> dict[str, str]:
    body = await request.body()
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            data = json.loads(body or b"{}")
        except ValueError:
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): str(value) for key, value in data.items()}
    return dict(parse_qsl(body.decode("utf-8", errors="replace")))
