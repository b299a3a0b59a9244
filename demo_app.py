"""Demo FastAPI application: a racy sandbox checkout plus the tester's admin surface.

Run with: python demo_app.py
Environment:
    CCT_ENABLED=true            enable tagging and the test trigger
    CCT_FIX_ENABLED=true        serialize checkouts per session (the fix)
    CCT_OPERATOR_TOKEN=secret   token for the admin routes
"""

import httpx
import uvicorn

from concurrent_checkout_tester.adapters.asgi import create_admin_router, token_caller_resolver
from concurrent_checkout_tester.config import TesterConfig
from concurrent_checkout_tester.core.lifecycle import TestOrderManager
from concurrent_checkout_tester.core.orchestrator import CheckoutOrchestrator
from concurrent_checkout_tester.observability.logging import configure_logging
from concurrent_checkout_tester.sandbox import SandboxShop, create_checkout_app
from concurrent_checkout_tester.storage.memory import MemoryOrderStore

configure_logging(level="INFO", json_output=False)

settings = TesterConfig.from_env()

store = MemoryOrderStore()
manager = TestOrderManager(store, settings, caches=[store.count_cache])
manager.attach()

shop = SandboxShop(store, fix_enabled=settings.fix_enabled)
app = create_checkout_app(shop)

# The test trigger targets the sandbox in-process
orchestrator = CheckoutOrchestrator(settings, transport=httpx.ASGITransport(app=app))

app.include_router(
    create_admin_router(
        settings=settings,
        manager=manager,
        orchestrator=orchestrator,
        resolve_caller=token_caller_resolver(settings.operator_token),
    ),
    prefix="/admin/concurrent-checkout",
)


@app.get("/")
async def root():
    """Root endpoint - returns API info."""
    return {
        "name": "Concurrent Checkout Tester Demo",
        "endpoints": {
            "POST /cart/add": "Add a product to the session cart (form: product)",
            "POST /checkout/?wc-ajax=checkout": "Place an order from the session cart",
            "GET /admin/concurrent-checkout/status": "Tester configuration",
            "POST /admin/concurrent-checkout/concurrent-test": "Fire concurrent checkouts",
            "GET /admin/concurrent-checkout/test-orders": "List tagged test orders",
            "POST /admin/concurrent-checkout/test-orders/delete": "Delete tagged test orders",
        },
        "usage": "Send the 'wp_woocommerce_session' cookie; admin routes need X-Operator-Token",
    }


if __name__ == "__main__":
    print("=" * 60)
    print("Concurrent Checkout Tester Demo Server")
    print("=" * 60)
    print(f"\nTesting enabled: {settings.enabled}   Fix enabled: {settings.fix_enabled}")
    print("\nStarting server at http://localhost:8000")
    print("\nTry:")
    print("  curl -b wp_woocommerce_session=abc -d product=hoodie localhost:8000/cart/add")
    print(
        "  curl -H 'X-Operator-Token: $CCT_OPERATOR_TOKEN' -H 'content-type: application/json' \\\n"
        "       -d '{\"endpoint\": \"http://shop.test/checkout/?wc-ajax=checkout\",\n"
        "            \"payload\": \"billing_email=a%40b.c\",\n"
        "            \"headers\": {\"cookie\": \"wp_woocommerce_session=abc\"}}' \\\n"
        "       localhost:8000/admin/concurrent-checkout/concurrent-test"
    )
    print("\nPress Ctrl+C to stop")
    print("=" * 60)
    print()

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
