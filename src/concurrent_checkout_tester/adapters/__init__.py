"""Framework adapters for the concurrent checkout tester.

- asgi.py: FastAPI router exposing the admin surface (status, test order
  listing and deletion, concurrent test trigger)
"""

from concurrent_checkout_tester.adapters.asgi import (
    create_admin_app,
    create_admin_router,
    token_caller_resolver,
)

__all__ = ["create_admin_app", "create_admin_router", "token_caller_resolver"]
