"""Checkout response parsing for the concurrent checkout tester.

Checkout endpoints report a created order in different ways. This module
reduces one raw response to a ParsedResponse:

1. A 3xx response whose Location points at an order-received URL
   -> RedirectSuccess
2. A JSON object with a non-empty "order_id" field -> StructuredSuccess
3. A JSON object whose "redirect" field points at an order-received URL
   -> RedirectSuccess
4. Anything else -> Failure, with a display-safe diagnostic taken from the
   first of "messages", "message", "error" or "data" (markup stripped,
   whitespace collapsed, capped at 80 characters)

parse_response never raises. A body that cannot be decoded as a JSON object
becomes a Failure describing the unrecognized response.

Examples:
    Structured success::

        >>> parse_response(200, {}, b'{"result": "success", "order_id": 101}')
        StructuredSuccess(kind='structured', order_id='101')

    Redirect-style success::

        >>> parsed = parse_response(
        ...     200, {}, b'{"redirect": "https://shop.example/checkout/order-received/102/?key=wc_order_x"}'
        ... )
        >>> order_id_of(parsed)
        '102'

    Failure with a WooCommerce notice::

        >>> parsed = parse_response(
        ...     200, {}, b'{"result": "failure", "messages": "<ul><li>Your cart is empty.</li></ul>"}'
        ... )
        >>> diagnostic_of(parsed)
        'Your cart is empty.'
"""

import json
import re
from collections.abc import Mapping
from typing import Any

import httpx

from concurrent_checkout_tester.exceptions import ParseError
from concurrent_checkout_tester.models import (
    MAX_ERROR_LENGTH,
    Failure,
    ParsedResponse,
    RedirectSuccess,
    StructuredSuccess,
)

ORDER_RECEIVED_PATTERN = re.compile(r"order-received/(\d+)")

# Body fields that may carry a failure message, in priority order
MESSAGE_FIELDS = ("messages", "message", "error", "data")

DEFAULT_FAILURE_MESSAGE = "Failed"

_TAG_PATTERN = re.compile(r"<[^>]*>")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def parse_response(
    status_code: int,
    headers: Mapping[str, str],
    body: bytes,
) -> ParsedResponse:
    """Extract the created order (or a diagnostic) from one checkout response.

    Args:
        status_code: HTTP status code.
        headers: Response headers (case-insensitive lookup of Location).
        body: Raw response body.

    Returns:
        StructuredSuccess, RedirectSuccess or Failure. Never raises.
    """
    if 300 <= status_code < 400:
        location = _header(headers, "location")
        if location:
            order_id = extract_order_id_from_url(location)
            if order_id is not None:
                return RedirectSuccess(url=location, order_id=order_id)

    try:
        data = _decode_json_object(status_code, body)
    except ParseError as e:
        return Failure(message=clean_message(e.message))

    order_id = _normalize_order_id(data.get("order_id"))
    if order_id is not None:
        return StructuredSuccess(order_id=order_id)

    redirect = data.get("redirect")
    if isinstance(redirect, str):
        order_id = extract_order_id_from_url(redirect)
        if order_id is not None:
            return RedirectSuccess(url=redirect, order_id=order_id)

    return Failure(message=_failure_message(data))


def parse_httpx_response(response: httpx.Response) -> ParsedResponse:
    """Parse an httpx response. See parse_response."""
    return parse_response(response.status_code, response.headers, response.content)


def order_id_of(parsed: ParsedResponse) -> str | None:
    """Return the order id carried by a parsed response, if any."""
    if isinstance(parsed, StructuredSuccess):
        return parsed.order_id
    elif isinstance(parsed, RedirectSuccess):
        return parsed.order_id
    elif isinstance(parsed, Failure):
        return None
    raise TypeError(f"Unknown parsed response: {type(parsed).__name__}")


def diagnostic_of(parsed: ParsedResponse) -> str | None:
    """Return the failure diagnostic of a parsed response, if any."""
    if isinstance(parsed, (StructuredSuccess, RedirectSuccess)):
        return None
    elif isinstance(parsed, Failure):
        return parsed.message
    raise TypeError(f"Unknown parsed response: {type(parsed).__name__}")


def extract_order_id_from_url(url: str) -> str | None:
    """Extract the order id following the order-received path segment.

    Examples:
        >>> extract_order_id_from_url("https://shop.example/checkout/order-received/42/?key=k")
        '42'
        >>> extract_order_id_from_url("https://shop.example/cart/") is None
        True
    """
    match = ORDER_RECEIVED_PATTERN.search(url)
    if match is None:
        return None
    return match.group(1)


def clean_message(message: str, limit: int = MAX_ERROR_LENGTH) -> str:
    """Strip markup, collapse whitespace and cap a message for display.

    Examples:
        >>> clean_message('<ul class="woocommerce-error">\\n<li> Invalid   email. </li></ul>')
        'Invalid email.'
    """
    text = _TAG_PATTERN.sub(" ", message)
    text = _WHITESPACE_PATTERN.sub(" ", text).strip()
    return text[:limit].rstrip()


def _decode_json_object(status_code: int, body: bytes) -> dict[str, Any]:
    """Decode a response body that must be a JSON object.

    Raises:
        ParseError: If the body is not a JSON object.
    """
    try:
        data = json.loads(body)
    except (ValueError, RecursionError) as e:
        raise ParseError(
            f"Unrecognized response (HTTP {status_code})", status_code=status_code
        ) from e

    if not isinstance(data, dict):
        raise ParseError(f"Unrecognized response (HTTP {status_code})", status_code=status_code)

    return data


def _normalize_order_id(value: Any) -> str | None:
    # bool is an int subclass; true/false is not an order id
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value) if value > 0 else None
    if isinstance(value, str):
        value = value.strip()
        return value if value and value != "0" else None
    return None


def _failure_message(data: dict[str, Any]) -> str:
    for field in MESSAGE_FIELDS:
        value = data.get(field)
        if isinstance(value, dict):
            value = value.get("message")
        if isinstance(value, str):
            message = clean_message(value)
            if message:
                return message
    return DEFAULT_FAILURE_MESSAGE


def _header(headers: Mapping[str, str], name: str) -> str | None:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None
