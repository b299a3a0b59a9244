"""Unit tests for checkout response parsing.

This test suite covers:
    - Structured success bodies (order_id field)
    - Redirect-style success (JSON redirect field and 3xx Location)
    - Failure bodies and diagnostic extraction
    - Unparseable bodies
    - Property: parse_response never raises
"""

import json

import httpx
import pytest
from hypothesis import given, settings as hypothesis_settings
from hypothesis import strategies as st

from concurrent_checkout_tester.core.parser import (
    clean_message,
    diagnostic_of,
    extract_order_id_from_url,
    order_id_of,
    parse_httpx_response,
    parse_response,
)
from concurrent_checkout_tester.models import (
    MAX_ERROR_LENGTH,
    Failure,
    RedirectSuccess,
    StructuredSuccess,
)


def body(data: object) -> bytes:
    return json.dumps(data).encode("utf-8")


# ============================================================================
# Success
# ============================================================================


def test_structured_success():
    parsed = parse_response(200, {}, body({"result": "success", "order_id": 101}))

    assert parsed == StructuredSuccess(order_id="101")
    assert order_id_of(parsed) == "101"
    assert diagnostic_of(parsed) is None


def test_structured_success_string_id():
    parsed = parse_response(200, {}, body({"order_id": " 205 "}))

    assert order_id_of(parsed) == "205"


def test_structured_id_wins_over_redirect():
    data = {
        "order_id": 7,
        "redirect": "https://shop.example/checkout/order-received/8/?key=k",
    }

    assert order_id_of(parse_response(200, {}, body(data))) == "7"


def test_redirect_field_success():
    url = "https://shop.example/checkout/order-received/102/?key=wc_order_abc"

    parsed = parse_response(200, {}, body({"result": "success", "redirect": url}))

    assert isinstance(parsed, RedirectSuccess)
    assert parsed.order_id == "102"
    assert parsed.url == url


def test_location_header_success():
    headers = {"Location": "https://shop.example/checkout/order-received/330/"}

    parsed = parse_response(302, headers, b"")

    assert isinstance(parsed, RedirectSuccess)
    assert parsed.order_id == "330"


def test_location_without_order_falls_through():
    parsed = parse_response(302, {"location": "https://shop.example/cart/"}, b"")

    assert isinstance(parsed, Failure)
    assert parsed.message == "Unrecognized response (HTTP 302)"


# ============================================================================
# Failure
# ============================================================================


@pytest.mark.parametrize("order_id", [0, "0", "", None, False, True, -5, [101], {"id": 1}])
def test_invalid_order_ids_are_failures(order_id):
    parsed = parse_response(200, {}, body({"order_id": order_id}))

    assert isinstance(parsed, Failure)
    assert order_id_of(parsed) is None


def test_woocommerce_notice_is_cleaned():
    messages = (
        '<ul class="woocommerce-error" role="alert">\n\t\t\t<li>\n\t\t\t'
        "Your cart is currently empty.\t\t</li>\n\t</ul>\n"
    )

    parsed = parse_response(200, {}, body({"result": "failure", "messages": messages}))

    assert diagnostic_of(parsed) == "Your cart is currently empty."


@pytest.mark.parametrize(
    "data,expected",
    [
        ({"message": "Invalid nonce"}, "Invalid nonce"),
        ({"error": "Payment declined"}, "Payment declined"),
        ({"data": {"message": "Session expired"}}, "Session expired"),
        ({"messages": "", "message": "Second choice"}, "Second choice"),
        ({"result": "failure"}, "Failed"),
        ({"messages": 42}, "Failed"),
    ],
)
def test_failure_message_fields(data, expected):
    assert diagnostic_of(parse_response(200, {}, body(data))) == expected


def test_long_message_is_capped():
    parsed = parse_response(200, {}, body({"messages": "word " * 100}))

    assert len(diagnostic_of(parsed) or "") <= MAX_ERROR_LENGTH


@pytest.mark.parametrize(
    "status,raw",
    [
        (500, b"<html>Internal Server Error</html>"),
        (200, b""),
        (200, b"[1, 2, 3]"),
        (200, b'"just a string"'),
        (200, b"\xff\xfe\x00"),
    ],
)
def test_unrecognized_bodies(status, raw):
    parsed = parse_response(status, {}, raw)

    assert parsed == Failure(message=f"Unrecognized response (HTTP {status})")


def test_parse_httpx_response():
    response = httpx.Response(200, json={"result": "success", "order_id": 9})

    assert order_id_of(parse_httpx_response(response)) == "9"


def test_unknown_variant_rejected():
    with pytest.raises(TypeError):
        order_id_of("not parsed")  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        diagnostic_of(None)  # type: ignore[arg-type]


# ============================================================================
# Helpers
# ============================================================================


def test_extract_order_id_from_url():
    assert extract_order_id_from_url("/checkout/order-received/42/?key=k") == "42"
    assert extract_order_id_from_url("/checkout/order-received/") is None
    assert extract_order_id_from_url("/my-account/orders/") is None


def test_clean_message():
    assert clean_message("<li>  Invalid \n\t email. </li>") == "Invalid email."
    assert clean_message("abcdef", limit=3) == "abc"


# ============================================================================
# Properties
# ============================================================================


@given(
    status=st.integers(min_value=100, max_value=599),
    raw=st.binary(max_size=512),
)
def test_parse_never_raises_on_arbitrary_bytes(status, raw):
    parsed = parse_response(status, {}, raw)

    assert isinstance(parsed, (StructuredSuccess, RedirectSuccess, Failure))


json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(max_size=50),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(max_size=10), children, max_size=4),
    max_leaves=20,
)


@given(
    data=st.dictionaries(
        st.sampled_from(["order_id", "redirect", "messages", "message", "error", "data", "result"]),
        json_values,
    )
)
@hypothesis_settings(deadline=None)
def test_parse_never_raises_on_json_objects(data):
    parsed = parse_response(200, {}, body(data))

    if isinstance(parsed, Failure):
        assert 0 < len(parsed.message) <= MAX_ERROR_LENGTH
    else:
        assert order_id_of(parsed)
