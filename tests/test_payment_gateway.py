"""
Gateway clients: Toss over a mocked HTTP transport, Stripe with a patched SDK call.
"""
import base64
import json

import httpx
import pytest
import stripe

from grantplan.services import payment_gateway
from grantplan.services.errors import GatewayUnavailableError
from grantplan.services.payment_gateway import (
    MockPaymentGateway,
    StripePaymentGateway,
    TossPaymentsGateway,
    build_payment_gateway,
)


def toss_with(handler):
    return TossPaymentsGateway("test_sk_123", api_base="https://toss.test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_toss_accepts_and_sends_basic_auth():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": "DONE", "method": "카드"})

    result = await toss_with(handler).confirm("ORDER_1", 50000, "pk_abc")

    assert result.accepted
    assert result.method == "카드"
    assert seen["url"] == "https://toss.test/v1/payments/confirm"
    assert seen["auth"] == "Basic " + base64.b64encode(b"test_sk_123:").decode()
    assert seen["body"] == {"orderId": "ORDER_1", "amount": 50000, "paymentKey": "pk_abc"}


@pytest.mark.asyncio
async def test_toss_client_error_is_a_decline():
    def handler(request):
        return httpx.Response(400, json={"code": "REJECT_CARD_COMPANY", "message": "card company refused"})

    result = await toss_with(handler).confirm("ORDER_1", 50000, "pk")
    assert not result.accepted
    assert result.message == "card company refused"
    assert result.raw["code"] == "REJECT_CARD_COMPANY"


@pytest.mark.asyncio
async def test_toss_server_error_is_unavailable():
    def handler(request):
        return httpx.Response(503, text="maintenance")

    with pytest.raises(GatewayUnavailableError):
        await toss_with(handler).confirm("ORDER_1", 50000, "pk")


@pytest.mark.asyncio
async def test_toss_transport_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(GatewayUnavailableError):
        await toss_with(handler).confirm("ORDER_1", 50000, "pk")


@pytest.mark.asyncio
async def test_toss_non_object_error_body_is_a_decline():
    def handler(request):
        return httpx.Response(400, json=["unexpected"])

    result = await toss_with(handler).confirm("ORDER_1", 50000, "pk")
    assert not result.accepted
    assert result.message == "Payment was declined"
    assert result.raw == {"body": '["unexpected"]'}


def already_processed_then(lookup_status, lookup_body):
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path))
        if request.method == "POST":
            return httpx.Response(400, json={"code": "ALREADY_PROCESSED_PAYMENT", "message": "already processed"})
        return httpx.Response(lookup_status, json=lookup_body)

    return handler, seen


@pytest.mark.asyncio
async def test_toss_already_processed_is_accepted_when_lookup_is_done():
    handler, seen = already_processed_then(
        200, {"status": "DONE", "orderId": "ORDER_1", "totalAmount": 50000, "method": "card"}
    )

    result = await toss_with(handler).confirm("ORDER_1", 50000, "pk_abc")

    assert result.accepted
    assert result.raw["status"] == "DONE"
    assert seen == [("POST", "/v1/payments/confirm"), ("GET", "/v1/payments/pk_abc")]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, body",
    [
        (200, {"status": "CANCELED", "orderId": "ORDER_1", "totalAmount": 50000}),
        (200, {"status": "DONE", "orderId": "ORDER_other", "totalAmount": 50000}),
        (200, {"status": "DONE", "orderId": "ORDER_1", "totalAmount": 1000}),
        (404, {"code": "NOT_FOUND_PAYMENT"}),
    ],
)
async def test_toss_already_processed_without_matching_lookup_is_unavailable(status, body):
    handler, _ = already_processed_then(status, body)
    with pytest.raises(GatewayUnavailableError):
        await toss_with(handler).confirm("ORDER_1", 50000, "pk_abc")


def test_toss_requires_secret_key():
    with pytest.raises(RuntimeError):
        TossPaymentsGateway("")


def _intent(**overrides):
    intent = {
        "id": "pi_1",
        "status": "succeeded",
        "amount": 50000,
        "currency": "krw",
        "metadata": {"order_id": "ORDER_1"},
    }
    intent.update(overrides)
    return intent


@pytest.mark.asyncio
async def test_stripe_succeeded_intent_is_accepted(monkeypatch):
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", lambda key, api_key=None: _intent())
    result = await StripePaymentGateway("sk_test").confirm("ORDER_1", 50000, "pi_1")
    assert result.accepted
    assert result.raw["id"] == "pi_1"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"status": "requires_payment_method"},
        {"amount": 1000},
        {"metadata": {"order_id": "ORDER_other"}},
    ],
)
async def test_stripe_mismatching_intent_is_declined(monkeypatch, overrides):
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", lambda key, api_key=None: _intent(**overrides))
    result = await StripePaymentGateway("sk_test").confirm("ORDER_1", 50000, "pi_1")
    assert not result.accepted


@pytest.mark.asyncio
async def test_stripe_connection_error_is_unavailable(monkeypatch):
    def boom(key, api_key=None):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", boom)
    with pytest.raises(GatewayUnavailableError):
        await StripePaymentGateway("sk_test").confirm("ORDER_1", 50000, "pi_1")


@pytest.mark.asyncio
async def test_stripe_unknown_intent_is_declined(monkeypatch):
    def missing(key, api_key=None):
        raise stripe.InvalidRequestError("No such payment_intent", "id")

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", missing)
    result = await StripePaymentGateway("sk_test").confirm("ORDER_1", 50000, "pi_missing")
    assert not result.accepted


def test_gateway_selection(monkeypatch):
    monkeypatch.setattr(payment_gateway, "TOSS_SECRET_KEY", "test_sk")
    monkeypatch.setattr(payment_gateway, "STRIPE_SECRET_KEY", "")

    # conftest enables TEST_MODE
    assert isinstance(build_payment_gateway("mock"), MockPaymentGateway)
    assert isinstance(build_payment_gateway("toss"), TossPaymentsGateway)
    with pytest.raises(RuntimeError):
        build_payment_gateway("stripe")
    with pytest.raises(RuntimeError):
        build_payment_gateway("paypal")


def test_mock_gateway_needs_test_mode(monkeypatch):
    monkeypatch.setattr(payment_gateway, "TEST_MODE", False)
    with pytest.raises(RuntimeError):
        build_payment_gateway("mock")
