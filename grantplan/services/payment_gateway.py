# FILE: grantplan/services/payment_gateway.py
"""Payment gateway clients.

`confirm()` returns a `GatewayResult` when the gateway answered (accepted or
declined) and raises `GatewayUnavailableError` when it did not answer in a
usable way, so the caller can leave the payment pending.
"""

import asyncio
import base64
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
import stripe

from grantplan.core.config import (
    GATEWAY_TIMEOUT_SECONDS,
    LOG_DIR,
    PAYMENT_GATEWAY,
    STRIPE_SECRET_KEY,
    TEST_MODE,
    TOSS_API_BASE,
    TOSS_SECRET_KEY,
)
from grantplan.services.errors import GatewayUnavailableError

os.makedirs(LOG_DIR, exist_ok=True)
gateway_logger = logging.getLogger("grantplan.gateway")
if not gateway_logger.handlers:
    handler = logging.FileHandler(os.path.join(LOG_DIR, "gateway.log"))
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    handler.setFormatter(formatter)
    gateway_logger.setLevel(logging.INFO)
    gateway_logger.addHandler(handler)


@dataclass
class GatewayResult:
    accepted: bool
    method: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None


class PaymentGateway:
    name = "base"

    async def confirm(self, order_id: str, amount: int, payment_key: str) -> GatewayResult:
        raise NotImplementedError


# ─────────────────────────────────────────────
# TOSS PAYMENTS
# ─────────────────────────────────────────────

ALREADY_PROCESSED = "ALREADY_PROCESSED_PAYMENT"


class TossPaymentsGateway(PaymentGateway):
    name = "toss"

    def __init__(self, secret_key: str, api_base: str = TOSS_API_BASE,
                 timeout: float = GATEWAY_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        if not secret_key:
            raise RuntimeError("TOSS_SECRET_KEY is not configured")
        self.secret_key = secret_key
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        # Basic auth with the secret key as user name and an empty password
        token = base64.b64encode(f"{self.secret_key}:".encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {token}", "Content-Type": "application/json"}

    @staticmethod
    def _body(resp: httpx.Response) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError:
            return {"body": resp.text}
        return data if isinstance(data, dict) else {"body": resp.text}

    async def confirm(self, order_id: str, amount: int, payment_key: str) -> GatewayResult:
        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                resp = await client.post(
                    f"{self.api_base}/v1/payments/confirm",
                    json={"orderId": order_id, "amount": amount, "paymentKey": payment_key},
                    headers=self._headers(),
                    timeout=self.timeout,
                )
                data = self._body(resp)
                if resp.status_code == 400 and data.get("code") == ALREADY_PROCESSED:
                    # an earlier attempt may have gone through before timing out
                    return await self._lookup(client, order_id, amount, payment_key)
        except httpx.HTTPError as exc:
            gateway_logger.error("Toss confirm transport error order=%s", order_id, exc_info=exc)
            raise GatewayUnavailableError() from exc

        if resp.status_code >= 500:
            gateway_logger.error("Toss confirm %s order=%s body=%s", resp.status_code, order_id, data)
            raise GatewayUnavailableError()

        if resp.status_code >= 400:
            message = data.get("message") or "Payment was declined"
            gateway_logger.warning(
                "Toss declined order=%s code=%s message=%s", order_id, data.get("code"), message
            )
            return GatewayResult(accepted=False, raw=data, message=message)

        gateway_logger.info("Toss accepted order=%s method=%s", order_id, data.get("method"))
        return GatewayResult(accepted=True, method=data.get("method") or "card", raw=data)

    async def _lookup(self, client: httpx.AsyncClient, order_id: str, amount: int,
                      payment_key: str) -> GatewayResult:
        """Accept an already processed payment only if Toss shows it DONE for this order."""
        resp = await client.get(
            f"{self.api_base}/v1/payments/{payment_key}",
            headers=self._headers(),
            timeout=self.timeout,
        )
        data = self._body(resp)
        if (
            resp.status_code == 200
            and data.get("status") == "DONE"
            and data.get("orderId") == order_id
            and data.get("totalAmount") == amount
        ):
            gateway_logger.info("Toss payment already done order=%s method=%s", order_id, data.get("method"))
            return GatewayResult(accepted=True, method=data.get("method") or "card", raw=data)

        gateway_logger.error(
            "Toss reported already processed but lookup does not match order=%s status=%s body=%s",
            order_id, resp.status_code, data,
        )
        raise GatewayUnavailableError()


# ─────────────────────────────────────────────
# STRIPE
# ─────────────────────────────────────────────

class StripePaymentGateway(PaymentGateway):
    """`payment_key` is the id of a PaymentIntent created by the frontend."""

    name = "stripe"

    def __init__(self, secret_key: str):
        if not secret_key:
            raise RuntimeError("STRIPE_SECRET_KEY is not configured")
        self.secret_key = secret_key

    async def confirm(self, order_id: str, amount: int, payment_key: str) -> GatewayResult:
        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.retrieve, payment_key, api_key=self.secret_key
            )
        except stripe.InvalidRequestError as exc:
            gateway_logger.warning("Stripe rejected payment key order=%s: %s", order_id, exc)
            return GatewayResult(accepted=False, raw={"error": str(exc)}, message="Unknown payment")
        except stripe.StripeError as exc:
            # auth / rate limit / connection problems: nothing was decided yet
            gateway_logger.error("Stripe retrieve failed order=%s", order_id, exc_info=exc)
            raise GatewayUnavailableError() from exc

        metadata = intent.get("metadata") or {}
        raw = {
            "id": intent.get("id"),
            "status": intent.get("status"),
            "amount": intent.get("amount"),
            "currency": intent.get("currency"),
            "metadata": dict(metadata),
        }

        if intent.get("status") != "succeeded":
            gateway_logger.warning("Stripe intent not succeeded order=%s status=%s", order_id, raw["status"])
            return GatewayResult(accepted=False, raw=raw, message=f"Payment status is {raw['status']}")
        if int(intent.get("amount") or 0) != amount or metadata.get("order_id") != order_id:
            gateway_logger.warning("Stripe intent does not match order=%s raw=%s", order_id, raw)
            return GatewayResult(accepted=False, raw=raw, message="Payment does not match the order")

        gateway_logger.info("Stripe accepted order=%s intent=%s", order_id, raw["id"])
        return GatewayResult(accepted=True, method="card", raw=raw)


# ─────────────────────────────────────────────
# MOCK (TEST_MODE)
# ─────────────────────────────────────────────

class MockPaymentGateway(PaymentGateway):
    name = "mock"

    async def confirm(self, order_id: str, amount: int, payment_key: str) -> GatewayResult:
        gateway_logger.info("Mock accepted order=%s amount=%s", order_id, amount)
        return GatewayResult(
            accepted=True,
            method="card",
            raw={"orderId": order_id, "amount": amount, "paymentKey": payment_key, "test_mode": True},
        )


_gateway: Optional[PaymentGateway] = None


def build_payment_gateway(kind: str = PAYMENT_GATEWAY) -> PaymentGateway:
    if kind == "mock":
        if not TEST_MODE:
            raise RuntimeError("The mock payment gateway is only available in TEST_MODE")
        return MockPaymentGateway()
    if kind == "stripe":
        return StripePaymentGateway(STRIPE_SECRET_KEY)
    if kind == "toss":
        return TossPaymentsGateway(TOSS_SECRET_KEY)
    raise RuntimeError(f"Unknown PAYMENT_GATEWAY: {kind}")


def get_payment_gateway() -> PaymentGateway:
    global _gateway
    if _gateway is None:
        _gateway = build_payment_gateway()
    return _gateway
