"""Razorpay payment gateway adapter.

Orders are created server-side; the mobile/web checkout widget collects the
payment and returns ``razorpay_payment_id`` and ``razorpay_signature``, which
are verified here with the key secret.
Documentation: https://razorpay.com/docs/api/orders/
"""

import hashlib
import hmac
import logging

import httpx

from krushilink.config import settings
from krushilink.gateways.base import (
    GatewayType,
    OrderResult,
    PaymentGateway,
    PaymentResult,
)

logger = logging.getLogger(__name__)


def _json_body(response: httpx.Response) -> dict:
    """Decoded JSON object, or {} when the body is an error page or empty."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class RazorpayGateway(PaymentGateway):
    """Razorpay Orders API implementation."""

    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        api_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.key_id = key_id or settings.razorpay_key_id
        self.key_secret = key_secret or settings.razorpay_key_secret
        self.api_url = (api_url or settings.razorpay_api_url).rstrip("/")
        self.transport = transport

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.RAZORPAY

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def generate_signature(self, order_id: str, payment_id: str) -> str:
        """HMAC-SHA256 of ``order_id|payment_id`` keyed with the secret."""
        message = f"{order_id}|{payment_id}".encode()
        return hmac.new(self.key_secret.encode(), message, hashlib.sha256).hexdigest()

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> OrderResult:
        """Create a Razorpay order."""
        if not self.is_configured:
            return OrderResult(success=False, error_message="Razorpay credentials not configured")

        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt[:40],
            "notes": notes or {},
        }
        try:
            async with httpx.AsyncClient(timeout=15.0, transport=self.transport) as client:
                response = await client.post(
                    f"{self.api_url}/orders",
                    json=payload,
                    auth=(self.key_id, self.key_secret),
                )
        except httpx.HTTPError as e:
            logger.error(f"Razorpay order creation failed: {e}")
            return OrderResult(success=False, error_message=str(e))

        data = _json_body(response)
        if response.status_code != 200 or "id" not in data:
            error = data.get("error")
            message = (error.get("description") if isinstance(error, dict) else None) or (
                f"Order creation failed (HTTP {response.status_code})"
            )
            logger.warning(f"Razorpay rejected order for {receipt}: {message}")
            return OrderResult(success=False, error_message=message, raw_response=data)

        return OrderResult(
            success=True,
            order_id=data["id"],
            amount=data["amount"],
            currency=data["currency"],
            raw_response=data,
        )

    async def fetch_order(self, order_id: str) -> dict | None:
        """Fetch an order record, or None if it cannot be read."""
        try:
            async with httpx.AsyncClient(timeout=15.0, transport=self.transport) as client:
                response = await client.get(
                    f"{self.api_url}/orders/{order_id}",
                    auth=(self.key_id, self.key_secret),
                )
        except httpx.HTTPError as e:
            logger.error(f"Razorpay order fetch failed: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"Razorpay order fetch for {order_id} returned HTTP {response.status_code}")
            return None
        return _json_body(response) or None

    async def verify_payment(
        self,
        order_id: str,
        payment_id: str,
        signature: str,
    ) -> PaymentResult:
        """Check the checkout signature, then load the order it belongs to."""
        if not self.is_configured:
            return PaymentResult(success=False, error_message="Razorpay credentials not configured")

        expected = self.generate_signature(order_id, payment_id)
        if not hmac.compare_digest(expected, signature):
            return PaymentResult(
                success=False,
                transaction_id=payment_id,
                error_message="Invalid payment signature",
            )

        order = await self.fetch_order(order_id)
        if order is None:
            return PaymentResult(
                success=False,
                transaction_id=payment_id,
                error_message="Could not load payment order",
            )

        return PaymentResult(success=True, transaction_id=payment_id, raw_response=order)
