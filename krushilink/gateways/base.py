"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class GatewayType(str, Enum):
    """Supported payment gateways."""

    RAZORPAY = "razorpay"
    CASH = "cash"


@dataclass
class OrderResult:
    """Result of creating a checkout order."""

    success: bool
    order_id: str | None = None
    amount: int | None = None  # paise
    currency: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


@dataclass
class PaymentResult:
    """Result of verifying a payment."""

    success: bool
    transaction_id: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""

    @abstractmethod
    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> OrderResult:
        """Create a checkout order.

        Args:
            amount: Amount in smallest currency unit (paise)
            currency: Currency code (INR)
            receipt: Internal reference (booking id)
            notes: Additional metadata shown in the gateway dashboard

        Returns:
            OrderResult with the gateway order id
        """

    @abstractmethod
    async def verify_payment(
        self,
        order_id: str,
        payment_id: str,
        signature: str,
    ) -> PaymentResult:
        """Verify the signed result of a checkout.

        Args:
            order_id: Gateway order id from ``create_order``
            payment_id: Gateway payment id returned by checkout
            signature: Signature returned by checkout

        Returns:
            PaymentResult; ``raw_response`` carries the gateway's order record
        """
