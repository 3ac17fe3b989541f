"""Payment gateway service.

Routes payment operations to the appropriate gateway adapter.
No business logic here - only gateway coordination.
"""

from decimal import ROUND_HALF_UP, Decimal

from krushilink.config import settings
from krushilink.gateways.base import (
    GatewayType,
    OrderResult,
    PaymentGateway,
    PaymentResult,
)
from krushilink.gateways.cash import CashGateway
from krushilink.gateways.razorpay import RazorpayGateway


def to_minor_units(amount: Decimal) -> int:
    """Rupees to paise."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class GatewayService:
    """Service for managing payment gateway operations."""

    def __init__(self):
        self._gateways: dict[GatewayType, PaymentGateway] = {}

    def _get_gateway(self, gateway_type: str | GatewayType) -> PaymentGateway:
        """Get or create gateway instance."""
        if isinstance(gateway_type, str):
            try:
                gateway_type = GatewayType(gateway_type)
            except ValueError:
                gateway_type = GatewayType.CASH

        if gateway_type not in self._gateways:
            if gateway_type == GatewayType.RAZORPAY:
                self._gateways[gateway_type] = RazorpayGateway()
            else:
                self._gateways[gateway_type] = CashGateway()

        return self._gateways[gateway_type]

    @property
    def checkout_key_id(self) -> str | None:
        """Public key id the checkout widget is opened with."""
        return settings.razorpay_key_id

    async def create_order(
        self,
        gateway_type: str | GatewayType,
        amount: Decimal,
        receipt: str,
        notes: dict | None = None,
    ) -> OrderResult:
        """Create a checkout order for ``amount`` rupees."""
        gateway = self._get_gateway(gateway_type)
        return await gateway.create_order(
            amount=to_minor_units(amount),
            currency=settings.currency,
            receipt=receipt,
            notes=notes,
        )

    async def verify_payment(
        self,
        gateway_type: str | GatewayType,
        order_id: str,
        payment_id: str,
        signature: str,
    ) -> PaymentResult:
        """Verify a checkout result via gateway."""
        gateway = self._get_gateway(gateway_type)
        return await gateway.verify_payment(
            order_id=order_id,
            payment_id=payment_id,
            signature=signature,
        )


gateway_service = GatewayService()
