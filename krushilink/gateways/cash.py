"""Cash payment adapter.

Cash changes hands in the field; the driver confirms receipt and the
booking is settled with a generated reference.
"""

from krushilink.gateways.base import (
    GatewayType,
    OrderResult,
    PaymentGateway,
    PaymentResult,
)


class CashGateway(PaymentGateway):
    """Offline cash collection. Nothing is sent anywhere."""

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.CASH

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> OrderResult:
        """Create a cash collection reference (always succeeds)."""
        return OrderResult(
            success=True,
            order_id=f"cash_{receipt}",
            amount=amount,
            currency=currency,
            raw_response={"type": "cash", "status": "awaiting_collection"},
        )

    async def verify_payment(
        self,
        order_id: str,
        payment_id: str,
        signature: str,
    ) -> PaymentResult:
        """Cash is confirmed by the driver, so there is nothing to check."""
        return PaymentResult(
            success=True,
            transaction_id=payment_id or order_id,
            raw_response={"type": "cash", "status": "collected"},
        )
