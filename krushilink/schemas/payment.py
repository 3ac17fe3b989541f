"""Payment-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, Field


class RazorpayOrderRequest(BaseModel):
    """Start checkout for a completed booking."""

    booking_id: UUID


class RazorpayOrderResponse(BaseModel):
    """Everything the checkout widget needs to open."""

    booking_id: UUID
    order_id: str
    amount: int  # paise
    currency: str
    key_id: str | None


class RazorpayVerifyRequest(BaseModel):
    """Signed result handed back by the checkout widget."""

    booking_id: UUID
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class RazorpayFailureRequest(BaseModel):
    """Checkout failure reported by the widget."""

    booking_id: UUID
    reason: str | None = Field(None, max_length=500)
    razorpay_order_id: str | None = None


class CashConfirmRequest(BaseModel):
    """Driver confirming cash was collected in the field."""

    booking_id: UUID
    expected_version: int | None = Field(None, ge=1)
