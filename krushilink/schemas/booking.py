"""Booking-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BookingCreate(BaseModel):
    """Schema for a farmer requesting a service."""

    driver_id: UUID
    equipment_id: UUID
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str = Field(..., max_length=500)
    acreage: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    payment_method: str = Field(default="later", pattern="^(cash|later)$")
    scheduled_time: datetime | None = None
    notes: str | None = Field(None, max_length=1000)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("address is required")
        return v


class BookingActionRequest(BaseModel):
    """Optional body for lifecycle actions."""

    expected_version: int | None = Field(None, ge=1)


class PaymentRecordRequest(BaseModel):
    """Record a collected payment (cash receipt or external reference)."""

    payment_reference: str = Field(..., min_length=1, max_length=100)
    expected_version: int | None = Field(None, ge=1)


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    farmer_id: UUID
    driver_id: UUID
    equipment_id: UUID

    # Service
    service_type: str
    latitude: float
    longitude: float
    address: str
    notes: str | None

    # Pricing
    acreage: Decimal
    price_per_acre: Decimal
    total_price: Decimal

    # Status
    status: str
    version: int

    # Payment
    payment_method: str
    payment_status: str
    payment_due_date: datetime | None
    payment_reference: str | None
    payment_date: datetime | None
    reminder_count: int
    last_reminder_sent: datetime | None

    # Schedule
    requested_time: datetime | None
    scheduled_time: datetime | None
    completed_time: datetime | None

    created_at: datetime | None
    updated_at: datetime | None


class BookingListResponse(BaseModel):
    """Schema for paginated booking list."""

    bookings: list[BookingResponse]
    total: int
    page: int
    page_size: int
