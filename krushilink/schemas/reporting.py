"""Discovery, earnings and admin dashboard schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from krushilink.schemas.booking import BookingResponse
from krushilink.schemas.equipment import EquipmentResponse
from krushilink.schemas.user import PublicUserResponse


class NearbyDriver(BaseModel):
    """A bookable driver and how far away they are."""

    driver: PublicUserResponse
    distance_km: float
    latitude: float
    longitude: float
    equipment: list[EquipmentResponse]


class DriverDetailResponse(BaseModel):
    """Public driver profile with active offerings."""

    driver: PublicUserResponse
    equipment: list[EquipmentResponse]


class DailyEarning(BaseModel):
    day: date
    amount: Decimal


class EarningsResponse(BaseModel):
    """Driver earnings summary."""

    total_earnings: Decimal
    paid_earnings: Decimal
    pending_earnings: Decimal
    completed_bookings: int
    daily: list[DailyEarning]


class DashboardResponse(BaseModel):
    """Admin dashboard counters."""

    total_drivers: int
    pending_drivers: int
    total_farmers: int
    active_bookings: int
    unpaid_completed_bookings: int
    recent_bookings: list[BookingResponse]


class AuditLogResponse(BaseModel):
    """Schema for audit log entries."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID | None
    action: str
    resource_type: str
    resource_id: UUID | None
    old_values: dict | None
    new_values: dict | None
    ip_address: str | None
    created_at: datetime
