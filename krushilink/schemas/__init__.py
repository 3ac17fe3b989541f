"""Pydantic schemas for API validation."""

from krushilink.schemas.booking import (
    BookingActionRequest,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    PaymentRecordRequest,
)
from krushilink.schemas.equipment import EquipmentCreate, EquipmentResponse, EquipmentUpdate
from krushilink.schemas.notification import NotificationListResponse, NotificationResponse
from krushilink.schemas.payment import (
    CashConfirmRequest,
    RazorpayFailureRequest,
    RazorpayOrderRequest,
    RazorpayOrderResponse,
    RazorpayVerifyRequest,
)
from krushilink.schemas.reporting import (
    AuditLogResponse,
    DashboardResponse,
    DriverDetailResponse,
    EarningsResponse,
    NearbyDriver,
)
from krushilink.schemas.review import ReviewCreate, ReviewResponse
from krushilink.schemas.user import (
    AvailabilityUpdate,
    DriverProfileUpdate,
    FarmerProfileUpdate,
    PublicUserResponse,
    PushTokenRegister,
    RoleSelect,
    UserResponse,
    UserUpdate,
)

__all__ = [
    # Booking
    "BookingActionRequest",
    "BookingCreate",
    "BookingListResponse",
    "BookingResponse",
    "PaymentRecordRequest",
    # Equipment
    "EquipmentCreate",
    "EquipmentResponse",
    "EquipmentUpdate",
    # Notification
    "NotificationListResponse",
    "NotificationResponse",
    # Payment
    "CashConfirmRequest",
    "RazorpayFailureRequest",
    "RazorpayOrderRequest",
    "RazorpayOrderResponse",
    "RazorpayVerifyRequest",
    # Reporting
    "AuditLogResponse",
    "DashboardResponse",
    "DriverDetailResponse",
    "EarningsResponse",
    "NearbyDriver",
    # Review
    "ReviewCreate",
    "ReviewResponse",
    # User
    "AvailabilityUpdate",
    "DriverProfileUpdate",
    "FarmerProfileUpdate",
    "PublicUserResponse",
    "PushTokenRegister",
    "RoleSelect",
    "UserResponse",
    "UserUpdate",
]
