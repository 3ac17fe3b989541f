"""Enumerated domain values shared by models, schemas and state machines."""

from enum import Enum


class BookingStatus(str, Enum):
    """Booking lifecycle stage."""

    REQUESTED = "requested"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"
    # Kept for stored data compatibility; no transition leads here.
    AWAITING_PAYMENT = "awaiting_payment"


class PaymentStatus(str, Enum):
    """Whether the booking amount has been collected."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    """How the farmer intends to pay."""

    CASH = "cash"
    LATER = "later"


class ActorRole(str, Enum):
    """Role a user acts under."""

    FARMER = "farmer"
    DRIVER = "driver"
    ADMIN = "admin"


class BookingAction(str, Enum):
    """User-requested booking lifecycle action."""

    ACCEPT = "accept"
    REJECT = "reject"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


class NotificationCategory(str, Enum):
    """In-app notification grouping."""

    BOOKING_UPDATE = "booking_update"
    PAYMENT = "payment"
    SYSTEM = "system"


class Language(str, Enum):
    """Supported interface languages."""

    ENGLISH = "en"
    HINDI = "hi"
    MARATHI = "mr"
