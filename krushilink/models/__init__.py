"""Database models."""

from krushilink.models.admin import AuditLog
from krushilink.models.booking import Booking, PaymentReminder
from krushilink.models.equipment import Equipment
from krushilink.models.notification import Notification
from krushilink.models.review import Review
from krushilink.models.user import User

__all__ = [
    # User
    "User",
    "Equipment",
    # Booking
    "Booking",
    "PaymentReminder",
    # Notification
    "Notification",
    # Review
    "Review",
    # Admin
    "AuditLog",
]
