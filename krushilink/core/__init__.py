"""Core utilities and security modules."""

from krushilink.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    BookingConflict,
    InvalidTransition,
    NotFoundError,
    NotificationFailure,
    PaymentError,
    PersistenceFailure,
    PreconditionFailed,
    ValidationError,
)
from krushilink.core.security import create_access_token, verify_token

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "BookingConflict",
    "InvalidTransition",
    "NotFoundError",
    "NotificationFailure",
    "PaymentError",
    "PersistenceFailure",
    "PreconditionFailed",
    "ValidationError",
    "create_access_token",
    "verify_token",
]
