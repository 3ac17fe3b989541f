"""User-facing notification copy for booking and payment events."""

from decimal import Decimal

from krushilink.domain.enums import ActorRole, BookingStatus

CURRENCY_SYMBOL = "₹"

# status -> recipient role -> (title, body)
BOOKING_STATUS_MESSAGES: dict[BookingStatus, dict[ActorRole, tuple[str, str]]] = {
    BookingStatus.ACCEPTED: {
        ActorRole.FARMER: ("Booking Accepted", "Your booking request has been accepted by the driver."),
        ActorRole.DRIVER: ("New Booking", "You have accepted a new booking request."),
    },
    BookingStatus.REJECTED: {
        ActorRole.FARMER: ("Booking Rejected", "Your booking request has been rejected by the driver."),
        ActorRole.DRIVER: ("Booking Declined", "You have declined a booking request."),
    },
    BookingStatus.IN_PROGRESS: {
        ActorRole.FARMER: ("Service Started", "Your booked service has started."),
        ActorRole.DRIVER: ("Service Started", "You have started the service."),
    },
    BookingStatus.COMPLETED: {
        ActorRole.FARMER: (
            "Service Completed",
            "Your service has been marked as completed. Please provide payment.",
        ),
        ActorRole.DRIVER: ("Service Completed", "You have completed the service. Payment is pending."),
    },
    BookingStatus.CANCELED: {
        ActorRole.FARMER: ("Booking Canceled", "You have canceled your booking."),
        ActorRole.DRIVER: ("Booking Canceled", "The farmer has canceled a booking with you."),
    },
}

DRIVER_CANCELED_MESSAGE = ("Booking Canceled", "The driver has canceled your booking.")


def format_amount(amount: Decimal) -> str:
    """Render a rupee amount without trailing zeros, e.g. ``₹500`` or ``₹499.5``."""
    value = Decimal(amount).quantize(Decimal("0.01")).normalize()
    return f"{CURRENCY_SYMBOL}{value:f}"


def booking_status_message(
    status: BookingStatus,
    recipient: ActorRole,
    actor: ActorRole | None = None,
) -> tuple[str, str]:
    """Title and body telling ``recipient`` that a booking moved to ``status``."""
    if status is BookingStatus.CANCELED and actor is ActorRole.DRIVER and recipient is ActorRole.FARMER:
        return DRIVER_CANCELED_MESSAGE

    messages = BOOKING_STATUS_MESSAGES.get(status)
    if messages and recipient in messages:
        return messages[recipient]
    return "Booking Update", f"Your booking status has been updated to: {status.value}"


def payment_reminder_message(total_price: Decimal, service_type: str, reminder_number: int) -> tuple[str, str]:
    title = "Payment Due"
    if reminder_number > 1:
        title = f"Reminder #{reminder_number}: {title}"
    body = (
        f"Payment of {format_amount(total_price)} is due for the {service_type} service. "
        "Please make the payment at your earliest convenience."
    )
    return title, body


def payment_confirmation_message(
    total_price: Decimal,
    service_type: str,
    recipient: ActorRole,
) -> tuple[str, str]:
    amount = format_amount(total_price)
    if recipient is ActorRole.DRIVER:
        body = f"You have received a payment of {amount} for the {service_type} service."
    else:
        body = f"Your payment of {amount} for the {service_type} service has been processed successfully."
    return "Payment Successful", body


def payment_failure_message(total_price: Decimal, service_type: str) -> tuple[str, str]:
    return (
        "Payment Failed",
        f"Your payment of {format_amount(total_price)} for the {service_type} service "
        "could not be completed. Please try again.",
    )
