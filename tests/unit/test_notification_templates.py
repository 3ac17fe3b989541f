"""
Unit tests for notification copy.
"""
from decimal import Decimal

import pytest

from krushilink.domain.enums import ActorRole, BookingStatus
from krushilink.domain.notification_templates import (
    booking_status_message,
    format_amount,
    payment_failure_message,
    payment_reminder_message,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "amount,expected",
    [
        (Decimal("500.00"), "₹500"),
        (Decimal("499.50"), "₹499.5"),
        (Decimal("1200"), "₹1200"),
        (Decimal("0.25"), "₹0.25"),
    ],
)
def test_format_amount(amount, expected):
    assert format_amount(amount) == expected


@pytest.mark.unit
def test_every_lifecycle_status_has_copy_for_both_parties():
    for status in (
        BookingStatus.ACCEPTED,
        BookingStatus.REJECTED,
        BookingStatus.IN_PROGRESS,
        BookingStatus.COMPLETED,
        BookingStatus.CANCELED,
    ):
        for recipient in (ActorRole.FARMER, ActorRole.DRIVER):
            title, body = booking_status_message(status, recipient)
            assert title != "Booking Update"
            assert body


@pytest.mark.unit
def test_unknown_status_falls_back_to_generic_update():
    title, body = booking_status_message(BookingStatus.AWAITING_PAYMENT, ActorRole.FARMER)

    assert title == "Booking Update"
    assert body == "Your booking status has been updated to: awaiting_payment"


@pytest.mark.unit
def test_reminder_message():
    title, body = payment_reminder_message(Decimal("750.00"), "Rotavator", 1)

    assert title == "Payment Due"
    assert body == (
        "Payment of ₹750 is due for the Rotavator service. "
        "Please make the payment at your earliest convenience."
    )
    assert payment_reminder_message(Decimal("750.00"), "Rotavator", 3)[0] == "Reminder #3: Payment Due"


@pytest.mark.unit
def test_failure_message_mentions_amount():
    title, body = payment_failure_message(Decimal("99.90"), "Sowing")

    assert title == "Payment Failed"
    assert "₹99.9" in body
