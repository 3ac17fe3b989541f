"""Payment status tracker.

Payment status moves independently of booking status, but every operation
here requires the booking to be ``completed``.

    pending -> paid                      record_payment
    pending -> failed                    record_payment_failure
    failed  -> pending                   reopen_payment
    pending -> pending (count + 1)       send_reminder
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal

from krushilink.domain import notification_templates as templates
from krushilink.domain.effects import (
    Applied,
    BookingSnapshot,
    Notify,
    Outcome,
    RecordReminder,
    Rejected,
    RejectionReason,
    SettleReminder,
    persist,
)
from krushilink.domain.enums import ActorRole, BookingStatus, NotificationCategory, PaymentStatus

DEFAULT_REMINDER_DUE_DAYS = 15


def _check_payable(
    booking: BookingSnapshot,
    operation: str,
    required: PaymentStatus = PaymentStatus.PENDING,
) -> Rejected | None:
    if booking.status is not BookingStatus.COMPLETED:
        return Rejected(
            RejectionReason.PRECONDITION_FAILED,
            f"Cannot {operation}: booking is {booking.status.value}, not completed",
        )
    if booking.payment_status is not required:
        return Rejected(
            RejectionReason.PRECONDITION_FAILED,
            f"Cannot {operation}: payment is {booking.payment_status.value}, "
            f"not {required.value}",
        )
    return None


def record_payment(booking: BookingSnapshot, payment_reference: str, now: datetime) -> Outcome:
    """Mark a completed booking's pending payment as paid.

    Notifies the farmer (payer) and the driver (payee).
    """
    rejected = _check_payable(booking, "record payment")
    if rejected:
        return rejected

    reference = (payment_reference or "").strip()
    if not reference:
        return Rejected(RejectionReason.INVALID_INPUT, "Payment reference is required")

    updated = replace(
        booking,
        payment_status=PaymentStatus.PAID,
        payment_reference=reference,
        payment_date=now,
        updated_at=now,
        version=booking.version + 1,
    )

    notifications = []
    for recipient_id, role in (
        (booking.farmer_id, ActorRole.FARMER),
        (booking.driver_id, ActorRole.DRIVER),
    ):
        title, body = templates.payment_confirmation_message(
            booking.total_price, booking.service_type, role
        )
        notifications.append(
            Notify(
                recipient_id=recipient_id,
                title=title,
                body=body,
                category=NotificationCategory.PAYMENT,
                related_id=booking.id,
            )
        )

    return Applied(
        booking=updated,
        effects=(persist(booking, updated), SettleReminder(booking.id), *notifications),
    )


def send_reminder(
    booking: BookingSnapshot,
    now: datetime,
    max_reminders: int | None = None,
    default_due_days: int = DEFAULT_REMINDER_DUE_DAYS,
) -> Outcome:
    """Nudge the farmer about a pending payment.

    Args:
        booking: Current stored state
        now: Timestamp of this reminder
        max_reminders: Cap on reminders per booking; None means unlimited
        default_due_days: Due date offset applied when the booking has none

    Returns:
        Applied incrementing ``reminder_count`` by one, or Rejected.
    """
    rejected = _check_payable(booking, "send payment reminder")
    if rejected:
        return rejected

    if max_reminders is not None and booking.reminder_count >= max_reminders:
        return Rejected(
            RejectionReason.PRECONDITION_FAILED,
            f"Reminder limit of {max_reminders} reached for this booking",
        )

    count = booking.reminder_count + 1
    due_date = booking.payment_due_date or now + timedelta(days=default_due_days)
    updated = replace(
        booking,
        reminder_count=count,
        last_reminder_sent=now,
        payment_due_date=due_date,
        updated_at=now,
        version=booking.version + 1,
    )

    title, body = templates.payment_reminder_message(booking.total_price, booking.service_type, count)
    return Applied(
        booking=updated,
        effects=(
            persist(booking, updated),
            RecordReminder(
                booking_id=booking.id,
                farmer_id=booking.farmer_id,
                driver_id=booking.driver_id,
                amount=Decimal(booking.total_price),
                due_date=due_date,
                reminder_count=count,
                sent_at=now,
            ),
            Notify(
                recipient_id=booking.farmer_id,
                title=title,
                body=body,
                category=NotificationCategory.PAYMENT,
                related_id=booking.id,
            ),
        ),
    )


def record_payment_failure(booking: BookingSnapshot, now: datetime) -> Outcome:
    """Mark a pending payment as failed and tell the farmer to retry."""
    rejected = _check_payable(booking, "record payment failure")
    if rejected:
        return rejected

    updated = replace(
        booking,
        payment_status=PaymentStatus.FAILED,
        updated_at=now,
        version=booking.version + 1,
    )
    title, body = templates.payment_failure_message(booking.total_price, booking.service_type)
    return Applied(
        booking=updated,
        effects=(
            persist(booking, updated),
            Notify(
                recipient_id=booking.farmer_id,
                title=title,
                body=body,
                category=NotificationCategory.PAYMENT,
                related_id=booking.id,
            ),
        ),
    )


def reopen_payment(booking: BookingSnapshot, now: datetime) -> Outcome:
    """Return a failed payment to pending so checkout can be retried."""
    rejected = _check_payable(booking, "reopen payment", required=PaymentStatus.FAILED)
    if rejected:
        return rejected

    updated = replace(
        booking,
        payment_status=PaymentStatus.PENDING,
        updated_at=now,
        version=booking.version + 1,
    )
    return Applied(booking=updated, effects=(persist(booking, updated),))
