"""Booking state machine."""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime

from krushilink.domain import notification_templates as templates
from krushilink.domain.effects import (
    Applied,
    BookingSnapshot,
    Notify,
    Outcome,
    Rejected,
    RejectionReason,
    persist,
)
from krushilink.domain.enums import (
    ActorRole,
    BookingAction,
    BookingStatus,
    NotificationCategory,
    PaymentMethod,
    PaymentStatus,
)

# (from, action) -> (to, role allowed to perform it)
BOOKING_TRANSITIONS: dict[tuple[BookingStatus, BookingAction], tuple[BookingStatus, ActorRole]] = {
    (BookingStatus.REQUESTED, BookingAction.ACCEPT): (BookingStatus.ACCEPTED, ActorRole.DRIVER),
    (BookingStatus.REQUESTED, BookingAction.REJECT): (BookingStatus.REJECTED, ActorRole.DRIVER),
    (BookingStatus.REQUESTED, BookingAction.CANCEL): (BookingStatus.CANCELED, ActorRole.FARMER),
    (BookingStatus.ACCEPTED, BookingAction.START): (BookingStatus.IN_PROGRESS, ActorRole.DRIVER),
    (BookingStatus.ACCEPTED, BookingAction.CANCEL): (BookingStatus.CANCELED, ActorRole.DRIVER),
    (BookingStatus.IN_PROGRESS, BookingAction.COMPLETE): (BookingStatus.COMPLETED, ActorRole.DRIVER),
}

TERMINAL_STATUSES = frozenset(
    {BookingStatus.REJECTED, BookingStatus.CANCELED, BookingStatus.COMPLETED}
)

# Statuses a booking counts as "active" in dashboards and driver queues.
ACTIVE_STATUSES = frozenset(
    {BookingStatus.REQUESTED, BookingStatus.ACCEPTED, BookingStatus.IN_PROGRESS}
)


def next_status(
    current: BookingStatus,
    actor: ActorRole,
    action: BookingAction,
) -> BookingStatus | None:
    """Target status for ``action`` by ``actor``, or None when not allowed."""
    rule = BOOKING_TRANSITIONS.get((current, action))
    if rule is None:
        return None
    target, allowed_role = rule
    if actor is not allowed_role:
        return None
    return target


def allowed_actions(current: BookingStatus, actor: ActorRole) -> list[BookingAction]:
    """Actions ``actor`` may take on a booking in ``current``."""
    return [
        action
        for (status, action), (_, role) in BOOKING_TRANSITIONS.items()
        if status is current and role is actor
    ]


def _counterpart(booking: BookingSnapshot, actor: ActorRole) -> tuple[uuid.UUID, ActorRole]:
    if actor is ActorRole.DRIVER:
        return booking.farmer_id, ActorRole.FARMER
    return booking.driver_id, ActorRole.DRIVER


def transition(
    booking: BookingSnapshot,
    actor: ActorRole,
    action: BookingAction,
    now: datetime,
) -> Outcome:
    """Decide the result of ``actor`` requesting ``action`` on ``booking``.

    Args:
        booking: Current stored state
        actor: Role the requesting user holds on this booking
        action: Requested lifecycle action
        now: Timestamp for the change

    Returns:
        Applied with the next state, a compare-and-swap write and a
        notification to the other party; or Rejected(INVALID_TRANSITION).
    """
    target = next_status(booking.status, actor, action)
    if target is None:
        return Rejected(
            RejectionReason.INVALID_TRANSITION,
            f"Cannot {action.value} a booking that is {booking.status.value} "
            f"when acting as {actor.value}",
        )

    updated = replace(
        booking,
        status=target,
        updated_at=now,
        version=booking.version + 1,
    )
    if target is BookingStatus.COMPLETED:
        updated = replace(updated, completed_time=booking.completed_time or now)
        if booking.payment_method is PaymentMethod.LATER:
            updated = replace(updated, payment_status=PaymentStatus.PENDING)

    recipient_id, recipient_role = _counterpart(booking, actor)
    title, body = templates.booking_status_message(target, recipient_role, actor)

    return Applied(
        booking=updated,
        effects=(
            persist(booking, updated),
            Notify(
                recipient_id=recipient_id,
                title=title,
                body=body,
                category=NotificationCategory.BOOKING_UPDATE,
                related_id=booking.id,
            ),
        ),
    )
