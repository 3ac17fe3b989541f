"""
Unit tests for the booking state machine.
"""
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from itertools import product
from uuid import uuid4

import pytest

from krushilink.domain import booking_state
from krushilink.domain.booking_state import BOOKING_TRANSITIONS, TERMINAL_STATUSES
from krushilink.domain.effects import (
    Applied,
    BookingSnapshot,
    Notify,
    PersistBooking,
    Rejected,
    RejectionReason,
)
from krushilink.domain.enums import (
    ActorRole,
    BookingAction,
    BookingStatus,
    NotificationCategory,
    PaymentMethod,
    PaymentStatus,
)

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=UTC)
FARMER_ID = uuid4()
DRIVER_ID = uuid4()


def make_snapshot(**overrides) -> BookingSnapshot:
    values = {
        "id": uuid4(),
        "farmer_id": FARMER_ID,
        "driver_id": DRIVER_ID,
        "service_type": "Ploughing",
        "total_price": Decimal("2000.00"),
        "status": BookingStatus.REQUESTED,
        "payment_method": PaymentMethod.LATER,
        "payment_status": PaymentStatus.PENDING,
        "version": 3,
        "updated_at": NOW - timedelta(hours=2),
    }
    values.update(overrides)
    return BookingSnapshot(**values)


VALID = [
    (status, action, target, role)
    for (status, action), (target, role) in BOOKING_TRANSITIONS.items()
]

INVALID = [
    (status, role, action)
    for status, role, action in product(BookingStatus, ActorRole, BookingAction)
    if BOOKING_TRANSITIONS.get((status, action), (None, None))[1] is not role
]


@pytest.mark.unit
def test_transition_table_matches_lifecycle():
    """Exactly the six lifecycle moves are defined."""
    assert set(BOOKING_TRANSITIONS) == {
        (BookingStatus.REQUESTED, BookingAction.ACCEPT),
        (BookingStatus.REQUESTED, BookingAction.REJECT),
        (BookingStatus.REQUESTED, BookingAction.CANCEL),
        (BookingStatus.ACCEPTED, BookingAction.START),
        (BookingStatus.ACCEPTED, BookingAction.CANCEL),
        (BookingStatus.IN_PROGRESS, BookingAction.COMPLETE),
    }


@pytest.mark.unit
@pytest.mark.parametrize("status,action,target,role", VALID)
def test_valid_transition_moves_to_target(status, action, target, role):
    """Each allowed move produces the target status and bumps the version once."""
    booking = make_snapshot(status=status)

    outcome = booking_state.transition(booking, role, action, NOW)

    assert isinstance(outcome, Applied)
    assert outcome.booking.status is target
    assert outcome.booking.version == booking.version + 1
    assert outcome.booking.updated_at == NOW


@pytest.mark.unit
@pytest.mark.parametrize("status,role,action", INVALID)
def test_invalid_transition_is_rejected(status, role, action):
    """Anything outside the table is refused and requests no effects."""
    booking = make_snapshot(status=status)

    outcome = booking_state.transition(booking, role, action, NOW)

    assert isinstance(outcome, Rejected)
    assert outcome.reason is RejectionReason.INVALID_TRANSITION
    assert action.value in outcome.message


@pytest.mark.unit
@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
def test_terminal_statuses_have_no_exits(status):
    for role in ActorRole:
        assert booking_state.allowed_actions(status, role) == []


@pytest.mark.unit
def test_admin_has_no_lifecycle_rights():
    for status in BookingStatus:
        assert booking_state.allowed_actions(status, ActorRole.ADMIN) == []


@pytest.mark.unit
def test_allowed_actions_for_requested_booking():
    assert set(booking_state.allowed_actions(BookingStatus.REQUESTED, ActorRole.DRIVER)) == {
        BookingAction.ACCEPT,
        BookingAction.REJECT,
    }
    assert booking_state.allowed_actions(BookingStatus.REQUESTED, ActorRole.FARMER) == [
        BookingAction.CANCEL
    ]


@pytest.mark.unit
def test_next_status_checks_role():
    assert booking_state.next_status(
        BookingStatus.ACCEPTED, ActorRole.DRIVER, BookingAction.START
    ) is BookingStatus.IN_PROGRESS
    assert booking_state.next_status(
        BookingStatus.ACCEPTED, ActorRole.FARMER, BookingAction.START
    ) is None


@pytest.mark.unit
def test_effects_are_persist_then_notify():
    booking = make_snapshot()

    outcome = booking_state.transition(booking, ActorRole.DRIVER, BookingAction.ACCEPT, NOW)

    persist, notice = outcome.effects
    assert isinstance(persist, PersistBooking)
    assert persist.booking_id == booking.id
    assert persist.expected_version == booking.version
    assert persist.changes == {"status": "accepted", "updated_at": NOW}
    assert isinstance(notice, Notify)
    assert notice.category is NotificationCategory.BOOKING_UPDATE
    assert notice.related_id == booking.id


@pytest.mark.unit
def test_driver_action_notifies_farmer():
    outcome = booking_state.transition(
        make_snapshot(), ActorRole.DRIVER, BookingAction.ACCEPT, NOW
    )

    (notice,) = outcome.notifications
    assert notice.recipient_id == FARMER_ID
    assert notice.title == "Booking Accepted"
    assert notice.body == "Your booking request has been accepted by the driver."


@pytest.mark.unit
def test_farmer_cancel_notifies_driver():
    outcome = booking_state.transition(
        make_snapshot(), ActorRole.FARMER, BookingAction.CANCEL, NOW
    )

    (notice,) = outcome.notifications
    assert outcome.booking.status is BookingStatus.CANCELED
    assert notice.recipient_id == DRIVER_ID
    assert notice.body == "The farmer has canceled a booking with you."


@pytest.mark.unit
def test_driver_cancel_tells_farmer_the_driver_canceled():
    outcome = booking_state.transition(
        make_snapshot(status=BookingStatus.ACCEPTED), ActorRole.DRIVER, BookingAction.CANCEL, NOW
    )

    (notice,) = outcome.notifications
    assert notice.recipient_id == FARMER_ID
    assert notice.body == "The driver has canceled your booking."


@pytest.mark.unit
def test_farmer_cannot_cancel_accepted_booking():
    outcome = booking_state.transition(
        make_snapshot(status=BookingStatus.ACCEPTED), ActorRole.FARMER, BookingAction.CANCEL, NOW
    )

    assert isinstance(outcome, Rejected)


@pytest.mark.unit
def test_complete_sets_completed_time_and_pending_payment():
    booking = make_snapshot(status=BookingStatus.IN_PROGRESS)

    outcome = booking_state.transition(booking, ActorRole.DRIVER, BookingAction.COMPLETE, NOW)

    assert outcome.booking.completed_time == NOW
    assert outcome.booking.payment_status is PaymentStatus.PENDING
    (notice,) = outcome.notifications
    assert notice.title == "Service Completed"
    assert notice.body == "Your service has been marked as completed. Please provide payment."


@pytest.mark.unit
def test_completed_time_only_set_on_completion():
    booking = make_snapshot(status=BookingStatus.ACCEPTED)

    outcome = booking_state.transition(booking, ActorRole.DRIVER, BookingAction.START, NOW)

    assert outcome.booking.completed_time is None
    assert "completed_time" not in outcome.effects[0].changes


@pytest.mark.unit
def test_cash_booking_completion_leaves_payment_untouched():
    booking = make_snapshot(status=BookingStatus.IN_PROGRESS, payment_method=PaymentMethod.CASH)

    outcome = booking_state.transition(booking, ActorRole.DRIVER, BookingAction.COMPLETE, NOW)

    assert outcome.booking.payment_status is PaymentStatus.PENDING
    assert "payment_status" not in outcome.effects[0].changes


@pytest.mark.unit
def test_transition_does_not_mutate_input():
    booking = make_snapshot()

    booking_state.transition(booking, ActorRole.DRIVER, BookingAction.REJECT, NOW)

    assert booking.status is BookingStatus.REQUESTED
    assert booking.version == 3


@pytest.mark.unit
def test_awaiting_payment_is_unreachable():
    targets = {target for target, _ in BOOKING_TRANSITIONS.values()}
    assert BookingStatus.AWAITING_PAYMENT not in targets
