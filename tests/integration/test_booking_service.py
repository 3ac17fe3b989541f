"""
Integration tests for BookingService against a SQLite database.
"""
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from krushilink.core.exceptions import (
    AuthorizationError,
    BookingConflict,
    InvalidTransition,
    NotFoundError,
    PreconditionFailed,
    ValidationError,
)
from krushilink.domain.effects import PersistBooking
from krushilink.domain.enums import BookingAction
from krushilink.models.admin import AuditLog
from krushilink.models.booking import Booking, PaymentReminder
from krushilink.models.equipment import Equipment
from krushilink.schemas.booking import BookingCreate


def booking_request(driver, equipment, **overrides) -> BookingCreate:
    values = {
        "driver_id": driver.id,
        "equipment_id": equipment.id,
        "latitude": 18.51,
        "longitude": 73.86,
        "address": "  Gat No. 45, Uruli Kanchan  ",
        "acreage": Decimal("2.5"),
        "payment_method": "later",
    }
    values.update(overrides)
    return BookingCreate(**values)


async def audit_actions(db, booking_id) -> list[str]:
    result = await db.execute(
        select(AuditLog.action)
        .where(AuditLog.resource_id == booking_id)
    )
    return sorted(result.scalars().all())


# ==================== CREATE ====================


@pytest.mark.integration
@pytest.mark.asyncio
async def test_create_booking_prices_and_notifies_driver(db, service, notifier, farmer, driver, equipment):
    booking = await service.create_booking(db, farmer, booking_request(driver, equipment))

    assert booking.status == "requested"
    assert booking.payment_status == "pending"
    assert booking.version == 1
    assert booking.total_price == Decimal("2000.00")
    assert booking.price_per_acre == Decimal("800")
    assert booking.service_type == "Ploughing"
    assert booking.address == "Gat No. 45, Uruli Kanchan"
    assert booking.payment_due_date is not None

    (notice,) = notifier.sent
    assert notice.recipient_id == driver.id
    assert notice.title == "New Booking Request"
    assert notice.body == "You have a new booking request for Ploughing on 2.5 acres."
    assert notice.related_id == booking.id
    assert await audit_actions(db, booking.id) == ["booking_create"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_only_farmers_can_book(db, service, driver, equipment, make_user):
    other_driver = await make_user("driver")

    with pytest.raises(AuthorizationError):
        await service.create_booking(db, other_driver, booking_request(driver, equipment))


@pytest.mark.integration
@pytest.mark.asyncio
async def test_incomplete_profile_cannot_book(db, service, driver, equipment, make_user):
    newcomer = await make_user("farmer", is_profile_complete=False)

    with pytest.raises(ValidationError):
        await service.create_booking(db, newcomer, booking_request(driver, equipment))


@pytest.mark.integration
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "driver_fields",
    [{"is_active": False}, {"is_verified": False}, {"is_suspended": True}],
)
async def test_unavailable_driver_cannot_be_booked(db, service, farmer, make_user, driver_fields):
    driver = await make_user("driver", **driver_fields)
    item = Equipment(driver_id=driver.id, name="Rotavator", price_per_acre=Decimal("600"))
    db.add(item)
    await db.commit()

    with pytest.raises(ValidationError):
        await service.create_booking(db, farmer, booking_request(driver, item))


@pytest.mark.integration
@pytest.mark.asyncio
async def test_equipment_must_belong_to_driver(db, service, farmer, driver, make_user):
    other_driver = await make_user("driver")
    foreign = Equipment(driver_id=other_driver.id, name="Harvester", price_per_acre=Decimal("1500"))
    db.add(foreign)
    await db.commit()

    with pytest.raises(NotFoundError):
        await service.create_booking(db, farmer, booking_request(driver, foreign))


@pytest.mark.integration
@pytest.mark.asyncio
async def test_inactive_equipment_cannot_be_booked(db, service, farmer, driver, equipment):
    equipment.is_active = False
    await db.commit()

    with pytest.raises(ValidationError):
        await service.create_booking(db, farmer, booking_request(driver, equipment))


@pytest.mark.integration
@pytest.mark.asyncio
async def test_unknown_driver_is_not_found(db, service, farmer, equipment):
    request = BookingCreate(
        driver_id=uuid4(),
        equipment_id=equipment.id,
        latitude=18.5,
        longitude=73.8,
        address="Somewhere",
        acreage=Decimal("1"),
    )

    with pytest.raises(NotFoundError):
        await service.create_booking(db, farmer, request)


# ==================== LIFECYCLE ====================


@pytest.mark.integration
@pytest.mark.asyncio
async def test_full_lifecycle(db, service, notifier, farmer, driver, make_booking):
    booking = await make_booking()

    for action, expected in [
        (BookingAction.ACCEPT, "accepted"),
        (BookingAction.START, "in_progress"),
        (BookingAction.COMPLETE, "completed"),
    ]:
        booking = await service.apply_action(db, booking.id, driver, action)
        assert booking.status == expected

    assert booking.version == 4
    assert booking.completed_time is not None
    assert booking.payment_status == "pending"
    assert [n.title for n in notifier.sent] == ["Booking Accepted", "Service Started", "Service Completed"]
    assert all(n.recipient_id == farmer.id for n in notifier.sent)
    assert await audit_actions(db, booking.id) == ["booking_accept", "booking_complete", "booking_start"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_invalid_action_changes_nothing(db, service, notifier, farmer, make_booking):
    booking = await make_booking()

    with pytest.raises(InvalidTransition):
        await service.apply_action(db, booking.id, farmer, BookingAction.ACCEPT)

    await db.refresh(booking)
    assert booking.status == "requested"
    assert booking.version == 1
    assert notifier.sent == []
    assert await audit_actions(db, booking.id) == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_terminal_booking_refuses_actions(db, service, driver, make_booking):
    booking = await make_booking(status="rejected")

    with pytest.raises(InvalidTransition):
        await service.apply_action(db, booking.id, driver, BookingAction.ACCEPT)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_outsider_cannot_act(db, service, make_booking, make_user):
    booking = await make_booking()
    stranger = await make_user("driver")

    with pytest.raises(AuthorizationError):
        await service.apply_action(db, booking.id, stranger, BookingAction.ACCEPT)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_cannot_drive_lifecycle(db, service, notifier, admin, make_booking):
    booking = await make_booking()

    with pytest.raises(AuthorizationError):
        await service.apply_action(db, booking.id, admin, BookingAction.ACCEPT)

    assert booking.status == "requested"
    assert booking.version == 1
    assert notifier.sent == []
    assert await audit_actions(db, booking.id) == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_stale_expected_version_conflicts(db, service, driver, make_booking):
    booking = await make_booking(version=3)

    with pytest.raises(BookingConflict):
        await service.apply_action(db, booking.id, driver, BookingAction.ACCEPT, expected_version=2)

    updated = await service.apply_action(db, booking.id, driver, BookingAction.ACCEPT, expected_version=3)
    assert updated.version == 4


@pytest.mark.integration
@pytest.mark.asyncio
async def test_concurrent_actions_only_one_wins(session_factory, service, notifier, farmer, driver, make_booking):
    """Driver accepts while the farmer cancels from a stale read."""
    booking = await make_booking()

    async with session_factory() as farmer_session, session_factory() as driver_session:
        # Farmer's view is loaded before the driver acts
        stale = await service.get_booking(farmer_session, booking.id)
        assert stale.version == 1

        accepted = await service.apply_action(driver_session, booking.id, driver, BookingAction.ACCEPT)
        assert accepted.status == "accepted"

        with pytest.raises(BookingConflict):
            await service.apply_action(farmer_session, booking.id, farmer, BookingAction.CANCEL)

    async with session_factory() as check:
        stored = await check.get(Booking, booking.id)
        assert stored.status == "accepted"
        assert stored.version == 2
        actions = await audit_actions(check, booking.id)
        assert actions == ["booking_accept"]

    assert [n.title for n in notifier.sent] == ["Booking Accepted"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_persist_requires_matching_version(db, service, make_booking):
    booking = await make_booking(version=2)
    booking_id = booking.id

    with pytest.raises(BookingConflict):
        await service._persist(
            db,
            PersistBooking(booking_id=booking_id, expected_version=1, changes={"status": "accepted"}),
        )
    await db.rollback()

    await service._persist(
        db,
        PersistBooking(booking_id=booking_id, expected_version=2, changes={"status": "accepted"}),
    )
    await db.commit()

    stored = await db.get(Booking, booking_id)
    await db.refresh(stored)
    assert stored.version == 3
    assert stored.status == "accepted"


# ==================== PAYMENT ====================


@pytest.mark.integration
@pytest.mark.asyncio
async def test_driver_records_cash_payment(db, service, notifier, farmer, driver, make_booking):
    booking = await make_booking(status="completed", payment_method="cash")

    paid = await service.record_payment(db, booking.id, driver, "cash_collected_1")

    assert paid.payment_status == "paid"
    assert paid.payment_reference == "cash_collected_1"
    assert paid.payment_date is not None
    assert paid.status == "completed"
    assert {n.recipient_id for n in notifier.sent} == {farmer.id, driver.id}
    assert await audit_actions(db, booking.id) == ["payment_mark_paid"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_farmer_cannot_self_confirm_cash(db, service, farmer, make_booking):
    booking = await make_booking(status="completed")

    with pytest.raises(AuthorizationError):
        await service.record_payment(db, booking.id, farmer, "cash_1")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_payment_before_completion_fails(db, service, driver, make_booking):
    booking = await make_booking(status="in_progress")

    with pytest.raises(PreconditionFailed):
        await service.record_payment(db, booking.id, driver, "cash_1")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_double_payment_fails(db, service, driver, make_booking):
    booking = await make_booking(status="completed")
    await service.record_payment(db, booking.id, driver, "pay_1")

    with pytest.raises(PreconditionFailed):
        await service.record_payment(db, booking.id, driver, "pay_2")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_blank_reference_is_invalid(db, service, driver, make_booking):
    booking = await make_booking(status="completed")

    with pytest.raises(ValidationError):
        await service.record_payment(db, booking.id, driver, "   ")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_reminders_track_count_and_reminder_row(db, service, notifier, farmer, driver, make_booking):
    booking = await make_booking(status="completed")

    first = await service.send_reminder(db, booking.id, driver)
    assert first.reminder_count == 1

    second = await service.send_reminder(db, booking.id, user=None)
    assert second.reminder_count == 2
    assert second.last_reminder_sent is not None
    assert [n.title for n in notifier.sent] == ["Payment Due", "Reminder #2: Payment Due"]
    assert all(n.recipient_id == farmer.id for n in notifier.sent)

    result = await db.execute(select(PaymentReminder).where(PaymentReminder.booking_id == booking.id))
    reminder = result.scalar_one()
    assert reminder.reminder_count == 2
    assert reminder.status == "sent"
    assert reminder.amount == Decimal("2000.00")

    await service.record_payment(db, booking.id, driver, "pay_after_reminders")
    await db.refresh(reminder)
    assert reminder.status == "paid"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_reminder_cap(db, service, driver, make_booking):
    booking = await make_booking(status="completed", reminder_count=10)

    with pytest.raises(PreconditionFailed):
        await service.send_reminder(db, booking.id, driver)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_farmer_cannot_send_reminders(db, service, farmer, make_booking):
    booking = await make_booking(status="completed")

    with pytest.raises(AuthorizationError):
        await service.send_reminder(db, booking.id, farmer)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_failed_payment_reopens_and_pays(db, service, farmer, driver, make_booking):
    booking = await make_booking(status="completed")

    failed = await service.record_payment_failure(db, booking.id, farmer, reason="card declined")
    assert failed.payment_status == "failed"

    with pytest.raises(PreconditionFailed):
        await service.record_payment(db, booking.id, driver, "pay_1")

    reopened = await service.reopen_payment(db, booking.id, farmer)
    assert reopened.payment_status == "pending"

    paid = await service.record_payment(db, booking.id, driver, "pay_1")
    assert paid.payment_status == "paid"
    assert paid.version == 4


@pytest.mark.integration
@pytest.mark.asyncio
async def test_missing_booking_is_not_found(db, service, driver):
    with pytest.raises(NotFoundError):
        await service.apply_action(db, uuid4(), driver, BookingAction.ACCEPT)

