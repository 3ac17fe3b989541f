"""Booking orchestration.

Loads the booking, asks the pure state machines in ``krushilink.domain`` for a
decision and executes the effects it returns:

1. compare-and-swap write of the booking (and reminder bookkeeping),
2. audit entry,
3. commit,
4. best-effort notifications, only after the commit succeeded.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from krushilink.config import settings
from krushilink.core.exceptions import (
    AuthorizationError,
    BookingConflict,
    InvalidTransition,
    NotFoundError,
    PersistenceFailure,
    PreconditionFailed,
    ValidationError,
)
from krushilink.domain import booking_state, payment_state
from krushilink.domain.effects import (
    Applied,
    BookingSnapshot,
    Notify,
    Outcome,
    PersistBooking,
    RecordReminder,
    Rejected,
    RejectionReason,
    SettleReminder,
)
from krushilink.domain.enums import (
    ActorRole,
    BookingAction,
    BookingStatus,
    NotificationCategory,
    PaymentStatus,
)
from krushilink.models.booking import Booking, PaymentReminder
from krushilink.models.equipment import Equipment
from krushilink.models.user import User
from krushilink.schemas.booking import BookingCreate
from krushilink.services.audit_service import audit_service
from krushilink.services.notification_service import NotificationService, notification_service

logger = logging.getLogger(__name__)

REJECTION_ERRORS = {
    RejectionReason.INVALID_TRANSITION: InvalidTransition,
    RejectionReason.PRECONDITION_FAILED: PreconditionFailed,
    RejectionReason.INVALID_INPUT: ValidationError,
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BookingService:
    """Runs booking and payment decisions against the database."""

    def __init__(
        self,
        notifier: NotificationService | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.notifier = notifier or notification_service
        self.clock = clock or _utcnow

    # ==================== LOOKUP & ROLES ====================

    async def get_booking(self, db: AsyncSession, booking_id: UUID) -> Booking:
        result = await db.execute(select(Booking).where(Booking.id == booking_id))
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    @staticmethod
    def role_on_booking(booking: Booking, user: User) -> ActorRole:
        """The role ``user`` holds on this particular booking."""
        if user.id == booking.farmer_id:
            return ActorRole.FARMER
        if user.id == booking.driver_id:
            return ActorRole.DRIVER
        if user.role == ActorRole.ADMIN.value:
            return ActorRole.ADMIN
        raise AuthorizationError("You don't have permission to access this booking")

    def _require_role(self, booking: Booking, user: User, allowed: Iterable[ActorRole]) -> ActorRole:
        role = self.role_on_booking(booking, user)
        if role not in allowed:
            raise AuthorizationError(f"A {role.value} cannot perform this payment operation")
        return role

    # ==================== CREATE ====================

    async def create_booking(
        self,
        db: AsyncSession,
        farmer: User,
        data: BookingCreate,
        ip_address: str | None = None,
    ) -> Booking:
        """Create a booking in ``requested`` status and tell the driver.

        Args:
            db: Database session
            farmer: Requesting farmer
            data: Validated request
            ip_address: Client IP for the audit trail

        Returns:
            Booking: The stored booking
        """
        if farmer.role != ActorRole.FARMER.value:
            raise AuthorizationError("Only farmers can request services")
        if not farmer.is_profile_complete:
            raise ValidationError("Complete your profile before booking a service")
        if data.driver_id == farmer.id:
            raise ValidationError("You cannot book yourself")

        result = await db.execute(select(User).where(User.id == data.driver_id))
        driver = result.scalar_one_or_none()
        if not driver or driver.role != ActorRole.DRIVER.value:
            raise NotFoundError("Driver", str(data.driver_id))
        if not driver.is_bookable_driver:
            raise ValidationError("This driver is not accepting bookings right now")

        result = await db.execute(select(Equipment).where(Equipment.id == data.equipment_id))
        equipment = result.scalar_one_or_none()
        if not equipment or equipment.driver_id != driver.id:
            raise NotFoundError("Equipment", str(data.equipment_id))
        if not equipment.is_active:
            raise ValidationError("This service is not currently offered")

        now = self.clock()
        total_price = (equipment.price_per_acre * data.acreage).quantize(Decimal("0.01"))

        booking = Booking(
            farmer_id=farmer.id,
            driver_id=driver.id,
            equipment_id=equipment.id,
            service_type=equipment.name,
            latitude=data.latitude,
            longitude=data.longitude,
            address=data.address,
            notes=data.notes,
            acreage=data.acreage,
            price_per_acre=equipment.price_per_acre,
            total_price=total_price,
            status=BookingStatus.REQUESTED.value,
            version=1,
            payment_method=data.payment_method,
            payment_status=PaymentStatus.PENDING.value,
            payment_due_date=now + timedelta(days=settings.payment_due_days),
            reminder_count=0,
            requested_time=now,
            scheduled_time=data.scheduled_time,
        )
        db.add(booking)

        try:
            await db.flush()
            await audit_service.log_booking_change(
                db=db,
                user_id=farmer.id,
                action="booking_create",
                booking_id=booking.id,
                old_values={},
                new_values={
                    "status": booking.status,
                    "total_price": str(total_price),
                    "payment_method": booking.payment_method,
                },
                ip_address=ip_address,
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Booking creation failed for farmer {farmer.id}: {e}")
            raise PersistenceFailure() from e

        await db.refresh(booking)
        logger.info(f"Booking {booking.id} requested by farmer {farmer.id} from driver {driver.id}")

        await self.notifier.dispatch(
            Notify(
                recipient_id=driver.id,
                title="New Booking Request",
                body=f"You have a new booking request for {booking.service_type} "
                f"on {data.acreage.normalize():f} acres.",
                category=NotificationCategory.BOOKING_UPDATE,
                related_id=booking.id,
            )
        )
        return booking

    # ==================== LIFECYCLE ====================

    async def apply_action(
        self,
        db: AsyncSession,
        booking_id: UUID,
        user: User,
        action: BookingAction,
        expected_version: int | None = None,
        ip_address: str | None = None,
    ) -> Booking:
        """Accept, reject, start, complete or cancel a booking.

        Raises:
            AuthorizationError: User is not a party to the booking, or is an admin
            InvalidTransition: Action not allowed from the current status for this role
            BookingConflict: Booking changed since ``expected_version`` / concurrently
            PersistenceFailure: Store write failed
        """
        booking = await self.get_booking(db, booking_id)
        actor = self.role_on_booking(booking, user)
        if actor is ActorRole.ADMIN:
            raise AuthorizationError("Admins cannot change a booking's lifecycle")
        return await self._run(
            db,
            booking,
            user_id=user.id,
            decide=lambda snapshot, now: booking_state.transition(snapshot, actor, action, now),
            audit_action=f"booking_{action.value}",
            expected_version=expected_version,
            ip_address=ip_address,
        )

    # ==================== PAYMENT ====================

    async def record_payment(
        self,
        db: AsyncSession,
        booking_id: UUID,
        user: User,
        payment_reference: str,
        allowed_roles: Iterable[ActorRole] = (ActorRole.DRIVER, ActorRole.ADMIN),
        expected_version: int | None = None,
        ip_address: str | None = None,
    ) -> Booking:
        """Mark a completed booking as paid."""
        booking = await self.get_booking(db, booking_id)
        self._require_role(booking, user, allowed_roles)
        return await self._run(
            db,
            booking,
            user_id=user.id,
            decide=lambda snapshot, now: payment_state.record_payment(snapshot, payment_reference, now),
            audit_action="payment_mark_paid",
            expected_version=expected_version,
            ip_address=ip_address,
            audit_extra={"payment_reference": payment_reference},
        )

    async def send_reminder(
        self,
        db: AsyncSession,
        booking_id: UUID,
        user: User | None,
        expected_version: int | None = None,
        ip_address: str | None = None,
    ) -> Booking:
        """Remind the farmer of a pending payment.

        ``user`` is None when the scheduled reminder job sends it.
        """
        booking = await self.get_booking(db, booking_id)
        if user is not None:
            self._require_role(booking, user, (ActorRole.DRIVER, ActorRole.ADMIN))
        return await self._run(
            db,
            booking,
            user_id=user.id if user else None,
            decide=lambda snapshot, now: payment_state.send_reminder(
                snapshot,
                now,
                max_reminders=settings.max_payment_reminders,
                default_due_days=settings.reminder_default_due_days,
            ),
            audit_action="payment_reminder_sent",
            expected_version=expected_version,
            ip_address=ip_address,
        )

    async def record_payment_failure(
        self,
        db: AsyncSession,
        booking_id: UUID,
        user: User,
        reason: str | None = None,
        ip_address: str | None = None,
    ) -> Booking:
        """Mark a pending payment as failed."""
        booking = await self.get_booking(db, booking_id)
        self._require_role(booking, user, (ActorRole.FARMER, ActorRole.ADMIN))
        return await self._run(
            db,
            booking,
            user_id=user.id,
            decide=lambda snapshot, now: payment_state.record_payment_failure(snapshot, now),
            audit_action="payment_mark_failed",
            ip_address=ip_address,
            audit_extra={"reason": reason},
        )

    async def reopen_payment(
        self,
        db: AsyncSession,
        booking_id: UUID,
        user: User,
        ip_address: str | None = None,
    ) -> Booking:
        """Return a failed payment to pending for another checkout attempt."""
        booking = await self.get_booking(db, booking_id)
        self._require_role(booking, user, (ActorRole.FARMER, ActorRole.ADMIN))
        return await self._run(
            db,
            booking,
            user_id=user.id,
            decide=payment_state.reopen_payment,
            audit_action="payment_reopen",
            ip_address=ip_address,
        )

    # ==================== EFFECT EXECUTION ====================

    async def _run(
        self,
        db: AsyncSession,
        booking: Booking,
        user_id: UUID | None,
        decide: Callable[[BookingSnapshot, datetime], Outcome],
        audit_action: str,
        expected_version: int | None = None,
        ip_address: str | None = None,
        audit_extra: dict[str, Any] | None = None,
    ) -> Booking:
        snapshot = BookingSnapshot.from_record(booking)
        if expected_version is not None and expected_version != snapshot.version:
            raise BookingConflict(
                f"Booking is at version {snapshot.version}, not {expected_version}. Reload and try again."
            )

        outcome = decide(snapshot, self.clock())
        if isinstance(outcome, Rejected):
            logger.info(f"{audit_action} rejected for booking {booking.id}: {outcome.message}")
            raise REJECTION_ERRORS[outcome.reason](outcome.message)

        notices = await self._apply_effects(
            db, snapshot, outcome, user_id, audit_action, ip_address, audit_extra
        )
        await db.refresh(booking)
        logger.info(
            f"{audit_action} applied to booking {booking.id}: "
            f"{snapshot.status.value}/{snapshot.payment_status.value} -> "
            f"{booking.status}/{booking.payment_status} (v{booking.version})"
        )

        await self.notifier.dispatch_all(notices)
        return booking

    async def _apply_effects(
        self,
        db: AsyncSession,
        snapshot: BookingSnapshot,
        outcome: Applied,
        user_id: UUID | None,
        audit_action: str,
        ip_address: str | None,
        audit_extra: dict[str, Any] | None,
    ) -> list[Notify]:
        """Execute storage effects in one transaction; return the notifications."""
        notices: list[Notify] = []
        try:
            for effect in outcome.effects:
                if isinstance(effect, PersistBooking):
                    await self._persist(db, effect)
                elif isinstance(effect, RecordReminder):
                    await self._record_reminder(db, effect)
                elif isinstance(effect, SettleReminder):
                    await self._settle_reminder(db, effect)
                elif isinstance(effect, Notify):
                    notices.append(effect)

            new = outcome.booking
            await audit_service.log_booking_change(
                db=db,
                user_id=user_id,
                action=audit_action,
                booking_id=snapshot.id,
                old_values={
                    "status": snapshot.status.value,
                    "payment_status": snapshot.payment_status.value,
                    "version": snapshot.version,
                },
                new_values={
                    "status": new.status.value,
                    "payment_status": new.payment_status.value,
                    "version": new.version,
                    **(audit_extra or {}),
                },
                ip_address=ip_address,
            )
            await db.commit()
        except BookingConflict:
            await db.rollback()
            logger.warning(f"{audit_action} lost a concurrent update race on booking {snapshot.id}")
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"{audit_action} could not be saved for booking {snapshot.id}: {e}")
            raise PersistenceFailure() from e
        return notices

    async def _persist(self, db: AsyncSession, effect: PersistBooking) -> None:
        """Compare-and-swap: write only if nobody bumped the version meanwhile."""
        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == effect.booking_id,
                Booking.version == effect.expected_version,
            )
            .values(**effect.changes, version=effect.expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise BookingConflict()

    async def _record_reminder(self, db: AsyncSession, effect: RecordReminder) -> None:
        result = await db.execute(
            select(PaymentReminder).where(PaymentReminder.booking_id == effect.booking_id)
        )
        reminder = result.scalar_one_or_none()
        if reminder is None:
            reminder = PaymentReminder(
                booking_id=effect.booking_id,
                farmer_id=effect.farmer_id,
                driver_id=effect.driver_id,
                amount=effect.amount,
            )
            db.add(reminder)

        reminder.due_date = effect.due_date
        reminder.status = "sent"
        reminder.reminder_count = effect.reminder_count
        reminder.last_reminder_sent = effect.sent_at
        await db.flush()

    async def _settle_reminder(self, db: AsyncSession, effect: SettleReminder) -> None:
        await db.execute(
            update(PaymentReminder)
            .where(PaymentReminder.booking_id == effect.booking_id)
            .values(status="paid")
            .execution_options(synchronize_session=False)
        )


booking_service = BookingService()
