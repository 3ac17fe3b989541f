"""Celery background tasks.

- Notification retries handed off by the dispatcher
- Scheduled payment reminders for completed, unpaid bookings
- Data cleanup
"""

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from celery import shared_task
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from krushilink.config import settings
from krushilink.core.exceptions import AppException, NotificationFailure
from krushilink.database import get_db_context
from krushilink.domain.enums import BookingStatus, PaymentStatus
from krushilink.models.admin import AuditLog
from krushilink.models.booking import Booking
from krushilink.models.notification import Notification
from krushilink.services.booking_service import booking_service
from krushilink.services.notification_service import notification_service

logger = logging.getLogger(__name__)

_loop: asyncio.AbstractEventLoop | None = None


def run_async(coro):
    """Run async function in sync context.

    One loop per worker process, so pooled DB connections stay usable.
    """
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
        asyncio.set_event_loop(_loop)
    return _loop.run_until_complete(coro)


# ==================== NOTIFICATION TASKS ====================


@shared_task(bind=True, max_retries=3)
def send_notification_async(
    self,
    user_id: str,
    title: str,
    body: str,
    category: str,
    related_id: str | None = None,
):
    """Retry a notification the dispatcher could not store inline."""
    try:
        notification_id = run_async(
            notification_service.notify_user(
                user_id=UUID(user_id),
                title=title,
                body=body,
                category=category,
                related_id=UUID(related_id) if related_id else None,
            )
        )
    except NotificationFailure as exc:
        logger.warning(f"Notification retry for user {user_id} failed: {exc.reason}")
        raise self.retry(exc=exc, countdown=120)

    return {"status": "success", "notification_id": str(notification_id) if notification_id else None}


# ==================== PAYMENT REMINDER TASKS ====================


@shared_task(bind=True, max_retries=3)
def send_due_payment_reminders(self):
    """Remind farmers of completed bookings that are past their due date.

    Runs daily at ``settings.reminder_time_hour``.
    """
    try:
        sent = run_async(_send_due_payment_reminders())
    except Exception as exc:
        logger.exception("Scheduled payment reminders failed")
        raise self.retry(exc=exc, countdown=300)
    return {"status": "success", "reminders_sent": sent}


async def _send_due_payment_reminders(
    now: datetime | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> int:
    now = now or datetime.now(UTC)

    async with get_db_context(session_factory) as db:
        result = await db.execute(
            select(Booking.id).where(
                Booking.status == BookingStatus.COMPLETED.value,
                Booking.payment_status == PaymentStatus.PENDING.value,
                Booking.payment_due_date.is_not(None),
                Booking.payment_due_date <= now,
                Booking.reminder_count < settings.max_payment_reminders,
            )
        )
        booking_ids = list(result.scalars().all())

        sent = 0
        for booking_id in booking_ids:
            try:
                await booking_service.send_reminder(db, booking_id, user=None)
            except AppException as e:
                # Paid, capped or changed concurrently since the query ran
                logger.info(f"Skipped reminder for booking {booking_id}: {e.detail}")
                continue
            sent += 1

    logger.info(f"Sent {sent} of {len(booking_ids)} due payment reminders")
    return sent


# ==================== CLEANUP TASKS ====================


@shared_task
def cleanup_expired_data():
    """Clean up expired data from the database.

    Removes:
    - Old audit logs (> 90 days)
    - Read notifications (> 30 days)
    """
    run_async(_cleanup_expired_data())
    return {"status": "success", "message": "Cleanup completed"}


async def _cleanup_expired_data(
    now: datetime | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> None:
    now = now or datetime.now(UTC)

    async with get_db_context(session_factory) as db:
        await db.execute(delete(AuditLog).where(AuditLog.created_at < now - timedelta(days=90)))
        await db.execute(
            delete(Notification).where(
                Notification.is_read == True,  # noqa: E712
                Notification.created_at < now - timedelta(days=30),
            )
        )
