"""
Integration tests for the scheduled worker jobs.
"""
from datetime import timedelta

import pytest
from sqlalchemy import select

from krushilink import tasks
from krushilink.models.admin import AuditLog
from krushilink.models.booking import Booking
from krushilink.models.notification import Notification


@pytest.fixture
def scheduled_service(monkeypatch, service):
    monkeypatch.setattr(tasks, "booking_service", service)
    return service


@pytest.mark.integration
@pytest.mark.asyncio
async def test_due_reminders_only_for_overdue_unpaid_bookings(
    session_factory, scheduled_service, notifier, farmer, make_booking, now
):
    overdue = await make_booking(status="completed", payment_due_date=now - timedelta(days=1))
    await make_booking(status="completed", payment_due_date=now + timedelta(days=2))
    await make_booking(status="completed", payment_status="paid", payment_due_date=now - timedelta(days=3))
    await make_booking(status="in_progress", payment_due_date=now - timedelta(days=3))
    await make_booking(status="completed", payment_due_date=now - timedelta(days=3), reminder_count=10)

    sent = await tasks._send_due_payment_reminders(now=now, session_factory=session_factory)

    assert sent == 1
    (notice,) = notifier.sent
    assert notice.recipient_id == farmer.id
    assert notice.related_id == overdue.id

    async with session_factory() as check:
        stored = await check.get(Booking, overdue.id)
        assert stored.reminder_count == 1
        assert stored.version == 2


@pytest.mark.integration
@pytest.mark.asyncio
async def test_due_reminders_with_nothing_due(session_factory, scheduled_service, notifier, now):
    sent = await tasks._send_due_payment_reminders(now=now, session_factory=session_factory)

    assert sent == 0
    assert notifier.sent == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_cleanup_removes_old_audit_logs_and_read_notifications(db, session_factory, farmer, now):
    db.add_all(
        [
            AuditLog(action="booking_accept", resource_type="booking", created_at=now - timedelta(days=120)),
            AuditLog(action="booking_start", resource_type="booking", created_at=now - timedelta(days=10)),
            Notification(
                user_id=farmer.id,
                title="Old read",
                body="b",
                category="system",
                is_read=True,
                created_at=now - timedelta(days=45),
            ),
            Notification(
                user_id=farmer.id,
                title="Old unread",
                body="b",
                category="system",
                is_read=False,
                created_at=now - timedelta(days=45),
            ),
            Notification(
                user_id=farmer.id,
                title="Recent read",
                body="b",
                category="system",
                is_read=True,
                created_at=now - timedelta(days=2),
            ),
        ]
    )
    await db.commit()

    await tasks._cleanup_expired_data(now=now, session_factory=session_factory)

    async with session_factory() as check:
        actions = (await check.execute(select(AuditLog.action))).scalars().all()
        titles = (await check.execute(select(Notification.title))).scalars().all()
        assert actions == ["booking_start"]
        assert sorted(titles) == ["Old unread", "Recent read"]
