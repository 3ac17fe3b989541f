"""
Integration tests for storing notifications in their own session.
"""
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy import select

from krushilink.domain.effects import Notify
from krushilink.domain.enums import NotificationCategory
from krushilink.models.notification import Notification
from krushilink.services.notification_service import NotificationService


@pytest.fixture
def dispatcher(session_factory):
    return NotificationService(session_factory=session_factory)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_notify_user_stores_in_app_notification(dispatcher, session_factory, farmer):
    related_id = uuid4()

    notification_id = await dispatcher.notify_user(
        farmer.id, "Payment Due", "Please pay", "payment", related_id=related_id
    )

    async with session_factory() as check:
        stored = await check.get(Notification, notification_id)
    assert stored.user_id == farmer.id
    assert stored.category == "payment"
    assert stored.related_id == related_id
    assert stored.is_read is False
    assert stored.push_sent is False


@pytest.mark.integration
@pytest.mark.asyncio
async def test_notify_unknown_user_returns_none(dispatcher, session_factory):
    assert await dispatcher.notify_user(uuid4(), "Title", "Body", "system") is None

    async with session_factory() as check:
        result = await check.execute(select(Notification))
        assert result.scalars().all() == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_push_attempted_for_users_with_token(dispatcher, make_user):
    driver = await make_user("driver", push_token="fcm-device-token")

    with patch.object(dispatcher, "send_push_notification", return_value=True) as push:
        await dispatcher.dispatch(
            Notify(
                recipient_id=driver.id,
                title="New Booking Request",
                body="You have a new booking request.",
                category=NotificationCategory.BOOKING_UPDATE,
            )
        )

    push.assert_awaited_once()
    assert push.call_args.kwargs["push_token"] == "fcm-device-token"
    assert push.call_args.kwargs["data"]["category"] == "booking_update"
