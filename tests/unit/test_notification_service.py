"""
Unit tests for the notification dispatcher.
"""
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from krushilink.core.exceptions import NotificationFailure
from krushilink.domain.effects import Notify
from krushilink.domain.enums import NotificationCategory
from krushilink.services.notification_service import NotificationService


def make_notice(**overrides) -> Notify:
    values = {
        "recipient_id": uuid4(),
        "title": "Booking Accepted",
        "body": "Your booking request has been accepted by the driver.",
        "category": NotificationCategory.BOOKING_UPDATE,
        "related_id": uuid4(),
    }
    values.update(overrides)
    return Notify(**values)


class _BrokenSession:
    """Session context whose connection attempt fails."""

    async def __aenter__(self):
        raise OperationalError("SELECT 1", {}, Exception("database unavailable"))

    async def __aexit__(self, *exc_info):
        return False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_dispatch_returns_true_when_stored():
    service = NotificationService()
    notice = make_notice()

    with patch.object(service, "notify_user", AsyncMock(return_value=uuid4())) as notify:
        delivered = await service.dispatch(notice)

    assert delivered is True
    notify.assert_awaited_once_with(
        user_id=notice.recipient_id,
        title=notice.title,
        body=notice.body,
        category="booking_update",
        related_id=notice.related_id,
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_dispatch_swallows_failure_and_queues_retry():
    """A failed notification never reaches the caller."""
    service = NotificationService()
    notice = make_notice()
    failure = NotificationFailure(notice.recipient_id, "database unavailable")

    with patch.object(service, "notify_user", AsyncMock(side_effect=failure)), \
            patch.object(service, "_enqueue_retry") as enqueue:
        delivered = await service.dispatch(notice)

    assert delivered is False
    enqueue.assert_called_once_with(notice, "booking_update")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_dispatch_without_retry_does_not_queue():
    service = NotificationService()
    failure = NotificationFailure(uuid4(), "boom")

    with patch.object(service, "notify_user", AsyncMock(side_effect=failure)), \
            patch.object(service, "_enqueue_retry") as enqueue:
        delivered = await service.dispatch(make_notice(), retry=False)

    assert delivered is False
    enqueue.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_dispatch_all_continues_after_failure():
    service = NotificationService()
    notices = [make_notice(), make_notice(), make_notice()]
    outcomes = [uuid4(), NotificationFailure(notices[1].recipient_id, "boom"), uuid4()]

    with patch.object(service, "notify_user", AsyncMock(side_effect=outcomes)) as notify, \
            patch.object(service, "_enqueue_retry"):
        delivered = await service.dispatch_all(notices)

    assert delivered == 2
    assert notify.await_count == 3


@pytest.mark.unit
@pytest.mark.asyncio
async def test_dispatch_for_missing_user_is_not_delivered():
    service = NotificationService()

    with patch.object(service, "notify_user", AsyncMock(return_value=None)), \
            patch.object(service, "_enqueue_retry") as enqueue:
        delivered = await service.dispatch(make_notice())

    assert delivered is False
    enqueue.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_notify_user_wraps_database_errors():
    service = NotificationService()

    with patch(
        "krushilink.services.notification_service.get_db_context",
        return_value=_BrokenSession(),
    ):
        with pytest.raises(NotificationFailure) as exc_info:
            await service.notify_user(uuid4(), "Title", "Body", "system")

    assert "database unavailable" in exc_info.value.reason


@pytest.mark.unit
def test_enqueue_retry_swallows_broker_errors():
    service = NotificationService()

    with patch(
        "krushilink.tasks.send_notification_async.apply_async",
        side_effect=ConnectionError("broker down"),
    ) as apply_async:
        service._enqueue_retry(make_notice(), "payment")

    apply_async.assert_called_once()
    assert apply_async.call_args.kwargs["kwargs"]["category"] == "payment"
    assert apply_async.call_args.kwargs["countdown"] == 60


@pytest.mark.unit
@pytest.mark.asyncio
async def test_push_skipped_without_server_key():
    service = NotificationService()

    with patch("krushilink.services.notification_service.settings") as mock_settings:
        mock_settings.fcm_server_key = None
        sent = await service.send_push_notification("device-token", "Title", "Body")

    assert sent is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_push_http_error_returns_false():
    service = NotificationService()
    service._http_client = MagicMock()
    service._http_client.post = AsyncMock(side_effect=httpx.ConnectError("no route"))

    with patch("krushilink.services.notification_service.settings") as mock_settings:
        mock_settings.fcm_server_key = "server-key"
        sent = await service.send_push_notification("device-token", "Title", "Body")

    assert sent is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_push_sends_fcm_message():
    service = NotificationService()
    service._http_client = MagicMock()
    service._http_client.post = AsyncMock(return_value=httpx.Response(200, json={"success": 1}))

    with patch("krushilink.services.notification_service.settings") as mock_settings:
        mock_settings.fcm_server_key = "server-key"
        sent = await service.send_push_notification("device-token", "Title", "Body", {"k": "v"})

    assert sent is True
    kwargs = service._http_client.post.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == "key=server-key"
    assert kwargs["json"]["to"] == "device-token"
    assert kwargs["json"]["data"] == {"k": "v"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_email_skipped_without_api_key():
    service = NotificationService()

    with patch("krushilink.services.notification_service.settings") as mock_settings:
        mock_settings.sendgrid_api_key = None
        sent = await service.send_email("farmer@example.com", "Subject", "<p>Hi</p>")

    assert sent is False


@pytest.mark.unit
def test_email_html_escapes_content():
    html_content = NotificationService()._generate_email_html("<b>Due</b>", "Pay ₹500 & thanks")

    assert "&lt;b&gt;Due&lt;/b&gt;" in html_content
    assert "Pay ₹500 &amp; thanks" in html_content
