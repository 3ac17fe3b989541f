"""Notification dispatcher for in-app, push and email notifications.

Every booking and payment change ends in ``dispatch``. Dispatch is
best-effort: failures are logged and queued for one retry on the worker, and
never propagate to the operation that triggered them.
"""

import html
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from krushilink.config import settings
from krushilink.core.exceptions import NotificationFailure
from krushilink.database import get_db_context
from krushilink.domain.effects import Notify
from krushilink.domain.enums import NotificationCategory
from krushilink.models.notification import Notification
from krushilink.models.user import User

logger = logging.getLogger(__name__)

FCM_SEND_URL = "https://fcm.googleapis.com/fcm/send"
SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class NotificationService:
    """Service for sending notifications across all channels."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self.session_factory = session_factory
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=10.0)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    # ==================== IN-APP NOTIFICATIONS ====================

    async def create_notification(
        self,
        db: AsyncSession,
        user_id: UUID,
        title: str,
        body: str,
        category: str,
        related_id: UUID | None = None,
    ) -> Notification:
        """Create an in-app notification.

        Args:
            db: Database session
            user_id: User to notify
            title: Notification title
            body: Notification body text
            category: booking_update, payment or system
            related_id: Related booking (or other entity) ID

        Returns:
            Notification: Created notification
        """
        notification = Notification(
            user_id=user_id,
            title=title,
            body=body,
            category=category,
            related_id=related_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    # ==================== PUSH NOTIFICATIONS (FCM) ====================

    async def send_push_notification(
        self,
        push_token: str,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """Send a push notification via Firebase Cloud Messaging.

        Returns:
            bool: True if FCM accepted the message
        """
        if not settings.fcm_server_key:
            return False

        message = {
            "to": push_token,
            "priority": "high",
            "notification": {
                "title": title,
                "body": body,
                "sound": "default",
            },
            "data": data or {},
        }
        try:
            response = await self.http_client.post(
                FCM_SEND_URL,
                headers={
                    "Authorization": f"key={settings.fcm_server_key}",
                    "Content-Type": "application/json",
                },
                json=message,
            )
        except httpx.HTTPError as e:
            logger.warning(f"FCM push failed: {e}")
            return False

        if response.status_code != 200:
            logger.warning(f"FCM push rejected with HTTP {response.status_code}")
            return False
        return True

    # ==================== EMAIL (SENDGRID) ====================

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> bool:
        """Send an email via SendGrid.

        Returns:
            bool: True if SendGrid accepted the message
        """
        if not settings.sendgrid_api_key:
            return False

        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {
                "email": settings.email_from_address,
                "name": settings.email_from_name,
            },
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
        }
        if text_content:
            payload["content"].insert(0, {"type": "text/plain", "value": text_content})

        try:
            response = await self.http_client.post(
                SENDGRID_SEND_URL,
                headers={
                    "Authorization": f"Bearer {settings.sendgrid_api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
        except httpx.HTTPError as e:
            logger.warning(f"SendGrid email failed: {e}")
            return False

        return response.status_code in (200, 202)

    # ==================== DISPATCH ====================

    async def notify_user(
        self,
        user_id: UUID,
        title: str,
        body: str,
        category: str,
        related_id: UUID | None = None,
        send_push: bool = True,
        send_email: bool = True,
    ) -> UUID | None:
        """Record an in-app notification and push/email it.

        Runs in its own session so a failure here can never roll back the
        change being announced.

        Returns:
            The notification ID, or None if the user does not exist

        Raises:
            NotificationFailure: If the notification could not be stored
        """
        try:
            async with get_db_context(self.session_factory) as db:
                result = await db.execute(select(User).where(User.id == user_id))
                user = result.scalar_one_or_none()
                if not user:
                    logger.warning(f"Skipping notification '{title}': user {user_id} not found")
                    return None

                notification = await self.create_notification(
                    db=db,
                    user_id=user_id,
                    title=title,
                    body=body,
                    category=category,
                    related_id=related_id,
                )

                if send_push and user.push_token:
                    notification.push_sent = await self.send_push_notification(
                        push_token=user.push_token,
                        title=title,
                        body=body,
                        data={
                            "category": category,
                            "notification_id": str(notification.id),
                            "related_id": str(related_id) if related_id else "",
                        },
                    )

                if send_email and user.email:
                    notification.email_sent = await self.send_email(
                        to_email=user.email,
                        subject=title,
                        html_content=self._generate_email_html(title, body),
                        text_content=body,
                    )

                return notification.id
        except (SQLAlchemyError, OSError) as e:
            raise NotificationFailure(user_id, str(e)) from e

    async def dispatch(self, notice: Notify, retry: bool = True) -> bool:
        """Deliver a notification without ever raising.

        Args:
            notice: Notification requested by a booking or payment decision
            retry: Queue one background retry if delivery fails

        Returns:
            bool: True if the in-app notification was stored
        """
        category = notice.category.value if isinstance(notice.category, NotificationCategory) else notice.category
        try:
            notification_id = await self.notify_user(
                user_id=notice.recipient_id,
                title=notice.title,
                body=notice.body,
                category=category,
                related_id=notice.related_id,
            )
        except NotificationFailure as e:
            logger.error(f"{e}; booking change already saved")
            if retry:
                self._enqueue_retry(notice, category)
            return False
        return notification_id is not None

    async def dispatch_all(self, notices: Iterable[Notify]) -> int:
        """Dispatch each notice in order. Returns how many were stored."""
        delivered = 0
        for notice in notices:
            if await self.dispatch(notice):
                delivered += 1
        return delivered

    def _enqueue_retry(self, notice: Notify, category: str) -> None:
        from krushilink.tasks import send_notification_async

        try:
            send_notification_async.apply_async(
                kwargs={
                    "user_id": str(notice.recipient_id),
                    "title": notice.title,
                    "body": notice.body,
                    "category": category,
                    "related_id": str(notice.related_id) if notice.related_id else None,
                },
                countdown=60,
            )
        except Exception:
            logger.exception(f"Could not queue notification retry for user {notice.recipient_id}")

    def _generate_email_html(self, title: str, body: str) -> str:
        """Generate simple HTML email content."""
        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
                     max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">
            <div style="background-color: #f0fdf4; border-radius: 8px; padding: 24px;">
                <h1 style="color: #14532d; font-size: 24px; margin-bottom: 16px;">{html.escape(title)}</h1>
                <p style="color: #374151; font-size: 16px; line-height: 1.6;">{html.escape(body)}</p>
            </div>
            <p style="color: #9ca3af; font-size: 12px; margin-top: 24px; text-align: center;">
                &copy; {datetime.now(UTC).year} KrushiLink
            </p>
        </body>
        </html>
        """


# Singleton instance
notification_service = NotificationService()
