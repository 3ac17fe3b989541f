"""Celery worker configuration.

Background processing for:
- Notification retries
- Daily payment reminders
- Data cleanup
"""

from celery import Celery
from celery.schedules import crontab

from krushilink.config import settings
from krushilink.core.logging import setup_logging

setup_logging(settings.log_level, json_format=settings.log_json)

celery_app = Celery(
    "krushilink_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["krushilink.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Kolkata",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    worker_hijack_root_logger=False,

    result_expires=3600,

    # Retry settings
    task_default_retry_delay=60,
    task_max_retries=3,

    beat_schedule={
        # Remind farmers of overdue payments every morning
        "send-due-payment-reminders": {
            "task": "krushilink.tasks.send_due_payment_reminders",
            "schedule": crontab(hour=settings.reminder_time_hour, minute=0),
        },
        # Clean up old audit logs and read notifications at 3 AM
        "cleanup-expired-data": {
            "task": "krushilink.tasks.cleanup_expired_data",
            "schedule": crontab(hour=3, minute=0),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
