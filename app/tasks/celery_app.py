"""Celery worker and beat schedule for housekeeping tasks."""

from celery import Celery
from celery.signals import setup_logging

from app.config import get_settings
from app.utils.logger import configure_logging

settings = get_settings()

EVENT_RETENTION_DAYS = 90

celery_app = Celery("textback", broker=settings.redis_url, include=["app.tasks.cleanup"])

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    # Housekeeping results are only logged
    task_ignore_result=True,
    beat_schedule={
        "cleanup-expired-rate-limits": {
            "task": "app.tasks.cleanup.cleanup_expired_rate_limits",
            "schedule": 600.0,
        },
        "cleanup-old-events": {
            "task": "app.tasks.cleanup.cleanup_old_events",
            "schedule": 86400.0,
            "args": [EVENT_RETENTION_DAYS],
        },
    },
)


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    configure_logging()
