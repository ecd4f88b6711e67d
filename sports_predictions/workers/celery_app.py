"""
@file: celery_app.py
@description:
This module initializes and configures the Celery application for background task processing
and scheduled job execution. It sets up the Celery instance with the appropriate broker,
backend, and task configuration.

@dependencies:
- celery: For asynchronous task processing
- sports_predictions.core.config: For application configuration settings

@notes:
- Redis is used as both the broker and result backend
- The archival sweep runs on the five-field ARCHIVE_CRON_SCHEDULE, evaluated in UTC
- Setting TESTING runs tasks eagerly, in process
"""

import os

from celery import Celery
from celery.schedules import crontab

from sports_predictions.core.config import settings


def cron_schedule(expression: str) -> crontab:
    """
    Build a celery crontab from a five-field cron expression
    (minute hour day-of-month month day-of-week).
    """
    minute, hour, day_of_month, month_of_year, day_of_week = expression.split()
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


# Initialize Celery app
celery_app = Celery(
    "sports_predictions",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["sports_predictions.workers.tasks"]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,
)

celery_app.conf.task_routes = {
    "sports_predictions.workers.tasks.archive_old_events": {"queue": "maintenance"},
    "sports_predictions.workers.tasks.ingest_files": {"queue": "data_ingestion"},
}

# Configure Celery Beat scheduler for periodic tasks
celery_app.conf.beat_schedule = {
    "archive-old-events": {
        "task": "sports_predictions.workers.tasks.archive_old_events",
        "schedule": cron_schedule(settings.ARCHIVE_CRON_SCHEDULE),
        "args": (),
    },
}

# This allows the Celery app to work with Pytest
# Ref: https://docs.celeryproject.org/en/stable/userguide/testing.html
if os.environ.get("TESTING"):
    celery_app.conf.update(task_always_eager=True)
