"""
@file: worker.py
@description:
Entry point for starting Celery workers and the beat scheduler.

@usage:
To start a worker:
    $ celery -A sports_predictions.workers.worker worker -Q celery,maintenance,data_ingestion --loglevel=info

To start the beat scheduler (runs the archival sweep on ARCHIVE_CRON_SCHEDULE):
    $ celery -A sports_predictions.workers.worker beat --loglevel=info
"""

from sports_predictions.workers.celery_app import celery_app

__all__ = ["celery_app"]
