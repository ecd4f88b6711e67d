"""
Workers Package for the Sports Predictions API.

This package runs out-of-band jobs with Celery:
- The scheduled archival sweep
- Batch ingestion of events and predictions from JSON files

Key components:
- celery_app: Initializes and configures the Celery application and beat schedule
- tasks: Defines the Celery tasks
- worker: Entry point for starting Celery workers
"""

from sports_predictions.workers.celery_app import celery_app
from sports_predictions.workers.tasks import archive_old_events, ingest_files

__all__ = [
    'celery_app',
    'archive_old_events',
    'ingest_files',
]
