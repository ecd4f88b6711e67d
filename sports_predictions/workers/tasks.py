"""
@file: tasks.py
@description:
Celery tasks for the out-of-band jobs of the Sports Predictions API.

Key features:
- Archival: marks events older than the retention period as archived
  (scheduled by Celery beat).
- Batch ingestion: loads events and predictions from JSON files.

@dependencies:
- celery: task registration
- asyncio: each run drives the async services on a private event loop
- sports_predictions.services.archive_service: the archival sweep
- sports_predictions.services.ingestion_service: batch ingestion

@notes:
- Each run owns its Database handle for the duration of the run.
- A failed run is logged and re-raised so Celery records the failure; the
  next scheduled run retries the sweep.
"""

import asyncio
from typing import Any, Dict, Optional

from sports_predictions.core.config import get_settings
from sports_predictions.core.logger import get_task_logger
from sports_predictions.db.types import utc_now
from sports_predictions.services.archive_service import run_archive_sweep
from sports_predictions.services.identity import format_instant
from sports_predictions.services.ingestion_service import run_ingestion
from sports_predictions.workers.celery_app import celery_app

# Initialize logger
logger = get_task_logger("sports_predictions.workers.tasks")


def _run(coroutine):
    """Run a coroutine to completion on a fresh event loop."""
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        return loop.run_until_complete(coroutine)
    finally:
        asyncio.set_event_loop(None)
        loop.close()


@celery_app.task(name="sports_predictions.workers.tasks.archive_old_events")
def archive_old_events(retention_days: Optional[int] = None) -> Dict[str, Any]:
    """
    Archive events dated before now minus the retention period.

    Args:
        retention_days: Overrides ARCHIVE_RETENTION_DAYS when given.

    Returns:
        Dict[str, Any]: Summary with status, archived_count, cutoff and timestamp.
    """
    logger.info("Archive job triggered")
    try:
        result = _run(run_archive_sweep(get_settings(), retention_days))
    except Exception as e:
        logger.error(f"Archive job failed: {str(e)}")
        raise

    return {
        "status": "success",
        "archived_count": result.archived_count,
        "retention_days": result.retention_days,
        "cutoff": format_instant(result.archived_before),
        "total_archived": result.total_archived,
        "timestamp": format_instant(utc_now()),
    }


@celery_app.task(name="sports_predictions.workers.tasks.ingest_files")
def ingest_files(events_path: Optional[str] = None, predictions_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load events and predictions from JSON files.

    Args:
        events_path: Defaults to DATA_EVENTS_PATH.
        predictions_path: Defaults to DATA_PREDICTIONS_PATH.

    Returns:
        Dict[str, Any]: Summary of created records and per-record errors.
    """
    settings = get_settings()
    events_path = events_path or settings.DATA_EVENTS_PATH
    predictions_path = predictions_path or settings.DATA_PREDICTIONS_PATH

    logger.info(f"Ingestion job triggered ({events_path}, {predictions_path})")
    try:
        summary = _run(run_ingestion(settings, events_path, predictions_path))
    except Exception as e:
        logger.error(f"Ingestion job failed: {str(e)}")
        raise

    return {
        "status": "success",
        **summary.to_dict(),
        "timestamp": format_instant(utc_now()),
    }
