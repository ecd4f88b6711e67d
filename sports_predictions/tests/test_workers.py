"""
@file: test_workers.py
@description:
Test suite for Celery task workers in the Sports Predictions API, focusing on:
- Cron schedule parsing and the beat schedule entry
- The archival task summary and failure propagation
- The batch ingestion task

@dependencies:
- pytest: For test framework
- unittest.mock: For mocking the services the tasks drive
- sports_predictions.workers: Worker modules being tested

@notes:
- Tasks run eagerly (TESTING is set in conftest), so `.delay()` executes in process
- The services are mocked; their behavior is covered in test_services and test_ingestion
"""

from datetime import datetime, timezone
from unittest import mock

import pytest
from celery.schedules import crontab

from sports_predictions.core.errors import IngestionSourceError, StorageError
from sports_predictions.services.archive_service import ArchiveResult
from sports_predictions.services.ingestion_service import IngestionSummary
from sports_predictions.workers.celery_app import celery_app, cron_schedule
from sports_predictions.workers.tasks import archive_old_events, ingest_files


@pytest.fixture
def archive_result():
    """Fixture providing the result of a sweep that archived three events"""
    return ArchiveResult(
        archived_count=3,
        retention_days=30,
        archived_before=datetime(2026, 1, 30, 0, 0, tzinfo=timezone.utc),
        total_archived=12,
    )


def test_cron_schedule_parses_five_fields():
    schedule = cron_schedule("30 2 * * 1-5")

    assert isinstance(schedule, crontab)
    assert schedule.minute == {30}
    assert schedule.hour == {2}
    assert schedule.day_of_week == {1, 2, 3, 4, 5}


def test_cron_schedule_rejects_wrong_field_count():
    with pytest.raises(ValueError):
        cron_schedule("0 0 * *")


def test_beat_schedule_runs_archive_daily_by_default():
    entry = celery_app.conf.beat_schedule["archive-old-events"]

    assert entry["task"] == "sports_predictions.workers.tasks.archive_old_events"
    assert entry["schedule"] == cron_schedule("0 0 * * *")
    assert celery_app.conf.timezone == "UTC"


def test_task_routes():
    routes = celery_app.conf.task_routes

    assert routes["sports_predictions.workers.tasks.archive_old_events"]["queue"] == "maintenance"
    assert routes["sports_predictions.workers.tasks.ingest_files"]["queue"] == "data_ingestion"


def test_archive_old_events_returns_summary(archive_result):
    with mock.patch(
        "sports_predictions.workers.tasks.run_archive_sweep",
        new=mock.AsyncMock(return_value=archive_result),
    ) as sweep:
        result = archive_old_events()

    sweep.assert_awaited_once()
    assert sweep.call_args.args[1] is None
    assert result["status"] == "success"
    assert result["archived_count"] == 3
    assert result["retention_days"] == 30
    assert result["cutoff"] == "2026-01-30T00:00:00.000Z"
    assert result["total_archived"] == 12
    assert result["timestamp"].endswith("Z")


def test_archive_old_events_runs_eagerly_with_override(archive_result):
    with mock.patch(
        "sports_predictions.workers.tasks.run_archive_sweep",
        new=mock.AsyncMock(return_value=archive_result),
    ) as sweep:
        result = archive_old_events.delay(7).get()

    assert sweep.call_args.args[1] == 7
    assert result["archived_count"] == 3


def test_archive_old_events_reraises_storage_errors():
    with mock.patch(
        "sports_predictions.workers.tasks.run_archive_sweep",
        new=mock.AsyncMock(side_effect=StorageError("database unavailable")),
    ), mock.patch("sports_predictions.workers.tasks.logger") as logger:
        with pytest.raises(StorageError):
            archive_old_events()

    logger.error.assert_called_once()


def test_ingest_files_uses_configured_paths(test_settings):
    summary = IngestionSummary(events_created=2, predictions_created=1, errors=["prediction[1]: missing predicted value"])

    with mock.patch("sports_predictions.workers.tasks.get_settings", return_value=test_settings), \
         mock.patch("sports_predictions.workers.tasks.run_ingestion", new=mock.AsyncMock(return_value=summary)) as ingest:
        result = ingest_files()

    ingest.assert_awaited_once_with(
        test_settings, test_settings.DATA_EVENTS_PATH, test_settings.DATA_PREDICTIONS_PATH
    )
    assert result["status"] == "success"
    assert result["events_created"] == 2
    assert result["predictions_created"] == 1
    assert result["errors"] == ["prediction[1]: missing predicted value"]


def test_ingest_files_reraises_source_errors():
    with mock.patch(
        "sports_predictions.workers.tasks.run_ingestion",
        new=mock.AsyncMock(side_effect=IngestionSourceError("cannot read events.json")),
    ):
        with pytest.raises(IngestionSourceError):
            ingest_files("events.json", "predictions.json")
