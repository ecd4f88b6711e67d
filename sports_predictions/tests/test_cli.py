"""
@file: test_cli.py
@description:
Tests for the maintenance command line: init-db, load-data and archive
against a throwaway SQLite file.
"""

import json

import pytest

from sports_predictions.cli import build_parser, main


@pytest.fixture
def file_settings(test_settings, tmp_path):
    return test_settings.model_copy(update={
        "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}",
        "DATA_EVENTS_PATH": str(tmp_path / "events.json"),
        "DATA_PREDICTIONS_PATH": str(tmp_path / "predictions.json"),
    })


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_parser_load_data_paths_are_optional():
    args = build_parser().parse_args(["load-data"])

    assert args.events_path is None
    assert args.predictions_path is None


def test_parser_archive_retention_override():
    args = build_parser().parse_args(["archive", "--retention-days", "7"])

    assert args.retention_days == 7


def test_init_load_and_archive(file_settings, capsys):
    with open(file_settings.DATA_EVENTS_PATH, "w") as f:
        json.dump([
            {"sport": "Football", "home_team": "Liverpool", "away_team": "Arsenal",
             "event_date": "2001-01-15T15:00:00Z"},
            {"sport": "Football", "home_team": "Chelsea", "away_team": "Spurs",
             "event_date": "2099-01-15T15:00:00Z"},
        ], f)
    with open(file_settings.DATA_PREDICTIONS_PATH, "w") as f:
        json.dump([{"event_index": 0, "predicted_value": "Liverpool", "confidence_score": 70}], f)

    assert main(["init-db"], settings=file_settings) == 0
    assert main(["load-data"], settings=file_settings) == 0
    loaded = capsys.readouterr().out
    assert "Events: 2" in loaded
    assert "Predictions: 1" in loaded

    assert main(["archive"], settings=file_settings) == 0
    assert "Archived 1 events" in capsys.readouterr().out


def test_load_data_reports_unreadable_source(file_settings, tmp_path, capsys):
    assert main(["init-db"], settings=file_settings) == 0

    exit_code = main(["load-data", str(tmp_path / "missing.json")], settings=file_settings)

    assert exit_code == 1
    assert "load-data failed" in capsys.readouterr().err


def test_archive_rejects_negative_retention(file_settings, capsys):
    assert main(["init-db"], settings=file_settings) == 0

    assert main(["archive", "--retention-days", "-1"], settings=file_settings) == 1
    assert "archive failed" in capsys.readouterr().err
