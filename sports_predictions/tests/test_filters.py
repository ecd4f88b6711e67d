"""
@file: test_filters.py
@description:
Tests for turning raw query parameters into validated filters and pagination.
"""

from datetime import datetime, timezone

import pytest

from sports_predictions.core.errors import ValidationError
from sports_predictions.db.models import EventStatus, PredictionType
from sports_predictions.services.filters import (
    Pagination,
    TemporalBucket,
    parse_event_filters,
    parse_include_predictions,
    parse_pagination,
    parse_prediction_filters,
)


def test_pagination_defaults():
    pagination = parse_pagination({})

    assert pagination == Pagination(page=1, limit=20)
    assert pagination.offset == 0


@pytest.mark.parametrize(
    "query, expected",
    [
        ({"page": "0"}, Pagination(page=1, limit=20)),
        ({"page": "-4"}, Pagination(page=1, limit=20)),
        ({"limit": "0"}, Pagination(page=1, limit=1)),
        ({"limit": "500"}, Pagination(page=1, limit=100)),
        ({"page": "3", "limit": "5"}, Pagination(page=3, limit=5)),
        ({"page": "", "limit": ""}, Pagination(page=1, limit=20)),
    ],
)
def test_pagination_is_clamped(query, expected):
    assert parse_pagination(query) == expected


@pytest.mark.parametrize("query", [{"page": "abc"}, {"limit": "1.5"}, {"limit": "ten"}])
def test_pagination_rejects_non_integers(query):
    with pytest.raises(ValidationError):
        parse_pagination(query)


def test_offset_and_total_pages():
    pagination = Pagination(page=3, limit=5)

    assert pagination.offset == 10
    assert pagination.total_pages(11) == 3
    assert pagination.total_pages(10) == 2
    assert pagination.total_pages(0) == 0


def test_event_filters_parse_every_field():
    filters = parse_event_filters({
        "sport": "Football",
        "league": "Premier League",
        "team": "Liverpool",
        "startDate": "2026-01-01T00:00:00Z",
        "endDate": "2026-02-01T00:00:00Z",
        "status": "LIVE",
        "when": "upcoming",
        "includeArchived": "true",
    })

    assert filters.sport == "Football"
    assert filters.league == "Premier League"
    assert filters.team == "Liverpool"
    assert filters.start_date == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert filters.end_date == datetime(2026, 2, 1, tzinfo=timezone.utc)
    assert filters.status is EventStatus.LIVE
    assert filters.when is TemporalBucket.UPCOMING
    assert filters.include_archived is True


def test_event_filter_defaults():
    filters = parse_event_filters({"sport": "", "team": None})

    assert filters.sport is None
    assert filters.team is None
    assert filters.when is TemporalBucket.ALL
    assert filters.include_archived is False


@pytest.mark.parametrize(
    "query",
    [
        {"when": "soon"},
        {"status": "FINISHED"},
        {"startDate": "yesterday"},
        {"startDate": "2026-02-01T00:00:00Z", "endDate": "2026-01-01T00:00:00Z"},
        {"includeArchived": "maybe"},
    ],
)
def test_event_filters_reject_invalid_values(query):
    with pytest.raises(ValidationError):
        parse_event_filters(query)


def test_prediction_filters_parse_type_and_confidence():
    filters = parse_prediction_filters({"predictionType": "SCORE", "minConfidence": "75.5"})

    assert filters.prediction_type is PredictionType.SCORE
    assert filters.min_confidence == 75.5
    assert filters.include_archived is False


@pytest.mark.parametrize("value", ["0", "100", "42"])
def test_min_confidence_accepts_bounds(value):
    assert parse_prediction_filters({"minConfidence": value}).min_confidence == float(value)


@pytest.mark.parametrize("value", ["-0.1", "100.01", "150", "abc", "nan"])
def test_min_confidence_rejects_out_of_range(value):
    with pytest.raises(ValidationError) as exc_info:
        parse_prediction_filters({"minConfidence": value})
    assert "confidence" in exc_info.value.message.lower()


def test_prediction_type_rejects_unknown_value():
    with pytest.raises(ValidationError) as exc_info:
        parse_prediction_filters({"predictionType": "INVALID_TYPE"})
    assert "prediction type" in exc_info.value.message.lower()


@pytest.mark.parametrize(
    "raw, expected",
    [(None, True), ("true", True), ("TRUE", True), ("1", True), ("yes", True),
     ("false", False), ("0", False), ("no", False)],
)
def test_include_predictions(raw, expected):
    assert parse_include_predictions({"includePredictions": raw}) is expected
