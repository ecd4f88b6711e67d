"""
@file: filters.py
@description:
Turns loosely typed query parameters into validated, strongly typed filter
objects for the repositories. Invalid input raises ValidationError before any
store access; nothing is silently dropped. Out-of-range page/limit values are
clamped rather than rejected.

Query keys follow the HTTP surface: sport, league, team, startDate, endDate,
status, when, predictionType, minConfidence, includeArchived,
includePredictions, page, limit. Empty strings count as absent.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional

from sports_predictions.core.errors import ValidationError
from sports_predictions.db.models import EventStatus, PredictionType
from sports_predictions.services.identity import parse_instant

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100

_TRUE_VALUES = {"true", "1", "yes"}
_FALSE_VALUES = {"false", "0", "no"}


class TemporalBucket(str, enum.Enum):
    UPCOMING = "upcoming"
    PAST = "past"
    ALL = "all"


@dataclass(frozen=True)
class Pagination:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        # ceil without floats
        return -(-total // self.limit)


@dataclass(frozen=True)
class EventFilters:
    sport: Optional[str] = None
    league: Optional[str] = None
    team: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[EventStatus] = None
    when: TemporalBucket = TemporalBucket.ALL
    include_archived: bool = False


@dataclass(frozen=True)
class PredictionFilters:
    sport: Optional[str] = None
    league: Optional[str] = None
    team: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    prediction_type: Optional[PredictionType] = None
    min_confidence: Optional[float] = None
    include_archived: bool = False


def _value(query: Mapping[str, Optional[str]], key: str) -> Optional[str]:
    raw = query.get(key)
    if raw is None:
        return None
    raw = str(raw).strip()
    return raw or None


def parse_bool(raw: Optional[str], name: str, default: bool) -> bool:
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValidationError(f"Invalid value for {name}: expected true or false")


def parse_int(raw: Optional[str], name: str, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Invalid value for {name}: expected a positive integer")


def parse_pagination(query: Mapping[str, Optional[str]]) -> Pagination:
    page = parse_int(_value(query, "page"), "page", DEFAULT_PAGE)
    limit = parse_int(_value(query, "limit"), "limit", DEFAULT_LIMIT)
    return Pagination(page=max(1, page), limit=min(MAX_LIMIT, max(1, limit)))


def parse_date(raw: Optional[str], name: str) -> Optional[datetime]:
    if raw is None:
        return None
    return parse_instant(raw, name)


def parse_enum(enum_cls, raw: Optional[str], name: str):
    if raw is None:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {name}: must be one of {allowed}")


def parse_confidence(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError("Invalid confidence score: must be a number between 0 and 100")
    # NaN fails both comparisons
    if not 0 <= value <= 100:
        raise ValidationError("Invalid confidence score: must be a number between 0 and 100")
    return value


def _check_date_range(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and start > end:
        raise ValidationError("Invalid date range: startDate is after endDate")


def parse_event_filters(query: Mapping[str, Optional[str]]) -> EventFilters:
    start_date = parse_date(_value(query, "startDate"), "startDate")
    end_date = parse_date(_value(query, "endDate"), "endDate")
    _check_date_range(start_date, end_date)

    when = parse_enum(TemporalBucket, _value(query, "when"), "value for when parameter")

    return EventFilters(
        sport=_value(query, "sport"),
        league=_value(query, "league"),
        team=_value(query, "team"),
        start_date=start_date,
        end_date=end_date,
        status=parse_enum(EventStatus, _value(query, "status"), "status"),
        when=when or TemporalBucket.ALL,
        include_archived=parse_bool(_value(query, "includeArchived"), "includeArchived", False),
    )


def parse_prediction_filters(query: Mapping[str, Optional[str]]) -> PredictionFilters:
    start_date = parse_date(_value(query, "startDate"), "startDate")
    end_date = parse_date(_value(query, "endDate"), "endDate")
    _check_date_range(start_date, end_date)

    return PredictionFilters(
        sport=_value(query, "sport"),
        league=_value(query, "league"),
        team=_value(query, "team"),
        start_date=start_date,
        end_date=end_date,
        prediction_type=parse_enum(PredictionType, _value(query, "predictionType"), "prediction type"),
        min_confidence=parse_confidence(_value(query, "minConfidence")),
        include_archived=parse_bool(_value(query, "includeArchived"), "includeArchived", False),
    )


def parse_include_predictions(query: Mapping[str, Optional[str]]) -> bool:
    return parse_bool(_value(query, "includePredictions"), "includePredictions", True)
