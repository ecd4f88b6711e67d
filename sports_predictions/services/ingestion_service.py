"""
@file: ingestion_service.py
@description:
Batch ingestion of events and predictions from JSON arrays.

Event records arrive in several shapes. The participants are decoded by trying
each recognized shape in a fixed order:
1. explicit `home_team` and `away_team`
2. a `participants` list (by `role`, else by position)
3. an `event_name` of the form "Home vs Away"
A record matching none of them is rejected as an unrecognized shape.

Prediction records reference their event by `event_ref` (the computed identity
hash or the ref supplied in the source file) or by `event_index` into the
event batch.

@notes:
- Every record is written in its own transaction. A bad record is logged and
  its message collected; the rest of the batch continues.
- Only an unreadable source (missing file, invalid JSON, top level not an
  array) raises IngestionSourceError.
- Creates are conflict-tolerant, so re-running a batch is harmless.

@dependencies:
- sports_predictions.db.session: Database handle for per-record sessions
- sports_predictions.repositories: idempotent creates
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from sports_predictions.core.config import Settings
from sports_predictions.core.errors import (
    IngestionRecordError,
    IngestionSourceError,
    StorageError,
    ValidationError,
)
from sports_predictions.core.logger import setup_logger
from sports_predictions.db.models import Event, EventStatus, Prediction, PredictionType
from sports_predictions.db.session import Database
from sports_predictions.repositories import EventRepository, PredictionRepository
from sports_predictions.services.identity import compute_event_ref, parse_instant

logger = setup_logger("sports_predictions.services.ingestion_service")

DEFAULT_LEAGUE = "NA"
DEFAULT_MODEL_VERSION = "ingest-1"

_VS_SEPARATOR = re.compile(r"\s+vs\.?\s+", re.IGNORECASE)

Record = Mapping[str, Any]
Teams = Tuple[str, str]


@dataclass
class IngestionSummary:
    events_created: int = 0
    predictions_created: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "events_created": self.events_created,
            "predictions_created": self.predictions_created,
            "errors": list(self.errors),
        }


def _text(record: Record, *keys: str) -> Optional[str]:
    """First non-empty string value among `keys`."""
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _teams_from_explicit_fields(record: Record) -> Optional[Teams]:
    home, away = _text(record, "home_team"), _text(record, "away_team")
    if home and away:
        return home, away
    return None


def _teams_from_participants(record: Record) -> Optional[Teams]:
    participants = record.get("participants")
    if not isinstance(participants, list):
        return None

    named = [p for p in participants if isinstance(p, Mapping) and _text(p, "name")]
    by_role = {str(p.get("role", "")).lower(): _text(p, "name") for p in named}
    if "home" in by_role and "away" in by_role:
        return by_role["home"], by_role["away"]
    if len(named) >= 2:
        return _text(named[0], "name"), _text(named[1], "name")
    return None


def _teams_from_event_name(record: Record) -> Optional[Teams]:
    name = _text(record, "event_name")
    if not name:
        return None
    parts = _VS_SEPARATOR.split(name, maxsplit=1)
    if len(parts) == 2 and parts[0].strip() and parts[1].strip():
        return parts[0].strip(), parts[1].strip()
    return None


TEAM_DECODERS: Sequence[Callable[[Record], Optional[Teams]]] = (
    _teams_from_explicit_fields,
    _teams_from_participants,
    _teams_from_event_name,
)


def decode_teams(record: Record) -> Teams:
    for decoder in TEAM_DECODERS:
        teams = decoder(record)
        if teams is not None:
            return teams
    raise IngestionRecordError("unrecognized event shape: no home/away teams, participants or 'A vs B' event_name")


def decode_status(record: Record) -> EventStatus:
    raw = _text(record, "status")
    if raw is None:
        source_status = _text(record, "event_status")
        if source_status is None:
            return EventStatus.SCHEDULED
        raw = "SCHEDULED" if source_status.lower() == "upcoming" else source_status.upper()
    try:
        return EventStatus(raw)
    except ValueError:
        raise IngestionRecordError(f"invalid status {raw!r}")


def decode_event(record: Record) -> Dict[str, Any]:
    """
    Normalize one loosely structured event record into Event column values,
    including the computed event_ref.

    Raises:
        IngestionRecordError: if a required field is missing or invalid.
    """
    if not isinstance(record, Mapping):
        raise IngestionRecordError("event record is not an object")

    home_team, away_team = decode_teams(record)

    sport = _text(record, "sport", "sport_type")
    if sport is None:
        raise IngestionRecordError("missing sport")

    raw_date = _text(record, "scheduled_at", "event_date")
    if raw_date is None:
        raise IngestionRecordError("missing event date")
    try:
        event_date = parse_instant(raw_date, "event_date")
    except ValidationError as e:
        raise IngestionRecordError(e.message)

    return {
        "event_ref": compute_event_ref(sport, home_team, away_team, event_date),
        "sport": sport,
        "league": _text(record, "league", "location", "event_name") or DEFAULT_LEAGUE,
        "home_team": home_team,
        "away_team": away_team,
        "event_date": event_date,
        "venue": _text(record, "venue", "location"),
        "status": decode_status(record),
    }


def _confidence(record: Record) -> float:
    value = record.get("confidence_score")
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise IngestionRecordError(f"confidence_score must be a number, got {value!r}")
    if not 0 <= value <= 100:
        raise IngestionRecordError(f"confidence_score {value} is outside [0, 100]")
    return float(value)


def _reasoning(record: Record) -> str:
    reasoning = _text(record, "reasoning")
    if reasoning is not None:
        return reasoning
    details = record.get("analysis_details")
    if isinstance(details, Mapping) and _text(details, "reasoning"):
        return _text(details, "reasoning")
    return json.dumps(details if details is not None else {})


def decode_prediction(record: Record, event_id: int) -> Dict[str, Any]:
    """
    Normalize one prediction record into Prediction column values for the
    already resolved event.
    """
    predicted_value = _text(record, "predicted_value", "predicted_outcome")
    if predicted_value is None:
        raise IngestionRecordError("missing predicted_value")

    raw_type = _text(record, "prediction_type") or PredictionType.WINNER.value
    try:
        prediction_type = PredictionType(raw_type)
    except ValueError:
        raise IngestionRecordError(f"invalid prediction_type {raw_type!r}")

    return {
        "event_id": event_id,
        "prediction_type": prediction_type,
        "predicted_value": predicted_value,
        "confidence_score": _confidence(record),
        "reasoning": _reasoning(record),
        "model_version": _text(record, "model_version") or DEFAULT_MODEL_VERSION,
    }


def read_records(path: str) -> List[Any]:
    """
    Read a JSON array from `path`.

    Raises:
        IngestionSourceError: if the file cannot be read or is not a JSON array.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise IngestionSourceError(f"Cannot read {path}: {e.strerror or e}")
    except json.JSONDecodeError as e:
        raise IngestionSourceError(f"Invalid JSON in {path}: {e.msg} (line {e.lineno})")

    if not isinstance(data, list):
        raise IngestionSourceError(f"{path} must contain a JSON array")
    return data


class EventBatch:
    """
    Events of one batch, addressable by position in the source and by
    event_ref. Positions of records that failed hold None.
    """

    def __init__(self):
        self.by_position: List[Optional[Event]] = []
        self.by_ref: Dict[str, Event] = {}

    def add(self, event: Optional[Event], source_ref: Optional[str] = None) -> None:
        self.by_position.append(event)
        if event is None:
            return
        self.by_ref[event.event_ref] = event
        if source_ref:
            self.by_ref.setdefault(source_ref, event)

    @property
    def created(self) -> List[Event]:
        return [event for event in self.by_position if event is not None]

    def resolve(self, record: Record) -> Event:
        ref = _text(record, "event_ref")
        if ref is not None:
            event = self.by_ref.get(ref)
            if event is None:
                raise IngestionRecordError(f"no event in this batch matches event_ref {ref}")
            return event

        index = record.get("event_index")
        if index is None:
            raise IngestionRecordError("missing event reference (event_ref or event_index)")
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.by_position):
            raise IngestionRecordError(f"invalid event_index {index!r}")
        event = self.by_position[index]
        if event is None:
            raise IngestionRecordError(f"event at index {index} was not loaded")
        return event


class IngestionService:
    def __init__(self, database: Database):
        self.database = database

    async def _create_event(self, values: Dict[str, Any]) -> Event:
        async with self.database.session() as session:
            return await EventRepository(session).create(values)

    async def _create_prediction(self, values: Dict[str, Any]) -> Prediction:
        async with self.database.session() as session:
            return await PredictionRepository(session).create(values)

    async def load_events(self, records: Sequence[Any]) -> Tuple[EventBatch, List[str]]:
        """
        Create one event per record.

        Returns:
            (EventBatch, errors): the batch, with None at positions that failed,
            and one message per failed record.
        """
        batch = EventBatch()
        errors: List[str] = []

        for position, record in enumerate(records):
            try:
                values = decode_event(record)
                event = await self._create_event(values)
            except (IngestionRecordError, StorageError) as e:
                message = f"event[{position}]: {e.message}"
                logger.warning(f"Skipping {message}")
                errors.append(message)
                batch.add(None)
                continue

            batch.add(event, source_ref=_text(record, "event_ref"))
            logger.debug(f"Event loaded: id={event.id} event_ref={event.event_ref}")

        logger.info(f"Events loaded: {len(batch.created)} of {len(records)}")
        return batch, errors

    async def load_predictions(self, records: Sequence[Any], events: EventBatch) -> Tuple[List[Prediction], List[str]]:
        predictions: List[Prediction] = []
        errors: List[str] = []

        for position, record in enumerate(records):
            try:
                if not isinstance(record, Mapping):
                    raise IngestionRecordError("prediction record is not an object")
                event = events.resolve(record)
                prediction = await self._create_prediction(decode_prediction(record, event.id))
            except (IngestionRecordError, StorageError) as e:
                message = f"prediction[{position}]: {e.message}"
                logger.warning(f"Skipping {message}")
                errors.append(message)
                continue

            predictions.append(prediction)
            logger.debug(f"Prediction loaded: id={prediction.id} event_id={prediction.event_id}")

        logger.info(f"Predictions loaded: {len(predictions)} of {len(records)}")
        return predictions, errors

    async def load_records(self, event_records: Sequence[Any], prediction_records: Sequence[Any]) -> IngestionSummary:
        """Ingest in-memory event and prediction records."""
        events, event_errors = await self.load_events(event_records)
        predictions, prediction_errors = await self.load_predictions(prediction_records, events)

        summary = IngestionSummary(
            events_created=len(events.created),
            predictions_created=len(predictions),
            errors=event_errors + prediction_errors,
        )
        logger.info(
            f"Data ingestion completed: {summary.events_created} events, "
            f"{summary.predictions_created} predictions, {len(summary.errors)} errors"
        )
        return summary

    async def load_data(self, events_path: str, predictions_path: str) -> IngestionSummary:
        """
        Ingest the events file, then the predictions file.

        Raises:
            IngestionSourceError: if either file cannot be read as a JSON array.
        """
        logger.info(f"Starting data ingestion (events: {events_path}, predictions: {predictions_path})")
        event_records = read_records(events_path)
        prediction_records = read_records(predictions_path)
        return await self.load_records(event_records, prediction_records)


async def run_ingestion(settings: Settings, events_path: str, predictions_path: str) -> IngestionSummary:
    """Run one ingestion with a Database handle owned for the duration of the run."""
    database = Database(settings)
    await database.init()
    try:
        return await IngestionService(database).load_data(events_path, predictions_path)
    finally:
        await database.dispose()
