"""
@file: event_service.py
@description:
Retrieval and mutation of events for the HTTP surface. Validates loosely typed
query parameters, calls the repositories and shapes the response envelopes,
including the latest prediction and `winner` for each event.

@dependencies:
- sports_predictions.repositories: event and prediction data access
- sports_predictions.services.filters: query validation
- sports_predictions.schemas.events: response models
"""

from typing import Dict, Mapping, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from sports_predictions.core.errors import NotFoundError
from sports_predictions.core.logger import setup_logger
from sports_predictions.db.models import Event, Prediction
from sports_predictions.repositories import EventRepository, PredictionRepository
from sports_predictions.schemas.common import PaginationOut
from sports_predictions.schemas.events import (
    EventCreate,
    EventListResponse,
    EventOut,
    EventUpdate,
    EventWithPredictionOut,
)
from sports_predictions.schemas.predictions import PredictionOut
from sports_predictions.services.filters import (
    parse_event_filters,
    parse_include_predictions,
    parse_pagination,
)

logger = setup_logger("sports_predictions.services.event_service")


def to_event_out(
    event: Event,
    include_predictions: bool,
    prediction: Optional[Prediction] = None,
) -> Union[EventOut, EventWithPredictionOut]:
    """
    Shape an event for the API. With predictions requested, `prediction` and
    `winner` are always present, null when there is no prediction.
    """
    base = EventOut.model_validate(event)
    if not include_predictions:
        return base

    prediction_out = PredictionOut.model_validate(prediction) if prediction is not None else None
    return EventWithPredictionOut(
        **base.model_dump(),
        prediction=prediction_out,
        winner=prediction_out.predicted_value if prediction_out is not None else None,
    )


class EventService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.events = EventRepository(session)
        self.predictions = PredictionRepository(session)

    async def list_events(self, query: Mapping[str, Optional[str]]) -> EventListResponse:
        """
        List events matching the query filters.

        Args:
            query: Raw query parameters (sport, league, team, startDate, endDate,
                status, when, includeArchived, includePredictions, page, limit).

        Returns:
            EventListResponse: one page of events and the pagination block.

        Raises:
            ValidationError: if any parameter is malformed.
        """
        filters = parse_event_filters(query)
        pagination = parse_pagination(query)
        include_predictions = parse_include_predictions(query)

        events, total = await self.events.find_all(filters, pagination)

        latest: Dict[int, Prediction] = {}
        if include_predictions:
            latest = await self.predictions.latest_for_events(event.id for event in events)

        logger.info(
            f"Listed {len(events)} of {total} events "
            f"(page {pagination.page}, limit {pagination.limit}, when={filters.when.value})"
        )
        return EventListResponse(
            data=[to_event_out(event, include_predictions, latest.get(event.id)) for event in events],
            pagination=PaginationOut.build(pagination, total),
        )

    async def get_event(self, event_id: int, include_predictions: bool = True):
        event = await self.events.find_by_id(event_id)
        if event is None:
            raise NotFoundError("Event not found")

        prediction = None
        if include_predictions:
            prediction = await self.predictions.find_by_event_id(event_id)
        return to_event_out(event, include_predictions, prediction)

    async def create_event(self, payload: EventCreate) -> EventOut:
        """Create an event; a repeat of an existing event returns the stored row."""
        event = await self.events.create(payload.model_dump())
        await self.session.commit()
        logger.info(f"Event {event.id} stored ({event.home_team} vs {event.away_team})")
        return EventOut.model_validate(event)

    async def update_event(self, event_id: int, payload: EventUpdate) -> EventOut:
        event = await self.events.update(event_id, payload.model_dump(exclude_unset=True))
        if event is None:
            raise NotFoundError("Event not found")
        await self.session.commit()
        return EventOut.model_validate(event)

    async def delete_event(self, event_id: int) -> None:
        deleted = await self.events.delete(event_id)
        if not deleted:
            raise NotFoundError("Event not found")
        await self.session.commit()
        logger.info(f"Event {event_id} deleted")
