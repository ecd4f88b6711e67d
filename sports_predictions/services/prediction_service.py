"""
@file: prediction_service.py
@description:
Service-level functions for listing, reading, creating and updating event
predictions.

Key features:
- Filtered, paginated listing joined to the owning event
- Idempotent create: one prediction per event
- Partial updates

@dependencies:
- sports_predictions.repositories: For database interactions.
- sports_predictions.schemas.predictions: For prediction validation.
- sports_predictions.core.logger: For logging.
"""

from typing import Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sports_predictions.core.errors import NotFoundError
from sports_predictions.core.logger import setup_logger
from sports_predictions.repositories import EventRepository, PredictionRepository
from sports_predictions.schemas.common import PaginationOut
from sports_predictions.schemas.predictions import (
    PredictionCreate,
    PredictionListResponse,
    PredictionOut,
    PredictionUpdate,
)
from sports_predictions.services.filters import parse_pagination, parse_prediction_filters

# Initialize logger
logger = setup_logger("sports_predictions.services.prediction_service")


class PredictionService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.events = EventRepository(session)
        self.predictions = PredictionRepository(session)

    async def list_predictions(self, query: Mapping[str, Optional[str]]) -> PredictionListResponse:
        """
        List predictions matching the query filters.

        Args:
            query: Raw query parameters (sport, league, team, startDate, endDate,
                predictionType, minConfidence, includeArchived, page, limit).

        Returns:
            PredictionListResponse: one page of predictions and the pagination block.

        Raises:
            ValidationError: if any parameter is malformed.
            StorageError: if the store fails.
        """
        filters = parse_prediction_filters(query)
        pagination = parse_pagination(query)

        predictions, total = await self.predictions.find_all(filters, pagination)
        logger.info(f"Listed {len(predictions)} of {total} predictions (page {pagination.page})")

        return PredictionListResponse(
            data=[PredictionOut.model_validate(prediction) for prediction in predictions],
            pagination=PaginationOut.build(pagination, total),
        )

    async def get_prediction(self, prediction_id: int) -> PredictionOut:
        prediction = await self.predictions.find_by_id(prediction_id)
        if prediction is None:
            raise NotFoundError("Prediction not found")
        return PredictionOut.model_validate(prediction)

    async def create_prediction(self, payload: PredictionCreate) -> PredictionOut:
        """
        Create the prediction for an event. If the event already has one, the
        stored prediction is returned unchanged.

        Raises:
            NotFoundError: if the owning event does not exist.
        """
        event = await self.events.find_by_id(payload.event_id)
        if event is None:
            raise NotFoundError("Event not found")

        prediction = await self.predictions.create(payload.model_dump())
        await self.session.commit()
        logger.info(f"Prediction {prediction.id} stored for event {prediction.event_id}")
        return PredictionOut.model_validate(prediction)

    async def update_prediction(self, prediction_id: int, payload: PredictionUpdate) -> PredictionOut:
        prediction = await self.predictions.update(prediction_id, payload.model_dump(exclude_unset=True))
        if prediction is None:
            raise NotFoundError("Prediction not found")
        await self.session.commit()
        return PredictionOut.model_validate(prediction)
