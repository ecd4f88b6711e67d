"""
@file: prediction_repository.py
@description:
Data access for predictions. Listing joins each prediction to its owning event
so the event-level filters (sport, league, team, dates, archival) apply.

@notes:
- Creation is idempotent per event: `predictions.event_id` is unique and the
  insert is ON CONFLICT DO NOTHING, followed by a read-back.
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sports_predictions.core.errors import StorageError
from sports_predictions.core.logger import setup_logger
from sports_predictions.db.models import Event, Prediction
from sports_predictions.repositories.base import storage_errors, upsert_insert
from sports_predictions.repositories.event_repository import IMMUTABLE_FIELDS, event_predicates
from sports_predictions.services.filters import Pagination, PredictionFilters

logger = setup_logger("sports_predictions.repositories.prediction_repository")


def prediction_predicates(filters: PredictionFilters):
    conditions = event_predicates(filters)
    if filters.prediction_type is not None:
        conditions.append(Prediction.prediction_type == filters.prediction_type)
    if filters.min_confidence is not None:
        conditions.append(Prediction.confidence_score >= filters.min_confidence)
    return conditions


class PredictionRepository:
    """Prediction persistence bound to one AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, data: Mapping[str, Any]) -> Prediction:
        """Insert a prediction, or return the existing one for the same event."""
        values = dict(data)
        stmt = (
            upsert_insert(self.session, Prediction)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["event_id"])
            .returning(Prediction)
        )

        with storage_errors("creating prediction"):
            result = await self.session.execute(stmt, execution_options={"populate_existing": True})
            created = result.scalars().first()
            if created is not None:
                logger.debug(f"Prediction created: id={created.id} event_id={created.event_id}")
                return created

            logger.warning(f"Prediction already exists for event {values['event_id']}")
            existing = await self.find_by_event_id(values["event_id"])

        if existing is None:
            raise StorageError(f"Prediction for event {values['event_id']} conflicted but could not be read back")
        return existing

    async def find_by_id(self, prediction_id: int) -> Optional[Prediction]:
        with storage_errors(f"finding prediction {prediction_id}"):
            return await self.session.get(Prediction, prediction_id, populate_existing=True)

    async def find_by_event_id(self, event_id: int) -> Optional[Prediction]:
        stmt = (
            select(Prediction)
            .where(Prediction.event_id == event_id)
            .order_by(Prediction.created_at.desc(), Prediction.id.desc())
            .limit(1)
        )
        with storage_errors(f"finding prediction for event {event_id}"):
            result = await self.session.execute(stmt, execution_options={"populate_existing": True})
            return result.scalars().first()

    async def find_all(
        self,
        filters: PredictionFilters,
        pagination: Pagination,
    ) -> Tuple[Sequence[Prediction], int]:
        """
        Return one page of predictions whose own fields and owning event match
        every filter, plus the exact total. Newest events first.
        """
        conditions = prediction_predicates(filters)

        count_stmt = (
            select(func.count())
            .select_from(Prediction)
            .join(Event, Prediction.event_id == Event.id)
            .where(*conditions)
        )
        page_stmt = (
            select(Prediction)
            .join(Event, Prediction.event_id == Event.id)
            .where(*conditions)
            .order_by(Event.event_date.desc(), Prediction.created_at.desc(), Prediction.id.desc())
            .limit(pagination.limit)
            .offset(pagination.offset)
        )

        with storage_errors("listing predictions"):
            total = await self.session.scalar(count_stmt)
            result = await self.session.execute(page_stmt, execution_options={"populate_existing": True})
            predictions = result.scalars().all()

        return predictions, int(total or 0)

    async def latest_for_events(self, event_ids: Iterable[int]) -> Dict[int, Prediction]:
        """Latest prediction per event for a batch of event ids, in one query."""
        ids = list(event_ids)
        if not ids:
            return {}

        stmt = (
            select(Prediction)
            .where(Prediction.event_id.in_(ids))
            .order_by(Prediction.event_id, Prediction.created_at.desc(), Prediction.id.desc())
        )
        with storage_errors("loading predictions for events"):
            result = await self.session.execute(stmt, execution_options={"populate_existing": True})
            rows = result.scalars().all()

        latest: Dict[int, Prediction] = {}
        for prediction in rows:
            latest.setdefault(prediction.event_id, prediction)
        return latest

    async def update(self, prediction_id: int, fields: Mapping[str, Any]) -> Optional[Prediction]:
        columns = Prediction.__table__.columns.keys()
        values: Dict[str, Any] = {
            key: value for key, value in fields.items()
            if key in columns and key not in IMMUTABLE_FIELDS
        }
        if not values:
            return await self.find_by_id(prediction_id)

        stmt = update(Prediction).where(Prediction.id == prediction_id).values(**values).returning(Prediction)
        with storage_errors(f"updating prediction {prediction_id}"):
            result = await self.session.execute(stmt, execution_options={"populate_existing": True})
            return result.scalars().first()

    async def delete(self, prediction_id: int) -> bool:
        stmt = delete(Prediction).where(Prediction.id == prediction_id)
        with storage_errors(f"deleting prediction {prediction_id}"):
            result = await self.session.execute(stmt, execution_options={"synchronize_session": False})
        return (result.rowcount or 0) > 0
