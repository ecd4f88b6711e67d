"""
@file: event_repository.py
@description:
Data access for events: idempotent create keyed on `event_ref`, point
lookups, filtered/paginated listing, partial update, delete and the bulk
archival update.

@notes:
- Filters are AND-ed; the page and the total are computed from the same
  predicate list, so `total` is exact for the filter set.
- `now` for the temporal bucket is taken once per call, in UTC, and bound as a
  parameter rather than using the store's clock.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sports_predictions.core.errors import StorageError
from sports_predictions.core.logger import setup_logger
from sports_predictions.db.models import Event
from sports_predictions.db.types import utc_now
from sports_predictions.repositories.base import storage_errors, upsert_insert
from sports_predictions.services.filters import EventFilters, Pagination, TemporalBucket
from sports_predictions.services.identity import compute_event_ref

logger = setup_logger("sports_predictions.repositories.event_repository")

IMMUTABLE_FIELDS = frozenset({"id", "event_ref", "created_at", "updated_at"})

_DATE_ORDER = {
    TemporalBucket.UPCOMING: Event.event_date.asc,
    TemporalBucket.PAST: Event.event_date.desc,
    TemporalBucket.ALL: Event.event_date.desc,
}


def archive_cutoff(retention_days: int, now: Optional[datetime] = None) -> datetime:
    """Instant before which events are eligible for archival."""
    return (now or utc_now()) - timedelta(days=retention_days)


def event_predicates(filters, now: Optional[datetime] = None) -> List[Any]:
    """
    WHERE clauses on the events table shared by event and prediction listing.

    Accepts any filter object with sport, league, team, start_date, end_date
    and include_archived attributes; the temporal bucket and status are only
    read when present.
    """
    conditions: List[Any] = []

    if not filters.include_archived:
        conditions.append(Event.is_archived.is_(False))
    if filters.sport:
        conditions.append(Event.sport == filters.sport)
    if filters.league:
        conditions.append(Event.league == filters.league)
    if filters.team:
        conditions.append(or_(Event.home_team == filters.team, Event.away_team == filters.team))
    if filters.start_date is not None:
        conditions.append(Event.event_date >= filters.start_date)
    if filters.end_date is not None:
        conditions.append(Event.event_date <= filters.end_date)

    status = getattr(filters, "status", None)
    if status is not None:
        conditions.append(Event.status == status)

    when = getattr(filters, "when", TemporalBucket.ALL)
    if when is TemporalBucket.UPCOMING:
        conditions.append(Event.event_date >= (now or utc_now()))
    elif when is TemporalBucket.PAST:
        conditions.append(Event.event_date < (now or utc_now()))
    elif when is not TemporalBucket.ALL:
        raise ValueError(f"Unhandled temporal bucket: {when!r}")

    return conditions


class EventRepository:
    """Event persistence bound to one AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, data: Mapping[str, Any]) -> Event:
        """
        Insert an event, or return the stored one if its event_ref exists.

        The event_ref is computed from (sport, home_team, away_team, event_date)
        when the caller does not supply it.
        """
        values = dict(data)
        if not values.get("event_ref"):
            values["event_ref"] = compute_event_ref(
                values["sport"], values["home_team"], values["away_team"], values["event_date"]
            )

        stmt = (
            upsert_insert(self.session, Event)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["event_ref"])
            .returning(Event)
        )

        with storage_errors("creating event"):
            result = await self.session.execute(stmt, execution_options={"populate_existing": True})
            created = result.scalars().first()
            if created is not None:
                logger.debug(f"Event created: id={created.id} event_ref={created.event_ref}")
                return created

            logger.warning(f"Event already exists (duplicate event_ref {values['event_ref']})")
            existing = await self.find_by_event_ref(values["event_ref"])

        if existing is None:
            raise StorageError(f"Event {values['event_ref']} conflicted but could not be read back")
        return existing

    async def find_by_id(self, event_id: int) -> Optional[Event]:
        with storage_errors(f"finding event {event_id}"):
            return await self.session.get(Event, event_id, populate_existing=True)

    async def find_by_event_ref(self, event_ref: str) -> Optional[Event]:
        stmt = select(Event).where(Event.event_ref == event_ref)
        with storage_errors("finding event by event_ref"):
            result = await self.session.execute(stmt, execution_options={"populate_existing": True})
            return result.scalars().first()

    async def find_all(
        self,
        filters: EventFilters,
        pagination: Pagination,
        now: Optional[datetime] = None,
    ) -> Tuple[Sequence[Event], int]:
        """
        Return one page of events matching every filter, plus the exact total.

        Ordered by event date descending (ascending for the upcoming bucket),
        then newest created first.
        """
        now = now or utc_now()
        conditions = event_predicates(filters, now)

        count_stmt = select(func.count()).select_from(Event).where(*conditions)
        page_stmt = (
            select(Event)
            .where(*conditions)
            .order_by(_DATE_ORDER[filters.when](), Event.created_at.desc(), Event.id.desc())
            .limit(pagination.limit)
            .offset(pagination.offset)
        )

        with storage_errors("listing events"):
            total = await self.session.scalar(count_stmt)
            result = await self.session.execute(page_stmt, execution_options={"populate_existing": True})
            events = result.scalars().all()

        return events, int(total or 0)

    async def update(self, event_id: int, fields: Mapping[str, Any]) -> Optional[Event]:
        """
        Apply only the provided fields. An empty update returns the current row;
        a missing row returns None.
        """
        columns = Event.__table__.columns.keys()
        values: Dict[str, Any] = {
            key: value for key, value in fields.items()
            if key in columns and key not in IMMUTABLE_FIELDS
        }
        if not values:
            return await self.find_by_id(event_id)

        stmt = update(Event).where(Event.id == event_id).values(**values).returning(Event)
        with storage_errors(f"updating event {event_id}"):
            result = await self.session.execute(stmt, execution_options={"populate_existing": True})
            return result.scalars().first()

    async def delete(self, event_id: int) -> bool:
        """Delete an event; its predictions go with it via ON DELETE CASCADE."""
        stmt = delete(Event).where(Event.id == event_id)
        with storage_errors(f"deleting event {event_id}"):
            result = await self.session.execute(stmt, execution_options={"synchronize_session": False})
        return (result.rowcount or 0) > 0

    async def archive_older_than(self, retention_days: int, now: Optional[datetime] = None) -> int:
        """
        Flip is_archived to true for every unarchived event dated before
        now - retention_days. One UPDATE statement; returns rows changed.
        """
        cutoff = archive_cutoff(retention_days, now)
        stmt = (
            update(Event)
            .where(Event.is_archived.is_(False), Event.event_date < cutoff)
            .values(is_archived=True)
        )
        with storage_errors("archiving events"):
            result = await self.session.execute(stmt, execution_options={"synchronize_session": False})
        return result.rowcount or 0

    async def count_archived(self) -> int:
        stmt = select(func.count()).select_from(Event).where(Event.is_archived.is_(True))
        with storage_errors("counting archived events"):
            return int(await self.session.scalar(stmt) or 0)
