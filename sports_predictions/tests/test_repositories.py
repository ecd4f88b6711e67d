"""
@file: test_repositories.py
@description:
Tests for the event and prediction repositories against an in-memory SQLite
database:
- Idempotent creates
- Filtering, ordering and pagination totals
- Partial updates, deletes and cascades
- The bulk archival update
"""

from datetime import timedelta

import pytest

from sports_predictions.core.errors import StorageError
from sports_predictions.db.models import EventStatus, PredictionType
from sports_predictions.repositories import EventRepository, PredictionRepository
from sports_predictions.services.filters import (
    EventFilters,
    Pagination,
    PredictionFilters,
    TemporalBucket,
)
from sports_predictions.services.identity import compute_event_ref


async def _collect_pages(fetch, limit):
    """Walk every page and return all rows plus the reported total."""
    rows, page = [], 1
    _, total = await fetch(Pagination(page=1, limit=limit))
    while True:
        batch, _ = await fetch(Pagination(page=page, limit=limit))
        if not batch:
            break
        rows.extend(batch)
        page += 1
    return rows, total


@pytest.mark.asyncio
async def test_create_event_computes_event_ref(session, event_factory):
    data = event_factory()
    event = await EventRepository(session).create(data)

    assert event.id is not None
    assert event.event_ref == compute_event_ref(
        data["sport"], data["home_team"], data["away_team"], data["event_date"]
    )
    assert event.status is EventStatus.SCHEDULED
    assert event.is_archived is False
    assert event.event_date == data["event_date"]
    assert event.created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_create_event_is_idempotent(session, event_factory):
    repo = EventRepository(session)

    first = await repo.create(event_factory())
    second = await repo.create(event_factory(venue="Somewhere else"))

    assert second.id == first.id
    assert second.venue == "Anfield"
    _, total = await repo.find_all(EventFilters(include_archived=True), Pagination())
    assert total == 1


@pytest.mark.asyncio
async def test_find_by_id_returns_none_when_absent(session):
    assert await EventRepository(session).find_by_id(9999) is None
    assert await PredictionRepository(session).find_by_id(9999) is None


@pytest.mark.asyncio
async def test_create_prediction_is_idempotent_per_event(session, event_factory, prediction_factory):
    event = await EventRepository(session).create(event_factory())
    repo = PredictionRepository(session)

    first = await repo.create(prediction_factory(event.id))
    second = await repo.create(prediction_factory(event.id, predicted_value="Arsenal"))

    assert second.id == first.id
    assert second.predicted_value == "Liverpool"
    assert (await repo.find_by_event_id(event.id)).id == first.id


@pytest.mark.asyncio
async def test_confidence_outside_range_is_a_storage_error(session, event_factory, prediction_factory):
    event = await EventRepository(session).create(event_factory())

    with pytest.raises(StorageError):
        await PredictionRepository(session).create(prediction_factory(event.id, confidence_score=101))


@pytest.mark.asyncio
async def test_prediction_for_missing_event_is_a_storage_error(session, prediction_factory):
    with pytest.raises(StorageError):
        await PredictionRepository(session).create(prediction_factory(4242))


@pytest.mark.asyncio
async def test_pagination_covers_every_row_exactly_once(session, event_factory, now):
    repo = EventRepository(session)
    for day in range(11):
        await repo.create(event_factory(home_team=f"Team {day}", event_date=now + timedelta(days=day)))

    async def fetch(pagination):
        return await repo.find_all(EventFilters(), pagination, now=now)

    rows, total = await _collect_pages(fetch, limit=5)

    assert total == 11
    assert len(rows) == 11
    assert len({event.id for event in rows}) == 11
    assert Pagination(limit=5).total_pages(total) == 3
    page_three, _ = await fetch(Pagination(page=3, limit=5))
    assert len(page_three) == 1


@pytest.mark.asyncio
async def test_filters_are_conjunctive(session, event_factory, now):
    repo = EventRepository(session)
    await repo.create(event_factory(sport="Football", league="Premier League", event_date=now + timedelta(days=1)))
    await repo.create(event_factory(sport="Football", league="La Liga", home_team="Barcelona",
                                    away_team="Real Madrid", event_date=now + timedelta(days=2)))
    await repo.create(event_factory(sport="Basketball", league="NBA", home_team="Lakers",
                                    away_team="Celtics", event_date=now + timedelta(days=3)))

    football, football_total = await repo.find_all(EventFilters(sport="Football"), Pagination(), now=now)
    both, both_total = await repo.find_all(
        EventFilters(sport="Football", league="La Liga"), Pagination(), now=now
    )

    assert football_total == 2
    assert both_total == 1
    assert {e.id for e in both} <= {e.id for e in football}
    assert both[0].home_team == "Barcelona"


@pytest.mark.asyncio
async def test_team_filter_matches_home_or_away(session, event_factory, now):
    repo = EventRepository(session)
    await repo.create(event_factory(home_team="Liverpool", away_team="Arsenal"))
    await repo.create(event_factory(home_team="Chelsea", away_team="Liverpool"))
    await repo.create(event_factory(home_team="Chelsea", away_team="Arsenal"))

    _, total = await repo.find_all(EventFilters(team="Liverpool"), Pagination(), now=now)

    assert total == 2


@pytest.mark.asyncio
async def test_date_range_is_inclusive(session, event_factory, now):
    repo = EventRepository(session)
    for day in (1, 2, 3):
        await repo.create(event_factory(home_team=f"Team {day}", event_date=now + timedelta(days=day)))

    filters = EventFilters(start_date=now + timedelta(days=1), end_date=now + timedelta(days=2))
    _, total = await repo.find_all(filters, Pagination(), now=now)

    assert total == 2


@pytest.mark.asyncio
async def test_temporal_buckets_and_ordering(session, event_factory, now):
    repo = EventRepository(session)
    for day in (-2, -1, 1, 2):
        await repo.create(event_factory(home_team=f"Team {day}", event_date=now + timedelta(days=day)))

    upcoming, upcoming_total = await repo.find_all(EventFilters(when=TemporalBucket.UPCOMING), Pagination(), now=now)
    past, past_total = await repo.find_all(EventFilters(when=TemporalBucket.PAST), Pagination(), now=now)
    everything, all_total = await repo.find_all(EventFilters(), Pagination(), now=now)

    assert (upcoming_total, past_total, all_total) == (2, 2, 4)
    assert [e.home_team for e in upcoming] == ["Team 1", "Team 2"]
    assert [e.home_team for e in past] == ["Team -1", "Team -2"]
    assert [e.home_team for e in everything] == ["Team 2", "Team 1", "Team -1", "Team -2"]


@pytest.mark.asyncio
async def test_status_filter(session, event_factory, now):
    repo = EventRepository(session)
    await repo.create(event_factory(status=EventStatus.LIVE))
    await repo.create(event_factory(home_team="Chelsea"))

    live, total = await repo.find_all(EventFilters(status=EventStatus.LIVE), Pagination(), now=now)

    assert total == 1
    assert live[0].status is EventStatus.LIVE


@pytest.mark.asyncio
async def test_update_applies_only_given_fields(session, event_factory):
    repo = EventRepository(session)
    event = await repo.create(event_factory())
    original_ref, original_created = event.event_ref, event.created_at

    updated = await repo.update(event.id, {"status": EventStatus.COMPLETED, "event_ref": "x" * 64, "id": 77})

    assert updated.id == event.id
    assert updated.status is EventStatus.COMPLETED
    assert updated.venue == "Anfield"
    assert updated.event_ref == original_ref
    assert updated.created_at == original_created
    assert updated.updated_at >= original_created


@pytest.mark.asyncio
async def test_empty_update_returns_current_row(session, event_factory):
    repo = EventRepository(session)
    event = await repo.create(event_factory())

    unchanged = await repo.update(event.id, {})

    assert unchanged.id == event.id
    assert unchanged.updated_at == event.updated_at


@pytest.mark.asyncio
async def test_update_missing_row_returns_none(session):
    assert await EventRepository(session).update(404, {"venue": "Nowhere"}) is None
    assert await PredictionRepository(session).update(404, {"reasoning": "none"}) is None


@pytest.mark.asyncio
async def test_delete_event_cascades_to_predictions(session, event_factory, prediction_factory):
    events = EventRepository(session)
    predictions = PredictionRepository(session)
    event = await events.create(event_factory())
    prediction = await predictions.create(prediction_factory(event.id))

    assert await events.delete(event.id) is True
    assert await events.find_by_id(event.id) is None
    assert await predictions.find_by_id(prediction.id) is None
    assert await events.delete(event.id) is False


@pytest.mark.asyncio
async def test_archive_older_than_is_idempotent_and_monotone(session, event_factory, now):
    repo = EventRepository(session)
    old = await repo.create(event_factory(home_team="Old", event_date=now - timedelta(days=40)))
    await repo.create(event_factory(home_team="Recent", event_date=now - timedelta(days=10)))
    await repo.create(event_factory(home_team="Future", event_date=now + timedelta(days=5)))

    first = await repo.archive_older_than(30, now=now)
    second = await repo.archive_older_than(30, now=now)

    assert first == 1
    assert second == 0
    assert await repo.count_archived() == 1
    assert (await repo.find_by_id(old.id)).is_archived is True

    # A shorter retention only ever adds to the archived set
    assert await repo.archive_older_than(5, now=now) == 1
    assert await repo.count_archived() == 2


@pytest.mark.asyncio
async def test_archived_events_hidden_by_default(session, event_factory, now):
    repo = EventRepository(session)
    await repo.create(event_factory(home_team="Old", event_date=now - timedelta(days=40)))
    await repo.create(event_factory(home_team="New", event_date=now + timedelta(days=1)))
    await repo.archive_older_than(30, now=now)

    visible, visible_total = await repo.find_all(EventFilters(), Pagination(), now=now)
    _, all_total = await repo.find_all(EventFilters(include_archived=True), Pagination(), now=now)

    assert visible_total == 1
    assert visible[0].home_team == "New"
    assert all_total == 2


@pytest.mark.asyncio
async def test_prediction_filters_join_the_owning_event(session, event_factory, prediction_factory, now):
    events = EventRepository(session)
    predictions = PredictionRepository(session)
    football = await events.create(event_factory(event_date=now - timedelta(days=40)))
    basketball = await events.create(event_factory(sport="Basketball", league="NBA", home_team="Lakers",
                                                   away_team="Celtics"))
    await predictions.create(prediction_factory(football.id, confidence_score=90))
    await predictions.create(prediction_factory(basketball.id, prediction_type=PredictionType.SCORE,
                                                predicted_value="110-102", confidence_score=55))

    _, by_sport = await predictions.find_all(PredictionFilters(sport="Basketball"), Pagination())
    _, by_type = await predictions.find_all(PredictionFilters(prediction_type=PredictionType.SCORE), Pagination())
    confident, by_confidence = await predictions.find_all(PredictionFilters(min_confidence=90), Pagination())

    assert by_sport == 1
    assert by_type == 1
    assert by_confidence == 1
    assert confident[0].event_id == football.id

    await events.archive_older_than(30, now=now)
    _, visible = await predictions.find_all(PredictionFilters(), Pagination())
    _, with_archived = await predictions.find_all(PredictionFilters(include_archived=True), Pagination())

    assert visible == 1
    assert with_archived == 2


@pytest.mark.asyncio
async def test_min_confidence_is_inclusive(session, event_factory, prediction_factory):
    event = await EventRepository(session).create(event_factory())
    await PredictionRepository(session).create(prediction_factory(event.id, confidence_score=75))

    _, total = await PredictionRepository(session).find_all(PredictionFilters(min_confidence=75), Pagination())

    assert total == 1


@pytest.mark.asyncio
async def test_latest_for_events(session, event_factory, prediction_factory):
    events = EventRepository(session)
    predictions = PredictionRepository(session)
    with_prediction = await events.create(event_factory())
    without_prediction = await events.create(event_factory(home_team="Chelsea"))
    prediction = await predictions.create(prediction_factory(with_prediction.id))

    latest = await predictions.latest_for_events([with_prediction.id, without_prediction.id])

    assert latest == {with_prediction.id: prediction}
    assert await predictions.latest_for_events([]) == {}
