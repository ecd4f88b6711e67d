"""
@file: events.py
@description:
API endpoints to list, read, create, update and delete sports events.

Routes:
- GET /api/events : filtered, paginated list (optionally with predictions)
- GET /api/events/{event_id} : a single event with its latest prediction
- POST /api/events : create an event (idempotent)
- PATCH /api/events/{event_id} : partial update
- DELETE /api/events/{event_id} : delete an event and its predictions

@dependencies:
- FastAPI APIRouter for route definitions.
- EventService for validation, data access and response shaping.

@notes:
- Query parameters are taken as raw strings and validated by the service so
  that every malformed value yields the same 400 `{message, code}` body.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from sports_predictions.db.session import get_session
from sports_predictions.schemas.events import (
    EventCreate,
    EventListResponse,
    EventResponse,
    EventUpdate,
)
from sports_predictions.services.event_service import EventService
from sports_predictions.services.filters import parse_include_predictions

router = APIRouter()


@router.get("/events", response_model=EventListResponse, tags=["Events"])
async def list_events(
    sport: Optional[str] = None,
    league: Optional[str] = None,
    team: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    status_: Optional[str] = Query(None, alias="status"),
    when: Optional[str] = None,
    includeArchived: Optional[str] = None,
    includePredictions: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    """
    GET /api/events

    Returns events matching every supplied filter, newest first (soonest first
    for `when=upcoming`), with each event's latest prediction and `winner`
    unless `includePredictions=false`.
    """
    query = {
        "sport": sport,
        "league": league,
        "team": team,
        "startDate": startDate,
        "endDate": endDate,
        "status": status_,
        "when": when,
        "includeArchived": includeArchived,
        "includePredictions": includePredictions,
        "page": page,
        "limit": limit,
    }
    return await EventService(session).list_events(query)


@router.get("/events/{event_id}", response_model=EventResponse, tags=["Events"])
async def get_event(
    event_id: int,
    includePredictions: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    include = parse_include_predictions({"includePredictions": includePredictions})
    event = await EventService(session).get_event(event_id, include_predictions=include)
    return EventResponse(data=event)


@router.post("/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED, tags=["Events"])
async def create_event(
    event_in: EventCreate,
    session: AsyncSession = Depends(get_session),
):
    """
    POST /api/events

    Creating an event that already exists (same sport, teams and date)
    returns the stored event.
    """
    event = await EventService(session).create_event(event_in)
    return EventResponse(data=event)


@router.patch("/events/{event_id}", response_model=EventResponse, tags=["Events"])
async def update_event(
    event_id: int,
    event_in: EventUpdate,
    session: AsyncSession = Depends(get_session),
):
    event = await EventService(session).update_event(event_id, event_in)
    return EventResponse(data=event)


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Events"])
async def delete_event(
    event_id: int,
    session: AsyncSession = Depends(get_session),
):
    await EventService(session).delete_event(event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
