"""
@file: events.py
@description:
Pydantic schemas for sports events.

Schemas:
- EventCreate / EventUpdate: request bodies
- EventOut: a stored event
- EventWithPredictionOut: an event plus its latest prediction and `winner`
- EventListResponse / EventResponse: response envelopes

@notes:
- When predictions are requested, `prediction` and `winner` are always
  present and are null when the event has no prediction.
- event_ref is derived from (sport, home_team, away_team, event_date) and is
  never accepted from the client.
"""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sports_predictions.db.models import EventStatus
from sports_predictions.schemas.common import PaginationOut
from sports_predictions.schemas.predictions import PredictionOut
from sports_predictions.services.identity import parse_instant


class EventBase(BaseModel):
    sport: str = Field(..., min_length=1, max_length=50)
    league: str = Field(..., min_length=1, max_length=100)
    home_team: str = Field(..., min_length=1, max_length=100)
    away_team: str = Field(..., min_length=1, max_length=100)
    event_date: datetime = Field(..., description="Kick-off instant; naive values are taken as UTC.")
    venue: Optional[str] = Field(None, max_length=200)
    status: EventStatus = EventStatus.SCHEDULED


class EventCreate(EventBase):
    """
    Fields required to create an event. Creating the same event twice
    returns the stored row.
    """

    @field_validator("event_date")
    @classmethod
    def normalize_event_date(cls, value: datetime) -> datetime:
        return parse_instant(value, "event_date")


class EventUpdate(BaseModel):
    """
    Partial update. The identity hash is fixed at creation and is not
    recomputed when identifying fields change.
    """
    model_config = ConfigDict(extra="forbid")

    sport: Optional[str] = Field(None, min_length=1, max_length=50)
    league: Optional[str] = Field(None, min_length=1, max_length=100)
    home_team: Optional[str] = Field(None, min_length=1, max_length=100)
    away_team: Optional[str] = Field(None, min_length=1, max_length=100)
    event_date: Optional[datetime] = None
    venue: Optional[str] = Field(None, max_length=200)
    status: Optional[EventStatus] = None
    is_archived: Optional[bool] = None

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "EventUpdate":
        nullable = {"venue"}
        for name in self.model_fields_set - nullable:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    @field_validator("event_date")
    @classmethod
    def normalize_event_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        return parse_instant(value, "event_date")


class EventOut(EventBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_ref: str
    is_archived: bool
    created_at: datetime
    updated_at: datetime


class EventWithPredictionOut(EventOut):
    prediction: Optional[PredictionOut]
    winner: Optional[str]


class EventListResponse(BaseModel):
    data: List[Union[EventWithPredictionOut, EventOut]]
    pagination: PaginationOut


class EventResponse(BaseModel):
    data: Union[EventWithPredictionOut, EventOut]
