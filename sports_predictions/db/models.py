"""
@file: models.py
@description:
SQLAlchemy ORM models for the Sports Predictions API: sports events and the
predictions made for them.

@notes:
- An Event owns its Predictions; deleting an event cascades to its predictions
  (ON DELETE CASCADE in the store, passive deletes in the ORM).
- `event_ref` is the content hash of (sport, home_team, away_team, event_date)
  and is unique, which makes event creation idempotent.
- One prediction per event: `predictions.event_id` is unique.
- Archival is an event-level flag; archived events are hidden from list
  endpoints unless explicitly requested.
- Status and prediction type are closed enums, stored as strings and enforced
  with CHECK constraints.

@dependencies:
- SQLAlchemy: for defining ORM models.
- sports_predictions.db.base: provides the Base class (declarative_base).
- sports_predictions.db.types: UTC-normalizing timestamp column type.
"""

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    false,
    func,
)
from sqlalchemy.orm import relationship

from sports_predictions.db.base import Base
from sports_predictions.db.types import UTCDateTime, utc_now


class EventStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"
    POSTPONED = "POSTPONED"
    CANCELLED = "CANCELLED"


class PredictionType(str, enum.Enum):
    WINNER = "WINNER"
    SCORE = "SCORE"
    OVER_UNDER = "OVER_UNDER"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Event(Base):
    """
    @class Event
    @description
    A scheduled sports fixture between two teams.

    @attributes:
        id (Integer): Surrogate primary key, assigned by the store.
        event_ref (String): SHA-256 content hash used as the idempotency key.
        sport, league (String): Classification used by list filters.
        home_team, away_team (String): Participants.
        event_date (UTCDateTime): Kick-off instant, stored and compared in UTC.
        venue (String): Optional venue name.
        status (EventStatus): Lifecycle state of the fixture.
        is_archived (Boolean): Set by the archival sweep, never cleared by it.
        created_at, updated_at (UTCDateTime): Store-managed timestamps.
    """
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_ref = Column(
        String(64),
        nullable=False,
        unique=True,
        doc="Deterministic content hash of the identifying attributes.",
    )
    sport = Column(String(50), nullable=False, index=True)
    league = Column(String(100), nullable=False, index=True)
    home_team = Column(String(100), nullable=False, index=True)
    away_team = Column(String(100), nullable=False, index=True)
    event_date = Column(UTCDateTime, nullable=False, index=True)
    venue = Column(String(200), nullable=True)
    status = Column(
        Enum(
            EventStatus,
            name="status",
            native_enum=False,
            create_constraint=True,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=EventStatus.SCHEDULED,
        server_default=EventStatus.SCHEDULED.value,
        index=True,
    )
    is_archived = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        index=True,
    )
    created_at = Column(
        UTCDateTime,
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        doc="Timestamp of when the record was created.",
    )
    updated_at = Column(
        UTCDateTime,
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        doc="Timestamp of the last update to this record.",
    )

    predictions = relationship(
        "Prediction",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id} {self.home_team} vs {self.away_team} @ {self.event_date}>"


class Prediction(Base):
    """
    @class Prediction
    @description
    A model-generated prediction for an event.

    @attributes:
        id (Integer): Surrogate primary key.
        event_id (Integer): Owning event; unique (one prediction per event).
        prediction_type (PredictionType): WINNER, SCORE or OVER_UNDER.
        predicted_value (Text): Free-text outcome, e.g. "Liverpool" or "2-1".
        confidence_score (Numeric): Confidence between 0 and 100.
        reasoning (Text): Explanation produced with the prediction.
        model_version (String): Identifies the producing model.
        created_at, updated_at (UTCDateTime): Store-managed timestamps.
    """
    __tablename__ = "predictions"
    __table_args__ = (
        CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 100",
            name="confidence_score_range",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        doc="Owning event; unique so each event has at most one prediction.",
    )
    prediction_type = Column(
        Enum(
            PredictionType,
            name="prediction_type",
            native_enum=False,
            create_constraint=True,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
        index=True,
    )
    predicted_value = Column(Text, nullable=False)
    confidence_score = Column(Numeric(5, 2, asdecimal=False), nullable=False, index=True)
    reasoning = Column(Text, nullable=False)
    model_version = Column(String(50), nullable=False)
    created_at = Column(
        UTCDateTime,
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        index=True,
    )
    updated_at = Column(
        UTCDateTime,
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
    )

    event = relationship("Event", back_populates="predictions")

    def __repr__(self) -> str:
        return f"<Prediction id={self.id} event_id={self.event_id} {self.prediction_type}>"
