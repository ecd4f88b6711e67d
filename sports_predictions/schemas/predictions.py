"""
@file: predictions.py
@description:
Pydantic schemas for request validation and response serialization
of event predictions.

Schemas:
- PredictionBase: Fields shared among request/response
- PredictionCreate: Fields required to create a new prediction
- PredictionUpdate: Partial update, every field optional
- PredictionOut: Fields exposed in API responses for a single prediction
- PredictionListResponse / PredictionResponse: `{data, pagination}` and `{data}` envelopes

@notes:
- confidence_score is bounded to [0, 100] here; the table CHECK constraint
  backs it up.
- Timestamps are timezone-aware UTC and serialize as ISO-8601.

@dependencies:
- pydantic: for data validation and serialization
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sports_predictions.db.models import PredictionType
from sports_predictions.schemas.common import PaginationOut


class PredictionBase(BaseModel):
    """
    Shared fields between request and response models.
    """
    prediction_type: PredictionType = Field(PredictionType.WINNER, description="WINNER, SCORE or OVER_UNDER.")
    predicted_value: str = Field(..., min_length=1, description="Predicted outcome, e.g. 'Liverpool' or '2-1'.")
    confidence_score: float = Field(..., ge=0, le=100, description="Confidence score from 0 to 100.")
    reasoning: str = Field("", description="Explanation for this prediction.")
    model_version: str = Field(..., min_length=1, max_length=50, description="Identifies the producing model.")


class PredictionCreate(PredictionBase):
    """
    Fields required for creating a prediction. At most one prediction exists
    per event; creating a second returns the first.
    """
    event_id: int = Field(..., ge=1, description="Owning event id.")


class PredictionUpdate(BaseModel):
    """
    Partial update. Only fields present in the request body are written.
    """
    model_config = ConfigDict(extra="forbid")

    prediction_type: Optional[PredictionType] = None
    predicted_value: Optional[str] = Field(None, min_length=1)
    confidence_score: Optional[float] = Field(None, ge=0, le=100)
    reasoning: Optional[str] = None
    model_version: Optional[str] = Field(None, min_length=1, max_length=50)

    @model_validator(mode="after")
    def reject_null_fields(self) -> "PredictionUpdate":
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class PredictionOut(PredictionBase):
    """
    A stored prediction as returned by the API.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    created_at: datetime
    updated_at: datetime


class PredictionListResponse(BaseModel):
    data: List[PredictionOut]
    pagination: PaginationOut


class PredictionResponse(BaseModel):
    data: PredictionOut
